"""Assistant configuration loader.

Loads the ``[assistant]`` section of a TOML file (``defaults.toml`` shipped
with the package unless a path is given) into an AssistantConfig.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

from pydantic import ValidationError

from chassist.errors import ConfigurationError
from chassist.schemas.config import AssistantConfig

# Default config directory relative to the chassist package
_CONFIG_DIR = Path(__file__).parent / "config"


def load_assistant_config(config_path: Path | None = None) -> AssistantConfig:
    """Load the assistant configuration from a TOML file.

    Args:
        config_path: Path to a TOML file. Defaults to chassist/config/defaults.toml.

    Returns:
        AssistantConfig with values from the file's [assistant] section.

    Raises:
        ConfigurationError: If the file is missing, is not valid TOML, or
            holds invalid values.
    """
    path = config_path or _CONFIG_DIR / "defaults.toml"
    if not path.exists():
        raise ConfigurationError(f"Assistant config not found: {path}")

    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Invalid TOML in {path}: {exc}") from exc

    section = raw.get("assistant", {})
    if not isinstance(section, dict):
        raise ConfigurationError(f"[assistant] must be a table in {path}")

    try:
        config = AssistantConfig(**section)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid assistant config in {path}: {exc}") from exc

    config.system_prompt = config.system_prompt.strip()
    return config
