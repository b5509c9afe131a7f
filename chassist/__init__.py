"""chassist: ClickHouse assistant response-stream pipeline."""

__version__ = "0.1.0"
