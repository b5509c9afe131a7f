"""Chat history persistence layer.

Provides SQLite-backed storage for chat threads and messages, with
retention cleanup.
"""

from chassist.persistence.database import close_db, init_db
from chassist.persistence.history import ANY_CONNECTION, ChatHistoryStore

__all__ = [
    "ANY_CONNECTION",
    "ChatHistoryStore",
    "close_db",
    "init_db",
]
