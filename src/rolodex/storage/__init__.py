from .base import ContactStore, EventStore, StoreError, StoreReadError, StoreWriteError
from .contacts import SqliteContactStore
from .db import initialize_database
from .events import SqliteEventStore

__all__ = [
    "ContactStore",
    "EventStore",
    "SqliteContactStore",
    "SqliteEventStore",
    "StoreError",
    "StoreReadError",
    "StoreWriteError",
    "initialize_database",
]
