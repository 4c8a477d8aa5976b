"""Purchase history store and persistence."""

from restock.history.repository import HistoryFileError, load_history, save_history
from restock.history.store import merge, sync, unsynced_order_ids

__all__ = [
    "HistoryFileError",
    "load_history",
    "save_history",
    "merge",
    "sync",
    "unsynced_order_ids",
]
