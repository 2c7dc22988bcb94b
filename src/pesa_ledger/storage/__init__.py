"""Ledger storage backends"""

from .base import LedgerStore, PersistenceError
from .json_store import JSONLedgerStore
from .memory_store import InMemoryLedgerStore

__all__ = ['LedgerStore', 'PersistenceError', 'JSONLedgerStore', 'InMemoryLedgerStore']
