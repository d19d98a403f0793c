"""
Storage Services Package

Provides the abstract ledger storage interface and its implementations:
Google Sheets as the remote backend, and an in-memory store for demo mode.
"""

from financeflow.services.storage.interface import (
    ConnectionError,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    ProtectedRecordError,
    RepositoryError,
)
from financeflow.services.storage.in_memory import InMemoryLedgerStorage
from financeflow.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
)

__all__ = [
    # Interface
    "LedgerStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "ProtectedRecordError",
    "RepositoryError",
    # Implementations
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
    "InMemoryLedgerStorage",
]
