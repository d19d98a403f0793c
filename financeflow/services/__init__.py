"""Services package."""

from financeflow.services.storage import (
    ConnectionError,
    DuplicateError,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    NotFoundError,
    ProtectedRecordError,
    RepositoryError,
)

__all__ = [
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
    "InMemoryLedgerStorage",
    "LedgerStorageInterface",
    "NotFoundError",
    "ProtectedRecordError",
    "RepositoryError",
]
