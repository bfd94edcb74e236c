"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the production backend; the in-memory backend serves
tests and unconfigured installs.
"""

from splitledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    CurrentMemberInterface,
    ExpenseStoreInterface,
    MemberDirectoryInterface,
    NotFoundError,
    StorageError,
    UnauthenticatedError,
)
from splitledger.services.storage.memory import (
    FixedCurrentMember,
    InMemoryAuditStorage,
    InMemoryExpenseStore,
    InMemoryMemberDirectory,
)
from splitledger.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStore,
    GoogleSheetsMemberDirectory,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "CurrentMemberInterface",
    "ExpenseStoreInterface",
    "MemberDirectoryInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    "UnauthenticatedError",
    # In-memory implementation
    "FixedCurrentMember",
    "InMemoryAuditStorage",
    "InMemoryExpenseStore",
    "InMemoryMemberDirectory",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStore",
    "GoogleSheetsMemberDirectory",
]
