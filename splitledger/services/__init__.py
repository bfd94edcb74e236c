"""Services package."""

from splitledger.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    CurrentMemberInterface,
    ExpenseStoreInterface,
    FixedCurrentMember,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStore,
    GoogleSheetsMemberDirectory,
    InMemoryAuditStorage,
    InMemoryExpenseStore,
    InMemoryMemberDirectory,
    MemberDirectoryInterface,
    NotFoundError,
    StorageError,
    UnauthenticatedError,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "CurrentMemberInterface",
    "ExpenseStoreInterface",
    "FixedCurrentMember",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStore",
    "GoogleSheetsMemberDirectory",
    "InMemoryAuditStorage",
    "InMemoryExpenseStore",
    "InMemoryMemberDirectory",
    "MemberDirectoryInterface",
    "NotFoundError",
    "StorageError",
    "UnauthenticatedError",
]
