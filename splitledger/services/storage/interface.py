"""
Abstract Storage Interface

DESIGN DECISION: We define abstract interfaces for everything the core
reads from or writes to. This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep the allocation logic decoupled from storage implementation

The member directory and session are owned by other systems; we only
read them. The expense store only needs insert, read and the delete used
to undo a half-finished save.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from splitledger.models.audit import AuditEvent
from splitledger.models.expense import Expense, Member, Split


class MemberDirectoryInterface(ABC):
    """Read-only view over member profiles."""

    @abstractmethod
    async def list_members(self) -> list[Member]:
        """
        List every member of the group.

        Returns:
            Members in directory order

        Raises:
            StorageError: If the directory cannot be read
        """
        pass


class CurrentMemberInterface(ABC):
    """Resolves the member behind the current session."""

    @abstractmethod
    async def current_member_id(self) -> str:
        """
        Raises:
            UnauthenticatedError: If there is no signed-in member
        """
        pass


class ExpenseStoreInterface(ABC):
    """
    Abstract interface for expense storage operations.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def insert_expense(self, expense: Expense) -> UUID:
        """
        Save an expense row.

        Returns:
            The stored expense's ID

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def insert_splits(self, splits: list[Split]) -> None:
        """
        Save all splits of one expense.

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: UUID) -> bool:
        """
        Delete an expense and every split that references it.

        Returns:
            True if the expense existed
        """
        pass

    @abstractmethod
    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        """Retrieve an expense by its ID, or None."""
        pass

    @abstractmethod
    async def list_splits(self, expense_id: UUID) -> list[Split]:
        """List splits for an expense in insertion order."""
        pass

    @abstractmethod
    async def list_expenses(self, limit: int = 100) -> list[Expense]:
        """List expenses, newest first."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one expense submission).

        Returns:
            List of related events in chronological order
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class UnauthenticatedError(Exception):
    """No signed-in member for the current session."""
    pass
