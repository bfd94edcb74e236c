"""
In-Memory Storage

Process-local implementations of the storage interfaces. Used by the
tests and as the fallback when Google Sheets is not configured.

InMemoryExpenseStore can be told to fail on the next insert so the
rollback path of a submission can be exercised.
"""

from typing import Iterable, Optional
from uuid import UUID

from splitledger.models.audit import AuditEvent
from splitledger.models.expense import Expense, Member, Split
from splitledger.services.storage.interface import (
    AuditStorageInterface,
    CurrentMemberInterface,
    ExpenseStoreInterface,
    MemberDirectoryInterface,
    NotFoundError,
    StorageError,
    UnauthenticatedError,
)


class InMemoryMemberDirectory(MemberDirectoryInterface):
    def __init__(self, members: Iterable[Member] = ()):
        self._members = list(members)

    async def list_members(self) -> list[Member]:
        return list(self._members)


class FixedCurrentMember(CurrentMemberInterface):
    """Current member fixed at construction. None means signed out."""

    def __init__(self, member_id: Optional[str] = None):
        self._member_id = member_id

    async def current_member_id(self) -> str:
        if not self._member_id:
            raise UnauthenticatedError("No member is signed in")
        return self._member_id


class InMemoryExpenseStore(ExpenseStoreInterface):
    """Dict-backed expense store with failure injection."""

    def __init__(self):
        self._expenses: dict[UUID, Expense] = {}
        self._splits: list[Split] = []
        self.fail_insert_expense: Optional[Exception] = None
        self.fail_insert_splits: Optional[Exception] = None
        self.fail_delete_expense: Optional[Exception] = None
        self.write_count = 0

    async def insert_expense(self, expense: Expense) -> UUID:
        if self.fail_insert_expense is not None:
            raise StorageError(f"Failed to save expense: {self.fail_insert_expense}")
        self.write_count += 1
        self._expenses[expense.id] = expense
        return expense.id

    async def insert_splits(self, splits: list[Split]) -> None:
        if self.fail_insert_splits is not None:
            raise StorageError(f"Failed to save splits: {self.fail_insert_splits}")
        for split in splits:
            if split.expense_id not in self._expenses:
                raise NotFoundError(f"Expense not found: {split.expense_id}")
        self.write_count += 1
        self._splits.extend(splits)

    async def delete_expense(self, expense_id: UUID) -> bool:
        if self.fail_delete_expense is not None:
            raise StorageError(f"Failed to delete expense: {self.fail_delete_expense}")
        self.write_count += 1
        self._splits = [s for s in self._splits if s.expense_id != expense_id]
        return self._expenses.pop(expense_id, None) is not None

    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        return self._expenses.get(expense_id)

    async def list_splits(self, expense_id: UUID) -> list[Split]:
        return [s for s in self._splits if s.expense_id == expense_id]

    async def list_expenses(self, limit: int = 100) -> list[Expense]:
        expenses = sorted(
            self._expenses.values(), key=lambda e: e.created_at, reverse=True
        )
        return expenses[:limit]


class InMemoryAuditStorage(AuditStorageInterface):
    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self.events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events
