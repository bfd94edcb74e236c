"""
Main Orchestrator for Split Ledger

This module ties together the directory, the allocation engine and the
expense store, and defines the end-to-end flow for adding an expense:

    start draft → select/deselect consumers → redistribute →
    reassign proxies → submit

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is written unless the whole submission validates
- An expense is never left in storage without all of its splits
- Every submission is audited when an audit logger is configured

The draft itself is owned by the caller. The orchestrator only hands out
the starting draft and accepts the finished one.
"""

from typing import Optional, Sequence
from uuid import UUID

import structlog
from pydantic import BaseModel, Field

from splitledger.allocation import select
from splitledger.allocation.money import parse_amount
from splitledger.audit import AuditLogger, create_correlation_id
from splitledger.models.expense import DraftSplit, Expense, Roster, Split, ValidationResult
from splitledger.services.storage import (
    CurrentMemberInterface,
    ExpenseStoreInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStore,
    GoogleSheetsMemberDirectory,
    InMemoryExpenseStore,
    MemberDirectoryInterface,
)
from splitledger.validation import SubmissionValidator


class SubmissionError(Exception):
    """Base exception for expense submission errors."""
    pass


class ValidationError(SubmissionError):
    """Submission rejected before anything was written."""

    def __init__(self, result: ValidationResult, message: Optional[str] = None):
        self.result = result
        errors = [i.message for i in result.issues if i.severity == "error"]
        super().__init__(message or "; ".join(errors) or "Invalid submission")


class PersistenceError(SubmissionError):
    """
    The store failed while saving.

    rolled_back is False only when undoing a partial save also failed;
    the expense named by expense_id then needs manual cleanup.
    """

    def __init__(
        self,
        cause: BaseException,
        expense_id: Optional[UUID] = None,
        rolled_back: bool = True,
    ):
        self.cause = cause
        self.expense_id = expense_id
        self.rolled_back = rolled_back
        state = "rolled back" if rolled_back else "NOT rolled back"
        super().__init__(f"Failed to save expense ({state}): {cause}")


class ExpenseDraftContext(BaseModel):
    """Starting point for a new expense form."""

    payer_id: str
    roster: Roster
    splits: list[DraftSplit] = Field(default_factory=list)
    correlation_id: UUID = Field(default_factory=create_correlation_id)


class ExpenseSubmissionFlow:
    """
    Orchestrates adding an expense.

    Flow:
    1. Start → payer is the signed-in member, pre-selected as a consumer
    2. Draft → caller runs the allocation engine on its own draft
    3. Submit → validate, then write expense and splits as one unit

    Storage offers no transaction, so step 3 is a two-step write with a
    compensating delete if the second step fails.
    """

    def __init__(
        self,
        expense_store: ExpenseStoreInterface,
        directory: Optional[MemberDirectoryInterface] = None,
        current_member: Optional[CurrentMemberInterface] = None,
        validator: Optional[SubmissionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = expense_store
        self._directory = directory
        self._current_member = current_member
        self._validator = validator or SubmissionValidator()
        self._audit_logger = audit_logger

    async def load_roster(self) -> Roster:
        """Snapshot the member directory."""
        if self._directory is None:
            raise SubmissionError("Member directory is not configured")
        return Roster(members=tuple(await self._directory.list_members()))

    async def start_draft(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> ExpenseDraftContext:
        """
        Begin a new expense paid by the signed-in member.

        Raises:
            UnauthenticatedError: If nobody is signed in
            UnknownMemberError: If the signed-in member has no profile
        """
        if self._current_member is None:
            raise SubmissionError("Current member resolution is not configured")
        correlation_id = correlation_id or create_correlation_id()

        payer_id = await self._current_member.current_member_id()
        roster = await self.load_roster()
        splits = select(payer_id, roster, payer_id, [])

        if self._audit_logger:
            await self._audit_logger.log_draft_started(
                payer_id=payer_id,
                member_count=len(roster),
                correlation_id=correlation_id,
            )

        return ExpenseDraftContext(
            payer_id=payer_id,
            roster=roster,
            splits=splits,
            correlation_id=correlation_id,
        )

    async def submit(
        self,
        description: str,
        total_amount,
        payer_id: str,
        finalized_splits: Sequence[DraftSplit],
        correlation_id: Optional[UUID] = None,
        roster: Optional[Roster] = None,
    ) -> UUID:
        """
        Validate and save an expense with its splits.

        Args:
            roster: Directory snapshot to check members against. Loaded
                from the directory when omitted and one is configured.

        Returns:
            ID of the new expense

        Raises:
            ValidationError: Nothing was written
            PersistenceError: The store failed; partial writes were undone
                unless rolled_back is False

        NOTE: Not idempotent. Retrying after a save that succeeded but was
        reported as failed creates a second expense.
        """
        correlation_id = correlation_id or create_correlation_id()

        if roster is None and self._directory is not None:
            try:
                roster = await self.load_roster()
            except Exception as e:
                if self._audit_logger:
                    await self._audit_logger.log_error(
                        error_type="directory_unavailable",
                        error_message=str(e),
                        correlation_id=correlation_id,
                    )
                raise PersistenceError(e) from e

        result = self._validator.validate(
            description=description,
            total_amount=total_amount,
            payer_id=payer_id,
            splits=finalized_splits,
            roster=roster,
        )
        if not result.is_valid:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    issues=[
                        {"field": i.field, "type": i.issue_type, "message": i.message}
                        for i in result.issues
                    ],
                    correlation_id=correlation_id,
                )
            raise ValidationError(result)

        expense = Expense(
            description=description,
            total_amount=parse_amount(total_amount),
            payer_id=payer_id,
        )
        splits = [
            Split(
                expense_id=expense.id,
                consumer_id=draft.consumer_id,
                responsible_id=draft.responsible_id,
                amount=parse_amount(draft.amount),
            )
            for draft in finalized_splits
        ]

        if self._audit_logger:
            await self._audit_logger.log_expense_submitted(
                expense_id=expense.id,
                payer_id=payer_id,
                amount=str(expense.total_amount),
                split_count=len(splits),
                correlation_id=correlation_id,
            )

        await self._commit(expense, splits, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_expense_saved(
                expense_id=expense.id,
                amount=str(expense.total_amount),
                split_count=len(splits),
                correlation_id=correlation_id,
            )

        return expense.id

    async def _commit(
        self,
        expense: Expense,
        splits: list[Split],
        correlation_id: UUID,
    ) -> None:
        stage = "expense"
        try:
            await self._store.insert_expense(expense)
            stage = "splits"
            await self._store.insert_splits(splits)
        except Exception as e:
            if self._audit_logger:
                await self._audit_logger.log_save_failed(
                    expense_id=expense.id,
                    stage=stage,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            if stage == "splits" or await self._may_exist(expense.id):
                await self._rollback(expense.id, e, correlation_id)
            raise PersistenceError(e, expense_id=expense.id) from e

    async def _may_exist(self, expense_id: UUID) -> bool:
        """Whether a failed expense insert could still have written the row."""
        try:
            return await self._store.get_expense(expense_id) is not None
        except Exception:
            # Unknown state; compensate anyway
            return True

    async def _rollback(
        self,
        expense_id: UUID,
        cause: Exception,
        correlation_id: UUID,
    ) -> None:
        """Delete a partially saved expense (cascades to its splits)."""
        try:
            await self._store.delete_expense(expense_id)
        except Exception as rollback_error:
            if self._audit_logger:
                await self._audit_logger.log_rollback_failed(
                    expense_id=expense_id,
                    error_message=str(rollback_error),
                    correlation_id=correlation_id,
                )
            raise PersistenceError(
                cause, expense_id=expense_id, rolled_back=False
            ) from rollback_error

        if self._audit_logger:
            await self._audit_logger.log_save_rolled_back(
                expense_id=expense_id,
                correlation_id=correlation_id,
            )


def create_app_components(
    use_storage: bool = True,
    current_member: Optional[CurrentMemberInterface] = None,
) -> tuple[ExpenseSubmissionFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False to run on in-memory storage.
        current_member: Session adapter supplied by the host application.

    Returns:
        (submission_flow, sheets_client)
    """
    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            flow = ExpenseSubmissionFlow(
                expense_store=GoogleSheetsExpenseStore(sheets_client),
                directory=GoogleSheetsMemberDirectory(sheets_client),
                current_member=current_member,
                audit_logger=AuditLogger(GoogleSheetsAuditStorage(sheets_client)),
            )
            return flow, sheets_client
        except Exception as e:
            # Storage not configured - continue without it
            structlog.get_logger("splitledger").warning(
                "storage_not_configured", error=str(e)
            )

    flow = ExpenseSubmissionFlow(
        expense_store=InMemoryExpenseStore(),
        directory=None,
        current_member=current_member,
        audit_logger=AuditLogger(),  # Local-only logging
    )
    return flow, None
