"""
Core Data Models for Split Ledger

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging
4. Support the audit trail

DESIGN DECISION: Amounts are Decimal with two fractional digits at the model
boundary. Arithmetic on them happens in integer cents (see
splitledger.allocation.money), never in floats.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Iterator, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ExpenseStatus(str, Enum):
    """
    Expense lifecycle status.

    Only PENDING is produced today; settlement states will be added
    alongside settlement itself.
    """
    PENDING = "PENDING"


class SplitStatus(str, Enum):
    """Split lifecycle status."""
    PENDING = "PENDING"


# =============================================================================
# DIRECTORY MODELS
# =============================================================================

class Member(BaseModel):
    """
    A profile from the member directory.

    A proxy member (a child, a guest) is tracked for consumption but can
    never owe money directly. Their share goes to the guardian, or to the
    payer when no guardian is recorded.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque unique member identifier"
    )
    display_name: str = Field(
        default="",
        max_length=200,
        description="Name shown to the group (not guaranteed unique)"
    )
    is_admin: bool = False
    is_proxy: bool = Field(
        default=False,
        description="True if this member cannot independently owe money"
    )
    guardian_id: Optional[str] = Field(
        default=None,
        description="Member that a proxy's share defaults to"
    )

    @field_validator('guardian_id', mode='before')
    @classmethod
    def blank_guardian_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def guardian_of_record(self) -> Optional[str]:
        """Guardian reference, honoured only for proxies."""
        return self.guardian_id if self.is_proxy else None


class Roster(BaseModel):
    """
    Immutable snapshot of the member directory.

    The allocation engine resolves every member id against a roster
    instead of calling the directory, which keeps it pure.
    """
    model_config = ConfigDict(frozen=True)

    members: tuple[Member, ...] = ()

    def __contains__(self, member_id: object) -> bool:
        return self.get(member_id) is not None

    def __iter__(self) -> Iterator[Member]:
        return iter(self.members)

    def __len__(self) -> int:
        return len(self.members)

    def get(self, member_id) -> Optional[Member]:
        for member in self.members:
            if member.id == member_id:
                return member
        return None

    def responsible_candidates(self) -> list[Member]:
        """Members allowed to bear responsibility for a split (non-proxies)."""
        return [member for member in self.members if not member.is_proxy]


# =============================================================================
# EXPENSE MODELS
# =============================================================================

class Expense(BaseModel):
    """
    A committed shared expense.

    CRITICAL: An Expense is only ever persisted together with its Splits.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique expense ID"
    )
    description: str = Field(
        ...,
        min_length=1,
        description="What the money was spent on"
    )
    total_amount: Annotated[
        Decimal,
        Field(gt=0, decimal_places=2, description="Total amount (required)")
    ]
    payer_id: str = Field(
        ...,
        min_length=1,
        description="Member who paid"
    )
    status: ExpenseStatus = ExpenseStatus.PENDING
    created_at: datetime = Field(
        default_factory=utcnow,
        description="When the expense was recorded"
    )


class Split(BaseModel):
    """
    One consumer's share of an expense.

    Owned by its Expense: deleting the expense deletes its splits.
    """

    expense_id: UUID
    consumer_id: str = Field(
        ...,
        min_length=1,
        description="Member who benefited"
    )
    responsible_id: str = Field(
        ...,
        min_length=1,
        description="Member who must pay this share"
    )
    amount: Annotated[
        Decimal,
        Field(ge=0, decimal_places=2, description="Share of the total")
    ]
    status: SplitStatus = SplitStatus.PENDING


class DraftSplit(BaseModel):
    """
    An in-memory, not yet persisted candidate Split.

    Drafts are immutable; engine operations return new lists.
    """
    model_config = ConfigDict(frozen=True)

    consumer_id: str
    responsible_id: str
    amount: Decimal = Decimal("0.00")


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'sum_mismatch')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage submission validation.

    Stage 1: Schema validation (presence, formats, amounts)
    Stage 2: Directory validation (members exist, no proxy responsibility)
    """

    validated_at: datetime = Field(
        default_factory=utcnow
    )

    schema_valid: bool = Field(
        ...,
        description="Did schema validation pass?"
    )
    directory_valid: bool = Field(
        ...,
        description="Did directory validation pass?"
    )
    is_valid: bool = Field(
        ...,
        description="Overall validation result"
    )

    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    # Warnings don't block but should be shown
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
