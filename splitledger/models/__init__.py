"""
Data Models Package

This package contains all Pydantic models used in Split Ledger.
All data flowing through the system must conform to these schemas.
"""

from splitledger.models.expense import (
    DraftSplit,
    Expense,
    ExpenseStatus,
    Member,
    Roster,
    Split,
    SplitStatus,
    ValidationIssue,
    ValidationResult,
)
from splitledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Expense models
    "DraftSplit",
    "Expense",
    "ExpenseStatus",
    "Member",
    "Roster",
    "Split",
    "SplitStatus",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
