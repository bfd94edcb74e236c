"""Allocation engine package."""

from splitledger.allocation.engine import (
    AllocationError,
    InvalidResponsiblePartyError,
    UnknownMemberError,
    deselect,
    draft_total,
    redistribute,
    resolve_responsible_party,
    select,
    set_responsible_party,
    split_cents,
)
from splitledger.allocation.money import from_cents, parse_amount, to_cents

__all__ = [
    # Errors
    "AllocationError",
    "InvalidResponsiblePartyError",
    "UnknownMemberError",
    # Draft operations
    "deselect",
    "draft_total",
    "redistribute",
    "resolve_responsible_party",
    "select",
    "set_responsible_party",
    "split_cents",
    # Money
    "from_cents",
    "parse_amount",
    "to_cents",
]
