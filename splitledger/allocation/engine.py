"""
Allocation Engine

Turns a total amount and a set of selected consumers into draft splits
whose amounts add up to the total exactly.

DESIGN DECISION: The draft is a plain list owned by the caller. Every
operation takes the current draft and returns a new one; nothing here
holds state, performs I/O, or logs. Selection order is list order, and
list order decides who receives leftover cents.

Rounding rule (integer cents):
    base     = total_cents // n
    residual = total_cents %  n      (0 <= residual < n)
The first `residual` drafts get base + 1 cent, the rest get base.
$10.00 across three consumers is therefore 3.34, 3.33, 3.33.
"""

from decimal import Decimal
from typing import Optional, Sequence

from splitledger.allocation.money import from_cents, parse_amount, to_cents
from splitledger.models.expense import DraftSplit, Member, Roster


class AllocationError(Exception):
    """Base exception for allocation engine errors."""
    pass


class UnknownMemberError(AllocationError):
    """Referenced member is not in the directory (or not in the draft)."""

    def __init__(self, member_id, message: Optional[str] = None):
        self.member_id = member_id
        super().__init__(message or f"Unknown member: {member_id}")


class InvalidResponsiblePartyError(AllocationError):
    """Responsibility was assigned where it is not allowed."""

    def __init__(self, consumer_id, responsible_id, reason: str):
        self.consumer_id = consumer_id
        self.responsible_id = responsible_id
        self.reason = reason
        super().__init__(
            f"Cannot make {responsible_id} responsible for {consumer_id}: {reason}"
        )


def _require_member(roster: Roster, member_id) -> Member:
    member = roster.get(member_id)
    if member is None:
        raise UnknownMemberError(member_id)
    return member


def resolve_responsible_party(
    member: Member,
    roster: Roster,
    payer_id: Optional[str],
) -> str:
    """
    Default responsible party for a consumer.

    Non-proxies answer for themselves. A proxy goes to its guardian when
    the guardian is a known non-proxy member, otherwise to the payer.
    """
    if not member.is_proxy:
        return member.id

    guardian = roster.get(member.guardian_of_record)
    if guardian is not None and not guardian.is_proxy:
        return guardian.id

    if payer_id is None:
        # No guardian and no payer context: nobody can be chosen safely
        raise UnknownMemberError(
            member.id,
            f"Proxy member {member.id} has no guardian and no payer to fall back on",
        )

    payer = roster.get(payer_id)
    if payer is not None and payer.is_proxy:
        raise InvalidResponsiblePartyError(
            member.id, payer_id, "payer is a proxy member"
        )
    return payer_id


def select(
    consumer_id: str,
    roster: Roster,
    current_payer_id: Optional[str],
    draft: Sequence[DraftSplit],
) -> list[DraftSplit]:
    """
    Add a consumer to the draft.

    Selecting a consumer that is already in the draft returns the draft
    unchanged. The new split starts at zero; call redistribute() to size it.

    Raises:
        UnknownMemberError: consumer is not in the roster, or is a proxy
            with neither guardian nor payer
        InvalidResponsiblePartyError: a proxy would fall back to a payer
            who is also a proxy
    """
    member = _require_member(roster, consumer_id)

    if any(split.consumer_id == consumer_id for split in draft):
        return list(draft)

    new_split = DraftSplit(
        consumer_id=member.id,
        responsible_id=resolve_responsible_party(member, roster, current_payer_id),
        amount=from_cents(0),
    )
    return [*draft, new_split]


def deselect(
    consumer_id: str,
    draft: Sequence[DraftSplit],
) -> list[DraftSplit]:
    """Remove a consumer from the draft. Absent consumers are ignored."""
    return [split for split in draft if split.consumer_id != consumer_id]


def split_cents(total_cents: int, count: int) -> list[int]:
    """Split total_cents into count shares; earlier shares take the leftovers."""
    base, residual = divmod(total_cents, count)
    return [base + 1 if index < residual else base for index in range(count)]


def redistribute(
    total_amount,
    draft: Sequence[DraftSplit],
) -> list[DraftSplit]:
    """
    Size every draft split so that the amounts add up to total_amount.

    A total that is negative or not a two-decimal number is treated as
    zero. Real validation happens on submit.
    """
    if not draft:
        return list(draft)

    amount = parse_amount(total_amount)
    total_cents = to_cents(amount) if amount is not None and amount > 0 else 0

    return [
        split.model_copy(update={"amount": from_cents(cents)})
        for split, cents in zip(draft, split_cents(total_cents, len(draft)))
    ]


def set_responsible_party(
    consumer_id: str,
    responsible_id: str,
    roster: Roster,
    draft: Sequence[DraftSplit],
) -> list[DraftSplit]:
    """
    Override who pays for a proxy consumer's share.

    Raises:
        UnknownMemberError: consumer has no split in the draft
        InvalidResponsiblePartyError: consumer is not a proxy, or the
            target is unknown or is itself a proxy
    """
    if not any(split.consumer_id == consumer_id for split in draft):
        raise UnknownMemberError(
            consumer_id, f"Member {consumer_id} is not part of this expense"
        )

    consumer = roster.get(consumer_id)
    if consumer is None or not consumer.is_proxy:
        raise InvalidResponsiblePartyError(
            consumer_id, responsible_id, "only proxy members can be reassigned"
        )

    target = roster.get(responsible_id)
    if target is None:
        raise InvalidResponsiblePartyError(
            consumer_id, responsible_id, "responsible member does not exist"
        )
    if target.is_proxy:
        raise InvalidResponsiblePartyError(
            consumer_id, responsible_id, "a proxy member cannot be responsible"
        )

    return [
        split.model_copy(update={"responsible_id": target.id})
        if split.consumer_id == consumer_id
        else split
        for split in draft
    ]


def draft_total(draft: Sequence[DraftSplit]) -> Decimal:
    """Sum of draft amounts, computed in cents."""
    return from_cents(sum(to_cents(split.amount) for split in draft))
