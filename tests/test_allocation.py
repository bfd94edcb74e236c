"""
Tests for the allocation engine.

The engine is pure, so these tests need no storage and no mocks.
"""

import pytest
from decimal import Decimal

from splitledger.allocation import (
    InvalidResponsiblePartyError,
    UnknownMemberError,
    deselect,
    draft_total,
    from_cents,
    parse_amount,
    redistribute,
    resolve_responsible_party,
    select,
    set_responsible_party,
    split_cents,
    to_cents,
)
from splitledger.models.expense import DraftSplit, Member, Roster


@pytest.fixture
def roster():
    return Roster(members=(
        Member(id="payer", display_name="Priya"),
        Member(id="anil", display_name="Anil"),
        Member(id="meera", display_name="Meera", is_admin=True),
        Member(id="kid", display_name="Kid", is_proxy=True, guardian_id="anil"),
        Member(id="guest", display_name="Guest", is_proxy=True),
        Member(id="toddler", display_name="Toddler", is_proxy=True, guardian_id="kid"),
    ))


def make_draft(count: int) -> list[DraftSplit]:
    return [
        DraftSplit(consumer_id=f"m{i}", responsible_id=f"m{i}")
        for i in range(count)
    ]


def cents_of(draft) -> list[int]:
    return [to_cents(split.amount) for split in draft]


class TestMoney:
    """Tests for the fixed-point helpers."""

    def test_parse_amount_accepts_two_decimals(self):
        assert parse_amount("10.5") == Decimal("10.50")
        assert parse_amount(Decimal("3.33")) == Decimal("3.33")
        assert parse_amount(7) == Decimal("7.00")

    def test_parse_amount_rejects_extra_precision(self):
        assert parse_amount("1.005") is None

    def test_parse_amount_rejects_garbage(self):
        assert parse_amount("abc") is None
        assert parse_amount(None) is None
        assert parse_amount(Decimal("NaN")) is None
        assert parse_amount("Infinity") is None
        assert parse_amount(True) is None

    def test_float_input_is_read_via_its_repr(self):
        assert parse_amount(0.1) == Decimal("0.10")

    def test_cents_conversion_is_exact(self):
        assert to_cents(Decimal("10.00")) == 1000
        assert to_cents(Decimal("0.07")) == 7
        assert from_cents(334) == Decimal("3.34")
        assert str(from_cents(0)) == "0.00"

    def test_to_cents_rejects_fractional_cents(self):
        with pytest.raises(ValueError):
            to_cents(Decimal("0.001"))


class TestSelect:
    """Tests for adding consumers to a draft."""

    def test_select_non_proxy_is_own_responsible_party(self, roster):
        draft = select("meera", roster, "payer", [])
        assert draft == [
            DraftSplit(consumer_id="meera", responsible_id="meera", amount=Decimal("0.00"))
        ]

    def test_select_proxy_with_guardian(self, roster):
        draft = select("kid", roster, "payer", [])
        assert draft[0].responsible_id == "anil"

    def test_select_proxy_without_guardian_falls_back_to_payer(self, roster):
        draft = select("guest", roster, "payer", [])
        assert draft[0].responsible_id == "payer"

    def test_select_proxy_whose_guardian_is_a_proxy_falls_back_to_payer(self, roster):
        draft = select("toddler", roster, "payer", [])
        assert draft[0].responsible_id == "payer"

    def test_select_proxy_without_guardian_or_payer(self, roster):
        with pytest.raises(UnknownMemberError):
            select("guest", roster, None, [])

    def test_select_proxy_falling_back_to_proxy_payer(self, roster):
        with pytest.raises(InvalidResponsiblePartyError):
            select("guest", roster, "kid", [])

    def test_select_unknown_member(self, roster):
        draft = select("anil", roster, "payer", [])
        with pytest.raises(UnknownMemberError) as exc_info:
            select("stranger", roster, "payer", draft)
        assert exc_info.value.member_id == "stranger"
        assert len(draft) == 1

    def test_select_is_idempotent_per_consumer(self, roster):
        draft = select("anil", roster, "payer", [])
        again = select("anil", roster, "payer", draft)
        assert again == draft

    def test_select_keeps_selection_order(self, roster):
        draft = []
        for member_id in ["meera", "payer", "anil"]:
            draft = select(member_id, roster, "payer", draft)
        assert [s.consumer_id for s in draft] == ["meera", "payer", "anil"]

    def test_select_does_not_mutate_input(self, roster):
        original = select("anil", roster, "payer", [])
        select("meera", roster, "payer", original)
        assert len(original) == 1

    def test_guardian_on_non_proxy_is_ignored(self):
        roster = Roster(members=(
            Member(id="a"),
            Member(id="b", guardian_id="a"),
        ))
        assert resolve_responsible_party(roster.get("b"), roster, "a") == "b"


class TestDeselect:
    """Tests for removing consumers."""

    def test_deselect_removes_consumer(self, roster):
        draft = select("anil", roster, "payer", [])
        draft = select("meera", roster, "payer", draft)
        draft = deselect("anil", draft)
        assert [s.consumer_id for s in draft] == ["meera"]

    def test_deselect_absent_consumer_is_noop(self, roster):
        draft = select("anil", roster, "payer", [])
        assert deselect("meera", draft) == draft

    def test_deselect_from_empty_draft(self):
        assert deselect("anil", []) == []


class TestRedistribute:
    """Tests for sizing split amounts."""

    def test_ten_dollars_three_ways(self, roster):
        draft = []
        for member_id in ["payer", "anil", "meera"]:
            draft = select(member_id, roster, "payer", draft)
        draft = redistribute(Decimal("10.00"), draft)
        assert [s.amount for s in draft] == [
            Decimal("3.34"), Decimal("3.33"), Decimal("3.33")
        ]
        assert draft_total(draft) == Decimal("10.00")

    def test_residual_goes_to_earliest_selected(self):
        draft = redistribute(Decimal("1.03"), make_draft(4))
        assert cents_of(draft) == [26, 26, 26, 25]

    def test_even_split_has_no_residual(self):
        draft = redistribute(Decimal("9.00"), make_draft(3))
        assert cents_of(draft) == [300, 300, 300]

    def test_zero_total_zeroes_all(self):
        draft = make_draft(3)
        draft = redistribute(Decimal("5.00"), draft)
        draft = redistribute(Decimal("0"), draft)
        assert cents_of(draft) == [0, 0, 0]

    def test_empty_draft_unchanged(self):
        assert redistribute(Decimal("10.00"), []) == []

    @pytest.mark.parametrize("bad_total", [Decimal("-5.00"), "abc", "1.234", None])
    def test_invalid_total_treated_as_zero(self, bad_total):
        draft = redistribute(Decimal("5.00"), make_draft(2))
        draft = redistribute(bad_total, draft)
        assert cents_of(draft) == [0, 0]

    def test_fewer_cents_than_consumers(self):
        draft = redistribute(Decimal("0.02"), make_draft(5))
        assert cents_of(draft) == [1, 1, 0, 0, 0]

    def test_preserves_responsible_party(self, roster):
        draft = select("kid", roster, "payer", [])
        draft = redistribute(Decimal("4.00"), draft)
        assert draft[0].responsible_id == "anil"
        assert draft[0].amount == Decimal("4.00")

    def test_deterministic(self):
        draft = make_draft(7)
        first = redistribute(Decimal("100.00"), draft)
        second = redistribute(Decimal("100.00"), draft)
        assert first == second
        assert redistribute(Decimal("100.00"), first) == first

    def test_sum_invariant_and_remainder_bound(self):
        """Every consumer count from 1 to 50 over a spread of totals."""
        totals = list(range(0, 301)) + list(range(301, 100000, 997)) + [99999, 100000]
        for count in range(1, 51):
            draft = make_draft(count)
            for total_cents in totals:
                amounts = cents_of(redistribute(from_cents(total_cents), draft))
                assert sum(amounts) == total_cents
                assert max(amounts) - min(amounts) <= 1

    @pytest.mark.slow
    def test_split_cents_every_total(self):
        """Every consumer count from 1 to 50 against every total up to $1000."""
        for count in range(1, 51):
            for total_cents in range(0, 100001):
                shares = split_cents(total_cents, count)
                assert len(shares) == count
                assert sum(shares) == total_cents
                assert shares[0] - shares[-1] <= 1
                # Non-increasing: leftovers go to the earliest selections
                assert shares == sorted(shares, reverse=True)


class TestSetResponsibleParty:
    """Tests for reassigning who pays a proxy's share."""

    def test_reassign_proxy_to_other_member(self, roster):
        draft = select("kid", roster, "payer", [])
        draft = set_responsible_party("kid", "meera", roster, draft)
        assert draft[0].responsible_id == "meera"

    def test_reassign_keeps_amount_and_other_splits(self, roster):
        draft = select("anil", roster, "payer", [])
        draft = select("guest", roster, "payer", draft)
        draft = redistribute(Decimal("3.01"), draft)
        updated = set_responsible_party("guest", "anil", roster, draft)
        assert updated[0] == draft[0]
        assert updated[1].amount == draft[1].amount
        assert updated[1].responsible_id == "anil"

    def test_rejects_proxy_target(self, roster):
        draft = select("guest", roster, "payer", [])
        with pytest.raises(InvalidResponsiblePartyError):
            set_responsible_party("guest", "kid", roster, draft)
        assert draft[0].responsible_id == "payer"

    def test_rejects_non_proxy_consumer(self, roster):
        draft = select("anil", roster, "payer", [])
        with pytest.raises(InvalidResponsiblePartyError):
            set_responsible_party("anil", "meera", roster, draft)

    def test_rejects_unknown_target(self, roster):
        draft = select("kid", roster, "payer", [])
        with pytest.raises(InvalidResponsiblePartyError):
            set_responsible_party("kid", "stranger", roster, draft)

    def test_consumer_not_in_draft(self, roster):
        with pytest.raises(UnknownMemberError):
            set_responsible_party("kid", "anil", roster, [])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
