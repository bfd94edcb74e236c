"""
Tests for the Google Sheets adapters.

A small in-memory worksheet fake replaces gspread, so no API calls are made.
"""

import asyncio
import pytest
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from splitledger.models.expense import DraftSplit, Expense, Split
from splitledger.orchestrator import ExpenseSubmissionFlow, PersistenceError
from splitledger.services.storage.google_sheets import (
    EXPENSE_COLUMNS,
    PROFILE_COLUMNS,
    SPLIT_COLUMNS,
    GoogleSheetsExpenseStore,
    GoogleSheetsMemberDirectory,
)
from splitledger.services.storage.interface import StorageError


def run(coro):
    return asyncio.run(coro)


class FakeWorksheet:
    def __init__(self, header):
        self.rows = [list(header)]
        self.fail_appends = False
        self.reads = 0

    def get_all_values(self):
        self.reads += 1
        return [list(row) for row in self.rows]

    def append_row(self, row, value_input_option=None):
        if self.fail_appends:
            raise RuntimeError("API quota exceeded")
        self.rows.append(list(row))

    def append_rows(self, rows, value_input_option=None):
        if self.fail_appends:
            raise RuntimeError("API quota exceeded")
        self.rows.extend(list(row) for row in rows)

    def delete_rows(self, index):
        # gspread rows are 1-based
        del self.rows[index - 1]


class FakeSheetsClient:
    def __init__(self):
        self.expenses = FakeWorksheet(EXPENSE_COLUMNS)
        self.splits = FakeWorksheet(SPLIT_COLUMNS)
        self.profiles = FakeWorksheet(PROFILE_COLUMNS)

    def get_expenses_sheet(self):
        return self.expenses

    def get_splits_sheet(self):
        return self.splits

    def get_profiles_sheet(self):
        return self.profiles


@pytest.fixture
def client():
    return FakeSheetsClient()


def make_expense(total="10.00"):
    return Expense(description="Dinner", total_amount=Decimal(total), payer_id="payer")


def make_splits(expense, *amounts):
    return [
        Split(
            expense_id=expense.id,
            consumer_id=f"m{i}",
            responsible_id=f"m{i}",
            amount=Decimal(amount),
        )
        for i, amount in enumerate(amounts)
    ]


class TestMemberDirectory:
    def test_reads_profiles(self, client):
        client.profiles.rows.extend([
            ["u1", "Anil", "TRUE", "FALSE", ""],
            ["kid", "Kid", "false", "true", "u1"],
            ["", "", "", "", ""],
        ])
        members = run(GoogleSheetsMemberDirectory(client).list_members())
        assert [m.id for m in members] == ["u1", "kid"]
        assert members[0].is_admin is True
        assert members[0].guardian_id is None
        assert members[1].is_proxy is True
        assert members[1].guardian_id == "u1"

    def test_malformed_row_fails_without_rereading(self, client):
        client.profiles.rows.append(["u1", "x" * 500, "", "", ""])
        with pytest.raises(PydanticValidationError):
            run(GoogleSheetsMemberDirectory(client).list_members())
        assert client.profiles.reads == 1


class TestExpenseStore:
    def test_round_trip(self, client):
        store = GoogleSheetsExpenseStore(client)
        expense = make_expense()
        run(store.insert_expense(expense))
        run(store.insert_splits(make_splits(expense, "3.34", "3.33", "3.33")))

        loaded = run(store.get_expense(expense.id))
        assert loaded.total_amount == Decimal("10.00")
        assert loaded.created_at == expense.created_at

        splits = run(store.list_splits(expense.id))
        assert [s.amount for s in splits] == [
            Decimal("3.34"), Decimal("3.33"), Decimal("3.33")
        ]

    def test_delete_cascades_to_splits(self, client):
        store = GoogleSheetsExpenseStore(client)
        keep = make_expense("2.00")
        drop = make_expense("4.00")
        for expense, amounts in ((keep, ("1.00", "1.00")), (drop, ("2.00", "2.00"))):
            run(store.insert_expense(expense))
            run(store.insert_splits(make_splits(expense, *amounts)))

        assert run(store.delete_expense(drop.id)) is True

        assert run(store.get_expense(drop.id)) is None
        assert run(store.list_splits(drop.id)) == []
        assert run(store.get_expense(keep.id)) is not None
        assert len(run(store.list_splits(keep.id))) == 2

    def test_delete_missing_expense(self, client):
        store = GoogleSheetsExpenseStore(client)
        assert run(store.delete_expense(uuid4())) is False

    def test_insert_failure_is_storage_error(self, client):
        client.splits.fail_appends = True
        store = GoogleSheetsExpenseStore(client)
        expense = make_expense()
        with pytest.raises(StorageError):
            run(store.insert_splits(make_splits(expense, "10.00")))

    def test_list_expenses_newest_first(self, client):
        store = GoogleSheetsExpenseStore(client)
        first = make_expense("1.00")
        second = make_expense("2.00").model_copy(
            update={"created_at": first.created_at + timedelta(seconds=1)}
        )
        run(store.insert_expense(first))
        run(store.insert_expense(second))
        listed = run(store.list_expenses())
        assert [e.id for e in listed] == [second.id, first.id]


class TestSubmitOnSheets:
    def test_split_failure_leaves_no_expense_row(self, client):
        client.splits.fail_appends = True
        flow = ExpenseSubmissionFlow(expense_store=GoogleSheetsExpenseStore(client))
        draft = [
            DraftSplit(consumer_id="a", responsible_id="a", amount=Decimal("2.50")),
            DraftSplit(consumer_id="b", responsible_id="b", amount=Decimal("2.50")),
        ]

        with pytest.raises(PersistenceError) as exc_info:
            run(flow.submit("Petrol", Decimal("5.00"), "a", draft))

        assert exc_info.value.rolled_back is True
        assert client.expenses.get_all_values() == [EXPENSE_COLUMNS]
        assert client.splits.get_all_values() == [SPLIT_COLUMNS]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
