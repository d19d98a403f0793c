"""
Tests for the storage implementations.

The Google Sheets backend is exercised against an in-memory stand-in for
the gspread worksheet/spreadsheet objects, so no network is needed.
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from financeflow.ledger import MalformedRecordError
from financeflow.models import (
    Account,
    Category,
    PaymentMethod,
    default_account,
)
from financeflow.services.storage import (
    DuplicateError,
    GoogleSheetsLedgerStorage,
    InMemoryLedgerStorage,
    NotFoundError,
    ProtectedRecordError,
    RepositoryError,
)
from financeflow.services.storage.google_sheets import SHEET_COLUMNS


# =============================================================================
# FAKE GSPREAD OBJECTS
# =============================================================================

class FakeWorksheet:
    """Just enough of gspread.Worksheet for the storage layer."""

    def __init__(self, sheet_id: int, header: list[str]):
        self.id = sheet_id
        self.values = [list(header)]
        self.fail_on_append = None

    def get_all_values(self):
        return [list(row) for row in self.values]

    def append_rows(self, rows, value_input_option=None):
        if self.fail_on_append:
            raise self.fail_on_append
        self.values.extend(list(r) for r in rows)

    def batch_update(self, data, value_input_option=None):
        for update in data:
            row_number = int(update["range"].lstrip("A"))
            self.values[row_number - 1] = list(update["values"][0])


class FakeSpreadsheet:
    def __init__(self, sheets: dict[str, FakeWorksheet]):
        self._by_id = {s.id: s for s in sheets.values()}
        self.batch_calls = 0

    def batch_update(self, body):
        self.batch_calls += 1
        for request in body["requests"]:
            rng = request["deleteDimension"]["range"]
            sheet = self._by_id[rng["sheetId"]]
            del sheet.values[rng["startIndex"]:rng["endIndex"]]


class FakeSheetsClient:
    """Stands in for GoogleSheetsClient."""

    def __init__(self):
        self.sheets = {
            kind: FakeWorksheet(idx, columns)
            for idx, (kind, columns) in enumerate(SHEET_COLUMNS.items())
        }
        self.spreadsheet = FakeSpreadsheet(self.sheets)

    def get_sheet(self, kind):
        return self.sheets[kind]

    def get_spreadsheet(self):
        return self.spreadsheet


@pytest.fixture
def sheets_client() -> FakeSheetsClient:
    return FakeSheetsClient()


@pytest.fixture(params=["memory", "sheets"])
def storage(request, sheets_client):
    if request.param == "memory":
        return InMemoryLedgerStorage()
    return GoogleSheetsLedgerStorage(sheets_client)


# =============================================================================
# BEHAVIOUR SHARED BY BOTH BACKENDS
# =============================================================================

class TestTransactionStorage:
    """Transaction reads and writes, run against every backend."""

    def test_insert_and_list(self, storage, make_transaction):
        t = make_transaction(description="Groceries", amount="45.90", payment_method="cash")
        asyncio.run(storage.insert_transactions([t]))

        stored = asyncio.run(storage.list_transactions())
        assert len(stored) == 1
        assert stored[0].id == t.id
        assert stored[0].amount == Decimal("45.90")
        assert stored[0].description == "Groceries"
        assert stored[0].date == t.date
        assert stored[0].transfer_id is None

    def test_insert_many_at_once(self, storage, make_transaction):
        legs = [
            make_transaction(transfer_id="tr-1"),
            make_transaction(type="income", category="transfer", transfer_id="tr-1"),
        ]
        result = asyncio.run(storage.insert_transactions(legs))
        assert [t.id for t in result] == [t.id for t in legs]

        stored = asyncio.run(storage.list_transactions())
        assert {t.transfer_id for t in stored} == {"tr-1"}

    def test_duplicate_in_batch_writes_nothing(self, storage, make_transaction):
        first = make_transaction()
        asyncio.run(storage.insert_transactions([first]))

        with pytest.raises(DuplicateError):
            asyncio.run(storage.insert_transactions([make_transaction(), first]))
        assert len(asyncio.run(storage.list_transactions())) == 1

    def test_delete_transaction(self, storage, make_transaction):
        keep, drop = make_transaction(), make_transaction()
        asyncio.run(storage.insert_transactions([keep, drop]))

        asyncio.run(storage.delete_transaction(drop.id))

        assert [t.id for t in asyncio.run(storage.list_transactions())] == [keep.id]

    def test_delete_many(self, storage, make_transaction):
        records = [make_transaction() for _ in range(4)]
        asyncio.run(storage.insert_transactions(records))

        asyncio.run(storage.delete_transactions([records[0].id, records[2].id]))

        remaining = [t.id for t in asyncio.run(storage.list_transactions())]
        assert remaining == [records[1].id, records[3].id]

    def test_delete_missing_raises(self, storage):
        with pytest.raises(NotFoundError):
            asyncio.run(storage.delete_transaction("nope"))

    def test_delete_many_with_one_missing_deletes_nothing(self, storage, make_transaction):
        t = make_transaction()
        asyncio.run(storage.insert_transactions([t]))
        with pytest.raises(NotFoundError):
            asyncio.run(storage.delete_transactions([t.id, "nope"]))
        assert len(asyncio.run(storage.list_transactions())) == 1


class TestReferenceStorage:
    """Accounts, categories and payment methods, run against every backend."""

    def test_account_crud(self, storage):
        account = Account(id="savings", name="Savings", initial_balance="250.00")
        asyncio.run(storage.insert_account(account))

        updated = Account(id="savings", name="Rainy Day", initial_balance="-10.50")
        asyncio.run(storage.update_account(updated))
        stored = asyncio.run(storage.list_accounts())
        assert stored == [updated]

        asyncio.run(storage.delete_account("savings"))
        assert asyncio.run(storage.list_accounts()) == []

    def test_duplicate_account(self, storage):
        asyncio.run(storage.insert_account(Account(id="cash", name="Cash")))
        with pytest.raises(DuplicateError):
            asyncio.run(storage.insert_account(Account(id="cash", name="Cash")))

    def test_update_missing_account(self, storage):
        with pytest.raises(NotFoundError):
            asyncio.run(storage.update_account(Account(id="ghost", name="Ghost")))

    def test_default_account_cannot_be_deleted(self, storage):
        asyncio.run(storage.insert_account(default_account()))
        with pytest.raises(ProtectedRecordError):
            asyncio.run(storage.delete_account("default"))
        assert len(asyncio.run(storage.list_accounts())) == 1

    def test_category_crud(self, storage):
        category = Category(id="pets", name="Pets", color="#aa00aa")
        asyncio.run(storage.insert_category(category))
        asyncio.run(storage.update_category(Category(id="pets", name="Pet Care", color="#00aa00")))

        stored = asyncio.run(storage.list_categories())
        assert [(c.name, c.color) for c in stored] == [("Pet Care", "#00aa00")]

        asyncio.run(storage.delete_category("pets"))
        assert asyncio.run(storage.list_categories()) == []

    @pytest.mark.parametrize("category_id", ["food", "transfer"])
    def test_builtin_category_protected(self, storage, category_id):
        with pytest.raises(ProtectedRecordError):
            asyncio.run(storage.delete_category(category_id))
        with pytest.raises(ProtectedRecordError):
            asyncio.run(storage.insert_category(Category(id=category_id, name="X")))

    def test_payment_method_crud(self, storage):
        method = PaymentMethod(name="Voucher")
        asyncio.run(storage.insert_payment_method(method))
        asyncio.run(storage.update_payment_method(PaymentMethod(id=method.id, name="Meal Voucher")))

        assert [p.name for p in asyncio.run(storage.list_payment_methods())] == ["Meal Voucher"]

        asyncio.run(storage.delete_payment_method(method.id))
        assert asyncio.run(storage.list_payment_methods()) == []

    def test_builtin_payment_method_protected(self, storage):
        with pytest.raises(ProtectedRecordError):
            asyncio.run(storage.delete_payment_method("cash"))


# =============================================================================
# GOOGLE SHEETS SPECIFICS
# =============================================================================

class TestGoogleSheetsStorage:
    """Row encoding and request shapes of the Sheets backend."""

    def test_amount_stored_as_decimal_string(self, sheets_client, make_transaction):
        storage = GoogleSheetsLedgerStorage(sheets_client)
        t = make_transaction(amount=10.1)
        asyncio.run(storage.insert_transactions([t]))

        row = sheets_client.sheets["transactions"].values[1]
        assert row[SHEET_COLUMNS["transactions"].index("amount")] == "10.1"

    def test_two_legs_in_one_append(self, sheets_client, make_transaction):
        storage = GoogleSheetsLedgerStorage(sheets_client)
        sheet = sheets_client.sheets["transactions"]
        calls = []
        original = sheet.append_rows

        def counting_append(rows, value_input_option=None):
            calls.append(len(rows))
            original(rows, value_input_option)

        sheet.append_rows = counting_append
        asyncio.run(storage.insert_transactions([make_transaction(), make_transaction()]))
        assert calls == [2]

    def test_failed_append_is_repository_error(self, sheets_client, make_transaction):
        storage = GoogleSheetsLedgerStorage(sheets_client)
        sheets_client.sheets["transactions"].fail_on_append = RuntimeError("quota exceeded")

        with pytest.raises(RepositoryError, match="quota exceeded"):
            asyncio.run(storage.insert_transactions([make_transaction()]))

    def test_bulk_delete_is_one_request(self, sheets_client, make_transaction):
        storage = GoogleSheetsLedgerStorage(sheets_client)
        records = [make_transaction() for _ in range(3)]
        asyncio.run(storage.insert_transactions(records))

        asyncio.run(storage.delete_transactions([records[0].id, records[2].id]))

        assert sheets_client.spreadsheet.batch_calls == 1
        assert [r[0] for r in sheets_client.sheets["transactions"].values[1:]] == [records[1].id]

    def test_blank_rows_are_skipped(self, sheets_client):
        sheets_client.sheets["accounts"].values.append(["", "", ""])
        sheets_client.sheets["accounts"].values.append(["cash", "Cash", "5.00"])
        storage = GoogleSheetsLedgerStorage(sheets_client)

        assert [a.id for a in asyncio.run(storage.list_accounts())] == ["cash"]

    def test_row_with_blank_id_fails_loudly(self, sheets_client):
        """A row holding data but no id is not a blank row."""
        sheets_client.sheets["transactions"].values.append(
            ["", "2024-03-01T10:00:00+00:00", "Rent", "1200.00", "expense", "rent",
             "2024-03-01", "", "default", ""]
        )
        storage = GoogleSheetsLedgerStorage(sheets_client)

        with pytest.raises(MalformedRecordError) as exc_info:
            asyncio.run(storage.list_transactions())
        assert exc_info.value.record_id is None
        assert exc_info.value.field == "id"

    def test_row_missing_amount_fails_loudly(self, sheets_client):
        sheets_client.sheets["transactions"].values.append(
            ["t-1", "2024-03-01T10:00:00+00:00", "", "", "expense", "food",
             "2024-03-01", "", "default", ""]
        )
        storage = GoogleSheetsLedgerStorage(sheets_client)

        with pytest.raises(MalformedRecordError) as exc_info:
            asyncio.run(storage.list_transactions())
        assert exc_info.value.record_id == "t-1"
        assert exc_info.value.field == "amount"

    def test_row_with_garbage_amount_fails_loudly(self, sheets_client):
        sheets_client.sheets["transactions"].values.append(
            ["t-2", "2024-03-01T10:00:00+00:00", "", "ten", "expense", "food",
             "2024-03-01", "", "default", ""]
        )
        storage = GoogleSheetsLedgerStorage(sheets_client)

        with pytest.raises(MalformedRecordError):
            asyncio.run(storage.list_transactions())

    def test_short_row_reads_optional_columns_as_blank(self, sheets_client):
        # Sheets drops trailing empty cells
        sheets_client.sheets["transactions"].values.append(
            ["t-3", "2024-03-01T10:00:00+00:00", "Bus", "2.50", "expense",
             "transport", "2024-03-01", "", "default"]
        )
        storage = GoogleSheetsLedgerStorage(sheets_client)

        [t] = asyncio.run(storage.list_transactions())
        assert t.transfer_id is None
        assert t.amount == Decimal("2.50")
        assert t.date == date(2024, 3, 1)
