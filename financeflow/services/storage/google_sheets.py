"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the remote backend because:
1. Users can look at their own data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (fine for personal use)
- No multi-request transactions. The two legs of a transfer are appended
  in ONE append_rows request, and bulk deletes go out as ONE batch_update,
  so each of those is applied as a unit by the Sheets API.
- Limited query capabilities (we filter in Python)

Each entity type gets its own worksheet. Amounts are stored as decimal
strings with RAW input so Sheets never reinterprets them as floats.
Unlike a display layer, we never skip a row we can't decode: a bad row
is a data bug and raises MalformedRecordError.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from financeflow.config import GoogleSheetsSettings, get_settings
from financeflow.ledger.errors import MalformedRecordError
from financeflow.models.ledger import (
    Account,
    Category,
    PaymentMethod,
    Transaction,
    TransactionType,
)
from financeflow.services.storage.interface import (
    ConnectionError,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    RepositoryError,
    ensure_deletable_account,
    ensure_user_category,
    ensure_user_payment_method,
)


# Column mappings, one list per worksheet
TRANSACTION_COLUMNS = [
    "id",
    "created_at",
    "description",
    "amount",
    "type",
    "category",
    "date",
    "payment_method",
    "account_id",
    "transfer_id",
]

ACCOUNT_COLUMNS = [
    "id",
    "name",
    "initial_balance",
]

CATEGORY_COLUMNS = [
    "id",
    "name",
    "color",
]

PAYMENT_METHOD_COLUMNS = [
    "id",
    "name",
]

SHEET_COLUMNS = {
    "transactions": TRANSACTION_COLUMNS,
    "accounts": ACCOUNT_COLUMNS,
    "categories": CATEGORY_COLUMNS,
    "payment_methods": PAYMENT_METHOD_COLUMNS,
}

# Columns that must be non-empty for a row to be a valid record
REQUIRED_COLUMNS = {
    "transactions": ("id", "created_at", "amount", "type", "category", "date", "account_id"),
    "accounts": ("id", "name", "initial_balance"),
    "categories": ("id", "name", "color"),
    "payment_methods": ("id", "name"),
}

# Reads are safe to retry; a row we can't decode won't get better
read_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_not_exception_type(MalformedRecordError),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and creates missing worksheets with headers.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_sheet(self, kind: str) -> gspread.Worksheet:
        """Get or create the worksheet for one entity kind."""
        title = {
            "transactions": self._settings.transactions_sheet_name,
            "accounts": self._settings.accounts_sheet_name,
            "categories": self._settings.categories_sheet_name,
            "payment_methods": self._settings.payment_methods_sheet_name,
        }[kind]
        columns = SHEET_COLUMNS[kind]

        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet


def _safe_getter(row: list) -> Callable[[int], str]:
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default
    return safe_get


def _check_required(kind: str, row: list) -> None:
    safe_get = _safe_getter(row)
    columns = SHEET_COLUMNS[kind]
    for column in REQUIRED_COLUMNS[kind]:
        if not safe_get(columns.index(column)):
            raise MalformedRecordError(safe_get(0) or None, column)


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of ledger storage.

    One record per row, header in row 1.
    """

    supports_atomic_batch = True
    backend_name = "Google Sheets"

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    # -- row conversion ------------------------------------------------------

    def _transaction_to_row(self, t: Transaction) -> list:
        """Convert a Transaction to a spreadsheet row."""
        return [
            t.id,
            t.created_at.isoformat(),
            t.description,
            str(t.amount),
            t.type.value,
            t.category,
            t.date.isoformat(),
            t.payment_method,
            t.account_id,
            t.transfer_id or "",
        ]

    def _row_to_transaction(self, row: list) -> Transaction:
        """Convert a spreadsheet row to a Transaction."""
        _check_required("transactions", row)
        safe_get = _safe_getter(row)
        try:
            return Transaction(
                id=safe_get(0),
                created_at=datetime.fromisoformat(safe_get(1)),
                description=safe_get(2),
                amount=Decimal(safe_get(3)),
                type=TransactionType(safe_get(4)),
                category=safe_get(5),
                date=date.fromisoformat(safe_get(6)),
                payment_method=safe_get(7),
                account_id=safe_get(8),
                transfer_id=safe_get(9) or None,
            )
        except (ValueError, ArithmeticError) as e:
            raise MalformedRecordError(safe_get(0), "value") from e

    def _account_to_row(self, account: Account) -> list:
        return [account.id, account.name, str(account.initial_balance)]

    def _row_to_account(self, row: list) -> Account:
        _check_required("accounts", row)
        safe_get = _safe_getter(row)
        try:
            return Account(
                id=safe_get(0),
                name=safe_get(1),
                initial_balance=Decimal(safe_get(2)),
            )
        except (ValueError, ArithmeticError) as e:
            raise MalformedRecordError(safe_get(0), "initial_balance") from e

    def _category_to_row(self, category: Category) -> list:
        return [category.id, category.name, category.color]

    def _row_to_category(self, row: list) -> Category:
        _check_required("categories", row)
        safe_get = _safe_getter(row)
        try:
            return Category(id=safe_get(0), name=safe_get(1), color=safe_get(2))
        except ValueError as e:
            raise MalformedRecordError(safe_get(0), "color") from e

    def _payment_method_to_row(self, method: PaymentMethod) -> list:
        return [method.id, method.name]

    def _row_to_payment_method(self, row: list) -> PaymentMethod:
        _check_required("payment_methods", row)
        safe_get = _safe_getter(row)
        return PaymentMethod(id=safe_get(0), name=safe_get(1))

    # -- generic sheet operations --------------------------------------------

    def _data_rows(self, kind: str) -> list[list]:
        """Rows below the header, minus fully blank ones."""
        sheet = self._client.get_sheet(kind)
        return [
            row for row in sheet.get_all_values()[1:]
            if any(str(cell).strip() for cell in row)
        ]

    def _find_row_index(self, sheet, record_id: str) -> Optional[int]:
        """1-based sheet row number for a record id, or None."""
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):  # Row 1 is header
            if row and row[0] == record_id:
                return idx
        return None

    def _list(self, kind: str, decode: Callable[[list], object]) -> list:
        try:
            rows = self._data_rows(kind)
        except RepositoryError:
            raise
        except Exception as e:
            raise RepositoryError(f"Failed to list {kind}: {e}")
        return [decode(row) for row in rows]

    def _append(self, kind: str, record_id: str, row: list) -> None:
        try:
            sheet = self._client.get_sheet(kind)
            if self._find_row_index(sheet, record_id) is not None:
                raise DuplicateError(f"{kind} record already exists: {record_id}")
            sheet.append_rows([row], value_input_option="RAW")
        except RepositoryError:
            raise
        except Exception as e:
            raise RepositoryError(f"Failed to insert into {kind}: {e}")

    def _replace(self, kind: str, record_id: str, row: list) -> None:
        try:
            sheet = self._client.get_sheet(kind)
            idx = self._find_row_index(sheet, record_id)
            if idx is None:
                raise NotFoundError(f"{kind} record not found: {record_id}")
            sheet.batch_update(
                [{"range": f"A{idx}", "values": [row]}],
                value_input_option="RAW",
            )
        except RepositoryError:
            raise
        except Exception as e:
            raise RepositoryError(f"Failed to update {kind}: {e}")

    def _remove(self, kind: str, record_ids: list[str]) -> None:
        """Delete rows by id in a single spreadsheet batch_update."""
        try:
            sheet = self._client.get_sheet(kind)
            indices = []
            for record_id in record_ids:
                idx = self._find_row_index(sheet, record_id)
                if idx is None:
                    raise NotFoundError(f"{kind} record not found: {record_id}")
                indices.append(idx)

            # Bottom-up so earlier deletions don't shift later ones
            requests = [
                {
                    "deleteDimension": {
                        "range": {
                            "sheetId": sheet.id,
                            "dimension": "ROWS",
                            "startIndex": idx - 1,
                            "endIndex": idx,
                        }
                    }
                }
                for idx in sorted(set(indices), reverse=True)
            ]
            self._client.get_spreadsheet().batch_update({"requests": requests})
        except RepositoryError:
            raise
        except Exception as e:
            raise RepositoryError(f"Failed to delete from {kind}: {e}")

    # -- transactions --------------------------------------------------------

    @read_retry
    async def list_transactions(self) -> list[Transaction]:
        return self._list("transactions", self._row_to_transaction)

    async def insert_transactions(
        self,
        records: list[Transaction],
    ) -> list[Transaction]:
        """Append all records with one append_rows request."""
        try:
            sheet = self._client.get_sheet("transactions")
            existing = {row[0] for row in sheet.get_all_values()[1:] if row}
            for record in records:
                if record.id in existing:
                    raise DuplicateError(f"Transaction already exists: {record.id}")
                existing.add(record.id)
            sheet.append_rows(
                [self._transaction_to_row(r) for r in records],
                value_input_option="RAW",
            )
            return list(records)
        except RepositoryError:
            raise
        except Exception as e:
            raise RepositoryError(f"Failed to save transactions: {e}")

    async def delete_transaction(self, transaction_id: str) -> None:
        self._remove("transactions", [transaction_id])

    async def delete_transactions(self, transaction_ids: list[str]) -> None:
        self._remove("transactions", transaction_ids)

    # -- accounts ------------------------------------------------------------

    @read_retry
    async def list_accounts(self) -> list[Account]:
        return self._list("accounts", self._row_to_account)

    async def insert_account(self, account: Account) -> Account:
        self._append("accounts", account.id, self._account_to_row(account))
        return account

    async def update_account(self, account: Account) -> Account:
        self._replace("accounts", account.id, self._account_to_row(account))
        return account

    async def delete_account(self, account_id: str) -> None:
        ensure_deletable_account(account_id)
        self._remove("accounts", [account_id])

    # -- categories ----------------------------------------------------------

    @read_retry
    async def list_categories(self) -> list[Category]:
        return self._list("categories", self._row_to_category)

    async def insert_category(self, category: Category) -> Category:
        ensure_user_category(category.id)
        self._append("categories", category.id, self._category_to_row(category))
        return category

    async def update_category(self, category: Category) -> Category:
        ensure_user_category(category.id)
        self._replace("categories", category.id, self._category_to_row(category))
        return category

    async def delete_category(self, category_id: str) -> None:
        ensure_user_category(category_id)
        self._remove("categories", [category_id])

    # -- payment methods -----------------------------------------------------

    @read_retry
    async def list_payment_methods(self) -> list[PaymentMethod]:
        return self._list("payment_methods", self._row_to_payment_method)

    async def insert_payment_method(self, method: PaymentMethod) -> PaymentMethod:
        ensure_user_payment_method(method.id)
        self._append(
            "payment_methods", method.id, self._payment_method_to_row(method)
        )
        return method

    async def update_payment_method(self, method: PaymentMethod) -> PaymentMethod:
        ensure_user_payment_method(method.id)
        self._replace(
            "payment_methods", method.id, self._payment_method_to_row(method)
        )
        return method

    async def delete_payment_method(self, payment_method_id: str) -> None:
        ensure_user_payment_method(payment_method_id)
        self._remove("payment_methods", [payment_method_id])
