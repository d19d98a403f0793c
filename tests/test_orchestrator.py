"""
Integration tests for the orchestrator flows.

Storage is the in-memory backend, or a subclass of it that writes
transfer legs one at a time and can be told to fail.
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from financeflow.activity import ActivityLogger
from financeflow.ledger import (
    AccountInUseError,
    InvalidAmountError,
    InvalidRecordError,
    InvalidTransferError,
    LedgerError,
    ReservedNameError,
    TransferPartiallyFailedError,
    UnknownCategoryError,
)
from financeflow.models import (
    ActivityEventType,
    Account,
    Category,
    PaymentMethod,
    TransactionType,
)
from financeflow.orchestrator import (
    ReferenceDataFlow,
    TransactionFlow,
    create_app_components,
    load_state,
)
from financeflow.services.storage import (
    DuplicateError,
    InMemoryLedgerStorage,
    ProtectedRecordError,
    RepositoryError,
)
from financeflow.validation import LedgerValidator


class FlakyStorage(InMemoryLedgerStorage):
    """Writes one leg per call and fails on demand."""

    supports_atomic_batch = False

    def __init__(self, *args, fail_insert_call=None, fail_delete=False, **kwargs):
        super().__init__(*args, **kwargs)
        self.insert_calls = 0
        self.fail_insert_call = fail_insert_call
        self.fail_delete = fail_delete

    async def insert_transactions(self, records):
        self.insert_calls += 1
        if self.insert_calls == self.fail_insert_call:
            raise RepositoryError("network down")
        return await super().insert_transactions(records)

    async def delete_transaction(self, transaction_id):
        if self.fail_delete:
            raise RepositoryError("still down")
        return await super().delete_transaction(transaction_id)


def event_types(activity_logger: ActivityLogger) -> list[ActivityEventType]:
    return [e.event_type for e in activity_logger.recent_events]


@pytest.fixture
def activity_logger() -> ActivityLogger:
    return ActivityLogger()


@pytest.fixture
def validator() -> LedgerValidator:
    return LedgerValidator(max_transaction_amount=Decimal("100000.00"))


@pytest.fixture
def memory_storage(accounts) -> InMemoryLedgerStorage:
    return InMemoryLedgerStorage(accounts=accounts)


@pytest.fixture
def flow(memory_storage, validator, activity_logger) -> TransactionFlow:
    return TransactionFlow(memory_storage, validator, activity_logger)


@pytest.fixture
def reference_flow(memory_storage, validator, activity_logger) -> ReferenceDataFlow:
    return ReferenceDataFlow(memory_storage, validator, activity_logger)


class TestLoadState:
    """Tests for loading the session state."""

    def test_creates_default_account_when_missing(self, activity_logger):
        storage = InMemoryLedgerStorage()
        state = asyncio.run(load_state(storage, activity_logger))

        assert [a.id for a in state.accounts] == ["default"]
        assert [a.id for a in asyncio.run(storage.list_accounts())] == ["default"]
        assert ActivityEventType.DEFAULT_ACCOUNT_CREATED in event_types(activity_logger)

    def test_keeps_existing_default_account(self, accounts):
        storage = InMemoryLedgerStorage(
            accounts=[Account(id="default", name="Wallet"), accounts[1]]
        )
        state = asyncio.run(load_state(storage))
        assert state.account("default").name == "Wallet"
        assert len(state.accounts) == 2

    def test_builtins_come_first_then_user_records(self):
        storage = InMemoryLedgerStorage(
            categories=[Category(id="pets", name="Pets")],
            payment_methods=[PaymentMethod(id="pix", name="Pix")],
        )
        state = asyncio.run(load_state(storage, demo_mode=True))

        assert state.categories[0].id == "food"
        assert state.categories[-1].id == "pets"
        assert state.category("transfer") is not None
        assert state.payment_methods[-1].id == "pix"
        assert state.demo_mode

    def test_loads_transactions(self, accounts, make_transaction):
        storage = InMemoryLedgerStorage(
            transactions=[make_transaction(), make_transaction()],
            accounts=accounts,
        )
        state = asyncio.run(load_state(storage))
        assert len(state.transactions) == 2


class TestAddTransaction:
    """Tests for recording a single transaction."""

    def test_add_updates_storage_and_state(self, flow, state, memory_storage, activity_logger):
        t = asyncio.run(flow.add_transaction(
            state,
            amount="19.99",
            type_=TransactionType.EXPENSE,
            category="food",
            date=date(2024, 3, 1),
            account_id="savings",
            payment_method="cash",
            description="Pizza",
        ))

        assert state.transaction(t.id) is not None
        assert [s.id for s in asyncio.run(memory_storage.list_transactions())] == [t.id]
        assert state.summary().account_balances["savings"] == Decimal("980.01")
        assert event_types(activity_logger)[0] == ActivityEventType.TRANSACTION_ADDED

    def test_float_input_keeps_cents(self, flow, state):
        t = asyncio.run(flow.add_transaction(
            state, amount=0.1, type_="income", category="salary",
            date=date(2024, 3, 1), account_id="default",
        ))
        assert t.amount == Decimal("0.1")

    def test_rejected_write_touches_nothing(self, flow, state, memory_storage, activity_logger):
        with pytest.raises(UnknownCategoryError):
            asyncio.run(flow.add_transaction(
                state, amount="5", type_="expense", category="ghost",
                date=date(2024, 3, 1), account_id="default",
            ))

        assert state.transactions == []
        assert asyncio.run(memory_storage.list_transactions()) == []
        assert event_types(activity_logger) == [ActivityEventType.VALIDATION_FAILED]

    def test_invalid_amount(self, flow, state):
        with pytest.raises(InvalidAmountError):
            asyncio.run(flow.add_transaction(
                state, amount="0", type_="expense", category="food",
                date=date(2024, 3, 1), account_id="default",
            ))

    def test_storage_failure_leaves_state_unchanged(self, state, validator, activity_logger):
        storage = FlakyStorage(fail_insert_call=1)
        flow = TransactionFlow(storage, validator, activity_logger)

        with pytest.raises(RepositoryError):
            asyncio.run(flow.add_transaction(
                state, amount="5", type_="expense", category="food",
                date=date(2024, 3, 1), account_id="default",
            ))

        assert state.transactions == []
        assert event_types(activity_logger) == [ActivityEventType.STORAGE_ERROR]


class TestTransfers:
    """Tests for recording and deleting transfers."""

    def test_transfer_moves_money(self, flow, state, memory_storage):
        before = state.summary().overall_balance

        pair = asyncio.run(flow.add_transfer(
            state, "savings", "default", "250.00", date(2024, 3, 1)
        ))

        summary = state.summary()
        assert summary.overall_balance == before
        assert summary.account_balances["savings"] == Decimal("750.00")
        assert summary.account_balances["default"] == Decimal("250.00")
        stored = asyncio.run(memory_storage.list_transactions())
        assert {t.id for t in stored} == {leg.id for leg in pair.legs}

    def test_transfer_to_same_account_rejected(self, flow, state, activity_logger):
        with pytest.raises(InvalidTransferError):
            asyncio.run(flow.add_transfer(state, "default", "default", "1", date(2024, 3, 1)))
        assert state.transactions == []
        assert event_types(activity_logger) == [ActivityEventType.VALIDATION_FAILED]

    def test_transfer_over_ceiling_rejected(self, flow, state):
        with pytest.raises(InvalidAmountError):
            asyncio.run(flow.add_transfer(
                state, "default", "savings", "100000.01", date(2024, 3, 1)
            ))

    def test_sequential_store_writes_both_legs(self, state, validator, activity_logger):
        storage = FlakyStorage()
        flow = TransactionFlow(storage, validator, activity_logger)

        asyncio.run(flow.add_transfer(state, "default", "savings", "10", date(2024, 3, 1)))

        assert storage.insert_calls == 2
        assert len(asyncio.run(storage.list_transactions())) == 2
        assert len(state.transactions) == 2

    def test_first_leg_failure_is_clean(self, state, validator, activity_logger):
        storage = FlakyStorage(fail_insert_call=1)
        flow = TransactionFlow(storage, validator, activity_logger)

        with pytest.raises(RepositoryError) as exc_info:
            asyncio.run(flow.add_transfer(state, "default", "savings", "10", date(2024, 3, 1)))

        assert not isinstance(exc_info.value, TransferPartiallyFailedError)
        assert asyncio.run(storage.list_transactions()) == []
        assert state.transactions == []

    def test_second_leg_failure_is_compensated(self, state, validator, activity_logger):
        storage = FlakyStorage(fail_insert_call=2)
        flow = TransactionFlow(storage, validator, activity_logger)

        with pytest.raises(TransferPartiallyFailedError) as exc_info:
            asyncio.run(flow.add_transfer(state, "default", "savings", "10", date(2024, 3, 1)))

        error = exc_info.value
        assert error.compensated
        assert error.persisted_leg_id
        assert asyncio.run(storage.list_transactions()) == []
        assert state.transactions == []
        assert ActivityEventType.TRANSFER_COMPENSATED in event_types(activity_logger)

    def test_failed_compensation_reports_leftover_leg(self, state, validator, activity_logger):
        storage = FlakyStorage(fail_insert_call=2, fail_delete=True)
        flow = TransactionFlow(storage, validator, activity_logger)

        with pytest.raises(TransferPartiallyFailedError) as exc_info:
            asyncio.run(flow.add_transfer(state, "default", "savings", "10", date(2024, 3, 1)))

        error = exc_info.value
        assert not error.compensated
        [leftover] = asyncio.run(storage.list_transactions())
        assert leftover.id == error.persisted_leg_id
        # the session never sees half a transfer
        assert state.transactions == []
        assert ActivityEventType.TRANSFER_PARTIALLY_FAILED in event_types(activity_logger)

    def test_partial_failure_is_a_ledger_error(self):
        assert issubclass(TransferPartiallyFailedError, LedgerError)
        assert not issubclass(TransferPartiallyFailedError, RepositoryError)

    def test_deleting_one_leg_deletes_both(self, flow, state, memory_storage, activity_logger):
        pair = asyncio.run(flow.add_transfer(state, "default", "savings", "10", date(2024, 3, 1)))
        other = asyncio.run(flow.add_transaction(
            state, amount="1", type_="expense", category="food",
            date=date(2024, 3, 2), account_id="default",
        ))

        deleted = asyncio.run(flow.delete_transaction(state, pair.income_leg.id))

        assert set(deleted) == {pair.expense_leg.id, pair.income_leg.id}
        assert [t.id for t in state.transactions] == [other.id]
        assert [t.id for t in asyncio.run(memory_storage.list_transactions())] == [other.id]
        assert event_types(activity_logger)[0] == ActivityEventType.TRANSFER_DELETED

    def test_delete_plain_transaction(self, flow, state):
        t = asyncio.run(flow.add_transaction(
            state, amount="1", type_="expense", category="food",
            date=date(2024, 3, 2), account_id="default",
        ))
        assert asyncio.run(flow.delete_transaction(state, t.id)) == [t.id]
        assert state.transactions == []

    def test_delete_unknown_transaction(self, flow, state):
        with pytest.raises(LedgerError):
            asyncio.run(flow.delete_transaction(state, "ghost"))


class TestReferenceDataFlow:
    """Tests for managing accounts, categories and payment methods."""

    def test_add_account_uses_slug_id(self, reference_flow, state, memory_storage):
        account = asyncio.run(reference_flow.add_account(state, "Credit Union", "12.34"))

        assert account.id == "credit-union"
        assert account.initial_balance == Decimal("12.34")
        assert state.account("credit-union") is not None
        assert "credit-union" in {a.id for a in asyncio.run(memory_storage.list_accounts())}

    def test_add_account_name_collision(self, reference_flow, state):
        with pytest.raises(DuplicateError):
            asyncio.run(reference_flow.add_account(state, "  SAVINGS "))

    def test_update_account_balance(self, reference_flow, state):
        asyncio.run(reference_flow.update_account(state, "savings", "Savings", "-20"))
        assert state.summary().account_balances["savings"] == Decimal("-20")
        assert state.summary().overdrawn_accounts == ["savings"]

    def test_delete_account_in_use(self, reference_flow, flow, state):
        asyncio.run(flow.add_transaction(
            state, amount="1", type_="expense", category="food",
            date=date(2024, 3, 2), account_id="savings",
        ))
        with pytest.raises(AccountInUseError):
            asyncio.run(reference_flow.delete_account(state, "savings"))
        assert state.account("savings") is not None

    def test_delete_account_resets_filter(self, reference_flow, state):
        state.set_filter("savings", "expense")
        asyncio.run(reference_flow.delete_account(state, "savings"))

        assert state.account("savings") is None
        assert state.filter.account_id == "all"
        assert state.filter.type == "expense"

    def test_default_account_protected(self, reference_flow, state):
        with pytest.raises(ProtectedRecordError):
            asyncio.run(reference_flow.delete_account(state, "default"))

    def test_category_lifecycle(self, reference_flow, flow, state):
        category = asyncio.run(reference_flow.add_category(state, "Pets", "#123456"))
        assert category.id == "pets"

        asyncio.run(flow.add_transaction(
            state, amount="8", type_="expense", category="pets",
            date=date(2024, 3, 2), account_id="default",
        ))
        asyncio.run(reference_flow.update_category(state, "pets", "Pet Care", "#654321"))
        assert state.category_name("pets") == "Pet Care"

        asyncio.run(reference_flow.delete_category(state, "pets"))
        # the transaction stays; its category now dangles
        assert len(state.transactions) == 1
        assert state.category_name("pets") == "Unknown"
        assert state.summary().category_breakdown == []

    def test_builtin_category_protected(self, reference_flow, state):
        with pytest.raises(ProtectedRecordError):
            asyncio.run(reference_flow.delete_category(state, "transfer"))

    def test_payment_method_lifecycle(self, reference_flow, state, activity_logger):
        method = asyncio.run(reference_flow.add_payment_method(state, "Voucher"))
        asyncio.run(reference_flow.update_payment_method(state, method.id, "Meal Voucher"))
        assert state.payment_method_name(method.id) == "Meal Voucher"

        asyncio.run(reference_flow.delete_payment_method(state, method.id))
        assert state.payment_method(method.id) is None
        assert event_types(activity_logger)[:3] == [
            ActivityEventType.PAYMENT_METHOD_DELETED,
            ActivityEventType.PAYMENT_METHOD_SAVED,
            ActivityEventType.PAYMENT_METHOD_SAVED,
        ]

    def test_invalid_color_rejected(self, reference_flow, state, activity_logger):
        with pytest.raises(InvalidRecordError, match="color"):
            asyncio.run(reference_flow.add_category(state, "Pets", "blue"))
        assert event_types(activity_logger) == [ActivityEventType.VALIDATION_FAILED]

    def test_blank_category_name_is_a_ledger_error(self, reference_flow, state, activity_logger):
        """Field errors reach the caller as LedgerError, like every other refusal."""
        with pytest.raises(LedgerError) as exc_info:
            asyncio.run(reference_flow.add_category(state, "   "))
        assert isinstance(exc_info.value, InvalidRecordError)
        assert event_types(activity_logger) == [ActivityEventType.VALIDATION_FAILED]
        assert all(c.id for c in state.categories)

    def test_account_named_all_rejected(self, reference_flow, state, memory_storage, activity_logger):
        before = list(state.accounts)
        with pytest.raises(ReservedNameError):
            asyncio.run(reference_flow.add_account(state, "All"))

        assert state.accounts == before
        assert "all" not in {a.id for a in asyncio.run(memory_storage.list_accounts())}
        assert event_types(activity_logger) == [ActivityEventType.VALIDATION_FAILED]


class TestCreateAppComponents:
    """Tests for the component factory."""

    def test_demo_mode_without_storage(self):
        transaction_flow, reference_flow, storage, activity_logger = create_app_components(
            use_storage=False
        )
        assert isinstance(storage, InMemoryLedgerStorage)
        assert isinstance(transaction_flow, TransactionFlow)
        assert isinstance(reference_flow, ReferenceDataFlow)
        assert isinstance(activity_logger, ActivityLogger)
