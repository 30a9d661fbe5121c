import pytest

from stockscan.core.errors import InvalidQuantity, TransientStoreError
from stockscan.core.inventory_engine import InventoryEngine
from stockscan.core.models import OutcomeSignal, TransactionType

from conftest import COLA, NIVEA


@pytest.fixture
def engine(store, clock):
    return InventoryEngine(store, actor_id="station-1", clock=clock)


class TestReceiveAndRemove:
    def test_receive_on_absent_record_creates_it(self, engine, store):
        assert store.get_inventory(COLA) is None

        outcome = engine.apply(COLA, 5, TransactionType.RECEIVE, "Test Product - Coca Cola")

        assert outcome.previous_quantity == 0
        assert outcome.new_quantity == 5
        assert outcome.applied_quantity == 5
        assert not outcome.clamped
        assert store.get_inventory(COLA).current_quantity == 5

    def test_receive_then_remove_returns_to_start(self, engine, store):
        engine.apply(COLA, 7, "receive")
        engine.apply(COLA, 3, "receive")
        engine.apply(COLA, 3, "remove")
        assert store.get_inventory(COLA).current_quantity == 7

    def test_remove_more_than_stock_floors_at_zero(self, engine, store, clock):
        store.set_inventory(COLA, 3, clock())

        outcome = engine.apply(COLA, 10, TransactionType.REMOVE, "Cola")

        assert outcome.new_quantity == 0
        assert outcome.applied_quantity == 3
        assert outcome.requested_quantity == 10
        assert outcome.clamped
        assert OutcomeSignal.CLAMPED_OPERATION in outcome.signals
        assert store.get_inventory(COLA).current_quantity == 0

    def test_clamped_remove_logs_requested_quantity(self, engine, store, clock):
        store.set_inventory(COLA, 3, clock())
        engine.apply(COLA, 10, TransactionType.REMOVE, "Cola")

        [entry] = store.query_transactions()
        assert entry.type is TransactionType.REMOVE
        assert entry.quantity == 10

    def test_remove_from_absent_record_stays_at_zero(self, engine, store):
        outcome = engine.apply(NIVEA, 1, TransactionType.REMOVE)
        assert outcome.new_quantity == 0
        assert outcome.clamped
        assert store.get_inventory(NIVEA).current_quantity == 0

    def test_each_step_is_floored_separately(self, engine, store):
        # +2, -5, +3 ends at 3, not 0
        engine.apply(COLA, 2, "receive")
        engine.apply(COLA, 5, "remove")
        engine.apply(COLA, 3, "receive")
        assert store.get_inventory(COLA).current_quantity == 3

    def test_successful_action_appends_one_log_entry(self, engine, store, clock):
        outcome = engine.apply(COLA, 4, TransactionType.RECEIVE, "Test Product - Coca Cola")

        [entry] = store.query_transactions()
        assert entry.code == COLA
        assert entry.product_name == "Test Product - Coca Cola"
        assert entry.quantity == 4
        assert entry.timestamp == clock()
        assert entry.actor_id == "station-1"
        assert entry.id is not None
        assert outcome.logged
        assert outcome.transaction.id == entry.id

    def test_missing_product_name_is_logged_as_unknown(self, engine, store):
        engine.apply(COLA, 1, TransactionType.RECEIVE)
        [entry] = store.query_transactions()
        assert entry.product_name == "Unknown Product"

    @pytest.mark.parametrize("quantity", [0, -1, 2.5, "3", True, None])
    def test_invalid_quantity_is_rejected(self, engine, store, quantity):
        with pytest.raises(InvalidQuantity):
            engine.apply(COLA, quantity, TransactionType.RECEIVE)
        assert store.get_inventory(COLA) is None
        assert store.query_transactions() == []


class TestFailures:
    def test_write_failure_logs_nothing(self, engine, store):
        store.fail.add("set_inventory")
        with pytest.raises(TransientStoreError):
            engine.apply(COLA, 5, TransactionType.RECEIVE)
        assert store.query_transactions() == []

    def test_read_failure_is_transient(self, engine, store):
        store.fail.add("get_inventory")
        with pytest.raises(TransientStoreError):
            engine.apply(COLA, 5, TransactionType.RECEIVE)

    def test_log_failure_after_write_reports_unlogged(self, engine, store):
        store.fail.add("append_transaction")

        outcome = engine.apply(COLA, 5, TransactionType.RECEIVE)

        assert outcome.new_quantity == 5
        assert not outcome.logged
        assert outcome.transaction is None
        assert OutcomeSignal.UNLOGGED_MUTATION in outcome.signals
        assert store.get_inventory(COLA).current_quantity == 5


class TestConsult:
    def test_consult_reads_and_logs_zero(self, engine, store, clock):
        store.set_inventory(COLA, 12, clock())

        outcome = engine.apply(COLA, 7, TransactionType.CONSULT, "Cola")

        assert outcome.new_quantity == 12
        assert outcome.previous_quantity == 12
        assert store.get_inventory(COLA).current_quantity == 12
        [entry] = store.query_transactions()
        assert entry.type is TransactionType.CONSULT
        assert entry.quantity == 0

    def test_consult_of_absent_record_is_zero(self, engine):
        outcome = engine.apply(NIVEA, 1, TransactionType.CONSULT)
        assert outcome.new_quantity == 0

    def test_consult_log_failure_fails_the_action(self, engine, store):
        store.fail.add("append_transaction")
        with pytest.raises(TransientStoreError):
            engine.apply(COLA, 1, TransactionType.CONSULT)
