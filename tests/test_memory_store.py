import threading

import pytest

from stockscan.core.models import TransactionRecord, TransactionType
from stockscan.store.base import INVENTORY, PRODUCTS, TRANSACTIONS, apply_query
from stockscan.store.memory import MemoryStore

from conftest import COLA, NIVEA, NUTELLA, demo_products


def record(code, kind, quantity, timestamp):
    return TransactionRecord(code=code, product_name="p", type=kind,
                             quantity=quantity, timestamp=timestamp)


class TestMemoryStore:
    def test_products_round_trip_through_documents(self):
        store = MemoryStore(products=demo_products())
        product = store.get_product(NUTELLA)
        assert product.name == "Test Product - Nutella"
        assert product.brand == "Ferrero"
        assert product.category == "Food"
        assert store.get_product("123") is None

    def test_inventory_is_absent_until_written(self):
        store = MemoryStore()
        assert store.get_inventory(COLA) is None
        store.set_inventory(COLA, 4, 10.0)
        stored = store.get_inventory(COLA)
        assert stored.current_quantity == 4
        assert stored.last_updated == 10.0

    def test_update_inventory_returns_previous_and_updated(self):
        store = MemoryStore()
        previous, updated = store.update_inventory(COLA, lambda q: q + 3, 1.0)
        assert previous.current_quantity == 0
        assert updated.current_quantity == 3

    def test_negative_quantity_is_refused(self):
        store = MemoryStore()
        with pytest.raises(ValueError):
            store.set_inventory(COLA, -1, 1.0)
        assert store.get_inventory(COLA) is None

    def test_concurrent_updates_are_not_lost(self):
        store = MemoryStore()

        def bump():
            for _ in range(200):
                store.update_inventory(COLA, lambda q: q + 1, 1.0)

        workers = [threading.Thread(target=bump) for _ in range(4)]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()
        assert store.get_inventory(COLA).current_quantity == 800

    def test_transactions_get_ids_and_can_be_queried(self):
        store = MemoryStore()
        first = store.append_transaction(record(COLA, TransactionType.RECEIVE, 5, 1.0))
        store.append_transaction(record(NIVEA, TransactionType.REMOVE, 1, 2.0))
        store.append_transaction(record(COLA, TransactionType.CONSULT, 0, 3.0))

        assert first.id
        latest = store.query_transactions(order_by=("timestamp", "desc"), limit=2)
        assert [t.timestamp for t in latest] == [3.0, 2.0]
        receives = store.query_transactions(filters=[("type", "==", "receive")])
        assert [t.code for t in receives] == [COLA]

    def test_count_per_collection(self):
        store = MemoryStore(products=demo_products())
        store.set_inventory(COLA, 1, 1.0)
        assert store.count(PRODUCTS) == 3
        assert store.count(INVENTORY) == 1
        assert store.count(TRANSACTIONS) == 0
        with pytest.raises(ValueError):
            store.count("users")


class TestApplyQuery:
    DOCS = [
        {"gtin": "a", "currentQuantity": 5},
        {"gtin": "b", "currentQuantity": 0},
        {"gtin": "c"},
        {"gtin": "d", "currentQuantity": 12},
    ]

    def test_filter_excludes_missing_fields(self):
        rows = apply_query(self.DOCS, filters=[("currentQuantity", ">=", 0)])
        assert [r["gtin"] for r in rows] == ["a", "b", "d"]

    def test_order_and_limit(self):
        rows = apply_query(self.DOCS, order_by=("currentQuantity", "desc"), limit=2)
        assert [r["gtin"] for r in rows] == ["d", "a"]

    def test_unknown_operator_is_rejected(self):
        with pytest.raises(ValueError):
            apply_query(self.DOCS, filters=[("currentQuantity", "~", 1)])

    def test_bad_direction_is_rejected(self):
        with pytest.raises(ValueError):
            apply_query(self.DOCS, order_by=("currentQuantity", "up"))
