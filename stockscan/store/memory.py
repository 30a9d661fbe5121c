# stockscan/store/memory.py
"""In-process store, used offline and in tests."""
import logging
import threading
import uuid
from typing import Callable, Dict, List, Optional, Tuple

from stockscan.core.models import InventoryRecord, Product, TransactionRecord
from stockscan.store.base import (COLLECTIONS, INVENTORY, PRODUCTS, TRANSACTIONS,
                                  InventoryStore, apply_query)


class MemoryStore(InventoryStore):
    def __init__(self, products=None):
        self.logger = logging.getLogger(__name__)
        self._lock = threading.RLock()
        self._collections: Dict[str, Dict[str, dict]] = {name: {} for name in COLLECTIONS}
        for product in products or ():
            self.put_product(product)

    def get_product(self, code: str) -> Optional[Product]:
        with self._lock:
            doc = self._collections[PRODUCTS].get(code)
        return Product.from_document(code, doc) if doc is not None else None

    def put_product(self, product: Product) -> None:
        with self._lock:
            self._collections[PRODUCTS][product.code] = product.to_document()

    def get_inventory(self, code: str) -> Optional[InventoryRecord]:
        with self._lock:
            doc = self._collections[INVENTORY].get(code)
        return InventoryRecord.from_document(code, doc) if doc is not None else None

    def set_inventory(self, code: str, quantity: int, timestamp: float) -> InventoryRecord:
        record = InventoryRecord(code=code, current_quantity=quantity, last_updated=timestamp)
        with self._lock:
            self._collections[INVENTORY][code] = record.to_document()
        return record

    def update_inventory(self, code: str, compute: Callable[[int], int],
                         timestamp: float) -> Tuple[InventoryRecord, InventoryRecord]:
        # The lock is re-entrant, so the base read-then-write runs as one unit here.
        with self._lock:
            return super().update_inventory(code, compute, timestamp)

    def append_transaction(self, record: TransactionRecord) -> TransactionRecord:
        doc_id = uuid.uuid4().hex
        with self._lock:
            self._collections[TRANSACTIONS][doc_id] = record.to_document()
        return TransactionRecord.from_document(doc_id, record.to_document())

    def query_inventory(self, filters=None, order_by=None, limit=None) -> List[InventoryRecord]:
        with self._lock:
            docs = [dict(doc, _id=key) for key, doc in self._collections[INVENTORY].items()]
        return [InventoryRecord.from_document(doc["_id"], doc)
                for doc in apply_query(docs, filters, order_by, limit)]

    def query_transactions(self, filters=None, order_by=None, limit=None) -> List[TransactionRecord]:
        with self._lock:
            # insertion order is append order
            docs = [dict(doc, _id=key) for key, doc in self._collections[TRANSACTIONS].items()]
        return [TransactionRecord.from_document(doc["_id"], doc)
                for doc in apply_query(docs, filters, order_by, limit)]

    def count(self, collection: str) -> int:
        if collection not in self._collections:
            raise ValueError(f"Unknown collection: {collection}")
        with self._lock:
            return len(self._collections[collection])
