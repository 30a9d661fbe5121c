# stockscan/store/base.py
"""Persistent store interface for products, inventory counters and the transaction log."""
import operator
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from stockscan.core.models import InventoryRecord, Product, TransactionRecord

PRODUCTS = "products"
INVENTORY = "inventory"
TRANSACTIONS = "transactions"
COLLECTIONS = (PRODUCTS, INVENTORY, TRANSACTIONS)

# (field, op, value), field names as stored in documents
Filter = Tuple[str, str, Any]
# (field, "asc" | "desc")
Order = Tuple[str, str]

OPERATORS = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


def validate_query(filters: Optional[Sequence[Filter]], order_by: Optional[Order]) -> None:
    for field_name, op, _ in filters or ():
        if op not in OPERATORS:
            raise ValueError(f"Unsupported filter operator {op!r} on {field_name}")
    if order_by is not None and order_by[1] not in ("asc", "desc"):
        raise ValueError(f"Order direction must be 'asc' or 'desc', got {order_by[1]!r}")


def apply_query(documents: Iterable[Dict[str, Any]],
                filters: Optional[Sequence[Filter]] = None,
                order_by: Optional[Order] = None,
                limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """Filter, sort and cut a list of documents the way the remote store would.

    Documents missing a filtered or ordered field are excluded, matching
    Firestore semantics.
    """
    validate_query(filters, order_by)
    results = []
    for doc in documents:
        matched = True
        for field_name, op, value in filters or ():
            if doc.get(field_name) is None or not OPERATORS[op](doc[field_name], value):
                matched = False
                break
        if matched:
            results.append(doc)

    if order_by is not None:
        field_name, direction = order_by
        results = [d for d in results if d.get(field_name) is not None]
        results.sort(key=lambda d: d[field_name], reverse=(direction == "desc"))

    if limit is not None:
        results = results[:limit]
    return results


class InventoryStore(ABC):
    """Document store holding Product, InventoryRecord and TransactionRecord data.

    Implementations raise ``TransientStoreError`` for any backend failure;
    a missing document is never an error (``None`` is returned instead).
    """

    @abstractmethod
    def get_product(self, code: str) -> Optional[Product]:
        ...

    @abstractmethod
    def put_product(self, product: Product) -> None:
        ...

    @abstractmethod
    def get_inventory(self, code: str) -> Optional[InventoryRecord]:
        ...

    @abstractmethod
    def set_inventory(self, code: str, quantity: int, timestamp: float) -> InventoryRecord:
        ...

    @abstractmethod
    def append_transaction(self, record: TransactionRecord) -> TransactionRecord:
        """Append a record and return it with its store-assigned id."""

    @abstractmethod
    def query_inventory(self, filters: Optional[Sequence[Filter]] = None,
                        order_by: Optional[Order] = None,
                        limit: Optional[int] = None) -> List[InventoryRecord]:
        ...

    @abstractmethod
    def query_transactions(self, filters: Optional[Sequence[Filter]] = None,
                           order_by: Optional[Order] = None,
                           limit: Optional[int] = None) -> List[TransactionRecord]:
        ...

    @abstractmethod
    def count(self, collection: str) -> int:
        ...

    def update_inventory(self, code: str, compute: Callable[[int], int],
                         timestamp: float) -> Tuple[InventoryRecord, InventoryRecord]:
        """Read the counter for ``code``, apply ``compute`` and write the result.

        Returns ``(previous, updated)``. This default is a plain read followed
        by a write: it is not isolated from other writers and the last write
        wins. Backends with transactions override it.
        """
        previous = self.get_inventory(code) or InventoryRecord.empty(code)
        new_quantity = compute(previous.current_quantity)
        updated = self.set_inventory(code, new_quantity, timestamp)
        return previous, updated

    def close(self) -> None:
        """Release backend resources."""
