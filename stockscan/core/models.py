# stockscan/core/models.py
"""Records exchanged between the scanner pipeline and the store."""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

UNKNOWN_PRODUCT_NAME = "Unknown Product"


class TransactionType(Enum):
    """Kinds of inventory action a worker can perform."""
    RECEIVE = "receive"
    REMOVE = "remove"
    CONSULT = "consult"


class OutcomeSignal(Enum):
    """Non-error conditions reported alongside a transaction outcome."""
    CLAMPED_OPERATION = "clamped_operation"    # remove floored at zero
    UNLOGGED_MUTATION = "unlogged_mutation"    # stock written, log append failed


@dataclass(frozen=True)
class DecodeEvent:
    code: str
    timestamp: float


@dataclass(frozen=True)
class Product:
    """Catalog entry. Reference data, never mutated by scanning."""
    code: str
    name: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None

    @classmethod
    def from_document(cls, code: str, data: Dict[str, Any]) -> "Product":
        return cls(
            code=data.get("gtin") or code,
            name=data.get("productName") or data.get("name"),
            brand=data.get("brand"),
            category=data.get("category"),
        )

    def to_document(self) -> Dict[str, Any]:
        doc = {"gtin": self.code, "productName": self.name}
        if self.brand is not None:
            doc["brand"] = self.brand
        if self.category is not None:
            doc["category"] = self.category
        return doc

    @property
    def display_name(self) -> str:
        return self.name or UNKNOWN_PRODUCT_NAME


@dataclass(frozen=True)
class InventoryRecord:
    code: str
    current_quantity: int = 0
    last_updated: Optional[float] = None

    def __post_init__(self):
        if self.current_quantity < 0:
            raise ValueError(
                f"Inventory for {self.code} cannot be negative: {self.current_quantity}"
            )

    @classmethod
    def empty(cls, code: str) -> "InventoryRecord":
        """Record for a code that has never been stocked."""
        return cls(code=code, current_quantity=0, last_updated=None)

    @classmethod
    def from_document(cls, code: str, data: Dict[str, Any]) -> "InventoryRecord":
        return cls(
            code=data.get("gtin") or code,
            current_quantity=max(0, int(data.get("currentQuantity") or 0)),
            last_updated=data.get("lastUpdated"),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "gtin": self.code,
            "currentQuantity": self.current_quantity,
            "lastUpdated": self.last_updated,
        }


@dataclass(frozen=True)
class TransactionRecord:
    """Append-only audit entry."""
    code: str
    product_name: str
    type: TransactionType
    quantity: int
    timestamp: float
    actor_id: str = "anonymous"
    id: Optional[str] = None

    @classmethod
    def from_document(cls, doc_id: Optional[str], data: Dict[str, Any]) -> "TransactionRecord":
        return cls(
            code=data["gtin"],
            product_name=data.get("productName") or UNKNOWN_PRODUCT_NAME,
            type=TransactionType(data["type"]),
            quantity=int(data.get("quantity") or 0),
            timestamp=data.get("timestamp"),
            actor_id=data.get("userId") or "anonymous",
            id=doc_id,
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "gtin": self.code,
            "productName": self.product_name,
            "type": self.type.value,
            "quantity": self.quantity,
            "timestamp": self.timestamp,
            "userId": self.actor_id,
        }


@dataclass
class ScanSession:
    """The product currently open on the station, with its cached stock."""
    product: Product
    inventory: InventoryRecord
    opened_at: float

    @property
    def code(self) -> str:
        return self.product.code


@dataclass(frozen=True)
class ScanHistoryEntry:
    code: str
    product_name: str
    timestamp: float


@dataclass(frozen=True)
class LookupResult:
    product: Optional[Product]
    inventory: Optional[InventoryRecord] = None

    @property
    def found(self) -> bool:
        return self.product is not None
