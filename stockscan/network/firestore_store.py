# stockscan/network/firestore_store.py
"""Cloud Firestore (REST) backed store for products, inventory and transactions."""
import logging
import socket
import threading
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlparse

import backoff
import requests

from stockscan.config.settings import StoreConfig
from stockscan.core.errors import TransientStoreError
from stockscan.core.models import InventoryRecord, Product, TransactionRecord
from stockscan.store.base import (COLLECTIONS, INVENTORY, PRODUCTS, TRANSACTIONS,
                                  InventoryStore, validate_query)

TIMESTAMP_FIELDS = ("lastUpdated", "timestamp")

FIRESTORE_OPERATORS = {
    "==": "EQUAL",
    "!=": "NOT_EQUAL",
    "<": "LESS_THAN",
    "<=": "LESS_THAN_OR_EQUAL",
    ">": "GREATER_THAN",
    ">=": "GREATER_THAN_OR_EQUAL",
}


class RetryableStatus(Exception):
    """Server-side failure (429/5xx) worth another attempt."""

    def __init__(self, status_code, body=""):
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}: {body[:200]}")


RETRYABLE_ERRORS = (requests.exceptions.ConnectionError,
                    requests.exceptions.Timeout,
                    RetryableStatus)


def format_timestamp(epoch: float) -> str:
    return datetime.fromtimestamp(epoch, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def parse_timestamp(text: str) -> float:
    # Firestore returns up to nanosecond precision, more than strptime accepts
    base, _, fraction = text.rstrip("Z").partition(".")
    moment = datetime.strptime(base, "%Y-%m-%dT%H:%M:%S").replace(tzinfo=timezone.utc)
    return moment.timestamp() + (float(f"0.{fraction}") if fraction else 0.0)


def encode_value(value: Any, field_name: Optional[str] = None) -> Dict[str, Any]:
    """Python value -> Firestore typed value."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if field_name in TIMESTAMP_FIELDS and isinstance(value, (int, float)):
        return {"timestampValue": format_timestamp(value)}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, dict):
        return {"mapValue": {"fields": to_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    raise TypeError(f"Cannot store {type(value).__name__} in Firestore")


def decode_value(value: Dict[str, Any]) -> Any:
    """Firestore typed value -> Python value."""
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return value["booleanValue"]
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "timestampValue" in value:
        return parse_timestamp(value["timestampValue"])
    if "mapValue" in value:
        return from_fields(value["mapValue"].get("fields", {}))
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    raise ValueError(f"Unsupported Firestore value: {value}")


def to_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: encode_value(val, key) for key, val in data.items()}


def from_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {key: decode_value(val) for key, val in fields.items()}


def document_id(document: Dict[str, Any]) -> str:
    return document["name"].rsplit("/", 1)[-1]


class FirestoreStore(InventoryStore):
    """
    Talks to the Firestore REST API. Collections: products, inventory, transactions.

    The read-modify-write of a counter is the base get-then-set, so two
    devices writing the same product concurrently resolve last-write-wins.
    """

    def __init__(self, project_id: str = StoreConfig.FIRESTORE_PROJECT_ID,
                 database: str = StoreConfig.FIRESTORE_DATABASE,
                 api_key: str = StoreConfig.FIRESTORE_API_KEY,
                 base_url: str = StoreConfig.FIRESTORE_BASE_URL,
                 id_token: Optional[str] = None,
                 connection_timeout: float = StoreConfig.CONNECTION_TIMEOUT,
                 max_retries: int = StoreConfig.MAX_RETRIES,
                 max_retry_time: float = StoreConfig.MAX_RETRY_TIME,
                 session: Optional[requests.Session] = None):
        """Initialize the Firestore client."""
        if not project_id:
            raise ValueError("A Firestore project id is required")
        self._validate_url(base_url)
        self.logger = logging.getLogger(__name__)
        self.documents_url = (
            f"{base_url.rstrip('/')}/projects/{project_id}/databases/{database}/documents"
        )
        self.api_key = api_key
        self.id_token = id_token
        self.connection_timeout = connection_timeout
        self.session = session or requests.Session()
        self._send = backoff.on_exception(
            backoff.expo,
            RETRYABLE_ERRORS,
            max_tries=max_retries,
            max_time=max_retry_time,
        )(self._send_once)
        self._initialize_health_metrics()

    def _validate_url(self, url: str) -> None:
        """Validate the API base URL format."""
        result = urlparse(url)
        if not all([result.scheme, result.netloc]):
            raise ValueError(f"Invalid Firestore URL: {url}")

    def _initialize_health_metrics(self) -> None:
        """Initialize health monitoring metrics."""
        self.health_metrics = {
            'successful_requests': 0,
            'failed_requests': 0,
            'last_successful_request': None,
            'last_error': None
        }
        self.metrics_lock = threading.Lock()

    def get_health_status(self) -> Dict[str, Any]:
        """Get current health metrics."""
        with self.metrics_lock:
            return self.health_metrics.copy()

    # -- HTTP -------------------------------------------------------------

    def _send_once(self, method: str, url: str, payload: Optional[Dict[str, Any]] = None):
        params = {"key": self.api_key} if self.api_key else None
        headers = {'Content-Type': 'application/json', 'User-Agent': 'stockscan/1.0'}
        if self.id_token:
            headers['Authorization'] = f"Bearer {self.id_token}"

        response = self.session.request(
            method, url, params=params, json=payload, headers=headers,
            timeout=self.connection_timeout,
        )
        if response.status_code == 404:
            return None
        if response.status_code == 429 or response.status_code >= 500:
            raise RetryableStatus(response.status_code, response.text)
        response.raise_for_status()
        return response.json() if response.content else {}

    def _call(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None):
        """One API call with retries. None means the document does not exist."""
        url = f"{self.documents_url}/{path}" if not path.startswith(":") \
            else f"{self.documents_url}{path}"
        try:
            result = self._send(method, url, payload)
        except (requests.exceptions.RequestException, socket.error,
                RetryableStatus, ValueError) as e:
            self.logger.error(f"Firestore {method} {path} failed: {e}")
            with self.metrics_lock:
                self.health_metrics['failed_requests'] += 1
                self.health_metrics['last_error'] = str(e)
            raise TransientStoreError(f"Firestore {method} {path} failed: {e}") from e

        with self.metrics_lock:
            self.health_metrics['successful_requests'] += 1
            self.health_metrics['last_successful_request'] = time.time()
        return result

    def _get_document(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        document = self._call("GET", f"{collection}/{quote(doc_id, safe='')}")
        if document is None:
            return None
        return from_fields(document.get("fields", {}))

    def _set_document(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        # PATCH without an update mask replaces the whole document, creating it if needed
        self._call("PATCH", f"{collection}/{quote(doc_id, safe='')}", {"fields": to_fields(data)})

    def _run_query(self, collection, filters, order_by, limit) -> List[Dict[str, Any]]:
        validate_query(filters, order_by)
        query: Dict[str, Any] = {"from": [{"collectionId": collection}]}

        field_filters = [
            {"fieldFilter": {
                "field": {"fieldPath": field_name},
                "op": FIRESTORE_OPERATORS[op],
                "value": encode_value(value, field_name),
            }}
            for field_name, op, value in filters or ()
        ]
        if len(field_filters) == 1:
            query["where"] = field_filters[0]
        elif field_filters:
            query["where"] = {"compositeFilter": {"op": "AND", "filters": field_filters}}

        if order_by is not None:
            query["orderBy"] = [{
                "field": {"fieldPath": order_by[0]},
                "direction": "DESCENDING" if order_by[1] == "desc" else "ASCENDING",
            }]
        if limit is not None:
            query["limit"] = limit

        rows = self._call("POST", ":runQuery", {"structuredQuery": query}) or []
        return [dict(from_fields(row["document"].get("fields", {})),
                     _id=document_id(row["document"]))
                for row in rows if "document" in row]

    # -- store interface --------------------------------------------------

    def get_product(self, code: str) -> Optional[Product]:
        data = self._get_document(PRODUCTS, code)
        return Product.from_document(code, data) if data is not None else None

    def put_product(self, product: Product) -> None:
        self._set_document(PRODUCTS, product.code, product.to_document())

    def get_inventory(self, code: str) -> Optional[InventoryRecord]:
        data = self._get_document(INVENTORY, code)
        return InventoryRecord.from_document(code, data) if data is not None else None

    def set_inventory(self, code: str, quantity: int, timestamp: float) -> InventoryRecord:
        record = InventoryRecord(code=code, current_quantity=quantity, last_updated=timestamp)
        self._set_document(INVENTORY, code, record.to_document())
        return record

    def append_transaction(self, record: TransactionRecord) -> TransactionRecord:
        created = self._call("POST", TRANSACTIONS, {"fields": to_fields(record.to_document())})
        doc_id = document_id(created) if created and "name" in created else None
        return TransactionRecord.from_document(doc_id, record.to_document())

    def query_inventory(self, filters=None, order_by=None, limit=None) -> List[InventoryRecord]:
        return [InventoryRecord.from_document(doc["_id"], doc)
                for doc in self._run_query(INVENTORY, filters, order_by, limit)]

    def query_transactions(self, filters=None, order_by=None, limit=None) -> List[TransactionRecord]:
        return [TransactionRecord.from_document(doc["_id"], doc)
                for doc in self._run_query(TRANSACTIONS, filters, order_by, limit)]

    def count(self, collection: str) -> int:
        if collection not in COLLECTIONS:
            raise ValueError(f"Unknown collection: {collection}")
        payload = {
            "structuredAggregationQuery": {
                "structuredQuery": {"from": [{"collectionId": collection}]},
                "aggregations": [{"alias": "count", "count": {}}],
            }
        }
        rows = self._call("POST", ":runAggregationQuery", payload) or []
        for row in rows:
            fields = row.get("result", {}).get("aggregateFields", {})
            if "count" in fields:
                return decode_value(fields["count"])
        return 0

    def close(self) -> None:
        self.session.close()
