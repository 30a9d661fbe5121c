# stockscan/core/reports.py
"""Read-only stock summaries for a dashboard."""
import logging

from stockscan.config.settings import StoreConfig
from stockscan.core.models import TransactionType
from stockscan.store.base import PRODUCTS

logger = logging.getLogger(__name__)


def inventory_stats(store, low_stock_threshold=StoreConfig.LOW_STOCK_THRESHOLD):
    """Unit totals across every inventory record."""
    records = store.query_inventory()
    quantities = [r.current_quantity for r in records]
    return {
        "totalProducts": store.count(PRODUCTS),
        "totalUnits": sum(quantities),
        "productsWithStock": sum(1 for q in quantities if q > 0),
        "lowStockCount": sum(1 for q in quantities if 0 < q < low_stock_threshold),
    }


def top_products(store, limit=10):
    """In-stock products, largest quantity first. Records without a product are skipped."""
    records = store.query_inventory(
        filters=[("currentQuantity", ">", 0)],
        order_by=("currentQuantity", "desc"),
        limit=limit,
    )
    results = []
    for record in records:
        product = store.get_product(record.code)
        if product is None or not product.name:
            logger.debug(f"Skipping stock for unknown product {record.code}")
            continue
        results.append({
            "gtin": record.code,
            "productName": product.name,
            "brand": product.brand,
            "category": product.category,
            "currentQuantity": record.current_quantity,
        })
    return results


def recent_transactions(store, limit=20):
    return store.query_transactions(order_by=("timestamp", "desc"), limit=limit)


def transactions_by_type(store, kind, limit=50):
    kind = TransactionType(kind)
    return store.query_transactions(
        filters=[("type", "==", kind.value)],
        order_by=("timestamp", "desc"),
        limit=limit,
    )


def dashboard_data(store):
    data = inventory_stats(store)
    data["recentTransactions"] = recent_transactions(store, 20)
    data["topProducts"] = top_products(store, 10)
    return data
