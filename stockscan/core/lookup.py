# stockscan/core/lookup.py
"""Product + stock lookup for a decoded code."""
import logging

from stockscan.core.errors import TransientStoreError
from stockscan.core.models import InventoryRecord, LookupResult

logger = logging.getLogger(__name__)


def lookup_inventory(store, code):
    """Current stock for ``code``. Never None: an absent record means zero stock."""
    try:
        record = store.get_inventory(code)
    except TransientStoreError:
        raise
    except Exception as e:
        logger.error(f"Error fetching inventory {code}: {e}")
        raise TransientStoreError(f"Inventory fetch failed for {code}: {e}") from e
    return record if record is not None else InventoryRecord.empty(code)


class LookupResolver:
    def __init__(self, store):
        self.logger = logging.getLogger(__name__)
        self.store = store

    def resolve(self, code):
        """
        Fetch the product and its stock snapshot.

        Returns:
            LookupResult: ``product`` is None when the code matches nothing

        Raises:
            TransientStoreError: the store could not be reached
        """
        try:
            product = self.store.get_product(code)
        except TransientStoreError as e:
            self.logger.error(f"Error fetching product {code}: {e}")
            raise
        except Exception as e:
            self.logger.error(f"Error fetching product {code}: {e}")
            raise TransientStoreError(f"Product fetch failed for {code}: {e}") from e

        if product is None:
            self.logger.info(f"No product for code {code}")
            return LookupResult(product=None, inventory=InventoryRecord.empty(code))

        inventory = lookup_inventory(self.store, code)
        self.logger.info(
            f"Resolved {code}: {product.display_name} ({inventory.current_quantity} in stock)"
        )
        return LookupResult(product=product, inventory=inventory)
