# stockscan/core/inventory_engine.py
"""Quantity transactions: read, clamp, write, record."""
import logging
import time
from dataclasses import dataclass
from typing import Optional, Tuple

from stockscan.config.settings import StoreConfig
from stockscan.core.errors import InvalidQuantity, TransientStoreError
from stockscan.core.lookup import lookup_inventory
from stockscan.core.models import (UNKNOWN_PRODUCT_NAME, OutcomeSignal, TransactionRecord,
                                   TransactionType)


@dataclass(frozen=True)
class TransactionOutcome:
    """Result of one engine call.

    ``new_quantity`` is advisory: another device may write the same
    counter before the next fetch.
    """
    code: str
    kind: TransactionType
    previous_quantity: int
    new_quantity: int
    requested_quantity: int
    applied_quantity: int
    timestamp: float
    clamped: bool = False
    logged: bool = True
    transaction: Optional[TransactionRecord] = None

    @property
    def signals(self) -> Tuple[OutcomeSignal, ...]:
        signals = []
        if self.clamped:
            signals.append(OutcomeSignal.CLAMPED_OPERATION)
        if not self.logged:
            signals.append(OutcomeSignal.UNLOGGED_MUTATION)
        return tuple(signals)


def _receive(quantity):
    return lambda current: current + quantity


def _remove(quantity):
    return lambda current: max(0, current - quantity)


class InventoryEngine:
    def __init__(self, store, actor_id=StoreConfig.ACTOR_ID, clock=time.time):
        self.logger = logging.getLogger(__name__)
        self.store = store
        self.actor_id = actor_id
        self.clock = clock

    def apply(self, code, quantity, kind, product_name=None):
        """
        Apply one receive/remove/consult action to the stock of ``code``.

        Args:
            code: product code
            quantity: units to receive or remove (ignored for consult)
            kind: TransactionType or its string value
            product_name: name snapshot for the transaction log

        Returns:
            TransactionOutcome

        Raises:
            InvalidQuantity: receive/remove with a non-positive quantity
            TransientStoreError: the stock could not be read or written;
                nothing was logged
        """
        kind = TransactionType(kind)
        timestamp = self.clock()
        product_name = product_name or UNKNOWN_PRODUCT_NAME

        if kind is TransactionType.CONSULT:
            return self._consult(code, product_name, timestamp)

        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise InvalidQuantity(f"Quantity must be a positive integer, got {quantity!r}")

        compute = _receive(quantity) if kind is TransactionType.RECEIVE else _remove(quantity)
        try:
            previous, updated = self.store.update_inventory(code, compute, timestamp)
        except TransientStoreError as e:
            self.logger.error(f"Failed to {kind.value} {quantity} x {code}: {e}")
            raise
        except Exception as e:
            self.logger.error(f"Failed to {kind.value} {quantity} x {code}: {e}")
            raise TransientStoreError(f"Inventory update failed for {code}: {e}") from e

        applied = abs(updated.current_quantity - previous.current_quantity)
        clamped = kind is TransactionType.REMOVE and applied < quantity
        if clamped:
            self.logger.warning(
                f"Remove of {quantity} x {code} floored at zero: "
                f"only {applied} of {quantity} were in stock"
            )

        # The log keeps the requested quantity, not the delivered one.
        record = TransactionRecord(
            code=code,
            product_name=product_name,
            type=kind,
            quantity=quantity,
            timestamp=timestamp,
            actor_id=self.actor_id,
        )
        transaction = self._append(record)

        self.logger.info(
            f"{kind.value} {quantity} x {code}: "
            f"{previous.current_quantity} -> {updated.current_quantity}"
        )
        return TransactionOutcome(
            code=code,
            kind=kind,
            previous_quantity=previous.current_quantity,
            new_quantity=updated.current_quantity,
            requested_quantity=quantity,
            applied_quantity=applied,
            timestamp=timestamp,
            clamped=clamped,
            logged=transaction is not None,
            transaction=transaction,
        )

    def _append(self, record):
        """Best-effort log append after a successful write; None on failure."""
        try:
            return self.store.append_transaction(record)
        except Exception as e:
            self.logger.warning(
                f"Stock for {record.code} updated but the transaction was not recorded: {e}"
            )
            return None

    def _consult(self, code, product_name, timestamp):
        current = lookup_inventory(self.store, code).current_quantity
        record = TransactionRecord(
            code=code,
            product_name=product_name,
            type=TransactionType.CONSULT,
            quantity=0,
            timestamp=timestamp,
            actor_id=self.actor_id,
        )
        try:
            transaction = self.store.append_transaction(record)
        except TransientStoreError as e:
            self.logger.error(f"Failed to record consult of {code}: {e}")
            raise
        except Exception as e:
            self.logger.error(f"Failed to record consult of {code}: {e}")
            raise TransientStoreError(f"Consult log failed for {code}: {e}") from e

        self.logger.info(f"consult {code}: {current} in stock")
        return TransactionOutcome(
            code=code,
            kind=TransactionType.CONSULT,
            previous_quantity=current,
            new_quantity=current,
            requested_quantity=0,
            applied_quantity=0,
            timestamp=timestamp,
            transaction=transaction,
        )
