# stockscan/core/session.py
"""Per-scan state machine driving lookup and inventory actions."""
import logging
import threading
import time
from collections import deque
from enum import Enum

from stockscan.config.settings import SessionConfig
from stockscan.core.barcode_processor import BarcodeProcessor
from stockscan.core.errors import DecodeNotFound, LookupNotFound, TransientStoreError
from stockscan.core.inventory_engine import InventoryEngine
from stockscan.core.lookup import LookupResolver, lookup_inventory
from stockscan.core.models import InventoryRecord, ScanHistoryEntry, ScanSession, TransactionType
from stockscan.core.notices import CAMERA_SLOT, NoticeBoard, NoticeKind
from stockscan.core.quantity import QuantityInput


class SessionState(Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    PRODUCT_OPEN = "product_open"
    ACTION_IN_FLIGHT = "action_in_flight"


class CameraPermission(Enum):
    PROMPT = "prompt"
    GRANTED = "granted"
    DENIED = "denied"


CAMERA_DENIED_MESSAGE = (
    "Camera access required. Enable the camera and retry, or upload an image of the barcode."
)


def _units(count):
    return f"{count} unit{'s' if count != 1 else ''}"


class SessionPresenter:
    """Rendering surface for the controller. Every callback defaults to a no-op."""

    def on_state_changed(self, state):
        pass

    def on_session_changed(self, session, quantity):
        pass

    def on_scan_accepted(self, code):
        pass

    def on_notice(self, notice):
        pass

    def on_notice_cleared(self, slot):
        pass

    def on_camera_permission(self, permission):
        pass


class LoggingPresenter(SessionPresenter):
    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def on_state_changed(self, state):
        self.logger.info(f"Session state: {state.value}")

    def on_session_changed(self, session, quantity):
        if session is None:
            self.logger.info("No product open")
        else:
            self.logger.info(
                f"Open: {session.product.display_name} [{session.code}] "
                f"stock={session.inventory.current_quantity} qty={quantity}"
            )

    def on_notice(self, notice):
        self.logger.info(f"[{notice.level.value}] {notice.message}")

    def on_camera_permission(self, permission):
        self.logger.info(f"Camera permission: {permission.value}")


class ScanSessionController:
    """
    Sequences decode events, lookups and inventory actions for one station.

    Idle -> Resolving -> (Idle | ProductOpen) -> ActionInFlight -> ProductOpen,
    and close_session() back to Idle. Only one product is resolving or open
    at a time; decode events arriving meanwhile are dropped, not queued.
    State changes happen under a lock, store I/O happens outside it.
    """

    def __init__(self, store, presenter=None, debouncer=None, engine=None,
                 resolver=None, quantity=None, notices=None, image_decoder=None,
                 clock=time.time, history_size=SessionConfig.HISTORY_SIZE):
        self.logger = logging.getLogger(__name__)
        self.store = store
        self.presenter = presenter or SessionPresenter()
        self.clock = clock
        self.debouncer = debouncer or BarcodeProcessor(clock=clock)
        self.engine = engine or InventoryEngine(store, clock=clock)
        self.resolver = resolver or LookupResolver(store)
        self.quantity_input = quantity or QuantityInput()
        self.notices = notices or NoticeBoard()
        self.notices.on_show = self.presenter.on_notice
        self.notices.on_clear = self.presenter.on_notice_cleared
        self.image_decoder = image_decoder

        self.state = SessionState.IDLE
        self.session = None
        self.history = deque(maxlen=history_size)
        self.camera_permission = CameraPermission.PROMPT
        self._stream = None
        self._stream_handle = None
        self._generation = 0
        self._lock = threading.Lock()

    # -- presentation -----------------------------------------------------

    @property
    def quantity(self):
        return self.quantity_input.value

    @property
    def quantity_display(self):
        return self.quantity_input.display

    def _emit_state(self, state):
        self.presenter.on_state_changed(state)

    def _emit_session(self):
        self.presenter.on_session_changed(self.session, self.quantity_input.value)

    # -- scanning ---------------------------------------------------------

    def handle_decode(self, event):
        """Stream callback. Returns True if the event opened a product session."""
        with self._lock:
            if self.state is not SessionState.IDLE:
                self.logger.debug(f"Dropped {event.code}: session is {self.state.value}")
                return False
            if not self.debouncer.process_barcode(event.code, event.timestamp):
                return False
            generation = self._begin_resolving()

        self.presenter.on_scan_accepted(event.code)
        self._emit_state(SessionState.RESOLVING)
        return self._resolve(event.code, generation)

    def submit_code(self, code):
        """Manually entered code. Skips the rescan cooldown, not the one-session rule."""
        code = (code or "").strip()
        if not code:
            return False
        with self._lock:
            if self.state is not SessionState.IDLE or self.debouncer.is_held:
                self.logger.debug(f"Ignored manual code {code}: session is {self.state.value}")
                return False
            generation = self._begin_resolving()

        self._emit_state(SessionState.RESOLVING)
        return self._resolve(code, generation)

    def scan_image(self, source):
        """Decode an uploaded still image and look it up."""
        with self._lock:
            if self.state is not SessionState.IDLE:
                self.logger.debug("Ignored image upload while a product is open")
                return False

        decoder = self.image_decoder
        if decoder is None:
            from stockscan.core.decoder import decode_still_image
            decoder = self.image_decoder = decode_still_image
        try:
            code = decoder(source)
        except DecodeNotFound as e:
            self.notices.error(str(e), NoticeKind.DECODE_NOT_FOUND)
            return False
        except TypeError as e:
            self.logger.warning(f"Rejected image upload: {e}")
            self.notices.error(str(DecodeNotFound()), NoticeKind.DECODE_NOT_FOUND)
            return False
        return self.submit_code(code)

    def _begin_resolving(self):
        # caller holds the lock
        self.debouncer.hold()
        self.state = SessionState.RESOLVING
        return self._generation

    def _back_to_idle(self, generation):
        with self._lock:
            if generation != self._generation:
                return
            self.state = SessionState.IDLE
            self.debouncer.release()
        self._emit_state(SessionState.IDLE)

    def _resolve(self, code, generation):
        try:
            result = self.resolver.resolve(code)
        except TransientStoreError as e:
            # the same code may be retried at once
            self.debouncer.forget(code)
            self._back_to_idle(generation)
            self.notices.error(f"Error: {e}", NoticeKind.TRANSIENT_STORE_ERROR)
            return False

        if not result.found:
            self._back_to_idle(generation)
            self.notices.error(str(LookupNotFound(code)), NoticeKind.LOOKUP_NOT_FOUND)
            return False

        now = self.clock()
        with self._lock:
            if generation != self._generation:
                self.logger.info(f"Lookup of {code} finished after the session was closed")
                return False
            self.session = ScanSession(product=result.product,
                                       inventory=result.inventory,
                                       opened_at=now)
            self.quantity_input.reset()
            self.history.appendleft(ScanHistoryEntry(code=code,
                                                     product_name=result.product.display_name,
                                                     timestamp=now))
            self.state = SessionState.PRODUCT_OPEN

        self._emit_state(SessionState.PRODUCT_OPEN)
        self._emit_session()
        return True

    # -- quantity ---------------------------------------------------------

    def _update_quantity(self, change, *args):
        with self._lock:
            value = change(*args)
        self._emit_session()
        return value

    def set_quantity(self, quantity):
        return self._update_quantity(self.quantity_input.set, quantity)

    def set_quantity_draft(self, text):
        return self._update_quantity(self.quantity_input.set_draft, text)

    def commit_quantity(self):
        return self._update_quantity(self.quantity_input.commit)

    def increment_quantity(self):
        return self._update_quantity(self.quantity_input.increment)

    def decrement_quantity(self):
        return self._update_quantity(self.quantity_input.decrement)

    # -- actions ----------------------------------------------------------

    def perform_action(self, kind):
        """
        Run receive/remove/consult against the open product.

        Returns:
            TransactionOutcome, or None if the request was ignored or failed
        """
        kind = TransactionType(kind)
        with self._lock:
            if self.state is SessionState.ACTION_IN_FLIGHT:
                self.logger.info(f"Ignored {kind.value}: an action is already in flight")
                return None
            if self.state is not SessionState.PRODUCT_OPEN or self.session is None:
                self.logger.info(f"Ignored {kind.value}: no product open")
                return None
            quantity = self.quantity_input.commit()
            session = self.session
            generation = self._generation
            self.state = SessionState.ACTION_IN_FLIGHT

        self._emit_state(SessionState.ACTION_IN_FLIGHT)
        try:
            outcome = self.engine.apply(session.code, quantity, kind, session.product.name)
        except TransientStoreError as e:
            self._finish_action(generation)
            self.notices.error(f"Failed to {kind.value}: {e}", NoticeKind.TRANSIENT_STORE_ERROR)
            return None

        inventory = self._refresh_inventory(session.code, outcome)
        if self._finish_action(generation, inventory=inventory, reset_quantity=True):
            self._announce(outcome, session.product)
        else:
            self.logger.info(f"{kind.value} on {session.code} finished after the session was closed")
        return outcome

    def dispatch_action(self, kind):
        """perform_action on a worker thread, so the caller never blocks on the store."""
        thread = threading.Thread(target=self.perform_action, args=(kind,),
                                  name=f"action-{TransactionType(kind).value}")
        thread.daemon = True
        thread.start()
        return thread

    def _refresh_inventory(self, code, outcome):
        try:
            return lookup_inventory(self.store, code)
        except TransientStoreError as e:
            self.logger.warning(f"Could not refresh stock for {code}, using engine result: {e}")
            return InventoryRecord(code=code, current_quantity=outcome.new_quantity,
                                   last_updated=outcome.timestamp)

    def _finish_action(self, generation, inventory=None, reset_quantity=False):
        with self._lock:
            if generation != self._generation or self.session is None:
                return False
            if inventory is not None:
                self.session.inventory = inventory
            if reset_quantity:
                self.quantity_input.reset()
            self.state = SessionState.PRODUCT_OPEN

        self._emit_state(SessionState.PRODUCT_OPEN)
        self._emit_session()
        return True

    def _announce(self, outcome, product):
        name = product.display_name
        if outcome.kind is TransactionType.CONSULT:
            self.notices.info(f"{name}: {_units(outcome.new_quantity)} in stock")
        elif outcome.kind is TransactionType.RECEIVE:
            self.notices.success(
                f"{_units(outcome.requested_quantity)} added to inventory. "
                f"New total: {outcome.new_quantity}"
            )
        else:
            self.notices.success(
                f"{_units(outcome.applied_quantity)} removed from inventory. "
                f"New total: {outcome.new_quantity}"
            )

        if outcome.clamped:
            self.notices.warning(
                f"Only {_units(outcome.applied_quantity)} of {name} were in stock; "
                f"{outcome.requested_quantity} requested",
                NoticeKind.CLAMPED_OPERATION,
            )
        if not outcome.logged:
            self.notices.warning(
                "Stock updated but the transaction was not recorded",
                NoticeKind.UNLOGGED_MUTATION,
            )

    # -- teardown ---------------------------------------------------------

    def close_session(self):
        """Dismiss the open product (or 'scan next') and re-arm scanning."""
        with self._lock:
            self._generation += 1
            self.session = None
            self.quantity_input.reset()
            self.state = SessionState.IDLE
            self.debouncer.reset()
        self.notices.clear_all()
        self._emit_state(SessionState.IDLE)
        self._emit_session()

    # -- camera -----------------------------------------------------------

    def _set_camera_permission(self, permission):
        self.camera_permission = permission
        self.presenter.on_camera_permission(permission)

    def start_scanning(self, stream):
        """Start the live decode stream. The controller owns its cancel token."""
        if self._stream_handle is not None and self._stream_handle.active:
            return self._stream_handle
        self._stream = stream
        self._stream_handle = stream.start(self.handle_decode, self._on_stream_error,
                                           on_ready=self._on_stream_ready)
        return self._stream_handle

    def stop_scanning(self):
        handle, self._stream_handle = self._stream_handle, None
        if handle is not None:
            handle.cancel()

    def retry_camera(self):
        self.stop_scanning()
        self.notices.clear(CAMERA_SLOT)
        self._set_camera_permission(CameraPermission.PROMPT)
        if self._stream is not None:
            return self.start_scanning(self._stream)
        return None

    def _on_stream_ready(self):
        self.notices.clear(CAMERA_SLOT)
        self._set_camera_permission(CameraPermission.GRANTED)

    def _on_stream_error(self, error):
        self.logger.error(f"Camera stream failed: {error}")
        self._set_camera_permission(CameraPermission.DENIED)
        self.notices.error(CAMERA_DENIED_MESSAGE, NoticeKind.CAMERA_UNAVAILABLE,
                           persistent=True)

    def shutdown(self):
        self.stop_scanning()
        self.close_session()
        self.notices.clear_all(keep=())
