import threading

import pytest

from stockscan.core.barcode_processor import BarcodeProcessor
from stockscan.core.errors import CameraUnavailable, TransientStoreError
from stockscan.core.models import Product
from stockscan.core.notices import NoticeBoard
from stockscan.core.session import ScanSessionController, SessionPresenter
from stockscan.store.memory import MemoryStore

COLA = "5000112576009"
NIVEA = "4006809087906"
NUTELLA = "8076809514118"


class FakeClock:
    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeTimer:
    """Stands in for threading.Timer; fires only when told to."""

    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function(*self.args, **self.kwargs)


class TimerFactory:
    def __init__(self):
        self.timers = []

    def __call__(self, interval, function, args=None, kwargs=None):
        timer = FakeTimer(interval, function, args, kwargs)
        self.timers.append(timer)
        return timer

    def live(self):
        return [t for t in self.timers if t.started and not t.cancelled]


class RecordingPresenter(SessionPresenter):
    def __init__(self):
        self.states = []
        self.sessions = []
        self.accepted = []
        self.notices = []
        self.cleared = []
        self.permissions = []

    def on_state_changed(self, state):
        self.states.append(state)

    def on_session_changed(self, session, quantity):
        self.sessions.append((session, quantity))

    def on_scan_accepted(self, code):
        self.accepted.append(code)

    def on_notice(self, notice):
        self.notices.append(notice)

    def on_notice_cleared(self, slot):
        self.cleared.append(slot)

    def kinds(self):
        return [n.kind for n in self.notices]


class FlakyStore(MemoryStore):
    """MemoryStore whose operations can be made to fail on demand."""

    def __init__(self, products=None):
        super().__init__(products=products)
        self.fail = set()

    def _check(self, name):
        if name in self.fail:
            raise TransientStoreError(f"{name} unavailable")

    def get_product(self, code):
        self._check("get_product")
        return super().get_product(code)

    def get_inventory(self, code):
        self._check("get_inventory")
        return super().get_inventory(code)

    def set_inventory(self, code, quantity, timestamp):
        self._check("set_inventory")
        return super().set_inventory(code, quantity, timestamp)

    def append_transaction(self, record):
        self._check("append_transaction")
        return super().append_transaction(record)


class BlockingStore(MemoryStore):
    """Parks set_inventory until the test releases it."""

    def __init__(self, products=None):
        super().__init__(products=products)
        self.entered = threading.Event()
        self.proceed = threading.Event()

    def set_inventory(self, code, quantity, timestamp):
        self.entered.set()
        self.proceed.wait(5)
        return super().set_inventory(code, quantity, timestamp)


def demo_products():
    return [
        Product(code=COLA, name="Test Product - Coca Cola", brand="Coca-Cola", category="Beverages"),
        Product(code=NIVEA, name="Test Product - Nivea Cream", brand="Nivea", category="Personal Care"),
        Product(code=NUTELLA, name="Test Product - Nutella", brand="Ferrero", category="Food"),
    ]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def timers():
    return TimerFactory()


@pytest.fixture
def store():
    return FlakyStore(products=demo_products())


@pytest.fixture
def presenter():
    return RecordingPresenter()


@pytest.fixture
def make_controller(clock, timers, presenter):
    def _make(store, **kwargs):
        kwargs.setdefault("debouncer", BarcodeProcessor(rescan_delay=2.0, clock=clock))
        kwargs.setdefault("notices", NoticeBoard(timer_factory=timers))
        return ScanSessionController(store, presenter=presenter, clock=clock, **kwargs)
    return _make


@pytest.fixture
def controller(make_controller, store):
    return make_controller(store)


class FakeHandle:
    def __init__(self):
        self.cancelled = False

    @property
    def active(self):
        return not self.cancelled

    def cancel(self, timeout=5.0):
        self.cancelled = True


class FakeStream:
    """Calls back synchronously: fails while ``deny`` is set, else reports ready."""

    def __init__(self, deny=True):
        self.deny = deny
        self.handles = []

    def start(self, on_decode, on_error=None, on_ready=None):
        handle = FakeHandle()
        self.handles.append(handle)
        if self.deny:
            handle.cancelled = True
            on_error(CameraUnavailable("permission denied"))
        else:
            on_ready()
        return handle
