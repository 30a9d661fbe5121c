# stockscan/core/notices.py
"""Transient user notices with fixed auto-dismiss delays."""
import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum

from stockscan.config.settings import SessionConfig


class NoticeKind(Enum):
    SUCCESS = "success"
    CONSULT = "consult"
    DECODE_NOT_FOUND = "decode_not_found"
    LOOKUP_NOT_FOUND = "lookup_not_found"
    TRANSIENT_STORE_ERROR = "transient_store_error"
    CLAMPED_OPERATION = "clamped_operation"
    UNLOGGED_MUTATION = "unlogged_mutation"
    CAMERA_UNAVAILABLE = "camera_unavailable"


class NoticeLevel(Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


# One notice per slot; a new notice replaces the previous one in its slot.
SUCCESS_SLOT = "success"
ERROR_SLOT = "error"
CAMERA_SLOT = "camera"


@dataclass(frozen=True)
class Notice:
    kind: NoticeKind
    level: NoticeLevel
    message: str
    persistent: bool = False
    created_at: float = field(default_factory=time.time)

    @property
    def slot(self):
        if self.kind is NoticeKind.CAMERA_UNAVAILABLE:
            return CAMERA_SLOT
        if self.level in (NoticeLevel.SUCCESS, NoticeLevel.INFO):
            return SUCCESS_SLOT
        return ERROR_SLOT


class NoticeBoard:
    def __init__(self, on_show=None, on_clear=None,
                 success_delay=SessionConfig.SUCCESS_NOTICE_SECONDS,
                 error_delay=SessionConfig.ERROR_NOTICE_SECONDS,
                 timer_factory=threading.Timer):
        self.logger = logging.getLogger(__name__)
        self.on_show = on_show
        self.on_clear = on_clear
        self.success_delay = success_delay
        self.error_delay = error_delay
        self.timer_factory = timer_factory
        self._notices = {}
        self._timers = {}
        self._lock = threading.Lock()

    def _delay_for(self, notice):
        return self.success_delay if notice.slot == SUCCESS_SLOT else self.error_delay

    def show(self, notice):
        with self._lock:
            self._cancel_timer(notice.slot)
            self._notices[notice.slot] = notice
            if not notice.persistent:
                timer = self.timer_factory(self._delay_for(notice), self._expire,
                                           args=(notice.slot, notice))
                timer.daemon = True
                self._timers[notice.slot] = timer
                timer.start()

        log = self.logger.warning if notice.level in (NoticeLevel.WARNING, NoticeLevel.ERROR) \
            else self.logger.info
        log(f"Notice [{notice.kind.value}]: {notice.message}")
        if self.on_show:
            self.on_show(notice)
        return notice

    def success(self, message, kind=NoticeKind.SUCCESS):
        return self.show(Notice(kind, NoticeLevel.SUCCESS, message))

    def info(self, message, kind=NoticeKind.CONSULT):
        return self.show(Notice(kind, NoticeLevel.INFO, message))

    def warning(self, message, kind):
        return self.show(Notice(kind, NoticeLevel.WARNING, message))

    def error(self, message, kind, persistent=False):
        return self.show(Notice(kind, NoticeLevel.ERROR, message, persistent=persistent))

    def _cancel_timer(self, slot):
        timer = self._timers.pop(slot, None)
        if timer is not None:
            timer.cancel()

    def _expire(self, slot, notice):
        with self._lock:
            if self._notices.get(slot) is not notice:
                return
            del self._notices[slot]
            self._timers.pop(slot, None)
        if self.on_clear:
            self.on_clear(slot)

    def clear(self, slot):
        with self._lock:
            self._cancel_timer(slot)
            removed = self._notices.pop(slot, None)
        if removed is not None and self.on_clear:
            self.on_clear(slot)

    def clear_all(self, keep=(CAMERA_SLOT,)):
        """Dismiss every notice and cancel pending timers."""
        for slot in list(self._notices):
            if slot not in keep:
                self.clear(slot)

    def current(self, slot):
        return self._notices.get(slot)

    @property
    def active(self):
        with self._lock:
            return dict(self._notices)

    @property
    def pending_timers(self):
        with self._lock:
            return len(self._timers)
