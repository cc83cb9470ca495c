"""
Single-slot transaction status broadcaster.

There is exactly one status at a time. Publishing overwrites it (last
writer wins) and cancels the hide timer of the status it replaced, so an
older success/error can never hide a newer status.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from config.config import StatusConfig

logger = logging.getLogger(__name__)


class TxStatus(Enum):
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class TransactionStatus:
    visible: bool
    status: TxStatus
    message: str


HIDDEN = TransactionStatus(visible=False, status=TxStatus.PENDING, message="")


class TransactionStatusTracker:

    def __init__(self, config: Optional[StatusConfig] = None):
        self.config = config or StatusConfig()
        self._current = HIDDEN
        self._subscribers: List[Callable[[TransactionStatus], None]] = []
        self._hide_handle: Optional[asyncio.TimerHandle] = None

    @property
    def current(self) -> TransactionStatus:
        return self._current

    def subscribe(self, callback: Callable[[TransactionStatus], None]) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it"""
        self._subscribers.append(callback)
        return lambda: self._subscribers.remove(callback)

    def pending(self, message: str):
        self._publish(TransactionStatus(True, TxStatus.PENDING, message), None)

    def success(self, message: str):
        self._publish(TransactionStatus(True, TxStatus.SUCCESS, message),
                      self.config.success_display_seconds)

    def error(self, message: str):
        self._publish(TransactionStatus(True, TxStatus.ERROR, message),
                      self.config.error_display_seconds)

    def clear(self):
        self._publish(HIDDEN, None)

    def _publish(self, status: TransactionStatus, display_seconds: Optional[float]):
        if self._hide_handle is not None:
            self._hide_handle.cancel()
            self._hide_handle = None

        self._current = status
        if status.visible:
            logger.debug(f"Status {status.status.value}: {status.message}")

        for callback in list(self._subscribers):
            try:
                callback(status)
            except Exception as e:
                logger.error(f"Status subscriber {callback!r} failed: {e}")

        if display_seconds is not None:
            loop = asyncio.get_running_loop()
            self._hide_handle = loop.call_later(display_seconds, self._hide, status)

    def _hide(self, status: TransactionStatus):
        self._hide_handle = None
        if self._current is status:
            self._publish(HIDDEN, None)
