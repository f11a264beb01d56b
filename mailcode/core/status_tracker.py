"""
Status Tracker - Lock-guarded receiver status snapshot

The poll loop is the main writer; stop() writes through the same lock.
Each outcome is applied as one locked update so readers never see fields
from two different iterations.

Once the receiver is stopped, later writes from a still-running
iteration are ignored so the stopped state sticks.
"""

import threading
import time
from typing import Optional

from mailcode.models.receiver_status import ReceiverState, ReceiverStatus


def now_millis() -> int:
    """Current time as epoch milliseconds"""
    return int(time.time() * 1000)


class StatusTracker:
    """Holds the single live ReceiverStatus of a receiver"""

    def __init__(self):
        self._status = ReceiverStatus()
        self._lock = threading.Lock()

    def snapshot(self) -> ReceiverStatus:
        """Return a consistent copy of the current status"""
        with self._lock:
            return self._status.copy()

    @property
    def state(self) -> ReceiverState:
        with self._lock:
            return self._status.state

    def _is_stopped(self) -> bool:
        return self._status.state == ReceiverState.STOPPED

    def mark_connecting(self) -> None:
        """Probe succeeded, loop about to be spawned"""
        with self._lock:
            if self._is_stopped():
                return
            self._status.state = ReceiverState.CONNECTING
            self._status.error_message = None

    def mark_connected(self) -> None:
        """Loop entered"""
        with self._lock:
            if self._is_stopped():
                return
            self._status.state = ReceiverState.CONNECTED
            self._status.error_message = None

    def mark_receiving(self) -> None:
        """Top of a poll iteration"""
        with self._lock:
            if self._is_stopped():
                return
            self._status.state = ReceiverState.RECEIVING

    def record_success(self, codes_count: int, checked_at: Optional[int] = None) -> None:
        """
        Fold a successful iteration into the status

        Args:
            codes_count: Code Store length after the iteration
            checked_at: Check time in epoch ms (defaults to now)
        """
        with self._lock:
            if self._is_stopped():
                return
            self._status.error_message = None
            self._status.last_check_time = checked_at if checked_at is not None else now_millis()
            self._status.codes_count = codes_count

    def record_failure(self, error_message: str, terminal: bool = False) -> None:
        """
        Fold a failed iteration into the status

        Args:
            error_message: Description of the failure
            terminal: Move to ERROR (failure threshold reached)
        """
        with self._lock:
            if self._is_stopped():
                return
            self._status.error_message = error_message
            if terminal:
                self._status.state = ReceiverState.ERROR

    def mark_stopped(self) -> None:
        """Explicit stop; wins over any prior state"""
        with self._lock:
            self._status.state = ReceiverState.STOPPED
            self._status.error_message = None
