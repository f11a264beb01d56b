"""
Code Store - Bounded, deduplicated list of found verification codes

Newest first. A code already present is never refreshed or moved; once
the store is full the oldest entry is evicted.
"""

import logging
import threading
from collections import deque
from typing import Deque, Iterable, List

from mailcode.models.verification_code import VerificationCode

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 10


class CodeStore:
    """Thread-safe most-recent-first collection of verification codes"""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        """
        Initialize Code Store

        Args:
            capacity: Maximum number of codes kept
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._codes: Deque[VerificationCode] = deque()
        self._lock = threading.Lock()

    def add(self, code: VerificationCode) -> bool:
        """
        Insert a code at the front unless its digits are already stored

        Args:
            code: Code to insert

        Returns:
            bool: True if inserted, False if it was a duplicate
        """
        with self._lock:
            if any(existing.code == code.code for existing in self._codes):
                return False

            self._codes.appendleft(code)
            if len(self._codes) > self.capacity:
                evicted = self._codes.pop()
                logger.debug(f"Evicted oldest code {evicted.code}")
            return True

    def add_all(self, codes: Iterable[VerificationCode]) -> int:
        """
        Insert codes in order

        Returns:
            int: Number of codes actually inserted
        """
        return sum(1 for code in codes if self.add(code))

    def snapshot(self) -> List[VerificationCode]:
        """Return the stored codes, newest first"""
        with self._lock:
            return list(self._codes)

    def __len__(self) -> int:
        with self._lock:
            return len(self._codes)
