"""
Settings - Environment-backed configuration

Every field can be passed explicitly; unset fields fall back to the
environment, then to the defaults below.
"""

import os
from dataclasses import dataclass
from typing import Optional

from mailcode.core.code_store import DEFAULT_CAPACITY
from mailcode.core.mail_client import DEFAULT_SENDER_PATTERN, DEFAULT_SOCKET_TIMEOUT


@dataclass
class Settings:
    data_dir: Optional[str] = None
    poll_interval: Optional[float] = None
    max_codes: Optional[int] = None
    max_consecutive_failures: Optional[int] = None
    sender_pattern: Optional[str] = None
    iteration_timeout: Optional[float] = None
    socket_timeout: Optional[float] = None
    log_level: Optional[str] = None

    def __post_init__(self) -> None:
        self.data_dir = self.data_dir or os.getenv("DATA_DIR", "data")
        self.poll_interval = _pick(self.poll_interval, float(os.getenv("RECEIVER_POLL_INTERVAL", "10")))
        self.max_codes = self.max_codes or int(os.getenv("RECEIVER_MAX_CODES", str(DEFAULT_CAPACITY)))
        self.max_consecutive_failures = self.max_consecutive_failures or int(
            os.getenv("RECEIVER_MAX_FAILURES", "3")
        )
        self.sender_pattern = self.sender_pattern or os.getenv(
            "RECEIVER_SENDER_PATTERN", DEFAULT_SENDER_PATTERN
        )
        self.iteration_timeout = self.iteration_timeout or float(
            os.getenv("RECEIVER_ITERATION_TIMEOUT", "60")
        )
        self.socket_timeout = self.socket_timeout or float(
            os.getenv("RECEIVER_SOCKET_TIMEOUT", str(DEFAULT_SOCKET_TIMEOUT))
        )
        self.log_level = (self.log_level or os.getenv("LOG_LEVEL", "INFO")).upper()


def _pick(value, fallback):
    # 0 is a valid poll interval
    return fallback if value is None else value
