"""
Receiver Status Model - Lifecycle state snapshot for the mail code receiver

State machine:
    idle -> connecting -> connected -> receiving -> error | stopped

error and stopped are terminal for a receiver instance; a new start always
builds a fresh receiver that begins at idle.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional


class ReceiverState(str, Enum):
    """Receiver lifecycle state enumeration"""

    IDLE = "idle"  # No receiver active
    CONNECTING = "connecting"  # Credentials validated, loop about to start
    CONNECTED = "connected"  # Loop entered
    RECEIVING = "receiving"  # Actively polling
    ERROR = "error"  # Too many consecutive failures
    STOPPED = "stopped"  # Explicitly stopped


@dataclass
class ReceiverStatus:
    """Point-in-time receiver status"""

    state: ReceiverState = ReceiverState.IDLE
    error_message: Optional[str] = None
    last_check_time: Optional[int] = None  # Epoch milliseconds
    codes_count: int = 0

    def copy(self) -> "ReceiverStatus":
        """Return a detached copy safe to hand to readers"""
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to the UI wire format

        Optional fields are omitted when unset.

        Returns:
            dict: {status, errorMessage?, lastCheckTime?, codesCount}
        """
        data: Dict[str, Any] = {
            "status": self.state.value,
            "codesCount": self.codes_count,
        }
        if self.error_message:
            data["errorMessage"] = self.error_message
        if self.last_check_time is not None:
            data["lastCheckTime"] = self.last_check_time
        return data
