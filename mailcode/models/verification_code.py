"""
Verification Code Model - A single code found in the mailbox

Immutable value produced by the poll loop when extraction succeeds.
Two codes are the same code when their digit strings match; the other
fields only describe where the code came from.
"""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class VerificationCode:
    """Verification code extracted from one mail message"""

    code: str
    timestamp: int  # Epoch milliseconds (message date or receipt time)
    sender: str
    subject: str

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to the UI wire format

        Returns:
            dict: {code, timestamp, from, subject}
        """
        return {
            "code": self.code,
            "timestamp": self.timestamp,
            "from": self.sender,
            "subject": self.subject,
        }
