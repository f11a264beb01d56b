"""
Errors - Typed failures raised by the mail code receiver

Every error carries a user-facing message. Connection and authentication
errors also carry the server or account they refer to; passwords are
never part of an error.
"""

from typing import Optional

PLAIN_POP3_PORT = 110

PLAIN_POP3_MESSAGE = (
    "Port 110 (plain POP3) is not supported. "
    "Please use port 995 (POP3 over SSL/TLS)"
)


class ReceiverError(Exception):
    """Base class for receiver errors"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ConfigurationError(ReceiverError):
    """Disallowed mail server settings (e.g. plaintext port)"""


class MailConnectionError(ReceiverError):
    """Transport, DNS or TLS failure while reaching the mail server"""

    def __init__(self, server: str, port: int, reason: str):
        super().__init__(f"Failed to connect to {server}:{port} - {reason}")
        self.server = server
        self.port = port


class AuthenticationError(ReceiverError):
    """Mail server rejected the login"""

    def __init__(self, email: str, reason: str):
        super().__init__(f"Login failed for {email} - {reason}")
        self.email = email


class RetrievalError(ReceiverError):
    """Listing or fetching messages failed"""

    def __init__(self, reason: str, message_number: Optional[int] = None):
        if message_number is None:
            message = f"Failed to list emails - {reason}"
        else:
            message = f"Failed to retrieve email #{message_number} - {reason}"
        super().__init__(message)
        self.message_number = message_number


class ParseError(ReceiverError):
    """Message bytes could not be decoded"""


class ReceiverTimeoutError(ReceiverError):
    """A poll iteration did not finish within its time limit"""

    def __init__(self, timeout: float):
        super().__init__(f"Mail check timed out after {timeout:g}s")
        self.timeout = timeout


class StorageError(Exception):
    """Account or session file could not be read or written"""
