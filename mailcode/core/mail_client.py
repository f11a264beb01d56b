"""
Mail Session Client - POP3 over SSL/TLS session and message parsing

One session per poll iteration:
1. connect_and_authenticate() opens POP3_SSL and logs in
2. list_messages() returns message numbers in server order
3. retrieve() returns the raw RFC 822 bytes of one message
4. close() sends QUIT

Plain POP3 (port 110) is refused before any network attempt.
"""

import logging
import poplib
import re
import time
from dataclasses import dataclass
from datetime import timezone
from email import policy
from email.errors import MessageError
from email.message import EmailMessage, Message
from email.parser import BytesHeaderParser, BytesParser
from email.utils import parseaddr, parsedate_to_datetime
from typing import List, Optional, Pattern, Union

from mailcode.core.errors import (
    PLAIN_POP3_MESSAGE,
    PLAIN_POP3_PORT,
    AuthenticationError,
    ConfigurationError,
    MailConnectionError,
    ParseError,
    RetrievalError,
)

logger = logging.getLogger(__name__)

DEFAULT_SENDER_PATTERN = r"no-reply@login\.awsapps\.com"
DEFAULT_SOCKET_TIMEOUT = 30.0


@dataclass
class MailMessage:
    """Parsed fields of one message"""

    sender: str
    subject: str
    body: str
    timestamp: int  # Epoch milliseconds


def validate_port(port: int) -> None:
    """
    Reject plaintext POP3

    Raises:
        ConfigurationError: If port is 110
    """
    if port == PLAIN_POP3_PORT:
        raise ConfigurationError(PLAIN_POP3_MESSAGE)


class MailSession:
    """Authenticated POP3 session"""

    def __init__(self, client: poplib.POP3_SSL, server: str, port: int):
        self._client = client
        self.server = server
        self.port = port

    def __enter__(self) -> "MailSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def list_messages(self) -> List[int]:
        """
        List message numbers in the mailbox

        Returns:
            List[int]: Message numbers in listing order

        Raises:
            RetrievalError: If the LIST command fails
        """
        try:
            _, listings, _ = self._client.list()
        except (poplib.error_proto, OSError) as e:
            raise RetrievalError(_describe(e)) from e

        numbers = []
        for item in listings:
            line = item.decode() if isinstance(item, bytes) else item
            parts = line.split()
            if not parts:
                continue
            try:
                numbers.append(int(parts[0]))
            except ValueError as e:
                raise RetrievalError(f"Malformed LIST entry {line!r}") from e
        return numbers

    def retrieve(self, message_number: int) -> bytes:
        """
        Fetch a complete message

        Args:
            message_number: Number from list_messages()

        Returns:
            bytes: Raw message

        Raises:
            RetrievalError: If the RETR command fails
        """
        try:
            _, lines, _ = self._client.retr(message_number)
        except (poplib.error_proto, OSError) as e:
            raise RetrievalError(_describe(e), message_number) from e
        return b"\r\n".join(lines)

    def close(self) -> None:
        """Send QUIT and drop the connection"""
        if self._client is None:
            return
        try:
            self._client.quit()
        except (poplib.error_proto, OSError) as e:
            logger.debug(f"Error during POP3 quit on {self.server}:{self.port}: {e}")
        finally:
            self._client = None


def connect_and_authenticate(
    server: str,
    port: int,
    email: str,
    password: str,
    timeout: float = DEFAULT_SOCKET_TIMEOUT,
) -> MailSession:
    """
    Open an authenticated POP3 over SSL/TLS session

    Args:
        server: Mail server host
        port: Mail server port (995 for POP3S)
        email: Mailbox user
        password: Mailbox password
        timeout: Socket timeout in seconds

    Returns:
        MailSession: Logged-in session; caller must close it

    Raises:
        ConfigurationError: If port is 110
        MailConnectionError: If the server cannot be reached over TLS
        AuthenticationError: If the login is rejected
    """
    validate_port(port)

    try:
        client = poplib.POP3_SSL(server, port, timeout=timeout)
    except (poplib.error_proto, OSError) as e:
        raise MailConnectionError(server, port, str(e)) from e

    session = MailSession(client, server, port)
    try:
        client.user(email)
        client.pass_(password)
    except (poplib.error_proto, OSError) as e:
        session.close()
        raise AuthenticationError(email, _describe(e)) from e

    logger.debug(f"Logged in to {server}:{port} as {email}")
    return session


def probe_connection(
    server: str,
    port: int,
    email: str,
    password: str,
    timeout: float = DEFAULT_SOCKET_TIMEOUT,
) -> None:
    """Connect, log in and disconnect; raises like connect_and_authenticate()"""
    session = connect_and_authenticate(server, port, email, password, timeout)
    session.close()


def _describe(error: Exception) -> str:
    if isinstance(error, poplib.error_proto) and error.args:
        reason = error.args[0]
        if isinstance(reason, bytes):
            return reason.decode(errors="replace")
    return str(error)


def compile_sender_pattern(pattern: Union[str, Pattern[str]]) -> Pattern[str]:
    """Compile a sender allow-pattern (regex, case-insensitive)"""
    if isinstance(pattern, str):
        return re.compile(pattern, re.IGNORECASE)
    return pattern


def read_sender(raw: bytes) -> str:
    """
    Read only the sender address from raw message headers

    Args:
        raw: Raw message bytes

    Returns:
        str: Sender address, or "" if absent
    """
    headers = BytesHeaderParser().parsebytes(raw)
    return parseaddr(str(headers.get("From", "")))[1]


def _decode_part(part: Message) -> str:
    payload = part.get_payload(decode=True)
    if not payload:
        return ""
    charset = part.get_content_charset() or "utf-8"
    try:
        return payload.decode(charset, errors="replace")
    except LookupError as e:
        raise ParseError(f"Unknown charset {charset!r}") from e
    except ValueError as e:
        # UnicodeError included; some codecs reject errors="replace"
        raise ParseError(f"Cannot decode {charset!r} body: {e}") from e


def _get_email_body(message: EmailMessage) -> str:
    for preference in ("plain", "html"):
        part = message.get_body(preferencelist=(preference,))
        if part is None:
            continue
        text = _decode_part(part)
        if text:
            return text
    return ""


def _parse_timestamp(date_header: Optional[str]) -> int:
    """Message date as epoch milliseconds, now if missing or unparsable"""
    if date_header:
        try:
            dt = parsedate_to_datetime(date_header)
        except (TypeError, ValueError, IndexError):
            dt = None
        if dt is not None:
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            return int(dt.timestamp() * 1000)
    return int(time.time() * 1000)


def parse_message(raw: bytes) -> MailMessage:
    """
    Parse raw message bytes into structured fields

    The body is the plain-text part, falling back to the HTML part.

    Args:
        raw: Raw message bytes

    Returns:
        MailMessage: sender, subject, body, timestamp

    Raises:
        ParseError: If the message cannot be decoded
    """
    try:
        message = BytesParser(policy=policy.default).parsebytes(raw)
        sender = parseaddr(str(message.get("From", "")))[1]
        subject = str(message.get("Subject", "") or "")
    except (MessageError, UnicodeError, ValueError) as e:
        raise ParseError(f"Malformed message: {e}") from e

    try:
        body = _get_email_body(message)
    except (MessageError, LookupError, ValueError, TypeError) as e:
        raise ParseError(f"Malformed message body: {e}") from e

    try:
        date_header = message.get("Date")
    except (TypeError, ValueError):
        date_header = None

    return MailMessage(
        sender=sender,
        subject=subject,
        body=body,
        timestamp=_parse_timestamp(str(date_header) if date_header else None),
    )
