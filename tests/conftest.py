"""
Shared fixtures: fake POP3 mailbox and message builder

poplib.POP3_SSL is replaced by a fake bound to an in-memory mailbox, so
the real mail client code runs without network access.
"""

import asyncio
import poplib
import time
from email.message import EmailMessage
from typing import Callable, List, Optional

import pytest

AWS_SENDER = "no-reply@login.awsapps.com"


class FakeMailbox:
    """In-memory mailbox state shared by every fake connection"""

    def __init__(self):
        self.messages: List[bytes] = []
        self.password = "secret"
        self.connect_error: Optional[Exception] = None
        self.list_error: Optional[Exception] = None
        self.retr_errors = {}
        self.calls = []

    def add(self, raw: bytes) -> None:
        self.messages.append(raw)

    @property
    def connections(self) -> int:
        return sum(1 for call in self.calls if call[0] == "connect")


class FakePOP3:
    """Stand-in for poplib.POP3_SSL"""

    def __init__(self, mailbox: FakeMailbox, host, port, timeout=None):
        if mailbox.connect_error is not None:
            raise mailbox.connect_error
        self.mailbox = mailbox
        mailbox.calls.append(("connect", host, port, timeout))

    def user(self, user):
        self.mailbox.calls.append(("user", user))
        return b"+OK"

    def pass_(self, password):
        if password != self.mailbox.password:
            raise poplib.error_proto(b"-ERR [AUTH] Authentication failed.")
        return b"+OK logged in"

    def list(self):
        if self.mailbox.list_error is not None:
            raise self.mailbox.list_error
        listings = [
            f"{idx} {len(raw)}".encode()
            for idx, raw in enumerate(self.mailbox.messages, start=1)
        ]
        return b"+OK", listings, sum(len(raw) for raw in self.mailbox.messages)

    def retr(self, number):
        self.mailbox.calls.append(("retr", number))
        if number in self.mailbox.retr_errors:
            raise self.mailbox.retr_errors[number]
        raw = self.mailbox.messages[number - 1]
        return b"+OK", raw.split(b"\r\n"), len(raw)

    def quit(self):
        self.mailbox.calls.append(("quit",))
        return b"+OK bye"


@pytest.fixture
def mailbox(monkeypatch) -> FakeMailbox:
    """Fake mailbox wired into poplib.POP3_SSL"""
    box = FakeMailbox()

    def factory(host, port, timeout=None, **_):
        return FakePOP3(box, host, port, timeout)

    monkeypatch.setattr("poplib.POP3_SSL", factory)
    return box


@pytest.fixture
def make_message() -> Callable[..., bytes]:
    """Build raw message bytes"""

    def build(
        sender: str = AWS_SENDER,
        subject: str = "Your verification code",
        body: str = '<div class=3D"code">148885</div>',
        subtype: str = "html",
        date: Optional[str] = "Mon, 20 Jan 2025 10:00:00 +0000",
        encoding: Optional[str] = None,
    ) -> bytes:
        headers = [
            f"From: AWS <{sender}>",
            "To: user@example.com",
            f"Subject: {subject}",
        ]
        if date is not None:
            headers.append(f"Date: {date}")
        headers.append("MIME-Version: 1.0")
        headers.append(f'Content-Type: text/{subtype}; charset="utf-8"')
        if encoding:
            headers.append(f"Content-Transfer-Encoding: {encoding}")
        return ("\r\n".join(headers) + "\r\n\r\n" + body + "\r\n").encode()

    return build


@pytest.fixture
def make_multipart() -> Callable[..., bytes]:
    """Build a multipart/alternative message"""

    def build(plain: Optional[str], html: Optional[str], sender: str = AWS_SENDER) -> bytes:
        message = EmailMessage()
        message["From"] = sender
        message["To"] = "user@example.com"
        message["Subject"] = "Verify your identity"
        message["Date"] = "Mon, 20 Jan 2025 10:00:00 +0000"
        if plain is not None:
            message.set_content(plain)
        if html is not None:
            if plain is None:
                message.set_content(html, subtype="html")
            else:
                message.add_alternative(html, subtype="html")
        return message.as_bytes()

    return build


@pytest.fixture
def wait_until():
    """Poll a predicate from async tests"""

    async def wait(predicate: Callable[[], bool], timeout: float = 5.0) -> None:
        deadline = time.monotonic() + timeout
        while not predicate():
            if time.monotonic() > deadline:
                raise AssertionError("condition not met in time")
            await asyncio.sleep(0.01)

    return wait
