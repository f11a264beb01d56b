"""
Receiver - Mailbox polling loop for verification codes

Lifecycle:
1. start(): probe the mailbox once (connect + login); on failure nothing runs
2. Background task: every poll_interval seconds open a fresh POP3 session,
   scan all messages, keep codes from the allowed sender
3. Three consecutive failed iterations move the receiver to ERROR and end
   the loop
4. stop(): clear the running flag; the loop exits at its next iteration
   boundary (the inter-poll delay wakes early)

Blocking POP3 work runs in a worker thread, bounded by iteration_timeout.
get_status() and get_codes() never wait on mail I/O.
"""

import asyncio
import logging
import threading
from typing import List, Optional

from mailcode.core.code_store import DEFAULT_CAPACITY, CodeStore
from mailcode.core.errors import ParseError, ReceiverError, ReceiverTimeoutError, RetrievalError
from mailcode.core.extractor import extract_verification_code
from mailcode.core.mail_client import (
    DEFAULT_SENDER_PATTERN,
    DEFAULT_SOCKET_TIMEOUT,
    compile_sender_pattern,
    connect_and_authenticate,
    parse_message,
    probe_connection,
    read_sender,
)
from mailcode.core.status_tracker import StatusTracker
from mailcode.models.receiver_status import ReceiverState, ReceiverStatus
from mailcode.models.verification_code import VerificationCode

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 10.0
DEFAULT_MAX_CONSECUTIVE_FAILURES = 3
DEFAULT_ITERATION_TIMEOUT = 60.0


class Receiver:
    """Polls one mailbox and collects verification codes"""

    def __init__(
        self,
        email: str,
        password: str,
        server: str,
        port: int,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_consecutive_failures: int = DEFAULT_MAX_CONSECUTIVE_FAILURES,
        sender_pattern: str = DEFAULT_SENDER_PATTERN,
        iteration_timeout: float = DEFAULT_ITERATION_TIMEOUT,
        socket_timeout: float = DEFAULT_SOCKET_TIMEOUT,
        capacity: int = DEFAULT_CAPACITY,
    ):
        """
        Initialize Receiver

        Args:
            email: Mailbox user
            password: Mailbox password
            server: POP3 server host
            port: POP3 over SSL/TLS port
            poll_interval: Seconds between iterations
            max_consecutive_failures: Failed iterations before ERROR
            sender_pattern: Regex a sender address must match
            iteration_timeout: Time limit for one iteration's network work
            socket_timeout: Socket timeout for the POP3 connection
            capacity: Maximum number of codes kept
        """
        self.email = email
        self.password = password
        self.server = server
        self.port = port

        self.poll_interval = poll_interval
        self.max_consecutive_failures = max_consecutive_failures
        self.sender_pattern = compile_sender_pattern(sender_pattern)
        self.iteration_timeout = iteration_timeout
        self.socket_timeout = socket_timeout

        self.codes = CodeStore(capacity)
        self.status = StatusTracker()
        # Poll iterations begun so far (read-only introspection)
        self.iterations = 0

        # Running flag, shared with stop() callers on any thread
        self._running = threading.Event()
        self._task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._wakeup: Optional[asyncio.Event] = None
        # Latest mail check; outlives its iteration when that iteration times out
        self._worker: Optional[asyncio.Future] = None

    @property
    def is_running(self) -> bool:
        return self._running.is_set()

    @property
    def is_active(self) -> bool:
        """True while the background loop task is alive"""
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """
        Probe the mailbox, then spawn the polling loop

        Raises:
            ConfigurationError: If the port is plaintext POP3
            MailConnectionError: If the server cannot be reached
            AuthenticationError: If the login is rejected
            RuntimeError: If this receiver was already started
        """
        if self._task is not None:
            raise RuntimeError("Receiver already started")

        await asyncio.to_thread(
            probe_connection,
            self.server,
            self.port,
            self.email,
            self.password,
            self.socket_timeout,
        )

        self._loop = asyncio.get_running_loop()
        self._wakeup = asyncio.Event()
        self._running.set()

        # Checked after the flag is raised so a concurrent stop() is never lost
        if self.status.state == ReceiverState.STOPPED:
            self._running.clear()
            logger.info(f"Receiver for {self.email} stopped during connection check")
            return

        self.status.mark_connecting()

        self._task = asyncio.create_task(
            self._poll_loop(), name=f"mail-receiver-{self.email}"
        )
        logger.info(f"📬 Mail receiver started for {self.email} ({self.server}:{self.port})")

    def stop(self) -> None:
        """Request the loop to exit and mark the receiver stopped (idempotent)"""
        was_running = self._running.is_set()
        self._running.clear()
        self.status.mark_stopped()

        if self._loop is not None and self._wakeup is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._wakeup.set)

        if was_running:
            logger.info(f"🛑 Mail receiver stop requested for {self.email}")

    async def wait_stopped(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the background loop and its last mail check to finish

        Args:
            timeout: Maximum seconds to wait (None waits forever)

        Returns:
            bool: True if nothing is left running
        """
        pending = {f for f in (self._task, self._worker) if f is not None}
        if not pending:
            return True
        _, not_done = await asyncio.wait(pending, timeout=timeout)
        return not not_done

    def get_status(self) -> ReceiverStatus:
        """Return a consistent status snapshot"""
        return self.status.snapshot()

    def get_codes(self) -> List[VerificationCode]:
        """Return found codes, newest first"""
        return self.codes.snapshot()

    async def _poll_loop(self) -> None:
        self.status.mark_connected()
        consecutive_failures = 0

        try:
            while self._running.is_set():
                self.status.mark_receiving()
                self.iterations += 1

                error = await self._run_iteration()
                if not self._running.is_set():
                    break
                if error is None:
                    consecutive_failures = 0
                else:
                    consecutive_failures += 1
                    logger.warning(
                        f"⚠️ Mail check error ({consecutive_failures}/"
                        f"{self.max_consecutive_failures}) for {self.email}: {error}"
                    )
                    if consecutive_failures >= self.max_consecutive_failures:
                        self.status.record_failure(
                            f"Too many consecutive errors: {error}", terminal=True
                        )
                        logger.error(f"❌ Mail receiver for {self.email} gave up: {error}")
                        return
                    self.status.record_failure(str(error))

                await self._wait_next_poll()
        except Exception as e:
            logger.exception(f"❌ Mail receiver loop crashed for {self.email}")
            self.status.record_failure(f"Unexpected error: {e}", terminal=True)
        finally:
            self._running.clear()
            logger.info(f"Mail receiver loop exited for {self.email}")

    async def _run_iteration(self) -> Optional[ReceiverError]:
        """
        Run one mail check and fold its codes into the store

        Returns:
            Optional[ReceiverError]: The failure, or None on success
        """
        if not await self._wait_for_worker():
            return ReceiverTimeoutError(self.iteration_timeout)

        self._worker = asyncio.ensure_future(asyncio.to_thread(self._check_mailbox))
        try:
            # shield: on timeout the thread keeps running and _worker tracks it
            found = await asyncio.wait_for(
                asyncio.shield(self._worker),
                timeout=self.iteration_timeout,
            )
        except asyncio.TimeoutError:
            return ReceiverTimeoutError(self.iteration_timeout)
        except ReceiverError as e:
            return e

        inserted = self.codes.add_all(found)
        if inserted:
            logger.info(f"Stored {inserted} new verification code(s) for {self.email}")
        self.status.record_success(len(self.codes))
        return None

    async def _wait_for_worker(self) -> bool:
        """
        Let a timed-out mail check release its POP3 session before a new one opens

        Returns:
            bool: True if no earlier check is still running
        """
        worker = self._worker
        if worker is None or worker.done():
            return True

        logger.warning(f"⚠️ Previous mail check for {self.email} still running, waiting for it")
        wakeup = asyncio.ensure_future(self._wakeup.wait())
        try:
            await asyncio.wait(
                {worker, wakeup},
                timeout=self.iteration_timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            wakeup.cancel()
        return worker.done()

    async def _wait_next_poll(self) -> None:
        if not self._running.is_set():
            return
        try:
            await asyncio.wait_for(self._wakeup.wait(), timeout=self.poll_interval)
        except asyncio.TimeoutError:
            return

    def _check_mailbox(self) -> List[VerificationCode]:
        """
        One full POP3 pass, run in a worker thread

        Returns:
            List[VerificationCode]: Codes found, in listing order
        """
        found: List[VerificationCode] = []
        session = connect_and_authenticate(
            self.server, self.port, self.email, self.password, self.socket_timeout
        )
        with session:
            message_numbers = session.list_messages()
            logger.debug(f"{len(message_numbers)} message(s) in mailbox {self.email}")

            for number in message_numbers:
                try:
                    raw = session.retrieve(number)
                except RetrievalError as e:
                    logger.warning(f"Skipping message: {e}")
                    continue

                code = self._process_message(number, raw)
                if code is not None:
                    found.append(code)
        return found

    def _process_message(self, number: int, raw: bytes) -> Optional[VerificationCode]:
        sender = read_sender(raw)
        if not self.sender_pattern.search(sender):
            logger.debug(f"Skipping message #{number} from {sender or 'unknown sender'}")
            return None

        try:
            message = parse_message(raw)
        except ParseError as e:
            logger.debug(f"Could not parse message #{number}: {e}")
            return None

        code = extract_verification_code(message.body)
        if code is None:
            logger.debug(f"✗ No verification code in message #{number}")
            return None

        logger.info(f"✓ Found verification code {code} from {message.sender or sender}")
        return VerificationCode(
            code=code,
            timestamp=message.timestamp,
            sender=message.sender or sender,
            subject=message.subject,
        )
