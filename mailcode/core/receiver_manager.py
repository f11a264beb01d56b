"""
Receiver Manager - Holds the one active receiver of the process

Implements the commands the UI calls:
- start_receiver / stop_receiver
- get_codes / get_status
- test_connection

Starting while a receiver is active stops the old one and waits for its
loop to exit before the new one is probed, so two loops never poll at
the same time.
"""

import asyncio
import logging
from typing import List, Optional

from mailcode.config import Settings
from mailcode.core.mail_client import probe_connection
from mailcode.core.receiver import Receiver
from mailcode.models.receiver_status import ReceiverStatus
from mailcode.models.verification_code import VerificationCode

logger = logging.getLogger(__name__)

CONNECTION_SUCCESSFUL = "Connection successful"


class ReceiverManager:
    """Process-wide holder of at most one Receiver"""

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize Receiver Manager

        Args:
            settings: Receiver settings (defaults read from environment)
        """
        self.settings = settings or Settings()
        self.receiver: Optional[Receiver] = None
        self._retired: Optional[Receiver] = None
        self._lock = asyncio.Lock()

    def _build_receiver(self, email: str, password: str, server: str, port: int) -> Receiver:
        settings = self.settings
        return Receiver(
            email=email,
            password=password,
            server=server,
            port=port,
            poll_interval=settings.poll_interval,
            max_consecutive_failures=settings.max_consecutive_failures,
            sender_pattern=settings.sender_pattern,
            iteration_timeout=settings.iteration_timeout,
            socket_timeout=settings.socket_timeout,
            capacity=settings.max_codes,
        )

    async def start_receiver(self, email: str, password: str, server: str, port: int) -> Receiver:
        """
        Start polling a mailbox, replacing any active receiver

        Returns:
            Receiver: The started receiver

        Raises:
            ReceiverError: If the connectivity check fails
        """
        async with self._lock:
            self.stop_receiver()
            await self._await_retired()

            receiver = self._build_receiver(email, password, server, port)
            # Visible to stop_receiver() while the connection check runs
            self.receiver = receiver
            try:
                await receiver.start()
            except Exception:
                if self.receiver is receiver:
                    self.receiver = None
                raise

            if not receiver.is_running:
                logger.info(f"Receiver for {email} was stopped before polling began")
            return receiver

    def stop_receiver(self) -> None:
        """Stop and drop the active receiver (idempotent)"""
        receiver = self.receiver
        if receiver is None:
            return
        receiver.stop()
        self._retired = receiver
        self.receiver = None

    async def _await_retired(self) -> None:
        retired = self._retired
        if retired is None:
            return
        timeout = self.settings.iteration_timeout + 1
        if not await retired.wait_stopped(timeout=timeout):
            logger.warning(
                f"⚠️ Previous receiver for {retired.email} still busy after {timeout:g}s"
            )
        self._retired = None

    def get_codes(self) -> List[VerificationCode]:
        """Codes of the active receiver, newest first ([] when none)"""
        if self.receiver is None:
            return []
        return self.receiver.get_codes()

    def get_status(self) -> ReceiverStatus:
        """Status of the active receiver (idle defaults when none)"""
        if self.receiver is None:
            return ReceiverStatus()
        return self.receiver.get_status()

    async def test_connection(self, email: str, password: str, server: str, port: int) -> str:
        """
        Check mailbox credentials without touching the active receiver

        Returns:
            str: "Connection successful"

        Raises:
            ReceiverError: If the check fails
        """
        await asyncio.to_thread(
            probe_connection, server, port, email, password, self.settings.socket_timeout
        )
        logger.info(f"✅ Connection test passed for {email} ({server}:{port})")
        return CONNECTION_SUCCESSFUL

    async def shutdown(self) -> None:
        """Stop the active receiver and wait for its loop to exit"""
        async with self._lock:
            self.stop_receiver()
            await self._await_retired()
