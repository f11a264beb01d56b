"""
Receiver Routes - API endpoints for the verification code receiver

Provides endpoints for:
- Starting and stopping mailbox polling
- Reading found codes and receiver status
- Testing mailbox credentials
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from mailcode.core.receiver_manager import ReceiverManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/receiver", tags=["receiver"])

# Global receiver manager (initialized on startup)
receiver_manager: Optional[ReceiverManager] = None


def set_receiver_manager(manager: Optional[ReceiverManager]) -> None:
    """
    Set the global receiver manager instance

    Args:
        manager: ReceiverManager instance
    """
    global receiver_manager
    receiver_manager = manager


def _get_manager() -> ReceiverManager:
    if receiver_manager is None:
        raise HTTPException(
            status_code=503,
            detail="Service unavailable: Receiver manager not initialized",
        )
    return receiver_manager


# Request/Response Models
class MailboxCredentials(BaseModel):
    """Mailbox credentials for start and connection test"""

    email: str = Field(..., min_length=1, description="Mailbox user")
    password: str = Field(..., min_length=1, description="Mailbox password")
    server: str = Field(..., min_length=1, description="POP3 server host")
    port: int = Field(995, ge=1, le=65535, description="POP3 over SSL/TLS port")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "email": "user@example.com",
                    "password": "app-password",
                    "server": "pop.example.com",
                    "port": 995,
                }
            ]
        }
    }


class CommandResponse(BaseModel):
    """Result of a receiver command"""

    success: bool = Field(..., description="Whether the command succeeded")
    message: str = Field(..., description="Human readable result")


class VerificationCodeResponse(BaseModel):
    """A found verification code"""

    model_config = ConfigDict(populate_by_name=True)

    code: str
    timestamp: int = Field(..., description="Message time (epoch milliseconds)")
    sender: str = Field(..., alias="from", description="Sender address")
    subject: str


class ReceiverStatusResponse(BaseModel):
    """Receiver status snapshot"""

    model_config = ConfigDict(populate_by_name=True)

    status: str = Field(..., description="idle/connecting/connected/receiving/error/stopped")
    error_message: Optional[str] = Field(None, alias="errorMessage")
    last_check_time: Optional[int] = Field(None, alias="lastCheckTime")
    codes_count: int = Field(0, alias="codesCount")


@router.post("/start", response_model=CommandResponse)
async def start_receiver(request: MailboxCredentials) -> CommandResponse:
    """
    Start polling a mailbox

    Checks the credentials once before polling begins; a failed check is
    returned as an error and nothing is started. An already running
    receiver is replaced.
    """
    manager = _get_manager()
    await manager.start_receiver(
        request.email, request.password, request.server, request.port
    )
    return CommandResponse(success=True, message="Receiver started")


@router.post("/stop", response_model=CommandResponse)
async def stop_receiver() -> CommandResponse:
    """Stop polling (no-op when nothing is running)"""
    _get_manager().stop_receiver()
    return CommandResponse(success=True, message="Receiver stopped")


@router.get("/codes", response_model=List[VerificationCodeResponse])
async def get_codes() -> List[VerificationCodeResponse]:
    """
    Get found verification codes

    Returns:
        List[VerificationCodeResponse]: Codes, newest first
    """
    return [
        VerificationCodeResponse(**code.to_dict())
        for code in _get_manager().get_codes()
    ]


@router.get(
    "/status",
    response_model=ReceiverStatusResponse,
    response_model_exclude_none=True,
)
async def get_status() -> ReceiverStatusResponse:
    """
    Get receiver status

    Returns:
        ReceiverStatusResponse: {status, errorMessage?, lastCheckTime?, codesCount}
    """
    return ReceiverStatusResponse(**_get_manager().get_status().to_dict())


@router.post("/test-connection", response_model=CommandResponse)
async def check_connection(request: MailboxCredentials) -> CommandResponse:
    """
    Test mailbox credentials without affecting the running receiver
    """
    message = await _get_manager().test_connection(
        request.email, request.password, request.server, request.port
    )
    return CommandResponse(success=True, message=message)
