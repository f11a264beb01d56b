"""
Status Routes - API endpoints for service health

Provides endpoints for:
- Health checks (service liveness and receiver state)
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from mailcode.core.receiver_manager import ReceiverManager
from mailcode.models.receiver_status import ReceiverState

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/status", tags=["status"])

# Global receiver manager (shared with receiver routes)
receiver_manager: Optional[ReceiverManager] = None


def set_receiver_manager(manager: Optional[ReceiverManager]) -> None:
    """
    Set the global receiver manager instance

    Args:
        manager: ReceiverManager instance
    """
    global receiver_manager
    receiver_manager = manager


class HealthResponse(BaseModel):
    """Health check response"""

    status: str = Field(..., description="Service status (healthy/degraded)")
    version: str = Field(..., description="API version")
    receiver_state: str = Field(..., description="Current receiver state")
    codes_count: int = Field(..., description="Codes currently held")


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Health check endpoint

    Status determination:
    - healthy: receiver idle, running or stopped
    - degraded: receiver gave up after repeated mail errors
    """
    if receiver_manager is None:
        raise HTTPException(
            status_code=503,
            detail="Service unavailable: Receiver manager not initialized",
        )

    receiver_status = receiver_manager.get_status()
    status = "degraded" if receiver_status.state == ReceiverState.ERROR else "healthy"

    return HealthResponse(
        status=status,
        version="1.0.0",
        receiver_state=receiver_status.state.value,
        codes_count=receiver_status.codes_count,
    )
