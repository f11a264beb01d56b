"""
Mail Code Receiver - Main Application Entry

Local API for the desktop UI: account storage and a POP3 mailbox
receiver that collects one-time verification codes.
"""

import logging

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from mailcode.config import Settings
from mailcode.core.account_store import AccountStore, JsonStorage
from mailcode.core.error_handlers import (
    general_exception_handler,
    http_exception_handler,
    receiver_exception_handler,
    storage_exception_handler,
    validation_exception_handler,
)
from mailcode.core.errors import ReceiverError, StorageError
from mailcode.core.receiver_manager import ReceiverManager
from mailcode.routes import accounts, receiver, status

settings = Settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# App metadata
app = FastAPI(
    title="Mail Code Receiver",
    description="Account storage and POP3 verification code receiver",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Register exception handlers
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(ReceiverError, receiver_exception_handler)
app.add_exception_handler(StorageError, storage_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

# CORS middleware (UI webview runs on its own origin)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(receiver.router)
app.include_router(accounts.router)
app.include_router(status.router)


@app.on_event("startup")
async def startup_event():
    """Initialize application on startup"""
    logger.info("🚀 Starting Mail Code Receiver...")

    manager = ReceiverManager(settings)
    store = AccountStore(JsonStorage(settings.data_dir))

    receiver.set_receiver_manager(manager)
    status.set_receiver_manager(manager)
    accounts.set_account_store(store)

    logger.info(
        f"✅ Ready (data dir: {settings.data_dir}, poll interval: {settings.poll_interval:g}s, "
        f"sender pattern: {settings.sender_pattern})"
    )


@app.on_event("shutdown")
async def shutdown_event():
    """Stop the receiver loop before exit"""
    manager = receiver.receiver_manager
    if manager is not None:
        await manager.shutdown()
    logger.info("👋 Mail Code Receiver stopped")


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": "Mail Code Receiver",
        "version": "1.0.0",
        "status": "active",
        "docs": "/docs",
        "endpoints": {
            "start_receiver": "/api/v1/receiver/start",
            "stop_receiver": "/api/v1/receiver/stop",
            "codes": "/api/v1/receiver/codes",
            "receiver_status": "/api/v1/receiver/status",
            "test_connection": "/api/v1/receiver/test-connection",
            "accounts": "/api/v1/accounts",
            "health": "/api/v1/status/health",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "mailcode.main:app",
        host="127.0.0.1",
        port=8000,
        reload=False,
    )
