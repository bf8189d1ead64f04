#!/usr/bin/env python3
"""
Courier - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Initializes modules
3. Runs the HTTP control surface

All business logic is in the modules, following black box principles.
"""

import logging
import logging.config as log_config
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from courier import __version__
from courier.config.provider import ConfigProvider, EnvConfigProvider
from courier.errors import InvalidRequest, NotConnected, TransportError
from courier.logging_config import get_logging_config
from courier.modules.api import (
    BaseResponse,
    GroupModel,
    GroupsResponse,
    HealthResponse,
    InitializeResponse,
    PublishRequest,
    PublishResponse,
    QRCodeResponse,
    StatusResponse,
)
from courier.modules.auth import AuthModule
from courier.modules.config import get_config
from courier.modules.dispatch import DispatchEngine
from courier.modules.middleware import BodySizeLimitMiddleware, create_api_key_middleware
from courier.modules.session import ConnectStatus, SessionManager
from courier.modules.storage import CredentialStore, build_credential_store
from courier.modules.transport import BridgeTransport

# Get configuration
config = get_config()

log_config.dictConfig(get_logging_config(config.get("log_level")))
logger = logging.getLogger(__name__)

# Configuration provider (centralized config access)
config_provider: ConfigProvider = EnvConfigProvider()
api_config = config_provider.get_api_config()
auth_config = config_provider.get_auth_config()

# Module instances (initialized at startup)
credential_store: Optional[CredentialStore] = None
transport: Optional[BridgeTransport] = None
session_manager: Optional[SessionManager] = None
dispatch_engine: Optional[DispatchEngine] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle - initialize and cleanup resources.
    """
    global credential_store, transport, session_manager, dispatch_engine

    logger.info("Starting Courier gateway...")

    credential_store = await build_credential_store(config)
    transport = BridgeTransport(
        base_url=config.get("bridge_url"),
        client_name=config.get("client_name"),
        token=config.get("bridge_token"),
        request_timeout=config.get("request_timeout"),
    )
    session_manager = SessionManager(
        transport,
        credential_store,
        reconnect_delay=config.get("reconnect_delay"),
        max_reconnect_attempts=config.get("max_reconnect_attempts"),
        connect_timeout=config.get("connect_timeout"),
        poll_interval=config.get("connect_poll_interval"),
    )
    dispatch_engine = DispatchEngine(session_manager)

    if config.get("auto_resume") and await session_manager.resume():
        logger.info("Auth found, auto-connecting...")

    logger.info(f"Courier gateway started, protocol bridge at {config.get('bridge_url')}")

    yield

    logger.info("Shutting down Courier gateway...")
    await session_manager.shutdown()
    await transport.aclose()
    await credential_store.close()
    logger.info("Courier gateway shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Courier API",
    description="Courier - Messaging Session Gateway",
    version=__version__,
    lifespan=lifespan,
)

# Last registered runs first: requests pass CORS, then the size check, then auth
if auth_config.require_auth:
    auth_module = AuthModule(auth_config.api_keys)
    app.middleware("http")(
        create_api_key_middleware(auth_module, skip_paths={"/health": ["GET"]})
    )
    logger.info("API key authentication enabled")
app.middleware("http")(BodySizeLimitMiddleware(api_config.max_body_bytes))
app.add_middleware(
    CORSMiddleware,
    allow_origins=api_config.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Dependency helpers


def get_session_manager() -> SessionManager:
    if not session_manager:
        raise HTTPException(503, "Service not initialized")
    return session_manager


def get_dispatch_engine() -> DispatchEngine:
    if not dispatch_engine:
        raise HTTPException(503, "Service not initialized")
    return dispatch_engine


# Session Endpoints


@app.post("/initialize", response_model=InitializeResponse, response_model_exclude_none=True)
async def initialize():
    """
    Start a session, or report that one is already live.

    Returns:
        200: Connected, or a pairing code is ready at /qr-code
        500: Neither happened within the connect timeout
    """
    manager = get_session_manager()
    outcome = await manager.request_connection()

    if outcome.status == ConnectStatus.ALREADY_CONNECTED:
        return InitializeResponse(success=True, message="Already connected", status="connected")
    if outcome.status == ConnectStatus.PAIRING_READY:
        return InitializeResponse(success=True, message="QR code generated", status="qr_ready")

    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Failed to generate QR code"},
    )


@app.get("/qr-code", response_model=QRCodeResponse, response_model_exclude_none=True)
async def get_qr_code():
    """Return the current pairing code, if any."""
    state = get_session_manager().state

    if state.pairing_code:
        return QRCodeResponse(success=True, qr=state.pairing_code, status=state.phase.value)
    if state.connected:
        return QRCodeResponse(success=True, status=state.phase.value, message="Already connected")
    return QRCodeResponse(success=False, status=state.phase.value, message="No QR code available")


@app.get("/status", response_model=StatusResponse, response_model_exclude_none=True)
async def get_status():
    """Return the session phase."""
    state = get_session_manager().get_status()
    return StatusResponse(
        success=True,
        connected=state.connected,
        status=state.phase.value,
        generation=state.generation,
        reconnect_attempts=state.reconnect_attempts,
    )


@app.post("/logout", response_model=BaseResponse, response_model_exclude_none=True)
async def logout():
    """Log out and delete stored credentials. Always succeeds."""
    await get_session_manager().logout()
    return BaseResponse(success=True, message="Logged out successfully")


# Messaging Endpoints


@app.get("/groups", response_model=GroupsResponse, response_model_exclude_none=True)
async def list_groups():
    """
    List groups the account participates in.

    Returns:
        200: Group list
        400: Session not connected
        500: Network call failed
    """
    groups = await get_session_manager().list_groups()
    return GroupsResponse(success=True, groups=[GroupModel.from_summary(g) for g in groups])


@app.post("/publish", response_model=PublishResponse, response_model_exclude_none=True)
async def publish(payload: PublishRequest):
    """
    Send a message to several numbers or to one group.

    Partial failures still return 200 with ``success: false`` and
    per-recipient results.

    Returns:
        200: Delivery attempted
        400: Session not connected or request invalid
    """
    manager = get_session_manager()
    engine = get_dispatch_engine()

    if not manager.is_connected:
        raise NotConnected()

    outcome = await engine.publish(payload.to_delivery())
    return PublishResponse.from_outcome(outcome)


@app.get("/health", response_model=HealthResponse)
async def health():
    """Liveness check; reports the session phase without touching the network."""
    phase = session_manager.state.phase.value if session_manager else "not initialized"
    return HealthResponse(status="healthy", session=phase, version=__version__)


# Error handlers


@app.exception_handler(InvalidRequest)
async def invalid_request_handler(request, exc):
    """Handle malformed caller input."""
    logger.info(f"Invalid request to {request.url.path}: {exc}")
    return JSONResponse(status_code=400, content={"success": False, "message": str(exc)})


def _describe_validation_error(error) -> str:
    location = ".".join(str(part) for part in error["loc"] if part != "body")
    return f"{location or 'body'}: {error['msg']}"


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request, exc):
    """Report unparseable or mistyped request bodies as invalid requests."""
    details = "; ".join(_describe_validation_error(error) for error in exc.errors())
    logger.info(f"Invalid request to {request.url.path}: {details}")
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": f"Invalid request: {details}"},
    )


@app.exception_handler(NotConnected)
async def not_connected_handler(request, exc):
    """Handle operations attempted without a live session."""
    return JSONResponse(status_code=400, content={"success": False, "message": str(exc)})


@app.exception_handler(TransportError)
async def transport_error_handler(request, exc):
    """Handle failed calls to the messaging network."""
    logger.error(f"Transport error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"success": False, "message": str(exc)})


def main():
    """Main entry point."""
    uvicorn.run(
        "courier.main:app",
        host=config.get("host"),
        port=config.get("port"),
        log_level=config.get("log_level").lower(),
        reload=config.get("debug"),
        log_config=get_logging_config(config.get("log_level")),
    )


if __name__ == "__main__":
    main()
