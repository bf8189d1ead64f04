"""
API Module - Black Box Interface

Purpose: HTTP request and response shapes
Interface: Pydantic models used by the REST endpoints
Hidden: Field aliases, outcome-to-response mapping

The API module only orchestrates - it contains no business logic.
All logic is delegated to the session and dispatch modules.
"""

from .models import (
    BaseResponse,
    GroupModel,
    GroupsResponse,
    HealthResponse,
    InitializeResponse,
    PublishRequest,
    PublishResponse,
    QRCodeResponse,
    RecipientResultModel,
    StatusResponse,
)

__all__ = [
    "BaseResponse",
    "GroupModel",
    "GroupsResponse",
    "HealthResponse",
    "InitializeResponse",
    "PublishRequest",
    "PublishResponse",
    "QRCodeResponse",
    "RecipientResultModel",
    "StatusResponse",
]
