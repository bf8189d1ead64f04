"""
Courier control surface data models.

These models define the JSON shapes accepted and returned by the
HTTP API. Field names follow the wire format (camelCase where the
clients send camelCase).
"""

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..dispatch import DeliveryOutcome, DeliveryRequest, build_delivery_request
from ..session import GroupSummary


# Request Models (API Input)


class PublishRequest(BaseModel):
    """Request to publish a message to recipients or a group."""

    model_config = ConfigDict(populate_by_name=True)

    mode: Optional[str] = Field(None, description="'numbers' (or 'direct') for direct delivery, or 'group'")
    recipients: Optional[List[Union[str, int]]] = Field(
        None, description="Phone numbers for mode 'numbers'; bare integers are accepted"
    )
    group_id: Optional[str] = Field(None, alias="groupId", description="Group address for mode 'group'")
    caption: Optional[str] = Field(None, description="Message text, or media caption")
    media_url: Optional[str] = Field(None, alias="mediaUrl", description="Public URL of the media to attach")
    media_type: Optional[str] = Field(None, alias="mediaType", description="'image' (default) or 'video'")

    def to_delivery(self) -> DeliveryRequest:
        """
        Validate and convert to a delivery request.

        Raises:
            InvalidRequest: If required fields are missing
        """
        return build_delivery_request(
            mode=self.mode,
            caption=self.caption,
            recipients=[str(r) for r in self.recipients] if self.recipients is not None else None,
            group_id=self.group_id,
            media_url=self.media_url,
            media_type=self.media_type,
        )


# Response Models (API Output)


class BaseResponse(BaseModel):
    success: bool
    message: Optional[str] = None


class InitializeResponse(BaseResponse):
    status: str


class QRCodeResponse(BaseResponse):
    qr: Optional[str] = None
    status: str


class StatusResponse(BaseResponse):
    connected: bool
    status: str
    generation: int = 0
    reconnect_attempts: int = 0


class GroupModel(BaseModel):
    id: str
    name: str
    participants: int

    @classmethod
    def from_summary(cls, summary: GroupSummary) -> "GroupModel":
        return cls(id=summary.id, name=summary.name, participants=summary.participants)


class GroupsResponse(BaseResponse):
    groups: List[GroupModel] = Field(default_factory=list)


class RecipientResultModel(BaseModel):
    recipient: str
    success: bool
    error: Optional[str] = None


class PublishResponse(BaseResponse):
    results: List[RecipientResultModel] = Field(default_factory=list)

    @classmethod
    def from_outcome(cls, outcome: DeliveryOutcome) -> "PublishResponse":
        return cls(
            success=outcome.success,
            message="Messages sent successfully" if outcome.success else "Some messages failed",
            results=[
                RecipientResultModel(recipient=r.recipient, success=r.success, error=r.error)
                for r in outcome.results
            ],
        )


class HealthResponse(BaseModel):
    status: str
    session: str
    version: str
