"""Delivery request and outcome types."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

from ...errors import InvalidRequest


class DeliveryMode(str, Enum):
    DIRECT = "numbers"
    GROUP = "group"

    @classmethod
    def parse(cls, value: str) -> "DeliveryMode":
        """Accept the wire values plus ``direct`` as a synonym for ``numbers``."""
        if value == "direct":
            return cls.DIRECT
        return cls(value)


class MediaKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"

    @classmethod
    def parse(cls, value: Optional[str]) -> "MediaKind":
        """Anything other than ``video`` is sent as an image."""
        return cls.VIDEO if (value or "").lower() == cls.VIDEO.value else cls.IMAGE


@dataclass(frozen=True)
class MediaAttachment:
    url: str
    kind: MediaKind = MediaKind.IMAGE


@dataclass(frozen=True)
class MessageContent:
    caption: str
    media: Optional[MediaAttachment] = None


@dataclass(frozen=True)
class DirectDelivery:
    recipients: Tuple[str, ...]
    content: MessageContent


@dataclass(frozen=True)
class GroupDelivery:
    group_id: str
    content: MessageContent


DeliveryRequest = Union[DirectDelivery, GroupDelivery]


@dataclass(frozen=True)
class RecipientResult:
    recipient: str
    success: bool
    error: Optional[str] = None


@dataclass
class DeliveryOutcome:
    results: List[RecipientResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(result.success for result in self.results)


GROUP_RECIPIENT_LABEL = "group"


def build_delivery_request(
    mode: Optional[str],
    caption: Optional[str],
    recipients: Optional[Sequence[str]] = None,
    group_id: Optional[str] = None,
    media_url: Optional[str] = None,
    media_type: Optional[str] = None,
) -> DeliveryRequest:
    """
    Validate raw publish fields once and build the matching request variant.

    Raises:
        InvalidRequest: If mode or caption is missing, the mode is unknown,
            or the mode-specific target is absent or empty
    """
    if not mode or not caption:
        raise InvalidRequest("Missing required fields")

    try:
        delivery_mode = DeliveryMode.parse(mode)
    except ValueError:
        raise InvalidRequest(f"Unknown mode: {mode}") from None

    media = MediaAttachment(url=media_url, kind=MediaKind.parse(media_type)) if media_url else None
    content = MessageContent(caption=caption, media=media)

    if delivery_mode == DeliveryMode.DIRECT:
        if not recipients:
            raise InvalidRequest("At least one recipient is required for mode 'numbers'")
        return DirectDelivery(recipients=tuple(str(r) for r in recipients), content=content)

    if not group_id:
        raise InvalidRequest("groupId is required for mode 'group'")
    return GroupDelivery(group_id=group_id, content=content)
