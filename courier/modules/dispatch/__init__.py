"""
Dispatch Module - Black Box Interface

Purpose: Deliver outbound messages over the live session
Interface: DispatchEngine.publish(), build_delivery_request(), normalize_address()
Hidden: Address normalization, media/text branching, per-recipient isolation

Retries are not performed here; reconnects belong to the session module.
"""

from .dispatch import ADDRESS_SUFFIX, DispatchEngine, normalize_address
from .models import (
    DeliveryMode,
    DeliveryOutcome,
    DeliveryRequest,
    DirectDelivery,
    GroupDelivery,
    MediaAttachment,
    MediaKind,
    MessageContent,
    RecipientResult,
    build_delivery_request,
)

__all__ = [
    "ADDRESS_SUFFIX",
    "DeliveryMode",
    "DeliveryOutcome",
    "DeliveryRequest",
    "DirectDelivery",
    "DispatchEngine",
    "GroupDelivery",
    "MediaAttachment",
    "MediaKind",
    "MessageContent",
    "RecipientResult",
    "build_delivery_request",
    "normalize_address",
]
