import logging
import re

from ..session import SessionManager
from ..transport import TransportHandle
from .models import (
    GROUP_RECIPIENT_LABEL,
    DeliveryOutcome,
    DeliveryRequest,
    DirectDelivery,
    GroupDelivery,
    MessageContent,
    RecipientResult,
)

logger = logging.getLogger(__name__)

ADDRESS_SUFFIX = "@s.whatsapp.net"
INTERNATIONAL_PREFIX = "00"

_NON_DIGITS = re.compile(r"\D")


def normalize_address(number: str) -> str:
    """
    Turn a phone number as typed by a user into a network address.

    Keeps digits only, drops a leading ``00`` international prefix and
    appends the address suffix. Never raises; garbage in gives an address
    the network will reject at send time.

    Example:
        >>> normalize_address("+44 123-456-789")
        '44123456789@s.whatsapp.net'
    """
    cleaned = _NON_DIGITS.sub("", number or "")
    if cleaned.startswith(INTERNATIONAL_PREFIX):
        cleaned = cleaned[len(INTERNATIONAL_PREFIX):]
    cleaned = cleaned.lstrip("+")
    return cleaned + ADDRESS_SUFFIX


class DispatchEngine:
    def __init__(self, session_manager: SessionManager):
        """
        Initialize dispatch engine.

        Args:
            session_manager: Source of the live transport handle
        """
        self.session = session_manager

    async def publish(self, request: DeliveryRequest) -> DeliveryOutcome:
        """
        Send a delivery request and collect one result per target.

        Recipients are sent to one after another. A failed send is recorded
        and the batch continues.

        Raises:
            NotConnected: If the session is not connected
        """
        handle = self.session.active_handle()
        outcome = DeliveryOutcome()

        if isinstance(request, DirectDelivery):
            for recipient in request.recipients:
                address = normalize_address(recipient)
                outcome.results.append(
                    await self._send(handle, recipient, address, request.content)
                )
        elif isinstance(request, GroupDelivery):
            outcome.results.append(
                await self._send(handle, GROUP_RECIPIENT_LABEL, request.group_id, request.content)
            )
        else:
            raise TypeError(f"Unsupported delivery request: {type(request).__name__}")

        if not outcome.success:
            failed = sum(1 for result in outcome.results if not result.success)
            logger.warning(f"Publish finished with {failed}/{len(outcome.results)} failures")
        return outcome

    async def _send(
        self,
        handle: TransportHandle,
        recipient: str,
        address: str,
        content: MessageContent,
    ) -> RecipientResult:
        try:
            if content.media is not None:
                await handle.send_media(
                    address, content.media.url, content.media.kind.value, content.caption
                )
            else:
                await handle.send_text(address, content.caption)
        except Exception as e:
            logger.error(f"Error sending to {recipient}: {e}")
            return RecipientResult(recipient=recipient, success=False, error=str(e))

        return RecipientResult(recipient=recipient, success=True)
