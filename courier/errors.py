"""Error taxonomy shared by the Courier modules."""

from typing import Optional


class CourierError(Exception):
    """Base class for all gateway errors."""


class InvalidRequest(CourierError):
    """Caller input is malformed or incomplete."""


class NotConnected(CourierError):
    """Operation requires a connected session."""

    def __init__(self, message: str = "Messaging session not connected"):
        super().__init__(message)


class TransportError(CourierError):
    """A call to the external messaging network failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CredentialStoreError(CourierError):
    """Persisted credentials could not be read or written."""


__all__ = [
    "CourierError",
    "InvalidRequest",
    "NotConnected",
    "TransportError",
    "CredentialStoreError",
]
