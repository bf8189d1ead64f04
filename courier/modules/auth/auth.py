"""
API key verification for the Courier control surface.

Keys come from API_KEYS ("key" or "service:key", comma separated).
With no keys configured the control surface is open.
"""

import logging
import secrets
from typing import Dict, Iterable, Optional, Tuple

logger = logging.getLogger(__name__)


class AuthModule:
    """Validates API keys and resolves the calling service identity."""

    def __init__(self, api_keys: Iterable[str]):
        """
        Initialize auth module.

        Args:
            api_keys: Entries in "key" or "service:key" format
        """
        self.api_keys: Dict[str, Optional[str]] = self._parse_api_keys(api_keys)

    @staticmethod
    def _parse_api_keys(entries: Iterable[str]) -> Dict[str, Optional[str]]:
        keys: Dict[str, Optional[str]] = {}
        for entry in entries:
            entry = entry.strip()
            if not entry:
                continue
            if ":" in entry:
                service, key = entry.split(":", 1)
                keys[key.strip()] = service.strip()
            else:
                keys[entry] = None
        return keys

    @property
    def enabled(self) -> bool:
        return bool(self.api_keys)

    async def verify_api_key(self, api_key: str) -> Tuple[bool, Optional[str]]:
        """
        Verify an API key.

        Args:
            api_key: API key from X-API-Key header

        Returns:
            Tuple of (is_valid, service_identity)
        """
        if not api_key:
            return False, None

        # Constant-time comparison against every configured key
        for key, service_identity in self.api_keys.items():
            if secrets.compare_digest(api_key, key):
                return True, service_identity

        return False, None
