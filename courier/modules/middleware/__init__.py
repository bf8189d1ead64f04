"""
Middleware Module - Black Box Interface

Purpose: Request guards for the control surface
Interface: AuthMiddleware, BodySizeLimitMiddleware, create_api_key_middleware()
Hidden: Header extraction, error formatting, size checks

Used with ``app.middleware("http")(instance)`` on any FastAPI app.
"""

import logging
from typing import Awaitable, Callable, Dict, Optional, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AuthMiddleware:
    """
    API key authentication middleware.

    Responses use the control surface error shape ``{success, message}``.
    """

    def __init__(
        self,
        auth_validator: Callable[[str], Awaitable[Tuple[bool, Optional[str]]]],
        header_names: Optional[list] = None,
        skip_paths: Optional[Dict[str, list]] = None,
        log_attempts: bool = True,
    ):
        """
        Initialize authentication middleware.

        Args:
            auth_validator: Async function that validates API key, returns (is_valid, identity)
            header_names: Header names to check for the API key (default: X-API-Key)
            skip_paths: Dict of {path: [methods]} to skip authentication
            log_attempts: Whether to log authentication attempts
        """
        self.auth_validator = auth_validator
        self.header_names = header_names or ["x-api-key"]
        self.skip_paths = skip_paths or {}
        self.log_attempts = log_attempts

    def should_skip_auth(self, request: Request) -> bool:
        """Check if authentication should be skipped for this request."""
        path = str(request.url.path)
        method = request.method.upper()

        if path in self.skip_paths:
            allowed_methods = self.skip_paths[path]
            if "*" in allowed_methods or method in allowed_methods:
                return True

        # CORS preflight never carries credentials
        return method == "OPTIONS"

    def extract_api_key(self, request: Request) -> Optional[str]:
        """Extract API key from request headers."""
        for header_name in self.header_names:
            api_key = request.headers.get(header_name)
            if api_key:
                return api_key
        return None

    async def __call__(self, request: Request, call_next):
        """Process the request through authentication middleware."""
        if self.should_skip_auth(request):
            return await call_next(request)

        api_key = self.extract_api_key(request)
        if not api_key:
            if self.log_attempts:
                logger.warning(f"Request to {request.url.path} without API key")
            return JSONResponse(
                status_code=401,
                content={"success": False, "message": "Authentication required: API key not provided"},
            )

        is_valid, service_identity = await self.auth_validator(api_key)
        if not is_valid:
            if self.log_attempts:
                logger.warning(f"Invalid API key attempted: {api_key[:4]}...")
            return JSONResponse(
                status_code=401,
                content={"success": False, "message": "Authentication failed: Invalid API key"},
            )

        if self.log_attempts:
            logger.debug(f"Request authenticated for service: {service_identity}")
        request.state.service_identity = service_identity

        return await call_next(request)


class BodySizeLimitMiddleware:
    """Rejects requests whose declared body exceeds ``max_body_bytes``."""

    def __init__(self, max_body_bytes: int):
        self.max_body_bytes = max_body_bytes

    async def __call__(self, request: Request, call_next):
        content_length = request.headers.get("content-length")
        if content_length is not None:
            try:
                too_large = int(content_length) > self.max_body_bytes
            except ValueError:
                return JSONResponse(
                    status_code=400,
                    content={"success": False, "message": "Invalid Content-Length header"},
                )
            if too_large:
                logger.warning(
                    f"Rejected {request.method} {request.url.path}: "
                    f"{content_length} bytes exceeds {self.max_body_bytes}"
                )
                return JSONResponse(
                    status_code=413,
                    content={"success": False, "message": "Request body too large"},
                )
        return await call_next(request)


def create_api_key_middleware(
    auth_module,
    skip_paths: Optional[Dict[str, list]] = None,
) -> AuthMiddleware:
    """
    Factory function to create API key authentication middleware.

    Args:
        auth_module: AuthModule instance with verify_api_key method
        skip_paths: Paths to skip authentication {"/path": ["GET", "POST"]}

    Returns:
        Configured AuthMiddleware instance
    """
    async def validator(api_key: str) -> Tuple[bool, Optional[str]]:
        """Validate API key using auth module."""
        return await auth_module.verify_api_key(api_key)

    return AuthMiddleware(auth_validator=validator, skip_paths=skip_paths)


__all__ = [
    "AuthMiddleware",
    "BodySizeLimitMiddleware",
    "create_api_key_middleware",
]
