"""Configuration provider following Black Box Design principles."""
import os
from dataclasses import dataclass
from typing import List, Protocol


@dataclass
class APIConfig:
    """API configuration."""
    port: int
    host: str
    debug: bool
    cors_origins: List[str]
    max_body_bytes: int


@dataclass
class AuthConfig:
    """Authentication configuration."""
    api_keys: List[str]

    @property
    def require_auth(self) -> bool:
        """Auth is enforced only when at least one key is configured."""
        return bool(self.api_keys)


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_api_config(self) -> APIConfig:
        """Get API configuration."""
        ...

    def get_auth_config(self) -> AuthConfig:
        """Get authentication configuration."""
        ...


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def get_api_config(self) -> APIConfig:
        """Get API configuration from environment variables."""
        return APIConfig(
            port=int(os.getenv("API_PORT", os.getenv("PORT", "8002"))),
            host=os.getenv("API_HOST", "0.0.0.0"),
            debug=os.getenv("API_DEBUG", "false").lower() == "true",
            cors_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()],
            max_body_bytes=int(os.getenv("MAX_BODY_BYTES", str(50 * 1024 * 1024))),
        )

    def get_auth_config(self) -> AuthConfig:
        """Get authentication configuration from environment variables."""
        api_keys_env = os.getenv("API_KEYS", "")
        return AuthConfig(
            api_keys=[key.strip() for key in api_keys_env.split(",") if key.strip()]
        )
