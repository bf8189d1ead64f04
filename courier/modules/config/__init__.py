"""
Config Module - Black Box Interface

Purpose: Application configuration management
Interface: get_config(), ConfigModule.get(), ConfigModule.get_config_schema()
Hidden: Config sources, validation logic, environment parsing

Can be replaced with different config systems (Consul, etcd, AWS Parameter Store).
"""

import os
from typing import Any, Dict


# Configuration Contract: Required and Optional Keys
# This defines the black box interface - what the config module guarantees to provide

REQUIRED_CONFIG_KEYS = {
    "host": "API server bind address",
    "port": "API server port",
    "log_level": "Logging level (DEBUG, INFO, WARNING, ERROR)",
    "credential_backend": "Credential store backend (file or redis)",
    "reconnect_delay": "Fixed delay in seconds before resuming a dropped session",
    "max_reconnect_attempts": "Consecutive automatic resumes allowed (0 = unbounded)",
    "connect_timeout": "Seconds a connect request waits for a pairing code or open session",
    "connect_poll_interval": "Seconds between state checks while a connect request waits",
    "bridge_url": "Base URL of the protocol bridge sidecar",
    "client_name": "Device name announced to the messaging network",
    "request_timeout": "Timeout in seconds for protocol bridge requests",
}

OPTIONAL_CONFIG_KEYS = {
    "credentials_dir": {
        "description": "Directory holding the credential blob (file backend)",
        "default": "auth_info",
    },
    "credential_key": {
        "description": "Redis key holding the credential blob (redis backend)",
        "default": "courier:credentials:default",
    },
    "redis_host": {"description": "Redis server hostname", "default": "localhost"},
    "redis_port": {"description": "Redis server port number", "default": 6379},
    "redis_db": {"description": "Redis database number", "default": 0},
    "redis_password": {
        "description": "Redis authentication password",
        "default": None,
    },
    "bridge_token": {
        "description": "Bearer token presented to the protocol bridge",
        "default": None,
    },
    "auto_resume": {
        "description": "Resume a persisted session at startup",
        "default": True,
    },
    "debug": {
        "description": "Enable debug mode",
        "default": False,
    },
}

CREDENTIAL_BACKENDS = ("file", "redis")


class ConfigModule:
    """Configuration management module."""

    def __init__(self):
        """Initialize with environment variables."""
        self._config = self._load_from_env()
        self._validate_required_keys()

    def _validate_required_keys(self) -> None:
        """
        Validate that all required configuration keys are present.

        Raises:
            ValueError: If required keys are missing or out of range
        """
        missing_keys = []
        for key in REQUIRED_CONFIG_KEYS:
            if key not in self._config or self._config[key] is None:
                missing_keys.append(key)

        if missing_keys:
            raise ValueError(
                f"Missing required configuration keys: {', '.join(missing_keys)}. "
                f"Check environment variables and deployment configuration."
            )

        if self._config["credential_backend"] not in CREDENTIAL_BACKENDS:
            raise ValueError(
                f"CREDENTIAL_BACKEND must be one of {', '.join(CREDENTIAL_BACKENDS)}, "
                f"got {self._config['credential_backend']!r}"
            )

        for key in ("reconnect_delay", "connect_timeout", "connect_poll_interval"):
            if self._config[key] <= 0:
                raise ValueError(f"{key} must be positive")

        if self._config["max_reconnect_attempts"] < 0:
            raise ValueError("max_reconnect_attempts must be zero or positive")

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment."""
        # Parse Redis port (might be in tcp://host:port format from K8s)
        redis_port_env = os.getenv("REDIS_PORT", "6379")
        if redis_port_env.startswith("tcp://"):
            redis_port = int(redis_port_env.split(":")[-1])
        else:
            redis_port = int(redis_port_env)

        return {
            # API settings
            "host": os.getenv("API_HOST", "0.0.0.0"),
            "port": int(os.getenv("API_PORT", os.getenv("PORT", "8002"))),
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
            "debug": os.getenv("DEBUG", "false").lower() == "true",
            # Credential storage
            "credential_backend": os.getenv("CREDENTIAL_BACKEND", "file").lower(),
            "credentials_dir": os.getenv("CREDENTIALS_DIR", "auth_info"),
            "credential_key": os.getenv("CREDENTIAL_KEY", "courier:credentials:default"),
            "redis_host": os.getenv("REDIS_HOST", "localhost"),
            "redis_port": redis_port,
            "redis_db": int(os.getenv("REDIS_DB", "0")),
            "redis_password": os.getenv("REDIS_PASSWORD"),
            # Session lifecycle
            "reconnect_delay": float(os.getenv("RECONNECT_DELAY", "3.0")),
            "max_reconnect_attempts": int(os.getenv("MAX_RECONNECT_ATTEMPTS", "0")),
            "connect_timeout": float(os.getenv("CONNECT_TIMEOUT", "10.0")),
            "connect_poll_interval": float(os.getenv("CONNECT_POLL_INTERVAL", "0.5")),
            "auto_resume": os.getenv("AUTO_RESUME", "true").lower() == "true",
            # Protocol bridge
            "bridge_url": os.getenv("BRIDGE_URL", "http://localhost:3000").rstrip("/"),
            "bridge_token": os.getenv("BRIDGE_TOKEN"),
            "client_name": os.getenv("CLIENT_NAME", "Courier Gateway"),
            "request_timeout": float(os.getenv("BRIDGE_REQUEST_TIMEOUT", "30")),
        }

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set configuration value."""
        self._config[key] = value

    def get_all(self) -> Dict[str, Any]:
        """Get all configuration values."""
        return self._config.copy()

    @staticmethod
    def get_config_schema() -> Dict[str, Any]:
        """
        Get the configuration schema (contract) for this module.

        Returns:
            Dictionary with 'required' and 'optional' key specifications

        Example:
            >>> schema = ConfigModule.get_config_schema()
            >>> print(schema['required']['bridge_url'])
            'Base URL of the protocol bridge sidecar'
        """
        return {
            "required": REQUIRED_CONFIG_KEYS.copy(),
            "optional": OPTIONAL_CONFIG_KEYS.copy(),
        }


# Singleton instance
_instance = None


def get_config() -> ConfigModule:
    """Get the configuration module singleton."""
    global _instance
    if _instance is None:
        _instance = ConfigModule()
    return _instance


__all__ = ["get_config", "ConfigModule", "REQUIRED_CONFIG_KEYS", "OPTIONAL_CONFIG_KEYS"]
