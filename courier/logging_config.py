"""
Logging configuration for the Courier gateway.

Pairing clients poll /status and /qr-code every few hundred milliseconds and
orchestrators check /health; successful GETs on those paths are dropped from
the access log so session transitions stay readable.
"""

import logging
from typing import Any, Dict, Iterable

POLLED_PATHS = ("/health", "/status", "/qr-code")

# Chatty client libraries used by the bridge transport
QUIET_LIBRARIES = ("httpx", "httpcore", "urllib3", "sseclient")


class PollingAccessFilter(logging.Filter):
    """Suppress uvicorn access lines for successful GETs on polled paths."""

    def __init__(self, paths: Iterable[str] = POLLED_PATHS):
        super().__init__()
        self.paths = tuple(paths)

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name != "uvicorn.access":
            return True

        # uvicorn passes (client_addr, method, path, http_version, status_code)
        args = record.args
        if isinstance(args, tuple) and len(args) == 5:
            _, method, path, _, status_code = args
            path = str(path).split("?", 1)[0]
            return not (method == "GET" and path in self.paths and int(status_code) < 400)

        message = record.getMessage()
        return not ("GET" in message and any(f"{path} " in message for path in self.paths))


def get_logging_config(level: str = "INFO") -> Dict[str, Any]:
    """Build a dictConfig for uvicorn, the courier package and its client libraries."""
    level = level.upper()

    loggers: Dict[str, Any] = {
        name: {"handlers": ["default"], "level": "INFO", "propagate": False}
        for name in ("uvicorn", "uvicorn.error")
    }
    loggers["uvicorn.access"] = {"handlers": ["access"], "level": "INFO", "propagate": False}
    loggers["courier"] = {"handlers": ["default"], "level": level, "propagate": False}
    for name in QUIET_LIBRARIES:
        loggers[name] = {"handlers": ["default"], "level": "WARNING", "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "polling_access_filter": {"()": PollingAccessFilter},
        },
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            },
            "access": {"format": "%(message)s"},
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
            "access": {
                "class": "logging.StreamHandler",
                "formatter": "access",
                "stream": "ext://sys.stdout",
                "filters": ["polling_access_filter"],
            },
        },
        "loggers": loggers,
        "root": {"level": level, "handlers": ["default"]},
    }
