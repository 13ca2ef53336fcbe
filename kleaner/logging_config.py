"""
Logging configuration for Kleaner.

Probe and scrape requests are dropped from the uvicorn access log, and the
kubernetes client stack is held at WARNING so watch reconnects stay quiet.
"""

import logging
from typing import Any, Dict, Iterable, Tuple

# Endpoints polled by kubelet probes and Prometheus
QUIET_PATHS: Tuple[str, ...] = ("/health", "/metrics")

# Watch threads are named after their kind, so the thread name is kept
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(threadName)s] %(message)s"


class HealthCheckFilter(logging.Filter):
    """Drop uvicorn access records for GET requests to quiet paths."""

    def __init__(self, paths: Iterable[str] = QUIET_PATHS):
        super().__init__()
        self.paths = tuple(paths)

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name != "uvicorn.access":
            return True
        message = record.getMessage()
        return not ("GET" in message and any(path in message for path in self.paths))


def _logger(handler: str, level: str) -> Dict[str, Any]:
    return {"handlers": [handler], "level": level, "propagate": False}


def get_logging_config(level: str = "INFO") -> Dict[str, Any]:
    """
    Build the dictConfig used at startup and handed to uvicorn.

    Args:
        level: Level for kleaner's own loggers and the root logger
    """
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "quiet_paths": {"()": HealthCheckFilter},
        },
        "formatters": {
            "default": {"format": LOG_FORMAT},
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
                "filters": ["quiet_paths"],
            },
        },
        "loggers": {
            "uvicorn": _logger("default", "INFO"),
            "uvicorn.error": _logger("default", "INFO"),
            "uvicorn.access": _logger("access", "INFO"),
            "kleaner": _logger("default", level),
            "kubernetes": _logger("default", "WARNING"),
            "urllib3": _logger("default", "WARNING"),
        },
        "root": {"level": level, "handlers": ["default"]},
    }
