"""Configuration provider following Black Box Design principles."""
import os
import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Protocol

from kleaner.modules.api.models import Policy

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_UNITS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


def parse_duration(value: str) -> timedelta:
    """
    Parse a Go-style duration such as "90s", "15m" or "1h30m".

    A bare "0" is accepted and means disabled.

    Raises:
        ValueError: If the value is not a valid non-negative duration
    """
    text = value.strip()
    if text in ("0", ""):
        return timedelta(0)

    pos = 0
    seconds = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        seconds += float(match.group(1)) * _UNITS[match.group(2)]
        pos = match.end()

    if pos == 0 or pos != len(text):
        raise ValueError(f"Invalid duration: {value!r} (expected e.g. 90s, 15m, 1h30m)")
    return timedelta(seconds=seconds)


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class ControllerConfig:
    """Controller configuration."""
    namespace: str
    resync_period: float
    kube_context: Optional[str]

    @property
    def all_namespaces(self) -> bool:
        return not self.namespace


@dataclass
class APIConfig:
    """Health/metrics API configuration."""
    port: int
    host: str
    log_level: str


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_policy(self) -> Policy:
        """Get the cleanup policy."""
        ...

    def get_controller_config(self) -> ControllerConfig:
        """Get controller configuration."""
        ...

    def get_api_config(self) -> APIConfig:
        """Get API configuration."""
        ...


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def get_policy(self) -> Policy:
        """Get the cleanup policy from environment variables."""
        return Policy(
            success_ttl=parse_duration(os.getenv("DELETE_SUCCESSFUL_AFTER", "15m")),
            failed_ttl=parse_duration(os.getenv("DELETE_FAILED_AFTER", "0")),
            pending_ttl=parse_duration(os.getenv("DELETE_PENDING_AFTER", "0")),
            orphan_grace_ttl=parse_duration(os.getenv("DELETE_ORPHANED_AFTER", "1h")),
            dry_run=_env_bool("DRY_RUN"),
        )

    def get_controller_config(self) -> ControllerConfig:
        """Get controller configuration from environment variables."""
        resync = parse_duration(os.getenv("RESYNC_PERIOD", "30s")).total_seconds()
        if resync <= 0:
            raise ValueError("RESYNC_PERIOD must be a positive duration")

        return ControllerConfig(
            namespace=os.getenv("KLEANER_NAMESPACE", ""),
            resync_period=resync,
            kube_context=os.getenv("KUBECONFIG_CONTEXT") or None,
        )

    def get_api_config(self) -> APIConfig:
        """Get API configuration from environment variables."""
        return APIConfig(
            port=int(os.getenv("API_PORT", "8080")),
            host=os.getenv("API_HOST", "0.0.0.0"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
