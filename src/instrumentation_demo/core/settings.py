"""
Service settings.

All values can be overridden via environment variables prefixed with
``DEMO_`` (``DEMO_LISTEN``, ``DEMO_BASIC_AUTH`` ...) or a ``.env`` file.
Command-line flags take precedence over both; see
:mod:`instrumentation_demo.cli.app`.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from instrumentation_demo.core.errors import InvalidListenAddressError

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class DemoSettings(BaseSettings):
    """Settings for the instrumented demo service.

    Order of precedence (highest → lowest):
        1. Explicit keyword arguments (the CLI passes its flags this way)
        2. Environment variables (``DEMO_LISTEN``, etc.)
        3. ``.env`` file
        4. Defaults below
    """

    model_config = SettingsConfigDict(
        env_prefix="DEMO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Listeners ────────────────────────────────────────────────────────
    listen: str = Field(default="127.0.0.1:8080", description="Listen address")
    listen_metrics: str = Field(
        default="",
        description="Listen address for exposing metrics (default to 'listen' if blank)",
    )

    # ── Auth ─────────────────────────────────────────────────────────────
    basic_auth: str = Field(
        default="",
        description="Basic authentication (eg <user>:<password>)",
    )

    # ── Business signals ─────────────────────────────────────────────────
    devices: list[str] = Field(default=["sda", "sdb"], description="Known hard-disk devices")
    initial_cpu_temperature: float = Field(default=37.0, description="CPU gauge start value")

    # ── Simulator ────────────────────────────────────────────────────────
    simulate: bool = Field(
        default=False,
        description="Run the background simulator and serve the '/' latency endpoint",
    )
    simulate_interval_seconds: float = Field(default=1.0, gt=0, description="Simulator tick period")
    stages: list[str] = Field(
        default=["validation", "payment", "shipping"],
        description="Stages with a simulated error counter",
    )
    root_max_latency_ms: float = Field(
        default=1000.0,
        ge=0,
        description="Upper bound of the random sleep on '/'",
    )

    # ── Build info ───────────────────────────────────────────────────────
    build_date: str = Field(default="", description="Build date exposed by version_info")
    commit_id: str = Field(default="", description="Commit exposed by version_info")

    # ── Logging ──────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", description="Log level")
    log_json: bool | None = Field(
        default=None,
        description="JSON logs; unset means JSON unless stdout is a terminal",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalise to upper case and reject unknown levels."""
        level = v.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}, got {v!r}")
        return level

    @property
    def credentials(self) -> tuple[str, str] | None:
        """Parsed ``basic_auth`` as ``(user, password)``, or None when disabled."""
        user, sep, password = self.basic_auth.partition(":")
        if not sep or not user or not password:
            return None
        return user, password

    @property
    def auth_enabled(self) -> bool:
        return self.credentials is not None


def parse_listen_address(address: str) -> tuple[str, int]:
    """Split ``host:port`` into its parts.

    An empty host (``":8080"``) binds every interface.  IPv6 hosts must be
    bracketed (``"[::1]:8080"``).

    Raises:
        InvalidListenAddressError: when the address cannot be parsed
    """
    host, sep, port_text = address.rpartition(":")
    if not sep:
        raise InvalidListenAddressError(address, "missing port")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    elif ":" in host:
        raise InvalidListenAddressError(address, "IPv6 hosts must be bracketed")
    try:
        port = int(port_text)
    except ValueError as e:
        raise InvalidListenAddressError(address, f"port {port_text!r} is not a number") from e
    if not 0 <= port <= 65535:
        raise InvalidListenAddressError(address, f"port {port} out of range")
    return host or "0.0.0.0", port


@lru_cache(maxsize=1)
def get_settings() -> DemoSettings:
    """Cached settings, loaded once per process."""
    return DemoSettings()
