"""
Configuration management for the Tally dashboard.

Loads settings from environment variables with sensible defaults.
The orchestrator treats (base_url, is_demo_mode) as the connection identity.
Changing it, or any other setting a data source is built from, drops the
cached company list.
"""
from __future__ import annotations
import os
from dataclasses import dataclass, field, replace
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "y")


@dataclass(frozen=True)
class DashboardConfig:
    """Configuration settings for the dashboard acquisition layer."""

    # Tally connection settings
    base_url: str = field(
        default_factory=lambda: os.getenv("TALLY_URL", "http://localhost:9000")
    )
    is_demo_mode: bool = field(default_factory=lambda: _env_bool("TALLY_DEMO_MODE", "true"))
    # Company used for live register exports when no company id is selected
    tally_company: Optional[str] = field(default_factory=lambda: os.getenv("TALLY_COMPANY"))

    # Transport settings
    request_timeout: float = field(
        default_factory=lambda: float(os.getenv("TALLY_REQUEST_TIMEOUT", "10"))
    )
    # 1 means a single attempt, no retry
    retry_attempts: int = field(
        default_factory=lambda: int(os.getenv("TALLY_RETRY_ATTEMPTS", "1"))
    )
    retry_delay: float = field(
        default_factory=lambda: float(os.getenv("TALLY_RETRY_DELAY", "1.0"))
    )

    # Scale factor for the synthetic source's artificial delays (0 disables them)
    demo_latency: float = field(
        default_factory=lambda: float(os.getenv("TALLY_DEMO_LATENCY", "1.0"))
    )

    # Advisory text service
    gemini_api_key: Optional[str] = field(
        default_factory=lambda: os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
    )
    gemini_model: str = field(
        default_factory=lambda: os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
    )

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_file: Optional[str] = field(
        default_factory=lambda: os.getenv("TALLY_DASHBOARD_LOG_FILE")
    )

    @classmethod
    def from_env(cls) -> "DashboardConfig":
        """Create config from environment variables."""
        return cls()

    @property
    def mode_key(self) -> tuple[str, bool]:
        return (self.base_url.rstrip("/"), self.is_demo_mode)

    @property
    def source_key(self) -> tuple:
        """Settings baked into a data source; the other fields are read per call."""
        return (*self.mode_key, self.tally_company, self.request_timeout, self.demo_latency)

    def with_changes(self, **changes) -> "DashboardConfig":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors."""
        errors = []
        if not self.is_demo_mode and not self.base_url:
            errors.append("TALLY_URL is required when demo mode is off")
        if self.base_url and not self.base_url.startswith(("http://", "https://")):
            errors.append(f"TALLY_URL must be an http(s) URL, got {self.base_url!r}")
        if self.request_timeout <= 0:
            errors.append("TALLY_REQUEST_TIMEOUT must be positive")
        if self.retry_attempts < 1:
            errors.append("TALLY_RETRY_ATTEMPTS must be at least 1")
        if self.demo_latency < 0:
            errors.append("TALLY_DEMO_LATENCY cannot be negative")
        return errors
