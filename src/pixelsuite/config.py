"""
Environment configuration for PixelSuite.

All settings come from environment variables; nothing is read from disk.

Environment Variables:
    PIXELSUITE_API_KEY: key for the Gemini image model (falls back to GEMINI_API_KEY)
    PIXELSUITE_MODEL: image model name (default gemini-2.5-flash-image)
    PIXELSUITE_API_BASE: REST base URL (default Google's v1beta endpoint)
    PIXELSUITE_TIMEOUT: remote request timeout in seconds (default 60)
    PIXELSUITE_LOG_LEVEL: package log level (default INFO)
    PIXELSUITE_HISTORY_LIMIT: max undo snapshots, 0 = unbounded (default 0)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from pixelsuite.core.errors import ConfigError

DEFAULT_MODEL = "gemini-2.5-flash-image"
DEFAULT_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_TIMEOUT = 60.0


def get_env(
    name: str,
    default: Optional[str] = None,
    required: bool = False,
    strip: bool = True,
) -> Optional[str]:
    """
    Get an environment variable with whitespace and stray newlines removed.

    Raises:
        ConfigError: if required and missing/empty after sanitization
    """
    value = os.getenv(name, "")

    if strip and value:
        value = value.strip().replace("\n", "").replace("\r", "")

    if not value:
        if required:
            raise ConfigError(f"Required environment variable '{name}' is not set or empty")
        return default

    return value


def _get_float(name: str, default: float) -> float:
    raw = get_env(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"{name} must be > 0, got {raw!r}")
    return value


def _get_int(name: str, default: int) -> int:
    raw = get_env(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value < 0:
        raise ConfigError(f"{name} must be >= 0, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    """
    Runtime settings for a PixelSuite process.

    api_key:
        Gemini API key, or None when AI edits are not configured.
    history_limit:
        Maximum number of undo snapshots kept; 0 means unbounded.
    """
    api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    api_base: str = DEFAULT_API_BASE
    timeout: float = DEFAULT_TIMEOUT
    log_level: str = "INFO"
    history_limit: int = 0

    @staticmethod
    def from_env() -> "Settings":
        api_key = get_env("PIXELSUITE_API_KEY") or get_env("GEMINI_API_KEY")
        api_base = (get_env("PIXELSUITE_API_BASE") or DEFAULT_API_BASE).rstrip("/")
        return Settings(
            api_key=api_key,
            model=get_env("PIXELSUITE_MODEL", DEFAULT_MODEL) or DEFAULT_MODEL,
            api_base=api_base,
            timeout=_get_float("PIXELSUITE_TIMEOUT", DEFAULT_TIMEOUT),
            log_level=(get_env("PIXELSUITE_LOG_LEVEL", "INFO") or "INFO").upper(),
            history_limit=_get_int("PIXELSUITE_HISTORY_LIMIT", 0),
        )

    def describe(self) -> dict[str, object]:
        """Configuration summary that never exposes the full key."""
        key = self.api_key
        return {
            "api_configured": bool(key),
            "api_key_prefix": key[:6] + "..." if key and len(key) > 6 else None,
            "model": self.model,
            "api_base": self.api_base,
            "timeout": self.timeout,
            "log_level": self.log_level,
            "history_limit": self.history_limit,
        }
