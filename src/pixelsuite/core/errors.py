from __future__ import annotations


class PixelSuiteError(Exception):
    """Base class for every error raised by PixelSuite."""


class DecodeError(PixelSuiteError):
    """Source pixels could not be read (corrupt, truncated or unsupported data)."""


class ConfigError(PixelSuiteError):
    """A layout parameter or configuration value is outside its domain."""


class LayoutError(PixelSuiteError):
    """A computed sheet geometry violated its invariants."""


class RemoteEditError(PixelSuiteError):
    """The AI edit collaborator failed or returned no image."""


class SessionBusyError(PixelSuiteError):
    """An action was rejected because a remote edit is still running."""
