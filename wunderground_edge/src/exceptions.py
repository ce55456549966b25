"""
Exception hierarchy for the PWS uploader.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations


class UploaderError(Exception):
    """Base exception for all uploader errors."""


class RegistryError(UploaderError):
    """The variable registry could not be read."""


class SourceNotFoundError(RegistryError):
    """The configured source device is not known to the registry."""

    def __init__(self, source: str) -> None:
        super().__init__(f"Unknown source device: {source}")
        self.source = source


class FieldEncodingError(UploaderError, ValueError):
    """A value could not be percent-encoded into the update URL."""


class ChannelError(UploaderError):
    """The HTTP channel could not schedule a request."""
