"""Exceptions raised across package boundaries."""

from __future__ import annotations

from typing import Optional


class TagReaperError(Exception):
    """Base class for tag-reaper errors."""


class ConfigError(TagReaperError):
    """Configuration file could not be read or has the wrong shape."""


class TagFilterDecodeError(TagReaperError):
    """A tag filter document could not be decoded.

    Attributes:
        position: Character offset in the input where decoding failed (optional)
    """

    def __init__(self, message: str, position: Optional[int] = None) -> None:
        super().__init__(message)
        self.position = position


class DeletionError(TagReaperError):
    """Deletion of a whole resource bucket stopped.

    Attributes:
        resource_type: Type of the bucket whose deletion stopped
        resource_name: Name of the resource that caused the stop (optional)
    """

    def __init__(self, message: str, resource_type: str, resource_name: Optional[str] = None) -> None:
        super().__init__(message)
        self.resource_type = resource_type
        self.resource_name = resource_name
