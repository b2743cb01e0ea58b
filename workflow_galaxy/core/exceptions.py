"""Custom exception types for domain and API layers."""
from __future__ import annotations


class AppError(Exception):
    """Base app exception."""


class IntegrationError(AppError):
    """External integration call failure."""


class RemoteListingError(IntegrationError):
    """The remote workflow listing could not be retrieved."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PerFileParseError(IntegrationError):
    """A single workflow file could not be fetched or parsed."""

    def __init__(self, file_name: str, reason: str):
        super().__init__(f"{file_name}: {reason}")
        self.file_name = file_name
        self.reason = reason


class CacheError(AppError):
    """Durable cache failure."""


class CacheReadError(CacheError):
    """Reading cached workflows or cache metadata failed."""


class CacheWriteError(CacheError):
    """Upserting workflows or events into the cache failed."""


class CacheNotConfiguredError(CacheError):
    """Operation requires the durable cache but none is configured."""
