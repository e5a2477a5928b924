"""Custom exception hierarchy for TileMosaic."""

from typing import Optional


class TileMosaicError(Exception):
    """Base exception for TileMosaic library."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.cause = cause


class ProjectionError(TileMosaicError):
    """Unsupported or invalid spatial reference during extent projection."""
    pass


class NoLevelsAvailable(TileMosaicError):
    """The tiling schema defines no zoom levels."""
    pass


class ConfigurationError(TileMosaicError):
    """Configuration and setup errors."""
    pass


class FetchError(TileMosaicError):
    """Network retrieval of a tile failed.

    ``transient`` failures (timeouts, connection resets, 5xx) may be retried;
    permanent ones (4xx, malformed addresses) must not be.
    """

    def __init__(
        self,
        message: str,
        transient: bool,
        status_code: Optional[int] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message, cause)
        self.transient = transient
        self.status_code = status_code


class CacheWriteError(TileMosaicError):
    """Writing tile bytes to the disk cache failed."""
    pass
