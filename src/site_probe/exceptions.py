"""
Exception classes for the site probe system.

All exceptions inherit from SiteProbeError and provide structured
error information with codes, messages, and optional details.
"""

from typing import Optional


class SiteProbeError(Exception):
    """Base exception for all site probe errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(SiteProbeError):
    """Raised when a check request carries no usable address."""

    pass


class NetworkError(SiteProbeError):
    """Raised when network operations fail."""

    pass


class FetchError(NetworkError):
    """Raised by the fetch capability on timeout or transport failure."""

    @property
    def is_timeout(self) -> bool:
        return self.code == "timeout"


class RenderError(SiteProbeError):
    """Raised by the rendering capability when a page cannot be loaded."""

    @property
    def is_timeout(self) -> bool:
        return self.code == "timeout"


class ConfigError(SiteProbeError):
    """Raised when configuration cannot be loaded or is inconsistent."""

    pass
