"""
Enumeration types for the site probe system.

These enums provide type-safe constants for outcome categories, error codes,
and configuration options throughout the system.
"""

from enum import Enum


class Category(Enum):
    """Terminal category of a probed address."""

    UP = "up"
    REDIRECT_UP = "redirect_up"
    REDIRECT_DOWN = "redirect_down"
    # Presentation overlay only; the engine never emits it.
    UNIQUE_REDIRECT = "unique_redirect"
    CLOUDFLARE_BLOCK = "cloudflare_block"
    DOWN = "down"


class RedirectKind(Enum):
    """Mechanism a pending redirect was discovered through."""

    HTTP = "http"
    META_REFRESH = "meta_refresh"
    SCRIPT = "script"


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class FetchErrorCode(Enum):
    """Error codes for fetch capability failures."""

    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    TLS_ERROR = "tls_error"
    INVALID_URL = "invalid_url"


class RenderErrorCode(Enum):
    """Error codes for rendering capability failures."""

    TIMEOUT = "timeout"
    NAVIGATION_ERROR = "navigation_error"
    BROWSER_ERROR = "browser_error"


class ProbeMode(Enum):
    """How a batch is resolved, derived from the request toggles."""

    SINGLE = "single"
    VARIATIONS = "variations"
    RENDERED = "rendered"
    RENDERED_VARIATIONS = "rendered_variations"
