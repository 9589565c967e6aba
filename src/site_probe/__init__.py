"""
Site Probe - reachability and redirect classifier for web addresses.

This package probes lists of addresses over HTTP (or through a headless
browser), follows redirect chains, and classifies each address as up,
redirecting, blocked by bot mitigation, or down.
"""

__version__ = "0.1.0"
__author__ = "Site Probe Team"

from site_probe.exceptions import (
    SiteProbeError,
    ValidationError,
    NetworkError,
    FetchError,
    RenderError,
    ConfigError,
)
from site_probe.enums import (
    Category,
    RedirectKind,
    LogLevel,
    FetchErrorCode,
    RenderErrorCode,
    ProbeMode,
)
from site_probe.config import (
    FetchConfig,
    RenderConfig,
    ResolverConfig,
    BatchConfig,
    FeatureToggles,
    LoggingConfig,
    SystemConfig,
    apply_env_overrides,
)
from site_probe.models import (
    FetchResponse,
    RenderSnapshot,
    VariationSummary,
    ProbeOutcome,
    CheckRequest,
)
from site_probe.domain_utils import (
    normalize,
    root_domain,
    build_variations,
    strip_address,
    resolve_target,
)
from site_probe.dead_sites import is_dead_site
from site_probe.classifier import (
    ContentClassifier,
    Resolved,
    PendingRedirect,
    ParkedDomain,
)
from site_probe.page_text import extract_words
from site_probe.unique_redirect import UniqueRedirectDetector
from site_probe.fetcher import Fetcher, HttpFetcher
from site_probe.renderer import Renderer, PlaywrightRenderer
from site_probe.resolver import RedirectResolver
from site_probe.render_resolver import RenderResolver
from site_probe.aggregator import (
    VariationAggregator,
    aggregate,
    pick_final_destination,
    select_representative,
)
from site_probe.audit_logger import AuditLogger, LogEntry
from site_probe.orchestrator import CheckOrchestrator
from site_probe.cli import (
    main as cli_main,
    create_parser,
    create_default_config,
    load_config_from_file,
    save_config_to_file,
)

__all__ = [
    # Version
    "__version__",
    # Exceptions
    "SiteProbeError",
    "ValidationError",
    "NetworkError",
    "FetchError",
    "RenderError",
    "ConfigError",
    # Enums
    "Category",
    "RedirectKind",
    "LogLevel",
    "FetchErrorCode",
    "RenderErrorCode",
    "ProbeMode",
    # Config
    "FetchConfig",
    "RenderConfig",
    "ResolverConfig",
    "BatchConfig",
    "FeatureToggles",
    "LoggingConfig",
    "SystemConfig",
    "apply_env_overrides",
    # Models
    "FetchResponse",
    "RenderSnapshot",
    "VariationSummary",
    "ProbeOutcome",
    "CheckRequest",
    # Domain utilities
    "normalize",
    "root_domain",
    "build_variations",
    "strip_address",
    "resolve_target",
    "is_dead_site",
    # Classification
    "ContentClassifier",
    "Resolved",
    "PendingRedirect",
    "ParkedDomain",
    "extract_words",
    "UniqueRedirectDetector",
    # Capabilities
    "Fetcher",
    "HttpFetcher",
    "Renderer",
    "PlaywrightRenderer",
    # Resolution
    "RedirectResolver",
    "RenderResolver",
    "VariationAggregator",
    "aggregate",
    "pick_final_destination",
    "select_representative",
    # Audit Logger
    "AuditLogger",
    "LogEntry",
    # Orchestrator
    "CheckOrchestrator",
    # CLI
    "cli_main",
    "create_parser",
    "create_default_config",
    "load_config_from_file",
    "save_config_to_file",
]
