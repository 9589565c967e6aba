"""
Configuration dataclasses for the site probe system.

This module defines all configuration structures used throughout the system,
including fetch and render timeouts, redirect resolution depth, batch widths,
per-request feature toggles, and logging configuration.
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)
DEFAULT_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


@dataclass
class FetchConfig:
    """Plain HTTP fetch settings."""

    timeout_seconds: float = 10.0
    body_prefix_bytes: int = 8192
    script_timeout_seconds: float = 5.0
    script_body_bytes: int = 16384
    user_agent: str = DEFAULT_USER_AGENT
    accept: str = DEFAULT_ACCEPT
    verify_tls: bool = False


@dataclass
class RenderConfig:
    """Full page render settings."""

    timeout_seconds: float = 30.0
    settle_seconds: float = 2.0
    viewport_width: int = 1280
    viewport_height: int = 800
    user_agent: str = DEFAULT_USER_AGENT
    headless: bool = True
    max_pages: int = 2
    browser_args: list[str] = field(
        default_factory=lambda: [
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-dev-shm-usage",
            "--disable-gpu",
            "--ignore-certificate-errors",
        ]
    )


@dataclass
class ResolverConfig:
    """Redirect chain resolution settings."""

    max_hops: int = 3
    check_external_scripts: bool = True


@dataclass
class BatchConfig:
    """Concurrent resolutions per batch."""

    batch_width: int = 5
    render_batch_width: int = 2


@dataclass
class FeatureToggles:
    """Per-request switches recognized by the orchestrator."""

    try_all_variations: bool = False
    check_redirect_destinations: bool = True
    detect_unique_redirects: bool = False
    use_rendering: bool = False
    capture_screenshot: bool = False
    scrape_text: bool = False


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"
    output_format: str = "text"  # 'json', 'text', 'both'


@dataclass
class SystemConfig:
    """Main system configuration combining all sub-configurations."""

    fetch: FetchConfig = field(default_factory=FetchConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    features: FeatureToggles = field(default_factory=FeatureToggles)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


ENV_PREFIX = "SITE_PROBE_"


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    try:
        return int(env.get(name, str(default)))
    except (TypeError, ValueError):
        return default


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    try:
        return float(env.get(name, str(default)))
    except (TypeError, ValueError):
        return default


def apply_env_overrides(
    config: SystemConfig, env: Optional[Mapping[str, str]] = None
) -> SystemConfig:
    """
    Overlay ``SITE_PROBE_*`` environment variables onto ``config``.

    Call ``dotenv.load_dotenv()`` first to pick up a ``.env`` file. Values
    that do not parse keep the configured setting.

    Returns:
        The same config object, updated in place
    """
    env = os.environ if env is None else env

    config.fetch.timeout_seconds = _float_env(
        env, ENV_PREFIX + "FETCH_TIMEOUT", config.fetch.timeout_seconds
    )
    config.render.timeout_seconds = _float_env(
        env, ENV_PREFIX + "RENDER_TIMEOUT", config.render.timeout_seconds
    )
    config.batch.batch_width = _int_env(
        env, ENV_PREFIX + "BATCH_WIDTH", config.batch.batch_width
    )
    config.batch.render_batch_width = _int_env(
        env, ENV_PREFIX + "RENDER_BATCH_WIDTH", config.batch.render_batch_width
    )
    config.resolver.max_hops = _int_env(
        env, ENV_PREFIX + "MAX_HOPS", config.resolver.max_hops
    )

    level = (env.get(ENV_PREFIX + "LOG_LEVEL") or "").strip().lower()
    if level:
        config.logging.level = level
    return config
