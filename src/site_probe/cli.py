"""
Command-line interface for the site probe system.

This module provides the main CLI entry point with commands for:
- check: Probe one or more addresses
- check-list: Probe addresses from a file and write JSON results
- config: Configuration management
"""

import argparse
import asyncio
import dataclasses
import json
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from . import __version__
from .audit_logger import AuditLogger, parse_level
from .config import (
    BatchConfig,
    FeatureToggles,
    FetchConfig,
    LoggingConfig,
    RenderConfig,
    ResolverConfig,
    SystemConfig,
    apply_env_overrides,
)
from .enums import Category, LogLevel
from .exceptions import ValidationError
from .models import CheckRequest, ProbeOutcome
from .orchestrator import CheckOrchestrator

DEFAULT_CONFIG_PATH = Path.home() / ".site_probe" / "config.json"

EXIT_OK = 0
EXIT_NOT_ALL_UP = 1
EXIT_INPUT_ERROR = 2

HEALTHY_CATEGORIES = (Category.UP, Category.REDIRECT_UP)

CATEGORY_LABELS = {
    Category.UP: "UP",
    Category.REDIRECT_UP: "REDIRECT (UP)",
    Category.REDIRECT_DOWN: "REDIRECT (DOWN)",
    Category.UNIQUE_REDIRECT: "UNIQUE REDIRECT",
    Category.CLOUDFLARE_BLOCK: "CLOUDFLARE",
    Category.DOWN: "DOWN",
}

CONFIG_SECTIONS = {
    "fetch": FetchConfig,
    "render": RenderConfig,
    "resolver": ResolverConfig,
    "batch": BatchConfig,
    "features": FeatureToggles,
    "logging": LoggingConfig,
}


def create_default_config() -> SystemConfig:
    """
    Create a default system configuration.

    Returns:
        SystemConfig with default settings
    """
    return SystemConfig()


def _load_section(cls, data: dict):
    known = {f.name for f in dataclasses.fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise KeyError(f"Unknown {cls.__name__} keys: {', '.join(sorted(unknown))}")
    return cls(**data)


def load_config_from_file(config_path: Path) -> Optional[SystemConfig]:
    """
    Load configuration from a JSON file.

    Missing sections and keys keep their defaults.

    Args:
        config_path: Path to the configuration file

    Returns:
        SystemConfig if successful, None otherwise
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise TypeError("Configuration root must be an object")

        sections = {}
        for name, cls in CONFIG_SECTIONS.items():
            section_data = data.get(name) or {}
            if not isinstance(section_data, dict):
                raise TypeError(f"Section '{name}' must be an object")
            sections[name] = _load_section(cls, section_data)

        return SystemConfig(**sections)

    except (json.JSONDecodeError, KeyError, TypeError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return None
    except FileNotFoundError:
        return None


def save_config_to_file(config: SystemConfig, config_path: Path) -> bool:
    """
    Save configuration to a JSON file.

    Args:
        config: SystemConfig to save
        config_path: Path to save the configuration

    Returns:
        True if successful, False otherwise
    """
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(dataclasses.asdict(config), f, indent=2, ensure_ascii=False)
        return True

    except (OSError, TypeError) as e:
        print(f"Error saving config: {e}", file=sys.stderr)
        return False


def validate_config(config: SystemConfig) -> list[str]:
    """Return a list of problems; empty when the configuration is usable."""
    problems = []
    if config.fetch.timeout_seconds <= 0:
        problems.append("fetch.timeout_seconds must be positive")
    if config.fetch.body_prefix_bytes <= 0:
        problems.append("fetch.body_prefix_bytes must be positive")
    if config.render.timeout_seconds <= 0:
        problems.append("render.timeout_seconds must be positive")
    if config.render.max_pages < 1:
        problems.append("render.max_pages must be at least 1")
    if config.resolver.max_hops < 1:
        problems.append("resolver.max_hops must be at least 1")
    if config.batch.batch_width < 1 or config.batch.render_batch_width < 1:
        problems.append("batch widths must be at least 1")
    if config.logging.output_format not in ("json", "text", "both"):
        problems.append(f"logging.output_format is invalid: {config.logging.output_format}")
    try:
        parse_level(config.logging.level)
    except ValueError as e:
        problems.append(str(e))
    return problems


def build_config(args: argparse.Namespace) -> Optional[SystemConfig]:
    """Config file (or defaults), then environment, then command-line flags."""
    if getattr(args, "config", None):
        config = load_config_from_file(Path(args.config))
        if config is None:
            print(f"Error: Could not load config from {args.config}", file=sys.stderr)
            return None
    else:
        config = create_default_config()

    apply_env_overrides(config)

    features = config.features
    if args.variations:
        features.try_all_variations = True
    if args.no_redirect_check:
        features.check_redirect_destinations = False
    if args.unique:
        features.detect_unique_redirects = True
    if args.render:
        features.use_rendering = True
    if args.screenshot:
        features.use_rendering = True
        features.capture_screenshot = True
    if args.scrape_text:
        features.scrape_text = True
    if args.verbose:
        config.logging.level = LogLevel.DEBUG.value

    problems = validate_config(config)
    if problems:
        for problem in problems:
            print(f"Error: {problem}", file=sys.stderr)
        return None
    return config


def create_logger(config: SystemConfig) -> AuditLogger:
    """Logger for a configuration that passed ``validate_config``."""
    return AuditLogger(
        output_format=config.logging.output_format,
        min_level=parse_level(config.logging.level),
    )


def read_address_file(path: Path) -> list[str]:
    """Addresses from a file, one per line; blank lines and ``#`` comments skipped."""
    with open(path, "r", encoding="utf-8") as f:
        return [
            line.strip()
            for line in f
            if line.strip() and not line.lstrip().startswith("#")
        ]


def format_outcome(outcome: ProbeOutcome) -> str:
    label = CATEGORY_LABELS[outcome.category]
    if outcome.is_unique_redirect:
        label += " *unique*"
    line = f"[{label}] {outcome.input_address or outcome.address} - {outcome.reason}"
    destination = outcome.redirect_target or outcome.final_destination
    if destination:
        line += f" -> {destination}"
    if outcome.scraped_text:
        line += f'\n    "{outcome.scraped_text}"'
    return line


def exit_code_for(outcomes: list[ProbeOutcome]) -> int:
    if all(o.category in HEALTHY_CATEGORIES for o in outcomes):
        return EXIT_OK
    return EXIT_NOT_ALL_UP


async def run_checks(
    addresses: list[str],
    config: SystemConfig,
    corpus: Optional[list[str]] = None,
    logger: Optional[AuditLogger] = None,
) -> list[ProbeOutcome]:
    """Probe ``addresses`` with a fresh orchestrator."""
    request = CheckRequest(
        addresses=addresses,
        corpus=corpus,
        features=config.features,
    )
    async with CheckOrchestrator(config=config, logger=logger) as orchestrator:
        return await orchestrator.check_batch(request)


def cmd_check(args: argparse.Namespace) -> int:
    """Handle the 'check' command."""
    config = build_config(args)
    if config is None:
        return EXIT_INPUT_ERROR

    logger = create_logger(config)
    try:
        outcomes = asyncio.run(run_checks(args.addresses, config, logger=logger))
    except ValidationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_INPUT_ERROR

    if args.json:
        print(json.dumps([o.to_dict() for o in outcomes], indent=2, ensure_ascii=False))
    else:
        for outcome in outcomes:
            print(format_outcome(outcome))

    return exit_code_for(outcomes)


def cmd_check_list(args: argparse.Namespace) -> int:
    """Handle the 'check-list' command."""
    config = build_config(args)
    if config is None:
        return EXIT_INPUT_ERROR

    try:
        addresses = read_address_file(Path(args.file))
        corpus = read_address_file(Path(args.corpus)) if args.corpus else None
    except FileNotFoundError as e:
        print(f"Error: File not found: {e.filename}", file=sys.stderr)
        return EXIT_INPUT_ERROR
    except OSError as e:
        print(f"Error reading file: {e}", file=sys.stderr)
        return EXIT_INPUT_ERROR

    if not addresses:
        print("Error: No addresses found in file", file=sys.stderr)
        return EXIT_INPUT_ERROR

    print(f"Checking {len(addresses)} address(es)...")

    logger = create_logger(config)
    try:
        outcomes = asyncio.run(run_checks(addresses, config, corpus=corpus, logger=logger))
    except ValidationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_INPUT_ERROR

    for outcome in outcomes:
        print(format_outcome(outcome))

    counts = {category: 0 for category in CATEGORY_LABELS}
    for outcome in outcomes:
        counts[outcome.category] += 1
    summary = ", ".join(
        f"{CATEGORY_LABELS[category]}: {count}"
        for category, count in counts.items()
        if count
    )
    print(f"\nSummary ({len(outcomes)} checked): {summary}")

    if args.output:
        output_file = Path(args.output)
        try:
            output_file.parent.mkdir(parents=True, exist_ok=True)
            with open(output_file, "w", encoding="utf-8") as f:
                json.dump([o.to_dict() for o in outcomes], f, indent=2, ensure_ascii=False)
            print(f"Results written to: {output_file}")
        except OSError as e:
            print(f"Error writing results: {e}", file=sys.stderr)

    return exit_code_for(outcomes)


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    config_path = Path(args.path) if args.path else DEFAULT_CONFIG_PATH

    if args.action == "show":
        config = load_config_from_file(config_path)
        if config is None:
            print(f"No configuration found at: {config_path}")
            print("Use 'config init' to create a default configuration.")
            return EXIT_NOT_ALL_UP

        print(f"Configuration from: {config_path}")
        print(f"  Fetch timeout: {config.fetch.timeout_seconds}s")
        print(f"  Render timeout: {config.render.timeout_seconds}s")
        print(f"  Max redirect hops: {config.resolver.max_hops}")
        print(f"  Batch width: {config.batch.batch_width} (rendered: {config.batch.render_batch_width})")
        print(f"  Log level: {config.logging.level}")
        enabled = [name for name, value in dataclasses.asdict(config.features).items() if value]
        print(f"  Features: {', '.join(enabled) or 'none'}")
        return EXIT_OK

    elif args.action == "init":
        if config_path.exists() and not args.force:
            print(f"Configuration already exists at: {config_path}")
            print("Use --force to overwrite.")
            return EXIT_NOT_ALL_UP

        if save_config_to_file(create_default_config(), config_path):
            print(f"Configuration created at: {config_path}")
            return EXIT_OK
        return EXIT_NOT_ALL_UP

    elif args.action == "validate":
        config = load_config_from_file(config_path)
        if config is None:
            print(f"Error: Could not load config from {config_path}", file=sys.stderr)
            return EXIT_INPUT_ERROR

        problems = validate_config(config)
        if problems:
            for problem in problems:
                print(f"Error: {problem}", file=sys.stderr)
            return EXIT_INPUT_ERROR

        print(f"Configuration at {config_path} is valid.")
        return EXIT_OK

    return EXIT_INPUT_ERROR


def _add_probe_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--variations",
        action="store_true",
        help="Try all four scheme/www variants and keep the best",
    )
    parser.add_argument(
        "--no-redirect-check",
        action="store_true",
        help="Do not fetch redirect destinations",
    )
    parser.add_argument(
        "--unique",
        action="store_true",
        help="Flag redirects leaving the checked address list",
    )
    parser.add_argument(
        "--render",
        action="store_true",
        help="Load pages in a headless browser",
    )
    parser.add_argument(
        "--screenshot",
        action="store_true",
        help="Capture screenshots (implies --render)",
    )
    parser.add_argument(
        "--scrape-text",
        action="store_true",
        help="Attach the first words of each page",
    )
    parser.add_argument(
        "--config", "-c",
        help="Path to configuration file",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="site-probe",
        description="Classify web addresses as up, redirecting, blocked or down",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'check' command
    check_parser = subparsers.add_parser(
        "check",
        help="Probe one or more addresses",
    )
    check_parser.add_argument(
        "addresses",
        nargs="+",
        help="Addresses to probe (e.g., example.com https://www.example.org)",
    )
    check_parser.add_argument(
        "--json",
        action="store_true",
        help="Print results as JSON",
    )
    _add_probe_options(check_parser)
    check_parser.set_defaults(func=cmd_check)

    # 'check-list' command
    check_list_parser = subparsers.add_parser(
        "check-list",
        help="Probe addresses from a file",
    )
    check_list_parser.add_argument(
        "file",
        help="Path to file containing addresses (one per line)",
    )
    check_list_parser.add_argument(
        "--output", "-o",
        help="Path to write results as JSON",
    )
    check_list_parser.add_argument(
        "--corpus",
        help="File with the full address list used for unique redirect detection",
    )
    _add_probe_options(check_list_parser)
    check_list_parser.set_defaults(func=cmd_check_list)

    # 'config' command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
    )
    config_parser.add_argument(
        "action",
        choices=["show", "init", "validate"],
        help="Configuration action",
    )
    config_parser.add_argument(
        "--path", "-p",
        help="Path to configuration file",
    )
    config_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Force overwrite existing configuration",
    )
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    load_dotenv()

    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_OK

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
