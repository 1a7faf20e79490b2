"""
RateAnybody configuration management.

This module handles loading configuration from multiple sources with a clear
priority order:

    1. Command-line flags (highest priority) - applied by the CLI after loading
    2. Environment variables - for containerized deployments
    3. Config file (config/rater.ini) - for static deployments
    4. Built-in defaults (lowest priority) - sensible fallbacks

The RaterConfig dataclass provides typed access to all settings.  Unlike key
material, configuration carries no secrets: the signing key is loaded
separately by ``rate_anybody.wallet``.

Usage:
    from rate_anybody.config import load_config

    cfg = load_config()
    print(cfg.ledger.gateway_url)
    print(cfg.submission.max_payload_bytes)

Environment Variable Mapping:
    RATER_GATEWAY_URL          -> ledger.gateway_url
    RATER_LEDGER_TIMEOUT       -> ledger.timeout
    RATER_RELAY_URL            -> relay.node_url
    RATER_STRATEGY             -> submission.strategy
    RATER_INTERACTIVE          -> submission.interactive_confirmation
    RATER_MAX_PAYLOAD_BYTES    -> submission.max_payload_bytes
    RATER_ENFORCE_SCORE_RANGE  -> submission.enforce_score_range
    RATER_QUERY_TIMEOUT        -> query.timeout
    RATER_PAGE_SIZE            -> query.page_size
    RATER_LOG_LEVEL            -> logging.level
    RATER_HOST                 -> service.host
    RATER_PORT                 -> service.port
"""

from __future__ import annotations

import configparser
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

# =============================================================================
# PATH CONFIGURATION
# =============================================================================

# Project root directory (contains src/, config/)
PROJECT_ROOT = Path(__file__).parent.parent.parent

CONFIG_DIR = PROJECT_ROOT / "config"
CONFIG_FILE = CONFIG_DIR / "rater.ini"
CONFIG_EXAMPLE = CONFIG_DIR / "rater.example.ini"

# Application namespace attached to every rating as the App-Name tag.
APP_NAME = "RateAnybody"

# Environment variable holding base64-encoded key material.
WALLET_ENV_VAR = "WALLET_JSON_BASE64"

StrategyName = Literal["auto", "direct", "relay"]


# =============================================================================
# CONFIGURATION DATACLASSES
# =============================================================================


@dataclass
class LedgerSettings:
    """Arweave gateway configuration."""

    gateway_url: str = "https://arweave.net"
    explorer_url: str = "https://viewblock.io/arweave/tx"
    timeout: float = 30.0


@dataclass
class RelaySettings:
    """Bundling relay (Irys) configuration."""

    node_url: str = "https://node2.irys.xyz"
    gateway_url: str = "https://gateway.irys.xyz"
    currency: str = "arweave"


@dataclass
class SubmissionSettings:
    """Local guardrails applied before any fee is spent."""

    app_name: str = APP_NAME
    max_payload_bytes: int = 50 * 1024
    # Uploads under this size are free on the relay, so they never go direct.
    relay_threshold_bytes: int = 100 * 1024
    strategy: StrategyName = "auto"
    interactive_confirmation: bool = True
    score_min: int = 0
    score_max: int = 10
    enforce_score_range: bool = False
    usd_per_ar: float = 4.44


@dataclass
class QuerySettings:
    """GraphQL index query configuration."""

    page_size: int = 100
    max_pages: int = 1
    timeout: float = 30.0
    fetch_concurrency: int = 8


@dataclass
class LoggingSettings:
    """Logging configuration."""

    level: str = "WARNING"
    format: Literal["simple", "detailed"] = "simple"


@dataclass
class ServiceSettings:
    """HTTP service configuration."""

    host: str = "127.0.0.1"
    port: int = 8000


@dataclass
class RaterConfig:
    """
    Complete RateAnybody configuration.

    Aggregates all settings sections.  Built by :func:`load_config`.
    """

    ledger: LedgerSettings = field(default_factory=LedgerSettings)
    relay: RelaySettings = field(default_factory=RelaySettings)
    submission: SubmissionSettings = field(default_factory=SubmissionSettings)
    query: QuerySettings = field(default_factory=QuerySettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    service: ServiceSettings = field(default_factory=ServiceSettings)


# =============================================================================
# CONFIGURATION LOADING
# =============================================================================


def _parse_bool(value: str) -> bool:
    """Parse a string value to boolean."""
    return value.strip().lower() in ("true", "yes", "1", "on", "enabled")


def _parse_strategy(value: str) -> StrategyName:
    """Parse a submission strategy name, rejecting unknown values."""
    val = value.strip().lower()
    if val not in ("auto", "direct", "relay"):
        raise ValueError(f"Unknown submission strategy: {value!r}")
    return val  # type: ignore[return-value]


def _load_from_ini(parser: configparser.ConfigParser, cfg: RaterConfig) -> None:
    """Load configuration from parsed INI file into RaterConfig."""
    if parser.has_section("ledger"):
        if parser.has_option("ledger", "gateway_url"):
            cfg.ledger.gateway_url = parser.get("ledger", "gateway_url").rstrip("/")
        if parser.has_option("ledger", "explorer_url"):
            cfg.ledger.explorer_url = parser.get("ledger", "explorer_url").rstrip("/")
        if parser.has_option("ledger", "timeout"):
            cfg.ledger.timeout = parser.getfloat("ledger", "timeout")

    if parser.has_section("relay"):
        if parser.has_option("relay", "node_url"):
            cfg.relay.node_url = parser.get("relay", "node_url").rstrip("/")
        if parser.has_option("relay", "gateway_url"):
            cfg.relay.gateway_url = parser.get("relay", "gateway_url").rstrip("/")
        if parser.has_option("relay", "currency"):
            cfg.relay.currency = parser.get("relay", "currency")

    if parser.has_section("submission"):
        if parser.has_option("submission", "app_name"):
            cfg.submission.app_name = parser.get("submission", "app_name")
        if parser.has_option("submission", "max_payload_bytes"):
            cfg.submission.max_payload_bytes = parser.getint("submission", "max_payload_bytes")
        if parser.has_option("submission", "relay_threshold_bytes"):
            cfg.submission.relay_threshold_bytes = parser.getint(
                "submission", "relay_threshold_bytes"
            )
        if parser.has_option("submission", "strategy"):
            cfg.submission.strategy = _parse_strategy(parser.get("submission", "strategy"))
        if parser.has_option("submission", "interactive_confirmation"):
            cfg.submission.interactive_confirmation = _parse_bool(
                parser.get("submission", "interactive_confirmation")
            )
        if parser.has_option("submission", "score_min"):
            cfg.submission.score_min = parser.getint("submission", "score_min")
        if parser.has_option("submission", "score_max"):
            cfg.submission.score_max = parser.getint("submission", "score_max")
        if parser.has_option("submission", "enforce_score_range"):
            cfg.submission.enforce_score_range = _parse_bool(
                parser.get("submission", "enforce_score_range")
            )
        if parser.has_option("submission", "usd_per_ar"):
            cfg.submission.usd_per_ar = parser.getfloat("submission", "usd_per_ar")

    if parser.has_section("query"):
        if parser.has_option("query", "page_size"):
            cfg.query.page_size = parser.getint("query", "page_size")
        if parser.has_option("query", "max_pages"):
            cfg.query.max_pages = parser.getint("query", "max_pages")
        if parser.has_option("query", "timeout"):
            cfg.query.timeout = parser.getfloat("query", "timeout")
        if parser.has_option("query", "fetch_concurrency"):
            cfg.query.fetch_concurrency = parser.getint("query", "fetch_concurrency")

    if parser.has_section("logging"):
        if parser.has_option("logging", "level"):
            cfg.logging.level = parser.get("logging", "level").upper()
        if parser.has_option("logging", "format"):
            val = parser.get("logging", "format").lower()
            if val in ("simple", "detailed"):
                cfg.logging.format = val  # type: ignore[assignment]

    if parser.has_section("service"):
        if parser.has_option("service", "host"):
            cfg.service.host = parser.get("service", "host")
        if parser.has_option("service", "port"):
            cfg.service.port = parser.getint("service", "port")


def _apply_env_overrides(cfg: RaterConfig) -> None:
    """Apply environment variable overrides to configuration."""
    if env_gateway := os.getenv("RATER_GATEWAY_URL"):
        cfg.ledger.gateway_url = env_gateway.rstrip("/")
    if env_ledger_timeout := os.getenv("RATER_LEDGER_TIMEOUT"):
        cfg.ledger.timeout = float(env_ledger_timeout)
    if env_relay := os.getenv("RATER_RELAY_URL"):
        cfg.relay.node_url = env_relay.rstrip("/")

    if env_strategy := os.getenv("RATER_STRATEGY"):
        cfg.submission.strategy = _parse_strategy(env_strategy)
    if env_interactive := os.getenv("RATER_INTERACTIVE"):
        cfg.submission.interactive_confirmation = _parse_bool(env_interactive)
    if env_max := os.getenv("RATER_MAX_PAYLOAD_BYTES"):
        cfg.submission.max_payload_bytes = int(env_max)
    if env_enforce := os.getenv("RATER_ENFORCE_SCORE_RANGE"):
        cfg.submission.enforce_score_range = _parse_bool(env_enforce)

    if env_query_timeout := os.getenv("RATER_QUERY_TIMEOUT"):
        cfg.query.timeout = float(env_query_timeout)
    if env_page := os.getenv("RATER_PAGE_SIZE"):
        cfg.query.page_size = int(env_page)

    if env_log := os.getenv("RATER_LOG_LEVEL"):
        cfg.logging.level = env_log.upper()

    if env_host := os.getenv("RATER_HOST"):
        cfg.service.host = env_host
    if env_port := os.getenv("RATER_PORT"):
        cfg.service.port = int(env_port)


def load_config(config_file: Path | None = None) -> RaterConfig:
    """
    Load configuration from all sources with proper priority.

    Priority (highest wins):
        1. Environment variables
        2. ``config_file`` if given, else config/rater.ini
        3. config/rater.example.ini (fallback for development)
        4. Built-in defaults

    Args:
        config_file: Explicit INI file to read instead of the default search.

    Returns:
        RaterConfig: Fully populated configuration object.

    Raises:
        ValueError: If a setting holds a value of the wrong type or an
            unknown strategy name.
        configparser.Error: If the INI file cannot be parsed.
    """
    cfg = RaterConfig()

    if config_file is None:
        if CONFIG_FILE.exists():
            config_file = CONFIG_FILE
        elif CONFIG_EXAMPLE.exists():
            config_file = CONFIG_EXAMPLE

    if config_file is not None and Path(config_file).exists():
        parser = configparser.ConfigParser()
        parser.read(config_file)
        _load_from_ini(parser, cfg)

    _apply_env_overrides(cfg)

    return cfg


# =============================================================================
# LOGGING SETUP
# =============================================================================

_LOG_FORMATS = {
    "simple": "%(levelname)s %(message)s",
    "detailed": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
}


def configure_logging(settings: LoggingSettings) -> None:
    """Configure the root logger from logging settings.

    Called once by the CLI and the HTTP service at startup.  Library modules
    only ever obtain loggers with ``logging.getLogger(__name__)``.
    """
    logging.basicConfig(
        level=getattr(logging, settings.level.upper(), logging.WARNING),
        format=_LOG_FORMATS[settings.format],
        force=True,
    )
