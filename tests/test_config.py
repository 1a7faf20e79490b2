"""Tests for rate_anybody.config loading, INI parsing and environment overrides."""

import configparser
import logging

import pytest

from rate_anybody.config import (
    LoggingSettings,
    RaterConfig,
    _load_from_ini,
    configure_logging,
    load_config,
)

_ENV_VARS = (
    "RATER_GATEWAY_URL",
    "RATER_LEDGER_TIMEOUT",
    "RATER_RELAY_URL",
    "RATER_STRATEGY",
    "RATER_INTERACTIVE",
    "RATER_MAX_PAYLOAD_BYTES",
    "RATER_ENFORCE_SCORE_RANGE",
    "RATER_QUERY_TIMEOUT",
    "RATER_PAGE_SIZE",
    "RATER_LOG_LEVEL",
    "RATER_HOST",
    "RATER_PORT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.mark.unit
def test_defaults():
    cfg = RaterConfig()

    assert cfg.ledger.gateway_url == "https://arweave.net"
    assert cfg.ledger.explorer_url == "https://viewblock.io/arweave/tx"
    assert cfg.relay.node_url == "https://node2.irys.xyz"
    assert cfg.submission.max_payload_bytes == 51200
    assert cfg.submission.relay_threshold_bytes == 102400
    assert cfg.submission.strategy == "auto"
    assert cfg.submission.interactive_confirmation is True
    assert cfg.submission.enforce_score_range is False
    assert cfg.query.page_size == 100
    assert cfg.query.timeout == 30.0
    assert cfg.query.fetch_concurrency == 8


@pytest.mark.unit
def test_load_from_ini():
    parser = configparser.ConfigParser()
    parser.read_string(
        """
[ledger]
gateway_url = https://gw.example.org/
timeout = 12.5

[submission]
strategy = direct
interactive_confirmation = no
enforce_score_range = yes
score_max = 5

[query]
page_size = 25
max_pages = 3

[logging]
level = debug
format = detailed
"""
    )
    cfg = RaterConfig()

    _load_from_ini(parser, cfg)

    assert cfg.ledger.gateway_url == "https://gw.example.org"
    assert cfg.ledger.timeout == 12.5
    assert cfg.submission.strategy == "direct"
    assert cfg.submission.interactive_confirmation is False
    assert cfg.submission.enforce_score_range is True
    assert cfg.submission.score_max == 5
    assert cfg.query.page_size == 25
    assert cfg.query.max_pages == 3
    assert cfg.logging.level == "DEBUG"
    assert cfg.logging.format == "detailed"


@pytest.mark.unit
def test_load_config_from_explicit_file(tmp_path):
    ini = tmp_path / "rater.ini"
    ini.write_text("[relay]\nnode_url = https://relay.example.org\n", encoding="utf-8")

    cfg = load_config(ini)

    assert cfg.relay.node_url == "https://relay.example.org"
    assert cfg.ledger.gateway_url == "https://arweave.net"


@pytest.mark.unit
def test_unknown_strategy_rejected(tmp_path):
    ini = tmp_path / "rater.ini"
    ini.write_text("[submission]\nstrategy = carrier-pigeon\n", encoding="utf-8")

    with pytest.raises(ValueError, match="Unknown submission strategy"):
        load_config(ini)


@pytest.mark.unit
def test_missing_section_header_rejected(tmp_path):
    ini = tmp_path / "rater.ini"
    ini.write_text("timeout = 5\n", encoding="utf-8")

    with pytest.raises(configparser.MissingSectionHeaderError):
        load_config(ini)


@pytest.mark.unit
def test_env_overrides_file(tmp_path, monkeypatch):
    ini = tmp_path / "rater.ini"
    ini.write_text("[ledger]\ngateway_url = https://from-file.example.org\n", encoding="utf-8")
    monkeypatch.setenv("RATER_GATEWAY_URL", "https://from-env.example.org/")
    monkeypatch.setenv("RATER_STRATEGY", "relay")
    monkeypatch.setenv("RATER_INTERACTIVE", "false")
    monkeypatch.setenv("RATER_MAX_PAYLOAD_BYTES", "1024")
    monkeypatch.setenv("RATER_PAGE_SIZE", "10")
    monkeypatch.setenv("RATER_PORT", "9001")

    cfg = load_config(ini)

    assert cfg.ledger.gateway_url == "https://from-env.example.org"
    assert cfg.submission.strategy == "relay"
    assert cfg.submission.interactive_confirmation is False
    assert cfg.submission.max_payload_bytes == 1024
    assert cfg.query.page_size == 10
    assert cfg.service.port == 9001


@pytest.mark.unit
def test_missing_file_uses_defaults(tmp_path):
    cfg = load_config(tmp_path / "absent.ini")
    assert cfg.submission.max_payload_bytes == 51200


@pytest.mark.unit
def test_configure_logging_sets_level():
    configure_logging(LoggingSettings(level="DEBUG"))
    assert logging.getLogger().level == logging.DEBUG

    configure_logging(LoggingSettings(level="WARNING"))
    assert logging.getLogger().level == logging.WARNING
