"""
Shared pytest fixtures for the RateAnybody test suite.

This module provides fixtures that are automatically available to all test files:
- Signing keys (a 4096-bit JWK generated once per session) and wallets
- Key files on disk
- A configuration pointing at mock gateway, relay and explorer hosts
- A sample rating
- FastAPI TestClient instances

HTTP traffic is never real: tests mock the hosts in ``tests.constants`` with
respx.
"""

import base64
import json
from collections.abc import Generator
from pathlib import Path

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient

from rate_anybody.config import RaterConfig
from rate_anybody.ledger.encoding import b64url_encode
from rate_anybody.rating import Rating
from rate_anybody.wallet import Wallet
from tests.constants import (
    EXPLORER_URL,
    GATEWAY_URL,
    RELAY_GATEWAY_URL,
    RELAY_URL,
    SAMPLE_TIMESTAMP,
)

# ============================================================================
# KEY FIXTURES
# ============================================================================


def _b64url_int(value: int) -> str:
    return b64url_encode(value.to_bytes((value.bit_length() + 7) // 8, "big"))


def make_jwk(key_size: int) -> dict[str, str]:
    """Generate an RSA key and return it as a ledger JWK."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
    numbers = key.private_numbers()
    public = numbers.public_numbers
    return {
        "kty": "RSA",
        "n": _b64url_int(public.n),
        "e": _b64url_int(public.e),
        "d": _b64url_int(numbers.d),
        "p": _b64url_int(numbers.p),
        "q": _b64url_int(numbers.q),
        "dp": _b64url_int(numbers.dmp1),
        "dq": _b64url_int(numbers.dmq1),
        "qi": _b64url_int(numbers.iqmp),
    }


@pytest.fixture(scope="session")
def jwk() -> dict[str, str]:
    """
    A 4096-bit RSA key in JWK form.

    Generated once per session; ledger keys are 4096-bit and the relay's
    data item layout requires that size.
    """
    return make_jwk(4096)


@pytest.fixture(scope="session")
def small_jwk() -> dict[str, str]:
    """A 2048-bit key, valid for signing but rejected by the relay path."""
    return make_jwk(2048)


@pytest.fixture
def wallet(jwk: dict[str, str]) -> Wallet:
    return Wallet(jwk)


@pytest.fixture
def jwk_file(tmp_path: Path, jwk: dict[str, str]) -> Path:
    """The session key written to a temporary JWK file."""
    path = tmp_path / "wallet.json"
    path.write_text(json.dumps(jwk), encoding="utf-8")
    return path


@pytest.fixture
def jwk_base64(jwk: dict[str, str]) -> str:
    """The session key encoded the way WALLET_JSON_BASE64 carries it."""
    return base64.b64encode(json.dumps(jwk).encode("utf-8")).decode("ascii")


# ============================================================================
# CONFIGURATION FIXTURES
# ============================================================================


@pytest.fixture
def config() -> RaterConfig:
    """
    Configuration pointing at the mock hosts, with confirmation disabled.

    Built from defaults only, so no INI file or RATER_* variable leaks in.
    """
    cfg = RaterConfig()
    cfg.ledger.gateway_url = GATEWAY_URL
    cfg.ledger.explorer_url = EXPLORER_URL
    cfg.ledger.timeout = 5.0
    cfg.relay.node_url = RELAY_URL
    cfg.relay.gateway_url = RELAY_GATEWAY_URL
    cfg.submission.interactive_confirmation = False
    cfg.query.timeout = 5.0
    return cfg


@pytest.fixture
def sample_rating() -> Rating:
    return Rating.create(
        first_name="Ada",
        middle_name="",
        last_name="Lovelace",
        location="London",
        associations="Analytical Engine",
        score=9,
        comments="First programmer",
        timestamp=SAMPLE_TIMESTAMP,
    )


# ============================================================================
# API FIXTURES
# ============================================================================


@pytest.fixture
def test_client(config: RaterConfig) -> Generator[TestClient, None, None]:
    """
    Create a FastAPI TestClient for API endpoint testing.

    The app is built from the ``config`` fixture, so every outbound call
    targets the mock hosts.
    """
    from rate_anybody.api.server import create_app

    with TestClient(create_app(config)) as client:
        yield client
