"""
API endpoint tests for FastAPI routes (rate_anybody/api/routes/).

Tests cover:
- Health endpoint
- Rating search: filters, partial records, limit validation, index failures
- Rating submission: signer loading, acceptance, error status mapping

Uses TestClient for HTTP request testing; outbound ledger and relay calls are
mocked with respx.
"""

import hashlib
import json

import httpx
import pytest
import respx
from httpx import Response

from rate_anybody import __version__
from rate_anybody.api.routes.utils import status_for_error
from rate_anybody.config import WALLET_ENV_VAR
from rate_anybody.errors import (
    ConfigurationError,
    IndexUnavailableError,
    InsufficientFundsError,
    NetworkError,
    RateAnybodyError,
    SubmissionCancelled,
    ValidationError,
)
from rate_anybody.ledger.encoding import b64url_encode
from tests.constants import (
    AR,
    EXPLORER_URL,
    GATEWAY_URL,
    OTHER_TX_ID,
    RELAY_GATEWAY_URL,
    RELAY_URL,
    TX_ID,
)

RATING_BODY = {
    "first_name": "Ada",
    "last_name": "Lovelace",
    "location": "London",
    "score": 9,
    "comments": "First programmer",
}


@pytest.fixture
def signing_env(monkeypatch, jwk_base64):
    monkeypatch.setenv(WALLET_ENV_VAR, jwk_base64)


def _index(*ids: str) -> dict:
    edges = [
        {
            "cursor": tx_id,
            "node": {
                "id": tx_id,
                "tags": [
                    {"name": "App-Name", "value": "RateAnybody"},
                    {"name": "First-Name", "value": "Ada"},
                    {"name": "Rating-Score", "value": "9"},
                    {"name": "Unix-Time", "value": str(100 + i)},
                ],
                "block": None,
            },
        }
        for i, tx_id in enumerate(ids)
    ]
    return {"data": {"transactions": {"pageInfo": {"hasNextPage": False}, "edges": edges}}}


def _relay_receipt(request):
    signature = request.content[2:514]
    return Response(200, json={"id": b64url_encode(hashlib.sha256(signature).digest())})


# ============================================================================
# HEALTH ENDPOINT TESTS
# ============================================================================


@pytest.mark.api
def test_health(test_client):
    response = test_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "version": __version__}


# ============================================================================
# SEARCH ENDPOINT TESTS
# ============================================================================


@pytest.mark.api
@respx.mock
def test_list_ratings(test_client):
    index = respx.post(f"{GATEWAY_URL}/graphql").mock(
        return_value=Response(200, json=_index(TX_ID, OTHER_TX_ID))
    )
    respx.get(f"{GATEWAY_URL}/{TX_ID}").mock(
        return_value=Response(200, json={"firstName": "Ada", "comments": "Kind"})
    )
    respx.get(f"{GATEWAY_URL}/{OTHER_TX_ID}").mock(return_value=Response(404))

    response = test_client.get("/ratings", params={"name": "Ada", "location": "London"})

    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 2
    newest, oldest = data["ratings"]
    assert newest["transaction_id"] == OTHER_TX_ID
    assert newest["partial"] is True
    assert newest["comments"] is None
    assert newest["score"] == 9
    assert oldest["comments"] == "Kind"
    assert oldest["gateway_url"] == f"{GATEWAY_URL}/{TX_ID}"
    assert oldest["explorer_url"] == f"{EXPLORER_URL}/{TX_ID}"

    tags = json.loads(index.calls[0].request.content)["variables"]["tags"]
    assert {"name": "Location", "values": ["London"]} in tags


@pytest.mark.api
@respx.mock
def test_list_ratings_limit(test_client):
    respx.post(f"{GATEWAY_URL}/graphql").mock(
        return_value=Response(200, json=_index(TX_ID, OTHER_TX_ID))
    )
    respx.get(url__regex=rf"{GATEWAY_URL}/[\w-]+$").mock(return_value=Response(200, json={}))

    response = test_client.get("/ratings", params={"limit": 1})

    assert response.json()["count"] == 1


@pytest.mark.api
def test_list_ratings_rejects_zero_limit(test_client):
    assert test_client.get("/ratings", params={"limit": 0}).status_code == 422


@pytest.mark.api
@respx.mock
def test_list_ratings_index_timeout(test_client):
    respx.post(f"{GATEWAY_URL}/graphql").mock(side_effect=httpx.ReadTimeout("slow"))

    response = test_client.get("/ratings")

    assert response.status_code == 503
    assert "timed out" in response.json()["detail"]


@pytest.mark.api
@respx.mock
def test_list_ratings_index_error(test_client):
    respx.post(f"{GATEWAY_URL}/graphql").mock(
        return_value=Response(500, json={"errors": [{"message": "boom"}]})
    )

    assert test_client.get("/ratings").status_code == 502


@pytest.mark.api
@respx.mock
def test_list_ratings_null_edges(test_client):
    respx.post(f"{GATEWAY_URL}/graphql").mock(
        return_value=Response(200, json={"data": {"transactions": {"edges": None}}})
    )

    assert test_client.get("/ratings").status_code == 502


# ============================================================================
# SUBMISSION ENDPOINT TESTS
# ============================================================================


@pytest.mark.api
def test_submit_without_signing_key(test_client, monkeypatch):
    monkeypatch.delenv(WALLET_ENV_VAR, raising=False)

    response = test_client.post("/ratings", json=RATING_BODY)

    assert response.status_code == 503
    assert WALLET_ENV_VAR in response.json()["detail"]


@pytest.mark.api
def test_submit_requires_score(test_client):
    body = {key: value for key, value in RATING_BODY.items() if key != "score"}
    assert test_client.post("/ratings", json=body).status_code == 422


@pytest.mark.api
@respx.mock
def test_submit_via_relay(test_client, signing_env):
    respx.get(f"{RELAY_URL}/account/balance/arweave").mock(
        return_value=Response(200, json={"balance": "0"})
    )
    respx.get(url__regex=rf"{RELAY_URL}/price/arweave/\d+").mock(
        return_value=Response(200, text="0")
    )
    upload = respx.post(f"{RELAY_URL}/tx/arweave").mock(side_effect=_relay_receipt)

    response = test_client.post("/ratings", json=RATING_BODY)

    assert response.status_code == 200
    data = response.json()
    assert upload.called
    assert data["strategy"] == "relay"
    assert data["phase"] == "accepted"
    assert data["status"] is None
    assert data["gateway_url"] == f"{RELAY_GATEWAY_URL}/{data['transaction_id']}"


@pytest.mark.api
@respx.mock
def test_submit_insufficient_funds(test_client, signing_env):
    test_client.app.state.context.config.submission.strategy = "direct"
    respx.get(url__regex=rf"{GATEWAY_URL}/wallet/.+/balance").mock(
        return_value=Response(200, text=str(AR))
    )
    respx.get(url__regex=rf"{GATEWAY_URL}/price/\d+").mock(
        return_value=Response(200, text=str(2 * AR))
    )
    post = respx.post(f"{GATEWAY_URL}/tx").mock(return_value=Response(200))

    response = test_client.post("/ratings", json=RATING_BODY)

    assert response.status_code == 402
    assert not post.called


@pytest.mark.api
def test_submit_oversize_payload(test_client, signing_env):
    body = {**RATING_BODY, "comments": "x" * 60_000}

    response = test_client.post("/ratings", json=body)

    assert response.status_code == 400
    assert "exceeds maximum allowed size" in response.json()["detail"]


@pytest.mark.api
@respx.mock
def test_submit_relay_unreachable(test_client, signing_env):
    respx.get(f"{RELAY_URL}/account/balance/arweave").mock(
        side_effect=httpx.ConnectError("refused")
    )

    assert test_client.post("/ratings", json=RATING_BODY).status_code == 502


# ============================================================================
# ERROR MAPPING TESTS
# ============================================================================


@pytest.mark.unit
@pytest.mark.parametrize(
    ("error", "status"),
    [
        (ValidationError("bad"), 400),
        (InsufficientFundsError(balance=1, fee=2), 402),
        (SubmissionCancelled("no"), 409),
        (IndexUnavailableError(message="slow"), 503),
        (ConfigurationError("no key"), 503),
        (NetworkError(message="down"), 502),
        (RateAnybodyError("other"), 500),
    ],
)
def test_status_for_error(error, status):
    assert status_for_error(error) == status
