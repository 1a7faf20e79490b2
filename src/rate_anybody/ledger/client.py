"""
Async HTTP clients for the ledger gateway and the bundling relay.

Both clients follow the same shape: they must be used as async context
managers so the underlying connection pool is always closed, and every
failure (connection error, timeout, non-2xx status, undecodable body) is
raised as a typed :class:`~rate_anybody.errors.NetworkError` carrying the
status code and the underlying cause.  Nothing is retried.

    async with LedgerClient.from_settings(cfg.ledger) as ledger:
        balance = await ledger.get_balance(address)
        fee = await ledger.get_price(len(payload))

Key Features:
    - Async HTTP requests using httpx
    - Balances and prices are fetched per call, never cached
    - Index queries carry their own timeout and raise IndexUnavailableError
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import httpx

from rate_anybody.config import LedgerSettings, RelaySettings
from rate_anybody.errors import IndexUnavailableError, NetworkError

if TYPE_CHECKING:
    from rate_anybody.ledger.data_item import DataItem
    from rate_anybody.ledger.transaction import LedgerTransaction

logger = logging.getLogger(__name__)

WINSTON_PER_AR = 10**12

# Statuses the gateway uses to accept a posted transaction.
ACCEPTED_STATUSES = (200, 202)


def winston_to_ar(winston: int) -> Decimal:
    """Convert winston (the ledger's atomic unit) to AR."""
    return Decimal(winston) / Decimal(WINSTON_PER_AR)


def _parse_amount(text: str, operation: str, status_code: int) -> int:
    try:
        return int(text.strip())
    except ValueError as e:
        raise NetworkError(
            message=f"{operation} failed",
            status_code=status_code,
            detail=f"Expected an integer amount, got {text[:40]!r}",
        ) from e


# =============================================================================
# BASE CLIENT
# =============================================================================


@dataclass
class _HTTPClient:
    """Shared context-manager plumbing and request wrapping."""

    base_url: str
    timeout: float
    _http_client: httpx.AsyncClient | None = field(default=None, repr=False)

    async def __aenter__(self):
        self._http_client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            follow_redirects=True,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    @property
    def http_client(self) -> httpx.AsyncClient:
        """
        Get the HTTP client, ensuring it's been initialized.

        Raises:
            RuntimeError: If accessed outside of async context manager.
        """
        if self._http_client is None:
            raise RuntimeError(
                f"{type(self).__name__} must be used as an async context manager. "
                f"Use 'async with {type(self).__name__}(...) as client:'"
            )
        return self._http_client

    async def _send(
        self,
        method: str,
        url: str,
        *,
        operation: str,
        expected: tuple[int, ...] = (200,),
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request and raise NetworkError on any failure."""
        try:
            response = await self.http_client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise NetworkError(
                message=f"{operation} failed",
                status_code=0,
                detail=f"Timed out contacting {self.base_url}: {e}",
            ) from e
        except httpx.HTTPError as e:
            raise NetworkError(
                message=f"{operation} failed",
                status_code=0,
                detail=f"Cannot connect to {self.base_url}: {e}",
            ) from e

        if response.status_code not in expected:
            raise NetworkError(
                message=f"{operation} failed",
                status_code=response.status_code,
                detail=response.reason_phrase or response.text[:200],
            )
        return response


# =============================================================================
# LEDGER GATEWAY
# =============================================================================


@dataclass
class LedgerClient(_HTTPClient):
    """
    Async client for the ledger gateway.

    Covers wallet balances, fee quotes, transaction anchors, transaction
    submission, payload retrieval and the GraphQL index.

    Example:
        async with LedgerClient.from_settings(cfg.ledger) as ledger:
            status = await ledger.post_transaction(tx)
    """

    @classmethod
    def from_settings(cls, settings: LedgerSettings) -> LedgerClient:
        return cls(base_url=settings.gateway_url, timeout=settings.timeout)

    async def __aenter__(self) -> LedgerClient:
        await super().__aenter__()
        return self

    async def get_balance(self, address: str) -> int:
        """Return the wallet balance in winston."""
        response = await self._send(
            "GET", f"/wallet/{address}/balance", operation="Balance lookup"
        )
        return _parse_amount(response.text, "Balance lookup", response.status_code)

    async def get_price(self, data_size: int, target: str | None = None) -> int:
        """Return the fee in winston for a payload of ``data_size`` bytes."""
        path = f"/price/{data_size}" + (f"/{target}" if target else "")
        response = await self._send("GET", path, operation="Fee quote")
        return _parse_amount(response.text, "Fee quote", response.status_code)

    async def get_anchor(self) -> str:
        """Return a recent block anchor for a new transaction's ``last_tx``."""
        response = await self._send("GET", "/tx_anchor", operation="Anchor lookup")
        return response.text.strip()

    async def post_transaction(self, transaction: LedgerTransaction) -> int:
        """Submit a signed transaction.

        Returns:
            int: The acceptance status (200 or 202).

        Raises:
            NetworkError: If the gateway does not accept the transaction.
        """
        if not transaction.is_signed:
            raise ValueError("transaction must be signed before posting")
        response = await self._send(
            "POST",
            "/tx",
            operation="Upload",
            expected=ACCEPTED_STATUSES,
            json=transaction.to_json(),
        )
        logger.info("Gateway accepted %s with status %d", transaction.id, response.status_code)
        return response.status_code

    async def get_data(self, transaction_id: str) -> bytes:
        """Fetch a transaction's raw payload bytes."""
        response = await self._send(
            "GET", f"/{transaction_id}", operation=f"Payload fetch for {transaction_id}"
        )
        return response.content

    async def graphql(self, body: dict[str, Any], *, timeout: float) -> dict[str, Any]:
        """
        Run a GraphQL query against the gateway's index.

        Args:
            body: ``{"query": ..., "variables": ...}``.
            timeout: Client-side bound on the whole request, in seconds.

        Returns:
            dict: The ``data`` object of the response.

        Raises:
            IndexUnavailableError: If the index times out or cannot be reached.
            NetworkError: If the index answers with an error.
        """
        try:
            response = await self.http_client.post("/graphql", json=body, timeout=timeout)
        except httpx.TimeoutException as e:
            raise IndexUnavailableError(
                message="Index query failed",
                status_code=0,
                detail=f"Query timed out after {timeout:g} seconds",
            ) from e
        except httpx.HTTPError as e:
            raise IndexUnavailableError(
                message="Index query failed",
                status_code=0,
                detail=f"Cannot connect to {self.base_url}: {e}",
            ) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise NetworkError(
                message="Index query failed",
                status_code=response.status_code,
                detail=f"Index returned invalid response (status {response.status_code})",
            ) from e

        if response.status_code != 200:
            raise NetworkError(
                message="Index query failed",
                status_code=response.status_code,
                detail=str(payload.get("errors", "Index error")) if isinstance(payload, dict) else "",
            )
        if not isinstance(payload, dict) or payload.get("errors") or "data" not in payload:
            errors = payload.get("errors") if isinstance(payload, dict) else None
            raise NetworkError(
                message="Index query failed",
                status_code=response.status_code,
                detail=str(errors or "Response carried no data"),
            )
        return payload["data"]


# =============================================================================
# BUNDLING RELAY
# =============================================================================


@dataclass
class RelayClient(_HTTPClient):
    """
    Async client for the bundling relay node.

    Amounts are in the relay currency's atomic unit, which for the ``arweave``
    currency is winston.
    """

    currency: str = "arweave"
    gateway_url: str = "https://gateway.irys.xyz"

    @classmethod
    def from_settings(cls, settings: RelaySettings, timeout: float) -> RelayClient:
        return cls(
            base_url=settings.node_url,
            timeout=timeout,
            currency=settings.currency,
            gateway_url=settings.gateway_url,
        )

    async def __aenter__(self) -> RelayClient:
        await super().__aenter__()
        return self

    async def get_price(self, data_size: int) -> int:
        """Return the relay fee for ``data_size`` bytes."""
        response = await self._send(
            "GET", f"/price/{self.currency}/{data_size}", operation="Relay fee quote"
        )
        return _parse_amount(response.text, "Relay fee quote", response.status_code)

    async def get_balance(self, address: str) -> int:
        """Return the balance the relay holds for ``address``."""
        response = await self._send(
            "GET",
            f"/account/balance/{self.currency}",
            operation="Relay balance lookup",
            params={"address": address},
        )
        try:
            body = response.json()
            return int(body["balance"])
        except (ValueError, KeyError, TypeError) as e:
            raise NetworkError(
                message="Relay balance lookup failed",
                status_code=response.status_code,
                detail="Relay returned invalid balance response",
            ) from e

    async def upload(self, item: DataItem) -> dict[str, Any]:
        """Upload a signed data item.

        Returns:
            dict: The relay receipt; always contains ``id``.

        Raises:
            NetworkError: If the relay rejects the item or the receipt has no id.
        """
        response = await self._send(
            "POST",
            f"/tx/{self.currency}",
            operation="Relay upload",
            expected=(200, 201, 202),
            content=item.to_bytes(),
            headers={"Content-Type": "application/octet-stream"},
        )
        try:
            receipt = response.json()
        except ValueError as e:
            raise NetworkError(
                message="Relay upload failed",
                status_code=response.status_code,
                detail="Relay returned a non-JSON receipt",
            ) from e
        if not isinstance(receipt, dict) or not receipt.get("id"):
            raise NetworkError(
                message="Relay upload failed",
                status_code=response.status_code,
                detail="Relay receipt has no id",
            )
        return receipt

    async def get_data(self, transaction_id: str) -> bytes:
        """Fetch an uploaded payload from the relay's gateway."""
        response = await self._send(
            "GET",
            f"{self.gateway_url.rstrip('/')}/{transaction_id}",
            operation=f"Payload fetch for {transaction_id}",
        )
        return response.content
