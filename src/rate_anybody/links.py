"""Human-facing URLs derived from a transaction id."""

from __future__ import annotations

DEFAULT_GATEWAY = "https://arweave.net"
DEFAULT_EXPLORER = "https://viewblock.io/arweave/tx"


def gateway_url(transaction_id: str, gateway: str = DEFAULT_GATEWAY) -> str:
    """Link serving the raw payload: ``https://<gateway-host>/<id>``."""
    return f"{gateway.rstrip('/')}/{transaction_id}"


def explorer_url(transaction_id: str, explorer: str = DEFAULT_EXPLORER) -> str:
    """Block explorer page: ``https://<explorer-host>/arweave/tx/<id>``."""
    return f"{explorer.rstrip('/')}/{transaction_id}"


def short_id(transaction_id: str) -> str:
    """Abbreviate an id as ``first8...last8`` for compact display."""
    if len(transaction_id) <= 19:
        return transaction_id
    return f"{transaction_id[:8]}...{transaction_id[-8:]}"
