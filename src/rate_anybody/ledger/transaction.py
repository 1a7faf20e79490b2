"""Signed ledger transactions (format 2) for the direct submission path.

A transaction commits to its payload through the merkle data root and to
everything else through a deep hash of its fields.  The signature is RSA-PSS
over that deep hash, and the transaction id is the SHA-256 of the signature.

The payload is sent inline in the ``data`` field, which the gateway accepts
for payloads far larger than the rating size cap.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from rate_anybody.ledger.encoding import b64url_decode, b64url_encode, data_root, deep_hash
from rate_anybody.tags import Tag
from rate_anybody.wallet import Wallet

TRANSACTION_FORMAT = 2


@dataclass
class LedgerTransaction:
    """
    A format-2 ledger transaction.

    ``id`` and ``signature`` stay empty until :meth:`sign` is called.

    Attributes:
        owner: Signer's public modulus (base64url).
        data: Raw payload bytes.
        tags: Ordered tags.
        reward: Fee in winston, as quoted by the gateway for ``len(data)``.
        last_tx: Anchor returned by the gateway's ``/tx_anchor``.
    """

    owner: str
    data: bytes
    tags: list[Tag]
    reward: int
    last_tx: str
    target: str = ""
    quantity: str = "0"
    data_root: str = ""
    id: str = ""
    signature: str = ""
    format: int = field(default=TRANSACTION_FORMAT, init=False)

    @property
    def data_size(self) -> int:
        return len(self.data)

    @property
    def is_signed(self) -> bool:
        return bool(self.signature)

    def signature_data(self) -> bytes:
        """Deep hash of every signed field."""
        return deep_hash(
            [
                str(self.format).encode(),
                b64url_decode(self.owner),
                b64url_decode(self.target),
                self.quantity.encode(),
                str(self.reward).encode(),
                b64url_decode(self.last_tx),
                [[tag.name.encode("utf-8"), tag.value.encode("utf-8")] for tag in self.tags],
                str(self.data_size).encode(),
                b64url_decode(self.data_root),
            ]
        )

    def sign(self, wallet: Wallet) -> None:
        """Compute the data root, sign, and assign the transaction id."""
        self.data_root = b64url_encode(data_root(self.data))
        raw_signature = wallet.sign(self.signature_data())
        self.signature = b64url_encode(raw_signature)
        self.id = b64url_encode(hashlib.sha256(raw_signature).digest())

    def to_json(self) -> dict[str, Any]:
        """Return the JSON body accepted by the gateway's ``POST /tx``."""
        return {
            "format": self.format,
            "id": self.id,
            "last_tx": self.last_tx,
            "owner": self.owner,
            "tags": [
                {
                    "name": b64url_encode(tag.name.encode("utf-8")),
                    "value": b64url_encode(tag.value.encode("utf-8")),
                }
                for tag in self.tags
            ],
            "target": self.target,
            "quantity": self.quantity,
            "data": b64url_encode(self.data),
            "data_size": str(self.data_size),
            "data_root": self.data_root,
            "reward": str(self.reward),
            "signature": self.signature,
        }


def create_transaction(
    wallet: Wallet,
    data: bytes,
    tags: Iterable[Tag],
    *,
    reward: int,
    last_tx: str,
) -> LedgerTransaction:
    """Build an unsigned transaction owned by ``wallet``."""
    return LedgerTransaction(
        owner=wallet.owner,
        data=data,
        tags=list(tags),
        reward=reward,
        last_tx=last_tx,
    )
