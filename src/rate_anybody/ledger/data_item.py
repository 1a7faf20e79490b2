"""Signed bundle data items for the relayed submission path.

The relay accepts binary data items which it later packs, many at a time,
into a single ledger transaction.  Layout of a data item signed with an
RSA ledger key::

    signature type   2 bytes, little endian (1)
    signature        512 bytes
    owner            512 bytes (public modulus)
    target           1 presence byte (+32 bytes)
    anchor           1 presence byte (+32 bytes)
    tag count        8 bytes, little endian
    tag byte length  8 bytes, little endian
    tags             Avro array of {name: bytes, value: bytes}
    data             remaining bytes

The signature covers a deep hash of the item's fields and the item id is the
SHA-256 of the signature, so the id is known before the relay answers.
"""

from __future__ import annotations

import hashlib
import os
import struct
from collections.abc import Iterable
from dataclasses import dataclass

from rate_anybody.errors import ConfigurationError
from rate_anybody.ledger.encoding import b64url_encode, deep_hash
from rate_anybody.tags import Tag
from rate_anybody.wallet import Wallet

SIGNATURE_TYPE_ARWEAVE = 1
SIGNATURE_LENGTH = 512
OWNER_LENGTH = 512
ANCHOR_LENGTH = 32


def _zigzag_varint(value: int) -> bytes:
    """Encode a signed integer as an Avro long."""
    n = (value << 1) ^ (value >> 63)
    out = bytearray()
    while n & ~0x7F:
        out.append((n & 0x7F) | 0x80)
        n >>= 7
    out.append(n)
    return bytes(out)


def _avro_bytes(value: bytes) -> bytes:
    return _zigzag_varint(len(value)) + value


def encode_tags(tags: Iterable[Tag]) -> bytes:
    """Serialize tags as an Avro array of ``{name, value}`` byte records.

    No tags serialize to an empty byte string.
    """
    tag_list = list(tags)
    if not tag_list:
        return b""
    out = bytearray(_zigzag_varint(len(tag_list)))
    for tag in tag_list:
        out += _avro_bytes(tag.name.encode("utf-8"))
        out += _avro_bytes(tag.value.encode("utf-8"))
    out += _zigzag_varint(0)
    return bytes(out)


@dataclass
class DataItem:
    """
    A relay data item.

    Attributes:
        owner: Raw public modulus bytes (512 bytes for a 4096-bit key).
        data: Raw payload bytes.
        tags: Ordered tags.
        anchor: Optional 32-byte anchor preventing identical-item replays.
    """

    owner: bytes
    data: bytes
    tags: list[Tag]
    anchor: bytes = b""
    signature: bytes = b""

    @property
    def id(self) -> str:
        """The item id, available once signed."""
        if not self.signature:
            return ""
        return b64url_encode(hashlib.sha256(self.signature).digest())

    def signature_data(self) -> bytes:
        return deep_hash(
            [
                b"dataitem",
                b"1",
                str(SIGNATURE_TYPE_ARWEAVE).encode(),
                self.owner,
                b"",
                self.anchor,
                encode_tags(self.tags),
                self.data,
            ]
        )

    def sign(self, wallet: Wallet) -> None:
        self.signature = wallet.sign(self.signature_data())

    def to_bytes(self) -> bytes:
        """Serialize the signed item in the binary layout the relay accepts."""
        if not self.signature:
            raise ValueError("data item must be signed before serialization")
        tag_bytes = encode_tags(self.tags)
        out = bytearray(struct.pack("<H", SIGNATURE_TYPE_ARWEAVE))
        out += self.signature
        out += self.owner
        out += b"\x00"
        if self.anchor:
            out += b"\x01" + self.anchor
        else:
            out += b"\x00"
        out += struct.pack("<Q", len(self.tags))
        out += struct.pack("<Q", len(tag_bytes))
        out += tag_bytes
        out += self.data
        return bytes(out)


def create_data_item(
    wallet: Wallet,
    data: bytes,
    tags: Iterable[Tag],
    *,
    anchor: bytes | None = None,
) -> DataItem:
    """Build an unsigned data item owned by ``wallet``.

    Args:
        anchor: 32 bytes; a random anchor is generated when omitted.

    Raises:
        ConfigurationError: If the wallet's key is not 4096-bit, which the
            fixed-width owner field requires.
    """
    if wallet.key_size_bytes != OWNER_LENGTH:
        raise ConfigurationError(
            f"Relay uploads require a 4096-bit key (got {wallet.key_size_bytes * 8}-bit)"
        )
    if anchor is None:
        anchor = os.urandom(ANCHOR_LENGTH)
    if len(anchor) != ANCHOR_LENGTH:
        raise ValueError(f"anchor must be {ANCHOR_LENGTH} bytes")
    return DataItem(owner=wallet.owner_bytes, data=data, tags=list(tags), anchor=anchor)
