"""Byte-level encodings shared by ledger transactions and relay data items.

- base64url without padding, used for every binary field on the wire.
- Deep hash (SHA-384), the structure-aware hash that both transaction formats
  sign over.
- Merkle data root (SHA-256) committing a transaction to its payload chunks.
"""

from __future__ import annotations

import base64
import hashlib
import math
from collections.abc import Sequence
from dataclasses import dataclass

# Chunking constants fixed by the ledger protocol.
MAX_CHUNK_SIZE = 256 * 1024
MIN_CHUNK_SIZE = 32 * 1024
NOTE_SIZE = 32

DeepHashable = bytes | Sequence["DeepHashable"]


def b64url_encode(data: bytes) -> str:
    """Encode bytes as unpadded base64url."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(text: str) -> bytes:
    """Decode unpadded (or padded) base64url text.

    Raises:
        ValueError: If ``text`` is not valid base64url.
    """
    padded = text + "=" * (-len(text) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode("ascii"))
    except (UnicodeEncodeError, ValueError) as e:
        raise ValueError(f"not base64url: {text[:16]!r}") from e


def int_from_b64url(text: str) -> int:
    """Decode a base64url big-endian unsigned integer (JWK number fields)."""
    return int.from_bytes(b64url_decode(text), "big")


def _sha384(data: bytes) -> bytes:
    return hashlib.sha384(data).digest()


def _sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def deep_hash(data: DeepHashable) -> bytes:
    """Compute the deep hash of a blob or a (nested) list of blobs."""
    if isinstance(data, (bytes, bytearray)):
        tag = b"blob" + str(len(data)).encode()
        return _sha384(_sha384(tag) + _sha384(bytes(data)))

    acc = _sha384(b"list" + str(len(data)).encode())
    for item in data:
        acc = _sha384(acc + deep_hash(item))
    return acc


@dataclass(frozen=True)
class _Node:
    id: bytes
    max_byte_range: int


def _note(value: int) -> bytes:
    return value.to_bytes(NOTE_SIZE, "big")


def chunk_boundaries(size: int) -> list[tuple[int, int]]:
    """Split ``size`` bytes into ledger chunks as ``(start, end)`` ranges.

    Chunks are ``MAX_CHUNK_SIZE`` long except that a short tail below
    ``MIN_CHUNK_SIZE`` is avoided by halving the last full-size chunk.
    """
    ranges: list[tuple[int, int]] = []
    cursor = 0
    rest = size
    while rest >= MAX_CHUNK_SIZE:
        chunk_size = MAX_CHUNK_SIZE
        next_size = rest - MAX_CHUNK_SIZE
        if 0 < next_size < MIN_CHUNK_SIZE:
            chunk_size = math.ceil(rest / 2)
        ranges.append((cursor, cursor + chunk_size))
        cursor += chunk_size
        rest -= chunk_size
    ranges.append((cursor, cursor + rest))
    return ranges


def data_root(data: bytes) -> bytes:
    """Compute the merkle root over the payload's chunks.

    Empty payloads have no data root and return ``b""``.
    """
    if not data:
        return b""

    layer = [
        _Node(
            id=_sha256(_sha256(_sha256(data[start:end])) + _sha256(_note(end))),
            max_byte_range=end,
        )
        for start, end in chunk_boundaries(len(data))
    ]

    while len(layer) > 1:
        next_layer: list[_Node] = []
        for i in range(0, len(layer), 2):
            left = layer[i]
            if i + 1 == len(layer):
                next_layer.append(left)
                continue
            right = layer[i + 1]
            branch_id = _sha256(
                _sha256(left.id) + _sha256(right.id) + _sha256(_note(left.max_byte_range))
            )
            next_layer.append(_Node(id=branch_id, max_byte_range=right.max_byte_range))
        layer = next_layer

    return layer[0].id
