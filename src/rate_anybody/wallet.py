"""Signing key loading and the signer identity.

Key material is an RSA JSON Web Key (``kty, n, e, d, p, q, dp, dq, qi``).  It
is read either from a local file or from a base64-encoded environment value
(``WALLET_JSON_BASE64``).  Both sources go through the same JSON parsing and
field validation, so a key behaves identically wherever it came from.

A missing or malformed key is a :class:`ConfigurationError`: there is no
fallback key and no partial operation.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from rate_anybody.config import WALLET_ENV_VAR
from rate_anybody.errors import ConfigurationError
from rate_anybody.ledger.encoding import b64url_decode, b64url_encode, int_from_b64url

logger = logging.getLogger(__name__)

KEY_FIELDS = ("kty", "n", "e", "d", "p", "q", "dp", "dq", "qi")

# Salt length used by the ledger's RSA-PSS signatures.
PSS_SALT_LENGTH = 32


def parse_key_material(text: str | bytes, *, source: str = "key material") -> dict[str, str]:
    """Parse and validate JWK JSON.

    Raises:
        ConfigurationError: If the text is not JSON, is not an RSA key, or is
            missing a required component.
    """
    try:
        jwk = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"{source} is not valid JSON: {e}") from e
    if not isinstance(jwk, dict):
        raise ConfigurationError(f"{source} must be a JSON object")

    missing = [name for name in KEY_FIELDS if not jwk.get(name)]
    if missing:
        raise ConfigurationError(f"{source} is missing key fields: {', '.join(missing)}")
    if jwk["kty"] != "RSA":
        raise ConfigurationError(f"{source} has unsupported key type {jwk['kty']!r}")
    return {name: str(jwk[name]) for name in KEY_FIELDS}


def load_key_file(path: str | Path) -> dict[str, str]:
    """Read key material from a JWK file.

    Raises:
        ConfigurationError: If the file cannot be read or is not a valid key.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read key file {path}: {e}") from e
    return parse_key_material(text, source=f"Key file {path}")


def load_key_from_env(
    name: str = WALLET_ENV_VAR,
    environ: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Read base64-encoded key material from the environment.

    Raises:
        ConfigurationError: If the variable is unset, empty, not base64, or
            does not decode to a valid key.
    """
    env = os.environ if environ is None else environ
    encoded = env.get(name)
    if not encoded:
        raise ConfigurationError(f"No {name} environment variable found")
    try:
        decoded = base64.b64decode(encoded.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ConfigurationError(f"{name} is not valid base64: {e}") from e
    return parse_key_material(decoded, source=f"{name} environment variable")


class Wallet:
    """
    An RSA signing identity on the ledger.

    Holds the private key read-only for the lifetime of a process.  The
    address is derived from the public modulus and never changes.

    Attributes:
        owner: The public modulus ``n`` as base64url (the ledger's "owner").
        address: base64url SHA-256 of the raw modulus.
    """

    def __init__(self, jwk: Mapping[str, Any]) -> None:
        try:
            public_numbers = rsa.RSAPublicNumbers(
                e=int_from_b64url(jwk["e"]),
                n=int_from_b64url(jwk["n"]),
            )
            private_numbers = rsa.RSAPrivateNumbers(
                p=int_from_b64url(jwk["p"]),
                q=int_from_b64url(jwk["q"]),
                d=int_from_b64url(jwk["d"]),
                dmp1=int_from_b64url(jwk["dp"]),
                dmq1=int_from_b64url(jwk["dq"]),
                iqmp=int_from_b64url(jwk["qi"]),
                public_numbers=public_numbers,
            )
            self._private_key = private_numbers.private_key()
        except (KeyError, ValueError) as e:
            raise ConfigurationError(f"Key material is not a usable RSA key: {e}") from e

        self.owner: str = jwk["n"]
        self.owner_bytes: bytes = b64url_decode(self.owner)
        self.address: str = b64url_encode(hashlib.sha256(self.owner_bytes).digest())

    @classmethod
    def from_file(cls, path: str | Path) -> Wallet:
        return cls(load_key_file(path))

    @classmethod
    def from_env(cls, name: str = WALLET_ENV_VAR) -> Wallet:
        wallet = cls(load_key_from_env(name))
        logger.info("Loaded wallet %s... from %s", wallet.address[:8], name)
        return wallet

    @property
    def key_size_bytes(self) -> int:
        return len(self.owner_bytes)

    def sign(self, message: bytes) -> bytes:
        """Sign ``message`` with RSA-PSS over SHA-256."""
        return self._private_key.sign(
            message,
            padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=PSS_SALT_LENGTH),
            hashes.SHA256(),
        )

    def verify(self, signature: bytes, message: bytes) -> bool:
        """Check a signature made by :meth:`sign`."""
        try:
            self._private_key.public_key().verify(
                signature,
                message,
                padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=PSS_SALT_LENGTH),
                hashes.SHA256(),
            )
        except InvalidSignature:
            return False
        return True

    def __repr__(self) -> str:
        return f"Wallet(address={self.address!r})"
