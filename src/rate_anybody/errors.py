"""Typed exceptions for the rating submission and retrieval flows.

Failures fall into a small, explicit taxonomy so the CLI and the HTTP service
can map each one to a deterministic exit code or status:

    - ``ValidationError``: bad local input, detected before any network call.
    - ``ConfigurationError``: missing or malformed key material / settings.
    - ``InsufficientFundsError``: the fee exceeds the signer's balance.
    - ``SubmissionCancelled``: the operator declined the confirmation prompt.
    - ``NetworkError``: a ledger, relay or index call failed.
    - ``IndexUnavailableError``: the index query timed out or is unreachable.
    - ``PartialDataError``: one record's payload could not be fetched or parsed.

``PartialDataError`` is never raised out of a result list.  The retriever
records it on the affected view and keeps rendering from tags alone.
"""

from __future__ import annotations

from dataclasses import dataclass


class RateAnybodyError(Exception):
    """Base exception for all RateAnybody failures."""


class ValidationError(RateAnybodyError):
    """Local input rejected before contacting the ledger."""


class ConfigurationError(RateAnybodyError):
    """Key material or settings are missing or malformed."""


class SubmissionCancelled(RateAnybodyError):
    """The operator declined to submit at the confirmation prompt."""


class InsufficientFundsError(RateAnybodyError):
    """The required fee exceeds the signer's balance.

    Raised after the fee quote and before anything is signed, so no
    transaction exists when this propagates.

    Attributes:
        balance: Signer balance in the strategy's atomic unit.
        fee: Required fee in the same unit.
    """

    def __init__(self, balance: int, fee: int, unit: str = "winston") -> None:
        super().__init__(f"Insufficient balance ({balance} {unit}) for transaction fee ({fee} {unit})")
        self.balance = balance
        self.fee = fee
        self.unit = unit


@dataclass
class NetworkError(RateAnybodyError):
    """
    Exception raised when a ledger, relay or index request fails.

    Covers connection failures, timeouts, non-2xx responses and responses
    that cannot be decoded.

    Attributes:
        message: Human-readable error message.
        status_code: HTTP status code from the response (0 if none was received).
        detail: Additional detail from the response or the underlying cause.

    Example:
        try:
            await ledger.get_balance(address)
        except NetworkError as e:
            print(f"Ledger error {e.status_code}: {e.message}")
    """

    message: str
    status_code: int = 0
    detail: str = ""

    def __str__(self) -> str:
        """Return a formatted error message."""
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message


class IndexUnavailableError(NetworkError):
    """The GraphQL index did not answer within the client-side timeout."""


class PartialDataError(RateAnybodyError):
    """A record's payload could not be fetched or parsed.

    Attributes:
        transaction_id: The transaction whose payload is missing.
    """

    def __init__(self, transaction_id: str, reason: str) -> None:
        super().__init__(f"{transaction_id}: {reason}")
        self.transaction_id = transaction_id
        self.reason = reason
