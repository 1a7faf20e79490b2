"""Submission assembly: local guardrails, fee gating and the two upload paths.

A submission runs as a strict sequence; each step needs the previous one's
result and none may be skipped or reordered::

    size check -> balance -> fee quote -> (confirmation) -> sign -> submit

Everything up to signing is local or read-only, so a rejected submission
never leaves a signed transaction behind.  The sequence ends as soon as the
ledger or the relay *accepts* the upload.  Mining confirmation happens later
and outside this process; nothing here polls for it.

Two strategies implement the upload itself:

- :class:`DirectStrategy` signs a ledger transaction and posts it to the
  gateway.  Success is a 200/202 acceptance status.
- :class:`RelayedStrategy` signs a bundle data item and uploads it to the
  relay, which amortizes fees across many small uploads.  Success is a
  receipt carrying the item id.

Small payloads go through the relay by default because a direct transaction
costs a full per-transaction fee however little data it carries.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from typing import Literal, Protocol

from rate_anybody.config import RaterConfig, SubmissionSettings
from rate_anybody.errors import (
    ConfigurationError,
    InsufficientFundsError,
    SubmissionCancelled,
    ValidationError,
)
from rate_anybody.ledger.client import LedgerClient, RelayClient, winston_to_ar
from rate_anybody.ledger.data_item import create_data_item
from rate_anybody.ledger.transaction import create_transaction
from rate_anybody.rating import Rating, ScoreRule
from rate_anybody.tags import TagSet, build_rating_tags
from rate_anybody.wallet import Wallet

logger = logging.getLogger(__name__)

StrategyKind = Literal["direct", "relay"]


# =============================================================================
# SESSION AND RESULT TYPES
# =============================================================================


@dataclass
class SignerSession:
    """
    The signing context for one process or service.

    Holds the loaded wallet read-only, plus the last balance seen.  The
    balance is informational: every submission fetches a fresh one.

    Attributes:
        wallet: The signing identity.
        last_balance: Balance from the most recent lookup, minus any fee
            spent since, or ``None`` before the first lookup.
    """

    wallet: Wallet
    last_balance: int | None = None

    @property
    def address(self) -> str:
        return self.wallet.address


@dataclass(frozen=True)
class SubmissionQuote:
    """Everything the operator sees before confirming an upload."""

    strategy: StrategyKind
    address: str
    balance: int
    fee: int
    size: int
    summary: str

    @property
    def fee_ar(self) -> Decimal:
        return winston_to_ar(self.fee)

    @property
    def balance_ar(self) -> Decimal:
        return winston_to_ar(self.balance)


@dataclass(frozen=True)
class SubmissionReceipt:
    """
    The synchronous result of an accepted upload.

    ``phase`` is always ``"accepted"``: the upload has been taken by the
    ledger or the relay.  Whether and when it is mined is observable only
    externally, through the gateway.

    Attributes:
        transaction_id: The permanent id of the rating.
        strategy: Which upload path was used.
        fee: Fee paid in winston.
        status: HTTP acceptance status on the direct path, ``None`` on the relay.
        rating: The submitted rating with its id and rater address filled in.
    """

    transaction_id: str
    strategy: StrategyKind
    fee: int
    rating: Rating
    status: int | None = None
    phase: Literal["accepted"] = "accepted"


ConfirmCallback = Callable[[SubmissionQuote], bool]


# =============================================================================
# STRATEGIES
# =============================================================================


class SubmissionStrategy(Protocol):
    """An upload path: how to price, fund-check and transmit a payload."""

    kind: StrategyKind

    async def get_balance(self, address: str) -> int: ...

    async def get_fee(self, size: int) -> int: ...

    async def transmit(
        self, session: SignerSession, payload: bytes, tags: TagSet, fee: int
    ) -> tuple[str, int | None]:
        """Sign and send; return ``(transaction_id, status)``."""
        ...


class DirectStrategy:
    """Sign a ledger transaction and post it to the gateway."""

    kind: StrategyKind = "direct"

    def __init__(self, ledger: LedgerClient) -> None:
        self.ledger = ledger

    async def get_balance(self, address: str) -> int:
        return await self.ledger.get_balance(address)

    async def get_fee(self, size: int) -> int:
        return await self.ledger.get_price(size)

    async def transmit(
        self, session: SignerSession, payload: bytes, tags: TagSet, fee: int
    ) -> tuple[str, int | None]:
        anchor = await self.ledger.get_anchor()
        transaction = create_transaction(
            session.wallet, payload, tags, reward=fee, last_tx=anchor
        )
        transaction.sign(session.wallet)
        logger.info("Signed transaction %s (%d bytes)", transaction.id, len(payload))
        status = await self.ledger.post_transaction(transaction)
        return transaction.id, status


class RelayedStrategy:
    """Sign a bundle data item and upload it through the relay."""

    kind: StrategyKind = "relay"

    def __init__(self, relay: RelayClient, anchor: bytes | None = None) -> None:
        self.relay = relay
        self._anchor = anchor

    async def get_balance(self, address: str) -> int:
        return await self.relay.get_balance(address)

    async def get_fee(self, size: int) -> int:
        return await self.relay.get_price(size)

    async def transmit(
        self, session: SignerSession, payload: bytes, tags: TagSet, fee: int
    ) -> tuple[str, int | None]:
        item = create_data_item(session.wallet, payload, tags, anchor=self._anchor)
        item.sign(session.wallet)
        logger.info("Signed data item %s (%d bytes)", item.id, len(payload))
        receipt = await self.relay.upload(item)
        if receipt["id"] != item.id:
            logger.warning("Relay receipt id %s differs from signed id %s", receipt["id"], item.id)
        return receipt["id"], None


def choose_strategy(size: int, settings: SubmissionSettings) -> StrategyKind:
    """Pick the upload path for a payload of ``size`` bytes.

    An explicit ``direct`` or ``relay`` setting wins; ``auto`` prefers the
    relay below ``relay_threshold_bytes``.
    """
    if settings.strategy != "auto":
        return settings.strategy
    return "relay" if size < settings.relay_threshold_bytes else "direct"


def check_payload_size(payload: bytes, max_bytes: int) -> None:
    """Reject payloads over the size cap.

    Raises:
        ValidationError: If ``payload`` is longer than ``max_bytes``.
    """
    if len(payload) > max_bytes:
        raise ValidationError(
            f"Rating data ({len(payload) / 1024:.2f} KB) exceeds maximum allowed size "
            f"({max_bytes / 1024:g} KB)"
        )


# =============================================================================
# SUBMITTER
# =============================================================================


class Submitter:
    """
    Runs the submission sequence for one signer and one strategy.

    Args:
        session: The signing context.
        strategy: The upload path.
        settings: Size cap, score rule, app namespace and whether to confirm.
        confirm: Called with the quote before signing when
            ``settings.interactive_confirmation`` is set; returning False
            cancels the upload.

    Example:
        async with RelayClient.from_settings(cfg.relay, 30.0) as relay:
            submitter = Submitter(session, RelayedStrategy(relay), cfg.submission)
            receipt = await submitter.submit(rating)
    """

    def __init__(
        self,
        session: SignerSession,
        strategy: SubmissionStrategy,
        settings: SubmissionSettings,
        confirm: ConfirmCallback | None = None,
    ) -> None:
        if settings.interactive_confirmation and confirm is None:
            raise ConfigurationError("Interactive confirmation is enabled but no prompt is available")
        self.session = session
        self.strategy = strategy
        self.settings = settings
        self.confirm = confirm
        self.score_rule = ScoreRule(
            minimum=settings.score_min,
            maximum=settings.score_max,
            enforce=settings.enforce_score_range,
        )

    def prepare(self, rating: Rating) -> tuple[bytes, TagSet]:
        """Validate a rating locally and build its payload and tags.

        Raises:
            ValidationError: If the payload is too large or the score is out
                of range under an enforcing rule.
        """
        payload = rating.payload_bytes()
        check_payload_size(payload, self.settings.max_payload_bytes)
        self.score_rule.check(rating.score)
        tags = build_rating_tags(rating, self.session.address, app_name=self.settings.app_name)
        return payload, tags

    async def quote(self, rating: Rating, payload: bytes) -> SubmissionQuote:
        """Fetch a fresh balance and fee and check the balance covers the fee.

        Raises:
            InsufficientFundsError: If the balance is below the fee.
        """
        address = self.session.address
        balance = await self.strategy.get_balance(address)
        self.session.last_balance = balance
        fee = await self.strategy.get_fee(len(payload))
        logger.info(
            "Quote via %s: %d bytes, fee %d, balance %d", self.strategy.kind, len(payload), fee, balance
        )
        if balance < fee:
            raise InsufficientFundsError(balance=balance, fee=fee)
        return SubmissionQuote(
            strategy=self.strategy.kind,
            address=address,
            balance=balance,
            fee=fee,
            size=len(payload),
            summary=rating.summary(),
        )

    async def submit(self, rating: Rating) -> SubmissionReceipt:
        """Run the full sequence and return once the upload is accepted.

        Raises:
            ValidationError: Local validation failed; nothing was sent.
            InsufficientFundsError: Fee exceeds balance; nothing was signed.
            SubmissionCancelled: The operator declined; nothing was signed.
            ConfigurationError: Confirmation is required but no prompt is set.
            NetworkError: A ledger or relay call failed.
        """
        payload, tags = self.prepare(rating)
        quote = await self.quote(rating, payload)

        if self.settings.interactive_confirmation:
            if self.confirm is None:
                raise ConfigurationError(
                    "Interactive confirmation is enabled but no prompt is available"
                )
            if not self.confirm(quote):
                raise SubmissionCancelled("Upload cancelled")

        transaction_id, status = await self.strategy.transmit(self.session, payload, tags, quote.fee)
        self.session.last_balance = quote.balance - quote.fee

        return SubmissionReceipt(
            transaction_id=transaction_id,
            strategy=self.strategy.kind,
            fee=quote.fee,
            status=status,
            rating=dataclasses.replace(
                rating, rater_address=self.session.address, transaction_id=transaction_id
            ),
        )


# =============================================================================
# COST COMPARISON
# =============================================================================


@dataclass(frozen=True)
class CostComparison:
    """Direct vs relayed fee for the same payload size, in winston."""

    size: int
    direct_fee: int
    relay_fee: int

    @property
    def savings(self) -> int:
        return self.direct_fee - self.relay_fee


async def compare_costs(ledger: LedgerClient, relay: RelayClient, size: int) -> CostComparison:
    """Quote both upload paths for a payload of ``size`` bytes."""
    direct_fee = await ledger.get_price(size)
    relay_fee = await relay.get_price(size)
    return CostComparison(size=size, direct_fee=direct_fee, relay_fee=relay_fee)


# =============================================================================
# CONFIGURED SUBMISSION
# =============================================================================


async def submit_rating(
    session: SignerSession,
    rating: Rating,
    cfg: RaterConfig,
    confirm: ConfirmCallback | None = None,
) -> SubmissionReceipt:
    """Submit through whichever path the configuration selects for this payload.

    Opens the client for the chosen path for the duration of the submission.
    """
    settings = cfg.submission
    kind = choose_strategy(len(rating.payload_bytes()), settings)
    logger.debug("Submitting via %s", kind)

    if kind == "relay":
        async with RelayClient.from_settings(cfg.relay, cfg.ledger.timeout) as relay:
            submitter = Submitter(session, RelayedStrategy(relay), settings, confirm)
            return await submitter.submit(rating)

    async with LedgerClient.from_settings(cfg.ledger) as ledger:
        submitter = Submitter(session, DirectStrategy(ledger), settings, confirm)
        return await submitter.submit(rating)
