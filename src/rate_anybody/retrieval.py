"""Retrieval: index search, concurrent payload fetch, reconciliation, ordering.

The index query is the only step allowed to fail the whole listing.  Each
payload fetch is independent: one that fails is logged, recorded on its view
as a :class:`~rate_anybody.errors.PartialDataError` reason, and the record is
rendered from tags alone.

    async with LedgerClient.from_settings(cfg.ledger) as ledger:
        views = await collect_ratings(ledger, RatingFilter(location="Austin"), cfg.query)
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Protocol

from rate_anybody.config import QuerySettings
from rate_anybody.errors import NetworkError, PartialDataError
from rate_anybody.query import IndexedTransaction, RatingFilter, search_transactions
from rate_anybody.reconcile import RatingView, reconcile_view, sort_ratings

if TYPE_CHECKING:
    from rate_anybody.ledger.client import LedgerClient

logger = logging.getLogger(__name__)


class PayloadSource(Protocol):
    """Anything that can fetch a transaction body by id."""

    async def get_data(self, transaction_id: str) -> bytes: ...


async def load_view(
    source: PayloadSource,
    transaction: IndexedTransaction,
    semaphore: asyncio.Semaphore,
) -> RatingView:
    """Fetch one payload and reconcile it with the transaction's tags.

    Never raises for a fetch failure; the view comes back partial instead.
    """
    raw: bytes | None = None
    problem: str | None = None
    async with semaphore:
        try:
            raw = await source.get_data(transaction.id)
        except NetworkError as e:
            partial = PartialDataError(transaction.id, str(e))
            logger.warning("Rendering %s from tags only: %s", transaction.id, partial.reason)
            problem = partial.reason

    view = reconcile_view(
        transaction.id,
        transaction.tags,
        raw,
        block_timestamp=transaction.block_timestamp,
        problem=problem,
    )
    if view.partial and raw is not None:
        logger.warning("Payload of %s is unusable: %s", transaction.id, view.problem)
    return view


async def load_views(
    source: PayloadSource,
    transactions: list[IndexedTransaction],
    concurrency: int = 8,
) -> list[RatingView]:
    """Fetch and reconcile all transactions, at most ``concurrency`` at a time.

    Returns views most recent first.
    """
    semaphore = asyncio.Semaphore(max(concurrency, 1))
    views = await asyncio.gather(*(load_view(source, tx, semaphore) for tx in transactions))
    return sort_ratings(views)


async def collect_ratings(
    ledger: LedgerClient,
    rating_filter: RatingFilter,
    settings: QuerySettings,
    *,
    limit: int | None = None,
) -> list[RatingView]:
    """Search the index and return reconciled, sorted views.

    Args:
        ledger: A :class:`~rate_anybody.ledger.LedgerClient` (inside its context).
        rating_filter: Search filters.
        settings: Page size, page bound, index timeout and fetch concurrency.
        limit: Cap on the number of index hits to fetch payloads for.

    Raises:
        IndexUnavailableError: If the index query times out.
        NetworkError: If the index query fails.
        ValueError: If ``limit`` is less than 1.
    """
    if limit is not None and limit < 1:
        raise ValueError("limit must be at least 1")

    page_size = settings.page_size
    if limit is not None:
        page_size = max(1, min(page_size, limit))

    transactions = await search_transactions(
        ledger,
        rating_filter,
        page_size=page_size,
        max_pages=settings.max_pages,
        timeout=settings.timeout,
    )
    if limit is not None:
        transactions = transactions[:limit]
    logger.info("Index returned %d matching transactions", len(transactions))
    return await load_views(ledger, transactions, settings.fetch_concurrency)
