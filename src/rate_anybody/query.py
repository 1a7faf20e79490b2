"""Index query construction and pagination.

Every query is anchored on the ``App-Name`` tag, which is the only thing that
marks a transaction as a rating.  Optional filters are ANDed in only when the
caller supplied a non-empty value, so an omitted filter never narrows the
result set and adding a filter can only narrow it.

The gateway returns at most one page per request.  :func:`search_transactions`
walks pages with the index's cursor until it runs out of results or reaches
``max_pages``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from rate_anybody.config import APP_NAME
from rate_anybody.errors import NetworkError
from rate_anybody.rating import coerce_int
from rate_anybody.tags import (
    APP_NAME_TAG,
    ASSOCIATIONS,
    FIRST_NAME,
    LOCATION,
    RATING_SCORE,
    TARGET_ADDRESS,
    TagSet,
)

if TYPE_CHECKING:
    from rate_anybody.ledger.client import LedgerClient

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100

TRANSACTIONS_QUERY = """
query($tags: [TagFilter!], $first: Int!, $after: String) {
  transactions(tags: $tags, first: $first, after: $after, sort: HEIGHT_DESC) {
    pageInfo {
      hasNextPage
    }
    edges {
      cursor
      node {
        id
        tags {
          name
          value
        }
        block {
          timestamp
        }
      }
    }
  }
}
""".strip()


@dataclass(frozen=True)
class RatingFilter:
    """
    Optional search filters.

    Attributes:
        name: Person's name; only the first word is matched, against the
            ``First-Name`` tag.
        location: Exact ``Location`` tag value.
        associations: Exact ``Associations`` tag value.
        score: Exact ``Rating-Score`` tag value.
        target_address: Exact ``Target-Address`` tag value.
        app_name: Application namespace, always applied.
    """

    name: str | None = None
    location: str | None = None
    associations: str | None = None
    score: int | str | None = None
    target_address: str | None = None
    app_name: str = APP_NAME

    def tag_filters(self) -> list[dict[str, Any]]:
        """Return the GraphQL tag filter list, App-Name first."""
        filters: list[dict[str, Any]] = [{"name": APP_NAME_TAG, "values": [self.app_name]}]

        def add(tag_name: str, value: Any) -> None:
            text = "" if value is None else str(value).strip()
            if text:
                filters.append({"name": tag_name, "values": [text]})

        first_word = (self.name or "").split()
        add(FIRST_NAME, first_word[0] if first_word else None)
        add(LOCATION, self.location)
        add(ASSOCIATIONS, self.associations)
        score = coerce_int(self.score)
        add(RATING_SCORE, score if score is not None else self.score)
        add(TARGET_ADDRESS, self.target_address)
        return filters


@dataclass(frozen=True)
class IndexedTransaction:
    """One index hit: id, tags and (if mined) the block timestamp."""

    id: str
    tags: TagSet
    block_timestamp: int | None = None
    cursor: str | None = None


def build_graphql_query(
    rating_filter: RatingFilter,
    first: int = DEFAULT_PAGE_SIZE,
    after: str | None = None,
) -> dict[str, Any]:
    """Build the GraphQL request body for one page of results."""
    if first <= 0:
        raise ValueError("page size must be positive")
    variables: dict[str, Any] = {"tags": rating_filter.tag_filters(), "first": first}
    if after:
        variables["after"] = after
    return {"query": TRANSACTIONS_QUERY, "variables": variables}


def parse_transactions_page(data: dict[str, Any]) -> tuple[list[IndexedTransaction], bool]:
    """Decode one page of the ``transactions`` connection.

    Returns:
        (transactions, has_next_page)

    Raises:
        NetworkError: If the response does not have the expected shape.
    """
    try:
        connection = data["transactions"]
        edges = connection["edges"]
        has_next = bool((connection.get("pageInfo") or {}).get("hasNextPage"))
    except (KeyError, TypeError, AttributeError) as e:
        raise NetworkError(
            message="Index query failed",
            detail="Response is missing the transactions connection",
        ) from e
    if not isinstance(edges, list):
        raise NetworkError(message="Index query failed", detail="Response edges are not a list")

    transactions: list[IndexedTransaction] = []
    for edge in edges:
        if not isinstance(edge, dict):
            logger.warning("Skipping malformed index edge: %r", edge)
            continue
        node = edge.get("node")
        if not isinstance(node, dict):
            continue
        tx_id = node.get("id")
        if not tx_id:
            continue
        block = node.get("block") or {}
        transactions.append(
            IndexedTransaction(
                id=tx_id,
                tags=TagSet.from_pairs(node.get("tags")),
                block_timestamp=coerce_int(block.get("timestamp")),
                cursor=edge.get("cursor"),
            )
        )
    return transactions, has_next


async def search_transactions(
    ledger: LedgerClient,
    rating_filter: RatingFilter,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
    max_pages: int = 1,
    timeout: float = 30.0,
) -> list[IndexedTransaction]:
    """Collect matching transactions across up to ``max_pages`` pages.

    Raises:
        IndexUnavailableError: If any page request times out.
        NetworkError: If the index returns an error.
    """
    results: list[IndexedTransaction] = []
    after: str | None = None
    for page in range(max(max_pages, 1)):
        body = build_graphql_query(rating_filter, first=page_size, after=after)
        data = await ledger.graphql(body, timeout=timeout)
        transactions, has_next = parse_transactions_page(data)
        results.extend(transactions)
        logger.debug("Index page %d returned %d transactions", page + 1, len(transactions))
        if not has_next or not transactions:
            break
        after = transactions[-1].cursor
        if not after:
            break
    return results
