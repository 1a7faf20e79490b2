"""Rating search and submission endpoints."""

import logging

from fastapi import APIRouter, Query

from rate_anybody.api.context import ServiceContext
from rate_anybody.api.models import (
    RatingListResponse,
    RatingRequest,
    RatingResponse,
    SubmissionResponse,
)
from rate_anybody.api.routes.utils import http_error
from rate_anybody.errors import RateAnybodyError
from rate_anybody.ledger.client import LedgerClient
from rate_anybody.query import RatingFilter
from rate_anybody.rating import Rating
from rate_anybody.retrieval import collect_ratings
from rate_anybody.submission import submit_rating

logger = logging.getLogger(__name__)


def router(context: ServiceContext) -> APIRouter:
    """Build the ratings router bound to the service context."""
    api = APIRouter()
    cfg = context.config

    @api.get("/ratings", response_model=RatingListResponse)
    async def list_ratings(
        name: str | None = None,
        location: str | None = None,
        associations: str | None = None,
        score: str | None = None,
        target_address: str | None = None,
        limit: int | None = Query(default=None, ge=1),
    ):
        """
        Search ratings by tag filters.

        Omitted or empty filters do not narrow the search.  Results are
        reconciled from tags and payloads and returned most recent first.
        """
        rating_filter = RatingFilter(
            name=name,
            location=location,
            associations=associations,
            score=score,
            target_address=target_address,
            app_name=cfg.submission.app_name,
        )
        try:
            async with LedgerClient.from_settings(cfg.ledger) as ledger:
                views = await collect_ratings(ledger, rating_filter, cfg.query, limit=limit)
        except RateAnybodyError as e:
            logger.warning("Rating search failed: %s", e)
            raise http_error(e) from e

        return RatingListResponse(
            count=len(views),
            ratings=[
                RatingResponse.from_view(view, cfg.ledger.gateway_url, cfg.ledger.explorer_url)
                for view in views
            ],
        )

    @api.post("/ratings", response_model=SubmissionResponse)
    async def create_rating(request: RatingRequest):
        """
        Submit a rating signed with the service's key.

        There is no confirmation step: the request itself is the consent.
        Returns as soon as the ledger or relay accepts the upload.
        """
        rating = Rating.create(
            first_name=request.first_name,
            middle_name=request.middle_name,
            last_name=request.last_name,
            location=request.location,
            associations=request.associations,
            score=request.score,
            comments=request.comments,
        )
        try:
            receipt = await submit_rating(context.signer(), rating, cfg)
        except RateAnybodyError as e:
            logger.warning("Rating submission failed: %s", e)
            raise http_error(e) from e

        gateway = cfg.relay.gateway_url if receipt.strategy == "relay" else cfg.ledger.gateway_url
        return SubmissionResponse.from_receipt(receipt, gateway, cfg.ledger.explorer_url)

    return api
