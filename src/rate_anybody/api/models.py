"""
Pydantic models for API requests and responses.

Field names are snake_case on the wire.  Ratings returned by the service are
the reconciled view of a ledger record, so every field is optional except the
transaction id.
"""

from pydantic import BaseModel, Field

from rate_anybody.links import explorer_url, gateway_url
from rate_anybody.reconcile import RatingView
from rate_anybody.submission import SubmissionReceipt

# ============================================================================
# REQUEST MODELS (Client → Server)
# ============================================================================


class RatingRequest(BaseModel):
    """
    A rating to submit.

    Attributes:
        first_name: Given name
        middle_name: Middle name
        last_name: Family name
        location: Free-text location
        associations: Employers, groups and similar
        score: Integer score, intended range 0-10
        comments: Free-text comments (stored in the payload only)
    """

    first_name: str = ""
    middle_name: str = ""
    last_name: str = ""
    location: str = ""
    associations: str = ""
    score: int
    comments: str = ""


# ============================================================================
# RESPONSE MODELS (Server → Client)
# ============================================================================


class HealthResponse(BaseModel):
    status: str
    version: str


class RatingResponse(BaseModel):
    """
    A reconciled rating.

    ``comments`` is null and ``partial`` is true when the record's payload
    could not be fetched; the remaining fields then come from tags alone.
    """

    transaction_id: str
    first_name: str = ""
    middle_name: str = ""
    last_name: str = ""
    location: str = ""
    associations: str = ""
    score: int = 0
    comments: str | None = None
    timestamp: int = 0
    rater_address: str = ""
    partial: bool = False
    problem: str | None = None
    gateway_url: str
    explorer_url: str

    @classmethod
    def from_view(cls, view: RatingView, gateway: str, explorer: str) -> "RatingResponse":
        rating = view.rating
        transaction_id = rating.transaction_id or ""
        return cls(
            transaction_id=transaction_id,
            first_name=rating.first_name,
            middle_name=rating.middle_name,
            last_name=rating.last_name,
            location=rating.location,
            associations=rating.associations,
            score=rating.score,
            comments=rating.comments,
            timestamp=rating.timestamp,
            rater_address=rating.rater_address,
            partial=view.partial,
            problem=view.problem,
            gateway_url=gateway_url(transaction_id, gateway),
            explorer_url=explorer_url(transaction_id, explorer),
        )


class RatingListResponse(BaseModel):
    """Search results, most recent first."""

    count: int
    ratings: list[RatingResponse] = Field(default_factory=list)


class SubmissionResponse(BaseModel):
    """
    Result of an accepted submission.

    ``phase`` is always ``accepted``; mining confirmation is observed through
    the gateway link later.
    """

    transaction_id: str
    strategy: str
    fee: int
    status: int | None = None
    phase: str = "accepted"
    gateway_url: str
    explorer_url: str

    @classmethod
    def from_receipt(
        cls, receipt: SubmissionReceipt, gateway: str, explorer: str
    ) -> "SubmissionResponse":
        return cls(
            transaction_id=receipt.transaction_id,
            strategy=receipt.strategy,
            fee=receipt.fee,
            status=receipt.status,
            phase=receipt.phase,
            gateway_url=gateway_url(receipt.transaction_id, gateway),
            explorer_url=explorer_url(receipt.transaction_id, explorer),
        )
