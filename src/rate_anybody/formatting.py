"""Text rendering helpers shared by the CLI commands."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from rate_anybody.links import explorer_url, gateway_url, short_id
from rate_anybody.reconcile import RatingView

NOT_PROVIDED = "Not provided"


def format_timestamp(timestamp: int | None) -> str:
    """Format Unix seconds as local time, ``Unknown`` when missing."""
    if not timestamp:
        return "Unknown"
    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M:%S")


def format_score(score: int) -> str:
    """Render a score out of ten; 0 means unknown."""
    return f"{score or '?'}/10"


def score_band(score: int) -> str:
    """Qualitative band for a score."""
    if score >= 8:
        return "excellent"
    if score >= 6:
        return "good"
    if score >= 4:
        return "fair"
    if score >= 2:
        return "poor"
    return "bad"


def format_ar(amount: Decimal) -> str:
    """Render an AR amount without trailing noise."""
    return f"{amount:.12f}".rstrip("0").rstrip(".") or "0"


def format_usd(amount: Decimal, usd_per_ar: float) -> str:
    return f"${amount * Decimal(str(usd_per_ar)):.4f}"


def render_view(
    view: RatingView,
    gateway: str = "https://arweave.net",
    explorer: str = "https://viewblock.io/arweave/tx",
) -> str:
    """Render one reconciled rating as a block of text."""
    rating = view.rating
    lines = [
        f"{rating.full_name}  {format_score(rating.score)} ({score_band(rating.score)})",
        f"  First Name:   {rating.first_name or NOT_PROVIDED}",
        f"  Middle Name:  {rating.middle_name or NOT_PROVIDED}",
        f"  Last Name:    {rating.last_name or NOT_PROVIDED}",
        f"  Location:     {rating.location or NOT_PROVIDED}",
        f"  Associations: {rating.associations or NOT_PROVIDED}",
        f"  Submitted:    {format_timestamp(rating.timestamp)}",
        f"  Rater:        {rating.rater_address or 'anonymous'}",
    ]
    if rating.comments is None:
        lines.append("  Comments:     (payload unavailable)")
    else:
        lines.append(f"  Comments:     {rating.comments or 'No comments provided'}")
    if view.partial:
        lines.append(f"  Note:         partial record ({view.problem})")
    if view.transaction_id:
        lines.append(f"  Transaction:  {short_id(view.transaction_id)}")
        lines.append(f"  Data:         {gateway_url(view.transaction_id, gateway)}")
        lines.append(f"  Explorer:     {explorer_url(view.transaction_id, explorer)}")
    return "\n".join(lines)


def results_heading(count: int) -> str:
    return f"Found {count} rating{'' if count == 1 else 's'}"
