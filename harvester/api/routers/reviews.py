"""Review scraping endpoint.

Routes
------
GET /reviews?url=<product page>   → {"success": true, "data": [Review, ...]}

Failures that abort the scrape come back as
``{"success": false, "error": "..."}`` with status 502.  The handler is a
plain ``def`` so each request runs in its own worker thread with its own
browser session.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, HttpUrl

from harvester.scraper.runner import scrape_reviews

router = APIRouter()


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class ReviewOut(BaseModel):
    title: str
    body: str
    rating: str
    reviewer: str


class ReviewEnvelope(BaseModel):
    success: bool
    data: Optional[list[ReviewOut]] = None
    error: Optional[str] = None


# ---------------------------------------------------------------------------
# Endpoint
# ---------------------------------------------------------------------------

@router.get("", response_model=ReviewEnvelope, response_model_exclude_none=True)
def get_reviews(url: HttpUrl, request: Request):
    """Scrape every review reachable from *url*."""
    cfg = request.app.state.settings
    try:
        reviews = scrape_reviews(str(url), cfg)
    except Exception as exc:
        envelope = ReviewEnvelope(success=False, error=str(exc))
        return JSONResponse(status_code=502, content=envelope.model_dump(exclude_none=True))

    return ReviewEnvelope(
        success=True,
        data=[ReviewOut(**review.to_dict()) for review in reviews],
    )
