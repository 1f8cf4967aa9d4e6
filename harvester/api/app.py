"""FastAPI application factory.

Routers
-------
    /reviews  — scrape a product page and return its reviews
    /health   — liveness probe
"""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI

from harvester import __version__
from harvester.api.routers import reviews as reviews_router
from harvester.config import Settings, settings as default_settings


def create_app(cfg: Optional[Settings] = None) -> FastAPI:
    """Return a fully-configured FastAPI application instance.

    *cfg* is stored on ``app.state.settings`` and handed to every scrape; it
    defaults to the process-wide settings.
    """
    app = FastAPI(
        title="Review Harvester API",
        description=(
            "Scrapes product reviews from arbitrary e-commerce pages by "
            "driving a browser session and a text-completion model."
        ),
        version=__version__,
    )
    app.state.settings = cfg or default_settings

    app.include_router(reviews_router.router, prefix="/reviews", tags=["reviews"])

    @app.get("/health", tags=["health"])
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


# Module-level instance used by uvicorn:
#   uvicorn harvester.api.app:app --port 3000
app = create_app()
