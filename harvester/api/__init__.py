"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from harvester.api import app

    uvicorn harvester.api:app --port 3000
"""

from harvester.api.app import app

__all__ = ["app"]
