"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running,
the database is reachable, and the uploads directory is writable.
"""

import os

from fastapi import APIRouter
from sqlalchemy import text

from docshelf import __version__
from docshelf.config import settings
from docshelf.db.engine import engine

router = APIRouter()


@router.get("/health")
async def health_check():
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    # Check database
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    # Check file storage
    uploads = settings.uploads_dir
    if uploads.is_dir() and os.access(uploads, os.W_OK):
        checks["storage"] = "ok"
    elif not uploads.exists():
        checks["storage"] = "ok"  # created lazily on first upload
    else:
        checks["storage"] = f"error: {uploads} is not writable"

    status = "healthy" if all(
        v == "ok" for k, v in checks.items() if k != "version"
    ) else "degraded"

    return {"status": status, **checks}
