"""
Main API module for TinyLink.

Responsibilities:
    - Expose REST endpoints to create, list, read and delete short links
    - Redirect short codes to their destinations (302) while counting clicks
    - Report service and storage health

Architecture:
    - App Factory pattern (create_app) for test isolation and DI.
    - In-memory Storage by default; PostgreSQL selected via TINYLINK_STORAGE_BACKEND.
    - LinkManager owns validation and code allocation; routes only translate
      HTTP to manager calls and LinkError kinds to status codes.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, ConfigDict, Field

from tinylink.config import settings
from tinylink.errors import Conflict, InvalidInput, LinkError, NotFound, Unavailable
from tinylink.manager.link_manager import LinkManager
from tinylink.storage.base import BaseStorage
from tinylink.storage.storage_factory import get_storage

# Path segments owned by the app itself; never treated as short codes.
RESERVED_CODES = frozenset({"api", "healthz", "code", "public"})

_STATUS_BY_ERROR = {
    InvalidInput: status.HTTP_400_BAD_REQUEST,
    Conflict: status.HTTP_409_CONFLICT,
    NotFound: status.HTTP_404_NOT_FOUND,
    Unavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
}


class LinkCreate(BaseModel):
    """Request payload for creating a new short link."""
    model_config = ConfigDict(populate_by_name=True)

    url: Optional[str] = None
    custom_code: Optional[str] = Field(default=None, alias="customCode")


class LinkOut(BaseModel):
    """Serialized link record."""
    model_config = ConfigDict(from_attributes=True)

    code: str
    destination: str
    clicks: int
    created_at: datetime
    last_clicked_at: Optional[datetime] = None


def is_reserved(code: str) -> bool:
    return code.lower() in RESERVED_CODES


def create_app(storage: Optional[BaseStorage] = None) -> FastAPI:
    """
    Factory function to build and configure a new FastAPI app instance.

    Args:
        storage (Optional[BaseStorage]): Backend to use. When omitted, one is chosen
            from the environment via `get_storage()`.

    Returns:
        FastAPI: A fully configured application with its own storage and manager.
    """
    app = FastAPI(
        title="TinyLink",
        description="URL shortener with click tracking",
        version=settings.VERSION,
        docs_url="/docs",
    )
    log = logging.getLogger("tinylink")

    if not logging.getLogger().handlers:
        logging.basicConfig(level=settings.LOG_LEVEL)

    # ----------------------------------------------------------------
    # Per-app instances (isolated for tests, swappable for production)
    # ----------------------------------------------------------------
    if storage is None:
        storage = get_storage()
        if settings.DB_INIT_SCHEMA and hasattr(storage, "create_schema"):
            storage.create_schema()
    manager = LinkManager(storage=storage)
    app.state.storage = storage
    app.state.manager = manager
    log.info("TinyLink storage backend: %s", type(storage).__name__)

    @app.exception_handler(LinkError)
    def handle_link_error(request: Request, exc: LinkError) -> JSONResponse:
        code = next(
            (sc for kind, sc in _STATUS_BY_ERROR.items() if isinstance(exc, kind)),
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
        if code == status.HTTP_503_SERVICE_UNAVAILABLE:
            log.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=code, content={"error": exc.message})

    # ----------------------------------------------------------------
    # Routes
    # ----------------------------------------------------------------
    @app.get("/healthz")
    def healthz() -> JSONResponse:
        stamp = datetime.now(timezone.utc).isoformat()
        try:
            storage.ping()
        except Unavailable as exc:
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"ok": False, "version": settings.VERSION, "timestamp": stamp,
                         "storage": "disconnected", "error": exc.message},
            )
        return JSONResponse({"ok": True, "version": settings.VERSION,
                             "storage": "connected", "timestamp": stamp})

    @app.get("/api/links", response_model=List[LinkOut])
    def list_links() -> List[LinkOut]:
        return [LinkOut.model_validate(link) for link in manager.list_links()]

    @app.post("/api/links", response_model=LinkOut, status_code=status.HTTP_201_CREATED)
    def create_link(req: LinkCreate) -> LinkOut:
        """
        Create a short link for a given URL.

        Raises:
            InvalidInput (400): bad URL, bad or reserved custom code.
            Conflict (409): code already taken.
        """
        if req.custom_code and is_reserved(req.custom_code):
            raise InvalidInput(f"Custom code is reserved: {req.custom_code}")
        link = manager.create_link(req.url, req.custom_code)
        return LinkOut.model_validate(link)

    @app.get("/api/links/{code}", response_model=LinkOut)
    def get_link(code: str) -> LinkOut:
        return LinkOut.model_validate(manager.get_link(code))

    @app.delete("/api/links/{code}")
    def delete_link(code: str) -> Dict[str, Any]:
        manager.delete_link(code)
        return {"message": "Link deleted successfully"}

    @app.get("/{code}")
    def redirect_link(code: str) -> RedirectResponse:
        """Redirect (302) to the destination and count the click."""
        if is_reserved(code):
            raise NotFound("Short URL not found")
        destination = manager.redirect(code)
        return RedirectResponse(url=destination, status_code=status.HTTP_302_FOUND)

    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(create_app(), host=settings.HOST, port=settings.PORT)


# `uvicorn main:app --reload` and `from main import app` continue to work.
app = create_app()
