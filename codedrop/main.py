"""
codedrop/main.py

FastAPI application entry point.

Responsibilities:
  - Build the entry store, service and expiry sweeper in the lifespan, and
    tear them down on shutdown
  - Register the API router and CORS middleware
  - Add a global exception handler for uncaught AppBaseException
  - Expose a /health endpoint for liveness probes
  - Optionally serve the browser UI from ``settings.static_dir``
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from codedrop.api.entry_controller import router as entry_router
from codedrop.core.config import settings
from codedrop.core.exceptions import AppBaseException, StorageUnavailableError
from codedrop.core.logger import get_logger
from codedrop.services.entry_service import EntryService
from codedrop.services.expiry_sweeper import ExpirySweeper
from codedrop.store import EntryStore, build_store

logger = get_logger(__name__)


def create_app(
    store: Optional[EntryStore] = None,
    sweep_interval_seconds: Optional[float] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        store                  : Unopened store to use. Defaults to the
                                 backend selected by ``settings.store_backend``.
        sweep_interval_seconds : Seconds between expiry sweeps.
                                 Defaults to ``settings.sweep_interval_seconds``.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        entry_store = store or build_store(settings)
        await entry_store.open()

        sweeper = ExpirySweeper(entry_store, interval_seconds=sweep_interval_seconds)
        sweeper.start()

        app.state.entry_store = entry_store
        app.state.entry_service = EntryService(entry_store)
        app.state.sweeper = sweeper
        logger.info("%s %s started.", settings.app_name, settings.app_version)

        yield

        await sweeper.stop()
        await entry_store.close()
        logger.info("Application shutdown complete")

    # ── App instance ───────────────────────────────────────────────────────────

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description=(
            "Share a snippet of text or a file under a 4-digit code that "
            "stops working 30 minutes later."
        ),
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "Content-Length", "Retry-After"],
    )

    # ── Routers ────────────────────────────────────────────────────────────────

    app.include_router(entry_router)

    # ── Global exception handler ───────────────────────────────────────────────

    @app.exception_handler(AppBaseException)
    async def app_exception_handler(request: Request, exc: AppBaseException) -> JSONResponse:
        """
        Safety-net for any AppBaseException that escapes controller-level handling.
        Returns the standard error shape: { "success": false, "error": "..." }
        """
        logger.exception("Unhandled application error on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"success": False, "error": "Server error"})

    # ── Health endpoint ────────────────────────────────────────────────────────

    @app.get("/health", tags=["Health"], summary="Liveness probe")
    async def health(request: Request) -> dict:
        """Returns 200 OK when the service is running, with store status."""
        try:
            live = await request.app.state.entry_store.count()
            store_status = "ok"
        except StorageUnavailableError as exc:
            live = None
            store_status = f"error: {exc}"

        return {
            "status": "ok",
            "version": settings.app_version,
            "store": store_status,
            "live_entries": live,
            "sweeper_running": request.app.state.sweeper.running,
        }

    # ── Static UI ──────────────────────────────────────────────────────────────
    # Mounted last so it never shadows /api or /health.

    if settings.static_dir:
        app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")

    return app


app = create_app()
