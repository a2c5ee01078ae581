"""
talkrender backend service — upload, schedule lookup and render handoff.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config import Settings, get_settings
from .persistence import UploadStore
from .rendering import RenderOrchestrator, SetupVerifier
from .routes import readiness, schedule, talks, uploads
from .schedule import ScheduleCache
from .uploads import UploadPlacement

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    schedule_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the FastAPI application and its components.

    Args:
        settings: Settings to use (defaults to the environment)
        schedule_transport: Optional httpx transport for the schedule feed
    """
    if settings is None:
        settings = get_settings()

    store = UploadStore(db_path=settings.db_path)
    schedule_cache = ScheduleCache(
        url=settings.schedule_url,
        cache_dir=settings.cache_dir,
        timeout=settings.schedule_timeout_seconds,
        transport=schedule_transport,
    )
    setup_verifier = SetupVerifier(
        repo_location=settings.repo_location,
        project=settings.generator_project,
        final_extension=settings.final_extension,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store.bootstrap()
        settings.upload_tmp_dir.mkdir(parents=True, exist_ok=True)
        if settings.refresh_schedule_on_startup:
            await schedule_cache.refresh_best_effort()
        yield

    app = FastAPI(title="talkrender", version=__version__, lifespan=lifespan)

    if settings.cors_origins_list:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins_list,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.state.settings = settings
    app.state.upload_store = store
    app.state.schedule_cache = schedule_cache
    app.state.setup_verifier = setup_verifier
    app.state.upload_placement = UploadPlacement(
        uploads_root=settings.upload_dir,
        schedule=schedule_cache,
        store=store,
        final_extension=settings.final_extension,
    )
    app.state.render_orchestrator = RenderOrchestrator(
        store=store,
        setup=setup_verifier,
        uploads_root=settings.upload_dir,
        asset_timeout=settings.asset_timeout_seconds,
        composition_timeout=settings.composition_timeout_seconds,
    )

    app.include_router(uploads.router)
    app.include_router(talks.router)
    app.include_router(schedule.router)
    app.include_router(readiness.router)

    @app.get("/")
    async def root():
        return {"service": "talkrender", "status": "running"}

    return app
