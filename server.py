"""FastAPI surface: health, rate-limit/scheduler status and manual runs."""
from __future__ import annotations

import logging
import threading
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from config.settings import Settings, get_settings
from errors import RunInProgressError
from pipelines.steps.check_quota import DAILY_LIMIT_REACHED
from pipelines.steps.fetch_profiles import NO_REMAINING_QUOTA
from services.scheduler import ScrapeScheduler
from utils.logging_setup import init_logging


logger = logging.getLogger(__name__)

SERVICE_NAME = "linkedin-posts-harvester"


class ExtractPostsRequest(BaseModel):
    profile_links: List[str] = Field(default_factory=list)
    use_hubspot: bool = False


def _run_or_raise(orchestrator, profile_urls: Optional[List[str]] = None) -> dict:
    try:
        result = orchestrator.run_batch(profile_urls=profile_urls, trigger="http")
    except RunInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Manual run failed: {e}", exc_info=True, extra={"step": "http", "status": "failed"})
        raise HTTPException(status_code=500, detail=str(e))
    return result.model_dump()


def create_app(orchestrator=None, settings: Optional[Settings] = None, start_background: bool = True) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_logging(settings.log_level)
        if app.state.orchestrator is None:
            from pipelines.scrape_posts import build_orchestrator
            app.state.orchestrator = build_orchestrator(settings)
        app.state.scheduler = ScrapeScheduler(app.state.orchestrator, settings)
        if start_background:
            scheduled = app.state.scheduler.start(run_immediately=settings.run_on_startup)
            if settings.run_on_startup and not scheduled:
                # No schedule configured: still do the initial run, off the event loop
                threading.Thread(target=app.state.scheduler.run_scheduled, name="initial-scrape", daemon=True).start()
        logger.info(f"{SERVICE_NAME} listening on port {settings.port}", extra={"step": "http"})
        yield
        app.state.scheduler.stop()

    app = FastAPI(title="LinkedIn posts harvester", version="0.1.0", lifespan=lifespan)
    app.state.orchestrator = orchestrator
    app.state.scheduler = None

    @app.get("/health")
    def health() -> dict:
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": SERVICE_NAME,
        }

    @app.get("/api/scraper/stats")
    def stats(request: Request) -> dict:
        orchestrator = request.app.state.orchestrator
        scheduler = request.app.state.scheduler
        return {
            "success": True,
            "rate_limit": orchestrator.rate_limiter.get_stats().model_dump(),
            "scheduler": scheduler.status() if scheduler else {"is_running": orchestrator.is_running},
        }

    @app.post("/api/scraper/run-now")
    def run_now(request: Request) -> dict:
        return _run_or_raise(request.app.state.orchestrator)

    @app.post("/api/scraper/extract-posts")
    def extract_posts(body: ExtractPostsRequest, request: Request) -> dict:
        orchestrator = request.app.state.orchestrator
        if body.use_hubspot:
            payload = _run_or_raise(orchestrator)
        else:
            links = [link for link in body.profile_links if isinstance(link, str) and link.strip()]
            if not links:
                raise HTTPException(status_code=400, detail="profile_links must be a non-empty list or use_hubspot must be true")
            payload = _run_or_raise(orchestrator, profile_urls=links)
        if payload.get("error") in (DAILY_LIMIT_REACHED, NO_REMAINING_QUOTA):
            raise HTTPException(status_code=429, detail={"error": payload["error"], "stats": payload.get("stats")})
        return payload

    return app
