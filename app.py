"""
FastAPI web server exposing the reply suggestion engine.

This module provides:
- Health check endpoint
- Suggestion generation for a post
- Usage recording when the user accepts a suggestion
- Per-group usage summaries and resets
- Ignore timers for shown suggestions
- Periodic usage-log cleanup via APScheduler
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from reply_auto.config.settings import EngineSettings, get_engine_settings, load_environment
from reply_auto.errors import StoreError
from reply_auto.models import CallerContext
from reply_auto.utils.group_id import resolve_group_id
from reply_auto.utils.ignore_timers import IgnoreTimerRegistry
from reply_auto.workflow.backends import build_pipeline
from reply_auto.workflow.pipeline import SuggestionPipeline
from scheduler import UsageCleanupScheduler

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class SuggestionRequest(BaseModel):
    post_text: str = ""
    group_id: Optional[str] = None
    page_url: Optional[str] = None
    preferred_category: Optional[str] = None
    default_url: str = ""
    unmetered: bool = False


class SuggestionResponse(BaseModel):
    text: str
    template_id: str
    template_label: str
    variant_index: int = 0
    is_fallback: bool = False
    is_limit_notice: bool = False


class UsageRequest(BaseModel):
    template_id: str = Field(min_length=1)
    group_id: Optional[str] = None
    page_url: Optional[str] = None
    variant_index: int = Field(default=0, ge=0)


def _group_for(group_id: Optional[str], page_url: Optional[str]) -> str:
    return group_id or resolve_group_id(page_url or "")


def _log_ignored(template_id: str) -> None:
    logger.info(f"Template {template_id} was shown but ignored")


def create_app(
    pipeline: Optional[SuggestionPipeline] = None,
    settings: Optional[EngineSettings] = None,
    enable_cleanup: bool = True,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        pipeline: Pre-built pipeline; built from settings at startup when omitted.
        settings: Engine settings; read from the environment when omitted.
        enable_cleanup: Start the usage cleanup scheduler during the lifespan.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        Startup builds the pipeline and starts the schedulers; shutdown stops them.
        """
        load_environment()
        engine_settings = settings or get_engine_settings()
        app.state.settings = engine_settings
        app.state.pipeline = pipeline or build_pipeline(engine_settings)

        app.state.ignore_timers = IgnoreTimerRegistry(
            on_ignore=_log_ignored,
            delay_seconds=engine_settings.ignore_seconds,
        )
        app.state.ignore_timers.start()

        app.state.cleanup = None
        usage_log = app.state.pipeline.usage_log
        if enable_cleanup and usage_log is not None:
            app.state.cleanup = UsageCleanupScheduler(usage_log, engine_settings)
            app.state.cleanup.add_cleanup_job()
            app.state.cleanup.start()

        logger.info("Reply suggestion service startup complete")

        yield

        logger.info("Shutting down schedulers...")
        app.state.ignore_timers.clear()
        app.state.ignore_timers.shutdown()
        if app.state.cleanup:
            app.state.cleanup.shutdown()
        logger.info("Service shutdown complete")

    app = FastAPI(
        title="Reply Auto",
        description="Keyword-matched reply suggestions with per-group rotation",
        version="1.0.0",
        lifespan=lifespan
    )

    @app.get("/")
    async def root():
        """Root endpoint with service information."""
        return {
            "service": "Reply Auto",
            "status": "running",
            "endpoints": {
                "health": "/health",
                "suggestions": "/suggestions (POST)",
                "usage": "/usage (POST), /usage/{group_id} (GET, DELETE)",
                "ignore_timers": "/ignore-timers/{template_id} (POST, DELETE)",
                "docs": "/docs"
            }
        }

    @app.get("/health")
    async def health_check(request: Request):
        """
        Health check endpoint.

        Returns:
            Service status including cleanup scheduler information.
        """
        cleanup = getattr(request.app.state, "cleanup", None)
        return {
            "status": "healthy",
            "service": "Reply Auto",
            "cleanup": cleanup.get_status() if cleanup else None,
            "pending_ignore_timers": len(request.app.state.ignore_timers.pending()),
            "environment": os.getenv("REPLY_AUTO_ENVIRONMENT", "local")
        }

    @app.post("/suggestions", response_model=List[SuggestionResponse])
    async def suggestions(body: SuggestionRequest, request: Request):
        """
        Generate ordered suggestions for a post.

        Always returns at least one suggestion (a limit notice or a fallback
        when nothing else applies).
        """
        context = CallerContext(
            group_id=_group_for(body.group_id, body.page_url),
            preferred_category=body.preferred_category,
            default_url=body.default_url,
            unmetered=body.unmetered,
        )
        results = await request.app.state.pipeline.generate_suggestions(body.post_text, context)
        return [result.to_dict() for result in results]

    @app.post("/usage", status_code=201)
    async def record_usage(body: UsageRequest, request: Request):
        """
        Record that the user accepted a suggestion, and stop its ignore timer.
        """
        group_id = _group_for(body.group_id, body.page_url)
        request.app.state.ignore_timers.cancel_timer(body.template_id)
        try:
            record = await request.app.state.pipeline.record_acceptance(
                body.template_id, group_id, variant_index=body.variant_index
            )
        except (StoreError, RuntimeError) as e:
            logger.error(f"Failed to record usage: {e}")
            raise HTTPException(
                status_code=503,
                detail=f"Failed to record usage: {str(e)}"
            )
        return record.to_dict()

    @app.get("/usage/{group_id:path}")
    async def usage_summary(group_id: str, request: Request):
        """
        Summarize usage for a group: totals, recent counts, and per-template stats.
        """
        try:
            summary = await request.app.state.pipeline.group_summary(group_id)
        except (StoreError, RuntimeError) as e:
            logger.error(f"Failed to read usage for {group_id}: {e}")
            raise HTTPException(
                status_code=503,
                detail=f"Failed to read usage: {str(e)}"
            )
        return summary.to_dict()

    @app.delete("/usage/{group_id:path}")
    async def clear_usage(group_id: str, request: Request):
        """Forget all usage history for a group."""
        try:
            removed = await request.app.state.pipeline.clear_group_usage(group_id)
        except (StoreError, RuntimeError) as e:
            logger.error(f"Failed to clear usage for {group_id}: {e}")
            raise HTTPException(
                status_code=503,
                detail=f"Failed to clear usage: {str(e)}"
            )
        return {"group_id": group_id, "removed": removed}

    @app.post("/ignore-timers/{template_id}", status_code=202)
    async def start_ignore_timer(template_id: str, request: Request):
        """Start (or restart) the ignore timer for a shown suggestion."""
        request.app.state.ignore_timers.start_timer(template_id)
        return {"template_id": template_id, "status": "started"}

    @app.delete("/ignore-timers/{template_id}")
    async def cancel_ignore_timer(template_id: str, request: Request):
        """Cancel the ignore timer after the user interacted with the suggestion."""
        if not request.app.state.ignore_timers.cancel_timer(template_id):
            raise HTTPException(
                status_code=404,
                detail=f"No pending ignore timer for template '{template_id}'"
            )
        return {"template_id": template_id, "status": "cancelled"}

    return app


app = create_app()


if __name__ == "__main__":
    port = int(os.getenv("PORT", 8080))

    logger.info(f"Starting server on port {port}")

    uvicorn.run(
        "app:app",
        host="0.0.0.0",
        port=port,
        log_level="info",
        access_log=True
    )
