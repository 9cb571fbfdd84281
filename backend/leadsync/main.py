"""
FastAPI Application Entry Point
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from leadsync.api.v1.endpoints import health
from leadsync.api.v1.routes import api_router
from leadsync.core.config import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan - startup and shutdown events.

    Startup:
    - Creates the Supabase client and the lead services
    - Registers the lead activity listener for conversions and new-lead alerts
    - Starts the background sync worker (companies are scheduled on first access)

    Shutdown:
    - Cancels every background sync task
    - Closes the LLM client
    """
    # ========================
    # STARTUP
    # ========================
    logger.info("Starting Lead Sync API...")

    from leadsync.api.v1.dependencies import get_supabase
    from leadsync.services.factory import (
        create_insight_generator,
        create_lead_service,
        create_sync_service,
    )
    from leadsync.services.lead_activity import LeadActivityListener
    from leadsync.workers.sync_worker import SyncWorker

    settings = get_settings()
    supabase = get_supabase()

    lead_activity = LeadActivityListener()
    sync_service = create_sync_service(supabase, settings, listeners=[lead_activity])
    insight_generator = await create_insight_generator(settings)

    app.state.lead_activity = lead_activity
    app.state.sync_service = sync_service
    app.state.lead_service = create_lead_service(supabase, settings, sync_service, insight_generator)
    app.state.sync_worker = SyncWorker(sync_service, interval=settings.sync_interval_seconds)
    app.state.sync_worker.running = True

    logger.info("Lead Sync API started successfully")

    yield  # Application is running

    # ========================
    # SHUTDOWN
    # ========================
    logger.info("Shutting down Lead Sync API...")

    try:
        await app.state.sync_worker.shutdown()
        if insight_generator is not None:
            await insight_generator.provider.cleanup()
    except Exception as e:
        logger.error(f"Error during shutdown: {e}")

    logger.info("Lead Sync API shutdown complete")


settings = get_settings()

app = FastAPI(
    title="Lead Sync",
    description="Turns call conversations into tracked sales leads",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(api_router, prefix=settings.api_prefix)


@app.get("/")
async def root():
    return {"message": "Lead Sync API", "status": "running"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
