"""
AI Car Navigator - FastAPI Backend

Main entry point for the backend API server.
Provides REST endpoints for the chat, search, swipe and my-page screens.
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from backend.api.routes import router
from backend.core.config import settings
from backend.services.navigator_service import get_navigator_service
from car_navigator.logging_config import configure_logging, get_logger

USE_LOGFIRE = os.environ.get("USE_LOGFIRE", "false").lower() in ("true", "1", "yes")

configure_logging(
    service_name=os.environ.get("LOGFIRE_SERVICE_NAME", "car-navigator-backend"),
    level="DEBUG" if settings.debug else "INFO",
)
logger = get_logger(__name__)


# =============================================================================
# Lifespan Manager
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    - Startup: load catalog, build backend client, connect cache
    - Shutdown: close the cache connection
    """
    logger.info("Starting AI Car Navigator Backend")
    logger.info(f"Debug mode: {settings.debug}")
    logger.info(f"LLM model: {settings.llm_model or 'not-set'}")

    navigator = get_navigator_service()
    try:
        await navigator.initialize()
        logger.info(f"Catalog loaded ({len(navigator.catalog)} records)")
    except Exception as e:
        logger.warning(f"Navigator initialization failed: {e}")
        logger.info("Navigator will be initialized on first request")

    yield

    logger.info("Shutting down backend")
    await navigator.close()


# =============================================================================
# FastAPI App
# =============================================================================


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
## 🚗 AI Car Navigator API

Used-car discovery over a bundled catalog, with a generative fallback.

### Endpoints:
- `POST /api/chat` - Free-text search / conversation
- `POST /api/search` - Structured search form
- `GET /api/recommendations` - Swipe feed
- `GET /api/health` - Check service health
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api", tags=["API"])

if USE_LOGFIRE:
    import logfire

    logfire.instrument_fastapi(app)
    logfire.instrument_httpx()
    logger.info("Logfire: FastAPI + HTTPX instrumented")


@app.get("/", include_in_schema=False)
async def root_redirect():
    """Redirect root to API docs."""
    return RedirectResponse(url="/docs")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "backend.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
