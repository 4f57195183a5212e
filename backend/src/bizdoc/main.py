"""
FastAPI application entry point.

This is the main application that ties together all components:
- API routes for analysis, evidence and PDF reports
- CORS configuration for frontend access
- Error handling and logging
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bizdoc import __version__
from bizdoc.api.routes import analysis, health, report
from bizdoc.api.schemas import ErrorResponse
from bizdoc.config import get_settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log the effective configuration on startup."""
    settings = get_settings()

    logger.info(f"Starting BizDoc v{__version__}")
    logger.info(
        f"Chunk budget: {settings.chunk_char_budget} chars x {settings.max_chunks} chunks, "
        f"evidence budget: {settings.evidence_char_budget} chars"
    )
    if settings.openai_api_key:
        logger.info(f"Refinement available: model={settings.refine_model}")
    else:
        logger.info("Refinement disabled (OPENAI_API_KEY not set)")
    logger.info(f"Debug mode: {settings.debug}")

    yield  # Application runs here

    logger.info("Shutting down BizDoc")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance ready to serve requests.
    """
    settings = get_settings()

    app = FastAPI(
        title="BizDoc API",
        description=(
            "Business document analysis.\n\n"
            "Turns extracted document text into amounts, KPIs, a financial "
            "health score, risks, actions and chart-ready series."
        ),
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Register routers
    app.include_router(health.router)
    app.include_router(analysis.router, prefix="/api/v1")
    app.include_router(report.router, prefix="/api/v1")

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Catch-all exception handler for unhandled errors."""
        logger.exception(f"Unhandled error: {exc}")

        # Don't expose internal errors in production
        if settings.debug:
            detail = str(exc)
        else:
            detail = "An internal error occurred"

        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="Internal Server Error", detail=detail).model_dump(),
        )

    return app


# Create the application instance
app = create_app()


# Development server entry point
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "bizdoc.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
