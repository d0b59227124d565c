"""
Review Trust Service - HTTP API
Scores a batch of product reviews for authenticity
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Sequence

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from reviewtrust.config import get_settings
from reviewtrust.content_patterns import ContentPatternAnalyzer
from reviewtrust.engine import ReviewTrustEngine
from reviewtrust.llm_adapter import ClassifierFallbackError, OpenAIClassifierClient
from reviewtrust.models import (
    AnalysisMetrics,
    CheckProductRequest,
    CheckProductResponse,
    HealthResponse,
    ProductSummary,
)

# Load environment variables early so Settings picks them up
load_dotenv()

settings = get_settings()

# Logging configuration
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
        logging.FileHandler('logs/reviewtrust.log') if os.path.exists('logs') else logging.NullHandler()
    ]
)

logger = logging.getLogger(__name__)

SAFE_ERROR_MESSAGE = "An error occurred processing your request"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _format_location(loc: Sequence[Any]) -> str:
    parts = [str(part) for part in loc]
    if parts and parts[0] == "body":
        parts = parts[1:]
    return ".".join(parts) or "body"


def build_engine() -> ReviewTrustEngine:
    """Build the engine, with the classifier disabled when no API key is set."""
    client = None
    try:
        client = OpenAIClassifierClient(settings=settings)
        logger.info(f"Content classifier enabled: {settings.openai_model}")
    except ClassifierFallbackError as exc:
        logger.warning(f"Content classifier disabled: {exc}")
    analyzer = ContentPatternAnalyzer(client, max_reviews=settings.max_reviews)
    return ReviewTrustEngine(content_analyzer=analyzer)


# Application lifespan
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info("=" * 60)
    logger.info(f"Starting {settings.title} v{settings.version}")
    logger.info("=" * 60)

    engine = build_engine()
    app.state.engine = engine
    logger.info(f"  Allowed origins: {settings.get_allowed_origins()}")
    logger.info(f"  Max reviews per classifier call: {settings.max_reviews}")
    logger.info("Service ready")

    yield

    logger.info("Shutting down...")
    client = engine.content_analyzer.client
    if isinstance(client, OpenAIClassifierClient):
        await client.aclose()
    logger.info("Shutdown complete")


# FastAPI application
app = FastAPI(
    title=settings.title,
    version=settings.version,
    description="Authenticity scoring for batches of product reviews",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


def get_engine(request: Request) -> ReviewTrustEngine:
    return request.app.state.engine


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report request validation problems as 400 with readable field messages"""
    details = ", ".join(
        f"{_format_location(error.get('loc', ()))}: {error.get('msg', 'invalid value')}"
        for error in exc.errors()
    )
    logger.info(f"Rejected request to {request.url.path}: {details}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "statusCode": status.HTTP_400_BAD_REQUEST,
            "error": details,
            "timestamp": _now_iso(),
        }
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    details = SAFE_ERROR_MESSAGE
    if get_settings().debug:
        details = f"{details} (DEBUG: {exc})"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "statusCode": status.HTTP_500_INTERNAL_SERVER_ERROR,
            "error": "INTERNAL_SERVER_ERROR",
            "details": details,
            "timestamp": _now_iso(),
        }
    )


# API endpoints
@app.get("/")
async def root() -> Dict[str, Any]:
    """Root endpoint with service information"""
    return {
        "service": settings.title,
        "version": settings.version,
        "status": "operational",
        "endpoints": {
            "check_product": "POST /check/amazon/product",
            "health": "GET /health",
        },
    }


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    return HealthResponse(timestamp=_now_iso())


@app.post(
    "/check/amazon/product",
    response_model=CheckProductResponse,
    response_model_exclude_none=True,
)
async def check_amazon_product(
    request_body: CheckProductRequest,
    engine: ReviewTrustEngine = Depends(get_engine),
) -> CheckProductResponse:
    """Assess a batch of product reviews and return the trust score with its flags"""
    assessment = await engine.assess(request_body.reviews)

    return CheckProductResponse(
        summary=ProductSummary(trust_score=assessment.trust_score),
        metrics=AnalysisMetrics(analyzed=assessment.analyzed, total=len(request_body.reviews)),
        timestamp=_now_iso(),
        green_flags=assessment.green_flags or None,
        red_flags=assessment.red_flags or None,
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower()
    )
