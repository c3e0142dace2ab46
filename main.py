"""
Medical Document Explainer - Main application entry point
"""
import time
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware

from config import settings
from api.dependencies import (
    get_gateway_availability,
    get_session_store,
    get_pdf_processor,
    get_orchestrator,
    get_qa_manager,
    get_report_composer
)

# Import API routers
from api.document_controller import router as document_router
from api.session_controller import router as session_router
from api.question_controller import router as question_router
from api.report_controller import router as report_router
from api.health_controller import router as health_router

from utils.error_handlers import ErrorHandlingMiddleware, register_exception_handlers
from utils.logging import setup_logging, log_request

logger = setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Check the AI Gateway credential once and build the service singletons
    """
    start_time = time.time()
    logger.info(f"Starting {settings.app_name} v{settings.app_version} ({settings.environment})")

    # Every AI-dependent service shares this one result
    availability = get_gateway_availability()
    if availability.available:
        logger.info(f"AI Gateway configured: model {settings.llm_model}, web search {settings.enable_web_search}")
    else:
        logger.warning(f"AI Gateway unavailable: {availability.reason}")

    get_pdf_processor()
    get_orchestrator()
    get_qa_manager()
    get_report_composer()
    logger.info(f"Services ready in {time.time() - start_time:.2f}s")

    yield

    # The session lives in memory only
    session = get_session_store().current
    logger.info(f"Shutting down at cycle {session.cycle} "
                f"(document loaded: {session.has_document}, {len(session.transcript)} transcript entries)")


app = FastAPI(
    title=settings.app_name,
    description="Explains medical documents in plain language: reformatted and translated views, "
                "a glossary of medical terms, grounded follow-up questions and a printable report",
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)


def configure_middleware():
    """Trusted hosts, CORS, access logging and the last-resort error handler"""
    if settings.allowed_hosts:
        app.add_middleware(
            TrustedHostMiddleware,
            allowed_hosts=settings.allowed_hosts.split(",")
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins.split(","),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        max_age=3600,
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()
        path = str(request.url.path)

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = int((time.time() - start_time) * 1000)
            logger.error(f"Request failed: {request.method} {path} - {e}")
            log_request(request.method, path, 500, duration_ms)
            raise

        duration_ms = int((time.time() - start_time) * 1000)
        log_request(request.method, path, response.status_code, duration_ms)
        response.headers["X-Response-Time"] = f"{duration_ms}ms"
        return response

    app.add_middleware(ErrorHandlingMiddleware)


configure_middleware()
register_exception_handlers(app)

app.include_router(document_router)
app.include_router(session_router)
app.include_router(question_router)
app.include_router(report_router)
app.include_router(health_router)


@app.get("/")
async def root():
    """Entry point listing the explainer's endpoints"""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "documentation": "/docs",
        "endpoints": {
            "upload_document": "POST /documents/",
            "session": "GET /session",
            "comparison_view": "GET /session/view",
            "activate_term": "POST /session/view/activate",
            "ask_question": "POST /question/",
            "question_readiness": "GET /question/health",
            "report": "POST /report",
            "health_check": "GET /health",
            "detailed_health": "GET /health/detailed",
            "readiness": "GET /health/ready",
            "liveness": "GET /health/live",
            "info": "GET /info"
        }
    }
