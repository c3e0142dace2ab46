"""
Dependency injection for the Medical Document Explainer API
"""
import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from models.session import GatewayAvailability
from services.ai_gateway import AIGateway
from services.document_orchestrator import DocumentOrchestrator
from services.pdf_processor import PDFProcessor
from services.qa_manager import QAManager
from services.report_composer import ReportComposer
from services.session_store import SessionStore
from config import settings
from utils.health_check import HealthChecker

logger = logging.getLogger(__name__)


@lru_cache()
def get_gateway_availability() -> GatewayAvailability:
    """
    Check the AI Gateway credential once (cached singleton)
    """
    availability = GatewayAvailability.from_api_key(settings.openrouter_api_key)
    if not availability.available:
        logger.warning(availability.reason)
    return availability


@lru_cache()
def get_ai_gateway() -> AIGateway:
    """
    Get AI Gateway instance (cached singleton)
    """
    return AIGateway()


@lru_cache()
def get_session_store() -> SessionStore:
    """
    Get the in-memory session store (cached singleton)
    """
    return SessionStore()


@lru_cache()
def get_pdf_processor() -> PDFProcessor:
    """
    Get PDF processor instance (cached singleton)
    """
    return PDFProcessor(max_file_size=settings.max_file_size_mb * 1024 * 1024)


@lru_cache()
def get_orchestrator() -> DocumentOrchestrator:
    """
    Get document processing orchestrator instance (cached singleton)
    """
    return DocumentOrchestrator(get_ai_gateway(), get_session_store(), get_gateway_availability())


@lru_cache()
def get_qa_manager() -> QAManager:
    """
    Get Q&A session manager instance (cached singleton)
    """
    return QAManager(get_ai_gateway(), get_session_store(), get_gateway_availability())


@lru_cache()
def get_report_composer() -> ReportComposer:
    """
    Get report composer instance (cached singleton)
    """
    return ReportComposer()


# Type annotations for dependency injection
GatewayAvailabilityDep = Annotated[GatewayAvailability, Depends(get_gateway_availability)]
AIGatewayDep = Annotated[AIGateway, Depends(get_ai_gateway)]
SessionStoreDep = Annotated[SessionStore, Depends(get_session_store)]
PDFProcessorDep = Annotated[PDFProcessor, Depends(get_pdf_processor)]
OrchestratorDep = Annotated[DocumentOrchestrator, Depends(get_orchestrator)]
QAManagerDep = Annotated[QAManager, Depends(get_qa_manager)]
ReportComposerDep = Annotated[ReportComposer, Depends(get_report_composer)]


def get_health_checker(
    availability: GatewayAvailabilityDep,
    gateway: AIGatewayDep,
    store: SessionStoreDep,
    pdf_processor: PDFProcessorDep
) -> HealthChecker:
    """Health checker over the current service instances (built per request)"""
    return HealthChecker(availability=availability, gateway=gateway, store=store, pdf_processor=pdf_processor)


HealthCheckerDep = Annotated[HealthChecker, Depends(get_health_checker)]
