"""
Health check utilities for the Medical Document Explainer

Reports on the AI Gateway credential, the in-memory session and the PDF
extraction settings.
"""
import logging
import time
from typing import Dict, Any, List, Optional
from dataclasses import dataclass
from enum import Enum

from models.session import GatewayAvailability
from services.ai_gateway import AIGateway
from services.pdf_processor import PDFProcessor
from services.session_store import SessionStore

logger = logging.getLogger(__name__)

PROCESS_STARTED_AT = time.time()


def _now() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


class HealthStatus(Enum):
    """Health status enumeration"""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


@dataclass
class ComponentHealth:
    """Health information for a system component"""
    name: str
    status: HealthStatus
    message: str
    details: Optional[Dict[str, Any]] = None
    response_time_ms: Optional[int] = None
    last_check: Optional[str] = None


@dataclass
class SystemHealth:
    """Overall system health information"""
    status: HealthStatus
    message: str
    components: List[ComponentHealth]
    timestamp: str
    uptime_seconds: Optional[int] = None


class HealthChecker:
    """
    Health checker for the explainer's components
    """

    def __init__(
        self,
        availability: Optional[GatewayAvailability] = None,
        gateway: Optional[AIGateway] = None,
        store: Optional[SessionStore] = None,
        pdf_processor: Optional[PDFProcessor] = None
    ):
        """
        Initialize health checker with system components

        Args:
            availability: Result of the startup credential check
            gateway: AI Gateway instance
            store: Session store instance
            pdf_processor: PDF processor instance
        """
        self.availability = availability
        self.gateway = gateway
        self.store = store
        self.pdf_processor = pdf_processor
        self.start_time = PROCESS_STARTED_AT

    def check_system_health(self, include_details: bool = True) -> SystemHealth:
        """
        Check the health of all system components

        Args:
            include_details: Whether to include detailed component information

        Returns:
            SystemHealth object with overall status and component details
        """
        components = []

        if self.availability is not None:
            components.append(self._check_ai_gateway())

        if self.store is not None:
            components.append(self._check_session_store())

        if self.pdf_processor is not None:
            components.append(self._check_pdf_processor())

        overall_status = self._determine_overall_status(components)

        return SystemHealth(
            status=overall_status,
            message=self._get_status_message(overall_status, components),
            components=components if include_details else [],
            timestamp=_now(),
            uptime_seconds=int(time.time() - self.start_time)
        )

    def _check_ai_gateway(self) -> ComponentHealth:
        """Check the AI Gateway credential and configuration"""
        start_time = time.time()

        if not self.availability.available:
            return ComponentHealth(
                name="ai_gateway",
                status=HealthStatus.UNHEALTHY,
                message=self.availability.reason,
                response_time_ms=int((time.time() - start_time) * 1000),
                last_check=_now()
            )

        details = self.gateway.get_model_info() if self.gateway is not None else None
        return ComponentHealth(
            name="ai_gateway",
            status=HealthStatus.HEALTHY,
            message="AI Gateway is configured",
            details=details,
            response_time_ms=int((time.time() - start_time) * 1000),
            last_check=_now()
        )

    def _check_session_store(self) -> ComponentHealth:
        """Report on the current session"""
        session = self.store.current
        details = {
            "cycle": session.cycle,
            "document_loaded": session.has_document,
            "processing": session.is_processing,
            "answer_in_progress": session.is_loading_answer,
            "transcript_length": len(session.transcript)
        }

        if session.error:
            return ComponentHealth(
                name="session",
                status=HealthStatus.DEGRADED,
                message="The current document has processing errors",
                details={**details, "error": session.error},
                last_check=_now()
            )

        return ComponentHealth(
            name="session",
            status=HealthStatus.HEALTHY,
            message="Session store is available",
            details=details,
            last_check=_now()
        )

    def _check_pdf_processor(self) -> ComponentHealth:
        max_size = self.pdf_processor.max_file_size
        return ComponentHealth(
            name="pdf_processor",
            status=HealthStatus.HEALTHY,
            message="PDF extraction is available",
            details={"max_file_size_bytes": max_size},
            last_check=_now()
        )

    def _determine_overall_status(self, components: List[ComponentHealth]) -> HealthStatus:
        """Determine overall system status based on component health"""
        if not components:
            return HealthStatus.UNKNOWN

        if any(c.status == HealthStatus.UNHEALTHY for c in components):
            return HealthStatus.UNHEALTHY
        elif any(c.status == HealthStatus.DEGRADED for c in components):
            return HealthStatus.DEGRADED
        elif any(c.status == HealthStatus.HEALTHY for c in components):
            return HealthStatus.HEALTHY
        else:
            return HealthStatus.UNKNOWN

    def _get_status_message(self, status: HealthStatus, components: List[ComponentHealth]) -> str:
        """Get a descriptive message for the overall status"""
        if status == HealthStatus.HEALTHY:
            return f"All {len(components)} system components are healthy"
        elif status == HealthStatus.DEGRADED:
            degraded = [c.name for c in components if c.status == HealthStatus.DEGRADED]
            return f"System is degraded - issues with: {', '.join(degraded)}"
        elif status == HealthStatus.UNHEALTHY:
            unhealthy = [c.name for c in components if c.status == HealthStatus.UNHEALTHY]
            return f"System is unhealthy - critical issues with: {', '.join(unhealthy)}"
        else:
            return "System status is unknown"
