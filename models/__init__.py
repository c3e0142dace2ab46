"""
Data models for the Medical Document Explainer
"""

from .document import GlossaryTerm, DocumentInfo, ExtractedDocument
from .question import Source, QAPair
from .session import DocumentSession, PrintSelections, GatewayAvailability
from .api import (
    SessionResponse,
    DocumentUploadResponse,
    QuestionRequest,
    QuestionResponse,
    ComparisonViewResponse,
    TermActivationRequest,
    TermActivationResponse,
    ErrorResponse
)

__all__ = [
    # Document models
    "GlossaryTerm",
    "DocumentInfo",
    "ExtractedDocument",

    # Question/Answer models
    "Source",
    "QAPair",

    # Session models
    "DocumentSession",
    "PrintSelections",
    "GatewayAvailability",

    # API models
    "SessionResponse",
    "DocumentUploadResponse",
    "QuestionRequest",
    "QuestionResponse",
    "ComparisonViewResponse",
    "TermActivationRequest",
    "TermActivationResponse",
    "ErrorResponse"
]
