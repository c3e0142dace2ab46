"""
API request and response models for the Medical Document Explainer
"""
from typing import Optional
from pydantic import BaseModel, Field, field_validator, ConfigDict

from models.document import GlossaryTerm, DocumentInfo
from models.question import QAPair
from models.session import DocumentSession


class SessionResponse(BaseModel):
    """Serializable view of the current session snapshot"""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "cycle": 1,
                "has_document": True,
                "document": {"filename": "labs.pdf", "page_count": 2, "language": "en"},
                "displayed_original_text": "Patient presents with hypertension.",
                "translated_text": "The patient has high blood pressure.",
                "glossary": [{"term": "hypertension", "definition": "High blood pressure."}],
                "transcript": [],
                "is_processing": False,
                "comparison_ready": True,
                "error": None
            }
        }
    )

    cycle: int = Field(..., ge=0, description="Current processing cycle")
    has_document: bool = Field(..., description="Whether a document has been processed")
    document: Optional[DocumentInfo] = Field(None, description="Metadata about the uploaded document")
    displayed_original_text: str = Field("", description="Reformatted text, or the raw text as a fallback")
    translated_text: Optional[str] = Field(None, description="Plain-language translation")
    glossary: Optional[list[GlossaryTerm]] = Field(None, description="Glossary of medical terms")
    transcript: list[QAPair] = Field(default_factory=list, description="Question/answer history")
    is_loading_reformat: bool = False
    is_loading_translation: bool = False
    is_loading_glossary: bool = False
    is_loading_answer: bool = False
    is_processing: bool = False
    comparison_ready: bool = False
    error: Optional[str] = Field(None, description="Accumulated user-facing error text")

    @classmethod
    def from_session(cls, session: DocumentSession) -> "SessionResponse":
        return cls(
            cycle=session.cycle,
            has_document=session.has_document,
            document=session.document,
            displayed_original_text=session.displayed_original_text,
            translated_text=session.translated_text,
            glossary=list(session.glossary) if session.glossary is not None else None,
            transcript=list(session.transcript),
            is_loading_reformat=session.is_loading_reformat,
            is_loading_translation=session.is_loading_translation,
            is_loading_glossary=session.is_loading_glossary,
            is_loading_answer=session.is_loading_answer,
            is_processing=session.is_processing,
            comparison_ready=session.comparison_ready,
            error=session.error
        )


class DocumentUploadResponse(BaseModel):
    """Response model for document upload"""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "message": "Document accepted for processing",
                "cycle": 2,
                "document": {"filename": "labs.pdf", "page_count": 2, "language": "en"},
                "processing_time_ms": 350
            }
        }
    )

    message: str = Field(..., description="Status message")
    cycle: int = Field(..., ge=1, description="Processing cycle started for this document")
    document: DocumentInfo = Field(..., description="Metadata gathered during extraction")
    processing_time_ms: int = Field(..., ge=0, description="Time spent in the request in milliseconds")
    session: Optional[SessionResponse] = Field(None, description="Session snapshot when processing was awaited")


class QuestionRequest(BaseModel):
    """Request model for asking a question about the current document"""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "question": "What does my cholesterol result mean?"
            }
        }
    )

    question: str = Field(..., min_length=1, max_length=2000, description="The question to answer")

    @field_validator('question')
    @classmethod
    def validate_question(cls, v):
        """Validate question is not blank"""
        stripped = v.strip()
        if not stripped:
            raise ValueError('Question cannot be empty or only whitespace')
        return stripped


class QuestionResponse(BaseModel):
    """Response model for question answering"""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "answer": {
                    "id": "bot-1718000000000-3",
                    "question": "What does my cholesterol result mean?",
                    "answer": "Your LDL is slightly above the recommended range.",
                    "sources": None,
                    "is_bot": True
                },
                "transcript": [],
                "answer_html": "<div class=\"markdown\"><p class=\"md-p\">...</p></div>",
                "error": None
            }
        }
    )

    answer: Optional[QAPair] = Field(None, description="The newest bot entry of the transcript")
    answer_html: str = Field("", description="The answer rendered to HTML")
    transcript: list[QAPair] = Field(default_factory=list, description="Full question/answer history")
    error: Optional[str] = Field(None, description="Top-level error when the answer failed")


class ComparisonViewResponse(BaseModel):
    """Rendered side-by-side panes and glossary for the current session"""

    comparison_ready: bool = Field(..., description="Whether both panes are available")
    original_html: Optional[str] = Field(None, description="Original pane with highlighted terms")
    translated_html: Optional[str] = Field(None, description="Plain-language pane with highlighted terms")
    glossary: Optional[list[GlossaryTerm]] = Field(None, description="Glossary when it has arrived")
    glossary_message: Optional[str] = Field(None, description="Shown when the glossary is empty")


class ErrorResponse(BaseModel):
    """Standard error response model"""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": {
                    "code": "INVALID_FILE_TYPE",
                    "message": "Invalid file type 'text/plain'. Please upload a PDF file.",
                    "details": {
                        "filename": "notes.txt",
                        "content_type": "text/plain"
                    },
                    "timestamp": "2024-01-15T10:30:00Z"
                }
            }
        }
    )

    error: dict = Field(..., description="Error details")


class TermActivationRequest(BaseModel):
    """A click or keypress on a highlighted term in one of the comparison panes"""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "term": "hypertension",
                "pane": "translated",
                "event_type": "keydown",
                "key": "Enter"
            }
        }
    )

    term: str = Field(..., min_length=1, description="Term text as shown in the pane")
    pane: str = Field("original", pattern="^(original|translated)$", description="Pane the term was activated in")
    event_type: str = Field("click", pattern="^(click|keydown)$", description="Kind of interaction")
    key: Optional[str] = Field(None, description="Key pressed for keydown events")


class TermActivationResponse(BaseModel):
    """Definition shown after a term was activated"""

    activated: bool = Field(..., description="Whether the interaction activated a term")
    term: Optional[GlossaryTerm] = Field(None, description="The activated glossary term")
    propagation_stopped: bool = Field(False, description="Whether the interaction stopped at the term")
