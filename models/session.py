"""
Session state models for the Medical Document Explainer

A ``DocumentSession`` is an immutable snapshot. Every state transition returns
a new snapshot; nothing is mutated in place.
"""
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict

from models.document import GlossaryTerm, DocumentInfo
from models.question import QAPair
from utils.exceptions import create_missing_credential_error


class GatewayAvailability(BaseModel):
    """Result of the startup check for the AI Gateway credential"""
    model_config = ConfigDict(frozen=True)

    available: bool = Field(..., description="Whether AI-dependent operations may be attempted")
    reason: str = Field("", description="User-facing explanation when unavailable")

    @classmethod
    def from_api_key(cls, api_key: Optional[str]) -> "GatewayAvailability":
        if api_key and api_key.strip():
            return cls(available=True)
        return cls(available=False, reason=create_missing_credential_error().message)


class PrintSelections(BaseModel):
    """Which report sections the user wants to print"""
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "include_original": True,
                "include_translation": True,
                "include_glossary": True,
                "include_qa": False
            }
        }
    )

    include_original: bool = Field(True, description="Include the original document text")
    include_translation: bool = Field(True, description="Include the plain-language translation")
    include_glossary: bool = Field(True, description="Include the glossary of medical terms")
    include_qa: bool = Field(True, description="Include the question and answer history")


class DocumentSession(BaseModel):
    """Snapshot of everything derived from the current document"""
    model_config = ConfigDict(frozen=True)

    cycle: int = Field(0, ge=0, description="Processing cycle this snapshot belongs to")
    raw_text: str = Field("", description="Extracted text, the only text sent to the answer operation")
    document: Optional[DocumentInfo] = Field(None, description="Metadata about the uploaded document")
    reformatted_text: Optional[str] = Field(None, description="Structure-only reformatting of the raw text")
    translated_text: Optional[str] = Field(None, description="Plain-language version of the raw text")
    glossary: Optional[tuple[GlossaryTerm, ...]] = Field(None, description="Medical terms with definitions")
    transcript: tuple[QAPair, ...] = Field(default_factory=tuple, description="Question/answer history")
    is_loading_reformat: bool = False
    is_loading_translation: bool = False
    is_loading_glossary: bool = False
    is_loading_answer: bool = False
    error: Optional[str] = Field(None, description="Accumulated user-facing error text")

    @property
    def has_document(self) -> bool:
        return bool(self.raw_text)

    @property
    def displayed_original_text(self) -> str:
        """Reformatted text when available, otherwise the raw text"""
        return self.reformatted_text or self.raw_text

    @property
    def is_processing(self) -> bool:
        return self.is_loading_reformat or self.is_loading_translation or self.is_loading_glossary

    @property
    def comparison_ready(self) -> bool:
        """Both panes of the comparison view have settled content"""
        if self.is_loading_reformat:
            return False
        return bool(self.displayed_original_text) and bool(self.translated_text)

    def update(self, **changes) -> "DocumentSession":
        return self.model_copy(update=changes)

    @classmethod
    def start_cycle(cls, cycle: int, raw_text: str, document: Optional[DocumentInfo] = None) -> "DocumentSession":
        """Fresh snapshot for a new document with every derived field cleared"""
        return cls(
            cycle=cycle,
            raw_text=raw_text,
            document=document,
            is_loading_reformat=True,
            is_loading_translation=True,
            is_loading_glossary=True,
        )

    def append_pair(self, pair: QAPair) -> "DocumentSession":
        return self.update(transcript=self.transcript + (pair,))
