"""
Document-related data models for the Medical Document Explainer
"""
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


class GlossaryTerm(BaseModel):
    """An AI-identified medical term with a plain-language definition"""
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "term": "hypertension",
                "definition": "High blood pressure."
            }
        }
    )

    term: str = Field(..., description="The medical term as it appears in the document")
    definition: str = Field(..., description="Plain-language definition of the term")


class DocumentInfo(BaseModel):
    """Metadata about the uploaded document the current session was built from"""
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "filename": "discharge_summary.pdf",
                "page_count": 3,
                "language": "en",
                "language_confidence": 0.9,
                "character_count": 5821
            }
        }
    )

    filename: Optional[str] = Field(None, description="Original filename of the uploaded document")
    page_count: int = Field(0, ge=0, description="Number of pages in the document")
    language: str = Field("unknown", description="Detected language code of the document text")
    language_confidence: float = Field(0.0, ge=0.0, le=1.0, description="Confidence of the language detection")
    character_count: int = Field(0, ge=0, description="Length of the extracted text")


class ExtractedDocument(BaseModel):
    """Result of running the text extraction adapter over a PDF"""
    model_config = ConfigDict(frozen=True)

    text: str = Field(..., description="Extracted text, pages separated by a blank line")
    info: DocumentInfo = Field(..., description="Metadata gathered during extraction")
