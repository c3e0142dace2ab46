"""
PDF processing service for text extraction and language detection
"""
import io
import logging
import re
from typing import List, Optional, Tuple
import PyPDF2
import pdfplumber
from langdetect import detect_langs, DetectorFactory
from langdetect.lang_detect_exception import LangDetectException

from models.document import DocumentInfo, ExtractedDocument
from utils.exceptions import PDFProcessingError, create_invalid_file_type_error, create_file_too_large_error, \
    FileHandlingError, ErrorCode, describe_error
from utils.error_handlers import log_processing_step

# Set seed for consistent language detection results
DetectorFactory.seed = 0

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
PAGE_SEPARATOR = "\n\n"

# Content types browsers send when they cannot tell what a file is
GENERIC_CONTENT_TYPES = {"", "application/octet-stream", "binary/octet-stream"}

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


class PDFProcessor:
    """
    Service for extracting text from uploaded PDF files and detecting language.
    Uses pdfplumber, with PyPDF2 as a fallback.
    """

    def __init__(self, max_file_size: Optional[int] = None):
        """
        Initialize the PDF processor

        Args:
            max_file_size: Largest accepted upload in bytes (None for no limit)
        """
        self.max_file_size = max_file_size

    def validate_upload(self, content: bytes, filename: Optional[str], content_type: Optional[str]) -> None:
        """
        Reject anything that is not a non-empty PDF before extraction is attempted.

        Raises:
            FileHandlingError: If the type, size or content is not acceptable
        """
        if not self.is_pdf(filename, content_type):
            raise create_invalid_file_type_error(filename, content_type)

        if not content:
            raise FileHandlingError(
                message="The uploaded file is empty. Please upload a PDF file.",
                filename=filename,
                file_size=0,
                error_code=ErrorCode.EMPTY_FILE
            )

        if self.max_file_size is not None and len(content) > self.max_file_size:
            raise create_file_too_large_error(filename or "upload", len(content), self.max_file_size)

    @staticmethod
    def is_pdf(filename: Optional[str], content_type: Optional[str]) -> bool:
        media_type = (content_type or "").split(";")[0].strip().lower()
        if media_type == PDF_CONTENT_TYPE:
            return True
        return media_type in GENERIC_CONTENT_TYPES and bool(filename) and filename.lower().endswith(".pdf")

    def extract_text(self, content: bytes, filename: Optional[str] = None) -> Tuple[str, int]:
        """
        Extract text content from PDF bytes.

        Args:
            content: Raw PDF bytes
            filename: Original filename, used in log messages and errors

        Returns:
            Tuple of (text, page_count); page texts are separated by a blank line

        Raises:
            PDFProcessingError: If text extraction fails
        """
        name = filename or "upload"
        errors: List[str] = []

        # Try pdfplumber first (better for complex layouts)
        try:
            pages = self._extract_with_pdfplumber(content)
            text = self._join_pages(pages)
            if text:
                logger.info(f"Successfully extracted text using pdfplumber from {name}")
                return text, len(pages)
            errors.append("no text content found")
        except Exception as e:
            logger.warning(f"pdfplumber extraction failed for {name}: {e}")
            errors.append(describe_error(e))

        # Fallback to PyPDF2
        try:
            pages = self._extract_with_pypdf2(content)
            text = self._join_pages(pages)
            if text:
                logger.info(f"Successfully extracted text using PyPDF2 from {name}")
                return text, len(pages)
            errors.append("no text content found")
        except Exception as e:
            logger.warning(f"PyPDF2 extraction failed for {name}: {e}")
            errors.append(describe_error(e))

        reason = errors[-1] if errors else "unknown error"
        raise PDFProcessingError(
            f"Failed to parse PDF: {reason}. Please ensure it's a valid, text-based PDF.",
            filename=filename
        )

    def _extract_with_pdfplumber(self, content: bytes) -> List[str]:
        """Extract per-page text using pdfplumber"""
        with pdfplumber.open(io.BytesIO(content)) as pdf:
            if len(pdf.pages) == 0:
                raise PDFProcessingError("PDF contains no pages")
            return [self._clean_text(page.extract_text() or "") for page in pdf.pages]

    def _extract_with_pypdf2(self, content: bytes) -> List[str]:
        """Extract per-page text using PyPDF2"""
        pdf_reader = PyPDF2.PdfReader(io.BytesIO(content))
        if len(pdf_reader.pages) == 0:
            raise PDFProcessingError("PDF contains no pages")
        return [self._clean_text(page.extract_text() or "") for page in pdf_reader.pages]

    @staticmethod
    def _join_pages(pages: List[str]) -> str:
        # Separator goes between pages only, never after the last one
        return PAGE_SEPARATOR.join(pages).strip()

    def _clean_text(self, text: str) -> str:
        """Remove control characters left behind by PDF text layers"""
        if not text:
            return ""
        return _CONTROL_CHARS.sub("", text)

    def detect_language(self, text: str) -> Tuple[str, float]:
        """
        Detect the language of the given text.

        Args:
            text: Text to analyze for language detection

        Returns:
            Tuple of (language_code, confidence_score); 'unknown' when detection is not possible
        """
        if not text or len(text.strip()) < 10:
            return 'unknown', 0.0

        try:
            # Use a sample of text for detection (first 1000 chars for efficiency)
            candidates = detect_langs(text[:1000].strip())
            if not candidates:
                return 'unknown', 0.0
            best = candidates[0]
            return best.lang, round(float(best.prob), 2)
        except LangDetectException as e:
            logger.warning(f"Language detection failed: {e}")
            return 'unknown', 0.0

    def process_pdf(self, content: bytes, filename: Optional[str] = None,
                    content_type: Optional[str] = PDF_CONTENT_TYPE) -> ExtractedDocument:
        """
        Complete PDF processing: validate, extract text and detect language.

        Args:
            content: Raw uploaded bytes
            filename: Original filename
            content_type: Content type reported by the client

        Returns:
            ExtractedDocument with the text and document metadata

        Raises:
            FileHandlingError: If the upload is not an acceptable PDF
            PDFProcessingError: If processing fails
        """
        self.validate_upload(content, filename, content_type)

        try:
            text, page_count = self.extract_text(content, filename)
        except PDFProcessingError:
            raise
        except Exception as e:
            raise PDFProcessingError(
                f"Failed to parse PDF: {e}. Please ensure it's a valid, text-based PDF.",
                filename=filename,
                original_exception=e
            )

        language, confidence = self.detect_language(text)

        log_processing_step("pdf_extracted", {
            "filename": filename,
            "pages": page_count,
            "characters": len(text),
            "language": language
        })
        logger.info(f"Processed PDF {filename}: {len(text)} chars, language={language}, confidence={confidence}")

        return ExtractedDocument(
            text=text,
            info=DocumentInfo(
                filename=filename,
                page_count=page_count,
                language=language,
                language_confidence=confidence,
                character_count=len(text)
            )
        )
