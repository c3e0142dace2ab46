"""
Custom exception classes for the Medical Document Explainer

This module defines the single error taxonomy used throughout the application.
Failures coming from third-party libraries (HTTP transport, JSON decoding, PDF
parsing) are converted into these types at the boundary where they occur.
"""
import time
from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(Enum):
    """Enumeration of error codes for consistent error handling"""

    # General errors
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

    # File handling errors
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    INVALID_FILE_TYPE = "INVALID_FILE_TYPE"
    EMPTY_FILE = "EMPTY_FILE"

    # Document processing errors
    PDF_PROCESSING_FAILED = "PDF_PROCESSING_FAILED"
    NO_DOCUMENT_LOADED = "NO_DOCUMENT_LOADED"
    ANSWER_IN_PROGRESS = "ANSWER_IN_PROGRESS"

    # AI transform errors
    REFORMAT_FAILED = "REFORMAT_FAILED"
    TRANSLATION_FAILED = "TRANSLATION_FAILED"
    GLOSSARY_FAILED = "GLOSSARY_FAILED"
    GLOSSARY_PARSE_FAILED = "GLOSSARY_PARSE_FAILED"
    ANSWER_FAILED = "ANSWER_FAILED"

    # External service errors
    LLM_SERVICE_UNAVAILABLE = "LLM_SERVICE_UNAVAILABLE"
    LLM_API_ERROR = "LLM_API_ERROR"
    LLM_RATE_LIMIT = "LLM_RATE_LIMIT"
    LLM_TIMEOUT = "LLM_TIMEOUT"


class MedExplainException(Exception):
    """
    Base exception class for all Medical Document Explainer errors

    Provides structured error information with error codes, messages,
    and optional details for debugging and user feedback.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        """
        Initialize the exception

        Args:
            message: Human-readable error message
            error_code: Structured error code for programmatic handling
            details: Optional dictionary with additional error details
            original_exception: Original exception that caused this error (if any)
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.original_exception = original_exception
        self.timestamp = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary format for API responses

        Returns:
            Dictionary representation of the error
        """
        error_dict = {
            "error": {
                "code": self.error_code.value,
                "message": self.message,
                "timestamp": self.timestamp
            }
        }

        if self.details:
            error_dict["error"]["details"] = self.details

        return error_dict

    def __str__(self) -> str:
        """String representation of the exception"""
        return f"{self.error_code.value}: {self.message}"


class ConfigurationError(MedExplainException):
    """Raised when the AI Gateway credential is missing"""

    def __init__(self, message: str, setting_name: Optional[str] = None):
        details = {}
        if setting_name:
            details["setting_name"] = setting_name

        super().__init__(
            message=message,
            error_code=ErrorCode.LLM_SERVICE_UNAVAILABLE,
            details=details
        )


class ValidationError(MedExplainException):
    """Exception for input validation errors"""

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        field_value: Optional[Any] = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        original_exception: Optional[Exception] = None
    ):
        details = {}
        if field_name:
            details["field_name"] = field_name
        if field_value is not None:
            # Convert to string and truncate for safety
            value_str = str(field_value)
            details["field_value"] = value_str[:100] + "..." if len(value_str) > 100 else value_str

        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
            original_exception=original_exception
        )


class FileHandlingError(ValidationError):
    """Exception for rejected uploads (wrong type, empty, too large)"""

    def __init__(
        self,
        message: str,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
        file_size: Optional[int] = None,
        error_code: ErrorCode = ErrorCode.INVALID_FILE_TYPE
    ):
        super().__init__(message=message, error_code=error_code)
        if filename:
            self.details["filename"] = filename
        if content_type:
            self.details["content_type"] = content_type
        if file_size is not None:
            self.details["file_size"] = file_size


class PDFProcessingError(MedExplainException):
    """Exception for PDF text extraction failures"""

    def __init__(
        self,
        message: str,
        filename: Optional[str] = None,
        page_number: Optional[int] = None,
        original_exception: Optional[Exception] = None
    ):
        details = {"processing_stage": "pdf_extraction"}
        if filename:
            details["filename"] = filename
        if page_number is not None:
            details["page_number"] = page_number

        super().__init__(
            message=message,
            error_code=ErrorCode.PDF_PROCESSING_FAILED,
            details=details,
            original_exception=original_exception
        )


class TransformError(MedExplainException):
    """Failure of one AI Gateway operation (reformat, translate, glossary, answer)"""

    def __init__(
        self,
        message: str,
        operation: str,
        model_name: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.LLM_API_ERROR,
        original_exception: Optional[Exception] = None
    ):
        details = {"operation": operation}
        if model_name:
            details["model_name"] = model_name

        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
            original_exception=original_exception
        )
        self.operation = operation


class GlossaryParseError(TransformError):
    """The glossary payload could not be parsed into term/definition pairs"""

    def __init__(self, message: str, raw_text: Optional[str] = None,
                 original_exception: Optional[Exception] = None):
        super().__init__(
            message=message,
            operation="glossary",
            error_code=ErrorCode.GLOSSARY_PARSE_FAILED,
            original_exception=original_exception
        )
        if raw_text is not None:
            self.details["raw_text"] = raw_text[:200] + "..." if len(raw_text) > 200 else raw_text


# Convenience functions for creating common exceptions

def create_missing_credential_error() -> ConfigurationError:
    """Create the error raised by every AI-dependent flow when no credential is set"""
    return ConfigurationError(
        message="OPENROUTER_API_KEY environment variable is not set. "
                "Please ensure it is configured for the application to function.",
        setting_name="openrouter_api_key"
    )


def create_invalid_file_type_error(filename: Optional[str], content_type: Optional[str]) -> FileHandlingError:
    """Create an invalid file type error naming the rejected type"""
    rejected = content_type or filename or "unknown"
    return FileHandlingError(
        message=f"Invalid file type '{rejected}'. Please upload a PDF file.",
        filename=filename,
        content_type=content_type,
        error_code=ErrorCode.INVALID_FILE_TYPE
    )


def create_file_too_large_error(filename: str, file_size: int, max_size: int) -> FileHandlingError:
    """Create a file too large error"""
    return FileHandlingError(
        message=f"File '{filename}' exceeds maximum size limit of {max_size} bytes",
        filename=filename,
        file_size=file_size,
        error_code=ErrorCode.FILE_TOO_LARGE
    )


def create_no_document_error() -> ValidationError:
    """Create the error for asking a question before a document is processed"""
    return ValidationError(
        message="Please process a document before asking questions.",
        field_name="document",
        error_code=ErrorCode.NO_DOCUMENT_LOADED
    )


def describe_error(exc: Exception) -> str:
    """User-facing text for an exception, without the error code prefix"""
    if isinstance(exc, MedExplainException):
        return exc.message
    return str(exc) or exc.__class__.__name__
