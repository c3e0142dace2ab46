"""
Document upload controller for the Medical Document Explainer REST API
"""
import asyncio
import logging
import time
from fastapi import APIRouter, BackgroundTasks, File, HTTPException, Query, Response, UploadFile, status

from models.api import DocumentUploadResponse, ErrorResponse, SessionResponse
from utils.exceptions import FileHandlingError, MedExplainException
from utils.logging import log_session_event

logger = logging.getLogger(__name__)

# Create router for document endpoints
router = APIRouter(prefix="/documents", tags=["documents"])

# Import dependencies
from api.dependencies import OrchestratorDep, PDFProcessorDep


@router.post(
    "/",
    response_model=DocumentUploadResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Upload a PDF document for explanation",
    description="Extract the text of a PDF and start reformatting, translation and glossary generation",
    responses={
        400: {"model": ErrorResponse, "description": "Empty upload"},
        413: {"model": ErrorResponse, "description": "File exceeds the size limit"},
        415: {"model": ErrorResponse, "description": "Not a PDF"},
        422: {"model": ErrorResponse, "description": "The PDF could not be parsed or has no text"},
        503: {"model": ErrorResponse, "description": "AI Gateway credential is not configured"}
    }
)
async def upload_document(
    response: Response,
    background_tasks: BackgroundTasks,
    file: UploadFile = File(..., description="PDF file to explain"),
    wait: bool = Query(False, description="Wait for all transforms to settle before responding"),
    pdf_processor: PDFProcessorDep = None,
    orchestrator: OrchestratorDep = None
) -> DocumentUploadResponse:
    """
    Upload a PDF and start a new processing cycle.

    The previous document's results are cleared before any AI request is made.
    By default the transforms run in the background and the session endpoints
    show their progress; with ``wait=true`` the response carries the settled
    session.

    Args:
        file: The uploaded PDF
        wait: Whether to wait for the transforms to settle

    Returns:
        DocumentUploadResponse with the new cycle id and document metadata
    """
    start_time = time.time()

    try:
        content = await file.read()

        try:
            # pdfplumber is blocking
            extracted = await asyncio.to_thread(
                pdf_processor.process_pdf, content, file.filename, file.content_type
            )
        except FileHandlingError as e:
            log_session_event(
                "upload_rejected",
                level=logging.WARNING,
                reason=e.error_code.value,
                upload_filename=file.filename,
                content_type=file.content_type
            )
            raise

        cycle = orchestrator.begin(extracted.text, extracted.info)
        logger.info(f"Started cycle {cycle} for {file.filename} ({extracted.info.page_count} pages)")

        session = None
        if wait:
            settled = await orchestrator.run_cycle(cycle, extracted.text)
            session = SessionResponse.from_session(settled)
            response.status_code = status.HTTP_200_OK
            message = "Document processed"
        else:
            background_tasks.add_task(orchestrator.run_cycle, cycle, extracted.text)
            message = "Document accepted for processing"

        return DocumentUploadResponse(
            message=message,
            cycle=cycle,
            document=extracted.info,
            processing_time_ms=int((time.time() - start_time) * 1000),
            session=session
        )

    except MedExplainException:
        # Mapped to a status code by the application exception handler
        raise

    except Exception as e:
        logger.error(f"Unexpected error in document upload: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": {
                    "code": "INTERNAL_SERVER_ERROR",
                    "message": "An unexpected error occurred while processing the document",
                    "details": {"error_type": type(e).__name__},
                    "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
                }
            }
        )
