"""
Question answering controller for the Medical Document Explainer REST API
"""
import logging
import time
from fastapi import APIRouter, HTTPException, status
from fastapi.responses import JSONResponse

from models.api import ErrorResponse, QuestionRequest, QuestionResponse
from services.markdown_renderer import render_html, render_sources_html
from utils.exceptions import MedExplainException


logger = logging.getLogger(__name__)

# Create router for question endpoints
router = APIRouter(prefix="/question", tags=["questions"])

# Import dependencies
from api.dependencies import QAManagerDep, SessionStoreDep, GatewayAvailabilityDep


@router.post(
    "/",
    response_model=QuestionResponse,
    status_code=status.HTTP_200_OK,
    summary="Ask a question about the current document",
    description="Answer a question grounded in the uploaded document, citing web sources when search was used",
    responses={
        409: {"model": ErrorResponse, "description": "No document loaded, or an answer is still pending"},
        422: {"model": ErrorResponse, "description": "Blank question"},
        503: {"model": ErrorResponse, "description": "AI Gateway credential is not configured"}
    }
)
async def ask_question(
    request: QuestionRequest,
    qa_manager: QAManagerDep = None
) -> QuestionResponse:
    """
    Answer a question about the current document.

    A failed answer still returns 200: the transcript gains an error entry
    and ``error`` carries the top-level message.

    Args:
        request: QuestionRequest containing the question

    Returns:
        QuestionResponse with the newest answer and the full transcript

    Raises:
        HTTPException: For unexpected failures (500); configuration and
            validation errors are mapped by the application handlers
    """
    try:
        logger.info(f"Processing question: {request.question[:100]}...")
        session = await qa_manager.ask(request.question)

        answer = session.transcript[-1] if session.transcript and session.transcript[-1].is_bot else None
        answer_html = ""
        if answer is not None:
            answer_html = render_html(answer.answer, container_class="qa-answer") + render_sources_html(answer.sources)

        return QuestionResponse(
            answer=answer,
            answer_html=answer_html,
            transcript=list(session.transcript),
            error=session.error
        )

    except MedExplainException:
        raise

    except Exception as e:
        logger.error(f"Unexpected error in question processing: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": {
                    "code": "INTERNAL_SERVER_ERROR",
                    "message": "An unexpected error occurred while processing the question",
                    "details": {"error_type": type(e).__name__},
                    "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
                }
            }
        )


@router.get(
    "/health",
    summary="Check question service health",
    description="Check if questions can currently be answered"
)
async def check_question_health(
    store: SessionStoreDep = None,
    availability: GatewayAvailabilityDep = None
):
    """
    Check whether a question could be answered right now.

    Returns:
        Health status information
    """
    session = store.current
    health_status = {
        "service_ready": availability.available and session.has_document,
        "gateway_available": availability.available,
        "document_loaded": session.has_document,
        "answer_in_progress": session.is_loading_answer,
        "transcript_length": len(session.transcript),
        "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
    }

    if health_status["service_ready"]:
        status_code = status.HTTP_200_OK
        health_status["status"] = "healthy"
        health_status["message"] = "Questions can be answered"
    else:
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        health_status["status"] = "unhealthy"
        if not availability.available:
            health_status["message"] = availability.reason
        else:
            health_status["message"] = "Please process a document before asking questions."

    return JSONResponse(status_code=status_code, content=health_status)
