"""
Session view controller for the Medical Document Explainer REST API
"""
import logging
from typing import List, Optional
from fastapi import APIRouter, status

from models.api import (
    ComparisonViewResponse,
    SessionResponse,
    TermActivationRequest,
    TermActivationResponse,
)
from models.document import GlossaryTerm
from services.markdown_renderer import TermEvent, render

logger = logging.getLogger(__name__)

# Create router for session endpoints
router = APIRouter(prefix="/session", tags=["session"])

# Import dependencies
from api.dependencies import SessionStoreDep

NO_TERMS_MESSAGE = "No specific medical terms requiring explanation were identified in this document."


def log_term_activation(term: GlossaryTerm) -> None:
    logger.debug(f"Glossary term activated: {term.term}")


@router.get(
    "",
    response_model=SessionResponse,
    summary="Get the current session",
    description="Return the current snapshot, including loading flags and accumulated errors"
)
async def get_session(store: SessionStoreDep = None) -> SessionResponse:
    return SessionResponse.from_session(store.current)


@router.get(
    "/view",
    response_model=ComparisonViewResponse,
    summary="Get the side-by-side comparison view",
    description="Render both document panes with glossary terms highlighted once they are available"
)
async def get_comparison_view(store: SessionStoreDep = None) -> ComparisonViewResponse:
    """
    Render the comparison view for the current session.

    Both panes are only rendered once the displayed original text and the
    translation are available. The glossary is returned as soon as it arrives.
    """
    session = store.current
    glossary: Optional[List[GlossaryTerm]] = list(session.glossary) if session.glossary is not None else None

    original_html = None
    translated_html = None
    if session.comparison_ready:
        original_html = render(session.displayed_original_text, glossary, log_term_activation).to_html("comparison-original")
        translated_html = render(session.translated_text, glossary, log_term_activation).to_html("comparison-translated")

    glossary_message = None
    if glossary is not None and not glossary and not session.is_loading_glossary:
        glossary_message = NO_TERMS_MESSAGE

    return ComparisonViewResponse(
        comparison_ready=session.comparison_ready,
        original_html=original_html,
        translated_html=translated_html,
        glossary=glossary,
        glossary_message=glossary_message
    )


@router.post(
    "/view/activate",
    response_model=TermActivationResponse,
    status_code=status.HTTP_200_OK,
    summary="Activate a highlighted term",
    description="Dispatch a click or keypress to a highlighted term and return its definition"
)
async def activate_term(request: TermActivationRequest, store: SessionStoreDep = None) -> TermActivationResponse:
    """
    Dispatch an interaction to the first highlighted occurrence of a term.

    Returns:
        TermActivationResponse with the definition when the interaction
        activated the term
    """
    session = store.current
    text = session.displayed_original_text if request.pane == "original" else session.translated_text
    activated: List[GlossaryTerm] = []

    view = render(text or "", session.glossary, activated.append)
    wanted = request.term.strip().lower()
    event = TermEvent(type=request.event_type, key=request.key)

    for node in view.terms():
        if node.text.lower() == wanted or (node.term is not None and node.term.term.lower() == wanted):
            node.handle_event(event)
            break

    if activated:
        log_term_activation(activated[0])

    return TermActivationResponse(
        activated=bool(activated),
        term=activated[0] if activated else None,
        propagation_stopped=event.propagation_stopped
    )
