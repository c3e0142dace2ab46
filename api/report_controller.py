"""
Printable report controller for the Medical Document Explainer REST API
"""
import logging
from typing import Optional
from fastapi import APIRouter, Query, status
from fastapi.responses import HTMLResponse

from config import settings
from models.session import PrintSelections

logger = logging.getLogger(__name__)

# Create router for report endpoints
router = APIRouter(prefix="/report", tags=["report"])

# Import dependencies
from api.dependencies import ReportComposerDep, SessionStoreDep


@router.post(
    "",
    response_class=HTMLResponse,
    status_code=status.HTTP_200_OK,
    summary="Compose a printable report",
    description="Assemble the selected sections into an HTML page that opens the print dialog"
)
async def create_report(
    selections: Optional[PrintSelections] = None,
    auto_print: bool = Query(True, description="Open the print dialog once the page has loaded"),
    store: SessionStoreDep = None,
    composer: ReportComposerDep = None
) -> HTMLResponse:
    """
    Compose a printable report for the current session.

    Args:
        selections: Sections to include (all by default)
        auto_print: Whether the page triggers the print dialog after a short delay

    Returns:
        HTML page containing the report
    """
    report = composer.compose(store.current, selections or PrintSelections())
    delay = settings.print_delay_ms if auto_print else None
    return HTMLResponse(content=report.to_html(auto_print_delay_ms=delay))
