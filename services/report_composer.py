"""
Printable report composition for the Medical Document Explainer

Builds a static HTML document from the current session and the user's print
selections. Sections always appear in the order original, translation,
glossary, questions and answers.
"""
import html
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from config import settings
from models.document import GlossaryTerm
from models.question import QAPair
from models.session import DocumentSession, PrintSelections
from services.markdown_renderer import render_html, render_sources_html

logger = logging.getLogger(__name__)

NO_CONTENT_MESSAGE = "No content selected for the report."
DISCLAIMER = (
    "This information is for general knowledge only and should not be considered medical advice. "
    "Please consult with a healthcare professional for any medical concerns."
)

REPORT_STYLES = """
.page-break-before { page-break-before: always; break-before: page; }
.page-break-avoid { page-break-inside: avoid; break-inside: avoid; }
.report-original { white-space: pre-wrap; font-family: monospace; }
"""


@dataclass
class ReportSection:
    key: str
    heading: str
    body_html: str


@dataclass
class Report:
    """A composed, printable report"""
    title: str
    generated_at: datetime
    sections: List[ReportSection] = field(default_factory=list)
    disclaimer: str = DISCLAIMER

    @property
    def is_empty(self) -> bool:
        return not self.sections

    @property
    def section_keys(self) -> List[str]:
        return [section.key for section in self.sections]

    def body_html(self) -> str:
        """The printable area without the surrounding page"""
        date = f"{self.generated_at:%B} {self.generated_at.day}, {self.generated_at.year}"
        parts = [
            f"<h1>{html.escape(self.title)}</h1>",
            f"<p><em>Date Generated: {date}</em></p>",
        ]
        for section in self.sections:
            parts.append(
                f'<section class="print-section page-break-before" data-section="{section.key}">'
                f"<h2>{html.escape(section.heading)}</h2>{section.body_html}</section>"
            )
        if self.is_empty:
            parts.append(f'<p class="report-placeholder">{NO_CONTENT_MESSAGE}</p>')
        parts.append(
            '<footer class="print-disclaimer page-break-avoid">'
            f"<p><strong>Disclaimer:</strong> {html.escape(self.disclaimer)}</p></footer>"
        )
        return f'<div id="printable-area">{"".join(parts)}</div>'

    def to_html(self, auto_print_delay_ms: Optional[int] = None) -> str:
        """
        Full HTML page for the report.

        Args:
            auto_print_delay_ms: When set, the page opens the print dialog after
                this many milliseconds so layout can finish first
        """
        script = ""
        if auto_print_delay_ms is not None:
            delay = max(int(auto_print_delay_ms), 0)
            script = f"<script>window.addEventListener('load', function () {{ setTimeout(function () {{ window.print(); }}, {delay}); }});</script>"
        return (
            "<!DOCTYPE html>"
            '<html lang="en"><head><meta charset="utf-8">'
            f"<title>{html.escape(self.title)}</title>"
            f"<style>{REPORT_STYLES}</style>"
            f"</head><body>{self.body_html()}{script}</body></html>"
        )


def _render_glossary(glossary: Sequence[GlossaryTerm]) -> str:
    return "".join(
        f'<div class="glossary-item-print"><h4>{html.escape(term.term)}</h4>'
        f"<p>{html.escape(term.definition)}</p></div>"
        for term in glossary
    )


def _render_transcript(transcript: Sequence[QAPair]) -> str:
    parts = []
    for pair in transcript:
        if pair.is_bot:
            parts.append(
                '<div class="qa-pair-print">'
                f'<p><strong>Answered (re: "{html.escape(pair.question)}"):</strong></p>'
                f"{render_html(pair.answer, container_class='prose-print-qa')}"
                f"{render_sources_html(pair.sources, css_class='print-sources')}</div>"
            )
        else:
            parts.append(
                '<div class="qa-pair-print">'
                f"<p><strong>You asked:</strong> {html.escape(pair.question)}</p></div>"
            )
    return "".join(parts)


class ReportComposer:
    """Assembles the printable report from a session snapshot"""

    def __init__(self, title: Optional[str] = None):
        self.title = title or settings.report_title

    def compose(self, session: DocumentSession, selections: PrintSelections,
                generated_at: Optional[datetime] = None) -> Report:
        """
        Compose a report.

        Args:
            session: Snapshot to report on
            selections: Which sections to include
            generated_at: Timestamp shown in the report (defaults to now)

        Returns:
            Report containing each selected section that has content
        """
        report = Report(title=self.title, generated_at=generated_at or datetime.now())

        if selections.include_original and session.raw_text:
            report.sections.append(ReportSection(
                key="original",
                heading="Original Document Text",
                body_html=f'<pre class="report-original">{html.escape(session.raw_text)}</pre>'
            ))

        if selections.include_translation and session.translated_text:
            report.sections.append(ReportSection(
                key="translation",
                heading="Plain Language Translation",
                body_html=render_html(session.translated_text, container_class="prose-print")
            ))

        if selections.include_glossary and session.glossary:
            report.sections.append(ReportSection(
                key="glossary",
                heading="Glossary of Medical Terms",
                body_html=_render_glossary(session.glossary)
            ))

        if selections.include_qa and session.transcript:
            report.sections.append(ReportSection(
                key="qa",
                heading="Questions & Answers",
                body_html=_render_transcript(session.transcript)
            ))

        logger.info(f"Composed report with sections: {report.section_keys or 'none'}")
        return report
