"""
Service layer for the Medical Document Explainer
"""
from .pdf_processor import PDFProcessor
from .ai_gateway import AIGateway, AnswerResult, PromptTemplate, parse_glossary_payload, extract_sources
from .highlighter import highlight, PlainSegment, TermMatch, segments_to_text
from .markdown_renderer import MarkdownRenderer, RenderedView, TermEvent, TermNode, render, render_html
from .session_store import SessionStore
from .document_orchestrator import DocumentOrchestrator
from .qa_manager import QAManager
from .report_composer import ReportComposer, Report, ReportSection

__all__ = [
    'PDFProcessor',
    'AIGateway', 'AnswerResult', 'PromptTemplate', 'parse_glossary_payload', 'extract_sources',
    'highlight', 'PlainSegment', 'TermMatch', 'segments_to_text',
    'MarkdownRenderer', 'RenderedView', 'TermEvent', 'TermNode', 'render', 'render_html',
    'SessionStore',
    'DocumentOrchestrator',
    'QAManager',
    'ReportComposer', 'Report', 'ReportSection'
]
