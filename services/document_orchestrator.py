"""
Document processing orchestrator for the Medical Document Explainer

Runs reformat, translate and glossary extraction concurrently for one
document. Each result lands in the session as soon as it arrives; failures
are collected and surfaced together once all three have settled. A cancelled
cycle still settles: every loading flag is cleared before the cancellation
propagates.
"""
import asyncio
import logging
import time
from typing import Any, Callable, List, Optional

from models.document import DocumentInfo
from models.session import DocumentSession, GatewayAvailability
from services.ai_gateway import AIGateway
from services.session_store import SessionStore
from utils.error_handlers import handle_service_degradation, log_performance_metric
from utils.exceptions import ConfigurationError, ValidationError, describe_error
from utils.logging import cycle_context, log_session_event

logger = logging.getLogger(__name__)

CANCELLED = "processing was cancelled"


class DocumentOrchestrator:
    """Fans one document out to the three AI transforms and merges the results"""

    def __init__(self, gateway: AIGateway, store: SessionStore, availability: GatewayAvailability):
        self.gateway = gateway
        self.store = store
        self.availability = availability

    def begin(self, raw_text: str, document: Optional[DocumentInfo] = None) -> int:
        """
        Start a new processing cycle, clearing every derived field.

        Args:
            raw_text: Extracted document text
            document: Metadata gathered during extraction

        Returns:
            The id of the new cycle

        Raises:
            ConfigurationError: If the AI Gateway credential is missing
            ValidationError: If the text is empty
        """
        if not self.availability.available:
            self.store.apply(lambda s: s.update(error=self.availability.reason))
            raise ConfigurationError(self.availability.reason, setting_name="openrouter_api_key")

        if not raw_text or not raw_text.strip():
            raise ValidationError("Document text is empty. Please upload a text-based PDF.", field_name="raw_text")

        cycle = self.store.next_cycle()
        self.store.replace(DocumentSession.start_cycle(cycle, raw_text, document))
        log_session_event("cycle_started", cycle=cycle, characters=len(raw_text))
        return cycle

    async def run_cycle(self, cycle: int, raw_text: str) -> DocumentSession:
        """
        Run the three transforms for a cycle started with ``begin``.

        Returns:
            The session snapshot after every transform has settled

        Raises:
            asyncio.CancelledError: If the caller is cancelled; the session is
                settled with the cancellation reported as the error
        """
        start_time = time.time()
        error_lines: List[str] = []

        with cycle_context(cycle):
            try:
                await asyncio.gather(
                    self._reformat(cycle, raw_text, error_lines),
                    self._translate(cycle, raw_text, error_lines),
                    self._glossary(cycle, raw_text, error_lines),
                )
            except asyncio.CancelledError:
                log_session_event("cycle_cancelled", level=logging.WARNING, cycle=cycle)
                raise
            finally:
                if error_lines:
                    combined = "\n".join(error_lines)
                    self.store.apply(lambda s: s.update(error=combined), cycle=cycle)

            duration_ms = int((time.time() - start_time) * 1000)
            log_session_event("cycle_settled", cycle=cycle, failures=len(error_lines))
            log_performance_metric("document_processing", duration_ms, {"cycle": cycle, "failures": len(error_lines)})
        return self.store.current

    async def process(self, raw_text: str, document: Optional[DocumentInfo] = None) -> DocumentSession:
        """Start a cycle and wait for it to settle"""
        cycle = self.begin(raw_text, document)
        return await self.run_cycle(cycle, raw_text)

    async def _call(self, operation: Callable[[str], Any], raw_text: str) -> Any:
        # Gateway calls block on HTTP, so they run in a worker thread
        return await asyncio.to_thread(operation, raw_text)

    def _settled(self, cycle: int, transform: str, **changes) -> None:
        if self.store.apply(lambda s: s.update(**changes), cycle=cycle) is None:
            log_session_event("stale_result_dropped", level=logging.DEBUG, cycle=cycle, transform=transform)

    async def _reformat(self, cycle: int, raw_text: str, error_lines: List[str]) -> None:
        try:
            result = await self._call(self.gateway.reformat, raw_text)
            self._settled(cycle, "reformat", reformatted_text=result, is_loading_reformat=False)
        except asyncio.CancelledError:
            self._settled(cycle, "reformat", reformatted_text=raw_text, is_loading_reformat=False)
            error_lines.append(f"Failed to reformat original document: {CANCELLED}")
            raise
        except Exception as e:
            handle_service_degradation("reformat", e)
            # Displayed text falls back to the raw text
            self._settled(cycle, "reformat", reformatted_text=raw_text, is_loading_reformat=False)
            error_lines.append(f"Failed to reformat original document: {describe_error(e)}")

    async def _translate(self, cycle: int, raw_text: str, error_lines: List[str]) -> None:
        try:
            result = await self._call(self.gateway.translate, raw_text)
            self._settled(cycle, "translate", translated_text=result, is_loading_translation=False)
        except asyncio.CancelledError:
            self._settled(cycle, "translate", is_loading_translation=False)
            error_lines.append(f"Failed to translate document: {CANCELLED}")
            raise
        except Exception as e:
            logger.error(f"Translation failed for cycle {cycle}: {describe_error(e)}")
            self._settled(cycle, "translate", is_loading_translation=False)
            error_lines.append(f"Failed to translate document: {describe_error(e)}")

    async def _glossary(self, cycle: int, raw_text: str, error_lines: List[str]) -> None:
        try:
            terms = await self._call(self.gateway.extract_glossary, raw_text)
            self._settled(cycle, "glossary", glossary=tuple(terms), is_loading_glossary=False)
        except asyncio.CancelledError:
            self._settled(cycle, "glossary", is_loading_glossary=False)
            error_lines.append(f"Failed to generate glossary: {CANCELLED}")
            raise
        except Exception as e:
            logger.error(f"Glossary generation failed for cycle {cycle}: {describe_error(e)}")
            self._settled(cycle, "glossary", is_loading_glossary=False)
            error_lines.append(f"Failed to generate glossary: {describe_error(e)}")
