"""
Question and answer session manager for the Medical Document Explainer
"""
import asyncio
import logging
import time

from models.question import QAPair
from models.session import DocumentSession, GatewayAvailability
from services.ai_gateway import AIGateway
from services.session_store import SessionStore
from utils.error_handlers import log_performance_metric
from utils.exceptions import (
    ConfigurationError,
    ErrorCode,
    ValidationError,
    create_no_document_error,
    describe_error,
)
from utils.logging import cycle_context, log_session_event

logger = logging.getLogger(__name__)

ANSWER_CANCELLED = "the answer request was cancelled"


class QAManager:
    """
    Keeps the append-only question/answer transcript of the current document.

    Questions are always answered against the raw extracted text, never the
    reformatted or translated variants.
    """

    def __init__(self, gateway: AIGateway, store: SessionStore, availability: GatewayAvailability):
        self.gateway = gateway
        self.store = store
        self.availability = availability

    async def ask(self, question: str) -> DocumentSession:
        """
        Ask a question about the current document.

        A failed answer is recorded as an error entry in the transcript and as
        the session error; it is not raised.

        Args:
            question: The user's question

        Returns:
            The session snapshot after the answer (or error) was appended

        Raises:
            ConfigurationError: If the AI Gateway credential is missing
            ValidationError: If the question is blank, no document is loaded,
                or another answer is still in flight
            asyncio.CancelledError: If the caller is cancelled; the turn is
                closed with an error entry first
        """
        if not self.availability.available:
            self.store.apply(lambda s: s.update(error=self.availability.reason))
            raise ConfigurationError(self.availability.reason, setting_name="openrouter_api_key")

        question = (question or "").strip()
        if not question:
            raise ValidationError("Question cannot be empty", field_name="question")

        session = self.store.current
        if not session.has_document:
            error = create_no_document_error()
            self.store.apply(lambda s: s.update(error=error.message))
            raise error

        if session.is_loading_answer:
            raise ValidationError(
                "Please wait for the current answer before asking another question.",
                field_name="question",
                error_code=ErrorCode.ANSWER_IN_PROGRESS
            )

        cycle = session.cycle
        raw_text = session.raw_text
        self.store.apply(
            lambda s: s.append_pair(QAPair.user(question)).update(error=None, is_loading_answer=True),
            cycle=cycle
        )
        log_session_event("question_asked", cycle=cycle, characters=len(question))

        start_time = time.time()
        with cycle_context(cycle):
            try:
                result = await asyncio.to_thread(self.gateway.answer_question, question, raw_text)
                self._record(cycle, QAPair.bot(question, result.text, result.sources))
                log_session_event("answer_recorded", cycle=cycle, sources=len(result.sources or []))
            except asyncio.CancelledError:
                # is_loading_answer must not outlive the request
                self._record(
                    cycle,
                    QAPair.error(question, ANSWER_CANCELLED),
                    error=f"Failed to get answer: {ANSWER_CANCELLED}"
                )
                log_session_event("answer_cancelled", level=logging.WARNING, cycle=cycle)
                raise
            except Exception as e:
                message = describe_error(e)
                logger.error(f"Q&A failed: {message}")
                self._record(cycle, QAPair.error(question, message), error=f"Failed to get answer: {message}")
                log_session_event("answer_failed", level=logging.WARNING, cycle=cycle)

            duration_ms = int((time.time() - start_time) * 1000)
            log_performance_metric("question_answering", duration_ms, {"cycle": cycle})
        return self.store.current

    def _record(self, cycle: int, pair: QAPair, **changes) -> None:
        written = self.store.apply(
            lambda s: s.append_pair(pair).update(is_loading_answer=False, **changes),
            cycle=cycle
        )
        if written is None:
            log_session_event("stale_answer_dropped", level=logging.DEBUG, cycle=cycle)
