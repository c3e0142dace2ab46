"""
AI Gateway for the Medical Document Explainer using OpenRouter

Exposes the four document operations (reformat, translate, extract-glossary,
answer-question) over an OpenRouter-compatible chat completions endpoint.
Every foreign failure is converted into ``TransformError`` before it leaves
this module.
"""
import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from config import settings
from models.document import GlossaryTerm
from models.question import Source
from utils.error_handlers import log_performance_metric
from utils.exceptions import (
    ErrorCode,
    GlossaryParseError,
    TransformError,
    create_missing_credential_error,
)

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?\s*```$", re.DOTALL)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")


@dataclass
class AnswerResult:
    """Answer text plus any web citations the model used"""
    text: str
    sources: Optional[List[Source]] = None


class PromptTemplate:
    """Prompts for each gateway operation"""

    REFORMAT_TEMPLATE = """Reformat the following medical text to improve its readability. Focus on adding appropriate paragraph breaks, list formatting if applicable, and improving overall structure.
DO NOT change any of the original wording, medical terms, or meaning. Return only the reformatted text.

Original Text:
---
{text}
---

Reformatted Text:"""

    TRANSLATE_TEMPLATE = """Translate the following medical text into plain, easy-to-understand language for a layperson. Aim for clarity and simplicity, avoiding jargon where possible or explaining it if essential.

Medical Text:
---
{text}
---

Plain Language Translation:"""

    GLOSSARY_TEMPLATE = """Analyze the following medical text. Identify key medical terms that a non-medical person would likely find confusing. For each term, provide a concise, easy-to-understand definition. Return the result as a JSON array of objects, where each object has a "term" (string) and "definition" (string) field. If no specific medical terms requiring explanation are found, return an empty array.

Medical Text:
---
{text}
---
"""

    ANSWER_SYSTEM_PROMPT = """You are an AI assistant designed to help users understand medical information.
You have access to the following medical document provided by the user:
--- START OF DOCUMENT ---
{document}
--- END OF DOCUMENT ---

Your tasks are:
1. Answer the user's question: "{question}".
2. Base your answer primarily on the content of the provided medical document.
3. If the document does not contain the answer, or only partially answers it, use your general medical knowledge and web search to provide a comprehensive and accurate response.
4. If you use any medical terms, conditions, or procedures, briefly explain them in simple, easy-to-understand language.
5. If web search is used, cite your sources clearly. If no search is used, do not invent sources."""


def parse_glossary_payload(payload: Optional[str]) -> List[GlossaryTerm]:
    """
    Parse a glossary response into terms.

    Accepts a bare JSON array or one wrapped in a ``` / ```json fence, and
    tolerates trailing commas before closing brackets. A blank payload or an
    empty array is a valid empty glossary.

    Args:
        payload: Raw text returned by the model

    Returns:
        Terms in the order the model returned them

    Raises:
        GlossaryParseError: If the payload is not a JSON array of
            objects with string ``term`` and ``definition`` fields
    """
    text = (payload or "").strip()
    match = _FENCE.match(text)
    if match and match.group(1):
        text = match.group(1).strip()

    if not text:
        return []

    text = _TRAILING_COMMA.sub(r"\1", text)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse glossary JSON: {e}")
        raise GlossaryParseError(
            message="AI returned glossary in an unexpected format. Could not parse JSON.",
            raw_text=payload,
            original_exception=e
        )

    if not isinstance(data, list):
        logger.warning(f"Parsed glossary is not an array: {type(data).__name__}")
        raise GlossaryParseError(
            message="AI returned glossary data that is not an array.",
            raw_text=payload
        )

    terms: List[GlossaryTerm] = []
    for item in data:
        if not (isinstance(item, dict)
                and isinstance(item.get("term"), str)
                and isinstance(item.get("definition"), str)):
            logger.warning(f"Parsed glossary has an item with invalid structure: {item!r}")
            raise GlossaryParseError(
                message="AI returned glossary data with invalid item structure.",
                raw_text=payload
            )
        terms.append(GlossaryTerm(term=item["term"], definition=item["definition"]))

    return terms


def extract_sources(message: Dict[str, Any]) -> Optional[List[Source]]:
    """
    Collect URL citations from a chat completion message.

    Returns:
        Sources in annotation order, or None when the model cited nothing
    """
    annotations = message.get("annotations") or []
    sources: List[Source] = []
    for annotation in annotations:
        if not isinstance(annotation, dict) or annotation.get("type") != "url_citation":
            continue
        citation = annotation.get("url_citation") or {}
        uri = citation.get("url")
        if not isinstance(uri, str) or not uri:
            continue
        title = citation.get("title")
        sources.append(Source(uri=uri, title=title if isinstance(title, str) else ""))

    return sources or None


class AIGateway:
    """Client for the LLM operations behind the document views and Q&A"""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None,
                 base_url: Optional[str] = None, timeout: Optional[float] = None):
        """
        Initialize the gateway

        Args:
            api_key: OpenRouter API key (if None, will use settings.openrouter_api_key)
            model: Model to use (if None, will use settings.llm_model)
            base_url: Chat completions URL (if None, will use settings.llm_base_url)
            timeout: Request timeout in seconds
        """
        self.api_key = api_key or settings.openrouter_api_key
        self.model = model or settings.llm_model
        self.base_url = base_url or settings.llm_base_url
        self.timeout = timeout or settings.request_timeout_seconds
        self.enable_web_search = settings.enable_web_search
        self.web_search_max_results = settings.web_search_max_results

        if self.api_key:
            logger.info(f"AI Gateway initialized with model: {self.model}")
        else:
            logger.warning("No OpenRouter API key provided, AI Gateway unavailable")

    def _chat(self, operation: str, messages: List[Dict[str, str]], temperature: float,
              extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Call the chat completions endpoint and return the first message

        Args:
            operation: Operation name used in errors and metrics
            messages: Chat messages
            temperature: Sampling temperature
            extra: Additional payload fields

        Returns:
            The ``choices[0].message`` object of the response
        """
        if not self.api_key:
            raise create_missing_credential_error()

        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
        }
        if extra:
            payload.update(extra)

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Title": settings.app_name
        }

        try:
            start_time = time.time()
            response = requests.post(
                url=self.base_url,
                headers=headers,
                data=json.dumps(payload),
                timeout=self.timeout
            )

            duration_ms = int((time.time() - start_time) * 1000)
            log_performance_metric("llm_api_call", duration_ms, {"model": self.model, "operation": operation})

            if response.status_code == 200:
                response_data = response.json()
                choices = response_data.get("choices") or []
                if not choices or not isinstance(choices[0].get("message"), dict):
                    raise TransformError(
                        message="AI response contained no message",
                        operation=operation,
                        model_name=self.model
                    )
                return choices[0]["message"]

            error_data = response.json() if response.headers.get("content-type", "").startswith("application/json") else {}
            error_message = (error_data.get("error") or {}).get("message", f"HTTP {response.status_code}")

            if response.status_code == 429:
                logger.error(f"Rate limit exceeded: {error_message}")
                raise TransformError(
                    message="Rate limit exceeded for AI service. Please try again later.",
                    operation=operation,
                    model_name=self.model,
                    error_code=ErrorCode.LLM_RATE_LIMIT
                )
            elif response.status_code == 401:
                logger.error(f"Authentication error: {error_message}")
                raise TransformError(
                    message="AI service authentication failed. Please check the OpenRouter API key configuration.",
                    operation=operation,
                    model_name=self.model,
                    error_code=ErrorCode.LLM_SERVICE_UNAVAILABLE
                )
            else:
                logger.error(f"OpenRouter API error: {error_message}")
                raise TransformError(
                    message=f"AI service API error: {error_message}",
                    operation=operation,
                    model_name=self.model
                )

        except requests.exceptions.Timeout as e:
            logger.error(f"API timeout during {operation}: {e}")
            raise TransformError(
                message="AI service request timed out. Please try again.",
                operation=operation,
                model_name=self.model,
                error_code=ErrorCode.LLM_TIMEOUT,
                original_exception=e
            )
        except requests.exceptions.ConnectionError as e:
            logger.error(f"Connection error during {operation}: {e}")
            raise TransformError(
                message="Failed to connect to AI service. Please check your internet connection.",
                operation=operation,
                model_name=self.model,
                error_code=ErrorCode.LLM_SERVICE_UNAVAILABLE,
                original_exception=e
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Request error during {operation}: {e}")
            raise TransformError(
                message=f"AI service request failed: {e}",
                operation=operation,
                model_name=self.model,
                original_exception=e
            )
        except ValueError as e:
            # json.JSONDecodeError is a ValueError
            logger.error(f"Invalid response during {operation}: {e}")
            raise TransformError(
                message="Invalid response from AI service.",
                operation=operation,
                model_name=self.model,
                original_exception=e
            )

    @staticmethod
    def _content(message: Dict[str, Any]) -> Optional[str]:
        content = message.get("content")
        return content if isinstance(content, str) else None

    def reformat(self, text: str) -> str:
        """
        Restructure text into paragraphs and lists without changing its wording

        Returns:
            The reformatted text, or the input when the model returns nothing
        """
        prompt = PromptTemplate.REFORMAT_TEMPLATE.format(text=text)
        message = self._chat("reformat", [{"role": "user", "content": prompt}],
                             temperature=settings.reformat_temperature)
        return self._content(message) or text

    def translate(self, text: str) -> str:
        """Rewrite text in plain language for a layperson"""
        prompt = PromptTemplate.TRANSLATE_TEMPLATE.format(text=text)
        message = self._chat("translate", [{"role": "user", "content": prompt}],
                             temperature=settings.translate_temperature)
        return self._content(message) or ""

    def extract_glossary(self, text: str) -> List[GlossaryTerm]:
        """
        Identify medical terms in text and define them

        Raises:
            GlossaryParseError: If the response is not a valid glossary
        """
        prompt = PromptTemplate.GLOSSARY_TEMPLATE.format(text=text)
        message = self._chat("glossary", [{"role": "user", "content": prompt}],
                             temperature=settings.glossary_temperature)
        terms = parse_glossary_payload(self._content(message))
        logger.info(f"Glossary generated with {len(terms)} terms")
        return terms

    def answer_question(self, question: str, document_text: str) -> AnswerResult:
        """
        Answer a question grounded in the document, using web search when enabled

        Args:
            question: The user's question
            document_text: Raw extracted text of the document

        Returns:
            AnswerResult with the answer and any cited sources
        """
        system_prompt = PromptTemplate.ANSWER_SYSTEM_PROMPT.format(document=document_text, question=question)
        extra = None
        if self.enable_web_search:
            extra = {"plugins": [{"id": "web", "max_results": self.web_search_max_results}]}

        message = self._chat(
            "answer",
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": question}
            ],
            temperature=settings.answer_temperature,
            extra=extra
        )
        return AnswerResult(text=self._content(message) or "", sources=extract_sources(message))

    def is_available(self) -> bool:
        """Check if the gateway has a credential"""
        return bool(self.api_key)

    def get_model_info(self) -> Dict[str, str]:
        """Get information about the configured model"""
        return {
            "model": self.model,
            "web_search": str(self.enable_web_search),
            "available": str(self.is_available())
        }
