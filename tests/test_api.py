"""
Tests for the REST API endpoints
"""
import pytest
from fastapi.testclient import TestClient
from unittest.mock import Mock

from main import app
from api.dependencies import (
    get_gateway_availability,
    get_orchestrator,
    get_pdf_processor,
    get_qa_manager,
    get_session_store,
)
from config import settings
from models.document import DocumentInfo, ExtractedDocument, GlossaryTerm
from models.question import Source
from models.session import GatewayAvailability
from services.ai_gateway import AnswerResult
from services.document_orchestrator import DocumentOrchestrator
from services.pdf_processor import PDFProcessor
from services.qa_manager import QAManager
from services.session_store import SessionStore

RAW_TEXT = "Diagnosis: hypertension. Follow up in two weeks."


@pytest.fixture
def mock_gateway():
    gateway = Mock()
    gateway.reformat.return_value = "## Diagnosis\n\nHypertension. Follow up in two weeks."
    gateway.translate.return_value = "You have hypertension, which means high blood pressure."
    gateway.extract_glossary.return_value = [GlossaryTerm(term="hypertension", definition="High blood pressure.")]
    gateway.answer_question.return_value = AnswerResult(
        text="It means **high** blood pressure.",
        sources=[Source(uri="https://a.com/bp", title="Blood pressure"), Source(uri="https://b.com/x", title="")]
    )
    return gateway


@pytest.fixture
def mock_pdf_processor():
    processor = Mock()
    processor.process_pdf.return_value = ExtractedDocument(
        text=RAW_TEXT,
        info=DocumentInfo(filename="labs.pdf", page_count=1, language="en", character_count=len(RAW_TEXT))
    )
    return processor


@pytest.fixture
def store():
    return SessionStore()


@pytest.fixture
def client(mock_gateway, mock_pdf_processor, store):
    """Test client wired to mocked external collaborators"""
    availability = GatewayAvailability(available=True)
    app.dependency_overrides[get_gateway_availability] = lambda: availability
    app.dependency_overrides[get_session_store] = lambda: store
    app.dependency_overrides[get_pdf_processor] = lambda: mock_pdf_processor
    app.dependency_overrides[get_orchestrator] = lambda: DocumentOrchestrator(mock_gateway, store, availability)
    app.dependency_overrides[get_qa_manager] = lambda: QAManager(mock_gateway, store, availability)

    yield TestClient(app)

    app.dependency_overrides.clear()


def upload(client, wait=True, filename="labs.pdf", content=b"%PDF-1.4 test", content_type="application/pdf"):
    return client.post(
        "/documents/",
        params={"wait": str(wait).lower()},
        files={"file": (filename, content, content_type)}
    )


class TestDocumentEndpoints:
    """Test document upload and processing"""

    def test_upload_and_wait(self, client, mock_gateway):
        """Test that waiting returns the settled session"""
        response = upload(client, wait=True)

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Document processed"
        assert data["cycle"] == 1
        assert data["document"]["filename"] == "labs.pdf"
        assert data["session"]["translated_text"].startswith("You have hypertension")
        assert data["session"]["glossary"] == [{"term": "hypertension", "definition": "High blood pressure."}]
        assert data["session"]["comparison_ready"] is True
        assert data["session"]["error"] is None

    def test_upload_in_background(self, client, store):
        """Test that background processing is visible through the session endpoint"""
        response = upload(client, wait=False)

        assert response.status_code == 202
        assert response.json()["message"] == "Document accepted for processing"
        assert response.json()["session"] is None

        session = client.get("/session").json()
        assert session["has_document"] is True
        assert session["is_processing"] is False
        assert session["displayed_original_text"].startswith("## Diagnosis")

    def test_new_upload_starts_new_cycle(self, client):
        """Test that each upload gets a new cycle and a cleared transcript"""
        upload(client)
        client.post("/question/", json={"question": "What is hypertension?"})

        data = upload(client).json()

        assert data["cycle"] == 2
        assert data["session"]["transcript"] == []

    def test_partial_failure(self, client, mock_gateway):
        """Test that a failed translation is reported alongside the other results"""
        mock_gateway.translate.side_effect = RuntimeError("upstream closed")

        data = upload(client).json()

        assert data["session"]["error"] == "Failed to translate document: upstream closed"
        assert data["session"]["glossary"] is not None
        assert data["session"]["comparison_ready"] is False

    def test_invalid_file_type(self, client, mock_pdf_processor):
        """Test that non-PDF uploads are rejected with 415"""
        app.dependency_overrides[get_pdf_processor] = lambda: PDFProcessor(max_file_size=1024)

        response = upload(client, filename="notes.txt", content=b"hello", content_type="text/plain")

        assert response.status_code == 415
        data = response.json()
        assert data["error"]["code"] == "INVALID_FILE_TYPE"
        assert data["error"]["message"] == "Invalid file type 'text/plain'. Please upload a PDF file."

    def test_empty_file(self, client):
        """Test that empty uploads are rejected"""
        app.dependency_overrides[get_pdf_processor] = lambda: PDFProcessor(max_file_size=1024)

        response = upload(client, content=b"")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "EMPTY_FILE"

    def test_file_too_large(self, client):
        """Test that oversized uploads are rejected with 413"""
        app.dependency_overrides[get_pdf_processor] = lambda: PDFProcessor(max_file_size=4)

        response = upload(client, content=b"%PDF-1.4 too big")

        assert response.status_code == 413
        assert response.json()["error"]["code"] == "FILE_TOO_LARGE"

    def test_missing_file(self, client):
        """Test that a request without a file fails validation"""
        response = client.post("/documents/")

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_missing_credential(self, client, mock_gateway, store):
        """Test that uploads fail with 503 when no credential is configured"""
        unavailable = GatewayAvailability.from_api_key(None)
        app.dependency_overrides[get_orchestrator] = lambda: DocumentOrchestrator(mock_gateway, store, unavailable)

        response = upload(client)

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "LLM_SERVICE_UNAVAILABLE"
        assert "OPENROUTER_API_KEY" in response.json()["error"]["message"]
        mock_gateway.reformat.assert_not_called()


class TestSessionEndpoints:
    """Test the comparison view and term activation"""

    def test_view_before_processing(self, client):
        """Test that nothing is rendered before a document is processed"""
        data = client.get("/session/view").json()

        assert data["comparison_ready"] is False
        assert data["original_html"] is None
        assert data["translated_html"] is None

    def test_view_highlights_terms(self, client):
        """Test that both panes carry highlighted glossary terms"""
        upload(client)

        data = client.get("/session/view").json()

        assert data["comparison_ready"] is True
        assert data["original_html"].startswith('<div class="comparison-original">')
        assert 'class="glossary-term"' in data["translated_html"]
        assert data["glossary_message"] is None

    def test_view_with_empty_glossary(self, client, mock_gateway):
        """Test the message shown when no terms were found"""
        mock_gateway.extract_glossary.return_value = []
        upload(client)

        data = client.get("/session/view").json()

        assert data["glossary"] == []
        assert data["glossary_message"] == (
            "No specific medical terms requiring explanation were identified in this document."
        )
        assert "glossary-term" not in data["translated_html"]

    @pytest.mark.parametrize("event_type,key", [("click", None), ("keydown", "Enter"), ("keydown", " ")])
    def test_activate_term(self, client, event_type, key):
        """Test that click, Enter and Space return the definition"""
        upload(client)

        response = client.post("/session/view/activate", json={
            "term": "Hypertension", "pane": "translated", "event_type": event_type, "key": key
        })

        data = response.json()
        assert response.status_code == 200
        assert data["activated"] is True
        assert data["term"] == {"term": "hypertension", "definition": "High blood pressure."}
        assert data["propagation_stopped"] is True

    def test_other_keys_do_not_activate(self, client):
        """Test that unrelated keys are ignored"""
        upload(client)

        data = client.post("/session/view/activate", json={
            "term": "hypertension", "pane": "original", "event_type": "keydown", "key": "Tab"
        }).json()

        assert data["activated"] is False
        assert data["term"] is None
        assert data["propagation_stopped"] is False

    def test_heading_terms_cannot_be_activated(self, client, mock_gateway):
        """Test that terms appearing only in headings are not interactive"""
        mock_gateway.reformat.return_value = "# Hypertension\n\nFollow up in two weeks."
        upload(client)

        data = client.post("/session/view/activate", json={"term": "hypertension", "pane": "original"}).json()

        assert data["activated"] is False


class TestQuestionEndpoints:
    """Test question answering"""

    def test_ask_question(self, client, mock_gateway):
        """Test that an answer is returned with rendered sources"""
        upload(client)

        response = client.post("/question/", json={"question": "What is hypertension?"})

        assert response.status_code == 200
        data = response.json()
        assert data["answer"]["answer"] == "It means **high** blood pressure."
        assert [pair["is_bot"] for pair in data["transcript"]] == [False, True]
        assert '<strong class="md-strong">high</strong>' in data["answer_html"]
        assert ">b.com</a>" in data["answer_html"]
        mock_gateway.answer_question.assert_called_once_with("What is hypertension?", RAW_TEXT)

    def test_failed_answer_is_not_an_http_error(self, client, mock_gateway):
        """Test that a failed answer still returns the transcript and the error"""
        mock_gateway.answer_question.side_effect = RuntimeError("offline")
        upload(client)

        response = client.post("/question/", json={"question": "What is hypertension?"})

        assert response.status_code == 200
        data = response.json()
        assert data["answer"]["answer"] == "Error: offline"
        assert data["error"] == "Failed to get answer: offline"

    def test_question_without_document(self, client, mock_gateway):
        """Test that asking before uploading is a conflict"""
        response = client.post("/question/", json={"question": "What is hypertension?"})

        assert response.status_code == 409
        data = response.json()
        assert data["error"]["code"] == "NO_DOCUMENT_LOADED"
        assert data["error"]["message"] == "Please process a document before asking questions."
        mock_gateway.answer_question.assert_not_called()

    def test_blank_question(self, client):
        """Test that blank questions fail request validation"""
        response = client.post("/question/", json={"question": "   "})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        assert "field_errors" in response.json()["error"]["details"]

    def test_question_health(self, client):
        """Test question readiness before and after an upload"""
        assert client.get("/question/health").status_code == 503

        upload(client)

        assert client.get("/question/health").status_code == 200


class TestReportEndpoint:
    """Test printable report generation"""

    def test_report_with_all_sections(self, client):
        """Test that the report is an HTML page that prints itself"""
        upload(client)
        client.post("/question/", json={"question": "What is hypertension?"})

        response = client.post("/report")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        body = response.text
        for key in ["original", "translation", "glossary", "qa"]:
            assert f'data-section="{key}"' in body
        assert f"}}, {settings.print_delay_ms}); }});" in body

    def test_report_with_selections(self, client):
        """Test that only selected sections are printed"""
        upload(client)

        response = client.post("/report", params={"auto_print": "false"}, json={
            "include_original": False, "include_translation": True,
            "include_glossary": False, "include_qa": False
        })

        body = response.text
        assert 'data-section="translation"' in body
        assert 'data-section="original"' not in body
        assert "window.print" not in body

    def test_empty_report(self, client):
        """Test the placeholder when there is nothing to print"""
        body = client.post("/report").text

        assert "No content selected for the report." in body
        assert "Disclaimer:" in body


class TestHealthEndpoints:
    """Test application health endpoints"""

    def setup_method(self):
        """Set up test client"""
        self.client = TestClient(app)

    def teardown_method(self):
        app.dependency_overrides.clear()

    def _availability(self, availability):
        app.dependency_overrides[get_gateway_availability] = lambda: availability

    def test_health_endpoint(self):
        """Test basic health endpoint works"""
        response = self.client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == settings.app_version

    def test_readiness_without_credential(self):
        """Test that the service is not ready without a credential"""
        self._availability(GatewayAvailability.from_api_key(None))

        response = self.client.get("/health/ready")

        assert response.status_code == 503
        assert "OPENROUTER_API_KEY" in response.json()["message"]

    def test_readiness_with_credential(self):
        """Test that the service is ready with a credential"""
        self._availability(GatewayAvailability(available=True))

        assert self.client.get("/health/ready").status_code == 200

    def test_detailed_health_reports_gateway(self):
        """Test that a missing credential makes the system unhealthy"""
        self._availability(GatewayAvailability.from_api_key(None))
        app.dependency_overrides[get_session_store] = SessionStore

        response = self.client.get("/health/detailed")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "unhealthy"
        components = {c["name"]: c for c in data["components"]}
        assert components["ai_gateway"]["status"] == "unhealthy"
        assert components["session"]["status"] == "healthy"

    def test_detailed_health_degraded_session_is_served(self):
        """Test that a document with transform errors degrades but does not fail the check"""
        self._availability(GatewayAvailability(available=True))
        store = SessionStore()
        store.replace(store.current.update(raw_text="text", error="Failed to generate glossary: timeout"))
        app.dependency_overrides[get_session_store] = lambda: store

        response = self.client.get("/health/detailed")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"

    def test_liveness(self):
        """Test that liveness reports uptime"""
        data = self.client.get("/health/live").json()

        assert data["status"] == "alive"
        assert data["uptime_seconds"] >= 0

    def test_info_endpoint(self):
        """Test the application information endpoint"""
        data = self.client.get("/info").json()

        assert data["configuration"]["print_delay_ms"] == settings.print_delay_ms


class TestOpenAPISchema:
    """Test that documented error responses use the error envelope"""

    def setup_method(self):
        """Set up test client"""
        self.client = TestClient(app)

    @pytest.mark.parametrize("path,codes", [
        ("/documents/", {"400", "413", "415", "422", "503"}),
        ("/question/", {"409", "422", "503"}),
    ])
    def test_error_responses_documented(self, path, codes):
        """Test that the upload and question routes reference ErrorResponse"""
        schema = self.client.get("/openapi.json").json()
        responses = schema["paths"][path]["post"]["responses"]

        assert codes <= set(responses)
        for code in codes:
            ref = responses[code]["content"]["application/json"]["schema"]["$ref"]
            assert ref.endswith("/ErrorResponse")
