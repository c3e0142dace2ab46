"""
Tests for printable report composition
"""
import pytest
from datetime import datetime

from models.document import GlossaryTerm
from models.question import QAPair, Source
from models.session import DocumentSession, PrintSelections
from services.report_composer import DISCLAIMER, NO_CONTENT_MESSAGE, ReportComposer

GENERATED_AT = datetime(2024, 3, 7, 9, 30)


@pytest.fixture
def full_session():
    # Populated in a different order than the report prints it
    return DocumentSession(cycle=1, raw_text="Dx: <hypertension>").update(
        transcript=(
            QAPair.user("What is it?"),
            QAPair.bot("What is it?", "**High** blood pressure.",
                       [Source(uri="https://a.com/x", title="A"), Source(uri="https://b.com/y", title="")]),
        ),
        glossary=(GlossaryTerm(term="hypertension", definition="High blood pressure."),),
        translated_text="You have *high* blood pressure.",
    )


@pytest.fixture
def composer():
    return ReportComposer(title="Medical Document Report")


class TestCompose:
    """Test section selection and ordering"""

    def test_all_sections_in_fixed_order(self, composer, full_session):
        """Test that sections always appear original, translation, glossary, Q&A"""
        report = composer.compose(full_session, PrintSelections(), GENERATED_AT)

        assert report.section_keys == ["original", "translation", "glossary", "qa"]

        output = report.body_html()
        positions = [output.index(f'data-section="{key}"') for key in report.section_keys]
        assert positions == sorted(positions)

    def test_each_section_starts_new_page(self, composer, full_session):
        """Test that every included section carries a page break"""
        output = composer.compose(full_session, PrintSelections(), GENERATED_AT).body_html()

        assert output.count('class="print-section page-break-before"') == 4

    def test_selections_filter_sections(self, composer, full_session):
        """Test that deselected sections are omitted"""
        selections = PrintSelections(include_original=False, include_glossary=False)

        report = composer.compose(full_session, selections, GENERATED_AT)

        assert report.section_keys == ["translation", "qa"]

    def test_empty_data_is_omitted(self, composer):
        """Test that selected sections without data are left out"""
        session = DocumentSession(cycle=1, raw_text="text only")

        report = composer.compose(session, PrintSelections(), GENERATED_AT)

        assert report.section_keys == ["original"]

    def test_no_sections_selected(self, composer, full_session):
        """Test that an empty report shows the placeholder and the disclaimer"""
        selections = PrintSelections(include_original=False, include_translation=False,
                                     include_glossary=False, include_qa=False)

        report = composer.compose(full_session, selections, GENERATED_AT)
        output = report.body_html()

        assert report.is_empty is True
        assert NO_CONTENT_MESSAGE in output
        assert DISCLAIMER in output

    def test_no_data_at_all(self, composer):
        """Test that an empty session also produces the placeholder"""
        output = composer.compose(DocumentSession(), PrintSelections(), GENERATED_AT).body_html()

        assert 'class="report-placeholder"' in output

    def test_disclaimer_always_present(self, composer, full_session):
        """Test that the disclaimer footer is appended to a full report"""
        output = composer.compose(full_session, PrintSelections(), GENERATED_AT).body_html()

        assert output.count(DISCLAIMER) == 1
        assert output.index("print-disclaimer") > output.index('data-section="qa"')


class TestSectionContent:
    """Test how each section is rendered"""

    def test_header(self, composer, full_session):
        """Test the title and generation date"""
        output = composer.compose(full_session, PrintSelections(), GENERATED_AT).body_html()

        assert "<h1>Medical Document Report</h1>" in output
        assert "Date Generated: March 7, 2024" in output

    def test_original_is_escaped_verbatim(self, composer, full_session):
        """Test that the raw text is printed escaped and unformatted"""
        output = composer.compose(full_session, PrintSelections(), GENERATED_AT).body_html()

        assert '<pre class="report-original">Dx: &lt;hypertension&gt;</pre>' in output

    def test_translation_is_rendered_without_highlighting(self, composer, full_session):
        """Test that markdown is rendered but glossary terms are not interactive"""
        output = composer.compose(full_session, PrintSelections(), GENERATED_AT).body_html()

        assert '<em class="md-em">high</em>' in output
        assert "glossary-term" not in output

    def test_glossary_entries(self, composer, full_session):
        """Test that glossary terms are printed with definitions"""
        output = composer.compose(full_session, PrintSelections(), GENERATED_AT).body_html()

        assert "<h4>hypertension</h4><p>High blood pressure.</p>" in output

    def test_transcript_with_sources(self, composer, full_session):
        """Test that questions, answers and titled sources are printed"""
        output = composer.compose(full_session, PrintSelections(), GENERATED_AT).body_html()

        assert "<strong>You asked:</strong> What is it?" in output
        assert 'Answered (re: "What is it?"):' in output
        assert '<strong class="md-strong">High</strong>' in output
        assert '<div class="print-sources"><h5>Sources:</h5>' in output
        assert ">A</a>" in output
        assert ">b.com</a>" in output


class TestReportHtml:
    """Test the full printable page"""

    def test_print_script_with_delay(self, composer, full_session):
        """Test that the print dialog is deferred by the configured delay"""
        output = composer.compose(full_session, PrintSelections(), GENERATED_AT).to_html(auto_print_delay_ms=500)

        assert output.startswith("<!DOCTYPE html>")
        assert "setTimeout(function () { window.print(); }, 500)" in output

    def test_no_print_script(self, composer, full_session):
        """Test that the page does not print itself unless asked"""
        output = composer.compose(full_session, PrintSelections(), GENERATED_AT).to_html()

        assert "window.print" not in output
        assert "page-break-before: always" in output
