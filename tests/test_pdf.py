"""Tests for PDF layout reconstruction and content-stream parsing."""

import zlib

import fitz
import pytest

from conftest import RESUME_LINES, OCRServiceStub, build_pdf, build_scanned_pdf, text_content_stream
from resume_extractor.config import ExtractorConfig
from resume_extractor.handler import DocumentHandler, is_diagnostic
from resume_extractor.models import DocumentFamily, QualityFlag, SourceDocument
from resume_extractor.pdf import (
    PdfContentStreamStrategy,
    PdfLayoutStrategy,
    PdfPrintableRunsStrategy,
    TextFragment,
    content_streams,
    extract_content_stream_text,
    interpret_text_operators,
    read_literal_string,
    reconstruct_lines,
    text_object_runs,
    tokenize,
)


def pdf_document(data: bytes) -> SourceDocument:
    return SourceDocument(data=data, mime_type="application/pdf", file_name="resume.pdf")


class TestReconstructLines:
    def test_fragments_are_grouped_by_baseline_and_sorted(self):
        fragments = [
            TextFragment(x0=60, x1=90, y=100.5, text="Doe"),
            TextFragment(x0=10, x1=50, y=100, text="Jane"),
            TextFragment(x0=10, x1=80, y=120, text="Engineer"),
        ]
        assert reconstruct_lines(fragments) == ["Jane Doe", "Engineer"]

    def test_touching_fragments_are_not_split(self):
        fragments = [
            TextFragment(x0=10, x1=30, y=50, text="Soft"),
            TextFragment(x0=30.5, x1=60, y=50, text="ware"),
        ]
        assert reconstruct_lines(fragments) == ["Software"]

    def test_existing_spaces_are_not_doubled(self):
        fragments = [
            TextFragment(x0=10, x1=40, y=50, text="Jane "),
            TextFragment(x0=45, x1=70, y=50, text="Doe"),
        ]
        assert reconstruct_lines(fragments) == ["Jane Doe"]

    def test_no_fragments(self):
        assert reconstruct_lines([]) == []


class TestLiteralStrings:
    def test_simple_string(self):
        assert read_literal_string(b"(Jane Doe) Tj", 0) == (b"Jane Doe", 10)

    def test_escapes_and_octal_codes(self):
        value, _ = read_literal_string(b"(a\\(b\\)\\n\\101\\0501)", 0)
        assert value == b"a(b)\nA(1"

    def test_balanced_nested_parentheses(self):
        value, end = read_literal_string(b"(f(x) = y) Tj", 0)
        assert value == b"f(x) = y"
        assert end == 10

    def test_escaped_line_break_is_a_continuation(self):
        value, _ = read_literal_string(b"(Soft\\\nware)", 0)
        assert value == b"Software"

    def test_unterminated_string_runs_to_end(self):
        value, end = read_literal_string(b"(broken", 0)
        assert value == b"broken"
        assert end == 7


class TestTextOperators:
    def test_lines_follow_positioning_operators(self):
        stream = text_content_stream(["Jane Doe", "Software Engineer"])
        assert interpret_text_operators(tokenize(stream)) == "Jane Doe\nSoftware Engineer"

    def test_tj_array_spacing(self):
        stream = b"BT [(Jane) -250 (Doe) 120 (s)] TJ ET"
        assert interpret_text_operators(tokenize(stream)) == "Jane Does"

    def test_quote_operators_start_new_lines(self):
        stream = b"BT (Jane Doe) Tj (Engineer) ' 1 2 (Python) \" ET"
        assert interpret_text_operators(tokenize(stream)) == "Jane Doe\nEngineer\nPython"

    def test_text_matrix_change_starts_new_line(self):
        stream = b"BT 1 0 0 1 72 700 Tm (Jane) Tj 1 0 0 1 72 680 Tm (Doe) Tj ET"
        assert interpret_text_operators(tokenize(stream)) == "Jane\nDoe"

    def test_hex_and_utf16_strings(self):
        stream = b"BT <4A616E65> Tj 0 -14 Td <FEFF0044006F0065> Tj ET"
        assert interpret_text_operators(tokenize(stream)) == "Jane\nDoe"

    def test_non_text_operators_are_ignored(self):
        stream = b"q 1 0 0 1 0 0 cm /Im1 Do Q 0.5 g 10 10 100 100 re f"
        assert interpret_text_operators(tokenize(stream)) == ""

    def test_strings_outside_text_objects_are_not_shown(self):
        stream = b"(Producer) Tj (stray) ' BT (Jane Doe) Tj ET (trailing) Tj"
        assert interpret_text_operators(tokenize(stream)) == "Jane Doe"


class TestContentStreams:
    def test_flate_streams_are_inflated(self):
        data = build_pdf(text_content_stream(RESUME_LINES), compress=True)
        assert extract_content_stream_text(data) == "\n".join(RESUME_LINES)

    def test_image_streams_are_skipped(self):
        data = b"1 0 obj << /Subtype /Image /Length 9 >> stream\n(Jane) Tj\nendstream endobj"
        assert content_streams(data) == []

    def test_nested_decode_parms_keep_the_outer_filter(self):
        content = zlib.compress(b"BT (Jane Doe) Tj ET")
        data = (
            b"4 0 obj << /Length %d /Filter /FlateDecode /DecodeParms << /Predictor 1 >> >> stream\n" % len(content)
            + content
            + b"\nendstream endobj"
        )
        assert extract_content_stream_text(data) == "Jane Doe"

    def test_image_with_decode_parms_is_skipped(self):
        data = (
            b"5 0 obj << /Type /XObject /Subtype /Image /DecodeParms << /Columns 200 >> /Length 9 >> stream\n"
            b"(Jane) Tj\nendstream endobj"
        )
        assert content_streams(data) == []

    def test_bare_operator_data_is_scanned_as_is(self):
        assert extract_content_stream_text(b"BT (Jane Doe) Tj ET") == "Jane Doe"

    def test_text_comes_out_in_document_order(self, config):
        data = build_pdf(text_content_stream(["Jane Doe", "Software Engineer"]))
        attempt = PdfContentStreamStrategy(config).run(pdf_document(data))
        assert attempt.succeeded
        assert attempt.raw_output.index("Jane Doe") < attempt.raw_output.index("Software Engineer")


class TestTextObjectRuns:
    def test_runs_inside_text_objects_are_kept(self):
        data = build_pdf(b"BT /F1 12 Tf Jane Doe Software Engineer ET", compress=True)
        assert text_object_runs(data) == "/F1 12 Tf Jane Doe Software Engineer"

    def test_structure_outside_text_objects_is_ignored(self):
        assert text_object_runs(build_scanned_pdf()) == ""

    def test_salvage_strategy_cleans_to_the_words(self, handler, monkeypatch):
        monkeypatch.setattr(PdfLayoutStrategy, "extract", lambda self, document: "")
        data = build_pdf(b"BT /F1 12 Tf Jane Doe Software Engineer, Python and SQL developer ET")

        result = handler.extract_bytes(data, "application/pdf", "resume.pdf")

        assert PdfPrintableRunsStrategy.salvage
        assert result.strategy_name == "pdf-printable-runs"
        assert result.extracted_text == "Jane Doe Software Engineer, Python and SQL developer"


class TestPdfLayoutStrategy:
    def test_page_text_is_reconstructed(self, config, resume_pdf):
        attempt = PdfLayoutStrategy(config).run(pdf_document(resume_pdf))
        assert attempt.succeeded
        assert attempt.raw_output.splitlines() == RESUME_LINES

    def test_corrupt_pdf_is_a_failed_attempt(self, config):
        attempt = PdfLayoutStrategy(config).run(pdf_document(b"%PDF-1.4\n\x00\x01 truncated"))
        assert not attempt.succeeded
        assert attempt.failure_reason

    def test_password_protected_pdf_fails_cleanly(self, config, resume_pdf):
        source = fitz.open(stream=resume_pdf, filetype="pdf")
        encrypted = source.tobytes(encryption=fitz.PDF_ENCRYPT_AES_256, owner_pw="owner", user_pw="secret")
        source.close()

        attempt = PdfLayoutStrategy(config).run(pdf_document(encrypted))

        assert not attempt.succeeded
        assert "password" in attempt.failure_reason


class TestPdfPipeline:
    def test_text_pdf_through_handler(self, handler, resume_pdf):
        result = handler.extract_bytes(resume_pdf, "application/pdf", "resume.pdf")

        assert result.quality_flag is QualityFlag.OK
        assert result.family is DocumentFamily.PDF
        assert result.strategy_name == "pdf-layout"
        assert result.extracted_text.index("Jane Doe") < result.extracted_text.index("Software Engineer")

    def test_content_stream_parser_takes_over_when_layout_fails(self, handler, monkeypatch):
        monkeypatch.setattr(PdfLayoutStrategy, "extract", lambda self, document: "")
        data = build_pdf(text_content_stream(RESUME_LINES))

        result = handler.extract_bytes(data, "application/pdf", "resume.pdf")

        assert result.strategy_name == "pdf-content-stream"
        assert "Jane Doe" in result.extracted_text

    def test_scanned_pdf_returns_ocr_output(self, scanned_pdf):
        config = ExtractorConfig(ocr_api_key="test-key")
        stub = OCRServiceStub(text="Jane Doe Software Engineer")
        handler = DocumentHandler(config=config, ocr_client=stub.client(config))

        result = handler.extract_bytes(scanned_pdf, "application/pdf", "scan.pdf")

        assert result.extracted_text == "Jane Doe Software Engineer"
        assert result.strategy_name == "ocr-service"
        assert result.quality_flag is QualityFlag.DEGRADED
        assert result.ocr_used
        assert [a.strategy_name for a in result.attempts][:3] == ["pdf-layout", "pdf-content-stream", "ocr-service"]
        assert "pdf-printable-runs" not in [a.strategy_name for a in result.attempts]
        assert stub.requests[0]["filetype"] == "PDF"

    def test_scanned_pdf_structure_is_not_mistaken_for_text(self, config, scanned_pdf):
        attempt = PdfContentStreamStrategy(config).run(pdf_document(scanned_pdf))
        assert not attempt.succeeded

    def test_encrypted_pdf_never_raises(self, handler, resume_pdf):
        source = fitz.open(stream=resume_pdf, filetype="pdf")
        encrypted = source.tobytes(encryption=fitz.PDF_ENCRYPT_AES_256, owner_pw="owner", user_pw="secret")
        source.close()

        result = handler.extract_bytes(encrypted, "application/pdf", "locked.pdf")

        assert result.extracted_text
        assert "password" in result.attempts[0].failure_reason

    @pytest.mark.parametrize("data", [b"", b"%PDF-1.4\n%%EOF", b"%PDF-1.4\n1 0 obj << /Type"])
    def test_broken_pdfs_yield_diagnostic(self, handler, data):
        result = handler.extract_bytes(data, "application/pdf", "broken.pdf")
        assert result.quality_flag is QualityFlag.FAILED
        assert is_diagnostic(result.extracted_text)
