"""Tests for plain text, RTF and printable-run extraction."""

import codecs

import pytest

from conftest import RANDOM_SEEDS, RANDOM_SIZES, random_bytes
from resume_extractor.exceptions import DecodingError
from resume_extractor.models import DocumentFamily, QualityFlag, SourceDocument
from resume_extractor.text import (
    PrintableRunsStrategy,
    RtfControlWordStrategy,
    StripRtfStrategy,
    decode_text,
    is_wordlike,
    printable_runs,
    strip_rtf,
)

RTF_RESUME = (
    b"{\\rtf1\\ansi\\deff0{\\fonttbl{\\f0\\fswiss Helvetica;}}"
    b"{\\*\\generator Writer;}"
    b"\\f0\\fs24 {\\b Jane Doe}\\par "
    b"Software Engineer\\par "
    b"Skills: Python, SQL, Docker\\par "
    b"Experience: Acme Corp, 2018 - 2024}"
)


class TestDecodeText:
    def test_utf8(self):
        assert decode_text("José Müller".encode("utf-8")) == "José Müller"

    def test_utf8_bom_is_dropped(self):
        assert decode_text(codecs.BOM_UTF8 + b"Jane Doe") == "Jane Doe"

    def test_utf16_with_bom(self):
        assert decode_text("Jane Doe".encode("utf-16")) == "Jane Doe"

    def test_cp1252_fallback(self):
        assert decode_text(b"Caf\xe9 \x93Manager\x94") == "Café \u201cManager\u201d"

    def test_nul_bytes_are_rejected(self):
        with pytest.raises(DecodingError):
            decode_text(b"J\x00a\x00n\x00e\x00")

    def test_control_heavy_content_is_rejected(self):
        with pytest.raises(DecodingError):
            decode_text(b"\x01\x02\x03\x04abc")


class TestStripRtf:
    def test_destinations_and_formatting_are_removed(self):
        text = strip_rtf(RTF_RESUME.decode("latin-1"))
        assert text.splitlines() == [
            "Jane Doe",
            "Software Engineer",
            "Skills: Python, SQL, Docker",
            "Experience: Acme Corp, 2018 - 2024",
        ]
        assert "Helvetica" not in text
        assert "Writer" not in text

    def test_hex_escapes_are_decoded(self):
        assert strip_rtf("{\\rtf1 Caf\\'e9}") == "Café"

    def test_unicode_escapes_skip_their_fallback(self):
        assert strip_rtf("{\\rtf1 \\u8226? Python\\par\\u233\\'e9t\\u233 e}") == "\u2022 Python\nét\u00e9"

    def test_escaped_symbols(self):
        assert strip_rtf("{\\rtf1 R\\{D\\}\\~team C:\\\\dev}") == "R{D} team C:\\dev"


class TestRtfStrategies:
    def test_striprtf_parser(self, config):
        document = SourceDocument(RTF_RESUME, "application/rtf", "resume.rtf")
        attempt = StripRtfStrategy(config).run(document)
        assert attempt.succeeded
        assert "Jane Doe" in attempt.raw_output
        assert "Helvetica" not in attempt.raw_output

    def test_control_word_stripper(self, config):
        document = SourceDocument(RTF_RESUME, "application/rtf", "resume.rtf")
        attempt = RtfControlWordStrategy(config).run(document)
        assert attempt.raw_output.startswith("Jane Doe\nSoftware Engineer")

    def test_content_without_rtf_header_is_rejected(self, config):
        document = SourceDocument(b"\xff\xe4 not rtf at all", "text/rtf", "resume.rtf")
        for strategy in (StripRtfStrategy(config), RtfControlWordStrategy(config)):
            attempt = strategy.run(document)
            assert not attempt.succeeded
            assert "RTF header" in attempt.failure_reason

    def test_rtf_through_handler(self, handler):
        result = handler.extract_bytes(RTF_RESUME, "text/rtf", "resume.rtf")

        assert result.family is DocumentFamily.RTF
        assert result.quality_flag is QualityFlag.OK
        assert result.strategy_name == "rtf-striprtf"
        assert "Skills: Python, SQL, Docker" in result.extracted_text


class TestPrintableRuns:
    def test_readable_runs_are_kept(self):
        data = b"\x00\x01\x02Jane Doe\xff\xfe\x10Software Engineer\x00"
        assert printable_runs(data) == "Jane Doe\nSoftware Engineer"

    def test_symbol_and_number_runs_are_dropped(self):
        assert printable_runs(b"\x00#$%^&*()\x00123456789\x00ab12345\x00") == ""

    def test_resume_fields_with_numbers_are_kept(self):
        data = b"\x00\x9aExperience: Acme Corp, 2018 - 2024\x00\x00"
        assert printable_runs(data) == "Experience: Acme Corp, 2018 - 2024"

    def test_single_words_and_letter_soup_are_dropped(self):
        assert printable_runs(b"\x00cKzSgt\x01ZAlS<^9\x02ut#3:UB\x03YbKLbe\x00Engineer\x00") == ""

    @pytest.mark.parametrize("size", RANDOM_SIZES)
    @pytest.mark.parametrize("seed", RANDOM_SEEDS)
    def test_random_bytes_yield_nothing(self, seed, size):
        assert printable_runs(random_bytes(seed, size)) == ""

    @pytest.mark.parametrize(
        "fragment, expected",
        [
            ("Jane Doe", True),
            ("Skills: Python, SQL", True),
            ("(Senior) Engineer.", True),
            ("Jane", False),
            ("xKq7 zzT", False),
            ("Bcd Fgh", False),
            ("ab 1234567890", False),
        ],
    )
    def test_is_wordlike(self, fragment, expected):
        assert is_wordlike(fragment) is expected

    def test_strategy_fails_on_binary(self, config):
        attempt = PrintableRunsStrategy(config).run(SourceDocument(bytes(range(128, 256)), "", ""))
        assert not attempt.succeeded
        assert attempt.failure_reason == "no text produced"
