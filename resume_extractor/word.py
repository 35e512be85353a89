"""DOCX and legacy DOC extractors."""

import html
import io
import re
import shutil
import subprocess
import tempfile
import zipfile
from pathlib import Path
from xml.etree import ElementTree

from docx import Document

from resume_extractor.exceptions import ConverterUnavailableError, StrategyError
from resume_extractor.logger import Timer, get_logger
from resume_extractor.models import SourceDocument
from resume_extractor.strategy import Strategy
from resume_extractor.text import is_wordlike

logger = get_logger(__name__)

W_NS = "{http://schemas.openxmlformats.org/wordprocessingml/2006/main}"
HEADER_PART = re.compile(r"word/header\d*\.xml")
FOOTER_PART = re.compile(r"word/footer\d*\.xml")

TEXT_RUN = re.compile(r"<w:t(?:\s[^>]*)?>([^<]*)</w:t>")
ELEMENT_TEXT = re.compile(r">([^<]{3,})<")

# Plausible human-readable content in a binary .doc stream
DOC_PATTERNS = [
    re.compile(r"[A-Za-z][A-Za-z0-9 \t.,;:!?@#%&*()\-_+=\[\]|/'\"]{15,}"),
    re.compile(r"\b(?:Name|Email|Phone|Address|Experience|Education|Skills|Summary|Objective)\b[\x20-\x7e]{10,}", re.IGNORECASE),
    re.compile(r"\b[A-Z][a-z]+[ \t]+[A-Z][a-z]+\b"),  # names
    re.compile(r"\b\d{1,2}/\d{1,2}/\d{2,4}\b"),  # dates
    re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b"),  # phone numbers
    re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),  # emails
]
NON_PRINTABLE = re.compile(r"[^\x20-\x7e]+")
MIN_DOC_FRAGMENT = 4


class DocxDocumentStrategy(Strategy):
    """DOCX paragraphs and tables via python-docx."""

    name = "docx-document"

    def extract(self, document: SourceDocument) -> str:
        doc = Document(io.BytesIO(document.data))

        paragraphs = [para.text.strip() for para in doc.paragraphs if para.text.strip()]

        tables = []
        for table in doc.tables:
            rows = []
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells]
                if any(cells):
                    rows.append(" | ".join(cells))
            if rows:
                tables.append("\n".join(rows))

        logger.debug(
            "DOCX extraction completed",
            extra_data={
                "file_name": document.file_name,
                "paragraph_count": len(paragraphs),
                "table_count": len(tables),
            },
        )
        return "\n\n".join(paragraphs + tables)


def paragraph_text(paragraph: ElementTree.Element) -> str:
    """Text of one paragraph, excluding paragraphs nested in it (text boxes)."""
    parts = []

    def visit(element: ElementTree.Element):
        for child in element:
            if child.tag == W_NS + "p":
                continue
            if child.tag == W_NS + "t":
                parts.append(child.text or "")
            elif child.tag == W_NS + "tab":
                parts.append("\t")
            elif child.tag in (W_NS + "br", W_NS + "cr"):
                parts.append("\n")
            visit(child)

    visit(paragraph)
    return "".join(parts)


def walk_part(xml: bytes) -> list[str]:
    """Text of every paragraph in a WordprocessingML part, in document order."""
    root = ElementTree.fromstring(xml)
    paragraphs = []
    for paragraph in root.iter(W_NS + "p"):
        text = paragraph_text(paragraph).strip()
        if text:
            paragraphs.append(text)
    return paragraphs


class DocxXmlStrategy(Strategy):
    """Walks the XML parts of the DOCX container directly.

    Reaches packages python-docx refuses (broken relationships, missing
    content types) and includes headers and footers, where resumes often keep
    contact details.
    """

    name = "docx-xml"

    def extract(self, document: SourceDocument) -> str:
        with zipfile.ZipFile(io.BytesIO(document.data)) as archive:
            names = archive.namelist()
            if "word/document.xml" not in names:
                raise StrategyError("container has no word/document.xml")
            headers = sorted(name for name in names if HEADER_PART.fullmatch(name))
            footers = sorted(name for name in names if FOOTER_PART.fullmatch(name))

            paragraphs = []
            for part in headers + ["word/document.xml"] + footers:
                paragraphs.extend(walk_part(archive.read(part)))
        return "\n".join(paragraphs)


def scan_text_runs(xml: str) -> str:
    """Concatenate ``<w:t>`` run contents; fall back to element text that reads as words."""
    runs = [html.unescape(run) for run in TEXT_RUN.findall(xml) if run.strip()]
    if not runs:
        runs = [
            html.unescape(content.strip())
            for content in ELEMENT_TEXT.findall(xml)
            if is_wordlike(content, min_words=1)
        ]
    return " ".join(run.strip() for run in runs)


class DocxTextRunsStrategy(Strategy):
    """Pattern scan for text runs in raw or flat WordprocessingML."""

    name = "docx-text-runs"

    def extract(self, document: SourceDocument) -> str:
        data = document.data
        if zipfile.is_zipfile(io.BytesIO(data)):
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                data = archive.read("word/document.xml")
        return scan_text_runs(data.decode("utf-8", errors="ignore"))


def scan_binary_doc(data: bytes) -> str:
    """Pick readable fragments and resume fields out of a binary Word stream.

    Both 8-bit and UTF-16LE text pieces occur in .doc files, so the stream is
    scanned under both decodings. Overlapping matches from different patterns
    are kept once, in stream order.
    """
    fragments = []
    for text in (data.decode("latin-1"), data.decode("utf-16-le", errors="ignore")):
        spans: list[tuple[int, int, str]] = []
        for pattern in DOC_PATTERNS:
            for match in pattern.finditer(text):
                spans.append((match.start(), match.end(), match.group()))

        covered_until = -1
        for start, end, value in sorted(spans, key=lambda span: (span[0], -span[1])):
            if end <= covered_until:
                continue
            covered_until = max(covered_until, end)
            value = " ".join(NON_PRINTABLE.sub(" ", value).split())
            if len(value) >= MIN_DOC_FRAGMENT and re.search(r"[A-Za-z]", value):
                fragments.append(value)
    return "\n".join(fragments)


class DocBinaryStrategy(Strategy):
    """Low-fidelity pattern matching over legacy binary .doc bytes."""

    name = "doc-binary"

    def extract(self, document: SourceDocument) -> str:
        return scan_binary_doc(document.data)


class DocConverterStrategy(Strategy):
    """Legacy .doc through system converters (textutil or LibreOffice)."""

    name = "doc-converter"

    def extract(self, document: SourceDocument) -> str:
        textutil = shutil.which("textutil")
        soffice = shutil.which("soffice") or shutil.which("libreoffice")
        if not textutil and not soffice:
            raise ConverterUnavailableError("no textutil or LibreOffice installation found")

        timeout = self.config.request_timeout_s
        with tempfile.TemporaryDirectory() as tmp_dir:
            source = Path(tmp_dir) / "document.doc"
            source.write_bytes(document.data)

            if textutil:
                with Timer("doc_textutil") as timer:
                    result = subprocess.run(
                        [textutil, "-convert", "txt", str(source), "-stdout"],
                        capture_output=True,
                        text=True,
                        timeout=timeout,
                    )
                if result.returncode == 0 and result.stdout.strip():
                    logger.info(
                        "DOC extraction completed via textutil",
                        extra_data={
                            "file_name": document.file_name,
                            "characters_extracted": len(result.stdout.strip()),
                            "extraction_time_ms": timer.get_elapsed_ms(),
                        },
                    )
                    return result.stdout

            if soffice:
                out_dir = Path(tmp_dir) / "out"
                with Timer("doc_soffice") as timer:
                    conversion = subprocess.run(
                        [soffice, "--headless", "--convert-to", "txt:Text", str(source), "--outdir", str(out_dir)],
                        capture_output=True,
                        text=True,
                        timeout=timeout,
                    )
                out_path = out_dir / "document.txt"
                if conversion.returncode == 0 and out_path.exists():
                    content = out_path.read_text(encoding="utf-8", errors="ignore")
                    logger.info(
                        "DOC extraction completed via soffice",
                        extra_data={
                            "file_name": document.file_name,
                            "characters_extracted": len(content.strip()),
                            "extraction_time_ms": timer.get_elapsed_ms(),
                        },
                    )
                    return content

        raise StrategyError("document converters produced no text")
