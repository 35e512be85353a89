"""PDF text extraction: layout reconstruction, content-stream parsing and text-object salvage."""

import re
import zlib
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, Optional

import fitz  # PyMuPDF

from resume_extractor.exceptions import StrategyError
from resume_extractor.logger import get_logger
from resume_extractor.models import SourceDocument
from resume_extractor.strategy import Strategy
from resume_extractor.text import printable_runs

logger = get_logger(__name__)

LINE_TOLERANCE = 2.0
"""Fragments whose baselines differ by at most this many points share a line."""

GAP_TOLERANCE = 1.0
"""Horizontal gap (points) between fragments above which a space is inserted."""

TJ_WORD_GAP = 200
"""TJ adjustment (thousandths of text space) that reads as a word break."""


# ---------------------------------------------------------------------------
# Layout reconstruction from PyMuPDF's span model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextFragment:
    x0: float
    x1: float
    y: float
    text: str


def reconstruct_lines(
    fragments: Iterable[TextFragment],
    line_tolerance: float = LINE_TOLERANCE,
    gap_tolerance: float = GAP_TOLERANCE,
) -> list[str]:
    """Rebuild reading-order lines from positioned fragments.

    Fragments are grouped by baseline, each group is sorted left to right, and
    a space goes wherever the gap to the previous fragment exceeds
    ``gap_tolerance`` and neither side already has one.
    """
    rows: list[list[TextFragment]] = []
    row_y: Optional[float] = None
    for fragment in sorted(fragments, key=lambda f: (f.y, f.x0)):
        if row_y is None or abs(fragment.y - row_y) > line_tolerance:
            rows.append([])
            row_y = fragment.y
        rows[-1].append(fragment)

    lines = []
    for row in rows:
        row.sort(key=lambda f: f.x0)
        parts = [row[0].text]
        for previous, fragment in zip(row, row[1:]):
            gap = fragment.x0 - previous.x1
            if gap > gap_tolerance and not parts[-1].endswith(" ") and not fragment.text.startswith(" "):
                parts.append(" ")
            parts.append(fragment.text)
        lines.append("".join(parts).rstrip())
    return lines


def page_fragments(page: "fitz.Page") -> list[TextFragment]:
    """Collect non-empty text spans of a page with their baseline position."""
    fragments = []
    for block in page.get_text("dict")["blocks"]:
        if block.get("type") != 0:
            continue
        for line in block["lines"]:
            for span in line["spans"]:
                if not span["text"].strip():
                    continue
                x0, _, x1, _ = span["bbox"]
                fragments.append(TextFragment(x0=x0, x1=x1, y=span["origin"][1], text=span["text"]))
    return fragments


def open_pdf(data: bytes) -> "fitz.Document":
    """Open PDF bytes, unlocking documents that only carry an empty user password.

    Raises:
        StrategyError: If the document is password protected
    """
    document = fitz.open(stream=data, filetype="pdf")
    if document.needs_pass and not document.authenticate(""):
        document.close()
        raise StrategyError("PDF is password protected")
    return document


class PdfLayoutStrategy(Strategy):
    """Text from PyMuPDF's page model, reassembled by position."""

    name = "pdf-layout"

    def extract(self, document: SourceDocument) -> str:
        pdf = open_pdf(document.data)
        try:
            pages = []
            for page in pdf:
                lines = reconstruct_lines(page_fragments(page))
                if lines:
                    pages.append("\n".join(lines))

            logger.debug(
                "PDF layout extraction completed",
                extra_data={
                    "file_name": document.file_name,
                    "page_count": pdf.page_count,
                    "pages_with_text": len(pages),
                },
            )
            return "\n\n".join(pages)
        finally:
            pdf.close()


# ---------------------------------------------------------------------------
# Content-stream token model
# ---------------------------------------------------------------------------


class TokenKind(Enum):
    STRING = "string"
    NUMBER = "number"
    NAME = "name"
    OPERATOR = "operator"
    ARRAY_START = "array_start"
    ARRAY_END = "array_end"
    DICT_START = "dict_start"
    DICT_END = "dict_end"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: object = None


_REGULAR = rb"[^\x00\t\n\x0c\r ()<>\[\]{}/%]"
TOKEN_PATTERN = re.compile(
    rb"(?P<ws>[\x00\t\n\x0c\r ]+)"
    rb"|(?P<comment>%[^\r\n]*)"
    rb"|(?P<dict_start><<)"
    rb"|(?P<dict_end>>>)"
    rb"|(?P<hex><[0-9A-Fa-f\x00\t\n\x0c\r ]*>)"
    rb"|(?P<array_start>\[)"
    rb"|(?P<array_end>\])"
    rb"|(?P<name>/" + _REGULAR + rb"*)"
    rb"|(?P<number>[+-]?(?:\d+\.?\d*|\.\d+))"
    rb"|(?P<operator>" + _REGULAR + rb"+)"
    rb"|(?P<other>.)",
    re.DOTALL,
)
STREAM_PATTERN = re.compile(rb"(?<!end)stream\r?\n(.*?)\r?\n?endstream", re.DOTALL)
TEXT_OBJECT = re.compile(rb"\bBT\b(.*?)\bET\b", re.DOTALL)

LITERAL_ESCAPES = {ord("n"): 0x0A, ord("r"): 0x0D, ord("t"): 0x09, ord("b"): 0x08, ord("f"): 0x0C}
OCTAL_DIGITS = b"01234567"


def read_literal_string(data: bytes, pos: int) -> tuple[bytes, int]:
    """Read a ``(...)`` string starting at ``data[pos] == b"("``.

    Handles balanced nested parentheses, backslash escapes, one to three digit
    octal codes and escaped line breaks. Returns the unescaped bytes and the
    position after the closing parenthesis (or end of data if unterminated).
    """
    depth = 1
    i = pos + 1
    out = bytearray()
    end = len(data)
    while i < end:
        char = data[i]
        if char == 0x5C:  # backslash
            i += 1
            if i >= end:
                break
            escaped = data[i]
            if escaped in LITERAL_ESCAPES:
                out.append(LITERAL_ESCAPES[escaped])
                i += 1
            elif escaped in OCTAL_DIGITS:
                j = i
                while j < end and j < i + 3 and data[j] in OCTAL_DIGITS:
                    j += 1
                out.append(int(data[i:j], 8) & 0xFF)
                i = j
            elif escaped == 0x0D:
                i += 2 if data[i + 1:i + 2] == b"\n" else 1
            elif escaped == 0x0A:
                i += 1
            else:
                out.append(escaped)
                i += 1
            continue
        if char == 0x28:
            depth += 1
        elif char == 0x29:
            depth -= 1
            if depth == 0:
                return bytes(out), i + 1
        out.append(char)
        i += 1
    return bytes(out), end


def tokenize(data: bytes) -> Iterator[Token]:
    """Split content-stream bytes into tokens; unparseable bytes are skipped."""
    pos = 0
    end = len(data)
    while pos < end:
        if data[pos] == 0x28:
            value, pos = read_literal_string(data, pos)
            yield Token(TokenKind.STRING, value)
            continue

        match = TOKEN_PATTERN.match(data, pos)
        pos = match.end()
        group = match.lastgroup
        text = match.group()

        if group == "hex":
            digits = re.sub(rb"[\x00\t\n\x0c\r ]", b"", text[1:-1])
            if len(digits) % 2:
                digits += b"0"
            yield Token(TokenKind.STRING, bytes.fromhex(digits.decode("ascii")))
        elif group == "number":
            yield Token(TokenKind.NUMBER, float(text))
        elif group == "name":
            yield Token(TokenKind.NAME, text[1:].decode("latin-1"))
        elif group == "operator":
            yield Token(TokenKind.OPERATOR, text.decode("latin-1"))
        elif group == "array_start":
            yield Token(TokenKind.ARRAY_START)
        elif group == "array_end":
            yield Token(TokenKind.ARRAY_END)
        elif group == "dict_start":
            yield Token(TokenKind.DICT_START)
        elif group == "dict_end":
            yield Token(TokenKind.DICT_END)


def decode_pdf_string(raw: bytes) -> str:
    """Decode a string operand: UTF-16BE when it carries a BOM, Latin-1 otherwise."""
    if raw.startswith(b"\xfe\xff"):
        return raw[2:].decode("utf-16-be", errors="ignore")
    return raw.decode("latin-1")


class _TextCollector:
    """Accumulates shown text into lines as text operators are interpreted."""

    def __init__(self):
        self.lines: list[list[str]] = [[]]
        self.pending_space = False
        self.matrix_y: Optional[float] = None
        self.in_text_object = False

    def show(self, raw: bytes):
        text = decode_pdf_string(raw)
        if not text:
            return
        current = self.lines[-1]
        if self.pending_space and current and not current[-1].endswith(" ") and not text.startswith(" "):
            current.append(" ")
        self.pending_space = False
        current.append(text)

    def space(self):
        self.pending_space = True

    def newline(self):
        if self.lines[-1]:
            self.lines.append([])
        self.pending_space = False

    def text(self) -> str:
        return "\n".join("".join(parts) for parts in self.lines if parts)


def _last_number(operands: list, offset: int = 1) -> Optional[float]:
    if len(operands) >= offset and isinstance(operands[-offset], float):
        return operands[-offset]
    return None


def interpret_text_operators(tokens: Iterable[Token]) -> str:
    """Run the text-showing and text-positioning operators of a content stream.

    ``Tj``, ``TJ``, ``'`` and ``"`` show strings; ``Td``/``TD``/``T*`` and a
    changed ``Tm`` baseline start new lines. Text is only shown between ``BT``
    and ``ET``. Everything else is ignored.
    """
    collector = _TextCollector()
    operands: list = []
    arrays: list[list] = []

    for token in tokens:
        kind = token.kind
        if kind is TokenKind.ARRAY_START:
            arrays.append([])
        elif kind is TokenKind.ARRAY_END:
            if arrays:
                finished = arrays.pop()
                (arrays[-1] if arrays else operands).append(finished)
        elif kind in (TokenKind.STRING, TokenKind.NUMBER, TokenKind.NAME):
            (arrays[-1] if arrays else operands).append(token.value)
        elif kind is TokenKind.OPERATOR:
            _apply_operator(token.value, operands, collector)
            operands.clear()
            arrays.clear()

    return collector.text()


def _apply_operator(op: str, operands: list, collector: _TextCollector):
    if op == "BT":
        collector.in_text_object = True
        return
    if op == "ET":
        collector.in_text_object = False
        collector.space()
        return
    if not collector.in_text_object:
        return

    strings = [value for value in operands if isinstance(value, bytes)]

    if op == "Tj" and strings:
        collector.show(strings[-1])
    elif op in ("'", '"'):
        collector.newline()
        if strings:
            collector.show(strings[-1])
    elif op == "TJ" and operands and isinstance(operands[-1], list):
        for item in operands[-1]:
            if isinstance(item, bytes):
                collector.show(item)
            elif isinstance(item, float) and item < -TJ_WORD_GAP:
                collector.space()
    elif op in ("Td", "TD"):
        ty = _last_number(operands)
        tx = _last_number(operands, 2)
        if ty:
            collector.newline()
        elif tx and tx > 0:
            collector.space()
    elif op == "T*":
        collector.newline()
    elif op == "Tm":
        y = _last_number(operands)
        if y is not None:
            if collector.matrix_y is not None and y != collector.matrix_y:
                collector.newline()
            collector.matrix_y = y


def _stream_dictionary(data: bytes, stream_start: int) -> bytes:
    """The dictionary in front of a ``stream`` keyword, nested dictionaries included."""
    window = data[max(0, stream_start - 1024):stream_start].rstrip()
    if not window.endswith(b">>"):
        return b""
    depth = 0
    pos = len(window)
    while pos >= 2:
        pair = window[pos - 2:pos]
        if pair == b">>":
            depth += 1
            pos -= 2
        elif pair == b"<<":
            depth -= 1
            pos -= 2
            if depth == 0:
                return window[pos:]
        else:
            pos -= 1
    return b""


def content_streams(data: bytes) -> list[bytes]:
    """Return decoded content streams in file order.

    FlateDecode streams are inflated (tolerating truncated data); streams with
    other filters or image streams cannot hold text operators and are skipped.
    If the file has no stream objects at all, the whole buffer is returned.
    """
    streams = []
    found = False
    for match in STREAM_PATTERN.finditer(data):
        found = True
        body = match.group(1)
        dictionary = _stream_dictionary(data, match.start())
        if b"/Image" in dictionary:
            continue
        if b"/Filter" in dictionary:
            if b"/FlateDecode" not in dictionary or re.search(rb"/(?:DCT|JPX|JBIG2|CCITTFax|LZW|RunLength|ASCII85|ASCIIHex)", dictionary):
                continue
            try:
                body = zlib.decompressobj().decompress(body)
            except zlib.error:
                continue
        streams.append(body)
    if not found:
        streams.append(data)
    return streams


def extract_content_stream_text(data: bytes) -> str:
    """Extract text shown by the content streams of raw PDF bytes."""
    texts = []
    for stream in content_streams(data):
        if b"T" not in stream and b"'" not in stream and b'"' not in stream:
            continue
        text = interpret_text_operators(tokenize(stream))
        if text:
            texts.append(text)
    return "\n".join(texts)


class PdfContentStreamStrategy(Strategy):
    """Text operators read straight from the PDF bytes, without an object model."""

    name = "pdf-content-stream"

    def extract(self, document: SourceDocument) -> str:
        return extract_content_stream_text(document.data)


def text_object_runs(data: bytes) -> str:
    """Readable printable runs inside the ``BT ... ET`` text objects of each content stream."""
    texts = []
    for stream in content_streams(data):
        for body in TEXT_OBJECT.findall(stream):
            runs = printable_runs(body)
            if runs:
                texts.append(runs)
    return "\n".join(texts)


class PdfPrintableRunsStrategy(Strategy):
    """Last resort for text objects the operator parser could not make sense of."""

    name = "pdf-printable-runs"
    salvage = True

    def extract(self, document: SourceDocument) -> str:
        return text_object_runs(document.data)
