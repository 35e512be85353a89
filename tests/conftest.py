"""Shared fixtures for resume extractor tests."""

import io
import json
import random
import zlib
from urllib.parse import parse_qs

import fitz
import httpx
import pytest
from docx import Document
from PIL import Image

from resume_extractor.config import ExtractorConfig, OCRConfig
from resume_extractor.handler import DocumentHandler
from resume_extractor.ocr import OCRServiceClient

RESUME_LINES = [
    "Jane Doe",
    "Software Engineer",
    "Skills: Python, SQL, Docker, Kubernetes",
    "Experience: Acme Corp, 2018 - 2024",
]

RANDOM_SEEDS = (1, 2, 3)
RANDOM_SIZES = (256, 2048, 8192, 65536)


def random_bytes(seed: int, size: int) -> bytes:
    return random.Random(seed).randbytes(size)


RANDOM_BYTES = random_bytes(1, 8192)


def build_pdf(content: bytes, compress: bool = False) -> bytes:
    """Assemble a single-page PDF around a raw content stream."""
    stream_dict = b"<< /Length %d >>"
    if compress:
        content = zlib.compress(content)
        stream_dict = b"<< /Length %d /Filter /FlateDecode >>"

    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents 4 0 R "
        b"/Resources << /Font << /F1 5 0 R >> >> >>",
        stream_dict % len(content) + b"\nstream\n" + content + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"

    xref_offset = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_offset)
    return bytes(out)


def text_content_stream(lines: list[str]) -> bytes:
    """Content stream drawing one ``(line) Tj`` per line, top to bottom."""
    ops = [b"BT", b"/F1 12 Tf", b"72 720 Td"]
    for index, line in enumerate(lines):
        escaped = line.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
        if index:
            ops.append(b"0 -16 Td")
        ops.append(b"(" + escaped.encode("latin-1") + b") Tj")
    ops.append(b"ET")
    return b"\n".join(ops)


def build_scanned_pdf() -> bytes:
    """A PyMuPDF-written page holding nothing but a picture."""
    picture = io.BytesIO()
    Image.new("RGB", (200, 200), "white").save(picture, format="PNG")

    doc = fitz.open()
    page = doc.new_page()
    page.insert_image(fitz.Rect(72, 72, 272, 272), stream=picture.getvalue())
    data = doc.tobytes()
    doc.close()
    return data


def build_docx(paragraphs: list[str], table_rows: list[list[str]] = ()) -> bytes:
    doc = Document()
    for paragraph in paragraphs:
        doc.add_paragraph(paragraph)
    if table_rows:
        table = doc.add_table(rows=len(table_rows), cols=len(table_rows[0]))
        for row, values in zip(table.rows, table_rows):
            for cell, value in zip(row.cells, values):
                cell.text = value
    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


class OCRServiceStub:
    """httpx transport handler that records requests and replies with canned OCR output."""

    def __init__(self, text: str = "", status_code: int = 200, errored: bool = False):
        self.text = text
        self.status_code = status_code
        self.errored = errored
        self.requests: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append({k: v[0] for k, v in parse_qs(request.content.decode()).items()})
        if self.errored:
            body = {"IsErroredOnProcessing": True, "ErrorMessage": ["File failed validation"]}
        else:
            body = {"IsErroredOnProcessing": False, "ParsedResults": [{"ParsedText": self.text}]}
        return httpx.Response(self.status_code, content=json.dumps(body).encode())

    def client(self, config: ExtractorConfig) -> OCRServiceClient:
        return OCRServiceClient.from_config(config, transport=httpx.MockTransport(self))


@pytest.fixture
def config() -> ExtractorConfig:
    """Default thresholds, no OCR service key and no local Tesseract."""
    return ExtractorConfig(ocr=OCRConfig(enabled=False))


@pytest.fixture
def handler(config) -> DocumentHandler:
    return DocumentHandler(config=config)


@pytest.fixture
def resume_pdf() -> bytes:
    return build_pdf(text_content_stream(RESUME_LINES))


@pytest.fixture
def scanned_pdf() -> bytes:
    return build_scanned_pdf()
