"""OCR strategies: remote OCR service and local Tesseract."""

import base64
import io
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import fitz  # PyMuPDF
import httpx
import pytesseract
from PIL import Image, ImageEnhance, ImageOps

from resume_extractor.config import ExtractorConfig, OCRConfig
from resume_extractor.exceptions import OCRServiceError, StrategyError
from resume_extractor.logger import Timer, get_logger
from resume_extractor.models import SourceDocument
from resume_extractor.strategy import Strategy

logger = get_logger(__name__)


class OCRServiceClient:
    """Client for an OCR.space-compatible parse endpoint.

    Documents are posted as base64 data URIs; the service answers with
    ``ParsedResults[].ParsedText`` or an ``IsErroredOnProcessing`` flag.
    Every failure mode surfaces as ``OCRServiceError``.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: Optional[str],
        timeout_s: float,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout_s = timeout_s
        self.transport = transport

    @classmethod
    def from_config(cls, config: ExtractorConfig, transport: Optional[httpx.BaseTransport] = None) -> "OCRServiceClient":
        return cls(
            endpoint=config.ocr_endpoint,
            api_key=config.ocr_api_key,
            timeout_s=config.request_timeout_s,
            transport=transport,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.endpoint)

    def parse(self, data: bytes, mime_type: str) -> str:
        """Submit document bytes and return the recognized text.

        Raises:
            OCRServiceError: If the service is unconfigured, unreachable,
                answers with an error, or finds no text
        """
        if not self.configured:
            raise OCRServiceError("OCR service is not configured")

        payload = {
            "base64Image": f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}",
            "apikey": self.api_key,
            "isOverlayRequired": "false",
            "detectOrientation": "true",
            "scale": "true",
            "isTable": "true",
        }
        if mime_type == "application/pdf":
            payload["filetype"] = "PDF"

        try:
            with httpx.Client(timeout=self.timeout_s, transport=self.transport) as client:
                response = client.post(self.endpoint, data=payload)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise OCRServiceError(
                f"OCR service error: {exc.response.status_code} {exc.response.reason_phrase}"
            ) from exc
        except httpx.RequestError as exc:
            raise OCRServiceError(f"OCR service request failed: {exc}") from exc

        try:
            result = response.json()
        except ValueError as exc:
            raise OCRServiceError("OCR service returned invalid JSON") from exc

        if result.get("IsErroredOnProcessing"):
            messages = result.get("ErrorMessage") or ["Unknown error"]
            if isinstance(messages, str):
                messages = [messages]
            raise OCRServiceError(f"OCR service processing error: {', '.join(messages)}")

        parsed = result.get("ParsedResults") or []
        text = "\n".join(item.get("ParsedText") or "" for item in parsed)
        if not text.strip():
            raise OCRServiceError("No text found in OCR results")
        return text


class OCRServiceStrategy(Strategy):
    """Sends the whole document to the OCR service."""

    name = "ocr-service"

    def __init__(self, config: ExtractorConfig, client: OCRServiceClient, mime_type: Optional[str] = None):
        super().__init__(config)
        self.client = client
        self.mime_type = mime_type

    def extract(self, document: SourceDocument) -> str:
        mime_type = self.mime_type or document.mime_type or "application/octet-stream"
        with Timer("ocr_service") as timer:
            text = self.client.parse(document.data, mime_type)

        logger.info(
            "OCR service extraction completed",
            extra_data={
                "file_name": document.file_name,
                "characters_extracted": len(text),
                "ocr_time_ms": timer.get_elapsed_ms(),
            },
        )
        return text


class TesseractStrategy(Strategy):
    """Local OCR with Tesseract for images and rendered PDF pages."""

    name = "tesseract"

    @property
    def ocr(self) -> OCRConfig:
        return self.config.ocr

    def extract(self, document: SourceDocument) -> str:
        if not self.ocr.enabled:
            raise StrategyError("local OCR is disabled")
        if self.ocr.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.ocr.tesseract_cmd

        if document.data.lstrip()[:5] == b"%PDF-":
            return self._ocr_pdf(document)
        return self._ocr_image(document)

    def _tesseract_config(self) -> str:
        options = [f"--psm {self.ocr.psm_mode}", "--oem 1"]
        if self.ocr.tessdata_prefix:
            options.append(f'--tessdata-dir "{self.ocr.tessdata_prefix}"')
        return " ".join(options)

    def _preprocess(self, image: Image.Image) -> Image.Image:
        if not self.ocr.enable_image_preprocessing:
            return image
        image = ImageOps.grayscale(image)
        if self.ocr.contrast_enhancement != 1.0:
            image = ImageEnhance.Contrast(image).enhance(self.ocr.contrast_enhancement)
        return image

    def _recognize(self, image: Image.Image) -> str:
        return pytesseract.image_to_string(
            self._preprocess(image),
            lang=self.ocr.languages,
            config=self._tesseract_config(),
            timeout=self.config.request_timeout_s,
        ).strip()

    def _ocr_image(self, document: SourceDocument) -> str:
        image = Image.open(io.BytesIO(document.data))
        logger.debug(
            "Starting OCR on image",
            extra_data={
                "file_name": document.file_name,
                "image_format": image.format,
                "image_dimensions": f"{image.size[0]}x{image.size[1]}",
            },
        )
        return self._recognize(image)

    def _ocr_page(self, data: bytes, page_num: int, file_name: str) -> str:
        """OCR a single page - worker function for parallel processing."""
        try:
            pdf = fitz.open(stream=data, filetype="pdf")
            try:
                pix = pdf[page_num].get_pixmap(dpi=self.ocr.dpi)
                image = Image.open(io.BytesIO(pix.tobytes("png")))
            finally:
                pdf.close()
            return self._recognize(image)
        except Exception as exc:
            logger.error(
                f"OCR failed for page {page_num + 1}",
                extra_data={
                    "file_name": file_name,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
            return ""

    def _ocr_pdf(self, document: SourceDocument) -> str:
        pdf = fitz.open(stream=document.data, filetype="pdf")
        page_count = pdf.page_count
        pdf.close()

        with ThreadPoolExecutor(max_workers=max(1, self.ocr.max_workers)) as executor:
            page_texts = list(
                executor.map(
                    lambda page_num: self._ocr_page(document.data, page_num, document.file_name),
                    range(page_count),
                )
            )

        pages = [text for text in page_texts if text]
        logger.info(
            "PDF OCR completed for all pages",
            extra_data={
                "file_name": document.file_name,
                "page_count": page_count,
                "pages_with_text": len(pages),
            },
        )
        return "\n\n".join(pages)
