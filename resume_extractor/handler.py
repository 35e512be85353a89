"""Document handler orchestration."""

import base64
import binascii
from typing import Optional

from resume_extractor.chain import FallbackChain, build_strategies
from resume_extractor.config import ExtractorConfig
from resume_extractor.detector import DocumentDetector
from resume_extractor.exceptions import InvalidBase64Error, InvalidRequestError
from resume_extractor.logger import Timer, get_logger, set_request_id
from resume_extractor.models import DocumentFamily, ExtractionResult, QualityFlag, SourceDocument
from resume_extractor.ocr import OCRServiceClient
from resume_extractor.quality import QualityGate

logger = get_logger(__name__)

DIAGNOSTIC_PREFIX = "Unable to extract text"

FAMILY_LABELS = {
    DocumentFamily.PLAIN_TEXT: "text file",
    DocumentFamily.PDF: "PDF document",
    DocumentFamily.DOCX: "Word document",
    DocumentFamily.DOC: "Word document",
    DocumentFamily.RTF: "RTF document",
    DocumentFamily.IMAGE: "image",
    DocumentFamily.UNKNOWN: "file",
}

FAMILY_HINTS = {
    DocumentFamily.PLAIN_TEXT: "The file appears to be empty or is not readable text.",
    DocumentFamily.PDF: "The file may be image-based, password-protected, or corrupted.",
    DocumentFamily.DOCX: "The file may be corrupted, password-protected, or in an unsupported format.",
    DocumentFamily.DOC: "The file may be corrupted, password-protected, or in an unsupported format.",
    DocumentFamily.RTF: "The file may be corrupted or in an unsupported RTF format.",
    DocumentFamily.IMAGE: "The image may be too blurry or may not contain any text.",
    DocumentFamily.UNKNOWN: "The file type may not be supported or the file may be corrupted.",
}


def diagnostic_message(family: DocumentFamily) -> str:
    """User-presentable failure sentence; always starts with ``DIAGNOSTIC_PREFIX``."""
    return (
        f"{DIAGNOSTIC_PREFIX} from this {FAMILY_LABELS[family]}. {FAMILY_HINTS[family]} "
        "Please upload a text-based document (PDF, DOCX, or TXT) or a clearer scan."
    )


def is_diagnostic(text: str) -> bool:
    """Whether an ``extracted_text`` value is a failure diagnostic rather than content."""
    return text.startswith(DIAGNOSTIC_PREFIX)


class DocumentHandler:
    def __init__(
        self,
        config: Optional[ExtractorConfig] = None,
        detector: Optional[DocumentDetector] = None,
        ocr_client: Optional[OCRServiceClient] = None,
    ) -> None:
        """Initialize document handler.

        Args:
            config: Extraction configuration. If None, uses defaults.
            detector: Document family detector. If None, creates default.
            ocr_client: OCR service client. If None, one is built from config.
        """
        self.config = config or ExtractorConfig()
        self.detector = detector or DocumentDetector()
        self.ocr_client = ocr_client or OCRServiceClient.from_config(self.config)
        self.gate = QualityGate(self.config)

    def decode_file(self, encoded: str) -> bytes:
        """Decode base64-encoded file, accepting an optional data URI prefix.

        Raises:
            InvalidBase64Error: If decoding fails
        """
        if encoded.startswith("data:") and "," in encoded:
            encoded = encoded.split(",", 1)[1]
        try:
            return base64.b64decode("".join(encoded.split()), validate=True)
        except (ValueError, binascii.Error) as exc:
            logger.error(
                "Failed to decode base64 string",
                extra_data={
                    "error_type": type(exc).__name__,
                    "encoded_length": len(encoded),
                },
            )
            raise InvalidBase64Error("fileBytes must be a valid base64 string") from exc

    def extract(
        self,
        encoded: Optional[str],
        mime_type: Optional[str],
        file_name: Optional[str],
        request_id: Optional[str] = None,
    ) -> ExtractionResult:
        """Extract text from a base64-encoded document.

        Raises:
            InvalidRequestError: If no document content was provided
            InvalidBase64Error: If the content is not valid base64
        """
        if encoded is None:
            raise InvalidRequestError("fileBytes is required")
        return self.extract_bytes(self.decode_file(encoded), mime_type, file_name, request_id)

    def extract_bytes(
        self,
        file_bytes: bytes,
        mime_type: Optional[str],
        file_name: Optional[str],
        request_id: Optional[str] = None,
    ) -> ExtractionResult:
        """Extract text from raw document bytes. Never raises.

        Returns:
            ExtractionResult whose ``extracted_text`` is either cleaned
            document text or a diagnostic sentence
        """
        set_request_id(request_id)

        document = SourceDocument(data=file_bytes, mime_type=mime_type or "", file_name=file_name or "")
        family = DocumentFamily.UNKNOWN

        with Timer("extraction") as timer:
            try:
                family = self.detector.detect(document.data, document.mime_type, document.file_name)
                strategies = build_strategies(family, self.config, self.ocr_client)
                outcome = FallbackChain(strategies, self.gate).run(document)
            except Exception as exc:
                logger.error(
                    "Extraction pipeline failed unexpectedly",
                    extra_data={
                        "file_name": document.file_name,
                        "family": family.value,
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    },
                    exc_info=True,
                )
                return ExtractionResult(diagnostic_message(family), QualityFlag.FAILED, family)

        if outcome.winner is None:
            logger.warning(
                "No strategy produced readable text",
                extra_data={
                    "file_name": document.file_name,
                    "family": family.value,
                    "attempts": len(outcome.attempts),
                    "file_size_bytes": document.size,
                    "extraction_time_ms": timer.get_elapsed_ms(),
                },
            )
            return ExtractionResult(
                extracted_text=diagnostic_message(family),
                quality_flag=QualityFlag.FAILED,
                family=family,
                attempts=outcome.attempts,
            )

        text = outcome.winner.cleaned_text
        logger.info(
            "Successfully extracted text from document",
            extra_data={
                "file_name": document.file_name,
                "family": family.value,
                "strategy": outcome.winner.strategy_name,
                "quality_flag": outcome.quality_flag.value,
                "character_count": len(text),
                "extraction_time_ms": timer.get_elapsed_ms(),
            },
        )
        logger.debug("Extracted text preview", extra_data={"preview": repr(text[:200])})

        return ExtractionResult(
            extracted_text=text,
            quality_flag=outcome.quality_flag,
            family=family,
            strategy_name=outcome.winner.strategy_name,
            attempts=outcome.attempts,
        )
