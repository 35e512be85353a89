"""Fallback chain and per-family strategy selection."""

from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from resume_extractor.cleaner import clean_text
from resume_extractor.config import ExtractorConfig
from resume_extractor.logger import get_logger
from resume_extractor.models import DocumentFamily, ExtractionAttempt, QualityFlag, SourceDocument
from resume_extractor.ocr import OCRServiceClient, OCRServiceStrategy, TesseractStrategy
from resume_extractor.pdf import PdfContentStreamStrategy, PdfLayoutStrategy, PdfPrintableRunsStrategy
from resume_extractor.quality import QualityGate, Verdict, alpha_ratio
from resume_extractor.strategy import Strategy
from resume_extractor.text import (
    PlainTextStrategy,
    PrintableRunsStrategy,
    RtfControlWordStrategy,
    StripRtfStrategy,
)
from resume_extractor.word import (
    DocBinaryStrategy,
    DocConverterStrategy,
    DocxDocumentStrategy,
    DocxTextRunsStrategy,
    DocxXmlStrategy,
)

logger = get_logger(__name__)

# Most precise first, most lenient last
STRATEGY_CHAINS: dict[DocumentFamily, tuple[str, ...]] = {
    DocumentFamily.PLAIN_TEXT: ("plain-text",),
    DocumentFamily.PDF: ("pdf-layout", "pdf-content-stream", "ocr-service", "tesseract", "pdf-printable-runs"),
    DocumentFamily.DOCX: ("docx-document", "docx-xml", "docx-text-runs", "doc-binary", "printable-runs"),
    DocumentFamily.DOC: ("doc-converter", "docx-document", "docx-text-runs", "doc-binary", "printable-runs"),
    DocumentFamily.RTF: ("rtf-striprtf", "rtf-control-words", "ocr-service"),
    DocumentFamily.IMAGE: ("ocr-service", "tesseract"),
    DocumentFamily.UNKNOWN: ("ocr-service", "tesseract", "plain-text", "printable-runs"),
}

# MIME type sent to the OCR service when the declared one may be generic
OCR_MIME_TYPES = {
    DocumentFamily.PDF: "application/pdf",
}

SIMPLE_STRATEGIES: dict[str, Callable[[ExtractorConfig], Strategy]] = {
    cls.name: cls
    for cls in (
        PlainTextStrategy,
        PrintableRunsStrategy,
        StripRtfStrategy,
        RtfControlWordStrategy,
        PdfLayoutStrategy,
        PdfContentStreamStrategy,
        PdfPrintableRunsStrategy,
        TesseractStrategy,
        DocxDocumentStrategy,
        DocxXmlStrategy,
        DocxTextRunsStrategy,
        DocBinaryStrategy,
        DocConverterStrategy,
    )
}


def build_strategies(
    family: DocumentFamily,
    config: ExtractorConfig,
    ocr_client: Optional[OCRServiceClient] = None,
) -> list[Strategy]:
    """Instantiate the fallback chain for a document family."""
    ocr_client = ocr_client or OCRServiceClient.from_config(config)
    strategies = []
    for name in STRATEGY_CHAINS[family]:
        if name == OCRServiceStrategy.name:
            strategies.append(OCRServiceStrategy(config, ocr_client, OCR_MIME_TYPES.get(family)))
        else:
            strategies.append(SIMPLE_STRATEGIES[name](config))
    return strategies


@dataclass
class ChainOutcome:
    quality_flag: QualityFlag
    winner: Optional[ExtractionAttempt] = None
    attempts: list[ExtractionAttempt] = field(default_factory=list)


class FallbackChain:
    """Runs strategies in order until one's cleaned output passes the quality gate.

    Strategies after the winner are never invoked. If nothing passes, the
    first readable-but-short attempt is kept as a degraded result; salvage
    strategies are skipped once such an attempt exists.
    """

    def __init__(
        self,
        strategies: Sequence[Strategy],
        gate: QualityGate,
        cleaner: Callable[[str], str] = clean_text,
    ):
        self.strategies = list(strategies)
        self.gate = gate
        self.cleaner = cleaner

    def run(self, document: SourceDocument) -> ChainOutcome:
        attempts: list[ExtractionAttempt] = []
        degraded: Optional[ExtractionAttempt] = None

        for strategy in self.strategies:
            if strategy.salvage and degraded is not None:
                logger.info(
                    "Skipping salvage strategy after degraded result",
                    extra_data={"skipped_strategy": strategy.name, "degraded_strategy": degraded.strategy_name},
                )
                continue

            attempt = strategy.run(document)
            attempts.append(attempt)
            if not attempt.succeeded:
                continue

            attempt.cleaned_text = self.cleaner(attempt.raw_output)
            verdict = self.gate.evaluate(attempt.cleaned_text)
            if verdict is Verdict.PASS:
                logger.info(
                    "Strategy passed quality gate",
                    extra_data={
                        "file_name": document.file_name,
                        "winning_strategy": strategy.name,
                        "attempt_number": len(attempts),
                        "character_count": len(attempt.cleaned_text),
                    },
                )
                return ChainOutcome(QualityFlag.OK, attempt, attempts)

            attempt.succeeded = False
            attempt.failure_reason = (
                f"below quality gate ({len(attempt.cleaned_text)} chars, "
                f"alpha ratio {alpha_ratio(attempt.cleaned_text):.2f})"
            )
            if verdict is Verdict.WEAK and degraded is None:
                degraded = attempt

            logger.info(
                "Strategy output rejected by quality gate",
                extra_data={
                    "file_name": document.file_name,
                    "rejected_strategy": strategy.name,
                    "reason": attempt.failure_reason,
                },
            )

        if degraded is not None:
            return ChainOutcome(QualityFlag.DEGRADED, degraded, attempts)
        return ChainOutcome(QualityFlag.FAILED, None, attempts)
