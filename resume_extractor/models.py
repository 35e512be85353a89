"""Data models for resume extractor."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class DocumentFamily(str, Enum):
    """Document families the input normalizer can route to."""

    PLAIN_TEXT = "plain-text"
    PDF = "pdf"
    DOCX = "docx"
    DOC = "doc"
    RTF = "rtf"
    IMAGE = "image"
    UNKNOWN = "unknown"


class QualityFlag(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"
    FAILED = "failed"


@dataclass(frozen=True)
class SourceDocument:
    """An uploaded document as received from the caller."""

    data: bytes
    mime_type: str
    file_name: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class ExtractionAttempt:
    """Outcome of running one strategy against a document."""

    strategy_name: str
    succeeded: bool
    raw_output: Optional[str] = None
    failure_reason: Optional[str] = None
    cleaned_text: Optional[str] = None
    elapsed_ms: int = 0

    @classmethod
    def success(cls, strategy_name: str, raw_output: str) -> "ExtractionAttempt":
        return cls(strategy_name=strategy_name, succeeded=True, raw_output=raw_output)

    @classmethod
    def failed(cls, strategy_name: str, reason: str) -> "ExtractionAttempt":
        return cls(strategy_name=strategy_name, succeeded=False, failure_reason=reason)


@dataclass
class ExtractionResult:
    """Result of document extraction.

    ``extracted_text`` is never empty: on total failure it carries a
    diagnostic sentence (see ``resume_extractor.handler.is_diagnostic``).
    """

    extracted_text: str
    quality_flag: QualityFlag
    family: DocumentFamily = DocumentFamily.UNKNOWN
    strategy_name: Optional[str] = None
    attempts: list[ExtractionAttempt] = field(default_factory=list)

    @property
    def character_count(self) -> int:
        return len(self.extracted_text)

    @property
    def ocr_used(self) -> bool:
        return self.strategy_name in ("ocr-service", "tesseract")

    def to_dict(self) -> dict:
        """Serialize to the output contract consumed by the front-end."""
        return {
            "extractedText": self.extracted_text,
            "qualityFlag": self.quality_flag.value,
            "family": self.family.value,
            "strategy": self.strategy_name,
        }
