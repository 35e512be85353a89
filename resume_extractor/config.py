"""Configuration classes for resume extractor."""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

ENV_PREFIX = "RESUME_EXTRACTOR_"


@dataclass
class OCRConfig:
    """Configuration for local Tesseract OCR.

    Local OCR runs after the OCR service in every OCR-eligible fallback chain.
    Disable it on hosts without a Tesseract binary to skip the attempt.

    Examples:
        >>> # Default configuration
        >>> config = OCRConfig()

        >>> # Sharper scans at the cost of memory
        >>> config = OCRConfig(dpi=300, max_workers=4)

        >>> # No local OCR available
        >>> config = OCRConfig(enabled=False)
    """

    enabled: bool = True
    """Whether the local Tesseract strategy is attempted at all."""

    tesseract_cmd: str = "tesseract"
    """Path to tesseract binary. Default: "tesseract" (assumes in PATH)."""

    tessdata_prefix: Optional[str] = None
    """Optional path to tessdata directory. If None, uses system default."""

    languages: str = "eng"
    """OCR languages in Tesseract format (e.g., "eng", "eng+fra")."""

    dpi: int = 200
    """Image DPI for rendering PDF pages before OCR.

    Resumes are usually one or two pages, so a slightly higher default than
    bulk document processing is affordable.
    """

    psm_mode: int = 6
    """Page segmentation mode (0-13). Default: 6 (uniform block of text)."""

    max_workers: int = 2
    """Number of parallel workers for page OCR."""

    enable_image_preprocessing: bool = True
    """Convert to grayscale and boost contrast before OCR."""

    contrast_enhancement: float = 1.2
    """Contrast enhancement factor for image preprocessing.

    - 1.0: No enhancement
    - 1.2: Default, 20% contrast boost (good for scanned documents)
    - 1.5: Strong enhancement (for poor quality scans)
    """


@dataclass
class ExtractorConfig:
    """Configuration for the extraction pipeline.

    Passed to ``DocumentHandler`` at construction; nothing is read from the
    environment unless ``from_env`` is called explicitly.
    """

    ocr_endpoint: str = "https://api.ocr.space/parse/image"
    """OCR service endpoint accepting base64 documents."""

    ocr_api_key: Optional[str] = None
    """OCR service API key. If None, the OCR service strategy is skipped."""

    min_quality_length: int = 50
    """Minimum cleaned length for an attempt to pass the quality gate."""

    min_alpha_ratio: float = 0.5
    """Minimum share of alphabetic characters among non-whitespace characters."""

    min_degraded_length: int = 10
    """Minimum cleaned length for a sub-threshold attempt to be returned as degraded."""

    request_timeout_ms: int = 30_000
    """Timeout for the OCR service call and external converter processes."""

    ocr: OCRConfig = field(default_factory=OCRConfig)

    @property
    def request_timeout_s(self) -> float:
        return self.request_timeout_ms / 1000

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ExtractorConfig":
        """Build a configuration from ``RESUME_EXTRACTOR_*`` variables.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Returns:
            ExtractorConfig with defaults for every unset variable
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            return value if value not in (None, "") else None

        config = cls()
        if get("OCR_ENDPOINT"):
            config.ocr_endpoint = get("OCR_ENDPOINT")
        config.ocr_api_key = get("OCR_API_KEY")
        if get("MIN_QUALITY_LENGTH"):
            config.min_quality_length = int(get("MIN_QUALITY_LENGTH"))
        if get("MIN_ALPHA_RATIO"):
            config.min_alpha_ratio = float(get("MIN_ALPHA_RATIO"))
        if get("MIN_DEGRADED_LENGTH"):
            config.min_degraded_length = int(get("MIN_DEGRADED_LENGTH"))
        if get("REQUEST_TIMEOUT_MS"):
            config.request_timeout_ms = int(get("REQUEST_TIMEOUT_MS"))

        if get("TESSERACT_ENABLED"):
            config.ocr.enabled = get("TESSERACT_ENABLED").lower() in ("1", "true", "yes")
        if get("TESSERACT_CMD"):
            config.ocr.tesseract_cmd = get("TESSERACT_CMD")
        config.ocr.tessdata_prefix = get("TESSDATA_PREFIX")
        if get("OCR_LANGUAGES"):
            config.ocr.languages = get("OCR_LANGUAGES")
        if get("OCR_DPI"):
            config.ocr.dpi = int(get("OCR_DPI"))

        return config
