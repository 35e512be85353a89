"""High-level API for resume text extraction."""

import mimetypes
from pathlib import Path
from typing import Optional

from resume_extractor.config import ExtractorConfig
from resume_extractor.handler import DocumentHandler
from resume_extractor.models import ExtractionResult


def parse_document(
    file_path: Optional[str] = None,
    file_bytes: Optional[bytes] = None,
    file_name: Optional[str] = None,
    mime_type: Optional[str] = None,
    config: Optional[ExtractorConfig] = None,
) -> ExtractionResult:
    """Extract cleaned text from a resume document.

    Convenience function that accepts either a file path or raw bytes.

    Args:
        file_path: Path to document file (alternative to file_bytes)
        file_bytes: Raw document bytes (alternative to file_path)
        file_name: Original filename, used for type detection with file_bytes
        mime_type: MIME type hint (optional, guessed from the path if missing)
        config: Extraction configuration (optional, uses defaults if not provided)

    Returns:
        ExtractionResult; check ``quality_flag`` to tell text from a diagnostic

    Raises:
        ValueError: If neither or both of file_path and file_bytes are provided,
            or the path does not exist

    Examples:
        >>> result = parse_document(file_path="resume.pdf")
        >>> print(result.extracted_text)

        >>> config = ExtractorConfig(ocr_api_key="...", min_quality_length=100)
        >>> with open("resume.docx", "rb") as f:
        ...     result = parse_document(file_bytes=f.read(), file_name="resume.docx", config=config)
    """
    if file_path is not None and file_bytes is not None:
        raise ValueError("Provide either file_path or file_bytes, not both")
    if file_path is None and file_bytes is None:
        raise ValueError("Must provide either file_path or file_bytes")

    if file_path is not None:
        path = Path(file_path)
        if not path.is_file():
            raise ValueError(f"File not found: {file_path}")
        file_bytes = path.read_bytes()
        file_name = file_name or path.name
        if not mime_type:
            mime_type, _ = mimetypes.guess_type(str(path))

    handler = DocumentHandler(config=config)
    return handler.extract_bytes(file_bytes, mime_type, file_name)
