"""Document family detection."""

from pathlib import Path
from typing import Optional

from resume_extractor.logger import get_logger
from resume_extractor.models import DocumentFamily

logger = get_logger(__name__)


PDF_SIGNATURE = b"%PDF"
ZIP_SIGNATURE = b"PK\x03\x04"
OLE_SIGNATURE = b"\xd0\xcf\x11\xe0"  # Legacy Office container
RTF_SIGNATURE = b"{\\rtf"
PNG_SIGNATURE = b"\x89PNG"
JPEG_SIGNATURE = b"\xff\xd8\xff"

GENERIC_MIME_TYPES = {"", "application/octet-stream", "binary/octet-stream"}

MIME_FAMILIES = {
    "text/plain": DocumentFamily.PLAIN_TEXT,
    "application/pdf": DocumentFamily.PDF,
    "application/x-pdf": DocumentFamily.PDF,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": DocumentFamily.DOCX,
    "application/msword": DocumentFamily.DOC,
    "application/rtf": DocumentFamily.RTF,
    "application/x-rtf": DocumentFamily.RTF,
    "text/rtf": DocumentFamily.RTF,
    "text/richtext": DocumentFamily.RTF,
    "image/png": DocumentFamily.IMAGE,
    "image/jpeg": DocumentFamily.IMAGE,
    "image/jpg": DocumentFamily.IMAGE,
    "image/tiff": DocumentFamily.IMAGE,
    "image/bmp": DocumentFamily.IMAGE,
    "image/gif": DocumentFamily.IMAGE,
    "image/webp": DocumentFamily.IMAGE,
}

EXTENSION_FAMILIES = {
    ".txt": DocumentFamily.PLAIN_TEXT,
    ".text": DocumentFamily.PLAIN_TEXT,
    ".pdf": DocumentFamily.PDF,
    ".docx": DocumentFamily.DOCX,
    ".doc": DocumentFamily.DOC,
    ".rtf": DocumentFamily.RTF,
    ".png": DocumentFamily.IMAGE,
    ".jpg": DocumentFamily.IMAGE,
    ".jpeg": DocumentFamily.IMAGE,
    ".tif": DocumentFamily.IMAGE,
    ".tiff": DocumentFamily.IMAGE,
    ".bmp": DocumentFamily.IMAGE,
    ".gif": DocumentFamily.IMAGE,
    ".webp": DocumentFamily.IMAGE,
}


class DocumentDetector:
    """Routes a document to a family by MIME type, then extension, then signature.

    Detection never fails: anything unrecognized is ``DocumentFamily.UNKNOWN``
    and gets the best-effort chain.
    """

    def detect(self, file_bytes: bytes, mime_type: Optional[str], file_name: Optional[str]) -> DocumentFamily:
        normalized_mime = self._normalize_mime(mime_type)

        family = MIME_FAMILIES.get(normalized_mime)
        source = "mime_type"

        if family is None:
            family = EXTENSION_FAMILIES.get(Path(file_name or "").suffix.lower())
            source = "extension"

        if family is None:
            family = self._sniff_family(file_bytes)
            source = "signature"

        if family is None:
            logger.warning(
                "Unrecognized document type, using best-effort extraction",
                extra_data={
                    "file_name": file_name,
                    "provided_mime_type": mime_type,
                    "file_size_bytes": len(file_bytes),
                },
            )
            return DocumentFamily.UNKNOWN

        logger.debug(
            "Document family detected",
            extra_data={
                "file_name": file_name,
                "provided_mime_type": mime_type,
                "family": family.value,
                "detected_from": source,
            },
        )
        return family

    @staticmethod
    def _normalize_mime(mime_type: Optional[str]) -> str:
        """Lowercase and drop parameters such as ``; charset=utf-8``."""
        if not mime_type:
            return ""
        return mime_type.split(";", 1)[0].strip().lower()

    @staticmethod
    def _sniff_family(file_bytes: bytes) -> Optional[DocumentFamily]:
        """Detect family from file signature/magic bytes."""
        head = file_bytes[:8]
        if head.startswith(PDF_SIGNATURE):
            return DocumentFamily.PDF
        if head.startswith(ZIP_SIGNATURE):
            # DOCX files are ZIP archives
            return DocumentFamily.DOCX
        if head.startswith(OLE_SIGNATURE):
            return DocumentFamily.DOC
        if head.startswith(RTF_SIGNATURE):
            return DocumentFamily.RTF
        if head.startswith(PNG_SIGNATURE) or head.startswith(JPEG_SIGNATURE):
            return DocumentFamily.IMAGE
        return None
