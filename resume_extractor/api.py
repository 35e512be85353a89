"""HTTP interface for the upload front-end."""

import os
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from resume_extractor import __version__
from resume_extractor.config import ExtractorConfig
from resume_extractor.exceptions import InvalidRequestError
from resume_extractor.handler import DocumentHandler
from resume_extractor.logger import get_logger, setup_logging

logger = get_logger(__name__)


class ExtractTextRequest(BaseModel):
    """Upload payload. ``base64File``/``fileType`` are accepted for older clients."""

    model_config = ConfigDict(populate_by_name=True)

    file_bytes: Optional[str] = Field(default=None, alias="fileBytes")
    base64_file: Optional[str] = Field(default=None, alias="base64File")
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    file_type: Optional[str] = Field(default=None, alias="fileType")
    file_name: Optional[str] = Field(default=None, alias="fileName")


class ExtractTextResponse(BaseModel):
    extractedText: str
    qualityFlag: str
    family: str
    strategy: Optional[str] = None


def create_app(config: Optional[ExtractorConfig] = None, handler: Optional[DocumentHandler] = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Extraction configuration. If None, read from the environment.
        handler: Prebuilt handler (takes precedence over config).
    """
    handler = handler or DocumentHandler(config=config or ExtractorConfig.from_env())

    app = FastAPI(title="Resume Text Extractor", version=__version__)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "GET", "OPTIONS"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.post("/extract-text", response_model=ExtractTextResponse)
    def extract_text(payload: ExtractTextRequest, request: Request):
        encoded = payload.file_bytes if payload.file_bytes is not None else payload.base64_file

        try:
            result = handler.extract(
                encoded=encoded,
                mime_type=payload.mime_type or payload.file_type,
                file_name=payload.file_name,
                request_id=request.headers.get("x-request-id"),
            )
        except InvalidRequestError as exc:
            logger.warning("Rejected extraction request", extra_data={"error": str(exc)})
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        return result.to_dict()

    return app


def main():
    import uvicorn

    setup_logging(os.environ.get("LOG_LEVEL", "INFO"))
    uvicorn.run(
        create_app(),
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8000")),
    )


if __name__ == "__main__":
    main()
