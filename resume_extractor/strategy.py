"""Base class for extraction strategies."""

from resume_extractor.config import ExtractorConfig
from resume_extractor.logger import Timer, get_logger, strategy_var
from resume_extractor.models import ExtractionAttempt, SourceDocument

logger = get_logger(__name__)


class Strategy:
    """One way of turning document bytes into raw text.

    Subclasses implement ``extract`` and may raise freely; ``run`` is the only
    entry point the fallback chain uses and always returns an
    ``ExtractionAttempt``.
    """

    name = "strategy"
    # Scavenges bytes without understanding the format; never displaces a degraded result
    salvage = False

    def __init__(self, config: ExtractorConfig):
        self.config = config

    def extract(self, document: SourceDocument) -> str:
        raise NotImplementedError

    def run(self, document: SourceDocument) -> ExtractionAttempt:
        token = strategy_var.set(self.name)
        try:
            with Timer(self.name) as timer:
                try:
                    raw_output = self.extract(document)
                except Exception as exc:
                    attempt = ExtractionAttempt.failed(self.name, f"{type(exc).__name__}: {exc}")
                else:
                    if raw_output and raw_output.strip():
                        attempt = ExtractionAttempt.success(self.name, raw_output)
                    else:
                        attempt = ExtractionAttempt.failed(self.name, "no text produced")
            attempt.elapsed_ms = timer.get_elapsed_ms()

            if attempt.succeeded:
                logger.debug(
                    "Strategy produced text",
                    extra_data={
                        "file_name": document.file_name,
                        "characters_extracted": len(attempt.raw_output),
                        "elapsed_ms": attempt.elapsed_ms,
                    },
                )
            else:
                logger.info(
                    "Strategy failed",
                    extra_data={
                        "file_name": document.file_name,
                        "reason": attempt.failure_reason,
                        "elapsed_ms": attempt.elapsed_ms,
                    },
                )
            return attempt
        finally:
            strategy_var.reset(token)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
