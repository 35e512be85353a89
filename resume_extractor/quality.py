"""Quality gate applied to cleaned strategy output."""

from enum import Enum

from resume_extractor.config import ExtractorConfig


class Verdict(str, Enum):
    PASS = "pass"
    WEAK = "weak"  # readable but shorter than the gate requires
    REJECT = "reject"


def alpha_ratio(text: str) -> float:
    """Share of alphabetic characters among non-whitespace characters."""
    visible = [ch for ch in text if not ch.isspace()]
    if not visible:
        return 0.0
    return sum(1 for ch in visible if ch.isalpha()) / len(visible)


class QualityGate:
    """Accepts or rejects an attempt's cleaned text.

    Both thresholds are inclusive: text of exactly ``min_quality_length``
    characters with exactly ``min_alpha_ratio`` passes.
    """

    def __init__(self, config: ExtractorConfig):
        self.min_length = config.min_quality_length
        self.min_alpha_ratio = config.min_alpha_ratio
        self.min_degraded_length = config.min_degraded_length

    def evaluate(self, text: str) -> Verdict:
        if not text or alpha_ratio(text) < self.min_alpha_ratio:
            return Verdict.REJECT
        if len(text) >= self.min_length:
            return Verdict.PASS
        if len(text) >= self.min_degraded_length:
            return Verdict.WEAK
        return Verdict.REJECT

    def passes(self, text: str) -> bool:
        return self.evaluate(text) is Verdict.PASS
