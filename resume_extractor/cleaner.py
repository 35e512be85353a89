"""Shared post-processing for extracted text.

Every strategy's raw output goes through the same ordered rules before the
quality gate sees it. The rules are plain ``str -> str`` functions, and the
whole sequence is a fixed point: cleaning already-cleaned text changes nothing.
"""

import re
from typing import Callable

CleaningRule = Callable[[str], str]

KEPT_CONTROL_CHARACTERS = {"\n", "\r", "\t"}

# RTF control words that leak out of half-parsed RTF
RTF_CONTROL_WORDS = (
    "rtf", "ansi", "ansicpg", "deff", "deflang", "uc", "u", "lang", "f", "fs", "cf", "cb",
    "highlight", "b", "i", "ul", "ulnone", "strike", "plain", "pard", "par", "line", "tab",
    "ql", "qr", "qc", "qj", "li", "ri", "fi", "sa", "sb", "sl", "slmult", "sect", "page",
    "intbl", "trowd", "cellx", "cell", "row", "nowidctlpar", "widctlpar",
)

# Structural tokens that leak out of naive PDF, DOCX and RTF decoding.
# Tokens are only removed in their structural context; resume text that merely
# looks like them is content. Order matters; see strip_structural_noise.
NOISE_PATTERNS = [
    # PDF
    re.compile(r"\btrailer[ \t]*(?=<<)"),
    re.compile(r"(?<=>>)[ \t]*stream\b"),
    re.compile(r"<<.*?>>"),
    re.compile(r"\b(?:endobj|endstream|startxref|xref)\b"),
    re.compile(r"%%EOF"),
    re.compile(r"\b\d+[ \t]+\d+[ \t]+(?:obj|R)\b"),
    re.compile(r"(?<!\S)/[A-Za-z][\w.+-]*(?=\s|$)"),
    # text operators, only next to their operands
    re.compile(r"(?<!\S)BT(?=[^\S\n]+[/\[(<\d-])"),
    re.compile(r"(?:(?<=[)\]>])|(?<=\bTj)|(?<=\bTJ))[^\S\n]*ET(?!\S)"),
    re.compile(r"(?<=[)\]>])[^\S\n]*(?:Tj|TJ)(?!\S)"),
    re.compile(r"(?<!\S)(?:-?(?:\d+\.?\d*|\.\d+)[^\S\n]+)+(?:Td|TD|Tm|Tf|Tc|Tw|Tz|TL|Ts)(?!\S)"),
    re.compile(r"(?<!\S)T\*(?!\S)"),
    # XML: declarations, namespace attributes, namespaced or attributed tags
    re.compile(r"<\?xml[^>]*\?>"),
    re.compile(r"\bxmlns(?::[\w.-]+)?=\"[^\"]*\""),
    re.compile(r"</?[A-Za-z][\w.-]*:[\w.-]+(?:[ \t][^<>\n]*)?/?>"),
    re.compile(r"<[A-Za-z][\w.-]*[ \t][^<>\n]*=[^<>\n]*>"),
    # RTF
    re.compile(r"\\'[0-9a-fA-F]{2}"),
    re.compile(r"\\(?:%s)(?![a-z])-?\d* ?" % "|".join(sorted(RTF_CONTROL_WORDS, key=len, reverse=True))),
]

HORIZONTAL_WHITESPACE = re.compile(r"[^\S\n]+")
EXCESS_BLANK_LINES = re.compile(r"\n{3,}")
ALPHANUMERIC = re.compile(r"[^\W_]")


def replace_control_characters(text: str) -> str:
    """Replace non-printable characters, other than basic whitespace, with a space."""
    return "".join(
        ch if ch in KEPT_CONTROL_CHARACTERS or (ch.isprintable() and ch != "\ufffd") else " "
        for ch in text
    )


def strip_structural_noise(text: str) -> str:
    """Remove leaked PDF objects, XML markup and RTF control words.

    Applied until nothing matches, since removing one token can expose another
    (``1 0 /Name R`` only reads as a reference once the name is gone). Every
    match is at least two characters and becomes one space, so this terminates.
    """
    while True:
        stripped = text
        for pattern in NOISE_PATTERNS:
            stripped = pattern.sub(" ", stripped)
        if stripped == text:
            return text
        text = stripped


def normalize_whitespace(text: str) -> str:
    """Collapse horizontal whitespace, normalize line breaks, trim lines."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = HORIZONTAL_WHITESPACE.sub(" ", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    return EXCESS_BLANK_LINES.sub("\n\n", text)


def alphanumeric_ratio(line: str) -> float:
    if not line:
        return 0.0
    return len(ALPHANUMERIC.findall(line)) / len(line)


def is_noise_line(line: str) -> bool:
    """Whether a non-empty line is too symbol-heavy to be content.

    Short lines get the strictest ratio; long lines are only dropped when
    almost nothing in them is a letter or digit. Headers like ``Skills:`` or
    ``C#`` survive.
    """
    length = len(line)
    if length < 5:
        threshold = 0.4
    elif length <= 10:
        threshold = 0.25
    else:
        threshold = 0.15
    return alphanumeric_ratio(line) < threshold


def drop_noise_lines(text: str) -> str:
    lines = [line for line in text.split("\n") if not line or not is_noise_line(line)]
    return EXCESS_BLANK_LINES.sub("\n\n", "\n".join(lines))


def final_trim(text: str) -> str:
    return text.strip()


CLEANING_RULES: list[CleaningRule] = [
    replace_control_characters,
    strip_structural_noise,
    normalize_whitespace,
    drop_noise_lines,
    final_trim,
]


def clean_text(text: str) -> str:
    """Run the cleaning rules in order."""
    for rule in CLEANING_RULES:
        text = rule(text)
    return text
