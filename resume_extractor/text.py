"""Plain text, RTF and last-resort printable-run extractors."""

import codecs
import re

from striprtf.striprtf import rtf_to_text

from resume_extractor.exceptions import DecodingError, StrategyError
from resume_extractor.models import SourceDocument
from resume_extractor.strategy import Strategy

FALLBACK_ENCODINGS = ("utf-8", "cp1252", "latin-1")
MAX_CONTROL_CHAR_RATIO = 0.1

PRINTABLE_RUN = re.compile(rb"[\x20-\x7e\t]{6,}")
# A word: three or more letters, capitalised or in one case, optionally wrapped in punctuation
WORD_TOKEN = re.compile(r"[(\"']?(?:[A-Z][a-z]{2,}|[a-z]{3,}|[A-Z]{3,})[.,:;!?)\"']?")
VOWEL = re.compile(r"[aeiouyAEIOUY]")
MIN_RUN_WORDS = 2
MIN_RUN_LETTER_SHARE = 0.5

# RTF tokens: control word, hex escape, control symbol, group delimiters
RTF_TOKEN = re.compile(
    r"\\([a-zA-Z]{1,32})(-?\d{1,10})? ?|\\'([0-9a-fA-F]{2})|\\([^a-zA-Z])|([{}])|[\r\n]"
)
RTF_SKIPPED_DESTINATIONS = {
    "fonttbl", "colortbl", "stylesheet", "info", "pict", "object", "header",
    "footer", "headerl", "headerr", "footerl", "footerr", "listtable",
    "listoverridetable", "rsidtbl", "generator", "xmlnstbl", "themedata",
    "datastore", "latentstyles", "filetbl", "revtbl", "fldinst",
}
RTF_CONTROL_TEXT = {"par": "\n", "line": "\n", "sect": "\n\n", "page": "\n\n", "row": "\n",
                    "tab": "\t", "cell": " | ", "emdash": "-", "endash": "-", "bullet": "*",
                    "lquote": "'", "rquote": "'", "ldblquote": '"', "rdblquote": '"'}
RTF_SYMBOL_TEXT = {"\n": "\n", "\r": "\n", "\\": "\\", "{": "{", "}": "}", "~": " ", "_": "-", "-": "", "'": "'"}


def decode_text(data: bytes) -> str:
    """Decode text bytes, honouring BOMs and falling back through common encodings.

    Raises:
        DecodingError: If the bytes look like binary content rather than text
    """
    if data.startswith(codecs.BOM_UTF8):
        return data[len(codecs.BOM_UTF8):].decode("utf-8", errors="replace")
    if data.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        return data.decode("utf-16", errors="replace")

    if b"\x00" in data:
        raise DecodingError("content contains NUL bytes and is not plain text")

    for encoding in FALLBACK_ENCODINGS:
        try:
            text = data.decode(encoding)
        except UnicodeDecodeError:
            continue
        break

    control_chars = sum(1 for ch in text if not ch.isprintable() and not ch.isspace())
    if text and control_chars / len(text) > MAX_CONTROL_CHAR_RATIO:
        raise DecodingError("content is mostly control characters")
    return text


def strip_rtf(rtf: str) -> str:
    """Convert RTF source to text by dropping control words and groups.

    Ignorable destinations (``{\\*...}``, font and colour tables, document
    info, pictures) are skipped wholesale; ``\\uN`` escapes and ``\\'hh`` bytes
    are decoded.
    """
    out: list[str] = []
    skip_stack: list[bool] = []
    skipping = False
    uc_skip = 0
    pos = 0

    for match in RTF_TOKEN.finditer(rtf):
        literal = rtf[pos:match.start()]
        pos = match.end()
        if literal:
            if uc_skip:
                literal = literal[1:]
                uc_skip = 0
            if not skipping:
                out.append(literal)

        word, arg, hex_byte, symbol, brace = match.groups()
        if brace == "{":
            skip_stack.append(skipping)
        elif brace == "}":
            skipping = skip_stack.pop() if skip_stack else False
        elif symbol == "*":
            skipping = True
        elif word:
            if word in RTF_SKIPPED_DESTINATIONS:
                skipping = True
            elif skipping:
                continue
            elif word == "u" and arg:
                code = int(arg)
                out.append(chr(code + 65536 if code < 0 else code))
                uc_skip = 1
            else:
                out.append(RTF_CONTROL_TEXT.get(word, ""))
        elif hex_byte and uc_skip:
            uc_skip = 0  # ANSI fallback for the preceding \u escape
        elif hex_byte and not skipping:
            out.append(bytes([int(hex_byte, 16)]).decode("cp1252", errors="replace"))
        elif symbol and not skipping:
            out.append(RTF_SYMBOL_TEXT.get(symbol, ""))

    tail = rtf[pos:]
    if tail and not skipping:
        out.append(tail)
    return "".join(out)


def is_wordlike(fragment: str, min_words: int = MIN_RUN_WORDS) -> bool:
    """Whether a fragment of scavenged text reads as words rather than byte noise.

    Needs ``min_words`` whitespace-separated tokens that are whole words
    (three or more letters with a vowel), and letters must make up
    at least half of the fragment, spaces and digits included.
    """
    fragment = fragment.strip()
    if not fragment:
        return False
    words = [token for token in fragment.split() if WORD_TOKEN.fullmatch(token) and VOWEL.search(token)]
    if len(words) < min_words:
        return False
    letters = sum(1 for ch in fragment if ch.isalpha())
    return letters / len(fragment) >= MIN_RUN_LETTER_SHARE


def printable_runs(data: bytes) -> str:
    """Pull runs of printable ASCII that contain real words out of arbitrary bytes."""
    runs = []
    for match in PRINTABLE_RUN.finditer(data):
        run = match.group().decode("ascii").strip()
        if is_wordlike(run):
            runs.append(run)
    return "\n".join(runs)


class PlainTextStrategy(Strategy):
    name = "plain-text"

    def extract(self, document: SourceDocument) -> str:
        return decode_text(document.data)


def rtf_source(data: bytes) -> str:
    """RTF source text; anything without an RTF header is not parsed as RTF."""
    if not data.lstrip().startswith(b"{\\rtf"):
        raise StrategyError("content has no RTF header")
    return data.decode("latin-1")


class StripRtfStrategy(Strategy):
    """RTF via the striprtf parser."""

    name = "rtf-striprtf"

    def extract(self, document: SourceDocument) -> str:
        return rtf_to_text(rtf_source(document.data))


class RtfControlWordStrategy(Strategy):
    """RTF via the built-in control-word stripper."""

    name = "rtf-control-words"

    def extract(self, document: SourceDocument) -> str:
        return strip_rtf(rtf_source(document.data))


class PrintableRunsStrategy(Strategy):
    name = "printable-runs"
    salvage = True

    def extract(self, document: SourceDocument) -> str:
        return printable_runs(document.data)
