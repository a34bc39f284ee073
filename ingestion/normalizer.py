"""
OCR Text Normalization

Cleans recognition output of scanned exam pages before it is decoded:
  - page codes / barcodes, margin boilerplate, bracketed header notes
  - isolated figure labels, single letters, bare question numbers
  - underscore/dash rules and long digit runs
  - OCR-split stacked fractions ("5" over "12") rejoined as "5/12"
  - redundant whitespace

Reading order (line order) is preserved.
"""

import logging
import re

log = logging.getLogger(__name__)

# Standalone figure labels, single letters, bare question numbers
_LABEL_LINE_RE = re.compile(r"^[ \t]*(?:Figure[ \t]*\d+|[A-Z]|\d+\.)[ \t]*$", re.MULTILINE | re.IGNORECASE)
_MARGIN_RE = re.compile(r"DO[ \t]*NOT[ \t]*WRITE[ \t]*IN[ \t]*THIS[ \t]*AREA", re.IGNORECASE)
_BRACKET_LINE_RE = re.compile(r"^[ \t]*\[[^\]\n]*\][ \t]*$", re.MULTILINE)
# Barcode / page code like *P72131A0220*: upper-case, at least one digit
_PAGE_CODE_RE = re.compile(r"^[ \t]*\*?(?=[A-Z0-9]*\d)[A-Z0-9]{8,}\*?[ \t]*$", re.MULTILINE)
# Short all-caps noise like XX, KX/2 (must contain a letter, so bare numbers survive)
_CAPS_NOISE_RE = re.compile(r"^[ \t]*(?=[A-Z0-9/]*[A-Z])[A-Z0-9/]{2,10}[ \t]*$", re.MULTILINE)
_RULE_LINE_RE = re.compile(r"^[_\-\u2013 \t]{5,}$", re.MULTILINE)
_DIGIT_RUN_RE = re.compile(r"^[ \t]*\d{4,}[ \t]*$", re.MULTILINE)
# "5\n12" or "12mg\n5" on their own lines -> "5/12", "12mg/5"
_STACKED_FRACTION_RE = re.compile(r"^[ \t]*(\d[0-9A-Za-z]{0,7}(?:[ \t]?[A-Za-z]{1,3})?)[ \t]*\n[ \t]*(\d{1,4})[ \t]*$", re.MULTILINE)

_INVISIBLE_RE = re.compile(r"[\u0000-\u0008\u000B\u000C\u000E-\u001F\u007F\u200B-\u200D\uFEFF]")
_ODD_SPACE_RE = re.compile(r"[\u00A0\u2000-\u200A\u202F\u205F]")


def normalize_ocr_text(raw: str) -> str:
    """Strip scanning artifacts and rejoin stacked fractions. Pure."""
    if not raw or not raw.strip():
        return ""

    text = raw.replace("\r\n", "\n").replace("\r", "\n")
    text = _INVISIBLE_RE.sub("", text)
    text = _ODD_SPACE_RE.sub(" ", text)

    text = _LABEL_LINE_RE.sub("", text)
    text = _MARGIN_RE.sub("", text)
    text = _BRACKET_LINE_RE.sub("", text)
    text = _PAGE_CODE_RE.sub("", text)
    text = _CAPS_NOISE_RE.sub("", text)
    text = _RULE_LINE_RE.sub("", text)
    text = _DIGIT_RUN_RE.sub("", text)

    # Artifacts leave blank lines behind; drop them so stacked fractions become adjacent
    text = "\n".join(line.rstrip() for line in text.split("\n") if line.strip())
    text = _STACKED_FRACTION_RE.sub(r"\1/\2", text)

    text = re.sub(r"[ \t]{2,}", " ", text)
    text = re.sub(r"\n{2,}", "\n", text)
    return text.strip()
