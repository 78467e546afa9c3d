"""Answer normalization.

Turns a raw answer into the comparison key used by every validation tier.
"""

import re
import unicodedata

# Combining Diacritical Marks block (U+0300 - U+036F)
COMBINING_MARKS = re.compile("[\u0300-\u036f]")

# Zero-width characters that can cause false mismatches on pasted text
ZERO_WIDTH_CHARS = "\u200b\u200c\u200d\ufeff"

PUNCTUATION = re.compile("[.,/#!$%^&*;:{}=\\-_`~()'\"¿?¡\u2018\u2019\u201c\u201d]")

WHITESPACE = re.compile(r"\s+")


def normalize(
    text: str,
    *,
    case_sensitive: bool = False,
    accent_sensitive: bool = False,
    punctuation_sensitive: bool = False,
) -> str:
    """Normalize an answer for comparison.

    Steps, in order:
    - Lowercase (unless case-sensitive)
    - NFD decomposition and removal of combining accents (unless accent-sensitive)
    - Remove zero-width characters
    - Remove punctuation, apostrophes included (unless punctuation-sensitive)
    - Collapse whitespace runs and trim
    - NFC composition when accent-sensitive, so both encodings compare equal

    Composition comes last because removing a character can bring a base
    letter next to a combining mark. The result is idempotent:
    ``normalize(normalize(s)) == normalize(s)``.
    """
    if not text:
        return ""

    if not case_sensitive:
        text = text.lower()

    if not accent_sensitive:
        text = COMBINING_MARKS.sub("", unicodedata.normalize("NFD", text))

    for char in ZERO_WIDTH_CHARS:
        text = text.replace(char, "")

    if not punctuation_sensitive:
        text = PUNCTUATION.sub("", text)

    text = WHITESPACE.sub(" ", text).strip()
    if accent_sensitive:
        text = unicodedata.normalize("NFC", text)
    return text
