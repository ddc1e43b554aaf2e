"""Phonetic codes for grouping words that sound alike.

Two encoders are provided.  ``consonant_code`` is a Soundex-style
four-character code built from consonant classes.  ``simplified_phonetic_code``
is a Metaphone-style code produced by a fixed, order-sensitive pipeline of
spelling rewrites.  Both are total: any string (empty, non-alphabetic,
accented) yields a code, never an exception.
"""

from __future__ import annotations

import re
import unicodedata

_CONSONANT_CLASSES: dict[str, str] = {
    **dict.fromkeys("BFPV", "1"),
    **dict.fromkeys("CGJKQSXZ", "2"),
    **dict.fromkeys("DT", "3"),
    "L": "4",
    **dict.fromkeys("MN", "5"),
    "R": "6",
}

_CONSONANT_CODE_LENGTH = 4
_PHONETIC_CODE_LENGTH = 6

# Applied top to bottom; each rule sees the output of the previous one.
_REWRITE_RULES: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(pattern), replacement)
    for pattern, replacement in (
        (r"^(?:KN|GN|PN|WR|PS)", ""),
        (r"^X", "S"),
        (r"^WH", "W"),
        (r"MB$", "M"),
        (r"PH", "F"),
        (r"GH", ""),
        (r"KN", "N"),
        (r"WR", "R"),
        (r"CK", "K"),
        (r"SCH", "SK"),
        (r"TCH", "CH"),
        (r"SH", "X"),
        (r"CH", "X"),
        (r"TH", "0"),
        (r"DG", "J"),
        (r"C(?=[EIY])", "S"),
        (r"C", "K"),
        (r"Q", "K"),
        (r"X", "KS"),
        (r"Z", "S"),
        (r"V", "F"),
        (r"Y(?=[AEIOU])", ""),
        (r"Y", ""),
        (r"W(?![AEIOU])", ""),
        (r"([AEIOU])\1+", r"\1"),
        (r"[AEIOU]", ""),
    )
)


def _letters(word: str) -> str:
    """Uppercase A-Z letters of *word*, with accents folded away."""
    if not isinstance(word, str):
        return ""
    folded = unicodedata.normalize("NFKD", word)
    return "".join(ch for ch in folded.upper() if "A" <= ch <= "Z")


def consonant_code(word: str) -> str:
    """Return the four-character consonant-class code of *word*.

    The first letter is kept verbatim; following letters contribute their
    class digit unless it repeats the previous classified letter's digit.
    Unclassified letters (vowels, H, W, Y) contribute nothing and leave the
    previous digit in place.  Empty input yields an empty code.
    """
    letters = _letters(word)
    if not letters:
        return ""

    code = letters[0]
    previous = _CONSONANT_CLASSES.get(letters[0], "")
    for letter in letters[1:]:
        if len(code) >= _CONSONANT_CODE_LENGTH:
            break
        digit = _CONSONANT_CLASSES.get(letter, "")
        if digit and digit != previous:
            code += digit
        previous = digit or previous

    return (code + "000")[:_CONSONANT_CODE_LENGTH]


def simplified_phonetic_code(word: str) -> str:
    """Return the simplified phonetic code of *word* (at most six characters)."""
    letters = _letters(word)
    for pattern, replacement in _REWRITE_RULES:
        if not letters:
            break
        letters = pattern.sub(replacement, letters)
    return letters[:_PHONETIC_CODE_LENGTH]
