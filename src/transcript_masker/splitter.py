"""Fragment splitting and word cleaning.

Both functions are total: any string (including the empty string) has a
defined result, and nothing here ever raises.
"""

from __future__ import annotations

from .types import Token

# Tested in this order; the first one found in a token's core is the only
# one applied at that level of the recursion.
DELIMITERS: tuple[str, ...] = (
    "\n",
    "\r",
    "\t",
    "/",
    ".",
    "-",
    "(",
    ":",
    "_",
    ">",
    ",",
    "+",
    ";",
    ")",
    "\\",
    "—",   # em dash
)


def split_on_char(text: str, char: str) -> list[str]:
    """Split text on a single character, keeping each occurrence as an empty fragment.

    ``"this  is"`` split on a space gives ``["this", "", "", "is"]``: every
    occurrence of ``char`` becomes one empty string so that the caller can
    put the delimiter back exactly where it was.
    """
    if not text:
        return [""]
    fragments: list[str] = []
    current: list[str] = []
    for ch in text:
        if ch == char:
            if current:
                fragments.append("".join(current))
                current = []
            fragments.append("")
        else:
            current.append(ch)
    if current:
        fragments.append("".join(current))
    return fragments


def first_delimiter(text: str) -> str | None:
    """Return the highest-priority delimiter present in text, if any."""
    for delimiter in DELIMITERS:
        if delimiter in text:
            return delimiter
    return None


def clean_word(fragment: str) -> Token:
    """Strip leading/trailing non-alphanumeric characters from a fragment.

    Interior characters are never touched.  The split is computed on the
    original-case text so ``Token.original`` is always an exact slice of the
    input and only the core is lowercased (the stripped parts hold no letters).
    """
    start = 0
    end = len(fragment)
    while start < end and not fragment[start].isalnum():
        start += 1
    while end > start and not fragment[end - 1].isalnum():
        end -= 1
    original = fragment[start:end]
    return Token(
        prefix=fragment[:start],
        core=original.lower(),
        suffix=fragment[end:],
        original=original,
    )


def is_numbers(word: str) -> bool:
    """True when word is non-empty and made only of ASCII digits 0-9."""
    return bool(word) and all("0" <= ch <= "9" for ch in word)
