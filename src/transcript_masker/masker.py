"""Masker — the main API.  Templates first, then word-by-word classification.

Usage:
    from transcript_masker import LookupTables, Masker

    tables = LookupTables.build(
        whitelist={"contact", "now"},
        names={"john", "smith"},
    )
    masker = Masker(tables)              # reusable, thread-safe

    result = masker.mask("Contact John Smith now")
    print(result.text)                   # "Contact ~name~ now"
    print(result.counts.to_dict())       # {"words": 4, "maskedNam": 1, ...}

A line is split on spaces and every fragment is classified.  Fragments
holding one of the ``DELIMITERS`` are split again on the first delimiter
found and classified recursively, so ``555-1234`` becomes ``~num~-~num~``
while the hyphen is kept.  Adjacent tokens of the same category collapse
into a single tag (``John Smith`` → ``~name~``).
"""

from __future__ import annotations
import dataclasses
import logging
import re
from typing import Callable, Iterable, Sequence

from .blacklist import BLACKLIST
from .patterns import apply_templates
from .splitter import clean_word, first_delimiter, is_numbers, split_on_char
from .types import (
    MASK_WRAPPER,
    Counts,
    LookupTables,
    MaskCategory,
    MaskedLine,
    MaskTemplate,
    Token,
)
from .urls import acceptable_url

logger = logging.getLogger(__name__)

_HTTP = re.compile("http", re.IGNORECASE)
_URL_STARTS = ("http", "file_http")


class MaskAccumulator:
    """Output buffer, counts and run state threaded through the recursion.

    One accumulator per line; never shared between calls.
    """

    __slots__ = ("parts", "counts", "last", "_mark", "_record")

    def __init__(self, counts: Counts, record: Callable[[str], None] | None = None) -> None:
        self.parts: list[str] = []
        self.counts = counts
        self.last = MaskCategory.NONE
        self._mark = 0             # len(parts) right after the last tag
        self._record = record or BLACKLIST.record

    def literal(self, text: str) -> None:
        """Append text verbatim.  Anything but whitespace ends the current run."""
        if not text:
            return
        self.parts.append(text)
        if not text.isspace():
            self.last = MaskCategory.NONE

    def passthrough(self, text: str) -> None:
        """Append an unmasked token."""
        self.parts.append(text)
        self.last = MaskCategory.NONE

    def word(self) -> None:
        self.counts.words += 1

    def mask(self, category: MaskCategory, word: str) -> None:
        """Emit a mask tag unless it continues a run of the same category."""
        self._record(word)
        if category is self.last:
            # Same run: drop the spaces between the previous token and this one
            # so "John Smith" renders as one tag.  Newlines/tabs are kept.
            between = "".join(self.parts[self._mark:])
            if not between.strip(" "):
                del self.parts[self._mark:]
            return
        self.parts.append(category.tag)
        self.counts.add(category)
        self.last = category
        self._mark = len(self.parts)

    @property
    def text(self) -> str:
        return "".join(self.parts)


def _is_mask_tag(token: Token, tables: LookupTables) -> bool:
    # "~num~-~num~" reaches here as "num~" and "~num" once split on the hyphen
    return (
        (token.prefix.endswith(MASK_WRAPPER) or token.suffix.startswith(MASK_WRAPPER))
        and token.core in tables.active_masks
    )


def _categorize(word: str, tables: LookupTables) -> MaskCategory:
    """Resolve a non-whitelisted leaf word to its mask category."""
    if word in tables.names:
        return MaskCategory.NAME
    if word in tables.geolocations:
        return MaskCategory.GEO
    if word in tables.profanities:
        return MaskCategory.PROFANITY
    if is_numbers(word):
        return MaskCategory.NUMBER if tables.mask_numbers else MaskCategory.NONE
    # An empty whitelist means no allow-list is configured: unknown words stay.
    if tables.whitelist:
        return MaskCategory.MISC
    return MaskCategory.NONE


def _classify_url(url: str, acc: MaskAccumulator, tables: LookupTables) -> None:
    """Handle a fragment known to start with ``http`` / ``file_http``."""
    acc.word()
    lowered = url.lower()
    if acceptable_url(
        lowered,
        tables.query_string_filters,
        tables.domain_prefixes,
        tables.domain_suffixes,
    ):
        acc.passthrough(url)
    elif lowered in tables.whitelist or lowered in tables.active_masks:
        acc.passthrough(url)
    else:
        acc.mask(MaskCategory.URL, lowered)


def _classify_leaf(token: Token, acc: MaskAccumulator, tables: LookupTables) -> None:
    acc.word()
    if token.core in tables.whitelist:
        acc.passthrough(token.original)
        return
    category = _categorize(token.core, tables)
    if category is MaskCategory.NONE:
        acc.passthrough(token.original)
    else:
        acc.mask(category, token.core)


def classify(
    fragments: Sequence[str],
    split_char: str,
    acc: MaskAccumulator,
    tables: LookupTables,
) -> MaskCategory:
    """Classify mixed-case fragments produced by splitting on split_char.

    Appends the masked rendering of every fragment to ``acc`` and returns the
    run state (the category of the last tag still open).
    """
    for fragment in fragments:
        if not fragment:
            # each empty fragment stands for one occurrence of split_char
            acc.literal(split_char)
            continue

        token = clean_word(fragment)
        if not token.core:
            # punctuation only: kept as is, not a word
            acc.passthrough(fragment)
            continue

        acc.literal(token.prefix)

        if _is_mask_tag(token, tables):
            acc.word()
            acc.passthrough(token.original)
            acc.literal(token.suffix)
            continue

        m = _HTTP.search(token.original)
        if m is not None and m.start() > 0:
            # e.g. "meeting:https://zoom.us": the text before the URL is
            # classified on its own, the rest is handled as a URL
            classify([token.original[:m.start()]], split_char, acc, tables)
            _classify_url(token.original[m.start():], acc, tables)
        elif token.core.startswith(_URL_STARTS):
            # any scheme lives at offset 0 here, so this also covers
            # acceptable URLs
            _classify_url(token.original, acc, tables)
        else:
            delimiter = first_delimiter(token.original)
            if delimiter is not None:
                classify(split_on_char(token.original, delimiter), delimiter, acc, tables)
            else:
                _classify_leaf(token, acc, tables)

        acc.literal(token.suffix)

    return acc.last


def mask_line(
    text: str,
    tables: LookupTables,
    counts: Counts | None = None,
    *,
    templates: Iterable[MaskTemplate] = (),
    record: Callable[[str], None] | None = None,
) -> str:
    """Mask one line of text.

    ``templates`` are request-scoped and run before the tenant's own.  Word
    and mask counts are added to ``counts`` when given.
    """
    if counts is None:
        counts = Counts()
    if not text:
        return ""
    templates = tuple(templates)
    if templates:
        # request templates run first and their tags are protected too
        tables = dataclasses.replace(tables, templates=templates + tables.templates)
    line = apply_templates(text, tables.templates)
    acc = MaskAccumulator(counts, record or BLACKLIST.record)
    classify(split_on_char(line, " "), " ", acc, tables)
    return acc.text


class Masker:
    """Whitelist masker bound to one tenant's lookup tables.

    Holds no per-call state, so one instance can serve many threads.
    """

    def __init__(
        self,
        tables: LookupTables,
        *,
        blacklist: Callable[[str], None] | None = None,
    ) -> None:
        self.tables = tables
        self._record = blacklist or BLACKLIST.record

    def mask(
        self,
        text: str,
        *,
        templates: Iterable[MaskTemplate] = (),
        counts: Counts | None = None,
    ) -> MaskedLine:
        """Mask a single line.  Counts are also added to ``counts`` when given."""
        line_counts = Counts()
        masked = mask_line(
            text, self.tables, line_counts, templates=templates, record=self._record,
        )
        if counts is not None:
            counts += line_counts
        logger.debug(
            "masked %d of %d words", line_counts.total_masked, line_counts.words,
        )
        return MaskedLine(text=masked, counts=line_counts)

    def mask_lines(
        self,
        lines: Iterable[str | None],
        *,
        templates: Iterable[MaskTemplate] = (),
    ) -> tuple[list[str], Counts]:
        """Mask many lines, returning them with the aggregated counts.

        ``None`` entries become empty strings.
        """
        templates = list(templates)
        counts = Counts()
        out: list[str] = []
        for line in lines:
            if line is None:
                out.append("")
                continue
            out.append(self.mask(str(line), templates=templates, counts=counts).text)
        return out, counts
