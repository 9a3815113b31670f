"""Core types."""

from __future__ import annotations
import enum
import re
from dataclasses import dataclass, field


MASK_WRAPPER = "~"


class MaskCategory(enum.Enum):
    """Semantic category a masked token resolves to."""
    NAME = "name"
    GEO = "geo"
    PROFANITY = "bad"
    NUMBER = "num"
    URL = "url"
    MISC = "misc"
    NONE = ""              # no mask currently open

    @property
    def tag(self) -> str:
        """The literal mask tag, e.g. ``~name~``."""
        if self is MaskCategory.NONE:
            return ""
        return wrap_mask(self.value)


# Keywords of the fixed categories (``name``, ``geo``, ...)
FIXED_MASKS: frozenset[str] = frozenset(
    c.value for c in MaskCategory if c is not MaskCategory.NONE
)


def wrap_mask(keyword: str) -> str:
    return f"{MASK_WRAPPER}{keyword}{MASK_WRAPPER}"


@dataclass(frozen=True, slots=True)
class Token:
    """A fragment split into its non-word prefix, word core and non-word suffix."""
    prefix: str
    core: str              # lowercase, used for lookups
    suffix: str
    original: str          # mixed-case core, used for passthrough


@dataclass(frozen=True, slots=True)
class MaskTemplate:
    """A compiled regex and the mask keyword that replaces its matches."""
    pattern: re.Pattern
    mask: str              # keyword without the ~ wrapper

    @property
    def source(self) -> str:
        return self.pattern.pattern

    @property
    def replacement(self) -> str:
        return wrap_mask(self.mask)

    def to_dict(self) -> dict[str, str]:
        return {"template": self.source, "mask": self.mask}


# Counter attribute → serialized key (keys kept compatible with existing dialog files)
_COUNT_KEYS = {
    MaskCategory.NAME: "maskedNam",
    MaskCategory.GEO: "maskedGeo",
    MaskCategory.PROFANITY: "maskedBad",
    MaskCategory.NUMBER: "maskedNum",
    MaskCategory.URL: "maskedURL",
    MaskCategory.MISC: "maskedMisc",
}


@dataclass(slots=True)
class Counts:
    """Words seen and masks applied, per category."""
    words: int = 0
    masked: dict[MaskCategory, int] = field(
        default_factory=lambda: dict.fromkeys(_COUNT_KEYS, 0)
    )

    def add(self, category: MaskCategory, n: int = 1) -> None:
        self.masked[category] += n

    def __getitem__(self, category: MaskCategory) -> int:
        return self.masked[category]

    @property
    def total_masked(self) -> int:
        return sum(self.masked.values())

    @property
    def pct_masked(self) -> float:
        if not self.words:
            return 0.0
        return 100.0 * self.total_masked / self.words

    def __iadd__(self, other: Counts) -> Counts:
        self.words += other.words
        for category, n in other.masked.items():
            self.masked[category] += n
        return self

    def to_dict(self) -> dict[str, int]:
        out = {"words": self.words}
        for category, key in _COUNT_KEYS.items():
            out[key] = self.masked[category]
        out["masked"] = self.total_masked
        return out

    @classmethod
    def from_dict(cls, data: dict[str, int]) -> Counts:
        counts = cls(words=int(data.get("words", 0)))
        for category, key in _COUNT_KEYS.items():
            counts.masked[category] = int(data.get(key, 0))
        return counts


@dataclass(frozen=True, slots=True)
class LookupTables:
    """Everything the classifier reads for one tenant.

    Immutable: template updates produce a new instance (see
    ``TenantRegistry.update_templates``) instead of mutating this one.
    """
    whitelist: frozenset[str] = frozenset()
    names: frozenset[str] = frozenset()
    geolocations: frozenset[str] = frozenset()
    profanities: frozenset[str] = frozenset()
    domain_prefixes: tuple[str, ...] = ()
    domain_suffixes: tuple[str, ...] = ()
    query_string_filters: tuple[str, ...] = ()
    templates: tuple[MaskTemplate, ...] = ()
    mask_numbers: bool = True
    # Mask keywords that must never be masked again; derived from templates
    active_masks: frozenset[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "active_masks", FIXED_MASKS | {t.mask for t in self.templates}
        )

    @classmethod
    def build(
        cls,
        *,
        whitelist=(),
        names=(),
        geolocations=(),
        profanities=(),
        domain_prefixes=(),
        domain_suffixes=(),
        query_string_filters=(),
        templates=(),
        mask_numbers: bool = True,
    ) -> LookupTables:
        """Convenience constructor that lowercases words and filter entries."""
        return cls(
            whitelist=frozenset(w.lower() for w in whitelist),
            names=frozenset(w.lower() for w in names),
            geolocations=frozenset(w.lower() for w in geolocations),
            profanities=frozenset(w.lower() for w in profanities),
            domain_prefixes=tuple(p.lower() for p in domain_prefixes),
            domain_suffixes=tuple(s.lower() for s in domain_suffixes),
            query_string_filters=tuple(q.lower() for q in query_string_filters),
            templates=tuple(templates),
            mask_numbers=mask_numbers,
        )


@dataclass(slots=True)
class MaskedLine:
    """Result of masking a single line."""
    text: str
    counts: Counts = field(default_factory=Counts)
