"""Masked-word frequency counter ("blacklist").

Every word the classifier masks is counted here so that a batch run can
export the most frequently masked words, e.g. to grow the whitelist.  The
counter is append-only for the life of the process and is never consulted
while masking.
"""

from __future__ import annotations
import threading
from collections import Counter
from pathlib import Path


class MaskedWordCounter:
    """Thread-safe frequency counter of masked words."""

    __slots__ = ("_counts", "_lock")

    def __init__(self) -> None:
        self._counts: Counter[str] = Counter()
        self._lock = threading.Lock()

    def record(self, masked: str) -> None:
        """Count the first space-delimited segment of masked, lowercased."""
        if not masked or not masked.strip():
            return
        word = masked.lower().split(" ", 1)[0]
        with self._lock:
            self._counts[word] += 1

    __call__ = record

    def most_common(self, n: int | None = None) -> list[tuple[str, int]]:
        with self._lock:
            return self._counts.most_common(n)

    def get(self, word: str) -> int:
        with self._lock:
            return self._counts.get(word, 0)

    @property
    def size(self) -> int:
        return len(self._counts)

    def export(self, path: str | Path) -> Path:
        """Write ``"word", count`` lines, most frequent first."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        lines = [f'"{word}", {count}\n' for word, count in self.most_common()]
        path.write_text("".join(lines), encoding="utf-8")
        return path

    def clear(self) -> None:
        with self._lock:
            self._counts.clear()


# Process-wide counter used when a Masker is not given its own.
BLACKLIST = MaskedWordCounter()
