"""Batch masking of JSON dialog files.

A dialog file looks like:

    {
      "header": {...},
      "dialogs": [
        {
          "dialogHeader": {"sessionID": "...", "conversationDateTime": "...",
                           "agentEmails": [...], "clientEmail": "..."},
          "dialogContent": {"dialog": [
            {"client": "Jane", "datetime": "2020-03-01T09:15:02.000Z",
             "message": "Hi, I'm Jane from Boston"},
            ...
          ]}
        }
      ]
    }

Every message is masked, every speaker becomes ``~name~`` and e-mail
fields are dropped.  Timestamps are shifted so each dialog starts at noon
(UTC) on the date found at the end of the file name, keeping the elapsed
time between volleys.  Files with fewer than ``min_dialogs`` dialogs are not
written.
"""

from __future__ import annotations
import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path
from typing import Any

from .blacklist import BLACKLIST, MaskedWordCounter
from .errors import DialogFormatError
from .masker import Masker
from .types import Counts, MaskCategory

logger = logging.getLogger(__name__)

SPEAKERS = ("agent", "bot", "client")
_DROPPED_HEADER_KEYS = ("agentEmails", "clientEmail")


def parse_datetime(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; a trailing ``Z`` means UTC."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_datetime(dt: datetime) -> str:
    """``2020-03-01T12:00:00.000Z``"""
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def file_start_date(file_name: str) -> datetime:
    """Noon UTC on the ``YYYY-MM-DD`` date ending the file stem, else today."""
    stem = Path(file_name).stem
    try:
        day = date.fromisoformat(stem[-10:])
    except ValueError:
        day = datetime.now(timezone.utc).date()
    return datetime.combine(day, time(12, 0), tzinfo=timezone.utc)


def _pct(counts: Counts) -> str:
    return f"{counts.pct_masked:.2f}%"


@dataclass(slots=True)
class FileResult:
    """Outcome of masking one dialog file."""
    file_name: str
    dialogs: int = 0
    counts: Counts = field(default_factory=Counts)
    written: Path | None = None
    content: dict[str, Any] | None = None


@dataclass(slots=True)
class BatchSummary:
    files: list[FileResult] = field(default_factory=list)
    counts: Counts = field(default_factory=Counts)
    dialogs: int = 0
    blacklist_path: Path | None = None

    @property
    def files_written(self) -> int:
        return sum(1 for f in self.files if f.written is not None)


class DialogMasker:
    """Masks the dialogs of one file with a tenant's ``Masker``."""

    def __init__(self, masker: Masker, *, min_dialogs: int = 5) -> None:
        if min_dialogs < 1:
            raise ValueError("Minimum dialogs per day must be a positive integer.")
        self.masker = masker
        self.min_dialogs = min_dialogs

    def mask_volley(self, volley: dict[str, Any], counts: Counts) -> dict[str, Any]:
        """Mask the speaker and message of one volley."""
        speaker = next((s for s in SPEAKERS[:2] if volley.get(s) is not None), "client")
        counts.add(MaskCategory.NAME)
        message = volley.get("message")
        if isinstance(message, str):
            message = self.masker.mask(message, counts=counts).text
        return {
            speaker: MaskCategory.NAME.tag,
            "datetime": volley.get("datetime"),
            "message": message,
        }

    def mask_dialog(self, dialog: dict[str, Any], start: datetime) -> tuple[dict[str, Any], Counts]:
        """Mask one dialog, re-timing its volleys to begin at start."""
        header = dialog.get("dialogHeader")
        if header is None:
            raise DialogFormatError('Missing "dialogHeader" key')
        if header.get("sessionID") is None:
            raise DialogFormatError('Missing "sessionID" key in dialogHeader')
        header = dict(header)

        try:
            last = parse_datetime(header.get("conversationDateTime") or "")
        except ValueError:
            logger.debug("unparseable conversationDateTime in %s", header.get("sessionID"))
            last = start
        header["conversationDateTime"] = format_datetime(start)
        for key in _DROPPED_HEADER_KEYS:
            header.pop(key, None)

        counts = Counts()
        offset = timedelta(0)
        volleys: list[dict[str, Any]] = []
        for volley in (dialog.get("dialogContent") or {}).get("dialog") or []:
            volley = dict(volley)
            try:
                when = parse_datetime(volley.get("datetime") or "")
            except ValueError:
                logger.debug("unparseable volley datetime %r", volley.get("datetime"))
            else:
                offset += when - last
                last = when
                volley["datetime"] = format_datetime(start + offset)
            volleys.append(self.mask_volley(volley, counts))

        header.update(
            (k, v) for k, v in counts.to_dict().items() if k != "masked"
        )
        header["pctMasked"] = _pct(counts)
        masked = {"dialogContent": {"dialog": volleys}, "dialogHeader": header}
        return masked, counts

    def mask_file_content(self, content: dict[str, Any], file_name: str) -> FileResult:
        """Mask a loaded dialog file.  ``result.content`` is None when there is nothing to keep."""
        result = FileResult(file_name=file_name)
        dialogs = content.get("dialogs")
        if not dialogs:
            return result

        start = file_start_date(file_name)
        header = dict(content.get("header") or {})
        masked_dialogs: list[dict[str, Any]] = []
        for dialog in dialogs:
            if dialog.get("dialogContent") is None:
                continue
            masked, counts = self.mask_dialog(dialog, start)
            masked_dialogs.append(masked)
            result.counts += counts

        counts = result.counts
        header["fileWords"] = counts.words
        header["fileMasked"] = counts.total_masked
        for key, value in counts.to_dict().items():
            if key.startswith("masked") and key != "masked":
                header["file" + key[0].upper() + key[1:]] = value
        header["filePctMasked"] = _pct(counts)

        result.dialogs = len(masked_dialogs)
        if masked_dialogs:
            result.content = {"header": header, "dialogs": masked_dialogs}
        return result

    def mask_file(self, path: str | Path, output_dir: str | Path) -> FileResult:
        """Mask one dialog file, writing it to output_dir if it has enough dialogs."""
        path = Path(path)
        logger.info("Processing: %s", path)
        with open(path, encoding="utf-8") as f:
            content = json.load(f)
        if not isinstance(content, dict):
            raise DialogFormatError(f"{path.name} does not hold a JSON object")
        result = self.mask_file_content(content, path.name)
        if result.content is None:
            return result

        if result.dialogs < self.min_dialogs:
            logger.info(
                "Not enough dialogs in %s. Need at least %d but found only %d.",
                path.name, self.min_dialogs, result.dialogs,
            )
            return result

        out = Path(output_dir) / path.name
        out.parent.mkdir(parents=True, exist_ok=True)
        with open(out, "w", encoding="utf-8") as f:
            json.dump(result.content, f, indent=2, ensure_ascii=False)
        result.written = out
        logger.info(
            "Wrote %s with %d dialogs. Masked %d of %d words (%s)",
            out, result.dialogs, result.counts.total_masked, result.counts.words, _pct(result.counts),
        )
        return result


class BatchMasker:
    """Masks every dialog file of a directory and exports the blacklist."""

    def __init__(
        self,
        dialog_masker: DialogMasker,
        *,
        extension: str = "json",
        blacklist: MaskedWordCounter | None = None,
    ) -> None:
        self.dialog_masker = dialog_masker
        self.extension = extension.lstrip(".")
        self.blacklist = blacklist or BLACKLIST

    def run(self, input_dir: str | Path, output_dir: str | Path) -> BatchSummary:
        input_dir = Path(input_dir)
        output_dir = Path(output_dir)
        if not output_dir.is_dir():
            raise NotADirectoryError(f'The output directory "{output_dir}" must exist.')

        summary = BatchSummary()
        for path in sorted(input_dir.glob(f"*.{self.extension}")):
            try:
                result = self.dialog_masker.mask_file(path, output_dir)
            except (OSError, ValueError, DialogFormatError) as e:
                logger.error("Skipping %s: %s", path, e)
                continue
            summary.files.append(result)
            summary.counts += result.counts
            summary.dialogs += result.dialogs

        if summary.counts.words:
            logger.info(
                "For %d total dialogs there were %d masked words of %d total words (%s)",
                summary.dialogs, summary.counts.total_masked, summary.counts.words,
                _pct(summary.counts),
            )
        summary.blacklist_path = self.blacklist.export(output_dir / "blacklist.txt")
        logger.info("Wrote blacklist to %s", summary.blacklist_path)
        return summary
