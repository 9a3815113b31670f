"""Pattern pre-filter — regex templates applied to a whole line.

Templates run BEFORE tokenization.  Each one replaces every match with a
wrapped mask tag (``~ssn~``); the tokenizer later recognises those tags and
leaves them alone.  Request-scoped templates run first, tenant templates
second.
"""

from __future__ import annotations
import logging
import re
from typing import Any, Iterable

from .errors import (
    EmptyMask,
    InvalidTemplate,
    MissingTemplateField,
    PatternCompileError,
    TemplateError,
)
from .types import MASK_WRAPPER, MaskTemplate

logger = logging.getLogger(__name__)


def normalize_mask(mask: str) -> str:
    """Lowercase, trim and unwrap a user-supplied mask (``" ~SSN~ "`` → ``"ssn"``)."""
    return mask.strip().lower().strip(MASK_WRAPPER).strip()


def compile_template(template: Any, mask: Any) -> MaskTemplate:
    """Validate and compile one template/mask pair.

    Raises a ``TemplateError`` subclass describing why the pair was rejected.
    """
    if template is None or mask is None:
        raise MissingTemplateField(template, mask)
    if not isinstance(template, str) or not isinstance(mask, str):
        raise InvalidTemplate(template, mask, '"template" and "mask" must be strings.')
    keyword = normalize_mask(mask)
    if not keyword:
        raise EmptyMask(template, keyword)
    if any(c.isspace() for c in keyword):
        # the tokenizer splits on whitespace, so such a tag could not be recognised
        raise InvalidTemplate(template, keyword, '"mask" must not contain whitespace.')
    try:
        pattern = re.compile(template.strip())
    except re.error as e:
        raise PatternCompileError(template, keyword, str(e)) from e
    return MaskTemplate(pattern=pattern, mask=keyword)


def compile_templates(
    entries: Iterable[dict[str, Any] | None],
) -> tuple[list[MaskTemplate], list[TemplateError]]:
    """Compile ``{"template": ..., "mask": ...}`` entries.

    Never raises: rejected entries are returned in the error list and the
    remaining ones are still compiled.
    """
    templates: list[MaskTemplate] = []
    errors: list[TemplateError] = []
    for entry in entries:
        if entry is None:
            continue
        if not isinstance(entry, dict):
            e = InvalidTemplate(entry, None, "template entry must be an object.")
            logger.warning("Skipping template %r: %s", entry, e)
            errors.append(e)
            continue
        try:
            templates.append(compile_template(entry.get("template"), entry.get("mask")))
        except TemplateError as e:
            logger.warning("Skipping template %r: %s", e.template, e)
            errors.append(e)
    return templates, errors


def apply_templates(line: str, *template_lists: Iterable[MaskTemplate]) -> str:
    """Replace every match of every template with its mask tag, in order."""
    for templates in template_lists:
        for template in templates:
            replacement = template.replacement
            line = template.pattern.sub(lambda _m: replacement, line)
    return line
