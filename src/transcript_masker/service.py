"""Request/response entry point.

Both operations take and return plain JSON-compatible dicts so they can sit
behind any transport (the CLI reads the request from stdin).

mask_content request:

    {
      "tenantID": "companyA",
      "maskNumbers": false,                       # optional
      "templates": [{"template": "\\d{3}-\\d{2}-\\d{4}", "mask": "ssn"}],
      "unmasked": ["Call John at 555-1234", ...]
    }

response:

    {"masked": [...], "errors": [...], "counts": {"words": ..., ...}}

update_mask_templates request:

    {"tenantID": "companyA", "updates": [{"template": ..., "mask": ...}],
     "removals": ["<pattern>", ...]}

response:

    {"updated": [...], "removed": [...], "errors": [...]}

Tenant errors are reported once in ``errors`` and nothing is masked.
Template errors are reported per template; the other templates still apply.
"""

from __future__ import annotations
import dataclasses
import logging
from typing import Any

from .errors import MaskerError
from .masker import Masker
from .patterns import compile_templates
from .tenants import TenantRegistry
from .types import Counts

logger = logging.getLogger(__name__)


def mask_content(request: dict[str, Any], registry: TenantRegistry) -> dict[str, Any]:
    """Mask the ``unmasked`` lines of a request for its tenant."""
    masked: list[str] = []
    errors: list[dict[str, Any]] = []
    response: dict[str, Any] = {
        "masked": masked,
        "errors": errors,
        "counts": Counts().to_dict(),
    }

    try:
        tables = registry.get(request.get("tenantID"))
    except MaskerError as e:
        logger.warning("mask request rejected: %s", e)
        errors.append({"error": str(e)})
        return response

    mask_numbers = request.get("maskNumbers")
    if isinstance(mask_numbers, bool):
        tables = dataclasses.replace(tables, mask_numbers=mask_numbers)

    templates, template_errors = compile_templates(request.get("templates") or [])
    errors.extend(e.to_dict() for e in template_errors)

    masker = Masker(tables)
    lines, counts = masker.mask_lines(request.get("unmasked") or [], templates=templates)
    masked.extend(lines)
    response["counts"] = counts.to_dict()
    return response


def update_mask_templates(request: dict[str, Any], registry: TenantRegistry) -> dict[str, Any]:
    """Apply template removals then updates to a tenant."""
    updated: list[dict[str, Any]] = []
    removed: list[dict[str, Any]] = []
    errors: list[dict[str, Any]] = []
    response = {"updated": updated, "removed": removed, "errors": errors}

    try:
        added, dropped, template_errors = registry.update_templates(
            request.get("tenantID"),
            updates=request.get("updates") or [],
            removals=request.get("removals") or [],
        )
    except MaskerError as e:
        logger.warning("template update rejected: %s", e)
        errors.append({"error": str(e)})
        return response

    updated.extend(t.to_dict() for t in added)
    removed.extend(t.to_dict() for t in dropped)
    errors.extend(e.to_dict() for e in template_errors)
    return response
