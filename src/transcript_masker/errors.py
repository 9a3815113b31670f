"""Exceptions raised by transcript-masker.

Tenant problems are fatal to a request.  Template problems are collected
per template and reported alongside the results.
"""

from __future__ import annotations
from typing import Any


class MaskerError(Exception):
    """Base class for all masking errors."""


class UnknownTenant(MaskerError):
    def __init__(self, tenant_id: str | None) -> None:
        self.tenant_id = tenant_id
        if tenant_id is None:
            super().__init__("tenantID is missing.")
        else:
            super().__init__(f'tenantID "{tenant_id}" is not a known tenantID.')


class MissingResource(MaskerError):
    """A lookup table required for a known tenant is absent or unreadable."""

    def __init__(self, tenant_id: str, resource: str, reason: str = "") -> None:
        self.tenant_id = tenant_id
        self.resource = resource
        msg = f'tenantID "{tenant_id}" has no {resource}.'
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)


class DialogFormatError(MaskerError):
    """A dialog file does not have the expected structure."""


class TemplateError(MaskerError):
    """A single template/mask pair was rejected."""

    def __init__(self, template: Any, mask: Any, message: str) -> None:
        self.template = template
        self.mask = mask
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"template": self.template, "mask": self.mask, "error": str(self)}


class PatternCompileError(TemplateError):
    pass


class EmptyMask(TemplateError):
    def __init__(self, template: str | None, mask: str | None) -> None:
        super().__init__(template, mask, '"mask" was empty.')


class InvalidTemplate(TemplateError):
    """An entry that is not a template/mask object, or holds unusable values."""


class MissingTemplateField(TemplateError):
    def __init__(self, template: str | None, mask: str | None) -> None:
        field = "template" if template is None else "mask"
        super().__init__(template, mask, f'"{field}" was missing or null.')
