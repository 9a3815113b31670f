"""Tenant lookup tables — loaded from a properties directory.

Layout (one directory per tenant):

    properties/
      companyA/
        whitelist-words.json      # {"word": ..., ...} or ["word", ...]
        names.json
        geolocations.json
        profanities.json
        DomainPrefixes.txt        # one entry per line, "_" lines are comments
        DomainSuffixes.txt
        QueryStringContains.txt
        maskTemplates.json        # {"maskNumbers": true, "templates": [...]}

Tables are immutable snapshots.  ``TenantRegistry.update_templates`` builds
a new snapshot under a lock and swaps it in with a single assignment, so a
reader always sees either the old or the new template list, never a mix.
"""

from __future__ import annotations
import dataclasses
import json
import logging
import re
import threading
from pathlib import Path
from typing import Any, Iterable

from .errors import MissingResource, TemplateError, UnknownTenant
from .patterns import compile_templates
from .types import LookupTables, MaskTemplate

logger = logging.getLogger(__name__)

WHITELIST_FILE = "whitelist-words.json"
NAMES_FILE = "names.json"
GEOLOCATIONS_FILE = "geolocations.json"
PROFANITIES_FILE = "profanities.json"
DOMAIN_PREFIXES_FILE = "DomainPrefixes.txt"
DOMAIN_SUFFIXES_FILE = "DomainSuffixes.txt"
QUERY_STRING_FILE = "QueryStringContains.txt"
MASK_TEMPLATES_FILE = "maskTemplates.json"


def _load_words(tenant_id: str, path: Path) -> frozenset[str]:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise MissingResource(tenant_id, path.name, str(e)) from e
    if not isinstance(data, (dict, list)):
        raise MissingResource(tenant_id, path.name, "expected a JSON object or array")
    return frozenset(str(w).lower() for w in data)


def _load_filters(tenant_id: str, path: Path) -> tuple[str, ...]:
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        raise MissingResource(tenant_id, path.name, str(e)) from e
    return tuple(
        line.strip().lower()
        for line in lines
        if line.strip() and not line.startswith("_")
    )


def _load_templates(tenant_id: str, path: Path) -> tuple[list[MaskTemplate], bool]:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise MissingResource(tenant_id, path.name, str(e)) from e
    if not isinstance(data, dict):
        raise MissingResource(tenant_id, path.name, "expected a JSON object")
    mask_numbers = data.get("maskNumbers", True)
    if not isinstance(mask_numbers, bool):
        mask_numbers = True
    templates, errors = compile_templates(data.get("templates") or [])
    for err in errors:
        logger.warning("tenant %s: skipping template %r: %s", tenant_id, err.template, err)
    return templates, mask_numbers


def load_tenant(properties_dir: str | Path, tenant_id: str) -> LookupTables:
    """Load one tenant's tables from ``<properties_dir>/<tenant_id>/``."""
    tenant_dir = Path(properties_dir).expanduser() / tenant_id
    if not tenant_dir.is_dir():
        raise UnknownTenant(tenant_id)

    templates, mask_numbers = _load_templates(tenant_id, tenant_dir / MASK_TEMPLATES_FILE)
    tables = LookupTables(
        whitelist=_load_words(tenant_id, tenant_dir / WHITELIST_FILE),
        names=_load_words(tenant_id, tenant_dir / NAMES_FILE),
        geolocations=_load_words(tenant_id, tenant_dir / GEOLOCATIONS_FILE),
        profanities=_load_words(tenant_id, tenant_dir / PROFANITIES_FILE),
        domain_prefixes=_load_filters(tenant_id, tenant_dir / DOMAIN_PREFIXES_FILE),
        domain_suffixes=_load_filters(tenant_id, tenant_dir / DOMAIN_SUFFIXES_FILE),
        query_string_filters=_load_filters(tenant_id, tenant_dir / QUERY_STRING_FILE),
        templates=tuple(templates),
        mask_numbers=mask_numbers,
    )
    logger.info(
        "loaded tenant %s: %d whitelisted words, %d templates",
        tenant_id, len(tables.whitelist), len(tables.templates),
    )
    return tables


class TenantRegistry:
    """Tenant ID → immutable ``LookupTables``."""

    __slots__ = ("_tables", "_lock")

    def __init__(self, tables: dict[str, LookupTables] | None = None) -> None:
        self._tables: dict[str, LookupTables] = dict(tables or {})
        self._lock = threading.Lock()

    @classmethod
    def from_directory(cls, properties_dir: str | Path) -> TenantRegistry:
        """Load every tenant subdirectory of properties_dir."""
        root = Path(properties_dir).expanduser()
        if not root.is_dir():
            raise FileNotFoundError(f"Can not find {root.resolve()}")
        registry = cls()
        for tenant_dir in sorted(p for p in root.iterdir() if p.is_dir()):
            registry.register(tenant_dir.name, load_tenant(root, tenant_dir.name))
        return registry

    def register(self, tenant_id: str, tables: LookupTables) -> None:
        with self._lock:
            self._tables[tenant_id] = tables

    def get(self, tenant_id: str | None) -> LookupTables:
        """Current snapshot for tenant_id.  Raises ``UnknownTenant``."""
        if tenant_id is None:
            raise UnknownTenant(None)
        try:
            return self._tables[tenant_id]
        except KeyError:
            raise UnknownTenant(tenant_id) from None

    def __contains__(self, tenant_id: object) -> bool:
        return tenant_id in self._tables

    @property
    def tenant_ids(self) -> list[str]:
        return sorted(self._tables)

    def update_templates(
        self,
        tenant_id: str | None,
        updates: Iterable[dict[str, Any] | None] = (),
        removals: Iterable[str | None] = (),
    ) -> tuple[list[MaskTemplate], list[MaskTemplate], list[TemplateError]]:
        """Remove then add tenant templates.  Returns (added, removed, errors).

        Removals are matched on the pattern source.  A valid update whose
        pattern already exists replaces it.
        """
        updates = [u for u in updates if u is not None]
        with self._lock:
            current = self.get(tenant_id)

            delete = {r.strip() for r in removals if isinstance(r, str)}
            for entry in updates:
                if not isinstance(entry, dict):
                    continue
                source = entry.get("template")
                if not isinstance(source, str):
                    continue
                try:
                    re.compile(source.strip())
                except re.error:
                    continue   # reported when the update itself is compiled
                delete.add(source.strip())

            kept: list[MaskTemplate] = []
            removed: list[MaskTemplate] = []
            for template in current.templates:
                (removed if template.source in delete else kept).append(template)

            added, errors = compile_templates(updates)
            self._tables[tenant_id] = dataclasses.replace(
                current, templates=tuple(kept + added),
            )
        logger.info(
            "tenant %s templates: %d removed, %d added, %d rejected",
            tenant_id, len(removed), len(added), len(errors),
        )
        return added, removed, errors
