"""YAML/dict config loader for transcript-masker.

Supports loading from a YAML file or a plain dict (for embedding in a
larger service config).

Example YAML:

    transcript_masker:
      properties_dir: ./properties
      tenant_id: companyA
      mask_numbers: true        # overrides the tenant's maskTemplates.json
      min_dialogs: 5
      batch:
        input_dir: ./Dialogs
        output_dir: ./Masked
        extension: json
"""

from __future__ import annotations
import dataclasses
import os
from pathlib import Path
from typing import Any

from .blacklist import MaskedWordCounter
from .dialogs import BatchMasker, DialogMasker
from .masker import Masker
from .tenants import TenantRegistry


DEFAULT_PROPERTIES_DIR = os.environ.get("TRANSCRIPT_MASKER_PROPERTIES", "properties")
DEFAULT_TENANT = os.environ.get("TRANSCRIPT_MASKER_TENANT", "companyA")


def load_config(data: dict[str, Any]) -> dict[str, Any]:
    """Normalize a config dict (from YAML or inline)."""
    # Support nested under "transcript_masker" key or flat
    if "transcript_masker" in data:
        data = data["transcript_masker"] or {}

    # Batch keys may also sit at the top level, which is how they come back
    # out of this function, so normalizing twice gives the same result.
    batch = data.get("batch") or {}
    mask_numbers = data.get("mask_numbers")
    return {
        "properties_dir": data.get("properties_dir", DEFAULT_PROPERTIES_DIR),
        "tenant_id": data.get("tenant_id", DEFAULT_TENANT),
        "mask_numbers": mask_numbers if isinstance(mask_numbers, bool) else None,
        "min_dialogs": int(data.get("min_dialogs", 5)),
        "input_dir": batch.get("input_dir", data.get("input_dir", "Dialogs")),
        "output_dir": batch.get("output_dir", data.get("output_dir", "Masked")),
        "extension": batch.get("extension", data.get("extension", "json")),
    }


def load_from_yaml(path: str | Path) -> dict[str, Any]:
    """Load config from a YAML file."""
    import yaml
    with open(path, encoding="utf-8") as f:
        return load_config(yaml.safe_load(f) or {})


def create_masker(
    config: dict[str, Any],
    registry: TenantRegistry | None = None,
    *,
    blacklist: MaskedWordCounter | None = None,
) -> Masker:
    """Create a Masker for the configured tenant."""
    cfg = load_config(config)
    if registry is None:
        registry = TenantRegistry.from_directory(cfg["properties_dir"])
    tables = registry.get(cfg["tenant_id"])
    if cfg["mask_numbers"] is not None:
        tables = dataclasses.replace(tables, mask_numbers=cfg["mask_numbers"])
    return Masker(tables, blacklist=blacklist)


def create_batch(
    config: dict[str, Any],
    registry: TenantRegistry | None = None,
) -> BatchMasker:
    """Create a fully configured batch masker from a config dict."""
    cfg = load_config(config)
    blacklist = MaskedWordCounter()
    masker = create_masker(cfg, registry, blacklist=blacklist)
    return BatchMasker(
        DialogMasker(masker, min_dialogs=cfg["min_dialogs"]),
        extension=cfg["extension"],
        blacklist=blacklist,
    )
