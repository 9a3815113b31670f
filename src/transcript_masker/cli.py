"""CLI interface for transcript-masker.

Usage:
    # Mask plain text lines (stdin: text, stdout: masked text)
    echo 'Contact John Smith now' | \
        python -m transcript_masker.cli --tenant companyA mask-text

    # Mask a request (stdin: JSON request, stdout: JSON response)
    echo '{"tenantID": "companyA", "unmasked": ["Call 555-1234"]}' | \
        python -m transcript_masker.cli mask-request

    # Add/remove tenant templates, then mask with them in the same run
    python -m transcript_masker.cli update-templates < updates.json

    # Mask a directory of JSON dialog files
    python -m transcript_masker.cli --tenant companyA batch ./Dialogs ./Masked

    # List known tenants
    python -m transcript_masker.cli tenants

Tenant tables are read from --properties (one subdirectory per tenant).
"""

from __future__ import annotations
import argparse
import json
import logging
import sys

from .config import DEFAULT_PROPERTIES_DIR, DEFAULT_TENANT, create_batch, create_masker, load_config, load_from_yaml
from .errors import MaskerError
from .service import mask_content, update_mask_templates
from .tenants import TenantRegistry


def _settings(args: argparse.Namespace) -> dict:
    cfg = load_from_yaml(args.config) if args.config else load_config({})
    if args.properties:
        cfg["properties_dir"] = args.properties
    if args.tenant:
        cfg["tenant_id"] = args.tenant
    if args.mask_numbers is not None:
        cfg["mask_numbers"] = args.mask_numbers == "true"
    return cfg


def _registry(cfg: dict) -> TenantRegistry:
    return TenantRegistry.from_directory(cfg["properties_dir"])


def _read_json() -> dict:
    return json.loads(sys.stdin.read() or "{}")


def _write_json(data) -> None:
    json.dump(data, sys.stdout, ensure_ascii=False)
    sys.stdout.write("\n")


def cmd_mask_text(args: argparse.Namespace) -> None:
    """Mask plain text on stdin, line by line."""
    cfg = _settings(args)
    masker = create_masker(cfg, _registry(cfg))
    lines = sys.stdin.read().split("\n")
    masked, counts = masker.mask_lines(lines)
    sys.stdout.write("\n".join(masked))
    if args.counts:
        sys.stderr.write(json.dumps(counts.to_dict()) + "\n")


def cmd_mask_request(args: argparse.Namespace) -> None:
    """Mask a JSON request on stdin."""
    cfg = _settings(args)
    request = _read_json()
    request.setdefault("tenantID", cfg["tenant_id"])
    _write_json(mask_content(request, _registry(cfg)))


def cmd_update_templates(args: argparse.Namespace) -> None:
    """Apply template updates/removals, then optionally mask lines with them.

    Template changes live in memory only; they are not written back to the
    tenant's maskTemplates.json.
    """
    cfg = _settings(args)
    registry = _registry(cfg)
    request = _read_json()
    request.setdefault("tenantID", cfg["tenant_id"])
    response = update_mask_templates(request, registry)
    if request.get("unmasked"):
        response["result"] = mask_content(request, registry)
    _write_json(response)


def cmd_batch(args: argparse.Namespace) -> None:
    """Mask every dialog file in a directory."""
    cfg = _settings(args)
    if args.input_dir:
        cfg["input_dir"] = args.input_dir
    if args.output_dir:
        cfg["output_dir"] = args.output_dir
    if args.min_dialogs is not None:
        cfg["min_dialogs"] = args.min_dialogs
    if args.ext:
        cfg["extension"] = args.ext

    batch = create_batch(cfg, _registry(cfg))
    summary = batch.run(cfg["input_dir"], cfg["output_dir"])
    _write_json({
        "files": len(summary.files),
        "files_written": summary.files_written,
        "dialogs": summary.dialogs,
        "counts": summary.counts.to_dict(),
        "blacklist": str(summary.blacklist_path),
    })


def cmd_tenants(args: argparse.Namespace) -> None:
    """List tenants found in the properties directory."""
    cfg = _settings(args)
    _write_json(_registry(cfg).tenant_ids)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="transcript_masker",
        description="Whitelist-based masking of conversational transcripts",
    )
    parser.add_argument("--config", default="", help="YAML config file")
    parser.add_argument("--properties", default="",
                        help=f"Tenant properties directory (default {DEFAULT_PROPERTIES_DIR})")
    parser.add_argument("--tenant", default="", help=f"Tenant ID (default {DEFAULT_TENANT})")
    parser.add_argument("--mask-numbers", choices=("true", "false"), default=None,
                        help="Override the tenant's maskNumbers setting")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    p = sub.add_parser("mask-text", help="Mask plain text (stdin)")
    p.add_argument("--counts", action="store_true", help="Write counts JSON to stderr")
    sub.add_parser("mask-request", help="Mask a JSON request (stdin)")
    sub.add_parser("update-templates", help="Update tenant templates (JSON stdin)")
    p = sub.add_parser("batch", help="Mask a directory of JSON dialog files")
    p.add_argument("input_dir", nargs="?", default="")
    p.add_argument("output_dir", nargs="?", default="")
    p.add_argument("--min-dialogs", type=int, default=None, help="Minimum dialogs per file")
    p.add_argument("--ext", default="", help="Dialog file extension (default json)")
    sub.add_parser("tenants", help="List tenants")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    cmds = {
        "mask-text": cmd_mask_text,
        "mask-request": cmd_mask_request,
        "update-templates": cmd_update_templates,
        "batch": cmd_batch,
        "tenants": cmd_tenants,
    }
    try:
        cmds[args.command](args)
    except (MaskerError, OSError, ValueError) as e:
        sys.stderr.write(f"{e}\n")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
