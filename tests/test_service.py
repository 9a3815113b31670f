"""Tests for tenant loading, the request/response API, dialog batches and the CLI."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import io
import json

import pytest

from transcript_masker import (
    LookupTables,
    MaskedWordCounter,
    Masker,
    TenantRegistry,
    load_tenant,
    mask_content,
    update_mask_templates,
)
from transcript_masker.cli import main
from transcript_masker.config import create_batch, create_masker, load_config, load_from_yaml
from transcript_masker.dialogs import BatchMasker, DialogMasker, file_start_date, format_datetime
from transcript_masker.errors import MissingResource, UnknownTenant


def _write_tenant(root, tenant="companyA", templates=None, mask_numbers=True):
    d = root / tenant
    d.mkdir(parents=True)
    (d / "whitelist-words.json").write_text(json.dumps(
        {w: 1 for w in ("contact", "now", "call", "today", "visit", "hi")}
    ))
    (d / "names.json").write_text(json.dumps({"john": 1, "smith": 1}))
    (d / "geolocations.json").write_text(json.dumps(["Boston"]))
    (d / "profanities.json").write_text(json.dumps(["damn"]))
    (d / "DomainPrefixes.txt").write_text("_comment line\nADS.\n\n")
    (d / "DomainSuffixes.txt").write_text("badsite.com\n")
    (d / "QueryStringContains.txt").write_text("session=\n")
    (d / "maskTemplates.json").write_text(json.dumps(
        {"maskNumbers": mask_numbers, "templates": templates or []}
    ))
    return d


@pytest.fixture
def registry(tmp_path):
    _write_tenant(tmp_path)
    return TenantRegistry.from_directory(tmp_path)


# ── Tenants ──────────────────────────────────────────────────────────

def test_load_tenant_reads_every_table(tmp_path):
    _write_tenant(tmp_path, mask_numbers=False)
    tables = load_tenant(tmp_path, "companyA")
    assert "contact" in tables.whitelist
    assert tables.names == frozenset({"john", "smith"})
    assert tables.geolocations == frozenset({"boston"})
    assert tables.domain_prefixes == ("ads.",)
    assert tables.domain_suffixes == ("badsite.com",)
    assert tables.query_string_filters == ("session=",)
    assert tables.mask_numbers is False


def test_load_tenant_skips_bad_templates(tmp_path):
    _write_tenant(tmp_path, templates=[
        {"template": "(", "mask": "x"},
        {"template": r"\d{3}-\d{2}-\d{4}", "mask": "~SSN~"},
    ])
    tables = load_tenant(tmp_path, "companyA")
    assert [t.mask for t in tables.templates] == ["ssn"]
    assert "ssn" in tables.active_masks


def test_missing_table_raises(tmp_path):
    d = _write_tenant(tmp_path)
    (d / "names.json").unlink()
    with pytest.raises(MissingResource):
        load_tenant(tmp_path, "companyA")


def test_templates_file_must_hold_an_object(tmp_path):
    d = _write_tenant(tmp_path)
    (d / "maskTemplates.json").write_text("[]")
    with pytest.raises(MissingResource):
        load_tenant(tmp_path, "companyA")


def test_unknown_tenant(registry):
    assert registry.tenant_ids == ["companyA"]
    with pytest.raises(UnknownTenant):
        registry.get("nope")
    with pytest.raises(UnknownTenant):
        registry.get(None)


# ── mask_content ─────────────────────────────────────────────────────

def test_mask_content(registry):
    response = mask_content({
        "tenantID": "companyA",
        "unmasked": ["Contact John Smith now", None, "Call 555-1234 today"],
    }, registry)
    assert response["masked"] == ["Contact ~name~ now", "", "Call ~num~-~num~ today"]
    assert response["errors"] == []
    assert response["counts"]["maskedNam"] == 1
    assert response["counts"]["maskedNum"] == 2
    assert response["counts"]["words"] == 8


def test_mask_content_number_override(registry):
    response = mask_content({
        "tenantID": "companyA", "maskNumbers": False, "unmasked": ["Call 555-1234 today"],
    }, registry)
    assert response["masked"] == ["Call 555-1234 today"]


def test_mask_content_unknown_tenant(registry):
    response = mask_content({"tenantID": "nope", "unmasked": ["hi"]}, registry)
    assert response["masked"] == []
    assert response["errors"] == [{"error": 'tenantID "nope" is not a known tenantID.'}]


def test_mask_content_missing_tenant(registry):
    response = mask_content({"unmasked": ["hi"]}, registry)
    assert response["errors"] == [{"error": "tenantID is missing."}]


def test_mask_content_request_templates(registry):
    response = mask_content({
        "tenantID": "companyA",
        "templates": [
            {"template": "(", "mask": "x"},
            {"template": r"\d{3}-\d{2}-\d{4}", "mask": "SSN"},
        ],
        "unmasked": ["Call 123-45-6789 now"],
    }, registry)
    assert response["masked"] == ["Call ~ssn~ now"]
    assert len(response["errors"]) == 1
    assert response["errors"][0]["template"] == "("


def test_mask_content_malformed_templates_are_reported(registry):
    response = mask_content({
        "tenantID": "companyA",
        "templates": [r"\d+", {"template": 5, "mask": "x"}, {"template": "acme", "mask": "org"}],
        "unmasked": ["Visit acme 12"],
    }, registry)
    assert response["masked"] == ["Visit ~org~ ~num~"]
    assert [e["template"] for e in response["errors"]] == [r"\d+", 5]


def test_mask_content_url_filters(registry):
    response = mask_content({
        "tenantID": "companyA",
        "unmasked": [
            "Visit http://ads.example.com",
            "Visit http://example.com/?session=1",
            "Visit http://example.com/docs",
        ],
    }, registry)
    assert response["masked"] == [
        "Visit ~url~",
        "Visit ~url~",
        "Visit http://example.com/docs",
    ]


# ── update_mask_templates ────────────────────────────────────────────

def test_add_then_remove_template(registry):
    response = update_mask_templates({
        "tenantID": "companyA",
        "updates": [{"template": r"\bacme\b", "mask": "~Company~"}],
    }, registry)
    assert response["updated"] == [{"template": r"\bacme\b", "mask": "company"}]
    assert response["errors"] == []

    masked = mask_content({"tenantID": "companyA", "unmasked": ["Visit acme now"]}, registry)
    assert masked["masked"] == ["Visit ~company~ now"]

    response = update_mask_templates({
        "tenantID": "companyA", "removals": [r"\bacme\b"],
    }, registry)
    assert response["removed"] == [{"template": r"\bacme\b", "mask": "company"}]

    masked = mask_content({"tenantID": "companyA", "unmasked": ["Visit acme now"]}, registry)
    assert masked["masked"] == ["Visit ~misc~ now"]


def test_update_replaces_existing_template(registry):
    update_mask_templates({
        "tenantID": "companyA", "updates": [{"template": "acme", "mask": "company"}],
    }, registry)
    response = update_mask_templates({
        "tenantID": "companyA", "updates": [{"template": "acme", "mask": "org"}],
    }, registry)
    assert response["removed"] == [{"template": "acme", "mask": "company"}]
    assert [t.mask for t in registry.get("companyA").templates] == ["org"]


def test_update_swaps_snapshot(registry):
    before = registry.get("companyA")
    update_mask_templates({
        "tenantID": "companyA",
        "updates": [{"template": "acme", "mask": "company"}, {"template": "x", "mask": ""}],
    }, registry)
    assert before.templates == ()
    assert len(registry.get("companyA").templates) == 1


def test_update_with_malformed_entries(registry):
    response = update_mask_templates({
        "tenantID": "companyA",
        "updates": ["acme", {"template": 5, "mask": "x"}, {"template": "acme", "mask": "org"}],
        "removals": [7],
    }, registry)
    assert response["updated"] == [{"template": "acme", "mask": "org"}]
    assert len(response["errors"]) == 2


def test_update_unknown_tenant(registry):
    response = update_mask_templates({"tenantID": "nope", "updates": []}, registry)
    assert response["errors"] == [{"error": 'tenantID "nope" is not a known tenantID.'}]


# ── Dialog files ─────────────────────────────────────────────────────

def _dialog_file():
    return {
        "header": {"source": "test"},
        "dialogs": [{
            "dialogHeader": {
                "sessionID": "s1",
                "conversationDateTime": "2020-03-01T09:15:00.000Z",
                "agentEmails": ["a@x.com"],
                "clientEmail": "c@x.com",
            },
            "dialogContent": {"dialog": [
                {"client": "Jane", "datetime": "2020-03-01T09:15:00.000Z",
                 "message": "Contact John now"},
                {"agent": "Bob", "datetime": "2020-03-01T09:15:30.000Z",
                 "message": "Call 555-1234 today"},
            ]},
        }],
    }


def _tables():
    return LookupTables.build(
        whitelist={"contact", "now", "call", "today"}, names={"john"},
    )


def test_file_start_date():
    assert format_datetime(file_start_date("dialogs-2021-06-15.json")) == "2021-06-15T12:00:00.000Z"


def test_mask_file_content():
    dm = DialogMasker(Masker(_tables(), blacklist=MaskedWordCounter()), min_dialogs=1)
    result = dm.mask_file_content(_dialog_file(), "dialogs-2021-06-15.json")
    assert result.dialogs == 1

    dialog = result.content["dialogs"][0]
    header = dialog["dialogHeader"]
    volleys = dialog["dialogContent"]["dialog"]
    assert header["conversationDateTime"] == "2021-06-15T12:00:00.000Z"
    assert "agentEmails" not in header and "clientEmail" not in header
    assert volleys[0] == {
        "client": "~name~",
        "datetime": "2021-06-15T12:00:00.000Z",
        "message": "Contact ~name~ now",
    }
    assert volleys[1]["agent"] == "~name~"
    assert volleys[1]["datetime"] == "2021-06-15T12:00:30.000Z"
    assert volleys[1]["message"] == "Call ~num~-~num~ today"
    assert header["words"] == 7
    assert header["maskedNam"] == 3
    assert header["maskedNum"] == 2
    assert header["pctMasked"] == "71.43%"

    file_header = result.content["header"]
    assert file_header["source"] == "test"
    assert file_header["fileWords"] == 7
    assert file_header["fileMasked"] == 5
    assert file_header["fileMaskedNam"] == 3
    assert file_header["filePctMasked"] == "71.43%"


def test_batch_run(tmp_path):
    in_dir = tmp_path / "in"
    out_dir = tmp_path / "out"
    in_dir.mkdir()
    out_dir.mkdir()
    (in_dir / "dialogs-2021-06-15.json").write_text(json.dumps(_dialog_file()))
    (in_dir / "broken.json").write_text("not json")

    counter = MaskedWordCounter()
    batch = BatchMasker(
        DialogMasker(Masker(_tables(), blacklist=counter), min_dialogs=1),
        blacklist=counter,
    )
    summary = batch.run(in_dir, out_dir)
    assert summary.files_written == 1
    assert summary.dialogs == 1
    assert summary.counts.words == 7

    written = json.loads((out_dir / "dialogs-2021-06-15.json").read_text())
    assert written["dialogs"][0]["dialogContent"]["dialog"][0]["message"] == "Contact ~name~ now"
    assert '"john", 1' in (out_dir / "blacklist.txt").read_text()


def test_batch_skips_files_below_min_dialogs(tmp_path):
    (tmp_path / "dialogs-2021-06-15.json").write_text(json.dumps(_dialog_file()))
    out_dir = tmp_path / "out"
    out_dir.mkdir()
    dm = DialogMasker(Masker(_tables(), blacklist=MaskedWordCounter()), min_dialogs=2)
    result = dm.mask_file(tmp_path / "dialogs-2021-06-15.json", out_dir)
    assert result.written is None
    assert not (out_dir / "dialogs-2021-06-15.json").exists()


def test_batch_requires_output_dir(tmp_path):
    batch = BatchMasker(DialogMasker(Masker(_tables())), blacklist=MaskedWordCounter())
    with pytest.raises(NotADirectoryError):
        batch.run(tmp_path, tmp_path / "missing")


# ── Config ───────────────────────────────────────────────────────────

def test_load_config_nested():
    cfg = load_config({"transcript_masker": {
        "tenant_id": "t1", "min_dialogs": 3, "batch": {"extension": "txt"},
    }})
    assert cfg["tenant_id"] == "t1"
    assert cfg["min_dialogs"] == 3
    assert cfg["extension"] == "txt"
    assert cfg["mask_numbers"] is None


def test_load_config_flat_is_stable():
    cfg = load_config({"properties_dir": "props", "tenant_id": "t1", "input_dir": "in"})
    assert cfg["mask_numbers"] is None
    assert cfg["min_dialogs"] == 5
    assert cfg["input_dir"] == "in"
    assert load_config(cfg) == cfg


def test_create_masker_from_flat_config(tmp_path):
    _write_tenant(tmp_path)
    registry = TenantRegistry.from_directory(tmp_path)
    masker = create_masker({"properties_dir": str(tmp_path), "tenant_id": "companyA"}, registry)
    assert masker.mask("Contact John now").text == "Contact ~name~ now"
    batch = create_batch({"properties_dir": str(tmp_path), "tenant_id": "companyA"}, registry)
    assert batch.dialog_masker.min_dialogs == 5
    assert batch.extension == "json"


def test_load_from_yaml(tmp_path):
    path = tmp_path / "masker.yaml"
    path.write_text("transcript_masker:\n  tenant_id: companyB\n  mask_numbers: false\n")
    cfg = load_from_yaml(path)
    assert cfg["tenant_id"] == "companyB"
    assert cfg["mask_numbers"] is False


def test_create_masker_applies_overrides(tmp_path):
    _write_tenant(tmp_path)
    cfg = load_config({
        "properties_dir": str(tmp_path), "tenant_id": "companyA", "mask_numbers": False,
    })
    masker = create_masker(cfg)
    assert masker.tables.mask_numbers is False
    assert masker.mask("Call 555 today").text == "Call 555 today"


# ── CLI ──────────────────────────────────────────────────────────────

def test_cli_mask_request(tmp_path, monkeypatch, capsys):
    _write_tenant(tmp_path)
    request = {"tenantID": "companyA", "unmasked": ["Contact John Smith now"]}
    monkeypatch.setattr(sys, "stdin", io.StringIO(json.dumps(request)))
    assert main(["--properties", str(tmp_path), "mask-request"]) == 0
    response = json.loads(capsys.readouterr().out)
    assert response["masked"] == ["Contact ~name~ now"]


def test_cli_mask_text(tmp_path, monkeypatch, capsys):
    _write_tenant(tmp_path)
    monkeypatch.setattr(sys, "stdin", io.StringIO("Contact John Smith now\nCall 555-1234 today"))
    assert main(["--properties", str(tmp_path), "--tenant", "companyA", "mask-text"]) == 0
    assert capsys.readouterr().out == "Contact ~name~ now\nCall ~num~-~num~ today"


def test_cli_unknown_tenant(tmp_path, monkeypatch, capsys):
    _write_tenant(tmp_path)
    monkeypatch.setattr(sys, "stdin", io.StringIO("hi"))
    assert main(["--properties", str(tmp_path), "--tenant", "nope", "mask-text"]) == 1
    assert "nope" in capsys.readouterr().err


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
