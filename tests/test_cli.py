from __future__ import annotations

import json

import pytest
from openpyxl import load_workbook

from ciushr import cli
from ciushr.commands.roundtrip import differences

from invoice_samples import full_invoice, sample_invoice


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch):
    for name in (
        "CIUSHR_SETTINGS_PATH",
        "CIUSHR_LINE_TAX_CATEGORY_POLICY",
        "CIUSHR_STRICT_EXEMPTION_REASON",
        "CIUSHR_TIMEZONE",
        "CIUSHR_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


def _write_json(path, data):
    path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
    return path


def test_available_commands():
    names = [spec.name for spec in cli.available_commands()]

    assert names == ["validate", "build", "parse", "roundtrip", "info"]


def test_validate_valid_input(tmp_path, capsys):
    path = _write_json(tmp_path / "invoice.json", sample_invoice())

    assert cli.main(["validate", str(path)]) == 0
    assert "[OK]" in capsys.readouterr().out


def test_validate_invalid_input_writes_report(tmp_path, capsys):
    data = sample_invoice()
    data["supplier"]["oib"] = "123"
    path = _write_json(tmp_path / "invoice.json", data)
    report = tmp_path / "report.xlsx"

    exit_code = cli.main(["validate", str(path), "--report", str(report)])

    assert exit_code == 1
    out = capsys.readouterr().out
    assert "ERROR supplier.oib: must be an 11-digit OIB number" in out
    rows = list(load_workbook(report)["Issues"].iter_rows(values_only=True))
    assert rows[1] == (str(path), "ERROR", "supplier.oib", "must be an 11-digit OIB number")


def test_validate_several_files_into_one_report(tmp_path, capsys):
    valid = _write_json(tmp_path / "valid.json", sample_invoice())
    invalid = _write_json(tmp_path / "invalid.json", sample_invoice(currency_code="USD"))
    report = tmp_path / "report.xlsx"

    exit_code = cli.main(["validate", str(valid), str(invalid), "--report", str(report)])

    assert exit_code == 1
    out = capsys.readouterr().out
    assert f"[OK] {valid} is valid" in out
    assert "ERROR currency_code: only EUR is supported" in out
    summary = list(load_workbook(report)["Summary"].iter_rows(values_only=True))
    assert summary == [
        ("Source", "Errors", "Warnings"),
        (str(valid), 0, 0),
        (str(invalid), 1, 0),
    ]


def test_validate_missing_file(tmp_path, capsys):
    assert cli.main(["validate", str(tmp_path / "missing.json")]) == 2
    assert "File not found" in capsys.readouterr().err


def test_validate_broken_json(tmp_path, capsys):
    path = tmp_path / "invoice.json"
    path.write_text("{", encoding="utf-8")

    assert cli.main(["validate", str(path)]) == 1
    assert "invalid JSON" in capsys.readouterr().err


def test_build_writes_xml(tmp_path):
    path = _write_json(tmp_path / "invoice.json", full_invoice())
    output = tmp_path / "out" / "invoice.xml"

    assert cli.main(["-v", "build", str(path), "-o", str(output)]) == 0
    text = output.read_text(encoding="utf-8")
    assert text.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    assert "Operater: Operator1" in text


def test_build_to_stdout(tmp_path, capsys):
    path = _write_json(tmp_path / "invoice.json", sample_invoice())

    assert cli.main(["build", str(path)]) == 0
    assert "<cbc:ID>INV-001</cbc:ID>" in capsys.readouterr().out


def test_build_reports_invalid_input(tmp_path, capsys):
    path = _write_json(tmp_path / "invoice.json", sample_invoice(currency_code="USD"))

    assert cli.main(["build", str(path)]) == 1
    assert "currency_code" in capsys.readouterr().err


def test_parse_outputs_json(tmp_path):
    source = _write_json(tmp_path / "invoice.json", full_invoice())
    xml = tmp_path / "invoice.xml"
    assert cli.main(["build", str(source), "-o", str(xml)]) == 0
    output = tmp_path / "parsed.json"

    assert cli.main(["parse", str(xml), "-o", str(output)]) == 0
    parsed = json.loads(output.read_text(encoding="utf-8"))
    assert parsed["id"] == "INV-001"
    assert parsed["notes"] == ["Napomena o računu", "Hvala na povjerenju"]


def test_parse_rejects_malformed_xml(tmp_path, capsys):
    xml = tmp_path / "broken.xml"
    xml.write_text("<Invoice>", encoding="utf-8")

    assert cli.main(["parse", str(xml)]) == 1
    assert "XML parsing failed" in capsys.readouterr().err


def test_roundtrip_command(tmp_path, capsys):
    path = _write_json(tmp_path / "invoice.json", full_invoice())

    assert cli.main(["roundtrip", str(path)]) == 0
    assert "round-trips without loss" in capsys.readouterr().out


def test_differences():
    assert differences({"a": 1, "b": 2}, {"a": 1, "b": 3, "c": 4}) == ["b", "c"]
    assert differences({"a": 1}, {"a": 1}) == []


def test_info_command(capsys):
    assert cli.main(["info"]) == 0
    details = json.loads(capsys.readouterr().out)
    assert details["ubl_version"] == "2.1"


def test_unknown_command():
    assert cli.main(["frobnicate"]) == 2


def test_invalid_configuration_exits_with_2(monkeypatch, tmp_path, capsys):
    monkeypatch.setenv("CIUSHR_LOG_LEVEL", "LOUD")
    path = _write_json(tmp_path / "invoice.json", sample_invoice())

    assert cli.main(["validate", str(path)]) == 2
    assert "Unknown log level" in capsys.readouterr().err


def test_run_unknown_command():
    with pytest.raises(ValueError):
        cli.run("frobnicate")
