from __future__ import annotations

import json

import pytest
from openpyxl import load_workbook

from ciushr.config import Settings
from ciushr.errors import CiusError
from ciushr.logging import SEVERITY_FILLS, ExcelReport
from ciushr.validator import (
    REPORT_COLUMNS,
    ValidationIssue,
    export_report,
    has_errors,
    issues_from_errors,
    validate_data,
    validate_file,
)

from invoice_samples import sample_invoice


def test_issues_follow_error_paths():
    errors = {
        "supplier": {"oib": "must be an 11-digit OIB number"},
        "invoice_lines": {"line_2": {"item": {"name": "is required"}}},
    }

    issues = issues_from_errors(errors)

    assert [(issue.code, issue.message) for issue in issues] == [
        ("supplier.oib", "must be an 11-digit OIB number"),
        ("invoice_lines.line_2.item.name", "is required"),
    ]
    assert all(issue.severity == "ERROR" for issue in issues)


def test_warnings_become_warning_issues():
    issues = issues_from_errors(
        None,
        ["tax_total.subtotal_1.tax_category: should carry tax_exemption_reason", "plain warning"],
    )

    assert [(issue.severity, issue.code, issue.message) for issue in issues] == [
        ("WARNING", "tax_total.subtotal_1.tax_category", "should carry tax_exemption_reason"),
        ("WARNING", "input", "plain warning"),
    ]
    assert not has_errors(issues)


def test_string_errors_have_default_code():
    issues = issues_from_errors("XML parsing failed: boom")

    assert str(issues[0]) == "ERROR input: XML parsing failed: boom"
    assert has_errors(issues)


def test_validate_data():
    assert validate_data(sample_invoice(), settings=Settings()) == []

    issues = validate_data(sample_invoice(id=""), settings=Settings())
    assert [(issue.code, issue.message) for issue in issues] == [("id", "is required")]


def test_validate_file(tmp_path):
    path = tmp_path / "invoice.json"
    path.write_text(json.dumps(sample_invoice(currency_code="USD")), encoding="utf-8")

    issues = validate_file(path, settings=Settings())

    assert [issue.code for issue in issues] == ["currency_code"]


def test_validate_file_rejects_bad_json(tmp_path):
    path = tmp_path / "invoice.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")

    with pytest.raises(CiusError, match="JSON object"):
        validate_file(path)


def test_export_report_writes_rows(tmp_path):
    issues = [
        ValidationIssue("is required", code="id"),
        ValidationIssue("check me", code="notes", details={"severity": "WARNING"}),
    ]

    destination = export_report(
        {"a.json": issues, "b.json": []}, tmp_path / "reports" / "invoice.xlsx"
    )

    workbook = load_workbook(destination)
    assert workbook.sheetnames == ["Issues", "Summary"]
    sheet = workbook["Issues"]
    rows = list(sheet.iter_rows(values_only=True))
    assert rows[0] == REPORT_COLUMNS
    assert rows[1:] == [
        ("a.json", "ERROR", "id", "is required"),
        ("a.json", "WARNING", "notes", "check me"),
    ]
    assert sheet["A1"].font.bold
    assert sheet.freeze_panes == "A2"
    assert sheet["D2"].fill.start_color.rgb == SEVERITY_FILLS["ERROR"]
    assert sheet["D3"].fill.start_color.rgb == SEVERITY_FILLS["WARNING"]

    summary = list(workbook["Summary"].iter_rows(values_only=True))
    assert summary == [("Source", "Errors", "Warnings"), ("a.json", 1, 1), ("b.json", 0, 0)]


def test_report_counts_issues_per_source():
    report = ExcelReport()

    added = report.add("x.json", issues_from_errors({"id": "is required"}, ["notes: odd"]))
    report.add("x.json", [])

    assert added == 2
    assert report.summary() == [("x.json", 1, 1)]
