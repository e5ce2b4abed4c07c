"""Flatten validation results into report rows and export them to Excel."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from .config import Settings
from .errors import ErrorLeaf, ErrorMap, IndexedErrors, iter_leaves
from .invoices import validate_invoice
from .logging import REPORT_COLUMNS, ExcelReport, ReportConfig
from .schema import load_invoice_data

LOGGER = logging.getLogger("ciushr.validator")

ERROR = "ERROR"
WARNING = "WARNING"


class ValidationIssue:
    """Representation of a problem detected during validation."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, str] | None = None,
    ) -> None:
        self.message = message
        self.code = code or "input"
        self.details = details or {}

    @property
    def severity(self) -> str:
        return self.details.get("severity", ERROR)

    def as_cells(self) -> list[str]:
        """Serialise the issue for tabular export."""

        return [self.severity, self.code, self.message]

    def __str__(self) -> str:
        return f"{self.severity} {self.code}: {self.message}"

    def __repr__(self) -> str:
        return f"ValidationIssue({self.code!r}, {self.message!r}, severity={self.severity!r})"


def issues_from_errors(errors: Any, warnings: Iterable[str] = ()) -> list[ValidationIssue]:
    """Turn an error tree (or its plain rendering) into issues.

    ``code`` holds the dotted path of the offending field, for example
    ``invoice_lines.line_2.item.name``.
    """

    issues: list[ValidationIssue] = []
    for path, message in _leaves(errors):
        issues.append(ValidationIssue(message, code=".".join(path) or None))
    for warning in warnings:
        field, _, text = warning.partition(": ")
        if not text:
            field, text = "", warning
        issues.append(
            ValidationIssue(text, code=field or None, details={"severity": WARNING})
        )
    return issues


def _leaves(errors: Any, path: tuple[str, ...] = ()) -> Iterable[tuple[tuple[str, ...], str]]:
    if errors is None:
        return
    if isinstance(errors, (ErrorLeaf, ErrorMap, IndexedErrors)):
        yield from iter_leaves(errors, path)
    elif isinstance(errors, str):
        yield path, errors
    elif isinstance(errors, Mapping):
        for key, value in errors.items():
            yield from _leaves(value, path + (str(key),))
    elif isinstance(errors, (list, tuple)):
        for item in errors:
            yield from _leaves(item, path)
    else:
        yield path, str(errors)


def validate_data(data: Any, *, settings: Settings | None = None) -> list[ValidationIssue]:
    result = validate_invoice(data, settings=settings)
    return issues_from_errors(result.error, result.warnings)


def validate_file(path: Path, *, settings: Settings | None = None) -> list[ValidationIssue]:
    """Validate the JSON invoice description stored at ``path``."""

    data = load_invoice_data(path)
    issues = validate_data(data, settings=settings)
    LOGGER.info("%s: %d issue(s)", path, len(issues))
    return issues


def export_report(
    issues_by_source: Mapping[str, Sequence[ValidationIssue]],
    destination: Path | str = "ciushr-report.xlsx",
) -> Path:
    """Write the issues of every input file to one Excel workbook.

    ``issues_by_source`` maps an input name (usually the file path) to the
    issues found in it.  Inputs without issues still appear in the summary.
    """

    report = ExcelReport(ReportConfig(filename=str(destination)))
    for source, issues in issues_by_source.items():
        report.add(source, issues)
    LOGGER.info("Writing %d input(s) to %s", len(issues_by_source), destination)
    return report.save()


def has_errors(issues: Iterable[ValidationIssue]) -> bool:
    return any(issue.severity == ERROR for issue in issues)


__all__ = [
    "REPORT_COLUMNS",
    "ValidationIssue",
    "issues_from_errors",
    "validate_data",
    "validate_file",
    "export_report",
    "has_errors",
]
