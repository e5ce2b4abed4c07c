"""Excel workbook for invoice validation reports.

The ``Issues`` sheet holds one row per problem: the input file it was found
in, its severity, the dotted field path and the message.  Error and warning
rows are filled in different colours.  The ``Summary`` sheet lists every
input file with its error and warning counts, including files without issues.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Protocol, Sequence

REPORT_COLUMNS = ("Source", "Severity", "Field", "Message")
SUMMARY_COLUMNS = ("Source", "Errors", "Warnings")

ISSUE_COLUMN_WIDTHS = {"A": 32, "B": 10, "C": 48, "D": 80}
SUMMARY_COLUMN_WIDTHS = {"A": 32, "B": 10, "C": 10}

SEVERITY_FILLS = {
    "ERROR": "FFF8CBAD",
    "WARNING": "FFFFE699",
}


class IssueRow(Protocol):
    """A validation issue as produced by :mod:`ciushr.validator`."""

    @property
    def severity(self) -> str: ...

    def as_cells(self) -> Sequence[str]:
        """Return ``(severity, field, message)``."""


@dataclass(slots=True)
class ReportConfig:
    filename: str = "ciushr-report.xlsx"
    issues_title: str = "Issues"
    summary_title: str = "Summary"


class ExcelReport:
    """Collect the issues of one or more invoice files and save them with :mod:`openpyxl`."""

    def __init__(self, config: ReportConfig | None = None) -> None:
        self.config = config or ReportConfig()
        self._rows: list[tuple[str, ...]] = []
        self._counts: dict[str, dict[str, int]] = {}

    def add(self, source: str, issues: Iterable[IssueRow]) -> int:
        """Record ``issues`` found in ``source`` and return how many were added."""

        counts = self._counts.setdefault(source, {"ERROR": 0, "WARNING": 0})
        added = 0
        for issue in issues:
            self._rows.append((source, *issue.as_cells()))
            counts[issue.severity] = counts.get(issue.severity, 0) + 1
            added += 1
        return added

    def summary(self) -> list[tuple[str, int, int]]:
        return [
            (source, counts.get("ERROR", 0), counts.get("WARNING", 0))
            for source, counts in self._counts.items()
        ]

    def save(self) -> Path:
        """Write the workbook and return its path."""

        from openpyxl import Workbook
        from openpyxl.styles import Font, PatternFill

        destination = Path(self.config.filename)
        destination.parent.mkdir(parents=True, exist_ok=True)

        header_font = Font(bold=True)
        fills = {
            severity: PatternFill(fill_type="solid", start_color=colour, end_color=colour)
            for severity, colour in SEVERITY_FILLS.items()
        }

        workbook = Workbook()
        issues_sheet = workbook.active
        issues_sheet.title = self.config.issues_title
        issues_sheet.append(list(REPORT_COLUMNS))
        for row in self._rows:
            issues_sheet.append(list(row))
            fill = fills.get(row[1])
            if fill is not None:
                for cell in issues_sheet[issues_sheet.max_row]:
                    cell.fill = fill

        summary_sheet = workbook.create_sheet(self.config.summary_title)
        summary_sheet.append(list(SUMMARY_COLUMNS))
        for row in self.summary():
            summary_sheet.append(list(row))

        for sheet, widths in (
            (issues_sheet, ISSUE_COLUMN_WIDTHS),
            (summary_sheet, SUMMARY_COLUMN_WIDTHS),
        ):
            for cell in sheet[1]:
                cell.font = header_font
            for column, width in widths.items():
                sheet.column_dimensions[column].width = width
            sheet.freeze_panes = "A2"

        workbook.save(destination)
        return destination


__all__ = [
    "REPORT_COLUMNS",
    "SUMMARY_COLUMNS",
    "SEVERITY_FILLS",
    "IssueRow",
    "ReportConfig",
    "ExcelReport",
]
