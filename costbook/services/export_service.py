"""
Export Service - CSV exports

Every cell is quoted and numbers keep full Decimal precision.
"""
import csv
import io
from datetime import date
from typing import Dict, Iterable, List, Optional

from costbook.models.customer import Project
from costbook.models.estimate import Estimate
from costbook.models.line_item import CATEGORY_DISPLAY_MAP
from costbook.schemas.line_item import DocumentTotalsSchema

ESTIMATE_HEADERS = [
    "Estimate Number",
    "Project Name",
    "Client Name",
    "Status",
    "Date Created",
    "Total Amount",
    "Version Number",
    "Is Current Version",
]
PROJECT_DETAIL_HEADERS = ["Project Number", "Project Address"]
FINANCIAL_SUMMARY_HEADERS = ["Contingency %", "Contingency Amount", "Target Margin %"]
SUMMARY_HEADERS = ["Category", "Amount", "Cost", "Markup"]


def _write_rows(rows: Iterable[List]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerows(rows)
    return buffer.getvalue()


def _number(value) -> str:
    return "0" if value is None else str(value)


def export_estimates_csv(
    estimates: List[Estimate],
    projects: Dict[str, Project],
    include_project_details: bool = False,
    include_financial_summary: bool = False
) -> str:
    """
    Args:
        estimates: Estimates to export, in output order
        projects: Projects keyed by ID, used for names and numbers
    """
    headers = list(ESTIMATE_HEADERS)
    if include_project_details:
        headers += PROJECT_DETAIL_HEADERS
    if include_financial_summary:
        headers += FINANCIAL_SUMMARY_HEADERS

    rows = [headers]
    for estimate in estimates:
        project: Optional[Project] = projects.get(estimate.project_id or "")
        row = [
            estimate.estimate_number,
            project.project_name if project else "",
            (project.client_name or "") if project else "",
            estimate.status.value,
            estimate.created_at.date().isoformat(),
            _number(estimate.total_amount),
            str(estimate.version_number),
            "Yes" if estimate.is_current_version else "No",
        ]
        if include_project_details:
            row += [
                project.project_number if project else "",
                (project.address or "") if project else "",
            ]
        if include_financial_summary:
            row += [
                _number(estimate.contingency_percent),
                _number(estimate.contingency_amount),
                _number(estimate.target_margin_percent),
            ]
        rows.append(row)

    return _write_rows(rows)


def export_totals_csv(totals: DocumentTotalsSchema) -> str:
    """Category roll-up with a closing Total row."""
    rows = [SUMMARY_HEADERS]
    for category, subtotal in totals.byCategory.items():
        rows.append([
            CATEGORY_DISPLAY_MAP[category],
            str(subtotal.amount),
            str(subtotal.cost),
            str(subtotal.markup),
        ])
    rows.append(["Total", str(totals.totalAmount), str(totals.totalCost), str(totals.totalMarkup)])
    return _write_rows(rows)


def export_filename(prefix: str, on: date = None) -> str:
    return f"{prefix}_{(on or date.today()).isoformat()}.csv"
