"""
Export Rendering and Delivery

ExportRenderer turns records into a CSV string or a print-ready HTML
report. It is deterministic for a given input and clock: the clock only
feeds the report date and the file name.

ExportManager is the delivery side: it renders, writes the file through
the file/share collaborator, then hands it to the share sheet when the
platform has one.
"""

import csv
import io
from datetime import date, datetime
from html import escape
from typing import Callable, Optional

from pydantic import BaseModel

from iou_tracker.audit import AuditLogger
from iou_tracker.formatting import format_currency, format_date
from iou_tracker.models.debt import DebtRecord, ExportFormat, Feature, Summary
from iou_tracker.services.features import FeatureFlags
from iou_tracker.services.platform import FileShareService


CSV_HEADERS = [
    "Person Name",
    "Amount",
    "Type",
    "Date",
    "Due Date",
    "Status",
    "Notes",
    "Created",
    "Settled Date",
]

MIME_TYPES = {
    ExportFormat.PDF: "text/html",
    ExportFormat.CSV: "text/csv",
}


def export_filename(export_format: ExportFormat, today: date) -> str:
    """iou_report_<yyyy-MM-dd>.html for reports, iou_data_<yyyy-MM-dd>.csv for data."""
    stamp = format_date(today, "yyyy-MM-dd")
    if export_format is ExportFormat.PDF:
        return f"iou_report_{stamp}.html"
    return f"iou_data_{stamp}.csv"


def _status(record: DebtRecord) -> str:
    return "Settled" if record.settled else "Active"


_REPORT_STYLE = """
    body { font-family: Arial, sans-serif; margin: 40px; line-height: 1.6; color: #333; }
    .header { text-align: center; margin-bottom: 40px; border-bottom: 2px solid #007AFF; padding-bottom: 20px; }
    .header h1 { color: #007AFF; margin: 0; }
    .summary { background: #f8f9fa; padding: 20px; border-radius: 8px; margin-bottom: 30px; }
    .summary h2 { margin-top: 0; color: #007AFF; }
    .summary-item { margin: 10px 0; font-size: 16px; }
    .net-balance { border-top: 1px solid #ddd; padding-top: 10px; font-size: 18px; }
    table { width: 100%; border-collapse: collapse; margin-top: 20px; }
    th, td { padding: 12px; text-align: left; border-bottom: 1px solid #ddd; }
    th { background-color: #007AFF; color: white; font-weight: bold; }
    .amount { text-align: right; font-weight: bold; }
    .type.lent { color: #2D7D32; font-weight: bold; }
    .type.borrowed { color: #C62828; font-weight: bold; }
    .status.active { color: #FF9500; font-weight: bold; }
    .status.settled { color: #34C759; font-weight: bold; }
    .footer { margin-top: 40px; text-align: center; color: #666; font-size: 12px; border-top: 1px solid #ddd; padding-top: 20px; }
"""


class ExportRenderer:
    """Renders records to CSV text or an HTML report."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self._clock = clock

    def render_csv(self, records: list[DebtRecord]) -> str:
        """
        One header row, then one row per record in input order.

        Every field is quoted so names and notes may contain commas,
        quotes or line breaks.
        """
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(CSV_HEADERS)
        for record in records:
            writer.writerow([
                record.counterparty_name,
                f"{record.amount:.2f}",
                record.direction.value,
                format_date(record.created_date, "yyyy-MM-dd"),
                format_date(record.due_date, "yyyy-MM-dd") if record.due_date else "",
                _status(record),
                record.note or "",
                format_date(record.created_at, "yyyy-MM-dd HH:mm:ss"),
                format_date(record.settled_date, "yyyy-MM-dd") if record.settled_date else "",
            ])
        return buffer.getvalue()

    def render_html(
        self,
        records: list[DebtRecord],
        summary: Optional[Summary] = None,
        currency: str = "USD",
        date_pattern: str = "MM/dd/yyyy",
    ) -> str:
        """Self-contained HTML report, meant for print-to-PDF."""
        generated_on = format_date(self._clock(), "MMMM dd, yyyy")

        summary_html = ""
        if summary is not None:
            summary_html = (
                '<div class="summary">\n'
                "  <h2>Financial Summary</h2>\n"
                '  <div class="summary-item"><strong>Total Lent:</strong> '
                f"{escape(format_currency(summary.total_owed_to_user, currency))}</div>\n"
                '  <div class="summary-item"><strong>Total Borrowed:</strong> '
                f"{escape(format_currency(summary.total_user_owes, currency))}</div>\n"
                '  <div class="summary-item net-balance"><strong>Net Balance:</strong> '
                f"{escape(format_currency(summary.net_balance, currency))}</div>\n"
                "</div>\n"
            )

        rows = []
        for record in records:
            kind = record.direction.value
            status = _status(record)
            due = format_date(record.due_date, date_pattern) if record.due_date else "-"
            rows.append(
                f'<tr class="{kind}">'
                f"<td>{escape(record.counterparty_name)}</td>"
                f'<td class="amount">{escape(format_currency(record.amount, currency))}</td>'
                f'<td class="type {kind}">{record.direction.label}</td>'
                f"<td>{format_date(record.created_date, date_pattern)}</td>"
                f"<td>{due}</td>"
                f'<td class="status {status.lower()}">{status}</td>'
                f"<td>{escape(record.note or '-')}</td>"
                "</tr>"
            )

        return (
            "<!DOCTYPE html>\n"
            "<html>\n<head>\n"
            '<meta charset="utf-8">\n'
            f"<title>IOU Report - {generated_on}</title>\n"
            f"<style>{_REPORT_STYLE}</style>\n"
            "</head>\n<body>\n"
            '<div class="header">\n'
            "  <h1>IOU Transaction Report</h1>\n"
            f"  <p>Generated on {generated_on}</p>\n"
            "</div>\n"
            f"{summary_html}"
            "<h2>Transaction Details</h2>\n"
            "<table>\n<thead><tr>"
            "<th>Person</th><th>Amount</th><th>Type</th><th>Date</th>"
            "<th>Due Date</th><th>Status</th><th>Notes</th>"
            "</tr></thead>\n<tbody>\n"
            + "\n".join(rows)
            + "\n</tbody>\n</table>\n"
            '<div class="footer">\n'
            f"  <p>Total Transactions: {len(records)} | Report generated by IOU Tracker</p>\n"
            "</div>\n"
            "</body>\n</html>\n"
        )

    def export_filename(self, export_format: ExportFormat) -> str:
        return export_filename(export_format, self._clock().date())


class ExportResult(BaseModel):
    """What an export produced."""

    export_format: ExportFormat
    filename: str
    file_uri: str
    record_count: int
    shared: bool = False


class ExportManager:
    """Render, write and share an export."""

    def __init__(
        self,
        renderer: ExportRenderer,
        file_service: FileShareService,
        feature_flags: FeatureFlags,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._renderer = renderer
        self._file_service = file_service
        self._feature_flags = feature_flags
        self._audit_logger = audit_logger

    def is_available(self) -> bool:
        return self._feature_flags.is_enabled(Feature.EXPORT)

    async def export(
        self,
        records: list[DebtRecord],
        export_format: ExportFormat = ExportFormat.PDF,
        summary: Optional[Summary] = None,
        currency: str = "USD",
        date_pattern: str = "MM/dd/yyyy",
    ) -> ExportResult:
        """
        Export records to a file and share it when possible.

        Raises:
            FeatureDisabledError: If export is switched off
        """
        self._feature_flags.require(Feature.EXPORT)

        if export_format is ExportFormat.PDF:
            content = self._renderer.render_html(records, summary, currency, date_pattern)
        else:
            content = self._renderer.render_csv(records)

        filename = self._renderer.export_filename(export_format)
        file_uri = await self._file_service.write_file(filename, content)

        shared = False
        if self._file_service.is_sharing_available():
            await self._file_service.share(file_uri, MIME_TYPES[export_format])
            shared = True

        if self._audit_logger:
            await self._audit_logger.log_export_generated(
                export_format.value, filename, len(records)
            )

        return ExportResult(
            export_format=export_format,
            filename=filename,
            file_uri=file_uri,
            record_count=len(records),
            shared=shared,
        )
