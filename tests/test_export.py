"""
Tests for export rendering and delivery.
"""

import csv
import io
from datetime import date, datetime
from decimal import Decimal

import pytest

from conftest import NOW, make_record, run
from iou_tracker.models.debt import Direction, ExportFormat, Summary
from iou_tracker.services.export import (
    CSV_HEADERS,
    ExportManager,
    ExportRenderer,
    export_filename,
)
from iou_tracker.services.features import FeatureDisabledError
from iou_tracker.services.platform import FileShareService, LocalFileShareService


class RecordingFileShareService(FileShareService):
    """Keeps written files and share requests in memory."""

    def __init__(self):
        self.files = {}
        self.shared = []

    async def write_file(self, name, content):
        self.files[name] = content
        return f"memory://{name}"

    def is_sharing_available(self):
        return True

    async def share(self, file_uri, mime_type):
        self.shared.append((file_uri, mime_type))


@pytest.fixture
def renderer(clock):
    return ExportRenderer(clock)


class TestExportFilename:
    """Tests for export file names."""

    def test_names(self):
        assert export_filename(ExportFormat.PDF, date(2024, 6, 10)) == "iou_report_2024-06-10.html"
        assert export_filename(ExportFormat.CSV, date(2024, 6, 10)) == "iou_data_2024-06-10.csv"


class TestRenderCsv:
    """Tests for CSV rendering."""

    def test_header_only_for_no_records(self, renderer):
        assert renderer.render_csv([]) == ",".join(f'"{h}"' for h in CSV_HEADERS) + "\n"

    def test_rows(self, renderer):
        active = make_record(
            amount=Decimal("50"),
            due_date=datetime(2024, 6, 20),
            created_at=datetime(2024, 6, 9, 8, 5, 3),
        )
        settled = make_record(
            direction=Direction.BORROWED,
            amount=Decimal("12.5"),
            counterparty_name="Kofi",
            settled=True,
            settled_date=datetime(2024, 6, 10, 11, 0),
        )

        rows = list(csv.reader(io.StringIO(renderer.render_csv([active, settled]))))

        assert rows[0] == CSV_HEADERS
        assert rows[1] == [
            "Ama", "50.00", "lent", "2024-06-09", "2024-06-20",
            "Active", "", "2024-06-09 08:05:03", "",
        ]
        assert rows[2][:3] == ["Kofi", "12.50", "borrowed"]
        assert rows[2][5] == "Settled"
        assert rows[2][8] == "2024-06-10"

    def test_commas_quotes_and_newlines_survive(self, renderer):
        """Test that awkward text round-trips through a CSV reader."""
        record = make_record(counterparty_name='Ama "Big" Mensah, Jr.', note="line one\nline two")
        rows = list(csv.reader(io.StringIO(renderer.render_csv([record]))))
        assert rows[1][0] == 'Ama "Big" Mensah, Jr.'
        assert rows[1][6] == "line one\nline two"


class TestRenderHtml:
    """Tests for the HTML report."""

    def test_report_content(self, renderer):
        records = [
            make_record(amount=Decimal("50")),
            make_record(direction=Direction.BORROWED, amount=Decimal("20"), note="taxi"),
        ]
        summary = Summary(
            total_owed_to_user=Decimal("50"),
            total_user_owes=Decimal("20"),
            net_balance=Decimal("30"),
        )

        report = renderer.render_html(records, summary)

        assert "<h1>IOU Transaction Report</h1>" in report
        assert "Generated on June 10, 2024" in report
        assert "Financial Summary" in report
        assert "$30.00" in report
        assert "taxi" in report
        assert "Total Transactions: 2 | Report generated by IOU Tracker" in report

    def test_user_text_is_escaped(self, renderer):
        record = make_record(counterparty_name="<script>alert(1)</script>")
        report = renderer.render_html([record])
        assert "<script>" not in report
        assert "&lt;script&gt;" in report

    def test_summary_is_optional(self, renderer):
        assert "Financial Summary" not in renderer.render_html([])


class TestExportManager:
    """Tests for export delivery."""

    def test_export_csv_and_share(self, renderer, all_features, audit_logger, audit_storage):
        files = RecordingFileShareService()
        manager = ExportManager(renderer, files, all_features, audit_logger=audit_logger)

        result = run(manager.export([make_record()], ExportFormat.CSV))

        assert result.filename == "iou_data_2024-06-10.csv"
        assert result.file_uri == "memory://iou_data_2024-06-10.csv"
        assert result.record_count == 1
        assert result.shared is True
        assert files.shared == [(result.file_uri, "text/csv")]
        assert files.files[result.filename].startswith('"Person Name"')

        events = run(audit_storage.get_events_by_entity("export", result.filename))
        assert len(events) == 1

    def test_local_export_is_written_not_shared(self, renderer, all_features, tmp_path):
        manager = ExportManager(renderer, LocalFileShareService(tmp_path), all_features)

        result = run(manager.export([make_record()], ExportFormat.PDF))

        assert result.shared is False
        assert (tmp_path / "iou_report_2024-06-10.html").read_text(encoding="utf-8").startswith(
            "<!DOCTYPE html>"
        )

    def test_export_needs_the_feature(self, renderer, no_features):
        manager = ExportManager(renderer, RecordingFileShareService(), no_features)
        assert manager.is_available() is False
        with pytest.raises(FeatureDisabledError):
            run(manager.export([], ExportFormat.CSV))

    def test_file_names_with_paths_are_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            run(LocalFileShareService(tmp_path).write_file("../evil.csv", ""))


def test_clock_drives_report_date():
    renderer = ExportRenderer(lambda: NOW.replace(month=1, day=2))
    assert renderer.export_filename(ExportFormat.CSV) == "iou_data_2024-01-02.csv"
