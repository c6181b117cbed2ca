"""Tests for the excel report writer."""

import re
from datetime import datetime

from openpyxl import load_workbook

from models import ConsoleMessage, ObservedResult
from report_writer import (
    CONSOLE_COLUMNS,
    MIN_COLUMN_WIDTH,
    PERSONALIZER_COLUMNS,
    ReportColumn,
    build_rows,
    cell_value,
    column_widths,
    timestamped_filename,
    write_report,
)

FROZEN = datetime(2024, 3, 5, 14, 7, 9)


def sample_results():
    passed = ObservedResult(
        identifier="p1",
        flow_type="Recommendation",
        url="https://ex.com/en-us/page",
        element_selector=".card",
        dom_order=["a", "b", "c"],
        rank_order=["a", "b"],
        rank_api_observed=True,
        first_ranked_id="a",
        first_dom_id="a",
        order_matches=True,
        rank_event_id="evt-1",
        reward_weight_list=[0.5, 1.0],
        batch_number=1,
    )
    failed = ObservedResult(
        identifier="p2",
        flow_type="Card Shuffle",
        url="https://ex.com/fr-fr/page",
        element_selector=".tile",
        recommendation_not_loaded=True,
        error="Recommendation not loaded for p2: rank API response was not observed.",
        screenshot_path="screenshots/p2_retry0_2024-03-05_14-07-09.png",
        batch_number=1,
        attempt=1,
    )
    return [passed, failed]


def sheet_rows(path):
    workbook = load_workbook(path)
    sheet = workbook.active
    rows = [[cell if cell is not None else "" for cell in row] for row in sheet.iter_rows(values_only=True)]
    return workbook, sheet, rows


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_timestamped_filename(self):
        assert timestamped_filename("report_x", "xlsx", FROZEN) == "report_x_2024-03-05_14-07-09.xlsx"

    def test_cell_value_flattens(self):
        assert cell_value(None) == ""
        assert cell_value(["a", "b"]) == "a, b"
        assert cell_value([0.5, 1.0]) == "0.5, 1.0"
        assert cell_value(True) is True
        assert cell_value(3) == 3

    def test_cell_value_strips_control_characters(self):
        assert cell_value("TypeError: \x1b[31mboom\x1b[0m") == "TypeError: [31mboom[0m"
        assert cell_value(["ok", "bad\x07bell"]) == "ok, badbell"
        assert cell_value("line\nbreak\ttab") == "line\nbreak\ttab"

    def test_build_rows_reads_dataclasses_and_dicts(self):
        columns = [ReportColumn("identifier", "Id"), ReportColumn("dom_order", "Dom")]
        rows = build_rows([sample_results()[0], {"identifier": "p9", "dom_order": ["z"]}], columns)
        assert rows == [["p1", "a, b, c"], ["p9", "z"]]

    def test_column_width_has_a_floor(self):
        columns = [ReportColumn("a", "A", width=4)]
        assert column_widths([["x"]], columns) == [MIN_COLUMN_WIDTH + 2]

    def test_column_width_follows_longest_value(self):
        columns = [ReportColumn("a", "A")]
        assert column_widths([["x" * 35], ["y"]], columns) == [37]


# ---------------------------------------------------------------------------
# write_report
# ---------------------------------------------------------------------------


class TestWriteReport:
    def test_empty_input_writes_nothing(self, tmp_path):
        report_dir = tmp_path / "report"
        assert write_report([], "personalizer_report", report_dir=report_dir, now=FROZEN) is None
        assert not report_dir.exists()

    def test_writes_one_row_per_record(self, tmp_path):
        path = write_report(sample_results(), "personalizer_report", report_dir=tmp_path / "report", now=FROZEN)

        assert path == tmp_path / "report" / "report_personalizer_report_2024-03-05_14-07-09.xlsx"
        assert path.exists()
        workbook, sheet, rows = sheet_rows(path)
        assert sheet.title == "Test Result"
        assert rows[0] == [column.label for column in PERSONALIZER_COLUMNS]
        assert all(cell.font.bold for cell in sheet[1])
        assert len(rows) == 3

        labels = rows[0]
        first = dict(zip(labels, rows[1]))
        assert first["Personalizer Id"] == "p1"
        assert first["Dom Order"] == "a, b, c"
        assert first["Rank Order"] == "a, b"
        assert first["Dom Order Check With Rank Order"] is True
        assert first["Reward Weight List"] == "0.5, 1.0"
        second = dict(zip(labels, rows[2]))
        assert second["Recommendation Not Loaded"] is True
        assert second["Retry Attempt"] == 1
        assert second["Error"].startswith("Recommendation not loaded")

    def test_columns_are_sized_to_content(self, tmp_path):
        records = sample_results()
        path = write_report(records, "widths", report_dir=tmp_path, now=FROZEN)
        workbook, sheet, rows = sheet_rows(path)
        error_index = [column.field for column in PERSONALIZER_COLUMNS].index("error")
        letter = sheet.cell(row=1, column=error_index + 1).column_letter
        assert sheet.column_dimensions[letter].width == len(records[1].error) + 2

    def test_rewriting_same_records_gives_identical_rows(self, tmp_path):
        records = sample_results()
        first = write_report(records, "same", report_dir=tmp_path, now=FROZEN)
        second = write_report(records, "same", report_dir=tmp_path, now=datetime(2024, 3, 5, 14, 7, 10))
        assert first != second
        assert sheet_rows(first)[2] == sheet_rows(second)[2]

    def test_console_schema(self, tmp_path):
        messages = [ConsoleMessage(type="PAGE ERROR", message="exp-1 exploded", url="https://ex.com", timestamp="t")]
        path = write_report(messages, "consoleLogs_2024-03-05", columns=CONSOLE_COLUMNS, report_dir=tmp_path, now=FROZEN)
        assert re.match(r"report_consoleLogs_2024-03-05_\d{4}-\d{2}-\d{2}_\d{2}-\d{2}-\d{2}\.xlsx", path.name)
        rows = sheet_rows(path)[2]
        assert rows == [["Type", "Message", "URL", "Timestamp"], ["PAGE ERROR", "exp-1 exploded", "https://ex.com", "t"]]

    def test_ansi_escapes_in_page_errors_are_written(self, tmp_path):
        record = sample_results()[0]
        record.page_errors = ["TypeError: \x1b[31mboom\x1b[0m"]
        path = write_report([record], "ansi", report_dir=tmp_path, now=FROZEN)
        labels, row = sheet_rows(path)[2]
        assert dict(zip(labels, row))["Page Errors"] == "TypeError: [31mboom[0m"
