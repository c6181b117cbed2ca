# report_writer.py
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Sequence

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

REPORT_DIR = Path("report")
SHEET_TITLE = "Test Result"
MIN_COLUMN_WIDTH = 10
COLUMN_PADDING = 2


@dataclass(frozen=True)
class ReportColumn:
    field: str
    label: str
    width: int = MIN_COLUMN_WIDTH


PERSONALIZER_COLUMNS = [
    ReportColumn("identifier", "Personalizer Id", 16),
    ReportColumn("flow_type", "Type", 14),
    ReportColumn("url", "Url", 30),
    ReportColumn("element_selector", "Element Selector", 18),
    ReportColumn("recommendation_not_loaded", "Recommendation Not Loaded"),
    ReportColumn("dom_order", "Dom Order", 20),
    ReportColumn("rank_order", "Rank Order", 20),
    ReportColumn("rank_api_observed", "Rank Api Call"),
    ReportColumn("reward_api_observed", "Reward Api Call"),
    ReportColumn("first_ranked_id", "Rank First Element"),
    ReportColumn("first_dom_id", "Dom First Element"),
    ReportColumn("order_matches", "Dom Order Check With Rank Order"),
    ReportColumn("rank_event_id", "Rank Event Id", 20),
    ReportColumn("reward_event_id", "Reward Event Id", 20),
    ReportColumn("reward_weight_list", "Reward Weight List"),
    ReportColumn("reward_weight", "Reward Weight"),
    ReportColumn("page_errors", "Page Errors", 20),
    ReportColumn("failed_requests", "Failed Requests", 20),
    ReportColumn("error", "Error", 30),
    ReportColumn("screenshot_path", "Screenshot", 20),
    ReportColumn("batch_number", "Batch Number"),
    ReportColumn("attempt", "Retry Attempt"),
]

CONSOLE_COLUMNS = [
    ReportColumn("type", "Type", 14),
    ReportColumn("message", "Message", 40),
    ReportColumn("url", "URL", 30),
    ReportColumn("timestamp", "Timestamp", 20),
]


def format_timestamp(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime("%Y-%m-%d_%H-%M-%S")


def timestamped_filename(base_name: str, extension: str = "log", now: Optional[datetime] = None) -> str:
    return f"{base_name}_{format_timestamp(now)}.{extension}"


def cell_value(value: Any) -> Any:
    """Flatten a record value into something an excel cell can hold."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        value = ", ".join(str(part) for part in value)
    elif isinstance(value, (bool, int, float)):
        return value
    # worksheets reject control characters such as ANSI escapes
    return ILLEGAL_CHARACTERS_RE.sub("", str(value))


def _read_field(record: Any, name: str) -> Any:
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name, None)


def build_rows(records: Sequence[Any], columns: Sequence[ReportColumn]) -> List[List[Any]]:
    return [[cell_value(_read_field(record, column.field)) for column in columns] for record in records]


def column_widths(rows: Sequence[Sequence[Any]], columns: Sequence[ReportColumn]) -> List[int]:
    widths = []
    for index, column in enumerate(columns):
        longest = max(
            [len(column.label)] + [len(str(row[index])) for row in rows if row[index] != ""]
        )
        widths.append(max(column.width, MIN_COLUMN_WIDTH, longest) + COLUMN_PADDING)
    return widths


def write_report(
    records: Sequence[Any],
    report_name: str,
    columns: Sequence[ReportColumn] = PERSONALIZER_COLUMNS,
    report_dir: Path = REPORT_DIR,
    now: Optional[datetime] = None,
) -> Optional[Path]:
    """
    Write ``records`` to ``<report_dir>/report_<name>_<timestamp>.xlsx``.
    Returns the written path, or None when there was nothing to write.
    """
    if not records:
        print("⚠️ No data to write.")
        return None

    rows = build_rows(records, columns)

    workbook = Workbook()
    sheet = workbook.active
    sheet.title = SHEET_TITLE
    sheet.append([column.label for column in columns])
    for cell in sheet[1]:
        cell.font = Font(bold=True)
    for row in rows:
        sheet.append(row)

    for index, width in enumerate(column_widths(rows, columns), start=1):
        sheet.column_dimensions[get_column_letter(index)].width = width

    report_dir = Path(report_dir)
    report_dir.mkdir(parents=True, exist_ok=True)
    file_path = report_dir / timestamped_filename(f"report_{report_name}", "xlsx", now)
    workbook.save(file_path)
    print(f"✅ Excel report generated at {file_path}")
    return file_path
