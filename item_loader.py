# item_loader.py
import json
import re
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from openpyxl import load_workbook

from errors import MissingSection
from models import ConsoleCheckItem, TestItem

T = TypeVar("T")

# accepted header spellings, compared after _normalize_header
URL_KEYS = ("url",)
IDENTIFIER_KEYS = ("personalizerid", "identifier", "id")
SELECTOR_KEYS = ("elementselector", "selector")
RECOMMENDATION_KEYS = ("recommendation", "isrecommendationflow")
WEIGHT_KEYS = ("weight", "weights")
EXPERIMENT_KEYS = ("expid", "experimentid", "personalizerid")
ERROR_TYPE_KEYS = ("type", "errortypes", "errorlist")

TRUE_STRINGS = {"true", "1", "yes", "y"}

CONSOLE_FALLBACK = [
    ConsoleCheckItem(url="https://example.com", experiment_id="test-exp-1", error_types=("log", "pageerror")),
]


def _normalize_header(value: Any) -> str:
    return re.sub(r"[^a-z0-9]", "", str(value or "").lower())


def _pick(row: Dict[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        if key in row and row[key] not in (None, ""):
            return row[key]
    return None


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    # ids typed into excel as numbers come back as floats
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return _as_text(value).lower() in TRUE_STRINGS


def parse_weights(value: Any) -> Tuple[float, ...]:
    """Accept "0.5, 1,2" style text, a bare number, or an already-split list."""
    if value is None or value == "":
        return ()
    if isinstance(value, bool):
        raise ValueError(f"weight must be numeric, got {value!r}")
    if isinstance(value, (int, float)):
        return (float(value),)
    if isinstance(value, (list, tuple)):
        return tuple(float(part) for part in value)
    parts = [part.strip() for part in str(value).split(",")]
    return tuple(float(part) for part in parts if part)


def parse_error_types(value: Any) -> Tuple[str, ...]:
    if value is None or value == "":
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(_as_text(part) for part in value if _as_text(part))
    return tuple(part.strip() for part in str(value).split(",") if part.strip())


def _cell_value(cell) -> Any:
    hyperlink = getattr(cell, "hyperlink", None)
    if hyperlink is not None and getattr(hyperlink, "target", None):
        return hyperlink.target
    return cell.value


def read_section_rows(path: Path, section: str) -> List[Dict[str, Any]]:
    """
    Return the rows of ``section`` as dicts keyed by normalized header.
    ``.json`` files use top-level keys as sections, anything else is opened
    as an excel workbook where each sheet is a section.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    if path.suffix.lower() == ".json":
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict) or section not in data:
            raise MissingSection(section, str(path))
        rows = data[section] or []
        return [
            {_normalize_header(key): value for key, value in row.items()}
            for row in rows
            if isinstance(row, dict)
        ]

    workbook = load_workbook(path, data_only=True)
    try:
        if section not in workbook.sheetnames:
            raise MissingSection(section, str(path))
        sheet = workbook[section]
        rows_iter = sheet.iter_rows()
        header_cells = next(rows_iter, None)
        if header_cells is None:
            return []
        headers = [_normalize_header(cell.value) for cell in header_cells]
        rows: List[Dict[str, Any]] = []
        for cells in rows_iter:
            values = [_cell_value(cell) for cell in cells]
            if all(value in (None, "") for value in values):
                continue
            rows.append({header: value for header, value in zip(headers, values) if header})
        return rows
    finally:
        workbook.close()


def row_to_test_item(row: Dict[str, Any]) -> Optional[TestItem]:
    url = _as_text(_pick(row, URL_KEYS))
    identifier = _as_text(_pick(row, IDENTIFIER_KEYS))
    selector = _as_text(_pick(row, SELECTOR_KEYS))
    if not url or not identifier or not selector:
        return None
    return TestItem(
        url=url,
        identifier=identifier,
        element_selector=selector,
        is_recommendation_flow=_as_bool(_pick(row, RECOMMENDATION_KEYS)),
        expected_weights=parse_weights(_pick(row, WEIGHT_KEYS)),
    )


def row_to_console_item(row: Dict[str, Any]) -> Optional[ConsoleCheckItem]:
    url = _as_text(_pick(row, URL_KEYS))
    experiment_id = _as_text(_pick(row, EXPERIMENT_KEYS))
    error_types = parse_error_types(_pick(row, ERROR_TYPE_KEYS))
    if not url or not experiment_id or not error_types:
        return None
    return ConsoleCheckItem(url=url, experiment_id=experiment_id, error_types=error_types)


def _convert_rows(
    rows: List[Dict[str, Any]],
    convert: Callable[[Dict[str, Any]], Optional[T]],
    section: str,
) -> List[T]:
    items: List[T] = []
    for index, row in enumerate(rows, start=2):
        try:
            item = convert(row)
        except (TypeError, ValueError) as exc:
            print(f"⚠️ Skipping {section} row {index}: {exc}")
            continue
        if item is None:
            print(f"⚠️ Skipping {section} row {index} with missing data: {row}")
            continue
        items.append(item)
    return items


def load_test_items(path: Path, section: str = "PersonalizerItems") -> List[TestItem]:
    rows = read_section_rows(path, section)
    return _convert_rows(rows, row_to_test_item, section)


def load_console_items(path: Path, section: str = "consoleError") -> List[ConsoleCheckItem]:
    rows = read_section_rows(path, section)
    return _convert_rows(rows, row_to_console_item, section)


def load_items_or_fallback(
    loader: Callable[[Path, str], List[T]],
    path: Path,
    section: str,
    fallback: Optional[List[T]] = None,
) -> List[T]:
    """Run ``loader`` and recover from a missing file or section with ``fallback``."""
    try:
        items = loader(path, section)
    except (MissingSection, FileNotFoundError) as exc:
        print(f"❌ Input read failed: {exc}")
        items = []
    if not items and fallback:
        print(f"⚠️ No '{section}' data loaded from {path}. Using fallback test data.")
        return list(fallback)
    print(f"📥 Loaded {len(items)} '{section}' items from {path}")
    return items
