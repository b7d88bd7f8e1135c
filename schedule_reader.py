from __future__ import annotations

from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Dict, Optional

import pandas as pd

from errors import MissingDataError
from hymn_extractor import extract_hymn_number
from models import ServiceData

# Header text in the schedule -> ServiceData field
COLUMNS = {
    "Opening Hymn": "opening_hymn",
    "Closing Hymn": "closing_hymn",
    "Scripture Reading": "scripture_reading",
    "Scripture Reader": "reader",
    "Sermon Title": "sermon_title",
    "Speaker": "speaker",
    "Special Music": "special_music",
    "Intercessory Prayer": "prayer",
    "Children's Story": "story",
}

HEADER_ROW = 1       # headers live in the second row
FIRST_DATA_ROW = 2
DATE_COLUMN = 0

SATURDAY = 5


def upcoming_saturday(today: date | None = None) -> date:
    """The coming Saturday; today itself when today is Saturday."""
    today = today or date.today()
    return today + timedelta(days=(SATURDAY - today.weekday()) % 7)


def format_service_date(d: date) -> str:
    return d.strftime("%m/%d/%Y")


def load_schedule_frame(path: Path, sheet_keyword: str = "") -> pd.DataFrame:
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return pd.read_csv(path, header=None, dtype=object)

    if suffix == ".xlsx":
        sheets = pd.read_excel(path, sheet_name=None, header=None)
        for name, frame in sheets.items():
            if sheet_keyword and sheet_keyword.lower() in str(name).lower():
                return frame
        if not sheet_keyword and sheets:
            return next(iter(sheets.values()))
        raise MissingDataError(f"No sheet named like {sheet_keyword!r} in {path.name}")

    raise ValueError(f"Unsupported schedule format: {suffix}. Use .xlsx or .csv")


def _cell_text(value) -> str:
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value).strip()


def _cell_date(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = _cell_text(value)
    if not text:
        return None
    parsed = pd.to_datetime(text, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.date()


def column_indices(header_row) -> Dict[str, int]:
    indices: Dict[str, int] = {}
    for i, header in enumerate(header_row):
        key = COLUMNS.get(_cell_text(header))
        if key is not None:
            indices[key] = i
    return indices


def find_service_row(frame: pd.DataFrame, service_date: date) -> ServiceData:
    """
    ServiceData for the row dated `service_date`.
    No matching row gives an empty ServiceData (no hymn numbers).
    """
    label = format_service_date(service_date)
    if len(frame.index) <= HEADER_ROW:
        return ServiceData(service_date=label)

    cols = column_indices(frame.iloc[HEADER_ROW].tolist())

    for i in range(FIRST_DATA_ROW, len(frame.index)):
        row = frame.iloc[i].tolist()
        if _cell_date(row[DATE_COLUMN]) != service_date:
            continue

        def cell(key: str) -> str:
            idx = cols.get(key)
            return _cell_text(row[idx]) if idx is not None and idx < len(row) else ""

        return ServiceData(
            service_date=label,
            opening_hymn_number=extract_hymn_number(cell("opening_hymn") or None),
            closing_hymn_number=extract_hymn_number(cell("closing_hymn") or None),
            scripture_reading=cell("scripture_reading"),
            sermon_title=cell("sermon_title"),
            speaker=cell("speaker"),
            special_music=cell("special_music"),
            prayer=cell("prayer"),
            reader=cell("reader"),
            story=cell("story"),
        )

    return ServiceData(service_date=label)


def read_service(path: Path, service_date: date | None = None, sheet_keyword: str = "") -> ServiceData:
    service_date = service_date or upcoming_saturday()
    return find_service_row(load_schedule_frame(path, sheet_keyword), service_date)
