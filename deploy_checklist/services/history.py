# deploy_checklist/services/history.py
"""
History view query engine.

Search happens upstream (``GET /deployments?search=``); everything else runs
over the fetched rows in a fixed order: device filter, date range, sort,
then pagination. Exports read ``HistoryView.filtered``, i.e. the full
filtered and sorted set before pagination.
"""
import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple, Union

from dateutil.relativedelta import relativedelta

from ..config import settings
from .clock import civil_today
from .exports import build_pdf, build_xlsx

PAGE_SIZE = settings.page_size
CASE_INSENSITIVE_FIELDS = {"merchant_name", "device_type"}

DateBound = Union[str, date, None]

def _date_str(value: DateBound) -> str:
    if not value:
        return ""
    if isinstance(value, date):
        return value.isoformat()
    return str(value)[:10]

# -------- filters --------
def filter_by_device(rows: List[dict], device: Optional[str]) -> List[dict]:
    if not device:
        return list(rows)
    return [r for r in rows if r.get("device_type") == device]

def filter_by_date_range(rows: List[dict], date_from: DateBound = None, date_to: DateBound = None) -> List[dict]:
    """Inclusive on both ends, compared on the YYYY-MM-DD part of created_at."""
    lo, hi = _date_str(date_from), _date_str(date_to)
    out = []
    for r in rows:
        day = (r.get("created_at") or "")[:10]
        if lo and day < lo:
            continue
        if hi and day > hi:
            continue
        out.append(r)
    return out

# -------- sort --------
def sort_key(row: dict, field_name: str):
    value = row.get(field_name)
    if field_name in CASE_INSENSITIVE_FIELDS:
        return (1, (value or "").lower())
    if isinstance(value, (int, float)):
        return (0, value)
    return (1, str(value or ""))

def sort_rows(rows: List[dict], field_name: str, direction: str = "asc") -> List[dict]:
    # sorted() is stable in both directions, ties keep their incoming order
    return sorted(rows, key=lambda r: sort_key(r, field_name), reverse=direction == "desc")

@dataclass
class SortState:
    field: str = "created_at"
    direction: str = "desc"

    def toggle(self, field_name: str):
        if field_name == self.field:
            self.direction = "asc" if self.direction == "desc" else "desc"
        else:
            self.field = field_name
            self.direction = "desc" if field_name == "created_at" else "asc"

# -------- pagination --------
@dataclass
class Page:
    rows: List[dict]
    page: int
    total_pages: int
    total: int
    start: int  # 1-based index of the first row, 0 when empty
    end: int

def paginate(rows: List[dict], page: int = 1, page_size: int = PAGE_SIZE) -> Page:
    total = len(rows)
    total_pages = max(1, math.ceil(total / page_size))
    page = min(max(page, 1), total_pages)
    offset = (page - 1) * page_size
    chunk = rows[offset:offset + page_size]
    return Page(
        rows=chunk,
        page=page,
        total_pages=total_pages,
        total=total,
        start=offset + 1 if chunk else 0,
        end=offset + len(chunk),
    )

# -------- date presets --------
def date_presets(today: Optional[date] = None) -> Dict[str, Tuple[str, str]]:
    """Quick ranges offered by the date picker, weeks starting on Monday."""
    d = today or civil_today()
    monday = d - timedelta(days=d.weekday())
    last_monday = monday - timedelta(days=7)
    first_of_month = d.replace(day=1)
    first_of_last_month = first_of_month - relativedelta(months=1)
    ranges = {
        "Today": (d, d),
        "Yesterday": (d - timedelta(days=1), d - timedelta(days=1)),
        "This week": (monday, d),
        "Last week": (last_monday, last_monday + timedelta(days=6)),
        "Last 7 days": (d - timedelta(days=6), d),
        "This month": (first_of_month, d),
        "Last month": (first_of_last_month, first_of_month - timedelta(days=1)),
    }
    return {label: (lo.isoformat(), hi.isoformat()) for label, (lo, hi) in ranges.items()}

# -------- stateful view --------
@dataclass
class HistoryView:
    rows: List[dict] = field(default_factory=list)
    search: str = ""
    device_filter: str = ""
    date_from: str = ""
    date_to: str = ""
    sort: SortState = field(default_factory=SortState)
    page: int = 1
    page_size: int = PAGE_SIZE

    def load(self, rows: List[dict]):
        self.rows = list(rows)

    async def refresh(self, client):
        self.load(await client.list_deployments(self.search))

    def set_search(self, term: str):
        self.search = term or ""
        self.page = 1

    def set_device_filter(self, device: str):
        self.device_filter = device or ""
        self.page = 1

    def set_date_range(self, date_from: DateBound, date_to: DateBound = None):
        self.date_from = _date_str(date_from)
        # a single picked day means that day only
        self.date_to = _date_str(date_to) or self.date_from
        self.page = 1

    def apply_preset(self, label: str, today: Optional[date] = None):
        lo, hi = date_presets(today)[label]
        self.set_date_range(lo, hi)

    def set_open_range(self, date_from: DateBound = None, date_to: DateBound = None):
        """Bounds taken as given; a missing bound leaves that side open."""
        self.date_from = _date_str(date_from)
        self.date_to = _date_str(date_to)
        self.page = 1

    def clear_date_range(self):
        self.date_from = ""
        self.date_to = ""
        self.page = 1

    def toggle_sort(self, field_name: str):
        self.sort.toggle(field_name)

    def go_to(self, page: int):
        self.page = page

    @property
    def has_active_filters(self) -> bool:
        return bool(self.search or self.device_filter or self.date_from or self.date_to)

    @property
    def filters(self) -> dict:
        return {
            "device": self.device_filter,
            "date_from": self.date_from,
            "date_to": self.date_to,
            "search": self.search,
        }

    @property
    def filtered(self) -> List[dict]:
        rows = filter_by_device(self.rows, self.device_filter)
        rows = filter_by_date_range(rows, self.date_from, self.date_to)
        return sort_rows(rows, self.sort.field, self.sort.direction)

    def current_page(self) -> Page:
        return paginate(self.filtered, self.page, self.page_size)

    @property
    def page_rows(self) -> List[dict]:
        return self.current_page().rows

    @property
    def total_pages(self) -> int:
        return self.current_page().total_pages

    def summary(self) -> str:
        p = self.current_page()
        if not p.total:
            return "No results"
        text = f"Showing {p.start}–{p.end} of {p.total} results"
        if self.has_active_filters:
            text += " (filtered)"
        return text

    def export_xlsx(self) -> bytes:
        return build_xlsx(self.filtered)

    def export_pdf(self, generated_at: Optional[str] = None) -> bytes:
        return build_pdf(self.filtered, self.filters, generated_at)
