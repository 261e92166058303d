# deploy_checklist/services/exports.py
import re
from datetime import date
from io import BytesIO
from typing import List, Optional

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.backends.backend_pdf import PdfPages
import pandas as pd
from openpyxl.utils import get_column_letter

from ..config import settings
from ..models import CHECKLIST_FIELDS, CHECKLIST_ITEMS
from .clock import civil_now, civil_today, format_display_date, format_timestamp

CHECK = "✓"
DASH = "-"
MAX_COLUMN_WIDTH = 60

XLSX_COLUMNS = (
    ["#", "Merchant", "Device", "WiFi SSID", "Static IP", "AnyDesk ID", "Printer IP", "Serial Number"]
    + [label for _, label in CHECKLIST_ITEMS]
    + ["Checklist", "Date"]
)
PDF_COLUMNS = ["#", "Merchant", "Device", "WiFi SSID", "Static IP", "AnyDesk ID", "Printer IP", "Checklist", "Date"]

LANDSCAPE_A4 = (11.69, 8.27)  # inches
PDF_ROWS_PER_PAGE = 18
PDF_CELL_CHARS = 40

def count_checks(row: dict) -> int:
    return sum(1 for f in CHECKLIST_FIELDS if row.get(f))

def checklist_summary(row: dict) -> str:
    return f"{count_checks(row)}/{len(CHECKLIST_FIELDS)}"

def flatten_printer_ip(value: Optional[str]) -> str:
    return re.sub(r"\r?\n", ", ", value or "")

def xlsx_filename(today: Optional[date] = None) -> str:
    return f"deployments_{(today or civil_today()).isoformat()}.xlsx"

def pdf_filename(today: Optional[date] = None) -> str:
    return f"deployments_report_{(today or civil_today()).isoformat()}.pdf"

def filter_subtitle(filters: Optional[dict]) -> str:
    """'Device: Window  |  From: 2026-10-01  |  Search: "cafe"', or '' when nothing is active."""
    filters = filters or {}
    parts = []
    if filters.get("device"):
        parts.append(f"Device: {filters['device']}")
    if filters.get("date_from"):
        parts.append(f"From: {filters['date_from']}")
    if filters.get("date_to"):
        parts.append(f"To: {filters['date_to']}")
    if filters.get("search"):
        parts.append(f'Search: "{filters["search"]}"')
    return "  |  ".join(parts)

# -------- spreadsheet --------
def xlsx_records(rows: List[dict]) -> List[dict]:
    records = []
    for i, r in enumerate(rows, start=1):
        rec = {
            "#": i,
            "Merchant": r.get("merchant_name") or "",
            "Device": r.get("device_type") or "",
            "WiFi SSID": r.get("wifi_ssid") or "",
            "Static IP": r.get("static_ip") or "",
            "AnyDesk ID": r.get("anydesk_id") or "",
            "Printer IP": r.get("printer_ip") or "",
            "Serial Number": r.get("device_serial_number") or "",
        }
        for f, label in CHECKLIST_ITEMS:
            rec[label] = CHECK if r.get(f) else DASH
        rec["Checklist"] = checklist_summary(r)
        rec["Date"] = format_display_date(r.get("created_at"))
        records.append(rec)
    return records

def _column_width(header: str, values) -> int:
    longest = len(str(header))
    for v in values:
        for line in str(v).splitlines() or [""]:
            longest = max(longest, len(line))
    return min(longest + 2, MAX_COLUMN_WIDTH)

def build_xlsx(rows: List[dict]) -> bytes:
    df = pd.DataFrame(xlsx_records(rows), columns=XLSX_COLUMNS)
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="Deployments")
        ws = writer.sheets["Deployments"]
        # user text is stored as text, never as a formula
        for row in ws.iter_rows(min_row=2):
            for cell in row:
                if isinstance(cell.value, str):
                    cell.data_type = "s"
        for idx, col in enumerate(df.columns, start=1):
            ws.column_dimensions[get_column_letter(idx)].width = _column_width(col, df[col])
    return buffer.getvalue()

# -------- PDF report --------
def _clip(text: str, limit: int = PDF_CELL_CHARS) -> str:
    return text if len(text) <= limit else text[:limit - 1] + "…"

def pdf_rows(rows: List[dict]) -> List[List[str]]:
    out = []
    for i, r in enumerate(rows, start=1):
        out.append([
            str(i),
            _clip(r.get("merchant_name") or ""),
            r.get("device_type") or "",
            _clip(r.get("wifi_ssid") or ""),
            r.get("static_ip") or "",
            r.get("anydesk_id") or "",
            _clip(flatten_printer_ip(r.get("printer_ip"))),
            checklist_summary(r),
            format_display_date(r.get("created_at")),
        ])
    return out

def build_pdf(rows: List[dict], filters: Optional[dict] = None, generated_at: Optional[str] = None) -> bytes:
    table_rows = pdf_rows(rows)
    chunks = [table_rows[i:i + PDF_ROWS_PER_PAGE] for i in range(0, len(table_rows), PDF_ROWS_PER_PAGE)] or [[]]
    subtitle = filter_subtitle(filters)
    generated = generated_at or format_timestamp(civil_now())

    header = []
    if subtitle:
        header.append(subtitle)
    header.append(f"Generated: {generated} (UTC{settings.civil_utc_offset_hours:+d})")

    buffer = BytesIO()
    with PdfPages(buffer) as pdf:
        for page_no, chunk in enumerate(chunks, start=1):
            fig = plt.figure(figsize=LANDSCAPE_A4)
            fig.suptitle("Deployment Report", fontsize=16, fontweight="bold", y=0.96)
            fig.text(
                0.5, 0.91,
                "\n".join(header + [f"{len(rows)} record(s)  -  page {page_no} of {len(chunks)}"]),
                ha="center", va="top", fontsize=9,
            )

            ax = fig.add_axes([0.03, 0.04, 0.94, 0.78])
            ax.axis("off")
            if chunk:
                table = ax.table(cellText=chunk, colLabels=PDF_COLUMNS, loc="upper center", cellLoc="left")
                table.auto_set_font_size(False)
                table.set_fontsize(7)
                table.scale(1, 1.4)
                for (r, _), cell in table.get_celld().items():
                    if r == 0:
                        cell.set_text_props(fontweight="bold", color="white")
                        cell.set_facecolor("#f97316")
            else:
                ax.text(
                    0.5, 0.5,
                    "No deployment records match the current filters.",
                    ha="center", va="center", fontsize=12, color="gray",
                )

            pdf.savefig(fig)
            plt.close(fig)

    return buffer.getvalue()
