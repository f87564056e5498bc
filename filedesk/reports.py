"""
filedesk/reports.py

Monthly report export for the travel diary and the vehicle log-book.

- ReportConfiguration: header/footer profile for the diary report, kept on
  the client (signed session cookie) under REPORT_CONFIG_SESSION_KEY.
  No versioning: unknown keys are ignored, missing keys fall back to "".
- render_diary_pdf(summary, config, period) -> bytes   A4 portrait
- render_logbook_pdf(summary, period) -> bytes         A4 landscape
- diary_filename(period) / logbook_filename(period)

PDFs are built with reportlab platypus (SimpleDocTemplate + Table).
The print path is the HTML report page; this module only produces downloads.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from io import BytesIO
from typing import Any, Dict, MutableMapping, Optional
from xml.sax.saxutils import escape

from flask import current_app
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .aggregation import PeriodSummary
from .timeutils import format_day, format_period, format_short_date


@dataclass
class ReportConfiguration:
    employee_name: str = ""
    designation: str = ""
    department: str = ""
    sub_department: str = ""
    office_name: str = ""
    office_location: str = ""
    field_work_days: str = ""
    out_of_hq_days: str = ""
    hq_days: str = ""
    weekly_holidays: str = ""
    total_days: str = ""

    @classmethod
    def from_mapping(cls, data: Optional[MutableMapping[str, Any]]) -> "ReportConfiguration":
        data = data or {}
        known = {f.name for f in fields(cls)}
        return cls(**{k: str(v).strip() for k, v in data.items() if k in known and v is not None})

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def load_report_config(session: MutableMapping[str, Any]) -> ReportConfiguration:
    key = current_app.config["REPORT_CONFIG_SESSION_KEY"]
    raw = session.get(key)
    return ReportConfiguration.from_mapping(raw if isinstance(raw, dict) else None)


def save_report_config(session: MutableMapping[str, Any], config: ReportConfiguration) -> None:
    session[current_app.config["REPORT_CONFIG_SESSION_KEY"]] = config.to_dict()


# ---------------------------------------------------------------------
# Filenames
# ---------------------------------------------------------------------
def diary_filename(period: str) -> str:
    """"2024-03" -> "Monthly-Travel-03-2024.pdf"."""
    return f"Monthly-Travel-{format_period(period).replace('/', '-')}.pdf"


def logbook_filename(period: str) -> str:
    """"2024-03" -> "LogBook-3-2024.pdf" (month not padded)."""
    year, _, month = period.partition("-")
    return f"LogBook-{int(month)}-{year}.pdf"


# ---------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------
def _styles():
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(name="Header", fontSize=14, leading=18, alignment=1, spaceAfter=6))
    styles.add(ParagraphStyle(name="SubHeader", fontSize=10, leading=13, alignment=1, spaceAfter=4))
    styles.add(ParagraphStyle(name="Cell", fontSize=8, leading=10))
    styles.add(ParagraphStyle(name="Sign", fontSize=9, leading=12, alignment=2))
    return styles


GRID_STYLE = [
    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
    ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
    ("FONTSIZE", (0, 0), (-1, -1), 8),
    ("VALIGN", (0, 0), (-1, -1), "TOP"),
]


def _cell(text: str, style) -> Paragraph:
    return Paragraph(escape(text or "-"), style)


def _build(pagesize, elements) -> bytes:
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=pagesize,
        rightMargin=10 * mm,
        leftMargin=10 * mm,
        topMargin=12 * mm,
        bottomMargin=10 * mm,
    )
    doc.build(elements)
    return buffer.getvalue()


def render_diary_pdf(summary: PeriodSummary, config: ReportConfiguration, period: str) -> bytes:
    styles = _styles()
    elements = []

    if config.department:
        elements.append(Paragraph(escape(config.department), styles["SubHeader"]))
    if config.sub_department:
        elements.append(Paragraph(f"Sub-division: {escape(config.sub_department)}", styles["SubHeader"]))
    who = ", ".join(escape(part) for part in (config.employee_name, config.designation) if part)
    title = f"Monthly travel diary for {format_period(period)}"
    elements.append(Paragraph(f"{who}: {title}" if who else title, styles["Header"]))
    elements.append(Spacer(1, 6))

    rows = [["#", "Date", "Day", "From", "To", "Start", "End", "Duration", "Km", "Vehicle", "Remark"]]
    for index, entry in enumerate(summary.entries, start=1):
        rows.append([
            index,
            format_short_date(entry.date),
            format_day(entry.date),
            _cell(entry.travel_from, styles["Cell"]),
            _cell(entry.travel_to, styles["Cell"]),
            entry.time_from,
            entry.time_to,
            entry.duration,
            entry.distance,
            entry.vehicle,
            _cell(entry.remark, styles["Cell"]),
        ])
    rows.append(["", "", "", "", "", "", "", "Total", f"{summary.total_distance:g}", "", ""])

    table = Table(rows, repeatRows=1, colWidths=[8 * mm, 14 * mm, 10 * mm, 26 * mm, 26 * mm,
                                                  17 * mm, 17 * mm, 16 * mm, 12 * mm, 22 * mm, 22 * mm])
    table.setStyle(TableStyle(GRID_STYLE + [("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold")]))
    elements.append(table)
    elements.append(Spacer(1, 10))

    day_rows = [
        ["Field work days", config.field_work_days or "-"],
        ["Days out of headquarters", config.out_of_hq_days or "-"],
        ["Days at headquarters", config.hq_days or "-"],
        ["Weekly holidays", config.weekly_holidays or "-"],
        ["Total days", config.total_days or "-"],
    ]
    day_table = Table(day_rows, colWidths=[50 * mm, 20 * mm], hAlign="LEFT")
    day_table.setStyle(TableStyle([("GRID", (0, 0), (-1, -1), 0.5, colors.grey), ("FONTSIZE", (0, 0), (-1, -1), 8)]))
    elements.append(day_table)
    elements.append(Spacer(1, 18))

    for line in (f"( {config.employee_name} )" if config.employee_name else "",
                 config.designation, config.office_name, config.office_location):
        if line:
            elements.append(Paragraph(escape(line), styles["Sign"]))

    return _build(A4, elements)


def render_logbook_pdf(summary: PeriodSummary, period: str) -> bytes:
    styles = _styles()
    elements = [
        Paragraph("Vehicle Log Book", styles["Header"]),
        Paragraph(f"Month: {format_period(period)}  |  Trips: {summary.count}  |  "
                  f"Total km: {summary.total_distance:g}", styles["SubHeader"]),
        Spacer(1, 6),
    ]

    rows = [["#", "Date", "Fuel", "Oil", "Departure", "Arrival", "From", "To",
             "Before", "After", "Km", "Purpose", "Used by", "Remarks"]]
    for index, entry in enumerate(summary.entries, start=1):
        rows.append([
            index,
            format_short_date(entry.date),
            entry.fuel or "-",
            entry.oil or "-",
            entry.departure_time,
            entry.arrival_time,
            _cell(entry.start_location, styles["Cell"]),
            _cell(entry.destination, styles["Cell"]),
            entry.before_reading,
            entry.after_reading,
            entry.rounded_kilometers,
            _cell(entry.purpose, styles["Cell"]),
            _cell(entry.used_by, styles["Cell"]),
            _cell(entry.remarks, styles["Cell"]),
        ])

    table = Table(rows, repeatRows=1)
    table.setStyle(TableStyle(GRID_STYLE))
    elements.append(table)
    return _build(landscape(A4), elements)
