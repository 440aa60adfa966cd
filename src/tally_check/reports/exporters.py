"""Download builders for attendance and analytics reports.

Every builder returns bytes; controllers wrap them with `send_file`.
"""

from __future__ import annotations

import csv
import io
from datetime import datetime
from typing import Any, Optional, Sequence
from xml.sax.saxutils import escape

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.pdfgen import canvas as pdf_canvas
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..attendance.model import AttendanceRecord
from ..common.datetime_utils import format_time
from ..core.exceptions import ValidationError
from ..dashboard.model import LecturerStat, SystemOverview
from .model import ReportSummary

ATTENDANCE_CSV_COLUMNS = [
    "Student Name",
    "Student ID",
    "Course Code",
    "Check-in Time",
    "Check-out Time",
    "Method",
    "Status",
    "Beacon ID",
    "Date",
]

ATTENDANCE_PDF_COLUMNS = [
    "Student Name",
    "Course",
    "Check-in Time",
    "Session Time",
    "Location",
    "Method",
    "Status",
]

_BRAND = colors.Color(75 / 255, 0, 130 / 255)
_STRIPE = colors.Color(245 / 255, 245 / 255, 245 / 255)


def _stamp(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else "N/A"


def attendance_rows(records: Sequence[AttendanceRecord]) -> list[dict[str, Any]]:
    """Flatten records into the spreadsheet columns."""

    return [
        {
            "Student Name": r.student_name or "Unknown",
            "Student ID": r.student_email or r.student_id or "Unknown",
            "Course Code": r.course_code or "Unknown",
            "Check-in Time": _stamp(r.check_in_time),
            "Check-out Time": _stamp(r.check_out_time),
            "Method": r.method.value,
            "Status": r.status.value,
            "Beacon ID": r.beacon_id or "N/A",
            "Date": r.record_date.isoformat(),
        }
        for r in records
    ]


def lecturer_rows(stats: Sequence[LecturerStat]) -> list[dict[str, Any]]:
    return [
        {
            "Name": s.name,
            "Email": s.email,
            "Department": s.department,
            "Total Courses": s.total_courses,
            "Total Students": s.total_students,
            "Total Classes": s.total_classes,
            "Average Attendance": f"{s.avg_attendance_rate:.1f}%",
            "Performance": s.performance.value,
        }
        for s in stats
    ]


def overview_items(overview: SystemOverview) -> list[tuple[str, Any]]:
    return [
        ("Total Students", overview.total_students),
        ("Total Lecturers", overview.total_lecturers),
        ("Total Courses", overview.total_courses),
        ("Average Attendance Rate", f"{overview.avg_attendance_rate:.1f}%"),
        ("Classes Today", overview.classes_today),
        ("Active Sessions", overview.active_sessions),
        ("Beacons Online", overview.beacons_online),
        ("Beacons Offline", overview.beacons_offline),
    ]


# ---- CSV / Excel ----

def to_csv_bytes(rows: Sequence[dict[str, Any]]) -> bytes:
    """CSV with a UTF-8 BOM so Excel opens it correctly. Every cell is quoted."""

    if not rows:
        raise ValidationError("No data to export")

    headers = list(rows[0].keys())
    out = io.StringIO()
    writer = csv.writer(out, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow(["" if row.get(h) is None else str(row.get(h)) for h in headers])
    return out.getvalue().encode("utf-8-sig")


def to_excel_bytes(rows: Sequence[dict[str, Any]], sheet_name: str = "Attendance") -> bytes:
    if not rows:
        raise ValidationError("No data to export")

    df = pd.DataFrame(list(rows))
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=sheet_name)
    return output.getvalue()


def analytics_csv(overview: SystemOverview, stats: Sequence[LecturerStat]) -> bytes:
    """Analytics export: one row per lecturer, system totals as a leading block."""

    rows = lecturer_rows(stats)
    if not rows:
        raise ValidationError("No data to export")

    out = io.StringIO()
    writer = csv.writer(out, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(["Metric", "Value"])
    for label, value in overview_items(overview):
        writer.writerow([label, value])
    writer.writerow([])
    headers = list(rows[0].keys())
    writer.writerow(headers)
    for row in rows:
        writer.writerow([row[h] for h in headers])
    return out.getvalue().encode("utf-8-sig")


# ---- PDF ----

class _NumberedCanvas(pdf_canvas.Canvas):
    """Canvas that defers page output so the footer can print "Page i of n"."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states: list[dict] = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._draw_footer(total)
            super().showPage()
        super().save()

    def _draw_footer(self, total: int) -> None:
        width, _ = self._pagesize
        self.setFont("Helvetica", 8)
        self.setFillColor(colors.grey)
        self.drawCentredString(width / 2.0, 20, f"Page {self._pageNumber} of {total}")


def _header(title: str, generated_on: datetime) -> list:
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle("ReportTitle", parent=styles["Heading1"], fontSize=20, textColor=_BRAND)
    sub_style = ParagraphStyle("ReportSub", parent=styles["Normal"], fontSize=12, textColor=colors.grey)
    return [
        Paragraph(escape(title), title_style),
        Paragraph(f"Generated on: {generated_on.strftime('%Y-%m-%d %H:%M:%S')}", sub_style),
        Spacer(1, 12),
    ]


def _section(label: str) -> Paragraph:
    styles = getSampleStyleSheet()
    return Paragraph(label, ParagraphStyle("Section", parent=styles["Heading2"], fontSize=14, textColor=_BRAND))


def _lines(items: Sequence[tuple[str, Any]]) -> list:
    styles = getSampleStyleSheet()
    body = ParagraphStyle("Line", parent=styles["Normal"], fontSize=10, textColor=colors.grey)
    return [Paragraph(escape(f"{label}: {value}"), body) for label, value in items]


def _data_table(headers: Sequence[str], body: Sequence[Sequence[Any]]) -> Table:
    table = Table([list(headers)] + [[str(c) for c in row] for row in body], repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), _BRAND),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 8),
                ("ALIGN", (0, 0), (-1, -1), "LEFT"),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
                ("TOPPADDING", (0, 0), (-1, -1), 3),
                ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, _STRIPE]),
                ("GRID", (0, 0), (-1, -1), 0.25, colors.lightgrey),
            ]
        )
    )
    return table


def attendance_table_rows(records: Sequence[AttendanceRecord]) -> list[list[str]]:
    """Body rows of the attendance PDF table, one per record."""

    return [
        [
            r.student_name or "Unknown",
            r.course_label,
            _stamp(r.check_in_time),
            f"{format_time(r.session_start)} - {format_time(r.session_end)}",
            r.session_location or "-",
            r.method.value,
            r.status.value,
        ]
        for r in records
    ]


def _render(elements: list, *, wide: bool = False) -> bytes:
    buf = io.BytesIO()
    doc = SimpleDocTemplate(buf, pagesize=landscape(A4) if wide else A4, bottomMargin=40)
    doc.build(elements, canvasmaker=_NumberedCanvas)
    return buf.getvalue()


def attendance_pdf(
    title: str,
    records: Sequence[AttendanceRecord],
    summary: ReportSummary,
    *,
    generated_on: Optional[datetime] = None,
) -> bytes:
    if not records:
        raise ValidationError("No data to export")

    elements = _header(title, generated_on or datetime.now())
    elements.append(_section("Summary Statistics"))
    elements.extend(
        _lines(
            [
                ("Total Records", summary.total),
                ("Present", summary.present),
                ("Absent", summary.absent),
                ("Late", summary.late),
                ("Attendance Rate", f"{summary.rate}%"),
            ]
        )
    )
    elements.append(Spacer(1, 12))
    elements.append(_data_table(ATTENDANCE_PDF_COLUMNS, attendance_table_rows(records)))
    return _render(elements, wide=True)


def analytics_pdf(
    title: str,
    overview: SystemOverview,
    stats: Sequence[LecturerStat],
    *,
    generated_on: Optional[datetime] = None,
) -> bytes:
    elements = _header(title, generated_on or datetime.now())
    elements.append(_section("System Statistics"))
    elements.extend(_lines(overview_items(overview)))
    rows = lecturer_rows(stats)
    if rows:
        elements.append(Spacer(1, 12))
        elements.append(_section("Lecturer Statistics"))
        headers = list(rows[0].keys())
        elements.append(_data_table(headers, [[row[h] for h in headers] for row in rows]))
    return _render(elements, wide=True)
