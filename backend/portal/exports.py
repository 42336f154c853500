from __future__ import annotations

import io
from typing import Iterable

import pandas as pd
from fpdf import FPDF

from .attendance import attendance_rate_for
from .stats import round_half_up

EXPORT_COLUMNS = [
    "report_id",
    "date_of_lecture",
    "course_code",
    "course_name",
    "lecturer_name",
    "class_name",
    "students_present",
    "students_registered",
    "attendance_rate",
    "status",
]


def attendance_frame(reports: Iterable) -> pd.DataFrame:
    rows = []
    for report in reports:
        rate = attendance_rate_for(report)
        rows.append(
            {
                "report_id": report.pk,
                "date_of_lecture": report.date_of_lecture.isoformat() if report.date_of_lecture else "",
                "course_code": report.course_code,
                "course_name": report.course_name,
                "lecturer_name": report.lecturer_name,
                "class_name": report.class_name,
                "students_present": report.students_present,
                "students_registered": report.students_registered,
                "attendance_rate": round_half_up(rate) if rate is not None else None,
                "status": report.status,
            }
        )
    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
    df["attendance_rate"] = df["attendance_rate"].astype("Int64")
    return df


def export_attendance_csv(reports: Iterable) -> str:
    df = attendance_frame(reports)
    csv_buf = io.StringIO()
    df.to_csv(csv_buf, index=False)
    return csv_buf.getvalue()


def _latin1(text: str) -> str:
    # core PDF fonts only cover latin-1
    return text.encode("latin-1", "replace").decode("latin-1")


def _build_pdf_table(title: str, columns: list[str], rows: list[list[str]]) -> bytes:
    pdf = FPDF(orientation="L")
    pdf.set_auto_page_break(True, margin=15)
    pdf.add_page()

    pdf.set_font("Helvetica", "B", 14)
    pdf.cell(0, 10, _latin1(title), new_x="LMARGIN", new_y="NEXT", align="L")
    pdf.ln(4)

    effective_width = pdf.w - 2 * pdf.l_margin
    col_count = max(1, len(columns))
    col_widths = [effective_width / col_count for _ in range(col_count)]

    def _draw_row(values: list[str], fill: bool = False) -> None:
        pdf.set_fill_color(245, 245, 245) if fill else pdf.set_fill_color(255, 255, 255)
        for idx in range(col_count):
            text = str(values[idx]) if idx < len(values) else ""
            pdf.cell(col_widths[idx], 6, _latin1(text[:40]), border=1, align="L", fill=fill)
        pdf.ln(6)

    pdf.set_font("Helvetica", "B", 8)
    _draw_row(columns, fill=True)

    pdf.set_font("Helvetica", "", 8)
    for row in rows:
        _draw_row([str(cell) for cell in row])

    return bytes(pdf.output())


def export_attendance_pdf(reports: Iterable, title: str = "Attendance report") -> bytes:
    df = attendance_frame(reports)
    rows = df.astype(object).where(df.notna(), "").astype(str).values.tolist()
    return _build_pdf_table(title, list(df.columns), rows)
