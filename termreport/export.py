from __future__ import annotations
import pandas as pd
from io import BytesIO
from typing import Iterable, List
from .models import StudentRecord
from .report import score_label

SHEET_NAME = "Reports"
COLUMNS = ["Name", "Score", "Level", "Status", "Summary", "Assessment data"]


def reports_dataframe(students: Iterable[StudentRecord]) -> pd.DataFrame:
    rows: List[dict] = []
    for s in students:
        rows.append({
            "Name": s.name,
            "Score": s.score,
            "Level": score_label(s.score),
            "Status": s.status.value,
            "Summary": s.generated_summary,
            "Assessment data": "\n".join(s.raw_context),
        })
    return pd.DataFrame(rows, columns=COLUMNS)


def export_reports_to_excel_bytes(students: Iterable[StudentRecord]) -> bytes:
    df = reports_dataframe(students)
    bio = BytesIO()

    with pd.ExcelWriter(bio, engine="xlsxwriter") as writer:
        df.to_excel(writer, index=False, sheet_name=SHEET_NAME)

        wb = writer.book
        ws = writer.sheets[SHEET_NAME]

        fmt_header = wb.add_format({"bold": True, "bg_color": "#F2F2F2", "border": 1, "valign": "vcenter"})
        fmt_text = wb.add_format({"border": 1, "valign": "top"})
        fmt_wrap = wb.add_format({"border": 1, "valign": "top", "text_wrap": True})

        ws.freeze_panes(1, 0)
        ws.autofilter(0, 0, max(1, len(df)), len(COLUMNS) - 1)
        for col, name in enumerate(COLUMNS):
            ws.write(0, col, name, fmt_header)

        # ширины: текст отчёта и данные пошире
        ws.set_column(0, 0, 28, fmt_text)
        ws.set_column(1, 1, 8, fmt_text)
        ws.set_column(2, 3, 16, fmt_text)
        ws.set_column(4, 4, 90, fmt_wrap)
        ws.set_column(5, 5, 40, fmt_wrap)

    return bio.getvalue()
