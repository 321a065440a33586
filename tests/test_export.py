from io import BytesIO

from openpyxl import load_workbook

from termreport.export import COLUMNS, export_reports_to_excel_bytes, reports_dataframe
from termreport.models import StudentRecord, StudentStatus


def _students():
    return [
        StudentRecord(name="Alice", score=7, raw_context=["A: 7", "B: 6"], generated_summary="Alice, well done.",
                      status=StudentStatus.COMPLETED),
        StudentRecord(name="Bob", score=0),
    ]


def test_reports_dataframe() -> None:
    df = reports_dataframe(_students())

    assert list(df.columns) == COLUMNS
    assert df.loc[0, "Level"] == "Excellent"
    assert df.loc[0, "Assessment data"] == "A: 7\nB: 6"
    assert df.loc[1, "Status"] == "idle"


def test_excel_export_round_trip() -> None:
    data = export_reports_to_excel_bytes(_students())

    ws = load_workbook(BytesIO(data)).active
    rows = list(ws.iter_rows(values_only=True))

    assert ws.title == "Reports"
    assert list(rows[0]) == COLUMNS
    assert rows[1][0] == "Alice"
    assert rows[1][4] == "Alice, well done."
    assert len(rows) == 3
