from __future__ import annotations
import csv
import logging
from io import BytesIO
from typing import List, Any
import pandas as pd
from openpyxl import load_workbook
from .errors import ParseFailure
from .extract import extract_students
from .models import StudentRecord
from .utils import is_blank

logger = logging.getLogger(__name__)
# =========================

# Excel: первый лист как матрица значений
# =========================
def _first_sheet_to_matrix(wb_bytes: bytes) -> List[List[Any]]:
    wb = load_workbook(BytesIO(wb_bytes), read_only=True, data_only=True)
    try:
        ws = wb.worksheets[0]
        rows = []
        for values in ws.iter_rows(values_only=True):
            row_vals = list(values)
            # хвостовые пустые ячейки не нужны
            while row_vals and is_blank(row_vals[-1]):
                row_vals.pop()
            rows.append(row_vals)
        return rows
    finally:
        wb.close()
# =========================

# CSV: выгрузки журналов из таблиц
# =========================
def _guess_delimiter(data: bytes, enc: str) -> str:
    # журнал из Excel с запятой в числах сохраняется через ';'
    sample = data[:65536].decode(enc, errors="replace")
    try:
        return csv.Sniffer().sniff(sample, delimiters=";,\t").delimiter
    except csv.Error:
        return ","


def _read_csv_bytes(data: bytes) -> pd.DataFrame:
    # header=None: строка заголовков попадает в матрицу как обычная строка
    # na_filter=False: "N/A", "nan", "None" в ячейках остаются текстом
    encodings = ["utf-8-sig", "utf-8", "cp1251"]
    last_err: Exception | None = None

    for enc in encodings:
        try:
            return pd.read_csv(
                BytesIO(data),
                header=None,
                sep=_guess_delimiter(data, enc),
                engine="python",
                encoding=enc,
                skip_blank_lines=True,
                dtype=object,
                keep_default_na=False,
                na_filter=False,
            )
        except pd.errors.EmptyDataError:
            return pd.DataFrame()
        except (UnicodeDecodeError, pd.errors.ParserError, csv.Error) as e:
            last_err = e
            continue

    raise ParseFailure(f"Could not read CSV: {last_err}")


def _frame_to_rows(df: pd.DataFrame) -> List[List[Any]]:
    if df.empty:
        return []
    df = df.astype(object).where(pd.notna(df), None)
    rows = []
    for values in df.values.tolist():
        while values and is_blank(values[-1]):
            values.pop()
        rows.append(values)
    return rows
# =========================

# Main: bytes -> rows -> students
# =========================
def read_first_sheet(data: bytes, filename: str = "") -> List[List[Any]]:
    """
    Возвращает первый лист файла как список строк (строка = список ячеек).

    - CSV читается как матрица без заголовков
    - Excel: только первый лист, значения формул (data_only)
    - нечитаемые байты -> ParseFailure
    """
    if not data:
        raise ParseFailure("The file is empty.", source_name=filename)

    try:
        if filename.lower().endswith(".csv"):
            rows = _frame_to_rows(_read_csv_bytes(data))
        else:
            rows = _first_sheet_to_matrix(data)
    except ParseFailure as e:
        e.source_name = filename
        raise
    except Exception as e:
        # openpyxl/zipfile бросают разные исключения на битых файлах
        raise ParseFailure(f"Could not read spreadsheet: {type(e).__name__}: {e}", source_name=filename) from e

    logger.info("Read %d rows from %s", len(rows), filename or "<upload>")
    return rows


def load_students(data: bytes, filename: str = "") -> List[StudentRecord]:
    return extract_students(read_first_sheet(data, filename))
