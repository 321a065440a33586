from __future__ import annotations
import re
from typing import Any, List, Sequence

HEADER_SCAN_ROWS = 10

# Ключевые слова строки заголовков
HEADER_ROW_RE = re.compile(r"name|student", re.I)
# Приоритет для колонки имени: "Student Name", "Name", "Student"
NAME_COLUMN_RE = re.compile(r"student\s*name|name|student", re.I)


def detect_header_row(rows: Sequence[Sequence[Any]], max_scan_rows: int = HEADER_SCAN_ROWS) -> int:
    """
    Возвращает индекс строки заголовков (0-based).
    Идея:
      - смотрим только первые max_scan_rows строк
      - первая строка, где есть текстовая ячейка с "name"/"student", и есть заголовок
      - если такой нет, заголовком считается строка 0 (даже если это данные)
    """
    n = min(max_scan_rows, len(rows))
    for i in range(n):
        row = rows[i] or []
        # числа и даты не считаются, только текст
        if any(isinstance(cell, str) and HEADER_ROW_RE.search(cell) for cell in row):
            return i
    return 0


def header_labels(header_row: Sequence[Any]) -> List[str]:
    out = []
    for v in header_row or []:
        out.append("" if v is None else str(v).strip())
    return out


def detect_name_column(headers: Sequence[str]) -> int:
    for i, h in enumerate(headers):
        if NAME_COLUMN_RE.search(h):
            return i
    # fallback: первая колонка
    return 0


def column_label(headers: Sequence[str], col: int) -> str:
    if col < len(headers) and headers[col]:
        return headers[col]
    return f"Column {col}"
