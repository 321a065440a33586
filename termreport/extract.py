from __future__ import annotations
import logging
from typing import Any, List, Sequence, Tuple
from .header_detect import detect_header_row, header_labels, detect_name_column, column_label
from .models import StudentRecord, StudentStatus
from .scoring import ScoreAccumulator, is_score_signal
from .utils import cell_text, is_blank, parse_number, format_number

logger = logging.getLogger(__name__)


def _is_empty_row(row: Sequence[Any]) -> bool:
    return not row or all(is_blank(v) for v in row)


def _classify_row(row: Sequence[Any], headers: List[str], name_col: int) -> Tuple[int, List[str]]:
    """
    Разбирает ячейки строки (кроме имени) слева направо.
    Возвращает (итоговый балл, список "заголовок: значение").
    """
    acc = ScoreAccumulator()
    context: List[str] = []

    for c, v in enumerate(row):
        if c == name_col or is_blank(v):
            continue

        label = column_label(headers, c)
        num = parse_number(v)

        if is_score_signal(num, label):
            acc.add(num)
            context.append(f"{label}: {format_number(num)}")
        else:
            # текст, комментарий или число вне шкалы - как записано в ячейке
            context.append(f"{label}: {cell_text(v)}")

    return acc.result(), context


def extract_students(rows: Sequence[Sequence[Any]]) -> List[StudentRecord]:
    """
    Строки листа -> записи студентов.

    Порядок строк сохраняется. Строки до заголовка и сам заголовок
    пропускаются, как и строки без имени.
    """
    if not rows:
        return []

    header_idx = detect_header_row(rows)
    headers = header_labels(rows[header_idx])
    name_col = detect_name_column(headers)
    logger.info("Header row %d, name column %d (%s)", header_idx, name_col, column_label(headers, name_col))

    students: List[StudentRecord] = []
    for row in rows[header_idx + 1:]:
        if _is_empty_row(row):
            continue
        if name_col >= len(row) or is_blank(row[name_col]):
            continue

        name = cell_text(row[name_col])
        score, context = _classify_row(row, headers, name_col)
        students.append(StudentRecord(
            name=name,
            score=score,
            raw_context=context,
            generated_summary="",
            status=StudentStatus.IDLE,
        ))

    logger.info("Extracted %d students", len(students))
    return students
