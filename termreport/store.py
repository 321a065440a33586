from __future__ import annotations
import logging
from typing import Dict, Iterable, List, Optional
from .errors import InvalidTransition, UnknownStudentReference
from .models import CRITERION_KEYS, StudentRecord, StudentStatus, Unit, new_unit

logger = logging.getLogger(__name__)

_ALLOWED = {
    StudentStatus.IDLE: {StudentStatus.GENERATING},
    StudentStatus.GENERATING: {StudentStatus.COMPLETED, StudentStatus.ERROR},
    StudentStatus.COMPLETED: {StudentStatus.GENERATING},
    StudentStatus.ERROR: {StudentStatus.GENERATING},
}


class StudentStore:
    """
    Единственное хранилище записей студентов.

    Статус и текст отчёта меняются только через set_status / set_summary /
    complete_with_summary, чтобы все записи шли через одно место.
    """

    def __init__(self, students: Optional[Iterable[StudentRecord]] = None):
        self._students: List[StudentRecord] = list(students or [])

    def __len__(self) -> int:
        return len(self._students)

    def __iter__(self):
        return iter(list(self._students))

    def replace_all(self, students: Iterable[StudentRecord]) -> None:
        # новая загрузка полностью заменяет набор
        self._students = list(students)
        logger.info("Student set replaced: %d records", len(self._students))

    def clear(self) -> None:
        self._students = []

    def find(self, student_id: str) -> Optional[StudentRecord]:
        for s in self._students:
            if s.id == student_id:
                return s
        return None

    def get(self, student_id: str) -> StudentRecord:
        s = self.find(student_id)
        if s is None:
            raise UnknownStudentReference(student_id)
        return s

    def set_status(self, student_id: str, status: StudentStatus) -> StudentRecord:
        s = self.get(student_id)
        if status not in _ALLOWED[s.status]:
            raise InvalidTransition(f"{s.name}: {s.status.value} -> {status.value}")
        s.status = status
        return s

    def set_summary(self, student_id: str, summary: str) -> StudentRecord:
        s = self.get(student_id)
        s.generated_summary = summary
        return s

    def complete_with_summary(self, student_id: str, summary: str) -> StudentRecord:
        # ручная правка текста: completed из любого статуса
        s = self.get(student_id)
        s.generated_summary = summary
        s.status = StudentStatus.COMPLETED
        return s

    def status_snapshot(self) -> List[Dict[str, str]]:
        # без текстов отчётов, чтобы не раздувать промпт
        return [{"id": s.id, "name": s.name, "status": s.status.value} for s in self._students]

    def next_idle(self) -> Optional[StudentRecord]:
        for s in self._students:
            if s.status == StudentStatus.IDLE:
                return s
        return None

    def counts(self) -> Dict[str, int]:
        out = {st.value: 0 for st in StudentStatus}
        for s in self._students:
            out[s.status.value] += 1
        return out
# =========================

# Юниты
# =========================
def default_units() -> List[Unit]:
    # при старте сессии один пустой юнит
    return [new_unit()]


def add_unit(units: List[Unit], title: str = "") -> Unit:
    unit = new_unit(title)
    units.append(unit)
    return unit


def remove_unit(units: List[Unit], unit_id: str) -> None:
    units[:] = [u for u in units if u.id != unit_id]


def find_unit(units: List[Unit], unit_id: str) -> Unit:
    for u in units:
        if u.id == unit_id:
            return u
    raise KeyError(unit_id)


def rename_unit(units: List[Unit], unit_id: str, title: str) -> Unit:
    unit = find_unit(units, unit_id)
    unit.title = title
    return unit


def update_criterion(units: List[Unit], unit_id: str, key: str, **changes) -> Unit:
    if key not in CRITERION_KEYS:
        raise KeyError(key)
    unit = find_unit(units, unit_id)
    crit = unit.criteria[key]
    for name, value in changes.items():
        if not hasattr(crit, name):
            raise AttributeError(f"CriterionConfig has no field {name!r}")
        setattr(crit, name, value)
    return unit
