from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Optional
from .utils import round_half_up

SCORE_HEADER_RE = re.compile(r"score|grade|mark|criterion|crit|total|sum", re.I)
SHORT_HEADER_RE = re.compile(r"^[a-z0-9]{1,3}$", re.I)

# шкала 1..8; для среднего допускаем критерии до 10
SCALE_MIN, SCALE_MAX = 1.0, 8.0
AVERAGE_BAND = (0.0, 10.0)


def is_score_header(header: str) -> bool:
    # "A", "Q1", "Crit B", "Total" - да; "Score Comment" - нет
    lower = (header or "").lower()
    if "comment" in lower:
        return False
    return bool(SCORE_HEADER_RE.search(lower) or SHORT_HEADER_RE.match(lower))


def is_score_signal(value: Optional[float], header: str) -> bool:
    if value is None:
        return False
    return is_score_header(header) or SCALE_MIN <= value <= SCALE_MAX


def counts_toward_average(value: float) -> bool:
    lo, hi = AVERAGE_BAND
    return lo < value <= hi


@dataclass
class ScoreAccumulator:
    total: float = 0.0
    count: int = 0

    def add(self, value: float) -> bool:
        # значения вне диапазона (например "Year: 2024") в среднее не идут
        if not counts_toward_average(value):
            return False
        self.total += value
        self.count += 1
        return True

    def result(self) -> int:
        if self.count == 0:
            return 0
        return round_half_up(self.total / self.count)
