import os
import re
import math
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

DEFAULT_MODEL = "gemini-3-flash-preview"
DEFAULT_TIMEOUT = 120.0

_NBSP_RE = re.compile(r"[\u00A0\u2007\u202F]")  # NBSP варианты
_NUMBER_PREFIX_RE = re.compile(r"^[-+]?(\d+(\.\d*)?|\.\d+)([eE][-+]?\d+)?")


@dataclass(frozen=True)
class Settings:
    api_key: str
    model_name: str = DEFAULT_MODEL
    timeout: float = DEFAULT_TIMEOUT
    log_level: str = "INFO"


def load_settings(env_file: Optional[Path] = None) -> Settings:
    # .env рядом с проектом (если есть), переменные окружения имеют приоритет
    load_dotenv(env_file or BASE_DIR / ".env", override=False)
    api_key = (
        os.environ.get("GEMINI_API_KEY")
        or os.environ.get("GOOGLE_API_KEY")
        or os.environ.get("API_KEY")
        or ""
    )
    try:
        timeout = float(os.environ.get("TERMREPORT_TIMEOUT", DEFAULT_TIMEOUT))
    except ValueError:
        timeout = DEFAULT_TIMEOUT
    return Settings(
        api_key=api_key,
        model_name=os.environ.get("TERMREPORT_MODEL", DEFAULT_MODEL),
        timeout=timeout,
        log_level=os.environ.get("TERMREPORT_LOG_LEVEL", "INFO").upper(),
    )


def setup_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if root.handlers:
        return
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cell_text(v: Any) -> str:
    # None / NaN из pandas -> пустая строка
    if v is None:
        return ""
    if isinstance(v, float) and math.isnan(v):
        return ""
    s = str(v)
    s = s.replace("\ufeff", "")
    s = _NBSP_RE.sub(" ", s)
    return s.strip()


def is_blank(v: Any) -> bool:
    return cell_text(v) == ""


def norm_text(s: Any) -> str:
    """
    Нормализация текста заголовков:
    - BOM/неразрывные пробелы
    - lower
    - схлопывание пробелов
    """
    s = cell_text(s)
    if not s:
        return ""
    s = s.lower()
    s = re.sub(r"\s+", " ", s).strip()
    return s


def parse_number(v: Any) -> Optional[float]:
    """
    Число из ячейки: bool не число, NaN/inf не число.
    У строки берётся ведущее число ("6/8" -> 6, "7 out of 8" -> 7, "abc" -> None).
    """
    if isinstance(v, bool) or v is None:
        return None
    if isinstance(v, (int, float)):
        x = float(v)
        return x if math.isfinite(x) else None
    s = cell_text(v)
    m = _NUMBER_PREFIX_RE.match(s)
    if not m:
        return None
    x = float(m.group(0))
    return x if math.isfinite(x) else None


def format_number(x: float) -> str:
    # 7.0 -> "7", 6.5 -> "6.5"
    if float(x).is_integer():
        return str(int(x))
    return repr(float(x))


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))
