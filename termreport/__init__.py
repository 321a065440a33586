"""
Этот пакет содержит:
- чтение таблицы студентов (CSV/XLSX, первый лист)
- распознавание заголовков и колонки имени
- подсчёт итогового балла по шкале 1..8
- сборку контекста юнитов/критериев для модели
- генерацию отчёта по одному студенту
- диалог с моделью и вызовы инструментов
- экспорт отчётов
"""
from .ingest import read_first_sheet, load_students
from .extract import extract_students
from .context import build_unit_context
from .report import ReportComposer, build_report_prompt
from .orchestrator import ConversationOrchestrator, TOOL_DECLARATIONS
from .store import StudentStore
from .export import export_reports_to_excel_bytes

__all__ = [
    "read_first_sheet",
    "load_students",
    "extract_students",
    "build_unit_context",
    "ReportComposer",
    "build_report_prompt",
    "ConversationOrchestrator",
    "TOOL_DECLARATIONS",
    "StudentStore",
    "export_reports_to_excel_bytes",
]
