from __future__ import annotations


class TermReportError(Exception):
    """Базовая ошибка пакета."""


class ParseFailure(TermReportError):
    # таблицу не удалось прочитать: набор студентов не устанавливается
    def __init__(self, message: str, source_name: str = ""):
        super().__init__(message)
        self.source_name = source_name


class ContextReadFailure(TermReportError):
    def __init__(self, file_name: str, reason: str = ""):
        super().__init__(f"{file_name}: {reason}" if reason else file_name)
        self.file_name = file_name


class GenerationFailure(TermReportError):
    pass


class UnknownStudentReference(TermReportError, KeyError):
    def __init__(self, student_id: str):
        super().__init__(student_id)
        self.student_id = student_id

    def __str__(self) -> str:
        return f"Unknown student id: {self.student_id}"


class InvalidTransition(TermReportError, ValueError):
    pass


class ConversationBusy(TermReportError):
    # новый ход нельзя отправить, пока предыдущий не завершён
    pass
