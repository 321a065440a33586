from __future__ import annotations
import json
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence
from .context import build_unit_context, unit_titles, FileReader, read_reference_file
from .errors import ConversationBusy, GenerationFailure, UnknownStudentReference
from .models import ConversationTurn, InterviewDetails, Role, StudentStatus, ToolInvocation, Unit, ContextPart
from .report import ERROR_TEXT, ReportComposer, ReportResult
from .store import StudentStore

logger = logging.getLogger(__name__)

UPDATE_SUMMARY = "updateStudentSummary"
GENERATE_REPORT = "generateSingleReport"

NOT_FOUND = "Student not found."
UPDATED = "Updated student summary successfully."
APOLOGY = "Sorry, I encountered an error connecting to the assistant. Please try again."
ACTION_COMPLETED = "Action completed."
# =========================

# Объявления инструментов (схемы для модели)
# =========================
UPDATE_SUMMARY_TOOL: Dict[str, Any] = {
    "name": UPDATE_SUMMARY,
    "description": "Updates the generated summary for a specific student based on user request.",
    "parameters": {
        "type": "OBJECT",
        "properties": {
            "studentId": {"type": "STRING", "description": "The unique ID of the student to update."},
            "newSummary": {"type": "STRING", "description": "The newly written summary text."},
        },
        "required": ["studentId", "newSummary"],
    },
}

GENERATE_REPORT_TOOL: Dict[str, Any] = {
    "name": GENERATE_REPORT,
    "description": (
        "Generates the term summary for one student. You MUST ask the user for behaviour, "
        "punctuality, attitude, progress and extra comments before calling this."
    ),
    "parameters": {
        "type": "OBJECT",
        "properties": {
            "studentId": {"type": "STRING", "description": "The ID of the student."},
            "behavior": {"type": "STRING", "description": "User input on classroom behaviour."},
            "punctuality": {"type": "STRING", "description": "User input on submission punctuality."},
            "attitude": {"type": "STRING", "description": "User input on attitude."},
            "progress": {"type": "STRING", "description": "User input on progress."},
            "extraComments": {"type": "STRING", "description": "User input on extra personal comments (or 'None')."},
        },
        "required": ["studentId", "behavior", "punctuality", "attitude", "progress", "extraComments"],
    },
}

TOOL_DECLARATIONS = [UPDATE_SUMMARY_TOOL, GENERATE_REPORT_TOOL]


def build_system_instruction(store: StudentStore, units: Sequence[Unit]) -> str:
    return f"""
    You are a helpful assistant managing a student report card application.

    CONTEXT:
    The teacher has defined the following Units: {unit_titles(units) or "None defined"}.
    Detailed context (files/notes) is attached.

    OPERATIONAL RULES:
    1. Process students ONE BY ONE.
    2. When a file is loaded, suggest starting with the first student in the list whose status is 'idle'.
    3. MANDATORY INTERVIEW: '{GENERATE_REPORT}' REQUIRES behavior, punctuality, attitude, progress and extraComments.
    4. Never call '{GENERATE_REPORT}' before the user has given you all five. Ask for them for EACH student.
    5. Ask conversationally, e.g. "What can you tell me about [Name]'s behaviour, punctuality and attitude?"
    6. Once the user has answered, call '{GENERATE_REPORT}' with the student's id.
    7. After generating, show the result and ask whether to adjust it (use '{UPDATE_SUMMARY}') or move to the next student.
    8. On "next", pick the next 'idle' student and START THE INTERVIEW AGAIN for that student.

    CURRENT STUDENT LIST STATUS:
    {json.dumps(store.status_snapshot(), ensure_ascii=False)}
    """


class ChatPhase(str, Enum):
    IDLE = "idle"
    AWAITING_MODEL = "awaiting_model"
    TOOL_PENDING = "tool_pending"
    AWAITING_FINAL = "awaiting_final"


class ConversationOrchestrator:
    """
    Диалог с моделью и вызовы инструментов.

    Один ход = одно сообщение пользователя:
      сообщение -> модель -> (текст | вызов инструмента -> результат -> модель -> текст)
    Состояние протокола хранится явно в phase / pending_call.
    """

    def __init__(
        self,
        store: StudentStore,
        model,
        units: Optional[List[Unit]] = None,
        reader: FileReader = read_reference_file,
    ):
        self.store = store
        self.model = model
        self.units: List[Unit] = units if units is not None else []
        self.reader = reader
        self.composer = ReportComposer(model, reader=reader)
        self.turns: List[ConversationTurn] = []
        self.phase = ChatPhase.IDLE
        self.pending_call: Optional[ToolInvocation] = None
        self._handlers: Dict[str, Callable] = {
            UPDATE_SUMMARY: self._update_student_summary,
            GENERATE_REPORT: self._generate_single_report,
        }

    @property
    def busy(self) -> bool:
        return self.phase != ChatPhase.IDLE

    def _append(self, role: Role, text: str) -> ConversationTurn:
        turn = ConversationTurn(role=role, text=text)
        self.turns.append(turn)
        return turn

    def reset(self) -> None:
        self.turns = []
        self.phase = ChatPhase.IDLE
        self.pending_call = None

    def announce_roster(self, file_name: str) -> ConversationTurn:
        first = self.store.next_idle()
        if first is None:
            text = "I've loaded the file but found no students. Please check the format."
        else:
            text = (
                f"I've loaded {len(self.store)} students from {file_name}. "
                f"Shall we start with the first student, {first.name}? "
                "I'll need to ask you a few questions about their behaviour and progress first."
            )
        return self._append(Role.ASSISTANT, text)
    # =========================

    # Инструменты
    # =========================
    async def _update_student_summary(self, args: Dict[str, Any]) -> str:
        student_id = str(args.get("studentId", ""))
        try:
            self.store.complete_with_summary(student_id, str(args.get("newSummary", "")))
        except UnknownStudentReference:
            logger.warning("%s: unknown student id %s", UPDATE_SUMMARY, student_id)
            return NOT_FOUND
        return UPDATED

    async def _generate_single_report(self, args: Dict[str, Any]) -> str:
        student_id = str(args.get("studentId", ""))
        student = self.store.find(student_id)
        if student is None:
            logger.warning("%s: unknown student id %s", GENERATE_REPORT, student_id)
            return NOT_FOUND
        if student.status == StudentStatus.GENERATING:
            return f"A report for {student.name} is already being generated."

        result = await self._run_generation(student_id, InterviewDetails.from_tool_args(args))
        if result.failed:
            return f"Report generation failed for {student.name}: {result.text}"
        return f"Generated summary for {student.name}:\n\n{result.text}"

    async def _run_generation(self, student_id: str, details: InterviewDetails) -> ReportResult:
        student = self.store.set_status(student_id, StudentStatus.GENERATING)
        result = ReportResult(ERROR_TEXT, failed=True)
        try:
            result = await self.composer.compose(student, details, self.units)
        finally:
            # статус не должен остаться generating, даже при отмене
            if self.store.find(student_id) is student and student.status == StudentStatus.GENERATING:
                self.store.set_summary(student_id, result.text)
                self.store.set_status(
                    student_id, StudentStatus.ERROR if result.failed else StudentStatus.COMPLETED
                )
        return result

    async def dispatch(self, call: ToolInvocation) -> str:
        handler = self._handlers.get(call.name)
        if handler is None:
            return f"Unknown tool: {call.name}"
        logger.info("Dispatching tool %s", call.name)
        return await handler(call.arguments)

    async def regenerate(self, student_id: str) -> bool:
        """Ручная перегенерация одного студента (без интервью)."""
        student = self.store.get(student_id)
        if student.status == StudentStatus.GENERATING:
            return False
        await self._run_generation(student_id, InterviewDetails())
        return True
    # =========================

    # Ход диалога
    # =========================
    async def _context_parts(self) -> List[ContextPart]:
        return await build_unit_context(self.units, reader=self.reader)

    async def _exchange(self, history, message: str) -> str:
        system_parts = [ContextPart.of_text(build_system_instruction(self.store, self.units))]
        system_parts.extend(await self._context_parts())
        chat = self.model.start_chat(history, system_parts, TOOL_DECLARATIONS)

        reply = await chat.send(message)
        if not reply.has_tool_call:
            return reply.text or ""

        call = reply.tool_calls[0]
        if len(reply.tool_calls) > 1:
            logger.warning(
                "Model returned %d tool calls, only %s is executed", len(reply.tool_calls), call.name
            )

        self.phase = ChatPhase.TOOL_PENDING
        self.pending_call = call
        result = await self.dispatch(call)

        self.phase = ChatPhase.AWAITING_FINAL
        final = await chat.send_tool_result(call, result)
        self.pending_call = None
        return final.text or ""

    async def handle_message(self, text: str) -> ConversationTurn:
        if self.busy:
            raise ConversationBusy("A message is already being processed.")
        # ход занят уже на чтении файлов контекста
        self.phase = ChatPhase.AWAITING_MODEL

        history = [(t.role.value, t.text) for t in self.turns]
        self._append(Role.USER, text)
        try:
            answer = await self._exchange(history, text)
        except GenerationFailure as e:
            logger.error("Chat turn failed: %s", e)
            return self._append(Role.ASSISTANT, APOLOGY)
        except Exception:
            logger.exception("Chat turn failed")
            return self._append(Role.ASSISTANT, APOLOGY)
        finally:
            self.phase = ChatPhase.IDLE
            self.pending_call = None

        return self._append(Role.ASSISTANT, answer or ACTION_COMPLETED)
