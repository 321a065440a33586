from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional, Sequence
from .context import build_unit_context, FileReader, read_reference_file
from .errors import GenerationFailure
from .models import InterviewDetails, StudentRecord, Unit

logger = logging.getLogger(__name__)

GRADING_SCALE = {
    8: "Exceptional",
    7: "Excellent",
    6: "Very Good",
    5: "Good",
    4: "Satisfactory",
    3: "Needs Improvement",
    2: "Poor",
    1: "Very Poor",
}

EMPTY_OUTPUT_TEXT = "Could not generate summary."
ERROR_TEXT = "Error generating summary."


def score_label(score: int) -> str:
    return GRADING_SCALE.get(int(score), "Not graded")


def _scale_legend() -> str:
    return "\n".join(f"    {k}: {v}" for k, v in GRADING_SCALE.items())


def build_report_prompt(student: StudentRecord, details: Optional[InterviewDetails] = None) -> str:
    details = details or InterviewDetails()
    observations = "\n".join(f"    - {k}: {v}" for k, v in details.rendered().items())
    assessment = "\n      ".join(student.raw_context) or "(no additional columns)"

    return f"""
    Role: You are a teacher writing a personal report card comment for a student.

    GRADING SCALE CONTEXT (1-8):
{_scale_legend()}

    Student Data:
    - Name: {student.name}
    - Overall Score: {student.score}
    - Detailed Assessment Data (Columns from the spreadsheet):
      {assessment}

    Teacher Interview Observations:
{observations}

    CORE INSTRUCTION:
    Combine the 'Detailed Assessment Data' with the 'ACADEMIC UNIT CONTEXT' attached to this request.

    LOGIC STEPS:
    1. Find the per-criterion scores in the 'Detailed Assessment Data' (e.g. "Criterion A: 6", "Crit B: 5").
    2. Map each criterion score onto the task clarification and teacher notes for that criterion in the Unit Context,
       and describe the level of work using the wording of the grading scale and the task material.
    3. If criterion scores are missing, rely on the Overall Score and the teacher notes.
    4. Fold the 'Teacher Interview Observations' into the narrative naturally.

    FORMATTING RULES (STRICT):
    1. Address the student directly using "you".
    2. Start the comment EXACTLY with: "{student.name},"
    3. Write EXACTLY TWO paragraphs separated by ONE blank line.

       PARAGRAPH 1 - SYNTHESIZED PERFORMANCE NARRATIVE:
       - Do NOT list scores or criteria one by one ("In Criterion A you scored X...").
       - Identify 2-3 key strengths or patterns that cut across the criteria and describe them as a whole.
       - Weave behaviour, punctuality and attitude into the narrative, not as separate points.

       PARAGRAPH 2 - TERM SUMMARY AND NEXT STEPS:
       - Must make sense when read on its own.
       - Open with an overall assessment of the term.
       - Give 1-2 specific, actionable goals for next term.
       - Close with encouragement that feels personal.

    DIVERSITY REQUIREMENT:
    - Vary vocabulary and sentence structure between calls; students with similar data must not get templated comments.

    Tone: Professional, personal, constructive and encouraging.
    """


@dataclass(frozen=True)
class ReportResult:
    text: str
    failed: bool = False


class ReportComposer:
    """
    Один студент -> один текст отчёта.

    Запрос без истории: промпт + фрагменты контекста юнитов. Ошибки модели
    не пробрасываются, вместо них возвращается ReportResult с failed=True
    и текстом-заглушкой.
    """

    def __init__(self, model, reader: FileReader = read_reference_file):
        self.model = model
        self.reader = reader

    async def compose(
        self,
        student: StudentRecord,
        details: Optional[InterviewDetails] = None,
        units: Sequence[Unit] = (),
    ) -> ReportResult:
        prompt = build_report_prompt(student, details)
        try:
            parts = await build_unit_context(units, reader=self.reader)
            text = await self.model.generate(prompt, parts)
        except GenerationFailure as e:
            logger.error("Report generation failed for %s: %s", student.name, e)
            return ReportResult(ERROR_TEXT, failed=True)
        except Exception:
            logger.exception("Unexpected error while generating report for %s", student.name)
            return ReportResult(ERROR_TEXT, failed=True)

        text = (text or "").strip()
        if not text:
            logger.warning("Empty model output for %s", student.name)
            return ReportResult(EMPTY_OUTPUT_TEXT, failed=True)
        return ReportResult(text)

    async def summarize(
        self,
        student: StudentRecord,
        details: Optional[InterviewDetails] = None,
        units: Sequence[Unit] = (),
    ) -> str:
        return (await self.compose(student, details, units)).text
