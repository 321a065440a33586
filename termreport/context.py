from __future__ import annotations
import asyncio
import logging
from typing import Awaitable, Callable, List, Sequence
from .errors import ContextReadFailure
from .models import CRITERION_KEYS, ContextPart, ReferenceFile, Unit

logger = logging.getLogger(__name__)

MAX_TEXT_CHARS = 50_000
TRUNCATION_MARKER = "...(truncated)"
PAGE_DOCUMENT_TYPES = {"application/pdf"}

NO_CONTEXT = "No specific Unit/Criterion context provided."

FileReader = Callable[[ReferenceFile], Awaitable[bytes]]


async def read_reference_file(ref: ReferenceFile) -> bytes:
    def _read() -> bytes:
        if ref.data is None:
            raise ContextReadFailure(ref.name, "no content")
        return bytes(ref.data)

    return await asyncio.to_thread(_read)


def truncate_text(content: str, limit: int = MAX_TEXT_CHARS) -> str:
    if len(content) > limit:
        return content[:limit] + TRUNCATION_MARKER
    return content


def unit_titles(units: Sequence[Unit]) -> str:
    return ", ".join(u.title for u in units if u.title)


async def _file_parts(key: str, ref: ReferenceFile, reader: FileReader) -> List[ContextPart]:
    if ref.mime_type in PAGE_DOCUMENT_TYPES:
        parts = [ContextPart.of_text(f"  - Task Clarification File for Criterion {key} is attached below (PDF).\n")]
        try:
            data = await reader(ref)
        except (ContextReadFailure, OSError, ValueError) as e:
            logger.warning("Could not read reference file %s: %s", ref.name, e)
            parts.append(ContextPart.of_text(f"  - [Error reading PDF file: {ref.name}]\n"))
            return parts
        parts.append(ContextPart.of_bytes(data, ref.mime_type))
        return parts

    try:
        content = (await reader(ref)).decode("utf-8")
    except (ContextReadFailure, OSError, ValueError) as e:
        # UnicodeDecodeError тоже ValueError
        logger.warning("Could not read reference file %s: %s", ref.name, e)
        content = f"[Attached File: {ref.name} - (Could not read content)]"
    return [ContextPart.of_text(f"  - Task Clarification File Content: {truncate_text(content)}\n")]


async def build_unit_context(units: Sequence[Unit], reader: FileReader = read_reference_file) -> List[ContextPart]:
    """
    Юниты -> упорядоченный список фрагментов для промпта.

    Для каждого юнита: заголовок, затем критерии A..D. Выключенный критерий
    даёт ровно одну строку "N/A". Ошибка чтения файла не прерывает сборку,
    а превращается в текстовую заглушку.
    """
    if not units:
        return [ContextPart.of_text(NO_CONTEXT)]

    parts = [ContextPart.of_text("ACADEMIC UNIT CONTEXT (The Course Material):\n")]

    for unit in units:
        parts.append(ContextPart.of_text(f"\n=== Unit: {unit.title or 'Untitled Unit'} ===\n"))
        for key in CRITERION_KEYS:
            crit = unit.criteria[key]
            if not crit.enabled:
                parts.append(ContextPart.of_text(f"Criterion {key}: N/A (Not assessed in this unit)"))
                continue

            parts.append(ContextPart.of_text(
                f"Criterion {key} Configuration (Task details for {key}):\n"
                f"  - Teacher Notes: {crit.notes or 'None'}\n"
            ))

            if crit.reference_file is not None:
                parts.extend(await _file_parts(key, crit.reference_file, reader))
            else:
                parts.append(ContextPart.of_text("  - Task Clarification File Content: No file uploaded\n"))

    return parts
