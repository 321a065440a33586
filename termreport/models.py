from __future__ import annotations
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

CRITERION_KEYS = ("A", "B", "C", "D")
NA = "N/A"


def new_id() -> str:
    return uuid.uuid4().hex


class StudentStatus(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class StudentRecord:
    name: str
    score: int = 0
    raw_context: List[str] = field(default_factory=list)
    generated_summary: str = ""
    status: StudentStatus = StudentStatus.IDLE
    id: str = field(default_factory=new_id)


# =========================

# Юниты и критерии
# =========================
@dataclass
class ReferenceFile:
    name: str
    mime_type: str
    data: bytes = b""


@dataclass
class CriterionConfig:
    enabled: bool = True
    reference_file: Optional[ReferenceFile] = None
    notes: str = ""


@dataclass
class Unit:
    title: str = ""
    criteria: Dict[str, CriterionConfig] = field(default_factory=dict)
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        for key in CRITERION_KEYS:
            self.criteria.setdefault(key, CriterionConfig())


def new_unit(title: str = "") -> Unit:
    return Unit(title=title, criteria={k: CriterionConfig() for k in CRITERION_KEYS})


# =========================

# Диалог
# =========================
class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ConversationTurn:
    role: Role
    text: str
    timestamp: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=new_id)


@dataclass(frozen=True)
class ToolInvocation:
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    call_id: Optional[str] = None


@dataclass(frozen=True)
class ContextPart:
    """
    Фрагмент контекста для модели: либо текст, либо бинарное вложение.
    Бинарные данные хранятся как есть, кодирование делает SDK.
    """
    text: Optional[str] = None
    data: Optional[bytes] = None
    mime_type: Optional[str] = None

    @classmethod
    def of_text(cls, text: str) -> "ContextPart":
        return cls(text=text)

    @classmethod
    def of_bytes(cls, data: bytes, mime_type: str) -> "ContextPart":
        return cls(data=data, mime_type=mime_type)

    @property
    def is_binary(self) -> bool:
        return self.data is not None


@dataclass
class InterviewDetails:
    behavior: str = ""
    punctuality: str = ""
    attitude: str = ""
    progress: str = ""
    extra_comments: str = ""

    @classmethod
    def from_tool_args(cls, args: Dict[str, Any]) -> "InterviewDetails":
        return cls(
            behavior=str(args.get("behavior") or ""),
            punctuality=str(args.get("punctuality") or ""),
            attitude=str(args.get("attitude") or ""),
            progress=str(args.get("progress") or ""),
            extra_comments=str(args.get("extraComments") or ""),
        )

    def rendered(self) -> Dict[str, str]:
        # пустые поля -> явный маркер N/A
        def _v(s: str) -> str:
            s = (s or "").strip()
            return s if s else NA

        return {
            "Behaviour": _v(self.behavior),
            "Punctuality": _v(self.punctuality),
            "Attitude": _v(self.attitude),
            "Progress": _v(self.progress),
            "Extra Comments": _v(self.extra_comments),
        }
