from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

from termreport.errors import GenerationFailure
from termreport.llm import ModelReply
from termreport.models import ContextPart, ToolInvocation


class FakeChat:
    def __init__(self, owner: "FakeModel", history, system_parts, tools):
        self.owner = owner
        self.history = list(history)
        self.system_parts = list(system_parts)
        self.tools = list(tools)
        self.sent: List[Any] = []

    async def send(self, text: str) -> ModelReply:
        self.sent.append(text)
        return self.owner._next_chat_reply()

    async def send_tool_result(self, call: ToolInvocation, result: str) -> ModelReply:
        self.sent.append((call, result))
        self.owner.tool_results.append((call, result))
        return self.owner._next_chat_reply()


class FakeModel:
    """Scripted stand-in for GeminiModel."""

    def __init__(
        self,
        report_text: str = "Alice, you did well.\n\nOverall a strong term.",
        chat_replies: Optional[Sequence[Any]] = None,
        fail_generate: bool = False,
    ):
        self.report_text = report_text
        self.chat_replies = list(chat_replies or [])
        self.fail_generate = fail_generate
        self.generate_calls: List[Tuple[str, List[ContextPart]]] = []
        self.chats: List[FakeChat] = []
        self.tool_results: List[Tuple[ToolInvocation, str]] = []
        self.observed_status: List[str] = []
        self.store = None

    async def generate(self, prompt: str, parts: Sequence[ContextPart] = ()) -> str:
        self.generate_calls.append((prompt, list(parts)))
        if self.store is not None:
            self.observed_status.extend(s.status.value for s in self.store)
        if self.fail_generate:
            raise GenerationFailure("transport down")
        return self.report_text

    def start_chat(self, history, system_parts, tools) -> FakeChat:
        chat = FakeChat(self, history, system_parts, tools)
        self.chats.append(chat)
        return chat

    def _next_chat_reply(self) -> ModelReply:
        if not self.chat_replies:
            return ModelReply(text="")
        reply = self.chat_replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def text_reply(text: str) -> ModelReply:
    return ModelReply(text=text)


def tool_reply(name: str, arguments: Dict[str, Any], call_id: str = "call-1") -> ModelReply:
    return ModelReply(tool_calls=[ToolInvocation(name=name, arguments=arguments, call_id=call_id)])
