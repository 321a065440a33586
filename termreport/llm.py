from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple
from google import genai
from google.genai import types
from .errors import GenerationFailure
from .models import ContextPart, ToolInvocation
from .utils import Settings, DEFAULT_MODEL, DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

# роли истории в формате Gemini
_ROLE_MAP = {"user": "user", "assistant": "model", "model": "model"}


@dataclass
class ModelReply:
    text: Optional[str] = None
    tool_calls: List[ToolInvocation] = field(default_factory=list)

    @property
    def has_tool_call(self) -> bool:
        return bool(self.tool_calls)


def to_genai_part(part: ContextPart) -> types.Part:
    if part.is_binary:
        return types.Part.from_bytes(data=part.data, mime_type=part.mime_type or "application/octet-stream")
    return types.Part.from_text(text=part.text or "")


def to_genai_history(history: Sequence[Tuple[str, str]]) -> List[types.Content]:
    return [
        types.Content(role=_ROLE_MAP.get(role, "user"), parts=[types.Part.from_text(text=text)])
        for role, text in history
    ]


def to_genai_tools(declarations: Sequence[Dict[str, Any]]) -> List[types.Tool]:
    return [types.Tool(function_declarations=[types.FunctionDeclaration.model_validate(d) for d in declarations])]


def _reply_from_response(resp: types.GenerateContentResponse) -> ModelReply:
    calls = []
    for fc in resp.function_calls or []:
        calls.append(ToolInvocation(name=fc.name or "", arguments=dict(fc.args or {}), call_id=fc.id))
    text = None if calls else resp.text
    return ModelReply(text=text, tool_calls=calls)


class GeminiChat:
    """Одна сессия чата: сообщение -> текст или вызов инструмента."""

    def __init__(self, chat, timeout: float):
        self._chat = chat
        self._timeout = timeout

    async def _send(self, message) -> ModelReply:
        try:
            resp = await asyncio.wait_for(self._chat.send_message(message), self._timeout)
        except asyncio.TimeoutError as e:
            raise GenerationFailure(f"Chat request timed out after {self._timeout:.0f}s") from e
        except Exception as e:
            raise GenerationFailure(f"Chat request failed: {type(e).__name__}: {e}") from e
        return _reply_from_response(resp)

    async def send(self, text: str) -> ModelReply:
        return await self._send(text)

    async def send_tool_result(self, call: ToolInvocation, result: str) -> ModelReply:
        part = types.Part(function_response=types.FunctionResponse(
            id=call.call_id,
            name=call.name,
            response={"result": result},
        ))
        return await self._send(part)


class GeminiModel:
    """
    Обёртка над google-genai (async API).

    Клиент SDK создаётся на каждый запрос: Streamlit запускает каждую
    корутину в своём asyncio.run, и старый event loop к тому времени закрыт.
    """

    def __init__(self, api_key: str, model_name: str = DEFAULT_MODEL, timeout: float = DEFAULT_TIMEOUT):
        self.api_key = api_key
        self.model_name = model_name
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiModel":
        return cls(settings.api_key, settings.model_name, settings.timeout)

    def _client(self) -> genai.Client:
        if not self.api_key:
            raise GenerationFailure("No Gemini API key configured (set GEMINI_API_KEY).")
        return genai.Client(api_key=self.api_key)

    async def generate(self, prompt: str, parts: Sequence[ContextPart] = ()) -> str:
        client = self._client()
        contents = [types.Content(
            role="user",
            parts=[types.Part.from_text(text=prompt)] + [to_genai_part(p) for p in parts],
        )]
        try:
            resp = await asyncio.wait_for(
                client.aio.models.generate_content(model=self.model_name, contents=contents),
                self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise GenerationFailure(f"Generation timed out after {self.timeout:.0f}s") from e
        except Exception as e:
            raise GenerationFailure(f"Generation failed: {type(e).__name__}: {e}") from e
        return resp.text or ""

    def start_chat(
        self,
        history: Sequence[Tuple[str, str]],
        system_parts: Sequence[ContextPart],
        tools: Sequence[Dict[str, Any]],
    ) -> GeminiChat:
        client = self._client()
        config = types.GenerateContentConfig(
            system_instruction=types.Content(role="user", parts=[to_genai_part(p) for p in system_parts]),
            tools=to_genai_tools(tools),
            # инструменты исполняем сами
            automatic_function_calling=types.AutomaticFunctionCallingConfig(disable=True),
        )
        chat = client.aio.chats.create(model=self.model_name, config=config, history=to_genai_history(history))
        return GeminiChat(chat, self.timeout)
