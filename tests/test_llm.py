import asyncio

import pytest
from google.genai import types

from termreport.errors import GenerationFailure
from termreport.llm import (
    GeminiChat,
    GeminiModel,
    _reply_from_response,
    to_genai_history,
    to_genai_part,
    to_genai_tools,
)
from termreport.models import ContextPart, ToolInvocation
from termreport.orchestrator import GENERATE_REPORT, TOOL_DECLARATIONS, UPDATE_SUMMARY


def _response(*parts: types.Part) -> types.GenerateContentResponse:
    return types.GenerateContentResponse(
        candidates=[types.Candidate(content=types.Content(role="model", parts=list(parts)))]
    )


class StubChat:
    """Сессия SDK: отвечает заранее заданным ответом или ждёт delay секунд."""

    def __init__(self, response=None, delay: float = 0.0, error: Exception = None):
        self.response = response
        self.delay = delay
        self.error = error
        self.messages = []

    async def send_message(self, message):
        self.messages.append(message)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.response


def test_function_call_response_becomes_tool_invocation() -> None:
    resp = _response(types.Part(function_call=types.FunctionCall(
        id="c1", name=UPDATE_SUMMARY, args={"studentId": "s1", "newSummary": "Alice, great term."},
    )))

    reply = _reply_from_response(resp)

    assert reply.text is None
    assert reply.has_tool_call
    (call,) = reply.tool_calls
    assert call.name == UPDATE_SUMMARY
    assert call.call_id == "c1"
    assert call.arguments == {"studentId": "s1", "newSummary": "Alice, great term."}


def test_text_response_has_no_tool_calls() -> None:
    reply = _reply_from_response(_response(types.Part.from_text(text="Who is next?")))

    assert reply.text == "Who is next?"
    assert reply.tool_calls == []


def test_tool_declarations_convert_to_sdk_types() -> None:
    (tool,) = to_genai_tools(TOOL_DECLARATIONS)

    by_name = {d.name: d for d in tool.function_declarations}
    assert set(by_name) == {UPDATE_SUMMARY, GENERATE_REPORT}
    params = by_name[GENERATE_REPORT].parameters
    assert params.type == types.Type.OBJECT
    assert params.properties["studentId"].type == types.Type.STRING
    assert "extraComments" in params.required


def test_context_parts_and_history_conversion() -> None:
    pdf = to_genai_part(ContextPart.of_bytes(b"%PDF-1.4 data", "application/pdf"))
    text = to_genai_part(ContextPart.of_text("Criterion A notes"))

    assert pdf.inline_data.data == b"%PDF-1.4 data"
    assert pdf.inline_data.mime_type == "application/pdf"
    assert text.text == "Criterion A notes"

    history = to_genai_history([("user", "hi"), ("assistant", "hello")])
    assert [c.role for c in history] == ["user", "model"]
    assert history[1].parts[0].text == "hello"


def test_chat_timeout_raises_generation_failure() -> None:
    chat = GeminiChat(StubChat(response=_response(types.Part.from_text(text="late")), delay=1.0), timeout=0.01)

    with pytest.raises(GenerationFailure):
        asyncio.run(chat.send("hello"))


def test_chat_transport_error_raises_generation_failure() -> None:
    chat = GeminiChat(StubChat(error=RuntimeError("connection reset")), timeout=5)

    with pytest.raises(GenerationFailure) as exc:
        asyncio.run(chat.send("hello"))
    assert "connection reset" in str(exc.value)


def test_tool_result_is_sent_as_function_response() -> None:
    stub = StubChat(response=_response(types.Part.from_text(text="Done.")))
    chat = GeminiChat(stub, timeout=5)
    call = ToolInvocation(name=UPDATE_SUMMARY, arguments={"studentId": "s1"}, call_id="c7")

    reply = asyncio.run(chat.send_tool_result(call, "Updated student summary successfully."))

    assert reply.text == "Done."
    (sent,) = stub.messages
    assert sent.function_response.id == "c7"
    assert sent.function_response.name == UPDATE_SUMMARY
    assert sent.function_response.response == {"result": "Updated student summary successfully."}


def test_missing_api_key_raises_generation_failure() -> None:
    model = GeminiModel(api_key="")

    with pytest.raises(GenerationFailure):
        asyncio.run(model.generate("Write a report."))
    with pytest.raises(GenerationFailure):
        model.start_chat([], [], TOOL_DECLARATIONS)
