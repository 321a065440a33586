import asyncio

from termreport.context import MAX_TEXT_CHARS, NO_CONTEXT, TRUNCATION_MARKER, build_unit_context
from termreport.errors import ContextReadFailure
from termreport.models import ReferenceFile, new_unit


def _texts(parts):
    return [p.text for p in parts if not p.is_binary]


def test_no_units() -> None:
    parts = asyncio.run(build_unit_context([]))

    assert len(parts) == 1
    assert parts[0].text == NO_CONTEXT


def test_disabled_criterion_emits_single_fragment() -> None:
    unit = new_unit("Poetry")
    unit.criteria["C"].enabled = False
    unit.criteria["C"].notes = "should not appear"

    texts = _texts(asyncio.run(build_unit_context([unit])))

    assert "Criterion C: N/A (Not assessed in this unit)" in texts
    assert not any("should not appear" in t for t in texts)
    assert not any("Criterion C Configuration" in t for t in texts)
    assert "\n=== Unit: Poetry ===\n" in texts


def test_enabled_criteria_without_files() -> None:
    unit = new_unit()
    unit.criteria["A"].notes = "Essay on imagery"

    texts = _texts(asyncio.run(build_unit_context([unit])))

    assert "\n=== Unit: Untitled Unit ===\n" in texts
    assert any("Teacher Notes: Essay on imagery" in t for t in texts)
    assert any("Teacher Notes: None" in t for t in texts)
    assert sum("No file uploaded" in t for t in texts) == 4


def test_pdf_is_attached_as_binary() -> None:
    unit = new_unit("Lab")
    unit.criteria["B"].reference_file = ReferenceFile("task.pdf", "application/pdf", b"%PDF-1.4 data")

    parts = asyncio.run(build_unit_context([unit]))

    binary = [p for p in parts if p.is_binary]
    assert len(binary) == 1
    assert binary[0].data == b"%PDF-1.4 data"
    assert binary[0].mime_type == "application/pdf"


def test_long_text_file_is_truncated() -> None:
    unit = new_unit()
    body = "x" * (MAX_TEXT_CHARS + 10)
    unit.criteria["A"].reference_file = ReferenceFile("task.txt", "text/plain", body.encode("utf-8"))

    texts = _texts(asyncio.run(build_unit_context([unit])))

    content = next(t for t in texts if "Task Clarification File Content: x" in t)
    assert content.rstrip("\n").endswith("x" * 10 + TRUNCATION_MARKER)
    assert content.count("x") == MAX_TEXT_CHARS


def test_read_failures_degrade_per_file() -> None:
    unit = new_unit()
    unit.criteria["A"].reference_file = ReferenceFile("broken.pdf", "application/pdf")
    unit.criteria["B"].reference_file = ReferenceFile("notes.txt", "text/plain", b"fine")
    unit.criteria["D"].reference_file = ReferenceFile("binary.docx", "application/octet-stream", b"\xff\xfe\xfa")

    async def reader(ref):
        if ref.name == "broken.pdf":
            raise ContextReadFailure(ref.name, "unreadable")
        return ref.data

    parts = asyncio.run(build_unit_context([unit], reader=reader))
    texts = _texts(parts)

    assert not any(p.is_binary for p in parts)
    assert any("[Error reading PDF file: broken.pdf]" in t for t in texts)
    assert any("Task Clarification File Content: fine" in t for t in texts)
    assert any("[Attached File: binary.docx - (Could not read content)]" in t for t in texts)


def test_units_in_order() -> None:
    first, second = new_unit("One"), new_unit("Two")

    texts = _texts(asyncio.run(build_unit_context([first, second])))

    headers = [t for t in texts if t.startswith("\n=== Unit:")]
    assert headers == ["\n=== Unit: One ===\n", "\n=== Unit: Two ===\n"]
