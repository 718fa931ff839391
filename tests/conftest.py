"""Test configuration and fixtures."""
import json
import re
from io import BytesIO
from typing import Callable, Optional, Union

import pytest
from fastapi.testclient import TestClient

from lift.api.main import app
from lift.api.state import get_completion_client
from lift.llm.base import BaseCompletionClient

Responder = Callable[[str, bool], Union[str, BaseException]]

BLOCK_MARKER = re.compile(r"BLOCK-(\w+)")

RESUME_JSON = {
    "name": "Ada Lovelace",
    "email": "ada@example.com",
    "phone": "555-0100",
    "address": "London",
    "linkedin": "",
    "objective": "Analytical engineer with a focus on computation.",
    "experience": [],
    "education": [{"degree": "Mathematics", "school": "Private tutoring", "dates": "1830 – 1835"}],
    "skills": ["Mathematics", "Programming"],
    "certifications": [],
}

COVER_JSON = {
    "name": "Ada Lovelace",
    "recipient": "Analytical Engines Ltd",
    "position": "Programmer",
    "paragraphs": [
        "I am writing to apply for the Programmer position.",
        "I have written the first published algorithm.",
        "I would welcome the chance to discuss the role.",
    ],
}


def block_name(prompt: str) -> str:
    match = BLOCK_MARKER.search(prompt)
    return match.group(1) if match else "X"


def cards_json(name: str, count: int = 2) -> str:
    return json.dumps([
        {"question": f"Q{i} about {name}?", "answer": f"A{i} for {name}"}
        for i in range(1, count + 1)
    ])


def default_responder(prompt: str, json_mode: bool) -> str:
    if prompt.startswith("Summarize clearly"):
        return f"Summary of {block_name(prompt)}."
    if "flashcards" in prompt:
        return cards_json(block_name(prompt))
    if "cover letter" in prompt:
        return json.dumps(COVER_JSON)
    return json.dumps(RESUME_JSON)


class StubCompletionClient(BaseCompletionClient):
    """Deterministic completion client that records every prompt it receives."""

    def __init__(self, responder: Optional[Responder] = None):
        super().__init__(model="stub", temperature=0.0)
        self.responder = responder or default_responder
        self.prompts: list[tuple[str, bool]] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    def complete(self, prompt: str, json_mode: bool = False) -> str:
        self.prompts.append((prompt, json_mode))
        result = self.responder(prompt, json_mode)
        if isinstance(result, BaseException):
            raise result
        return result

    async def acomplete(self, prompt: str, json_mode: bool = False) -> str:
        return self.complete(prompt, json_mode)


@pytest.fixture
def stub_llm():
    return StubCompletionClient()


@pytest.fixture
def client(stub_llm):
    """Create test client with the completion client swapped for the stub."""
    app.dependency_overrides[get_completion_client] = lambda: stub_llm
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_pdf(pages: list[str]) -> bytes:
    """Build a minimal single-font PDF with one text line per page."""
    page_ids = [4 + 2 * i for i in range(len(pages))]
    kids = " ".join(f"{pid} 0 R" for pid in page_ids)
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{kids}] /Count {len(pages)} >>".encode("ascii"),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    for pid, text in zip(page_ids, pages):
        stream = f"BT /F1 12 Tf 72 720 Td ({text}) Tj ET".encode("latin-1") if text else b""
        objects.append(
            f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            f"/Resources << /Font << /F1 3 0 R >> >> /Contents {pid + 1} 0 R >>".encode("ascii")
        )
        objects.append(b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream")

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref)
    return bytes(out)


def make_pptx(slides: list[tuple[str, str]]) -> bytes:
    """Build a deck with one title-and-content slide per (title, body) pair."""
    from pptx import Presentation

    prs = Presentation()
    layout = prs.slide_layouts[1]
    for title, body in slides:
        slide = prs.slides.add_slide(layout)
        slide.shapes.title.text = title
        slide.placeholders[1].text = body
    buf = BytesIO()
    prs.save(buf)
    return buf.getvalue()
