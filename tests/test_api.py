"""Tests for the HTTP endpoints."""
import json

import pytest

from conftest import RESUME_JSON, StubCompletionClient, cards_json, make_pdf, make_pptx
from lift.api.main import app
from lift.api.state import get_completion_client
from lift.config import PDF_MIME, PPTX_MIME
from lift.errors import UpstreamError
from lift.llm.openai_client import OpenAICompletionClient

PERSON = {"name": "Ada Lovelace", "email": "ada@example.com", "phone": "555-0100"}


@pytest.fixture
def use_llm():
    """Swap in a different completion client for one test."""
    def _use(llm):
        app.dependency_overrides[get_completion_client] = lambda: llm
        return llm
    return _use


@pytest.mark.api
class TestNotesEndpoint:

    def test_json_notes(self, client, stub_llm):
        response = client.post("/api/notes", json={"notes": "BLOCK-A The cell is the unit of life."})
        assert response.status_code == 200
        body = response.json()
        assert len(body["summaries"]) >= 1
        assert body["summaries"][0] == "Summary of A."
        assert body["flashcards"] == [
            {"question": "Q1 about A?", "answer": "A1 for A", "flipped": False},
            {"question": "Q2 about A?", "answer": "A2 for A", "flipped": False},
        ]
        assert stub_llm.calls == 2
        assert response.headers.get("X-Request-ID")

    @pytest.mark.parametrize("payload", [{"notes": ""}, {"notes": "   \n\t"}, {}, {"notes": None}])
    def test_empty_notes_rejected_without_upstream_calls(self, client, stub_llm, payload):
        response = client.post("/api/notes", json=payload)
        assert response.status_code == 400
        assert "error" in response.json()
        assert stub_llm.calls == 0

    def test_non_string_notes(self, client, stub_llm):
        response = client.post("/api/notes", json={"notes": ["a", "b"]})
        assert response.status_code == 400
        assert stub_llm.calls == 0

    def test_malformed_json_body(self, client):
        response = client.post("/api/notes", content=b"{not json", headers={"content-type": "application/json"})
        assert response.status_code == 400
        assert "JSON" in response.json()["error"]

    def test_plain_text_body_rejected(self, client):
        response = client.post("/api/notes", content=b"notes", headers={"content-type": "text/plain"})
        assert response.status_code == 400

    def test_get_not_allowed(self, client):
        response = client.get("/api/notes")
        assert response.status_code == 405
        assert "error" in response.json()

    def test_multipart_pdf_upload(self, client, stub_llm):
        pdf = make_pdf(["BLOCK-P1 Photosynthesis", "BLOCK-P2 Respiration"])
        response = client.post("/api/notes", files={"file": ("bio.pdf", pdf, PDF_MIME)})
        assert response.status_code == 200
        body = response.json()
        assert body["summaries"] == ["Summary of P1.", "Summary of P2."]
        assert len(body["flashcards"]) == 4

    def test_multipart_notes_then_pptx(self, client):
        deck = make_pptx([("BLOCK-S1", "Slide one"), ("BLOCK-S2", "Slide two")])
        response = client.post(
            "/api/notes",
            data={"notes": "BLOCK-N typed notes"},
            files={"file": ("deck.pptx", deck, PPTX_MIME)},
        )
        assert response.status_code == 200
        assert response.json()["summaries"] == ["Summary of N.", "Summary of S1.", "Summary of S2."]

    def test_unsupported_upload_type(self, client, stub_llm):
        response = client.post("/api/notes", files={"file": ("notes.txt", b"hello", "text/plain")})
        assert response.status_code == 400
        assert "Unsupported file type" in response.json()["error"]
        assert stub_llm.calls == 0

    def test_oversized_upload_is_rejected_before_reading(self, client, stub_llm, monkeypatch):
        from starlette.datastructures import UploadFile

        reads = []
        original_read = UploadFile.read

        async def recording_read(self, size=-1):
            reads.append(size)
            return await original_read(self, size)

        monkeypatch.setattr(UploadFile, "read", recording_read)
        monkeypatch.setattr("lift.config.MAX_UPLOAD_BYTES", 100)
        response = client.post("/api/notes", files={"file": ("big.pdf", b"%PDF" + b"x" * 500, PDF_MIME)})
        assert response.status_code == 400
        assert "too large" in response.json()["error"]
        assert reads == []
        assert stub_llm.calls == 0

    def test_unreadable_pdf(self, client, stub_llm):
        response = client.post("/api/notes", files={"file": ("scan.pdf", make_pdf([""]), PDF_MIME)})
        assert response.status_code == 400
        assert response.json()["error"] == "No readable text found."
        assert stub_llm.calls == 0

    def test_multipart_without_notes_or_file(self, client, stub_llm):
        response = client.post("/api/notes", data={"notes": "  "})
        assert response.status_code == 400
        assert stub_llm.calls == 0

    def test_malformed_flashcards_still_succeed(self, client, use_llm):
        use_llm(StubCompletionClient(lambda p, j: "A summary." if p.startswith("Summarize") else "I cannot answer that."))
        response = client.post("/api/notes", json={"notes": "Some notes"})
        assert response.status_code == 200
        assert response.json() == {"summaries": ["A summary."], "flashcards": []}

    def test_upstream_down_is_500(self, client, use_llm):
        use_llm(StubCompletionClient(lambda p, j: UpstreamError("The completion service is unavailable. Please try again.")))
        response = client.post("/api/notes", json={"notes": "Some notes"})
        assert response.status_code == 500
        assert response.json() == {"error": "The completion service is unavailable. Please try again."}

    def test_no_summaries_is_500_even_with_flashcards(self, client, use_llm):
        def respond(prompt, json_mode):
            if prompt.startswith("Summarize"):
                return UpstreamError("The completion service is unavailable. Please try again.")
            return cards_json("A")

        use_llm(StubCompletionClient(respond))
        response = client.post("/api/notes", json={"notes": "BLOCK-A cells"})
        assert response.status_code == 500
        assert response.json() == {"error": "The completion service is unavailable. Please try again."}

    def test_missing_api_key_is_reported_clearly(self, client, use_llm, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        use_llm(OpenAICompletionClient())
        response = client.post("/api/notes", json={"notes": "Some notes"})
        assert response.status_code == 500
        assert "OPENAI_API_KEY" in response.json()["error"]


@pytest.mark.api
class TestCareerEndpoint:

    def test_resume(self, client, stub_llm):
        payload = {"type": "resume", **PERSON, "objective": "Engines", "education": "Maths", "skills": "math"}
        response = client.post("/api/career", json=payload)
        assert response.status_code == 200
        result = response.json()["result"]
        assert result["name"] == "Ada Lovelace"
        assert result["experience"] == []
        assert result["education"] == RESUME_JSON["education"]
        assert stub_llm.calls == 1

    def test_resume_missing_email(self, client, stub_llm):
        payload = {"type": "resume", "name": "Ada", "phone": "555-0100"}
        response = client.post("/api/career", json=payload)
        assert response.status_code == 400
        error = response.json()["error"]
        assert "required" in error
        assert "email" in error
        assert stub_llm.calls == 0

    def test_resume_without_experience_has_no_invented_entries(self, client, use_llm):
        fabricated = {**RESUME_JSON, "experience": [{"title": "CEO", "company": "Invented", "dates": "", "details": ""}]}
        use_llm(StubCompletionClient(lambda p, j: json.dumps(fabricated)))
        response = client.post("/api/career", json={"type": "resume", **PERSON, "skills": "math"})
        assert response.status_code == 200
        assert response.json()["result"]["experience"] == []

    def test_resume_with_null_values_is_accepted(self, client, use_llm):
        education = [{**RESUME_JSON["education"][0], "dates": None}]
        output = {**RESUME_JSON, "linkedin": None, "education": education}
        use_llm(StubCompletionClient(lambda p, j: json.dumps(output)))
        payload = {"type": "resume", **PERSON, "education": "Maths", "linkedin": "linkedin.com/in/ada"}
        response = client.post("/api/career", json=payload)
        assert response.status_code == 200
        result = response.json()["result"]
        assert result["linkedin"] == "linkedin.com/in/ada"
        assert result["education"][0]["dates"] == ""

    def test_cover_letter(self, client):
        payload = {"type": "cover", **PERSON, "recipient": "Acme", "position": "Engineer", "paragraphs": "Led a team"}
        response = client.post("/api/career", json=payload)
        assert response.status_code == 200
        result = response.json()["result"]
        assert set(result) == {"name", "recipient", "position", "paragraphs"}
        assert result["recipient"] == "Acme"
        assert len(result["paragraphs"]) == 3

    def test_numeric_phone_is_accepted(self, client):
        response = client.post("/api/career", json={**PERSON, "phone": 5550100})
        assert response.status_code == 200

    def test_unknown_type(self, client, stub_llm):
        response = client.post("/api/career", json={"type": "poem", **PERSON})
        assert response.status_code == 400
        assert stub_llm.calls == 0

    def test_malformed_model_output_is_500(self, client, use_llm):
        use_llm(StubCompletionClient(lambda p, j: "I cannot answer that."))
        response = client.post("/api/career", json={"type": "resume", **PERSON})
        assert response.status_code == 500
        assert "Malformed JSON" in response.json()["error"]

    def test_malformed_json_body(self, client):
        response = client.post("/api/career", content=b"{oops", headers={"content-type": "application/json"})
        assert response.status_code == 400
        assert "error" in response.json()

    def test_get_not_allowed(self, client):
        response = client.get("/api/career")
        assert response.status_code == 405
        assert "error" in response.json()


@pytest.mark.api
def test_health(client, stub_llm):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert stub_llm.calls == 0


class FakeRequest:
    def __init__(self, disconnected: bool):
        self.disconnected = disconnected

    async def is_disconnected(self):
        return self.disconnected


def test_disconnect_cancels_in_flight_work():
    import asyncio
    from fastapi import HTTPException
    from lift.api.utils import run_until_disconnect

    cancelled = []

    async def slow():
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.append(True)
            raise

    async def scenario():
        with pytest.raises(HTTPException) as exc:
            await run_until_disconnect(FakeRequest(True), slow(), poll=0.01)
        await asyncio.sleep(0)
        return exc.value.status_code

    assert asyncio.run(scenario()) == 499
    assert cancelled == [True]


def test_connected_client_gets_result():
    import asyncio
    from lift.api.utils import run_until_disconnect

    async def work():
        await asyncio.sleep(0.02)
        return "done"

    assert asyncio.run(run_until_disconnect(FakeRequest(False), work(), poll=0.005)) == "done"
