import asyncio
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Sequence, Union

from lift import config
from lift.errors import MalformedModelOutput, UpstreamError, ValidationError
from lift.llm.base import BaseCompletionClient
from lift.llm.parser import parse_json_response
from lift.llm.prompts import (
    COVER_LETTER_FIELDS,
    RESUME_CONTACT_FIELDS,
    RESUME_SECTIONS,
    build_prompt,
    flashcards_prompt,
    summary_prompt,
)
from lift.models.cover_letter import CoverLetterDocument
from lift.models.flashcard import Flashcard
from lift.models.notes import NotesResult
from lift.models.request import GenerationRequest, TaskType
from lift.models.resume import ResumeDocument
from lift.utils.documents import chunk_text, extract_text_blocks
from lift.utils.logging_utils import set_task_context

REQUIRED_CAREER_FIELDS = ("name", "email", "phone")
CAREER_FIELDS = tuple(dict.fromkeys(RESUME_CONTACT_FIELDS + RESUME_SECTIONS + COVER_LETTER_FIELDS))


class NotesStage(str, Enum):
    IDLE = "idle"
    EXTRACTING = "extracting"
    PROMPTING = "prompting"
    PARSING = "parsing"
    AGGREGATING = "aggregating"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class UploadedDocument:
    content: bytes
    content_type: str
    filename: str = ""


@dataclass
class BlockOutcome:
    """What one text block contributed; failures are recorded, not raised."""
    index: int
    summary: Optional[str] = None
    summary_error: Optional[BaseException] = None
    flashcards: list[Flashcard] = field(default_factory=list)


class Bot:
    """
    Runs the notes and career pipelines against a completion client.
    Attributes:
        llm (BaseCompletionClient): Client issuing one request per prompt.
        max_block_chars (int): Character limit applied to every text block.
        max_text_blocks (int): Blocks beyond this count are dropped.
        max_flashcards (int): Cap on the aggregated flashcard list.
        stage (NotesStage): Current notes-pipeline stage, logged on each transition.
    Methods:
        generate_notes(notes, documents) -> NotesResult:
            Extracts blocks, then summarizes and builds flashcards for each block.
            Degraded blocks are tolerated; the request fails only when no block yields a summary.
        generate_career(request) -> ResumeDocument | CoverLetterDocument:
            Single-shot structured generation for a resume or a cover letter.
    """

    def __init__(
        self,
        llm: BaseCompletionClient,
        max_block_chars: int = config.MAX_BLOCK_CHARS,
        max_text_blocks: int = config.MAX_TEXT_BLOCKS,
        max_flashcards: int = config.MAX_FLASHCARDS,
    ) -> None:
        self.llm = llm
        self.max_block_chars = max_block_chars
        self.max_text_blocks = max_text_blocks
        self.max_flashcards = max_flashcards
        self.stage = NotesStage.IDLE
        self.logger = logging.getLogger("lift.bot")

    def _enter(self, stage: NotesStage) -> None:
        self.logger.info("Notes pipeline %s -> %s", self.stage.value, stage.value)
        self.stage = stage

    # ---- Notes pipeline ----

    def collect_blocks(
        self,
        notes: Optional[str] = None,
        documents: Sequence[UploadedDocument] = (),
    ) -> list[str]:
        """Pasted notes first, then each document's blocks in upload order."""
        blocks = chunk_text(notes, self.max_block_chars)
        for doc in documents:
            blocks.extend(extract_text_blocks(doc.content, doc.content_type, doc.filename))
        if not blocks:
            raise ValidationError("Notes required. Paste notes or upload a PDF or PPTX file.")
        if len(blocks) > self.max_text_blocks:
            self.logger.warning("Dropping %d block(s) beyond the limit of %d", len(blocks) - self.max_text_blocks, self.max_text_blocks)
            blocks = blocks[: self.max_text_blocks]
        return blocks

    async def generate_notes(
        self,
        notes: Optional[str] = None,
        documents: Sequence[UploadedDocument] = (),
    ) -> NotesResult:
        set_task_context(TaskType.NOTES.value)
        self.stage = NotesStage.IDLE
        self._enter(NotesStage.EXTRACTING)
        try:
            blocks = self.collect_blocks(notes, documents)
        except Exception:
            self._enter(NotesStage.FAILED)
            raise
        return await self.process_blocks(blocks)

    async def process_blocks(self, blocks: Sequence[str]) -> NotesResult:
        if not blocks:
            self._enter(NotesStage.FAILED)
            raise ValidationError("Notes required. Paste notes or upload a PDF or PPTX file.")
        self._enter(NotesStage.PROMPTING)
        self.logger.info("Processing %d block(s)", len(blocks))
        # gather keeps input order regardless of completion order
        outcomes = await asyncio.gather(*(self._process_block(i, b) for i, b in enumerate(blocks)))
        self._enter(NotesStage.AGGREGATING)
        return self._aggregate(outcomes)

    def _truncate(self, block: str) -> str:
        block = block.strip()
        if len(block) > self.max_block_chars:
            self.logger.info("Truncating block of %d chars to %d", len(block), self.max_block_chars)
            block = block[: self.max_block_chars].rstrip()
        return block

    async def _process_block(self, index: int, block: str) -> BlockOutcome:
        text = self._truncate(block)
        outcome = BlockOutcome(index=index)
        summary, cards_raw = await asyncio.gather(
            self.llm.acomplete(summary_prompt(text)),
            self.llm.acomplete(flashcards_prompt(text)),
            return_exceptions=True,
        )
        if isinstance(summary, BaseException):
            outcome.summary_error = self._record_failure(outcome, "summary", summary)
        elif not summary.strip():
            outcome.summary_error = self._record_failure(outcome, "summary", UpstreamError("AI did not return content."))
        else:
            outcome.summary = summary.strip()

        if self.stage is NotesStage.PROMPTING:
            self._enter(NotesStage.PARSING)
        if isinstance(cards_raw, BaseException):
            self._record_failure(outcome, "flashcards", cards_raw)
        else:
            outcome.flashcards = self._flashcards_from(index, cards_raw)
        return outcome

    def _record_failure(self, outcome: BlockOutcome, what: str, exc: BaseException) -> BaseException:
        if isinstance(exc, asyncio.CancelledError):
            raise exc
        if not isinstance(exc, UpstreamError):
            self.logger.error("Unexpected %s failure for block %d", what, outcome.index, exc_info=exc)
        else:
            self.logger.warning("Upstream %s failure for block %d: %s", what, outcome.index, exc)
        return exc

    def _flashcards_from(self, index: int, raw: str) -> list[Flashcard]:
        parsed = parse_json_response(raw, Flashcard, many=True)
        if not parsed.ok:
            self.logger.warning("Block %d flashcards unusable (%s); substituting none", index, parsed.reason)
            return []
        cards = [
            Flashcard(question=c.question.strip(), answer=c.answer.strip(), flipped=False)
            for c in parsed.value
            if c.question.strip() and c.answer.strip()
        ]
        if len(cards) > config.FLASHCARDS_MAX_PER_BLOCK:
            self.logger.info("Block %d returned %d flashcards; keeping %d", index, len(cards), config.FLASHCARDS_MAX_PER_BLOCK)
            cards = cards[: config.FLASHCARDS_MAX_PER_BLOCK]
        elif len(cards) < config.FLASHCARDS_MIN_PER_BLOCK:
            self.logger.warning("Block %d returned only %d flashcard(s)", index, len(cards))
        return cards

    def _aggregate(self, outcomes: Sequence[BlockOutcome]) -> NotesResult:
        # One entry per block; a block whose summary failed holds ""
        summaries = [o.summary or "" for o in outcomes]
        flashcards = [card for o in outcomes for card in o.flashcards]
        if len(flashcards) > self.max_flashcards:
            flashcards = flashcards[: self.max_flashcards]

        produced = sum(1 for s in summaries if s)
        if not produced:
            self._enter(NotesStage.FAILED)
            first = next(o.summary_error for o in outcomes if o.summary_error is not None)
            if isinstance(first, UpstreamError):
                raise first
            raise UpstreamError("The completion service is unavailable. Please try again.") from first

        self._enter(NotesStage.DONE)
        self.logger.info("Notes done; summaries=%d/%d flashcards=%d", produced, len(summaries), len(flashcards))
        return NotesResult(summaries=summaries, flashcards=flashcards)

    # ---- Career pipeline ----

    @staticmethod
    def build_career_request(payload: Mapping[str, Any]) -> GenerationRequest:
        """Validate raw career form input; raises ValidationError before any upstream call."""
        fields = {}
        for key in CAREER_FIELDS:
            value = payload.get(key)
            fields[key] = "" if value is None else str(value).strip()
        missing = [key for key in REQUIRED_CAREER_FIELDS if not fields[key]]
        if missing:
            raise ValidationError.missing_fields(missing, "Name, email, and phone are required.")
        try:
            task_type = TaskType.from_career_type(str(payload.get("type") or "resume"))
        except ValueError as exc:
            raise ValidationError(f"{exc}. Use 'resume' or 'cover'.") from exc
        return GenerationRequest(task_type=task_type, fields=fields)

    async def generate_career(self, request: GenerationRequest) -> Union[ResumeDocument, CoverLetterDocument]:
        set_task_context(request.task_type.value)
        if request.task_type is TaskType.NOTES:
            raise ValidationError("Career generation supports 'resume' and 'cover' only.")
        self.logger.info("Career generation start; type=%s", request.task_type.value)
        raw = await self.llm.acomplete(build_prompt(request.task_type, request.fields), json_mode=True)
        if request.task_type is TaskType.RESUME:
            document = parse_json_response(raw, ResumeDocument).unwrap()
            document = self._ground_resume(document, request)
            self.logger.info("Resume parsed; exp=%d edu=%d skills=%d", len(document.experience), len(document.education), len(document.skills))
            return document
        letter = parse_json_response(raw, CoverLetterDocument).unwrap()
        letter = self._ground_cover_letter(letter, request)
        self.logger.info("Cover letter parsed; paragraphs=%d", len(letter.paragraphs))
        return letter

    @staticmethod
    def _ground_resume(document: ResumeDocument, request: GenerationRequest) -> ResumeDocument:
        """Keep contact details as entered and empty every section with no raw input."""
        updates: dict[str, Any] = {k: request.field(k) for k in RESUME_CONTACT_FIELDS if request.field(k)}
        for section in ("experience", "education", "skills", "certifications"):
            if not request.field(section):
                updates[section] = []
        if not any(request.field(s) for s in RESUME_SECTIONS):
            updates["objective"] = ""
        updates["skills"] = [s.strip() for s in updates.get("skills", document.skills) if s.strip()]
        updates["certifications"] = [c.strip() for c in updates.get("certifications", document.certifications) if c.strip()]
        return document.model_copy(update=updates)

    @staticmethod
    def _ground_cover_letter(letter: CoverLetterDocument, request: GenerationRequest) -> CoverLetterDocument:
        paragraphs = [p.strip() for p in letter.paragraphs if p and p.strip()]
        if not paragraphs:
            raise MalformedModelOutput("Failed to process AI response: the letter has no paragraphs.")
        updates: dict[str, Any] = {k: request.field(k) for k in ("name", "recipient", "position") if request.field(k)}
        updates["paragraphs"] = paragraphs
        return letter.model_copy(update=updates)


if __name__ == "__main__":
    import argparse
    from pathlib import Path

    from lift.llm.openai_client import OpenAICompletionClient
    from lift.utils.logging_utils import setup_logging

    p = argparse.ArgumentParser(description="Run a Lift pipeline once and print the JSON result.")
    group = p.add_mutually_exclusive_group(required=True)
    group.add_argument("--notes", help="Plain-text notes file")
    group.add_argument("--resume", help="JSON file with resume form fields")
    group.add_argument("--cover", help="JSON file with cover letter form fields")
    a = p.parse_args()
    setup_logging(config.LOG_LEVEL)
    bot = Bot(llm=OpenAICompletionClient())
    if a.notes:
        out = asyncio.run(bot.generate_notes(Path(a.notes).read_text(encoding="utf-8")))
    else:
        fields = json.loads(Path(a.resume or a.cover).read_text(encoding="utf-8"))
        fields["type"] = "resume" if a.resume else "cover"
        out = asyncio.run(bot.generate_career(Bot.build_career_request(fields)))
    print(json.dumps(out.model_dump(), indent=2, ensure_ascii=False))
