"""Prompt construction for every task the completion service is asked to perform.

Templates live in ``lift/prompts/*.txt`` and use ``string.Template`` placeholders,
so the JSON examples they contain need no brace escaping. Building a prompt is
pure string work: field presence is validated by the caller.
"""
from enum import Enum
from functools import lru_cache
from string import Template
from typing import Mapping, Optional, Union

from lift.config import FLASHCARDS_MAX_PER_BLOCK, FLASHCARDS_MIN_PER_BLOCK
from lift.models.request import TaskType
from lift.utils.file_io import load_prompt

MISSING = "N/A"

RESUME_SECTIONS = ("objective", "experience", "education", "skills", "certifications")
RESUME_CONTACT_FIELDS = ("name", "email", "phone", "address", "linkedin")
COVER_LETTER_FIELDS = ("name", "recipient", "position", "paragraphs")


class PromptKind(str, Enum):
    RESUME = "resume"
    COVER_LETTER = "cover_letter"
    NOTES_SUMMARY = "notes_summary"
    NOTES_FLASHCARDS = "notes_flashcards"


@lru_cache(maxsize=None)
def _template(kind: PromptKind) -> Template:
    return Template(load_prompt(kind.value))


def _value(fields: Mapping[str, Optional[str]], key: str, default: str = MISSING) -> str:
    raw = fields.get(key)
    text = raw.strip() if isinstance(raw, str) else ""
    return text or default


def build_prompt(kind: Union[PromptKind, TaskType, str], fields: Mapping[str, Optional[str]]) -> str:
    """Return the exact instruction text for ``kind`` with ``fields`` embedded.

    ``TaskType.NOTES`` resolves to the summary prompt; ask for
    ``PromptKind.NOTES_FLASHCARDS`` explicitly to get the flashcard prompt.
    Blank resume sections and cover-letter achievements are rendered as ``N/A``,
    which the templates tell the model to map onto empty output.
    """
    if isinstance(kind, TaskType):
        kind = PromptKind.NOTES_SUMMARY if kind is TaskType.NOTES else PromptKind(kind.value)
    else:
        kind = PromptKind(kind)

    if kind is PromptKind.RESUME:
        values = {key: _value(fields, key) for key in RESUME_SECTIONS}
        values.update({key: _value(fields, key, default="") for key in RESUME_CONTACT_FIELDS})
    elif kind is PromptKind.COVER_LETTER:
        values = {key: _value(fields, key, default="") for key in COVER_LETTER_FIELDS}
        values["paragraphs"] = _value(fields, "paragraphs")
    elif kind is PromptKind.NOTES_FLASHCARDS:
        values = {
            "text": _value(fields, "text", default=""),
            "min_cards": FLASHCARDS_MIN_PER_BLOCK,
            "max_cards": FLASHCARDS_MAX_PER_BLOCK,
        }
    else:
        values = {"text": _value(fields, "text", default="")}
    return _template(kind).substitute(values).strip()


def summary_prompt(text: str) -> str:
    return build_prompt(PromptKind.NOTES_SUMMARY, {"text": text})


def flashcards_prompt(text: str) -> str:
    return build_prompt(PromptKind.NOTES_FLASHCARDS, {"text": text})
