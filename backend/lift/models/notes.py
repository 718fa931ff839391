from pydantic import BaseModel, Field
from typing import Annotated

from .flashcard import Flashcard


class NotesResult(BaseModel):
    summaries: Annotated[list[str], "One summary per processed text block, in block order; empty where the summary call failed"] = Field(default_factory=list)
    flashcards: Annotated[list[Flashcard], "Flashcards from every block, in block order"] = Field(default_factory=list)
