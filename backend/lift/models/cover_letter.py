from pydantic import Field
from typing import Annotated

from .generated_document import GeneratedDocument


class CoverLetterDocument(GeneratedDocument):
    name: Annotated[str, "Candidate full name"] = ""
    recipient: Annotated[str, "Company or hiring manager addressed"] = ""
    position: Annotated[str, "Target position"] = ""
    paragraphs: Annotated[list[str], "Introduction, 1-3 body paragraphs and a closing"] = Field(default_factory=list)
