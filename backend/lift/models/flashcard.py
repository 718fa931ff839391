from pydantic import BaseModel
from typing import Annotated


class Flashcard(BaseModel):
    question: Annotated[str, "Question derived from the notes"]
    answer: Annotated[str, "Short answer to the question"]
    flipped: Annotated[bool, "Client display flag; set by the server, never by the model"] = False
