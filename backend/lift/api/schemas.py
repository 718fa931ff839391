from typing import Optional

from pydantic import BaseModel, ConfigDict

from lift.models.flashcard import Flashcard


class NotesRequest(BaseModel):
    notes: Optional[str] = None


class NotesResponse(BaseModel):
    summaries: list[str]
    flashcards: list[Flashcard]


class CareerRequest(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    type: str = "resume"  # or "cover"
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    # Resume
    address: Optional[str] = None
    linkedin: Optional[str] = None
    objective: Optional[str] = None
    experience: Optional[str] = None
    education: Optional[str] = None
    skills: Optional[str] = None
    certifications: Optional[str] = None
    # Cover letter
    recipient: Optional[str] = None
    position: Optional[str] = None
    paragraphs: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str


ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    405: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}
