from enum import Enum
from typing import Annotated, Mapping

from pydantic import BaseModel, ConfigDict, Field


class TaskType(str, Enum):
    RESUME = "resume"
    COVER_LETTER = "cover_letter"
    NOTES = "notes"

    @classmethod
    def from_career_type(cls, value: str) -> "TaskType":
        """Map the career form's ``type`` value onto a task type."""
        key = (value or "").strip().lower()
        if key == "resume":
            return cls.RESUME
        if key in ("cover", "cover_letter", "cover-letter"):
            return cls.COVER_LETTER
        raise ValueError(f"Unknown document type: {value!r}")


class GenerationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    task_type: Annotated[TaskType, "Pipeline to run"]
    fields: Annotated[Mapping[str, str], "Raw named inputs for the task"] = Field(default_factory=dict)

    def field(self, name: str) -> str:
        return (self.fields.get(name) or "").strip()
