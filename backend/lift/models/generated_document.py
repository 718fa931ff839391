from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator


class GeneratedDocument(BaseModel):
    """Base for documents the model writes: JSON nulls fall back to the field default."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    @field_validator("*", mode="before")
    @classmethod
    def _null_to_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)
        if isinstance(value, list):
            return [item for item in value if item is not None]
        return value
