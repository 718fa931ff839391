from typing import Annotated

from .generated_document import GeneratedDocument


class Education(GeneratedDocument):
    degree: Annotated[str, "Degree or major"] = ""
    school: Annotated[str, "Name of the educational institution"] = ""
    dates: Annotated[str, "Date range"] = ""
