from typing import Annotated

from .generated_document import GeneratedDocument


class JobExperience(GeneratedDocument):
    title: Annotated[str, "Job position title"] = ""
    company: Annotated[str, "Company name"] = ""
    dates: Annotated[str, "Date range, e.g. '2019 – 2022'"] = ""
    details: Annotated[str, "Achievements separated by newlines"] = ""
