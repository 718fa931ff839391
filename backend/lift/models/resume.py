from pydantic import Field
from typing import Annotated

from .education import Education
from .generated_document import GeneratedDocument
from .job_experience import JobExperience


class ResumeDocument(GeneratedDocument):
    name: Annotated[str, "Candidate full name"] = ""
    email: Annotated[str, "Contact email"] = ""
    phone: Annotated[str, "Contact phone"] = ""
    address: Annotated[str, "Postal address or city"] = ""
    linkedin: Annotated[str, "LinkedIn profile URL"] = ""
    objective: Annotated[str, "Synthesized professional summary"] = ""
    experience: Annotated[list[JobExperience], "Job experiences, most recent first"] = Field(default_factory=list)
    education: Annotated[list[Education], "Educational qualifications"] = Field(default_factory=list)
    skills: Annotated[list[str], "Cleaned-up list of skills"] = Field(default_factory=list)
    certifications: Annotated[list[str], "Certification names"] = Field(default_factory=list)
