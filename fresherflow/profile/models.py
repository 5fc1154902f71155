"""Profile data model."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Profile:
    """A candidate's eligibility and preference record."""

    education_level: Optional[str] = None
    course: str = ""
    specialization: str = ""
    grad_year: Optional[int] = None
    pg_year: Optional[int] = None
    skills: list[str] = field(default_factory=list)
    preferred_cities: list[str] = field(default_factory=list)
    work_modes: list[str] = field(default_factory=list)
    interested_in: list[str] = field(default_factory=list)
    availability: Optional[str] = None
    completion_percentage: int = 0

    @property
    def passout_year(self) -> Optional[int]:
        return self.grad_year or self.pg_year

    def to_dict(self) -> dict:
        return {
            "educationLevel": self.education_level,
            "course": self.course,
            "specialization": self.specialization,
            "gradYear": self.grad_year,
            "pgYear": self.pg_year,
            "skills": list(self.skills),
            "preferredCities": list(self.preferred_cities),
            "workModes": list(self.work_modes),
            "interestedIn": list(self.interested_in),
            "availability": self.availability,
            "completionPercentage": self.completion_percentage,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Profile":
        return cls(
            education_level=data.get("educationLevel"),
            course=data.get("course") or "",
            specialization=data.get("specialization") or "",
            grad_year=data.get("gradYear"),
            pg_year=data.get("pgYear"),
            skills=list(data.get("skills") or []),
            preferred_cities=list(data.get("preferredCities") or []),
            work_modes=list(data.get("workModes") or data.get("preferredWorkModes") or []),
            interested_in=list(data.get("interestedIn") or []),
            availability=data.get("availability"),
            completion_percentage=int(data.get("completionPercentage") or 0),
        )
