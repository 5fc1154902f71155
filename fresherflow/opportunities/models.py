"""Opportunity data model."""

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


class OpportunityType(str, enum.Enum):
    JOB = "JOB"
    INTERNSHIP = "INTERNSHIP"
    WALKIN = "WALKIN"


class OpportunityStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"
    EXPIRED = "EXPIRED"


class EducationLevel(str, enum.Enum):
    DIPLOMA = "DIPLOMA"
    DEGREE = "DEGREE"
    PG = "PG"


class WorkMode(str, enum.Enum):
    ONSITE = "ONSITE"
    HYBRID = "HYBRID"
    REMOTE = "REMOTE"


class ActionType(str, enum.Enum):
    VIEWED = "VIEWED"
    APPLIED = "APPLIED"
    PLANNED = "PLANNED"
    INTERVIEWED = "INTERVIEWED"
    NOT_ELIGIBLE = "NOT_ELIGIBLE"


# Older clients still send the pre-rename spellings
ACTION_TYPE_ALIASES = {
    "PLANNING": ActionType.PLANNED,
    "ATTENDED": ActionType.INTERVIEWED,
}


def normalize_action_type(raw: str) -> ActionType:
    """Resolve an action type, accepting legacy aliases. Raises ValueError."""
    value = (raw or "").strip().upper()
    if value in ACTION_TYPE_ALIASES:
        return ACTION_TYPE_ALIASES[value]
    return ActionType(value)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Accept datetimes, ISO-8601 strings and epoch milliseconds."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        dt = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass
class Opportunity:
    """A job, internship or walk-in listing as served by the API."""

    id: str
    title: str
    company: str
    type: OpportunityType = OpportunityType.JOB
    posted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    slug: Optional[str] = None
    description: str = ""
    allowed_degrees: list[str] = field(default_factory=list)
    allowed_courses: list[str] = field(default_factory=list)
    allowed_passout_years: list[int] = field(default_factory=list)
    required_skills: list[str] = field(default_factory=list)
    locations: list[str] = field(default_factory=list)
    work_mode: Optional[str] = None
    salary_min: Optional[int] = None
    salary_max: Optional[int] = None
    experience_min: Optional[int] = None
    experience_max: Optional[int] = None
    apply_link: Optional[str] = None
    expires_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    status: OpportunityStatus = OpportunityStatus.PUBLISHED
    is_saved: bool = False

    def __post_init__(self):
        # Naive timestamps are UTC; mixing naive and aware breaks comparisons
        for name in ("posted_at", "expires_at", "updated_at", "deleted_at"):
            value = getattr(self, name)
            if isinstance(value, datetime) and value.tzinfo is None:
                setattr(self, name, value.replace(tzinfo=timezone.utc))

    @property
    def freshness(self) -> datetime:
        """Timestamp used for last-write-wins comparisons and cache ordering."""
        return self.updated_at or self.posted_at

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return self.expires_at <= now

    def to_dict(self) -> dict:
        """Convert to the camelCase JSON shape used by the API and local caches."""
        return {
            "id": self.id,
            "slug": self.slug,
            "type": self.type.value,
            "status": self.status.value,
            "title": self.title,
            "company": self.company,
            "description": self.description,
            "allowedDegrees": list(self.allowed_degrees),
            "allowedCourses": list(self.allowed_courses),
            "allowedPassoutYears": list(self.allowed_passout_years),
            "requiredSkills": list(self.required_skills),
            "locations": list(self.locations),
            "workMode": self.work_mode,
            "salaryMin": self.salary_min,
            "salaryMax": self.salary_max,
            "experienceMin": self.experience_min,
            "experienceMax": self.experience_max,
            "applyLink": self.apply_link,
            "postedAt": format_timestamp(self.posted_at),
            "expiresAt": format_timestamp(self.expires_at),
            "updatedAt": format_timestamp(self.updated_at),
            "deletedAt": format_timestamp(self.deleted_at),
            "isSaved": self.is_saved,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Opportunity":
        """Build from an API/cache payload. Raises KeyError/ValueError on bad shape."""
        return cls(
            id=str(data["id"]),
            slug=data.get("slug"),
            type=OpportunityType(data.get("type") or "JOB"),
            status=OpportunityStatus(data.get("status") or "PUBLISHED"),
            title=data.get("title") or "",
            company=data.get("company") or "",
            description=data.get("description") or "",
            allowed_degrees=list(data.get("allowedDegrees") or []),
            allowed_courses=list(data.get("allowedCourses") or []),
            allowed_passout_years=[int(y) for y in data.get("allowedPassoutYears") or []],
            required_skills=list(data.get("requiredSkills") or []),
            locations=list(data.get("locations") or []),
            work_mode=data.get("workMode"),
            salary_min=data.get("salaryMin"),
            salary_max=data.get("salaryMax"),
            experience_min=data.get("experienceMin"),
            experience_max=data.get("experienceMax"),
            apply_link=data.get("applyLink"),
            posted_at=parse_timestamp(data.get("postedAt")) or datetime.now(timezone.utc),
            expires_at=parse_timestamp(data.get("expiresAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
            deleted_at=parse_timestamp(data.get("deletedAt")),
            is_saved=bool(data.get("isSaved", False)),
        )
