"""User profile model: education, preferences and readiness."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fresherflow.profile.completion import calculate_completion
from fresherflow.profile.models import Profile

from .base import Base


class UserProfile(Base):
    __tablename__ = "user_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), unique=True, nullable=False)

    # Education
    education_level: Mapped[str | None] = mapped_column(String(20), nullable=True)
    course: Mapped[str] = mapped_column(String(255), default="")
    specialization: Mapped[str] = mapped_column(String(255), default="")
    grad_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    pg_year: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Preferences
    interested_in: Mapped[list] = mapped_column(JSON, default=list)
    preferred_cities: Mapped[list] = mapped_column(JSON, default=list)
    work_modes: Mapped[list] = mapped_column(JSON, default=list)

    # Readiness
    availability: Mapped[str | None] = mapped_column(String(30), nullable=True)
    skills: Mapped[list] = mapped_column(JSON, default=list)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user: Mapped["User"] = relationship(back_populates="profile")

    def to_profile(self) -> Profile:
        """Convert DB row to the Profile dataclass used by matching."""
        profile = Profile(
            education_level=self.education_level,
            course=self.course or "",
            specialization=self.specialization or "",
            grad_year=self.grad_year,
            pg_year=self.pg_year,
            skills=list(self.skills or []),
            preferred_cities=list(self.preferred_cities or []),
            work_modes=list(self.work_modes or []),
            interested_in=list(self.interested_in or []),
            availability=self.availability,
        )
        profile.completion_percentage = calculate_completion(profile)
        return profile
