"""Opportunity listing model."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fresherflow.opportunities.models import Opportunity, OpportunityStatus, OpportunityType

from .base import Base


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class OpportunityRecord(Base):
    __tablename__ = "opportunities"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    slug: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    type: Mapped[str] = mapped_column(String(20), default=OpportunityType.JOB.value, index=True)
    status: Mapped[str] = mapped_column(String(20), default=OpportunityStatus.PUBLISHED.value, index=True)

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    company: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, default="")

    # Eligibility
    allowed_degrees: Mapped[list] = mapped_column(JSON, default=list)
    allowed_courses: Mapped[list] = mapped_column(JSON, default=list)
    allowed_passout_years: Mapped[list] = mapped_column(JSON, default=list)
    required_skills: Mapped[list] = mapped_column(JSON, default=list)

    # Location + compensation
    locations: Mapped[list] = mapped_column(JSON, default=list)
    work_mode: Mapped[str | None] = mapped_column(String(20), nullable=True)
    salary_min: Mapped[int | None] = mapped_column(Integer, nullable=True)
    salary_max: Mapped[int | None] = mapped_column(Integer, nullable=True)
    experience_min: Mapped[int | None] = mapped_column(Integer, nullable=True)
    experience_max: Mapped[int | None] = mapped_column(Integer, nullable=True)
    apply_link: Mapped[str | None] = mapped_column(String(2048), nullable=True)

    posted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True
    )
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    saved_by: Mapped[list["SavedOpportunity"]] = relationship(back_populates="opportunity", cascade="all, delete-orphan")
    actions: Mapped[list["UserAction"]] = relationship(back_populates="opportunity", cascade="all, delete-orphan")

    def to_opportunity(self, is_saved: bool = False) -> Opportunity:
        return Opportunity(
            id=self.id,
            slug=self.slug,
            type=OpportunityType(self.type),
            status=OpportunityStatus(self.status),
            title=self.title,
            company=self.company,
            description=self.description or "",
            allowed_degrees=list(self.allowed_degrees or []),
            allowed_courses=list(self.allowed_courses or []),
            allowed_passout_years=list(self.allowed_passout_years or []),
            required_skills=list(self.required_skills or []),
            locations=list(self.locations or []),
            work_mode=self.work_mode,
            salary_min=self.salary_min,
            salary_max=self.salary_max,
            experience_min=self.experience_min,
            experience_max=self.experience_max,
            apply_link=self.apply_link,
            posted_at=_as_utc(self.posted_at),
            expires_at=_as_utc(self.expires_at),
            updated_at=_as_utc(self.updated_at),
            deleted_at=_as_utc(self.deleted_at),
            is_saved=is_saved,
        )
