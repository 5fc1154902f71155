"""Opportunity listing routes: coarse DB query, then the in-memory eligibility filter."""

import json
import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import String, cast, or_
from sqlalchemy.orm import Session

from fresherflow.errors import ApiError, NotFoundError, ProfileIncompleteError
from fresherflow.matching.match_score import score
from fresherflow.matching.matcher import build_feed
from fresherflow.models import OpportunityRecord, SavedOpportunity, User, UserProfile
from fresherflow.opportunities.models import OpportunityStatus, OpportunityType
from fresherflow.profile.models import Profile
from fresherflow.utils.text_processing import normalize_opportunity_type

from .dependencies import get_current_user, get_db, require_user

logger = logging.getLogger("fresherflow.web.opportunities")

router = APIRouter(prefix="/api/opportunities")

CLOSING_SOON_DAYS = 3


def load_profile(db: Session, user: User) -> Profile | None:
    row = db.query(UserProfile).filter(UserProfile.user_id == user.id).first()
    return row.to_profile() if row else None


def saved_ids(db: Session, user: User) -> set[str]:
    rows = db.query(SavedOpportunity.opportunity_id).filter(SavedOpportunity.user_id == user.id).all()
    return {r[0] for r in rows}


def query_listed(
    db: Session,
    type: str | None = None,
    city: str | None = None,
    company: str | None = None,
    closing_soon: bool = False,
    now: datetime | None = None,
) -> list[OpportunityRecord]:
    """Coarse filter: published, not deleted, not expired, newest first."""
    now = now or datetime.now(timezone.utc)
    query = db.query(OpportunityRecord).filter(
        OpportunityRecord.status == OpportunityStatus.PUBLISHED.value,
        OpportunityRecord.deleted_at.is_(None),
        or_(OpportunityRecord.expires_at.is_(None), OpportunityRecord.expires_at > now),
    )
    if type:
        query = query.filter(OpportunityRecord.type == type)
    if city:
        # Locations are a JSON array; match the quoted element text
        query = query.filter(cast(OpportunityRecord.locations, String).contains(json.dumps(city), autoescape=True))
    if company:
        query = query.filter(OpportunityRecord.company.ilike(f"%{company}%"))
    if closing_soon:
        query = query.filter(
            OpportunityRecord.expires_at.isnot(None),
            OpportunityRecord.expires_at <= now + timedelta(days=CLOSING_SOON_DAYS),
        )
    return query.order_by(OpportunityRecord.posted_at.desc()).all()


def _resolve_type(raw: str | None) -> str | None:
    value = normalize_opportunity_type(raw)
    if value is None:
        return None
    if value not in {t.value for t in OpportunityType}:
        raise ApiError(f"Unknown opportunity type: {raw}", status_code=400, code="INVALID_TYPE")
    return value


@router.get("")
def list_opportunities(
    request: Request,
    type: str | None = None,
    city: str | None = None,
    company: str | None = None,
    closing_soon: bool = Query(False, alias="closingSoon"),
    db: Session = Depends(get_db),
):
    user = require_user(request, db)
    profile = load_profile(db, user)

    if not user.is_admin:
        completion = profile.completion_percentage if profile else 0
        if completion < 100:
            raise ProfileIncompleteError(
                "Complete your profile to see opportunities",
                completion_percentage=completion,
            )

    records = query_listed(db, type=_resolve_type(type), city=city, company=company, closing_soon=closing_soon)
    saved = saved_ids(db, user)
    opportunities = [r.to_opportunity(is_saved=r.id in saved) for r in records]

    # Admins review everything the coarse query returns
    feed = build_feed(opportunities, profile, apply_filter=not user.is_admin)
    logger.info("Listing for user %d: %d coarse, %d served", user.id, len(records), len(feed))

    return {"opportunities": [item.to_dict() for item in feed], "count": len(feed)}


@router.get("/{id_or_slug}")
def get_opportunity(request: Request, id_or_slug: str, db: Session = Depends(get_db)):
    record = db.query(OpportunityRecord).filter(
        or_(OpportunityRecord.id == id_or_slug, OpportunityRecord.slug == id_or_slug),
        OpportunityRecord.deleted_at.is_(None),
    ).first()
    if record is None:
        raise NotFoundError("Opportunity not found", status_code=404, code="NOT_FOUND")

    user = get_current_user(request, db)
    profile = load_profile(db, user) if user else None
    opportunity = record.to_opportunity(is_saved=bool(user) and record.id in saved_ids(db, user))
    result = score(profile, opportunity)

    data = opportunity.to_dict()
    data["matchScore"] = result.score
    data["matchReason"] = result.reason
    return {"opportunity": data}
