"""Profile routes: read and update the candidate's eligibility profile."""

import logging

from fastapi import APIRouter, Body, Depends, Request
from sqlalchemy.orm import Session

from fresherflow.models import UserProfile
from fresherflow.profile.models import Profile

from .dependencies import get_db, require_user
from .opportunities import load_profile

logger = logging.getLogger("fresherflow.web.profile")

router = APIRouter(prefix="/api/profile")

EDITABLE_FIELDS = (
    "education_level",
    "course",
    "specialization",
    "grad_year",
    "pg_year",
    "skills",
    "preferred_cities",
    "work_modes",
    "interested_in",
    "availability",
)


@router.get("")
def get_profile(request: Request, db: Session = Depends(get_db)):
    user = require_user(request, db)
    profile = load_profile(db, user)
    return {
        "user": user.to_dict(),
        "profile": profile.to_dict() if profile else None,
    }


@router.put("")
def update_profile(request: Request, payload: dict | None = Body(default=None), db: Session = Depends(get_db)):
    user = require_user(request, db)
    incoming = Profile.from_dict(payload or {})

    row = db.query(UserProfile).filter(UserProfile.user_id == user.id).first()
    if row is None:
        row = UserProfile(user_id=user.id)
        db.add(row)
    for name in EDITABLE_FIELDS:
        setattr(row, name, getattr(incoming, name))
    db.commit()

    profile = row.to_profile()
    logger.info("Profile updated for user %d (%d%% complete)", user.id, profile.completion_percentage)
    return {"user": user.to_dict(), "profile": profile.to_dict()}
