"""Saved opportunity routes."""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from fresherflow.errors import NotFoundError
from fresherflow.models import OpportunityRecord, SavedOpportunity

from .dependencies import get_db, require_user

logger = logging.getLogger("fresherflow.web.saved")

router = APIRouter(prefix="/api/saved")


@router.get("")
def list_saved(request: Request, db: Session = Depends(get_db)):
    user = require_user(request, db)
    rows = db.query(SavedOpportunity).join(OpportunityRecord).filter(
        SavedOpportunity.user_id == user.id,
        OpportunityRecord.deleted_at.is_(None),
    ).order_by(SavedOpportunity.created_at.desc()).all()

    opportunities = [row.opportunity.to_opportunity(is_saved=True).to_dict() for row in rows]
    return {"opportunities": opportunities, "count": len(opportunities)}


@router.post("/{opportunity_id}")
def toggle_saved(request: Request, opportunity_id: str, db: Session = Depends(get_db)):
    user = require_user(request, db)
    if db.get(OpportunityRecord, opportunity_id) is None:
        raise NotFoundError("Opportunity not found", status_code=404, code="NOT_FOUND")

    existing = db.query(SavedOpportunity).filter(
        SavedOpportunity.user_id == user.id,
        SavedOpportunity.opportunity_id == opportunity_id,
    ).first()

    if existing:
        db.delete(existing)
        saved = False
    else:
        db.add(SavedOpportunity(user_id=user.id, opportunity_id=opportunity_id))
        saved = True
    db.commit()

    logger.info("User %d %s opportunity %s", user.id, "saved" if saved else "unsaved", opportunity_id)
    return {"saved": saved}
