"""Per-opportunity action tracking routes (viewed, applied, planned, ...)."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Body, Depends, Request
from sqlalchemy.orm import Session

from fresherflow.errors import ApiError, NotFoundError
from fresherflow.matching.eligibility import check_eligibility
from fresherflow.models import OpportunityRecord, UserAction
from fresherflow.opportunities.models import ActionType, format_timestamp, normalize_action_type

from .dependencies import get_db, require_user
from .opportunities import load_profile

logger = logging.getLogger("fresherflow.web.actions")

router = APIRouter(prefix="/api/actions")

# Committing to an opportunity requires passing its hard eligibility rules
GATED_ACTIONS = {ActionType.APPLIED, ActionType.PLANNED, ActionType.INTERVIEWED}


def _action_dict(row: UserAction) -> dict:
    return {
        "opportunityId": row.opportunity_id,
        "actionType": row.action_type,
        "updatedAt": format_timestamp(row.updated_at),
    }


@router.get("")
def list_actions(request: Request, db: Session = Depends(get_db)):
    user = require_user(request, db)
    rows = db.query(UserAction).filter(UserAction.user_id == user.id).order_by(UserAction.updated_at.desc()).all()
    return {"actions": [_action_dict(r) for r in rows]}


@router.post("/{opportunity_id}/action")
def track_action(
    request: Request,
    opportunity_id: str,
    payload: dict | None = Body(default=None),
    db: Session = Depends(get_db),
):
    user = require_user(request, db)
    payload = payload or {}

    try:
        action_type = normalize_action_type(str(payload.get("actionType") or ""))
    except ValueError:
        raise ApiError(f"Invalid action type: {payload.get('actionType')}", status_code=400, code="INVALID_ACTION") from None

    record = db.get(OpportunityRecord, opportunity_id)
    if record is None or record.deleted_at is not None:
        raise NotFoundError("Opportunity not found", status_code=404, code="NOT_FOUND")

    if action_type in GATED_ACTIONS and not user.is_admin:
        profile = load_profile(db, user)
        if profile is not None:
            result = check_eligibility(record.to_opportunity(), profile, user_id=str(user.id))
            if not result.eligible:
                raise ApiError(result.reason or "Not eligible", status_code=403, code="NOT_ELIGIBLE")

    row = db.query(UserAction).filter(
        UserAction.user_id == user.id,
        UserAction.opportunity_id == opportunity_id,
    ).first()
    if row is None:
        row = UserAction(user_id=user.id, opportunity_id=opportunity_id, action_type=action_type.value)
        db.add(row)
    else:
        row.action_type = action_type.value
        row.updated_at = datetime.now(timezone.utc)
    db.commit()

    logger.info("User %d marked %s as %s", user.id, opportunity_id, action_type.value)
    return {"action": _action_dict(row)}


@router.delete("/{opportunity_id}")
def remove_action(request: Request, opportunity_id: str, db: Session = Depends(get_db)):
    user = require_user(request, db)
    deleted = db.query(UserAction).filter(
        UserAction.user_id == user.id,
        UserAction.opportunity_id == opportunity_id,
    ).delete()
    db.commit()
    return {"removed": bool(deleted)}
