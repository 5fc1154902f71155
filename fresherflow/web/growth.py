"""Growth funnel routes: public event beacon and the admin report."""

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .dependencies import get_db, require_admin

router = APIRouter()


@router.post("/api/public/growth/event")
def record_event(request: Request, payload: dict | None = Body(default=None)):
    payload = payload or {}
    # Unknown events are dropped silently; the beacon always gets 202
    request.app.state.funnel.record(payload.get("source"), payload.get("event"))
    return JSONResponse({"ok": True}, status_code=202)


@router.get("/api/admin/system/growth-funnel")
def growth_funnel(request: Request, db: Session = Depends(get_db)):
    require_admin(request, db)
    return request.app.state.funnel.get_metrics()
