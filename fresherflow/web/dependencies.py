"""Shared FastAPI dependencies: DB session and auth context."""

from collections.abc import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from fresherflow.errors import ApiError, AuthExpiredError
from fresherflow.models import User


def get_db(request: Request) -> Generator[Session, None, None]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def _bearer_token(request: Request) -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


def get_current_user(request: Request, db: Session) -> User | None:
    """Return the authenticated User or None (reads the Bearer token)."""
    user_id = request.app.state.auth_provider.verify(_bearer_token(request))
    if user_id is None:
        return None
    return db.query(User).filter(User.id == user_id, User.is_active.is_(True)).first()


def require_user(request: Request, db: Session) -> User:
    user = get_current_user(request, db)
    if user is None:
        raise AuthExpiredError("Session expired", status_code=401, code="UNAUTHORIZED")
    return user


def require_admin(request: Request, db: Session) -> User:
    user = require_user(request, db)
    if not user.is_admin:
        raise ApiError("Admin access required", status_code=403, code="FORBIDDEN")
    return user
