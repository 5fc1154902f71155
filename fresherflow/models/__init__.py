"""ORM models for the FresherFlow API."""

from .base import Base, SessionLocal, engine, make_session_factory
from .opportunity import OpportunityRecord
from .saved_opportunity import SavedOpportunity
from .user import User
from .user_action import UserAction
from .user_profile import UserProfile

__all__ = [
    "Base",
    "SessionLocal",
    "engine",
    "make_session_factory",
    "User",
    "UserProfile",
    "OpportunityRecord",
    "SavedOpportunity",
    "UserAction",
]
