"""FastAPI application factory."""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import sessionmaker

from fresherflow.auth import TokenAuthProvider
from fresherflow.config import DEFAULT_AUTH_SECRET, AppConfig
from fresherflow.errors import ApiError, ProfileIncompleteError
from fresherflow.growth.funnel import GrowthFunnel, get_default_funnel
from fresherflow.models import Base, SessionLocal, make_session_factory

from .actions import router as actions_router
from .growth import router as growth_router
from .opportunities import router as opportunities_router
from .profile import router as profile_router
from .saved import router as saved_router

logger = logging.getLogger("fresherflow.web")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: make sure the tables exist
    Base.metadata.create_all(bind=app.state.session_factory.kw["bind"])
    logger.info("FresherFlow API started")

    yield

    logger.info("FresherFlow API stopped")


async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    body = {"error": exc.message}
    if exc.code:
        body["code"] = exc.code
    if isinstance(exc, ProfileIncompleteError):
        body["completionPercentage"] = exc.completion_percentage
    return JSONResponse(body, status_code=exc.status_code or 400)


def create_app(
    config: AppConfig | None = None,
    session_factory: sessionmaker | None = None,
    funnel: GrowthFunnel | None = None,
) -> FastAPI:
    app = FastAPI(title="FresherFlow", lifespan=lifespan)

    if config is None:
        secret = os.environ.get("FRESHERFLOW_AUTH_SECRET", DEFAULT_AUTH_SECRET)
        config = AppConfig()
        config.server.auth_secret = secret
        session_factory = session_factory or SessionLocal
    else:
        session_factory = session_factory or make_session_factory(config.server.database_url)

    app.state.config = config
    app.state.session_factory = session_factory
    app.state.auth_provider = TokenAuthProvider(
        config.server.auth_secret,
        max_age_seconds=config.server.token_max_age_seconds,
    )
    app.state.funnel = funnel or get_default_funnel()

    app.add_exception_handler(ApiError, _api_error_handler)

    # Routers
    app.include_router(opportunities_router)
    app.include_router(saved_router)
    app.include_router(actions_router)
    app.include_router(profile_router)
    app.include_router(growth_router)

    @app.get("/api/health")
    def health():
        return {"ok": True}

    return app


app = create_app()
