"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from matchday.api.leagues import router as leagues_router
from matchday.api.matches import router as matches_router
from matchday.config import Settings
from matchday.core.errors import (
    ConsistencyError,
    InputValidationError,
    MatchdayError,
    NotFoundError,
)
from matchday.core.refresh import StandingsLocks
from matchday.db.engine import create_engine, create_tables

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: create engine and tables. Shutdown: dispose the engine."""
    settings: Settings = app.state.settings
    engine = create_engine(settings.database_url)
    await create_tables(engine)
    app.state.engine = engine
    logger.info("matchday_started env=%s", settings.matchday_env)

    yield

    await engine.dispose()
    logger.info("matchday_stopped")


def _status_for(exc: MatchdayError) -> int:
    if isinstance(exc, InputValidationError):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, ConsistencyError):
        return 409
    return 500


async def _matchday_error_handler(request: Request, exc: MatchdayError) -> JSONResponse:
    status_code = _status_for(exc)
    if status_code >= 409:
        logger.warning(
            "request_failed method=%s path=%s error=%s: %s",
            request.method,
            request.url.path,
            type(exc).__name__,
            exc,
        )
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "type": type(exc).__name__,
                "message": str(exc),
                "field": getattr(exc, "field", None),
            },
        },
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the Matchday FastAPI application."""
    settings = settings or Settings()

    logging.basicConfig(
        level=getattr(logging, settings.matchday_log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Matchday",
        version="0.1.0",
        description="Round-robin fixture generation and league standings",
        docs_url="/docs" if settings.matchday_env != "production" else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.standings_locks = StandingsLocks()

    app.add_exception_handler(MatchdayError, _matchday_error_handler)

    app.include_router(leagues_router)
    app.include_router(matches_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "env": settings.matchday_env}

    return app


app = create_app()
