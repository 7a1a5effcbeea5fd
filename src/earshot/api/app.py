"""FastAPI application factory.

The api layer validates inputs, reads/writes the DB through the eval
and core modules and returns payloads for the listening UI. It never
serves audio bytes.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Generator

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from earshot.db.repo import DbSession
from earshot.db.session import get_session

DEFAULT_CORS_ORIGINS = "http://localhost:5173,http://127.0.0.1:5173"


def get_db_session() -> Generator[DbSession, None, None]:
    """Dependency to get database session.

    Yields:
        Database session that is automatically closed after request.
    """
    session = get_session()
    try:
        yield session
    finally:
        session.close()


def _cors_origins() -> list[str]:
    raw = os.environ.get("EARSHOT_CORS_ORIGINS", DEFAULT_CORS_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed requests as 400 Bad Request."""
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


def create_app(db_path: Path | None = None) -> FastAPI:
    """Create FastAPI application.

    Args:
        db_path: Optional path to database file.

    Returns:
        Configured FastAPI application.
    """
    app = FastAPI(
        title="Earshot API",
        description="Blind A/B listening trials",
        version="0.1.0",
    )

    # Add CORS middleware for UI access
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    # Include routes
    from earshot.api.routes import answers, config, rounds

    app.include_router(rounds.router, prefix="/api")
    app.include_router(answers.router, prefix="/api")
    app.include_router(config.router, prefix="/api")

    if db_path is not None:

        def get_configured_session() -> Generator[DbSession, None, None]:
            session = get_session(db_path)
            try:
                yield session
            finally:
                session.close()

        app.dependency_overrides[get_db_session] = get_configured_session

    # Health check endpoint
    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "ok"}

    return app


# Default app instance
app = create_app()
