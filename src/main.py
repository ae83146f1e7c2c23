"""Application entrypoint: `uvicorn src.main:app`"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.routes import router
from src.core.exceptions import (
    ConflictError,
    ExternalServiceError,
    ForbiddenError,
    GameError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from src.core.config import config
from src.core.logging_config import configure_logging
from src.db.database import init_db
from src.services.commentary import CannedCommentator, Commentator
from src.services.game_locks import GameLocks

logger = logging.getLogger(__name__)

# most specific first
STATUS_CODES: list[tuple[type[GameError], int]] = [
    (ValidationError, 400),
    (NotFoundError, 404),
    (ForbiddenError, 403),
    (InvalidStateError, 409),
    (ConflictError, 409),
    (ExternalServiceError, 502),
]


def status_code_for(error: GameError) -> int:
    for error_type, status_code in STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500


async def game_error_handler(request: Request, error: Exception) -> JSONResponse:
    if not isinstance(error, GameError):
        raise TypeError(f"Expected a GameError, got {type(error).__name__}.")
    status_code = status_code_for(error)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, error.message)
    return JSONResponse(
        status_code=status_code,
        content={"error": error.message, "details": error.details},
    )


def create_app(
    init_database: bool = True, commentator: Optional[Commentator] = None
) -> FastAPI:
    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if init_database:
            init_db()
        yield

    app = FastAPI(title="Mess It Up - game server", lifespan=lifespan)
    app.state.locks = GameLocks()
    app.state.commentator = commentator or CannedCommentator()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(GameError, game_error_handler)
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logger.info("Starting Mess It Up game server...")
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level=config.LOG_LEVEL.lower())
