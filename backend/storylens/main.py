"""FastAPI app factory."""

from __future__ import annotations

import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storylens import __version__
from storylens.config import settings
from storylens.errors import StoryLensError

load_dotenv()

logging.basicConfig(
    level=getattr(logging, settings.storylens_log_level.upper(), logging.INFO),
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)

logger = logging.getLogger(__name__)


async def _handle_storylens_error(request: Request, exc: StoryLensError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s: %s", request.method, request.url.path, type(exc).__name__, exc)
    else:
        logger.info("%s %s rejected: %s: %s", request.method, request.url.path, type(exc).__name__, exc)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message})


def create_app() -> FastAPI:
    app = FastAPI(
        title="StoryLens",
        description="Annotated-image captioning — tiered captions, object boxes and speech",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StoryLensError, _handle_storylens_error)

    from storylens.database import init_db

    init_db()

    from storylens.api.router import api_router

    app.include_router(api_router)

    return app


app = create_app()
