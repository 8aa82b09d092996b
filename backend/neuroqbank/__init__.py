import logging
from contextlib import asynccontextmanager

import aiosqlite
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from neuroqbank.config import settings
from neuroqbank.db import init_all_databases
from neuroqbank.services.cache import TTLCache

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_all_databases(settings.data_dir)
    app.state.stats_cache = TTLCache(settings.stats_cache_ttl_seconds)
    logger.info("Database ready at %s", settings.data_dir)
    yield
    app.state.stats_cache.clear()


async def store_error_handler(request: Request, exc: aiosqlite.Error) -> JSONResponse:
    logger.exception("Store failure on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": str(exc)})


def create_app() -> FastAPI:
    application = FastAPI(
        title="NeuroQBank Backend", version="0.1.0", lifespan=lifespan
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_exception_handler(aiosqlite.Error, store_error_handler)

    from neuroqbank.routers import flashcards, health, questions, review, statistics

    application.include_router(health.router)
    application.include_router(
        questions.router, prefix="/questions", tags=["questions"]
    )
    application.include_router(
        flashcards.router, prefix="/flashcards", tags=["flashcards"]
    )
    application.include_router(
        review.router, prefix="/review", tags=["review"]
    )
    application.include_router(
        statistics.router, prefix="/statistics", tags=["statistics"]
    )

    return application


app = create_app()
