from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from datastore.database import build_default_database
from logging_config import configure_logging


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    database = build_default_database()
    try:
        yield
    finally:
        database.close()
        build_default_database.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Tag History",
        description="Stores Ruuvi tag readings and serves daily aggregates and trends.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
