"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from muve.api.router import api_router
from muve.config import get_settings
from muve.db.engine import async_session_factory, create_tables, engine
from muve.dependencies import build_services


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    await create_tables()

    # One set of collaborators (LLM client, HTTP clients, job registry) per process
    services = build_services(settings, async_session_factory)
    app.state.services = services
    yield
    await services.aclose()
    await engine.dispose()


app = FastAPI(
    title="MUVE",
    description="Asynchronous accessibility evaluations of residential listings from photos and neighbourhood data.",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(api_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
