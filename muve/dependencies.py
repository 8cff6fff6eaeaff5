"""Collaborator wiring and FastAPI dependency providers."""

from __future__ import annotations

from dataclasses import dataclass

import httpx
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from muve.agents.evaluation.graph import EvaluationPipeline
from muve.agents.geo_context.checks import GeoContextChecker
from muve.agents.llm_provider import LLMProvider, get_llm_provider
from muve.agents.orchestrator import EvaluationOrchestrator
from muve.config import Settings
from muve.db.store import EvaluationStore
from muve.services.geo_sources import GeoDataSources
from muve.services.geocoder import NominatimGeocoder
from muve.services.image_fetcher import ImageFetcher
from muve.services.listing_images import ListingImageSource, PlaywrightRenderer


@dataclass
class Services:
    """Process-wide collaborators; built once at startup, closed at shutdown."""

    store: EvaluationStore
    llm: LLMProvider
    image_source: ListingImageSource
    orchestrator: EvaluationOrchestrator
    http_clients: list[httpx.AsyncClient]

    async def aclose(self) -> None:
        await self.orchestrator.shutdown()
        for client in self.http_clients:
            await client.aclose()


def build_services(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    llm: LLMProvider | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> Services:
    llm = llm or get_llm_provider(settings)
    http_client = http_client or httpx.AsyncClient(
        timeout=settings.pipeline.fetch_timeout_seconds,
        headers={"User-Agent": settings.image_source.user_agent},
    )
    geo_client = httpx.AsyncClient(timeout=settings.geo.request_timeout_seconds)
    store = EvaluationStore(session_factory)
    image_source = ListingImageSource(
        http_client, PlaywrightRenderer(settings.image_source),
        settings.image_source, max_images=settings.pipeline.max_images,
    )
    pipeline = EvaluationPipeline(
        store=store,
        llm=llm,
        image_source=image_source,
        fetcher=ImageFetcher(http_client, settings.pipeline.max_image_bytes),
        geocoder=NominatimGeocoder(geo_client, settings.geo.nominatim_url, settings.geo.user_agent),
        geo_checker=GeoContextChecker(GeoDataSources(geo_client, settings.geo), llm, settings.geo.sample_offset_deg),
        config=settings.pipeline,
    )
    return Services(
        store=store, llm=llm, image_source=image_source,
        orchestrator=EvaluationOrchestrator(store, pipeline),
        http_clients=[http_client, geo_client],
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_orchestrator(request: Request) -> EvaluationOrchestrator:
    return get_services(request).orchestrator


def get_store(request: Request) -> EvaluationStore:
    return get_services(request).store


def get_image_source(request: Request) -> ListingImageSource:
    return get_services(request).image_source


def get_llm(request: Request) -> LLMProvider:
    return get_services(request).llm
