"""Evaluation pipeline: LangGraph StateGraph implementation.

Graph: generate_checklist → resolve_source → extract_images → analyze_batches →
       plan_context → (geo_context | score) → score

Every node persists its own output before returning, so a polling client
sees progress stage by stage. The first three nodes are setup stages: any
failure there surfaces as EvaluationSetupError and ends the job.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Literal

from langgraph.graph import StateGraph, END

from muve.agents.evaluation.analyzer import VisionBatchAnalyzer
from muve.agents.evaluation.prompts import CHECKLIST_PROMPT, SCORE_PROMPT
from muve.agents.evaluation.sourcing import collect_images, resolve_source
from muve.agents.evaluation.tools import ImageFinding, flatten_triggers, parse_score_response
from muve.agents.geo_context.checks import GeoContextChecker
from muve.agents.geo_context.kinds import CheckKind, parse_check_kinds
from muve.agents.llm_provider import FetchedImage, LLMProvider
from muve.agents.state import EvaluationState
from muve.config import PipelineConfig
from muve.db.store import EvaluationStore
from muve.errors import EvaluationSetupError, GeocodingError
from muve.services.settle import settle_all

logger = logging.getLogger(__name__)

NO_SUMMARY = "The assessment model returned no summary for this property."


def setup_stage(node):
    """Turn any failure of a setup node into EvaluationSetupError."""
    @functools.wraps(node)
    async def wrapper(self, state: EvaluationState) -> dict:
        try:
            return await node(self, state)
        except EvaluationSetupError:
            raise
        except Exception as e:
            raise EvaluationSetupError(f"{node.__name__} failed: {e}") from e
    return wrapper


class EvaluationPipeline:
    """Stage implementations bound to their collaborators."""

    def __init__(
        self,
        store: EvaluationStore,
        llm: LLMProvider,
        image_source,
        fetcher,
        geocoder,
        geo_checker: GeoContextChecker,
        config: PipelineConfig,
        analyzer: VisionBatchAnalyzer | None = None,
    ):
        self.store = store
        self.llm = llm
        self.image_source = image_source
        self.fetcher = fetcher
        self.geocoder = geocoder
        self.geo_checker = geo_checker
        self.config = config
        self.analyzer = analyzer or VisionBatchAnalyzer(llm)

    # ── Setup stages ──────────────────────────────────────

    @setup_stage
    async def generate_checklist_node(self, state: EvaluationState) -> dict:
        checklist = (await self.llm.chat(CHECKLIST_PROMPT.format(user_needs=state["user_needs"]))).strip()
        if not checklist:
            raise EvaluationSetupError("Checklist generation returned no text")
        await self.store.update(state["job_id"], checklist=checklist)
        logger.info(f"[{state['job_id']}] checklist ready")
        return {"checklist": checklist}

    @setup_stage
    async def resolve_source_node(self, state: EvaluationState) -> dict:
        url = await resolve_source(self.image_source, state.get("address"), state.get("listing_url"))
        await self.store.update(state["job_id"], source_url=url)
        return {"source_url": url}

    @setup_stage
    async def extract_images_node(self, state: EvaluationState) -> dict:
        source_url, images = await collect_images(
            self.image_source, state["source_url"], state.get("address"), state.get("listing_url"),
        )
        images = images[: self.config.max_images]
        await self.store.update(state["job_id"], source_url=source_url, image_urls=images, image_results=[])
        logger.info(f"[{state['job_id']}] {len(images)} photos from {source_url}")
        return {"source_url": source_url, "image_urls": images}

    # ── Batch analysis ────────────────────────────────────

    async def analyze_batches_node(self, state: EvaluationState) -> dict:
        results = await self.analyze_batches(state["job_id"], state.get("image_urls") or [], state["checklist"])
        return {"image_results": results}

    async def analyze_batches(self, job_id: str, image_urls: list[str], checklist: str) -> list[dict]:
        """Analyze images batch by batch, appending each batch's findings as soon as it is done."""
        size = max(1, self.config.batch_size)
        batches = [image_urls[i:i + size] for i in range(0, len(image_urls), size)]
        accumulated: list[dict] = []
        for index, batch in enumerate(batches):
            if index:
                await asyncio.sleep(self.config.batch_delay_seconds)
            findings = await self._analyze_batch(job_id, index, batch, checklist)
            if not findings:
                continue
            records = [f.to_record() for f in findings]
            await self.store.append_image_results(job_id, records)
            accumulated.extend(records)
        return accumulated

    async def _analyze_batch(
        self, job_id: str, index: int, batch: list[str], checklist: str,
    ) -> list[ImageFinding] | None:
        slots = asyncio.Semaphore(max(1, self.config.fetch_concurrency))

        async def fetch(url: str) -> FetchedImage:
            async with slots:
                return await self.fetcher.fetch(url)

        images = await settle_all([fetch(url) for url in batch], labels=batch, context=f"[{job_id}] fetch")
        if not images:
            logger.warning(f"[{job_id}] batch {index}: no images could be fetched")
            return None
        try:
            return await self.analyzer.analyze_batch(images, checklist)
        except Exception as e:
            logger.error(f"[{job_id}] batch {index}: vision analysis failed, skipping: {e}")
            return None

    # ── Geo context ───────────────────────────────────────

    async def plan_context_node(self, state: EvaluationState) -> dict:
        kinds = parse_check_kinds(state.get("checklist"))
        return {"check_kinds": [k.value for k in kinds]}

    def decide_geo_context(self, state: EvaluationState) -> Literal["geo_context", "score"]:
        if not state.get("check_kinds"):
            return "score"
        if not state.get("address"):
            logger.info(f"[{state['job_id']}] no address to locate, skipping neighbourhood checks")
            return "score"
        return "geo_context"

    async def geo_context_node(self, state: EvaluationState) -> dict:
        job_id, address = state["job_id"], state["address"]
        try:
            coords = await self.geocoder.resolve(address)
        except GeocodingError as e:
            logger.warning(f"[{job_id}] skipping neighbourhood checks: {e}")
            return {}
        kinds = [CheckKind(k) for k in state["check_kinds"]]
        findings = await self.geo_checker.run_all(kinds, address, coords)
        records = [f.to_record() for f in findings]
        await self.store.update(job_id, specialty_results=records)
        logger.info(f"[{job_id}] {len(records)}/{len(kinds)} neighbourhood checks succeeded")
        return {"specialty_results": records}

    # ── Scoring ───────────────────────────────────────────

    async def score_node(self, state: EvaluationState) -> dict:
        triggers = flatten_triggers(state.get("image_results") or [])
        context = state.get("specialty_results") or []
        prompt = SCORE_PROMPT.format(
            user_needs=state["user_needs"],
            issues="\n".join(f"- {t}" for t in triggers) or "None spotted.",
            context="\n".join(f"- {c['category']}: {c['findings']}" for c in context)
            or "No neighbourhood checks were run.",
        )
        result = parse_score_response(await self.llm.chat(prompt))
        summary = result.summary if result.summary.strip() else NO_SUMMARY
        await self.store.complete(state["job_id"], result.score, summary)
        logger.info(f"[{state['job_id']}] completed with score {result.score}")
        return {"final_score": result.score, "final_summary": summary}

    # ── Build graph ───────────────────────────────────────

    def build_graph(self):
        graph = StateGraph(EvaluationState)

        graph.add_node("generate_checklist", self.generate_checklist_node)
        graph.add_node("resolve_source", self.resolve_source_node)
        graph.add_node("extract_images", self.extract_images_node)
        graph.add_node("analyze_batches", self.analyze_batches_node)
        graph.add_node("plan_context", self.plan_context_node)
        graph.add_node("geo_context", self.geo_context_node)
        graph.add_node("score", self.score_node)

        graph.set_entry_point("generate_checklist")
        graph.add_edge("generate_checklist", "resolve_source")
        graph.add_edge("resolve_source", "extract_images")
        graph.add_edge("extract_images", "analyze_batches")
        graph.add_edge("analyze_batches", "plan_context")
        graph.add_conditional_edges(
            "plan_context",
            self.decide_geo_context,
            {"geo_context": "geo_context", "score": "score"},
        )
        graph.add_edge("geo_context", "score")
        graph.add_edge("score", END)

        return graph.compile()
