"""Evaluation orchestrator: creates jobs, runs the pipeline in the background, settles their status."""

from __future__ import annotations

import asyncio
import logging

from muve.agents.evaluation.graph import EvaluationPipeline
from muve.db.store import EvaluationStore
from muve.errors import EvaluationSetupError, JobAlreadyRunningError, RecordNotFoundError, RecordSealedError
from muve.services.job_registry import JobRegistry

logger = logging.getLogger(__name__)

SETUP_FAILURE_SUMMARY = (
    "We could not prepare an evaluation for this property. "
    "Check the address or listing URL and try again."
)
UNEXPECTED_FAILURE_SUMMARY = "The evaluation failed unexpectedly. Please submit it again."


class EvaluationOrchestrator:
    def __init__(self, store: EvaluationStore, pipeline: EvaluationPipeline, registry: JobRegistry | None = None):
        self.store = store
        self.pipeline = pipeline
        self.registry = registry or JobRegistry()
        self._graph = pipeline.build_graph()
        self._in_flight: set[str] = set()

    async def submit(self, user_needs: str, address: str | None = None, listing_url: str | None = None) -> str:
        """Create the record and schedule its run; returns without waiting for the pipeline."""
        subject = listing_url or address
        if not subject:
            raise ValueError("address or listing_url is required")
        job_id = await self.store.create(subject, user_needs, address=address, listing_url=listing_url)
        self.registry.start(job_id, self.run)
        return job_id

    async def run(self, job_id: str) -> None:
        """Run the pipeline for one job. Raises JobAlreadyRunningError if a run for it is in flight."""
        # Claimed before the first await so two callers can never both pass.
        if job_id in self._in_flight:
            raise JobAlreadyRunningError(job_id)
        self._in_flight.add(job_id)
        try:
            await self._run(job_id)
        finally:
            self._in_flight.discard(job_id)

    async def _run(self, job_id: str) -> None:
        record = await self.store.get(job_id)
        if record is None:
            raise RecordNotFoundError(job_id)
        if record.is_terminal:
            logger.warning(f"[{job_id}] already {record.status}, not running again")
            return

        initial_state = {
            "job_id": job_id,
            "address": record.address,
            "listing_url": record.listing_url,
            "user_needs": record.user_needs,
        }
        try:
            await self._graph.ainvoke(initial_state)
        except EvaluationSetupError as e:
            logger.warning(f"[{job_id}] setup failed: {e}")
            await self._fail(job_id, SETUP_FAILURE_SUMMARY)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(f"[{job_id}] evaluation crashed")
            await self._fail(job_id, UNEXPECTED_FAILURE_SUMMARY)

    async def _fail(self, job_id: str, summary: str) -> None:
        try:
            await self.store.fail(job_id, summary)
        except RecordSealedError:
            logger.error(f"[{job_id}] failure after the record was already terminal")

    async def wait(self, job_id: str) -> None:
        await self.registry.wait(job_id)

    async def shutdown(self) -> None:
        await self.registry.shutdown()
