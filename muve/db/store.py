"""Evaluation record store: the only persistent state shared with polling clients.

Every operation opens its own session and commits once, so a concurrent
reader sees either the state before a write or after it. Writes for a given
id come from a single background task; the store additionally refuses to
touch a record once it is terminal and only allows
processing -> completed | error.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from muve.db import crud
from muve.errors import InvalidTransitionError, RecordNotFoundError, RecordSealedError
from muve.models.evaluation import Evaluation, TERMINAL_STATUSES
from muve.schemas import EvaluationRead

logger = logging.getLogger(__name__)


def _check_writable(ev: Evaluation, fields: dict) -> None:
    if ev.status in TERMINAL_STATUSES:
        raise RecordSealedError(f"Evaluation {ev.id} is already {ev.status}")
    new_status = fields.get("status")
    if new_status is not None and new_status not in TERMINAL_STATUSES:
        raise InvalidTransitionError(f"Cannot move evaluation {ev.id} from {ev.status} to {new_status}")


class EvaluationStore:
    """Keyed evaluation records with partial-field update and snapshot reads."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create(
        self, subject: str, user_needs: str,
        address: str | None = None, listing_url: str | None = None,
    ) -> str:
        async with self._session_factory() as db:
            ev = await crud.create_evaluation(db, subject, user_needs, address, listing_url)
            logger.info(f"Created evaluation {ev.id} for {subject!r}")
            return ev.id

    async def get(self, evaluation_id: str) -> EvaluationRead | None:
        async with self._session_factory() as db:
            ev = await crud.get_evaluation(db, evaluation_id)
            if ev is None:
                return None
            return EvaluationRead.model_validate(ev)

    async def update(self, evaluation_id: str, **fields) -> EvaluationRead:
        """Write a subset of fields in one transaction."""
        async with self._session_factory() as db:
            ev = await crud.get_evaluation(db, evaluation_id)
            if ev is None:
                raise RecordNotFoundError(evaluation_id)
            _check_writable(ev, fields)
            ev = await crud.update_evaluation(db, ev, **fields)
            return EvaluationRead.model_validate(ev)

    async def append_image_results(self, evaluation_id: str, results: list[dict]) -> EvaluationRead:
        """Read-modify-write: extend the accumulated image_results with one batch."""
        async with self._session_factory() as db:
            ev = await crud.get_evaluation(db, evaluation_id)
            if ev is None:
                raise RecordNotFoundError(evaluation_id)
            _check_writable(ev, {})
            ev = await crud.append_image_results(db, ev, results)
            return EvaluationRead.model_validate(ev)

    async def complete(self, evaluation_id: str, final_score: int | None, final_summary: str) -> EvaluationRead:
        return await self.update(
            evaluation_id,
            status="completed", final_score=final_score, final_summary=final_summary,
        )

    async def fail(self, evaluation_id: str, final_summary: str) -> EvaluationRead:
        return await self.update(evaluation_id, status="error", final_summary=final_summary)

    async def recent(self, status: str | None = None, limit: int = 50) -> list[EvaluationRead]:
        """Most recent evaluations first."""
        async with self._session_factory() as db:
            rows = await crud.list_evaluations(db, status=status, limit=limit)
            return [EvaluationRead.model_validate(ev) for ev in rows]
