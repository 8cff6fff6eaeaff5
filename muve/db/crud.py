"""CRUD operations for evaluation records."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from muve.models import Evaluation


async def create_evaluation(
    db: AsyncSession, subject: str, user_needs: str,
    address: str | None = None, listing_url: str | None = None,
) -> Evaluation:
    ev = Evaluation(
        subject=subject, user_needs=user_needs,
        address=address, listing_url=listing_url,
    )
    db.add(ev)
    await db.commit()
    await db.refresh(ev)
    return ev


async def get_evaluation(db: AsyncSession, evaluation_id: str) -> Evaluation | None:
    return await db.get(Evaluation, evaluation_id)


async def list_evaluations(db: AsyncSession, status: str | None = None, limit: int = 50) -> list[Evaluation]:
    query = select(Evaluation).order_by(Evaluation.created_at.desc()).limit(limit)
    if status:
        query = query.where(Evaluation.status == status)
    result = await db.execute(query)
    return list(result.scalars().all())


async def update_evaluation(db: AsyncSession, ev: Evaluation, **kwargs) -> Evaluation:
    for k, v in kwargs.items():
        if v is not None:
            setattr(ev, k, v)
    await db.commit()
    await db.refresh(ev)
    return ev


async def append_image_results(db: AsyncSession, ev: Evaluation, results: list[dict]) -> Evaluation:
    """Extend image_results with a new batch; earlier entries are kept in place."""
    # Assign a fresh list so the JSON column is flagged dirty.
    ev.image_results = list(ev.image_results or []) + list(results)
    await db.commit()
    await db.refresh(ev)
    return ev
