from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from muve.agents.orchestrator import EvaluationOrchestrator
from muve.db.store import EvaluationStore
from muve.dependencies import get_orchestrator, get_store
from muve.schemas import EvaluationAccepted, EvaluationCreate, EvaluationRead

router = APIRouter(prefix="/api/evaluations", tags=["evaluations"])


@router.post("", response_model=EvaluationAccepted, status_code=202)
async def create_evaluation(
    body: EvaluationCreate,
    orchestrator: EvaluationOrchestrator = Depends(get_orchestrator),
):
    """Start an evaluation; poll GET /api/evaluations/{job_id} for progress."""
    job_id = await orchestrator.submit(body.user_needs, address=body.address, listing_url=body.url)
    return EvaluationAccepted(job_id=job_id)


@router.get("/{job_id}", response_model=EvaluationRead)
async def get_evaluation(
    job_id: str,
    store: EvaluationStore = Depends(get_store),
):
    record = await store.get(job_id)
    if not record:
        raise HTTPException(404, "Evaluation not found")
    return record
