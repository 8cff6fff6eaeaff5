"""LangGraph TypedDict state for the evaluation pipeline."""

from __future__ import annotations

from typing import TypedDict


class EvaluationState(TypedDict, total=False):
    job_id: str
    address: str | None
    listing_url: str | None
    user_needs: str
    checklist: str
    check_kinds: list[str]  # CheckKind values requested by the checklist
    source_url: str
    image_urls: list[str]
    image_results: list[dict]  # [{image_url, triggers, locator}] accumulated across batches
    specialty_results: list[dict]  # [{category, findings}]
    final_score: int | None
    final_summary: str
