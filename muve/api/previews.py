"""Synchronous previews of the first pipeline stages, used by the wizard before submitting."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from muve.agents.evaluation.prompts import CHECKLIST_PROMPT
from muve.agents.evaluation.sourcing import collect_images, resolve_source
from muve.agents.geo_context.kinds import parse_check_kinds
from muve.agents.llm_provider import LLMProvider
from muve.dependencies import get_image_source, get_llm
from muve.errors import EvaluationSetupError, PageRenderError
from muve.schemas import ChecklistRead, ChecklistRequest, ImagePreviewRead, ImagePreviewRequest

router = APIRouter(prefix="/api", tags=["previews"])


@router.post("/images", response_model=ImagePreviewRead)
async def preview_images(body: ImagePreviewRequest, image_source=Depends(get_image_source)):
    address = (body.address or "").strip() or None
    url = (body.url or "").strip() or None
    try:
        source_url = await resolve_source(image_source, address, url)
        source_url, images = await collect_images(image_source, source_url, address, url)
    except EvaluationSetupError as e:
        raise HTTPException(404, str(e))
    except PageRenderError as e:
        raise HTTPException(502, str(e))
    return ImagePreviewRead(images=images, target_url=source_url)


@router.post("/checklist", response_model=ChecklistRead)
async def preview_checklist(body: ChecklistRequest, llm: LLMProvider = Depends(get_llm)):
    checklist = (await llm.chat(CHECKLIST_PROMPT.format(user_needs=body.user_needs))).strip()
    return ChecklistRead(checklist=checklist, check_kinds=[k.value for k in parse_check_kinds(checklist)])
