"""Vision batch analyzer: one vision call per batch of fetched photos."""

from __future__ import annotations

from muve.agents.evaluation.prompts import BATCH_ANALYSIS_PROMPT, NONE_TOKEN
from muve.agents.evaluation.tools import ImageFinding, parse_batch_response
from muve.agents.geo_context.kinds import strip_check_trailer
from muve.agents.llm_provider import FetchedImage, LLMProvider


class VisionBatchAnalyzer:
    def __init__(self, llm: LLMProvider):
        self.llm = llm

    async def analyze_batch(self, images: list[FetchedImage], checklist: str) -> list[ImageFinding]:
        if not images:
            return []
        prompt = BATCH_ANALYSIS_PROMPT.format(
            count=len(images),
            checklist=strip_check_trailer(checklist),
            none_token=NONE_TOKEN,
        )
        response = await self.llm.analyze_images(images, prompt)
        return parse_batch_response(response, [img.url for img in images])
