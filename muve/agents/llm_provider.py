"""Abstract LLM provider with OpenAI and Anthropic adapters."""

from __future__ import annotations

import base64
from abc import ABC, abstractmethod
from dataclasses import dataclass

from muve.config import Settings, get_settings


@dataclass(frozen=True)
class FetchedImage:
    """Downloaded image bytes ready to be sent to a vision model."""

    url: str
    data: bytes
    media_type: str = "image/jpeg"


class LLMProvider(ABC):
    """Abstract interface for vision-capable LLM calls."""

    @abstractmethod
    async def analyze_images(self, images: list[FetchedImage], prompt: str) -> str:
        """Send multiple images + prompt to the LLM, return text response."""
        ...

    @abstractmethod
    async def chat(self, prompt: str) -> str:
        """Text-only chat completion."""
        ...


def _encode_image(image: FetchedImage) -> str:
    """Base64-encode image bytes."""
    return base64.standard_b64encode(image.data).decode("utf-8")


class OpenAIProvider(LLMProvider):
    """OpenAI GPT-4o vision provider."""

    def __init__(self, api_key: str, model: str = "gpt-4o", timeout: float = 90.0):
        from openai import AsyncOpenAI
        self.client = AsyncOpenAI(api_key=api_key, timeout=timeout)
        self.model = model

    async def analyze_images(self, images: list[FetchedImage], prompt: str) -> str:
        content = [{"type": "text", "text": prompt}]
        for image in images:
            b64 = _encode_image(image)
            content.append({
                "type": "image_url",
                "image_url": {"url": f"data:{image.media_type};base64,{b64}"},
            })
        resp = await self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": content}],
            max_tokens=2048,
        )
        return resp.choices[0].message.content or ""

    async def chat(self, prompt: str) -> str:
        resp = await self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=1024,
        )
        return resp.choices[0].message.content or ""


class AnthropicProvider(LLMProvider):
    """Anthropic Claude vision provider."""

    def __init__(self, api_key: str, model: str = "claude-sonnet-4-20250514", timeout: float = 90.0):
        from anthropic import AsyncAnthropic
        self.client = AsyncAnthropic(api_key=api_key, timeout=timeout)
        self.model = model

    async def analyze_images(self, images: list[FetchedImage], prompt: str) -> str:
        content = []
        for i, image in enumerate(images, 1):
            content.append({"type": "text", "text": f"Image {i}:"})
            content.append({
                "type": "image",
                "source": {"type": "base64", "media_type": image.media_type, "data": _encode_image(image)},
            })
        content.append({"type": "text", "text": prompt})
        resp = await self.client.messages.create(
            model=self.model,
            max_tokens=2048,
            messages=[{"role": "user", "content": content}],
        )
        return resp.content[0].text

    async def chat(self, prompt: str) -> str:
        resp = await self.client.messages.create(
            model=self.model,
            max_tokens=1024,
            messages=[{"role": "user", "content": [{"type": "text", "text": prompt}]}],
        )
        return resp.content[0].text


def get_llm_provider(settings: Settings | None = None) -> LLMProvider:
    """Factory: honours llm.provider, else OpenAI if key available, else Anthropic."""
    settings = settings or get_settings()
    cfg = settings.llm
    if cfg.provider == "anthropic" or (not cfg.provider and not settings.openai_api_key):
        if settings.anthropic_api_key:
            return AnthropicProvider(settings.anthropic_api_key, cfg.anthropic_model, cfg.timeout_seconds)
    elif settings.openai_api_key:
        return OpenAIProvider(settings.openai_api_key, cfg.openai_model, cfg.timeout_seconds)
    raise RuntimeError("No LLM API key configured. Set OPENAI_API_KEY or ANTHROPIC_API_KEY.")
