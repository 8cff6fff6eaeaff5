from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel, Field, model_validator

from muve.models.evaluation import TERMINAL_STATUSES


class EvaluationCreate(BaseModel):
    address: str | None = None
    url: str | None = None
    user_needs: str = Field(min_length=1)

    @model_validator(mode="after")
    def _require_subject(self) -> "EvaluationCreate":
        self.address = (self.address or "").strip() or None
        self.url = (self.url or "").strip() or None
        self.user_needs = self.user_needs.strip()
        if not self.user_needs:
            raise ValueError("user_needs must not be blank")
        if not self.address and not self.url:
            raise ValueError("address or url is required")
        return self


class EvaluationAccepted(BaseModel):
    job_id: str
    status: str = "processing"


class ImageResultRead(BaseModel):
    image_url: str
    triggers: list[str] | None = None
    locator: list[float] | None = None


class SpecialtyResultRead(BaseModel):
    category: str
    findings: str


class EvaluationRead(BaseModel):
    id: str
    subject: str
    address: str | None = None
    listing_url: str | None = None
    user_needs: str
    status: str
    checklist: str | None = None
    source_url: str | None = None
    image_urls: list[str] | None = None
    image_results: list[ImageResultRead] | None = None
    specialty_results: list[SpecialtyResultRead] | None = None
    final_score: int | None = None
    final_summary: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class ImagePreviewRequest(BaseModel):
    address: str | None = None
    url: str | None = None

    @model_validator(mode="after")
    def _require_subject(self) -> "ImagePreviewRequest":
        if not (self.address or "").strip() and not (self.url or "").strip():
            raise ValueError("address or url is required")
        return self


class ImagePreviewRead(BaseModel):
    images: list[str]
    target_url: str


class ChecklistRequest(BaseModel):
    user_needs: str = Field(min_length=1)


class ChecklistRead(BaseModel):
    checklist: str
    check_kinds: list[str] = []
