"""Pydantic request/response schemas."""

from muve.schemas.evaluation import (
    EvaluationCreate, EvaluationAccepted, EvaluationRead,
    ImageResultRead, SpecialtyResultRead,
    ImagePreviewRequest, ImagePreviewRead,
    ChecklistRequest, ChecklistRead,
)

__all__ = [
    "EvaluationCreate", "EvaluationAccepted", "EvaluationRead",
    "ImageResultRead", "SpecialtyResultRead",
    "ImagePreviewRequest", "ImagePreviewRead",
    "ChecklistRequest", "ChecklistRead",
]
