"""SQLAlchemy ORM models."""

from muve.models.base import Base
from muve.models.evaluation import Evaluation

__all__ = ["Base", "Evaluation"]
