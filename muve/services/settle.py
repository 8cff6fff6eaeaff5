"""Wait-for-all join over independent async units."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def settle_all(
    aws: Sequence[Awaitable[T]],
    labels: Sequence[str] | None = None,
    context: str = "",
) -> list[T]:
    """Run every awaitable to completion and return the successful results in launch order.

    A failure never short-circuits its siblings; each one is logged and left out.
    Cancellation of the caller still propagates.
    """
    if not aws:
        return []
    outcomes = await asyncio.gather(*aws, return_exceptions=True)
    succeeded: list[T] = []
    for i, outcome in enumerate(outcomes):
        if isinstance(outcome, BaseException):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            label = labels[i] if labels and i < len(labels) else f"#{i}"
            logger.warning(f"{context} unit {label} failed: {outcome!r}")
            continue
        succeeded.append(outcome)
    return succeeded
