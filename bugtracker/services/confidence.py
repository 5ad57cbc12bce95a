"""
Confidence fusion

Combines the heuristic base score with duplicate, tag and severity signals
into one bounded integer. Steps are additive; the cap applies last.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from bugtracker.core.config import settings


@dataclass(frozen=True)
class ConfidenceWeights:
    base: int = 50
    duplicate_bonus: int = 15
    strong_duplicate_bonus: int = 10
    strong_duplicate_similarity: float = 0.9
    tag_bonus: int = 5
    tag_min_count: int = 2
    severity_bonus: int = 10
    neutral_severity: str = "medium"
    cap: int = 100

    @classmethod
    def from_settings(cls) -> "ConfidenceWeights":
        return cls(
            base=settings.confidence_base,
            duplicate_bonus=settings.confidence_duplicate_bonus,
            strong_duplicate_bonus=settings.confidence_strong_duplicate_bonus,
            strong_duplicate_similarity=settings.confidence_strong_duplicate_similarity,
            tag_bonus=settings.confidence_tag_bonus,
            tag_min_count=settings.confidence_tag_min_count,
            severity_bonus=settings.confidence_severity_bonus,
            cap=settings.confidence_cap,
        )


def fuse_confidence(
    base: int | None,
    duplicate_similarities: Sequence[float],
    tags: Sequence[str],
    severity: str,
    weights: ConfidenceWeights | None = None,
) -> int:
    """
    1. start from ``base`` (``weights.base`` when None)
    2. +duplicate_bonus when any duplicate was found
    3. +strong_duplicate_bonus when the top similarity > strong_duplicate_similarity
    4. +tag_bonus when more than ``tag_min_count`` tags
    5. +severity_bonus when severity is not the neutral one
    6. cap at ``weights.cap``
    """
    weights = weights or ConfidenceWeights.from_settings()

    confidence = weights.base if base is None else base

    if duplicate_similarities:
        confidence += weights.duplicate_bonus
        if max(duplicate_similarities) > weights.strong_duplicate_similarity:
            confidence += weights.strong_duplicate_bonus

    if len(tags) > weights.tag_min_count:
        confidence += weights.tag_bonus

    if severity != weights.neutral_severity:
        confidence += weights.severity_bonus

    return min(int(confidence), weights.cap)
