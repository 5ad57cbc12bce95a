"""
Cosine similarity between embedding vectors.
"""

from __future__ import annotations

import math
from typing import Sequence

from bugtracker.core.exceptions import DimensionMismatchError


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    dot(a, b) / (|a| * |b|) in double precision.

    Returns 0.0 when either vector has zero magnitude. The result is
    clamped to [-1, 1] so float drift never leaks out of range.

    Raises:
        DimensionMismatchError: If a vector is empty or the lengths differ
    """
    if not a or not b:
        raise DimensionMismatchError(
            "Cannot compare empty vectors",
            details={"left": len(a) if a else 0, "right": len(b) if b else 0},
        )
    if len(a) != len(b):
        raise DimensionMismatchError(
            f"Vector lengths differ: {len(a)} != {len(b)}",
            details={"left": len(a), "right": len(b)},
        )

    dot = math.fsum(float(x) * float(y) for x, y in zip(a, b))
    norm_a = math.sqrt(math.fsum(float(x) * float(x) for x in a))
    norm_b = math.sqrt(math.fsum(float(y) * float(y) for y in b))

    denominator = norm_a * norm_b
    if denominator == 0:
        return 0.0

    return max(-1.0, min(1.0, dot / denominator))
