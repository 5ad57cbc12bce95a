import math

import pytest

from bugtracker.core.exceptions import DimensionMismatchError
from bugtracker.services.similarity import cosine_similarity


VECTORS = [
    [1.0, 0.0, 0.0],
    [0.0, 1.0, 0.0],
    [0.3, -0.7, 0.2],
    [-1.0, -2.0, 3.5],
    [1e-8, 2e-8, 0.0],
]


@pytest.mark.parametrize("a", VECTORS)
@pytest.mark.parametrize("b", VECTORS)
def test_similarity_is_symmetric_and_bounded(a, b) -> None:
    forward = cosine_similarity(a, b)
    backward = cosine_similarity(b, a)

    assert forward == pytest.approx(backward)
    assert -1.0 <= forward <= 1.0


@pytest.mark.parametrize("vector", VECTORS)
def test_self_similarity_is_one(vector) -> None:
    assert cosine_similarity(vector, vector) == pytest.approx(1.0)


def test_zero_vector_returns_zero() -> None:
    result = cosine_similarity([0.5, 0.5], [0.0, 0.0])

    assert result == 0.0
    assert not math.isnan(result)


def test_opposite_vectors_are_minus_one() -> None:
    assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)


def test_orthogonal_vectors_are_zero() -> None:
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)


def test_length_mismatch_raises() -> None:
    with pytest.raises(DimensionMismatchError) as exc_info:
        cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])

    assert exc_info.value.details == {"left": 2, "right": 3}


@pytest.mark.parametrize("a, b", [([], [1.0]), ([1.0], []), ([], [])])
def test_empty_vector_raises(a, b) -> None:
    with pytest.raises(DimensionMismatchError):
        cosine_similarity(a, b)
