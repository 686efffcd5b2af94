"""Pure similarity functions for retrieval.

Vectors are compared as given; embedding backends may or may not
L2-normalize, so norms are computed on the fly.
"""

from collections.abc import Sequence
from math import sqrt


def dot(u: Sequence[float], v: Sequence[float]) -> float:
    return sum(a * b for a, b in zip(u, v, strict=True))


def magnitude(u: Sequence[float]) -> float:
    return sqrt(sum(a * a for a in u))


def cosine(u: Sequence[float], v: Sequence[float]) -> float:
    """Compute cosine similarity between two vectors.

    Args:
        u: First vector
        v: Second vector

    Returns:
        Cosine similarity in [-1, 1]; exactly 0.0 when either vector has
        zero magnitude.
    """
    nu = magnitude(u)
    nv = magnitude(v)
    if nu == 0.0 or nv == 0.0:
        return 0.0
    return dot(u, v) / (nu * nv)
