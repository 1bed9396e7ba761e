"""Vector helpers for embeddings stored as plain float lists."""

from __future__ import annotations

import zlib
from collections.abc import Sequence

import numpy as np

DEFAULT_DIMENSIONS = 1536
# The pseudo-embedding only looks at the head of the text.
PSEUDO_EMBEDDING_MAX_WORDS = 100


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between ``a`` and ``b``; 0.0 when either is a zero vector."""
    if len(a) != len(b):
        raise ValueError(f"Vector length mismatch: {len(a)} != {len(b)}")
    left = np.asarray(a, dtype=np.float64)
    right = np.asarray(b, dtype=np.float64)
    norm = float(np.linalg.norm(left) * np.linalg.norm(right))
    if norm == 0.0:
        return 0.0
    return float(np.dot(left, right) / norm)


def weighted_average(vectors: Sequence[Sequence[float]], weights: Sequence[float]) -> list[float]:
    """Weighted mean of equally sized vectors; plain mean when all weights are zero."""
    if not vectors:
        raise ValueError("At least one vector is required")
    if len(vectors) != len(weights):
        raise ValueError("Each vector needs exactly one weight")
    matrix = np.asarray(vectors, dtype=np.float64)
    weight_array = np.asarray(weights, dtype=np.float64)
    if float(weight_array.sum()) <= 0.0:
        return matrix.mean(axis=0).tolist()
    return np.average(matrix, axis=0, weights=weight_array).tolist()


def pseudo_embedding(text: str, dimensions: int = DEFAULT_DIMENSIONS) -> list[float]:
    """Deterministic, L2-normalized bag-of-words hash vector.

    Stands in for a real embedding when the embedding endpoint is unavailable,
    so fallback-classified content still carries a comparable vector.
    """
    vector = np.zeros(dimensions, dtype=np.float64)
    words = text.lower().split()[:PSEUDO_EMBEDDING_MAX_WORDS]
    for word in words:
        digest = zlib.crc32(word.encode("utf-8"))
        index = digest % dimensions
        sign = 1.0 if (digest >> 31) & 1 == 0 else -1.0
        vector[index] += sign
    norm = float(np.linalg.norm(vector))
    if norm > 0.0:
        vector /= norm
    return vector.tolist()
