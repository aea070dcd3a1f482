"""
Cosine similarity of one query vector against a matrix of candidates.

Example:
    >>> scores = batch_cosine_similarity(query, np.stack(vectors))
    >>> best = to_percentage(scores.max())
"""

from __future__ import annotations

from typing import List, Union

import numpy as np

# Type alias for vectors
VectorLike = Union[np.ndarray, List[float]]


def batch_cosine_similarity(
    query: VectorLike,
    candidates: np.ndarray,
) -> np.ndarray:
    """
    Compute cosine similarity between a query and multiple candidates.

    Zero vectors (query or candidate rows) score 0.0 instead of NaN.

    Args:
        query: Query vector of shape (dim,).
        candidates: Matrix of candidate vectors, shape (n, dim).

    Returns:
        Array of similarity scores in [-1, 1], shape (n,).

    Raises:
        ValueError: If the candidate width differs from the query length.
    """
    q = np.asarray(query, dtype=np.float64)
    c = np.asarray(candidates, dtype=np.float64)

    if c.size == 0:
        return np.zeros(0, dtype=np.float64)
    if c.ndim != 2 or c.shape[1] != q.shape[0]:
        raise ValueError(
            f"Candidate matrix shape {c.shape} does not match query dimension {q.shape}"
        )

    q_norm = np.linalg.norm(q)
    if q_norm == 0:
        return np.zeros(c.shape[0], dtype=np.float64)

    c_norms = np.linalg.norm(c, axis=1)
    safe_norms = np.where(c_norms == 0, 1.0, c_norms)

    similarities = (c @ q) / (safe_norms * q_norm)
    similarities = np.where(c_norms == 0, 0.0, similarities)

    return np.clip(similarities, -1.0, 1.0)


def to_percentage(similarity: float) -> int:
    """Similarity as a rounded percentage for display."""
    return int(round(similarity * 100))
