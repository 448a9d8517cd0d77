"""Vector similarity helpers."""

from collections.abc import Sequence

import numpy as np


def cosine_similarity(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    """Cosine similarity of two equal-length vectors.

    The denominator falls back to 1 when either magnitude is zero, so a
    zero vector has similarity 0 with everything.

    Raises:
        ValueError: If the vectors differ in length
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise ValueError(f"Vector length mismatch: {va.shape[0]} != {vb.shape[0]}")

    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    denominator = norm_a * norm_b
    if norm_a == 0.0 or norm_b == 0.0:
        denominator = 1.0

    return float(np.dot(va, vb)) / denominator
