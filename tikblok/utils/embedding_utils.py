"""
Conversions between model output and the vectors stored in the index.
The index compares vectors by cosine similarity, so every stored or queried
vector is a flat float32 unit vector.
"""

import numpy as np
from typing import Any, List, Union

EmbeddingLike = Union[np.ndarray, List[float], Any]


def as_float32(embedding: EmbeddingLike) -> np.ndarray:
    array = np.asarray(embedding)
    return array if array.dtype == np.float32 else array.astype(np.float32)


def normalize_embedding(embedding: EmbeddingLike) -> np.ndarray:
    """
    Flatten a single embedding (a ``(1, dim)`` batch or a ``(dim,)`` vector)
    and scale it to unit length. Zero vectors are returned unchanged.
    """
    vector = as_float32(embedding).reshape(-1)
    norm = float(np.linalg.norm(vector))
    return vector / norm if norm > 0 else vector


def to_vector(embedding: EmbeddingLike) -> List[float]:
    """Plain-float list, the form the vector index accepts"""
    return normalize_embedding(embedding).tolist()
