"""
Semantic Index - Vector Similarity Search

Default: numpy (reference cosine similarity, batched)
Optional: FAISS (accelerated inner product)

This is the "semantic memory" tier - finds past patterns that look like
the current one. Both backends rank identically; FAISS only changes how the
scores are computed.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence
import numpy as np
import logging

from .models import OutcomeEntry, SimilarMatch

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Reference cosine similarity.

    Returns 0.0 when either vector has zero magnitude or the score is not finite.
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    with np.errstate(invalid="ignore", over="ignore"):
        score = float(np.dot(a, b) / (norm_a * norm_b))
    return score if np.isfinite(score) else 0.0


def batch_cosine_similarity(query: Sequence[float], vectors: np.ndarray) -> np.ndarray:
    """Cosine similarity of one query against each row of `vectors`."""
    matrix = np.asarray(vectors, dtype=np.float64)
    if matrix.size == 0:
        return np.zeros(0, dtype=np.float64)
    matrix = matrix.reshape(len(matrix), -1)
    q = np.asarray(query, dtype=np.float64).reshape(-1)

    scores = np.zeros(len(matrix), dtype=np.float64)
    with np.errstate(invalid="ignore", over="ignore"):
        q_norm = np.linalg.norm(q)
        if q_norm == 0:
            return scores
        row_norms = np.linalg.norm(matrix, axis=1)
        dots = matrix @ q
        nonzero = row_norms > 0
        scores[nonzero] = dots[nonzero] / (row_norms[nonzero] * q_norm)
    # inf components give nan scores, which would break the ranking sort
    return np.nan_to_num(scores, nan=0.0, posinf=0.0, neginf=0.0)


class VectorIndex(ABC):
    """
    Abstract base for vector index backends.

    Entries are kept in insertion order. Subclasses only decide how the
    similarity scores are produced; ranking lives here so every backend
    orders results the same way.
    """

    def __init__(self, dimension: int = 128):
        self.dimension = dimension
        self._entries: List[OutcomeEntry] = []

    def _fit(self, vector: Sequence[float]) -> np.ndarray:
        """Pad or truncate to the index dimension."""
        vec = np.asarray(vector, dtype=np.float32).reshape(-1)
        if len(vec) == self.dimension:
            return vec
        fitted = np.zeros(self.dimension, dtype=np.float32)
        n = min(len(vec), self.dimension)
        fitted[:n] = vec[:n]
        return fitted

    @abstractmethod
    def insert(self, vector: Sequence[float], entry: OutcomeEntry) -> None:
        """Append a vector with its entry."""
        pass

    @abstractmethod
    def similarities(self, query_vector: Sequence[float]) -> np.ndarray:
        """Cosine score of the query against every stored vector, in insertion order."""
        pass

    @property
    @abstractmethod
    def vectors(self) -> np.ndarray:
        """All stored vectors as an (n, dimension) matrix."""
        pass

    @property
    def entries(self) -> List[OutcomeEntry]:
        return list(self._entries)

    @property
    def count(self) -> int:
        """Number of vectors stored."""
        return len(self._entries)

    def rank(
        self,
        scores: Sequence[float],
        k: int = 5,
        success_only: bool = True,
    ) -> List[SimilarMatch]:
        """
        Turn per-entry scores into the top-k matches.

        Args:
            scores: One score per stored entry, insertion order
            k: Maximum results
            success_only: Drop entries whose outcome is not positive

        Returns:
            Matches sorted by similarity, ties keep insertion order
        """
        if k <= 0 or not self._entries:
            return []

        results = [
            SimilarMatch(entry=entry, similarity=float(score))
            for entry, score in zip(self._entries, scores)
            if not success_only or entry.outcome > 0
        ]

        # sort is stable, so equal scores stay in insertion order
        results.sort(key=lambda m: m.similarity, reverse=True)
        return results[:k]

    def query(
        self,
        query_vector: Sequence[float],
        k: int = 5,
        success_only: bool = True,
    ) -> List[SimilarMatch]:
        """Search for the k most similar stored entries."""
        if not self._entries:
            return []
        return self.rank(self.similarities(query_vector), k, success_only)


class NumpyVectorIndex(VectorIndex):
    """
    In-memory numpy index.

    Keeps a growable float32 matrix and scores the whole set with a single
    matrix-vector product. Good for the working-set sizes this store sees.
    """

    def __init__(self, dimension: int = 128, initial_capacity: int = 64):
        super().__init__(dimension)
        self._matrix = np.zeros((max(initial_capacity, 1), dimension), dtype=np.float32)

        logger.info(f"Numpy vector index initialized (dim={dimension})")

    def insert(self, vector: Sequence[float], entry: OutcomeEntry) -> None:
        n = len(self._entries)
        if n == len(self._matrix):
            # amortised O(1): double capacity
            grown = np.zeros((len(self._matrix) * 2, self.dimension), dtype=np.float32)
            grown[:n] = self._matrix
            self._matrix = grown
        self._matrix[n] = self._fit(vector)
        self._entries.append(entry)

    def similarities(self, query_vector: Sequence[float]) -> np.ndarray:
        return batch_cosine_similarity(self._fit(query_vector), self.vectors)

    @property
    def vectors(self) -> np.ndarray:
        return self._matrix[:len(self._entries)]


class FAISSVectorIndex(VectorIndex):
    """
    FAISS-based index.

    Stores L2-normalised vectors in an IndexFlatIP, so inner product equals
    cosine similarity. Zero vectors stay zero and score 0.

    Requires: pip install faiss-cpu (or faiss-gpu)
    """

    def __init__(self, dimension: int = 128):
        try:
            import faiss
            self.faiss = faiss
        except ImportError:
            raise ImportError(
                "FAISS support requires: pip install faiss-cpu\n"
                "For GPU: pip install faiss-gpu"
            )

        super().__init__(dimension)
        self.index = self.faiss.IndexFlatIP(dimension)
        self._raw: List[np.ndarray] = []

        logger.info(f"FAISS vector index initialized (dim={dimension})")

    def _normalize(self, vector: Sequence[float]) -> np.ndarray:
        vec = self._fit(vector).reshape(1, -1).copy()
        norm = np.linalg.norm(vec)
        if norm > 0:
            vec = vec / norm
        return vec.astype(np.float32)

    def insert(self, vector: Sequence[float], entry: OutcomeEntry) -> None:
        self.index.add(self._normalize(vector))
        self._raw.append(self._fit(vector).copy())
        self._entries.append(entry)

    def similarities(self, query_vector: Sequence[float]) -> np.ndarray:
        total = self.index.ntotal
        if total == 0:
            return np.zeros(0, dtype=np.float64)

        scores, indices = self.index.search(self._normalize(query_vector), total)

        # FAISS returns best-first; map back to insertion order
        ordered = np.zeros(total, dtype=np.float64)
        for score, idx in zip(scores[0], indices[0]):
            if idx != -1:
                ordered[int(idx)] = float(score)
        return ordered

    @property
    def vectors(self) -> np.ndarray:
        if not self._raw:
            return np.zeros((0, self.dimension), dtype=np.float32)
        return np.vstack(self._raw)


def create_vector_index(
    backend: str = "numpy",
    dimension: int = 128,
    **kwargs
) -> VectorIndex:
    """
    Factory function to create a vector index.

    Args:
        backend: "numpy" or "faiss"
        dimension: Vector dimension (default 128)
        **kwargs: Additional arguments for the backend

    Returns:
        VectorIndex instance
    """
    if backend in ("numpy", "simple"):
        return NumpyVectorIndex(dimension=dimension, **kwargs)

    elif backend == "faiss":
        return FAISSVectorIndex(dimension=dimension)

    else:
        raise ValueError(f"Unknown vector index backend: {backend}")
