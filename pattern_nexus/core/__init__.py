"""
Pattern Nexus - Core Storage Layer

Three in-memory tiers behind one facade:
- Semantic: Vector similarity over encoded patterns (numpy/FAISS)
- Episodes: Append-only (action, outcome) log
- Graph: Cause -> effect edges between consecutive patterns

An optional capability backend (SQLite) mirrors writes.
"""

from .models import CausalEdge, Episode, OutcomeEntry, PatternRecord, SimilarMatch
from .semantic import VectorIndex, NumpyVectorIndex, FAISSVectorIndex, cosine_similarity
from .graph import CausalGraph
from .episodes import EpisodeStore
from .backend import MemoryBackend, NullBackend, SQLiteBackend, create_backend
from .store import PatternMemoryStore

__all__ = [
    "PatternMemoryStore",
    "VectorIndex",
    "NumpyVectorIndex",
    "FAISSVectorIndex",
    "cosine_similarity",
    "CausalGraph",
    "EpisodeStore",
    "MemoryBackend",
    "NullBackend",
    "SQLiteBackend",
    "create_backend",
    "PatternRecord",
    "OutcomeEntry",
    "CausalEdge",
    "Episode",
    "SimilarMatch",
]
