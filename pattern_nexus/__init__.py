"""
Pattern Nexus - in-process pattern memory.

Remembers trading decisions with their outcomes, finds past successes that
look like the current situation, and tracks what followed what.
"""

from .config import StoreConfig
from .core import (
    CausalEdge,
    Episode,
    OutcomeEntry,
    PatternMemoryStore,
    PatternRecord,
    SimilarMatch,
)
from .embeddings import ACTIONS, DIMENSION, FeatureEncoder

__version__ = "0.1.0"

__all__ = [
    "PatternMemoryStore",
    "StoreConfig",
    "FeatureEncoder",
    "ACTIONS",
    "DIMENSION",
    "PatternRecord",
    "OutcomeEntry",
    "CausalEdge",
    "Episode",
    "SimilarMatch",
]
