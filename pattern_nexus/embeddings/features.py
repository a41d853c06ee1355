"""
Feature encoder - turns a trading pattern into a fixed-length vector.

Deterministic and dependency-light (just numpy). The layout is:
    0..4   normalised scalar features
    5..7   one-hot action
    8..127 reserved, always zero
"""

from typing import Any, Iterable, List, Sequence, Tuple
import math
import numpy as np

from ..core.models import PatternRecord

DIMENSION = 128
ACTIONS: Tuple[str, ...] = ("buy", "sell", "hold")
ACTION_OFFSET = 5

_FLOAT32_MAX = float(np.finfo(np.float32).max)

# (field, divisor) for dims 0..4
SCALE = (
    ("price", 1000.0),
    ("volume", 10000.0),
    ("momentum", 1.0),
    ("cash", 100000.0),
    ("positions", 1.0),
)


class FeatureEncoder:
    """
    Pattern -> feature vector.

    Unknown actions leave the one-hot slice empty rather than failing,
    so a pattern with a new action still matches on its scalar features.
    """

    def __init__(
        self,
        dimension: int = DIMENSION,
        actions: Sequence[str] = ACTIONS,
        **kwargs  # Ignore extra params
    ):
        if dimension < ACTION_OFFSET + len(actions):
            raise ValueError(
                f"dimension {dimension} too small for {len(actions)} actions"
            )
        self.dimension = dimension
        self.actions = tuple(actions)
        self._action_index = {a: i for i, a in enumerate(self.actions)}

    def encode(self, pattern: Any) -> np.ndarray:
        """Create the feature vector for a single pattern."""
        record = PatternRecord.coerce(pattern)
        vector = np.zeros(self.dimension, dtype=np.float32)

        for i, (name, divisor) in enumerate(SCALE):
            value = getattr(record, name) / divisor
            # Records built directly can carry inf/nan or overflow float32
            if math.isfinite(value) and abs(value) <= _FLOAT32_MAX:
                vector[i] = value

        idx = self._action_index.get(record.action)
        if idx is not None:
            vector[ACTION_OFFSET + idx] = 1.0

        return vector

    def encode_batch(self, patterns: Iterable[Any]) -> np.ndarray:
        """Encode multiple patterns into an (n, dimension) matrix."""
        rows: List[np.ndarray] = [self.encode(p) for p in patterns]
        if not rows:
            return np.zeros((0, self.dimension), dtype=np.float32)
        return np.vstack(rows)
