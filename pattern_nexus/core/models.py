"""
Data models for Pattern Nexus

Plain dataclasses - records are frozen once stored.
"""

from dataclasses import dataclass, field
import math
from typing import Any, Dict, Mapping, Optional
import time


def _as_float(value: Any) -> float:
    """Coerce a feature value to float, treating missing/garbage/inf/nan as 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        result = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    return result if math.isfinite(result) else 0.0


@dataclass(frozen=True)
class PatternRecord:
    """A single decision event with its market context."""

    action: str = ""
    price: float = 0.0
    volume: float = 0.0
    momentum: float = 0.0
    cash: float = 0.0
    positions: float = 0.0
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    _FIELDS = ("price", "volume", "momentum", "cash", "positions")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage."""
        data = dict(self.extra)
        data.update({
            "action": self.action,
            "price": self.price,
            "volume": self.volume,
            "momentum": self.momentum,
            "cash": self.cash,
            "positions": self.positions,
        })
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PatternRecord":
        """Create from a loose dictionary (as callers usually send)."""
        data = dict(data)
        if "positions" not in data and "positionCount" in data:
            data["positions"] = data.pop("positionCount")

        action = data.pop("action", "")
        values = {name: _as_float(data.pop(name, 0.0)) for name in cls._FIELDS}
        return cls(
            action=str(action) if action is not None else "",
            extra=data,
            **values,
        )

    @classmethod
    def coerce(cls, pattern: Any) -> "PatternRecord":
        if isinstance(pattern, cls):
            return pattern
        if isinstance(pattern, Mapping):
            return cls.from_dict(pattern)
        return cls()


@dataclass(frozen=True)
class OutcomeEntry:
    """A stored pattern together with the outcome it produced."""

    id: int
    pattern: PatternRecord
    outcome: float
    success: bool
    timestamp: float = field(default_factory=time.time)

    @property
    def action(self) -> str:
        return self.pattern.action

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "pattern": self.pattern.to_dict(),
            "action": self.action,
            "outcome": self.outcome,
            "success": self.success,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OutcomeEntry":
        outcome = float(data["outcome"])
        return cls(
            id=int(data["id"]),
            pattern=PatternRecord.coerce(data.get("pattern", {})),
            outcome=outcome,
            success=bool(data.get("success", outcome > 0)),
            timestamp=float(data.get("timestamp", time.time())),
        )


@dataclass(frozen=True)
class CausalEdge:
    """Directed link between two consecutively stored entries."""

    from_id: int
    to_id: int
    delta_outcome: float
    confidence: float = 0.8
    weight: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from_id": self.from_id,
            "to_id": self.to_id,
            "delta_outcome": self.delta_outcome,
            "confidence": self.confidence,
            "weight": self.weight,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CausalEdge":
        return cls(
            from_id=int(data["from_id"]),
            to_id=int(data["to_id"]),
            delta_outcome=float(data["delta_outcome"]),
            confidence=float(data.get("confidence", 0.8)),
            weight=float(data.get("weight", 1.0)),
        )


@dataclass(frozen=True)
class Episode:
    """An (action, outcome) pair kept for retrospective analysis."""

    id: int
    action: str
    outcome: float
    success: bool
    payload: Any = None
    note: str = ""
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        payload = self.payload
        if hasattr(payload, "to_dict"):
            payload = payload.to_dict()
        return {
            "id": self.id,
            "action": self.action,
            "outcome": self.outcome,
            "success": self.success,
            "payload": payload,
            "note": self.note,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class SimilarMatch:
    """Result from a similarity query."""

    entry: OutcomeEntry
    similarity: float

    @property
    def pattern(self) -> PatternRecord:
        return self.entry.pattern

    @property
    def outcome(self) -> float:
        return self.entry.outcome

    @property
    def success(self) -> bool:
        return self.entry.success

    @property
    def timestamp(self) -> float:
        return self.entry.timestamp

    def to_dict(self, digits: Optional[int] = None) -> Dict[str, Any]:
        similarity = self.similarity if digits is None else round(self.similarity, digits)
        return {
            "id": self.entry.id,
            "pattern": self.pattern.to_dict(),
            "outcome": self.outcome,
            "timestamp": self.timestamp,
            "success": self.success,
            "similarity": similarity,
        }
