"""
Causal Graph - Relationship Memory

In-memory adjacency list of cause -> effect edges between stored patterns.
The store only ever links consecutive entries, so in practice this is a
weighted chain; the graph itself accepts any ids.
"""

from collections import defaultdict
from typing import Dict, List
import logging

from .models import CausalEdge

logger = logging.getLogger(__name__)


class CausalGraph:
    """
    Directed, weighted edges keyed by source id.

    Ids are accepted as-is - callers are responsible for their validity.
    Duplicate edges are kept.
    """

    def __init__(self):
        self._edges: List[CausalEdge] = []
        self._outgoing: Dict[int, List[CausalEdge]] = defaultdict(list)
        self._incoming: Dict[int, List[CausalEdge]] = defaultdict(list)

        logger.info("Causal graph initialized")

    def add_edge(
        self,
        from_id: int,
        to_id: int,
        delta_outcome: float,
        confidence: float = 0.8,
        weight: float = 1.0,
    ) -> CausalEdge:
        """Record a directed edge."""
        edge = CausalEdge(
            from_id=from_id,
            to_id=to_id,
            delta_outcome=delta_outcome,
            confidence=confidence,
            weight=weight,
        )
        self._edges.append(edge)
        self._outgoing[from_id].append(edge)
        self._incoming[to_id].append(edge)
        return edge

    def effects_of(self, node_id: int) -> List[CausalEdge]:
        """Edges leaving `node_id`, in insertion order."""
        return list(self._outgoing.get(node_id, ()))

    def causes_of(self, node_id: int) -> List[CausalEdge]:
        """Edges arriving at `node_id`, in insertion order."""
        return list(self._incoming.get(node_id, ()))

    @property
    def edges(self) -> List[CausalEdge]:
        return list(self._edges)

    @property
    def count(self) -> int:
        return len(self._edges)

    def get_stats(self) -> Dict[str, int]:
        """Get graph statistics."""
        nodes = set(self._outgoing) | set(self._incoming)
        return {"nodes": len(nodes), "relationships": len(self._edges)}
