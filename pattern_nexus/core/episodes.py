"""
Episode Store - Working Memory

Append-only log of (action, outcome, success) episodes. This is the
"working memory" tier used for self-critique: what happened the last
times we took this action?
"""

from collections import defaultdict
from typing import Any, Dict, List, Optional
import time
import logging

from .models import Episode

logger = logging.getLogger(__name__)


class EpisodeStore:
    """
    In-memory episode log.

    Sequence ids are the log positions, so they are dense and start at 0.
    """

    def __init__(self):
        self._log: List[Episode] = []
        self._by_action: Dict[str, List[Episode]] = defaultdict(list)

        logger.info("Episode store initialized")

    @property
    def next_id(self) -> int:
        return len(self._log)

    def __len__(self) -> int:
        return len(self._log)

    def append(
        self,
        action: str,
        outcome: float,
        success: bool,
        payload: Any = None,
        timestamp: Optional[float] = None,
    ) -> int:
        """Append an episode and return its sequence id."""
        episode = Episode(
            id=len(self._log),
            action=action,
            outcome=outcome,
            success=success,
            payload=payload,
            note=f"Action {action} resulted in {outcome}",
            timestamp=time.time() if timestamp is None else timestamp,
        )
        self._log.append(episode)
        self._by_action[action].append(episode)
        return episode.id

    def get(self, episode_id: int) -> Optional[Episode]:
        if 0 <= episode_id < len(self._log):
            return self._log[episode_id]
        return None

    def latest(self) -> Optional[Episode]:
        return self._log[-1] if self._log else None

    def retrieve_by_action(
        self,
        action: str,
        limit: int = 10,
        min_relevance: float = 0.5,
    ) -> List[Episode]:
        """
        Get episodes recorded for an action.

        Args:
            action: Action tag to match
            limit: Maximum episodes
            min_relevance: Advisory only - there is no relevance score
                at this tier, so nothing is filtered on it

        Returns:
            Matching episodes, oldest first
        """
        if limit <= 0:
            return []
        logger.debug(
            f"Retrieving episodes for '{action}' (limit={limit}, min_relevance={min_relevance})"
        )
        return list(self._by_action.get(action, ())[:limit])

    def all_by_action(self, action: str) -> List[Episode]:
        """Every episode for an action, unranked."""
        return list(self._by_action.get(action, ()))

    def actions(self) -> Dict[str, int]:
        """Episode counts per action."""
        return {a: len(eps) for a, eps in self._by_action.items()}
