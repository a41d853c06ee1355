"""
Pattern Memory Store - The main interface to Pattern Nexus.

Brings together the in-memory tiers (vector index, episode log, causal
graph) with an optional capability backend.

Ingestion updates all three tiers in one locked section; backend writes
are scheduled afterwards on a single worker thread and can never fail the
call. Queries read the tiers under the same lock, and only wait on the
backend for a bounded time before falling back to local results.
"""

import json
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from concurrent.futures import wait
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ..config import StoreConfig
from ..embeddings import create_encoder
from .backend import MemoryBackend, NullBackend, create_backend
from .episodes import EpisodeStore
from .graph import CausalGraph
from .models import CausalEdge, OutcomeEntry, PatternRecord, SimilarMatch
from .semantic import batch_cosine_similarity, create_vector_index

logger = logging.getLogger(__name__)

UNKNOWN_TASK = "unknown"

# Skills are only learned from successful patterns; SQLiteBackend stores the same rate.
LOCAL_SKILL_SUCCESS_RATE = 1.0


class PatternMemoryStore:
    """
    Unified interface to Pattern Nexus.

    Example:
        store = PatternMemoryStore()  # in-memory only

        # Record decisions and how they turned out
        store.store_pattern({"action": "buy", "price": 120, "volume": 5000}, 10)
        store.store_pattern({"action": "sell", "price": 125, "volume": 4000}, -5)

        # Find successful patterns like the current one
        matches = store.find_similar({"action": "buy", "price": 118})

        # What tends to follow the last "buy"?
        reasoning = store.get_causal_reasoning("buy")

        # Past episodes for the task at hand
        critique = store.get_self_critique([{"action": "buy"}])
    """

    def __init__(
        self,
        config: Optional[StoreConfig] = None,
        backend: Optional[MemoryBackend] = None,
    ):
        """
        Initialize Pattern Memory Store.

        Args:
            config: Store settings (defaults to StoreConfig())
            backend: Ready-made capability backend; overrides config.backend
        """
        self.config = config or StoreConfig()

        self.encoder = create_encoder(self.config.encoder)
        self.index = create_vector_index(
            self.config.vector_index,
            dimension=self.encoder.dimension,
        )
        self.episodes = EpisodeStore()
        self.graph = CausalGraph()
        self.backend = backend if backend is not None else self._init_backend()

        self._lock = threading.Lock()
        self._last_entry: Optional[OutcomeEntry] = None

        self._executor = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix="pattern-nexus-backend",
        )
        self._pending: List[Future] = []
        self._pending_lock = threading.Lock()
        self._closed = False

        logger.info(
            f"PatternMemoryStore initialized: index={self.config.vector_index}, "
            f"backend={self.backend.name}, dim={self.encoder.dimension}"
        )

    def _init_backend(self) -> MemoryBackend:
        """Create the configured backend, degrading to local-only on failure."""
        try:
            return create_backend(
                self.config.backend,
                db_path=str(self.config.data_path / "backend.db"),
            )
        except ValueError:
            raise
        except Exception as e:
            logger.warning(
                f"Backend '{self.config.backend}' unavailable, using in-memory fallback: {e}"
            )
            return NullBackend()

    # =========================================================================
    # Backend plumbing
    # =========================================================================

    def _schedule(self, method: str, *args) -> None:
        """Fire-and-forget backend write."""
        if self._closed:
            return
        with self._pending_lock:
            self._pending = [f for f in self._pending if not f.done()]
            if len(self._pending) >= self.config.max_pending_writes:
                logger.warning(
                    f"Backend {method} dropped: {len(self._pending)} writes still pending, "
                    f"in-memory copy kept"
                )
                return
            try:
                future = self._executor.submit(getattr(self.backend, method), *args)
            except RuntimeError as e:
                logger.warning(f"Backend {method} not scheduled: {e}")
                return
            self._pending.append(future)

        future.add_done_callback(lambda f: self._on_write_done(method, f))

    @staticmethod
    def _on_write_done(method: str, future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.warning(f"Backend {method} failed, in-memory copy kept: {error}")

    def _call(self, method: str, *args, default: Any = None) -> Any:
        """Backend read with timeout. Any failure returns `default`."""
        if self._closed:
            return default
        try:
            future = self._executor.submit(getattr(self.backend, method), *args)
        except RuntimeError as e:
            logger.warning(f"Backend {method} not scheduled: {e}")
            return default

        try:
            return future.result(timeout=self.config.backend_timeout)
        except FuturesTimeout:
            future.cancel()
            logger.warning(
                f"Backend {method} timed out after {self.config.backend_timeout}s, "
                f"using in-memory result"
            )
        except Exception as e:
            logger.warning(f"Backend {method} failed, using in-memory result: {e}")
        return default

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for scheduled backend writes.

        Returns:
            True if every pending write finished within the timeout
        """
        with self._pending_lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    # =========================================================================
    # Ingestion
    # =========================================================================

    def store_pattern(self, pattern: Any, outcome: float) -> OutcomeEntry:
        """
        Record a pattern and the outcome it produced.

        Args:
            pattern: PatternRecord or dict with action/price/volume/...
            outcome: Signed result; positive means success

        Returns:
            The stored OutcomeEntry
        """
        record = PatternRecord.coerce(pattern)
        outcome = float(outcome)
        success = outcome > 0
        vector = self.encoder.encode(record)

        with self._lock:
            previous = self._last_entry
            timestamp = time.time()
            if previous is not None and timestamp < previous.timestamp:
                timestamp = previous.timestamp

            entry_id = self.episodes.append(
                record.action, outcome, success, payload=record, timestamp=timestamp
            )
            entry = OutcomeEntry(
                id=entry_id,
                pattern=record,
                outcome=outcome,
                success=success,
                timestamp=timestamp,
            )
            self.index.insert(vector, entry)

            edge = None
            if previous is not None:
                edge = self.graph.add_edge(
                    previous.id,
                    entry.id,
                    outcome - previous.outcome,
                    confidence=self.config.causal_confidence,
                    weight=self.config.causal_weight,
                )
            self._last_entry = entry

        self._mirror(entry, edge)

        logger.debug(f"Stored pattern {entry.id} action='{record.action}' outcome={outcome}")
        return entry

    def _mirror(self, entry: OutcomeEntry, edge: Optional[CausalEdge]) -> None:
        """Schedule the backend copies of a freshly stored entry."""
        pattern = entry.pattern.to_dict()
        action = entry.action

        if entry.success:
            self._schedule(
                "create_skill",
                f"{action}_{entry.id}",
                f"Learned skill for {action}",
                json.dumps({"inputs": pattern}),
                json.dumps({"pattern": pattern, "outcome": entry.outcome}),
                1,
            )

        self._schedule(
            "store_episode",
            f"session_{entry.id}",
            action,
            1.0 if entry.success else 0.0,
            entry.success,
            f"Action {action} resulted in {entry.outcome}",
            json.dumps(pattern),
            json.dumps(pattern),
            100,
            50,
        )

        if edge is not None:
            self._schedule(
                "add_causal_edge",
                edge.from_id,
                edge.to_id,
                edge.delta_outcome,
                edge.confidence,
                edge.weight,
            )

    # =========================================================================
    # Queries
    # =========================================================================

    def find_similar(self, pattern: Any, k: int = 5) -> List[SimilarMatch]:
        """
        Find stored successful patterns most similar to `pattern`.

        Args:
            pattern: PatternRecord or dict
            k: Maximum results

        Returns:
            Matches sorted by similarity (highest first)
        """
        if k <= 0:
            return []

        query_vector = self.encoder.encode(pattern)

        with self._lock:
            if self.index.count == 0:
                return []
            stored = np.array(self.index.vectors, copy=True)

        scores = self._call("batch_similarity", query_vector, stored, default=None)
        if not self._valid_scores(scores, len(stored)):
            scores = batch_cosine_similarity(query_vector, stored)

        with self._lock:
            # entries added since the snapshot have no score and are skipped
            return self.index.rank(scores, k, success_only=True)

    @staticmethod
    def _valid_scores(scores: Any, expected: int) -> bool:
        if scores is None:
            return False
        try:
            values = np.asarray(scores, dtype=np.float64).reshape(-1)
        except (TypeError, ValueError):
            logger.warning("Backend returned malformed similarity scores, ignoring")
            return False
        if len(values) != expected or not np.all(np.isfinite(values)):
            logger.warning("Backend similarity scores do not match stored vectors, ignoring")
            return False
        return True

    def get_causal_reasoning(self, action: str) -> Dict[str, Any]:
        """
        Effects that followed the most recent pattern with this action.

        Returns:
            Dict with:
                - action: the queried action
                - causal_paths: CausalEdge list leaving that pattern
                - insight: human-readable summary
        """
        with self._lock:
            matches = self.episodes.all_by_action(action)
            if not matches:
                return {
                    "action": action,
                    "causal_paths": [],
                    "insight": "No patterns found for this action",
                }
            effects = self.graph.effects_of(matches[-1].id)

        return {
            "action": action,
            "causal_paths": effects,
            "insight": f"Found {len(effects)} causal relationships for action: {action}",
        }

    def get_self_critique(self, trajectory: Sequence[Any]) -> Dict[str, Any]:
        """
        Past episodes for the task a trajectory starts with.

        Returns:
            Dict with:
                - episodes: Episode list for the task's action
                - summary: human-readable summary
        """
        task_type = self._task_type(trajectory)

        with self._lock:
            episodes = self.episodes.retrieve_by_action(task_type, 10, 0.5)

        if episodes:
            summary = f"Retrieved {len(episodes)} similar episodes for {task_type}"
        else:
            summary = f"No episodes found for {task_type}"
        return {"episodes": episodes, "summary": summary}

    @staticmethod
    def _task_type(trajectory: Sequence[Any]) -> str:
        if not trajectory:
            return UNKNOWN_TASK
        first = trajectory[0]
        if isinstance(first, dict):
            action = first.get("action")
        else:
            action = getattr(first, "action", None)
        return str(action) if action else UNKNOWN_TASK

    # =========================================================================
    # Skills
    # =========================================================================

    def get_skills(self) -> List[Dict[str, Any]]:
        """Successful patterns, as reusable skills."""
        with self._lock:
            entries = [e for e in self.index.entries if e.success]

        return [
            {
                "name": f"{e.action}_{e.id}",
                "description": f"Learned skill for {e.action}",
                "action": e.action,
                "pattern": e.pattern.to_dict(),
                "outcome": e.outcome,
                "success_rate": LOCAL_SKILL_SUCCESS_RATE,
            }
            for e in entries
        ]

    def search_skills(
        self,
        query: str = "",
        limit: int = 100,
        min_score: float = 0.0,
    ) -> List[Dict[str, Any]]:
        """
        Search learned skills.

        Asks the backend first; an empty or failed backend search falls back
        to the in-memory skills whose name or description contains `query`.
        """
        if limit <= 0:
            return []

        found = self._call("search_skills", query, limit, min_score, default=None)
        if found:
            return list(found)[:limit]

        needle = query.lower()
        local = [
            s for s in self.get_skills()
            if s["success_rate"] >= min_score
            and (needle in s["name"].lower() or needle in s["description"].lower())
        ]
        return local[:limit]

    # =========================================================================
    # Housekeeping
    # =========================================================================

    def __len__(self) -> int:
        return self.index.count

    def get_stats(self) -> Dict[str, Any]:
        """Get store statistics."""
        with self._lock:
            entries = self.index.entries
            stats = {
                "patterns": len(entries),
                "successful": sum(1 for e in entries if e.success),
                "vectors": self.index.count,
                "relationships": self.graph.count,
                "actions": self.episodes.actions(),
            }
        with self._pending_lock:
            stats["pending_writes"] = sum(1 for f in self._pending if not f.done())
        stats["backend"] = self.backend.name
        return stats

    def close(self, timeout: Optional[float] = None) -> None:
        """Flush pending writes and release the backend. Safe to call twice."""
        if self._closed:
            return

        wait_for = self.config.backend_timeout if timeout is None else timeout
        if not self.flush(timeout=wait_for):
            logger.warning("Closing with backend writes still pending")

        self._closed = True
        try:
            self._executor.submit(self.backend.close).result(timeout=wait_for)
        except FuturesTimeout:
            logger.warning(f"Backend close timed out after {wait_for}s")
        except Exception as e:
            logger.warning(f"Backend close failed: {e}")
        finally:
            self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "PatternMemoryStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
