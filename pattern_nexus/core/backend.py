"""
Capability Backends - Optional External Memory

Default: NullBackend (local computation only, nothing leaves the process)
Optional: SQLite (persists skills, episodes and causal edges to disk)

The store talks to exactly one backend through MemoryBackend and never
checks which one it has. Backend results are advisory: the in-memory
tiers stay authoritative.
"""

import json
import sqlite3
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Sequence
import numpy as np
import logging

from .semantic import batch_cosine_similarity

logger = logging.getLogger(__name__)


class MemoryBackend(ABC):
    """Abstract base for capability backends."""

    name = "abstract"

    @abstractmethod
    def create_skill(
        self,
        name: str,
        description: str,
        input_json: str,
        output_json: str,
        version: int = 1,
    ) -> Any:
        """Store a learned skill. Returns the backend's skill id."""
        pass

    @abstractmethod
    def store_episode(
        self,
        session_tag: str,
        action: str,
        score: float,
        success: bool,
        note: str,
        state_json: str,
        meta_json: str,
        max_tokens_in: int = 100,
        max_tokens_out: int = 50,
    ) -> None:
        """Store a reflexion episode."""
        pass

    @abstractmethod
    def add_causal_edge(
        self,
        from_id: int,
        to_id: int,
        delta_outcome: float,
        confidence: float,
        weight: float,
    ) -> None:
        """Store a causal edge."""
        pass

    @abstractmethod
    def query_causal_effects(self, node_id: int) -> List[Dict[str, Any]]:
        """Edges leaving node_id."""
        pass

    @abstractmethod
    def search_skills(
        self,
        query_text: str = "",
        limit: int = 100,
        min_score: float = 0.0,
    ) -> List[Dict[str, Any]]:
        """Search stored skills."""
        pass

    def batch_similarity(
        self,
        query_vector: Sequence[float],
        stored_vectors: Sequence[Sequence[float]],
    ) -> List[float]:
        """Cosine similarity of the query against each stored vector."""
        return batch_cosine_similarity(query_vector, np.asarray(stored_vectors)).tolist()

    def close(self) -> None:
        """Release resources. Safe to call more than once."""
        pass


class NullBackend(MemoryBackend):
    """
    Local-only backend.

    Writes are dropped and searches find nothing; similarity is the
    reference numpy computation. Used whenever no external backend is
    configured or the configured one failed to start.
    """

    name = "none"

    def create_skill(self, name, description, input_json, output_json, version=1):
        return None

    def store_episode(self, session_tag, action, score, success, note,
                      state_json, meta_json, max_tokens_in=100, max_tokens_out=50):
        return None

    def add_causal_edge(self, from_id, to_id, delta_outcome, confidence, weight):
        return None

    def query_causal_effects(self, node_id):
        return []

    def search_skills(self, query_text="", limit=100, min_score=0.0):
        return []


class SQLiteBackend(MemoryBackend):
    """
    SQLite-based capability backend.

    Zero external dependencies - works out of the box.
    Mirrors writes to disk so skills and episodes outlive the process.
    """

    name = "sqlite"

    def __init__(self, db_path: str = "~/.pattern-nexus/backend.db"):
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._local = threading.local()
        self._connections: List[sqlite3.Connection] = []
        self._conn_lock = threading.Lock()
        self._closed = False
        self._init_db()

        logger.info(f"SQLite backend initialized at {self.db_path}")

    @property
    def _conn(self) -> sqlite3.Connection:
        """Thread-local connection."""
        if self._closed:
            raise RuntimeError("SQLite backend is closed")
        if not hasattr(self._local, "conn"):
            self._local.conn = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False
            )
            self._local.conn.row_factory = sqlite3.Row
            with self._conn_lock:
                self._connections.append(self._local.conn)
        return self._local.conn

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._conn:
            self._conn.executescript("""
                CREATE TABLE IF NOT EXISTS skills (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    description TEXT,
                    input_json TEXT,
                    output_json TEXT,
                    version INTEGER DEFAULT 1,
                    usage_count INTEGER DEFAULT 0,
                    success_rate REAL DEFAULT 0,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                );

                CREATE TABLE IF NOT EXISTS episodes (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    session_tag TEXT NOT NULL,
                    action TEXT,
                    score REAL,
                    success INTEGER,
                    note TEXT,
                    state_json TEXT,
                    meta_json TEXT,
                    max_tokens_in INTEGER,
                    max_tokens_out INTEGER,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                );

                CREATE INDEX IF NOT EXISTS idx_episodes_action ON episodes(action);

                CREATE TABLE IF NOT EXISTS causal_edges (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    from_id INTEGER NOT NULL,
                    to_id INTEGER NOT NULL,
                    delta_outcome REAL,
                    confidence REAL,
                    weight REAL DEFAULT 1.0,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                );

                CREATE INDEX IF NOT EXISTS idx_edges_from ON causal_edges(from_id);
            """)

    def create_skill(self, name, description, input_json, output_json, version=1):
        with self._conn:
            cursor = self._conn.execute(
                """INSERT INTO skills (name, description, input_json, output_json, version, success_rate)
                   VALUES (?, ?, ?, ?, ?, 1.0)""",
                (name, description, input_json, output_json, version)
            )
        return cursor.lastrowid

    def store_episode(self, session_tag, action, score, success, note,
                      state_json, meta_json, max_tokens_in=100, max_tokens_out=50):
        with self._conn:
            self._conn.execute(
                """INSERT INTO episodes
                   (session_tag, action, score, success, note, state_json, meta_json,
                    max_tokens_in, max_tokens_out)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (session_tag, action, score, int(bool(success)), note,
                 state_json, meta_json, max_tokens_in, max_tokens_out)
            )

    def add_causal_edge(self, from_id, to_id, delta_outcome, confidence, weight):
        with self._conn:
            self._conn.execute(
                """INSERT INTO causal_edges (from_id, to_id, delta_outcome, confidence, weight)
                   VALUES (?, ?, ?, ?, ?)""",
                (from_id, to_id, delta_outcome, confidence, weight)
            )

    def query_causal_effects(self, node_id):
        cursor = self._conn.execute(
            """SELECT from_id, to_id, delta_outcome, confidence, weight
               FROM causal_edges WHERE from_id = ? ORDER BY id ASC""",
            (node_id,)
        )
        return [dict(row) for row in cursor.fetchall()]

    def search_skills(self, query_text="", limit=100, min_score=0.0):
        """Substring match on name/description, filtered by success rate."""
        pattern = f"%{query_text}%"
        cursor = self._conn.execute(
            """SELECT id, name, description, input_json, output_json, version,
                      usage_count, success_rate
               FROM skills
               WHERE (name LIKE ? OR description LIKE ?) AND success_rate >= ?
               ORDER BY id ASC LIMIT ?""",
            (pattern, pattern, min_score, limit)
        )
        skills = []
        for row in cursor.fetchall():
            skill = dict(row)
            try:
                skill["output"] = json.loads(skill.pop("output_json") or "{}")
            except json.JSONDecodeError:
                skill["output"] = {}
            skill.pop("input_json", None)
            skills.append(skill)
        return skills

    def episode_count(self, action: str = None) -> int:
        if action is None:
            cursor = self._conn.execute("SELECT COUNT(*) as count FROM episodes")
        else:
            cursor = self._conn.execute(
                "SELECT COUNT(*) as count FROM episodes WHERE action = ?", (action,)
            )
        return cursor.fetchone()["count"]

    def close(self) -> None:
        """Close every connection opened by this backend."""
        if self._closed:
            return
        self._closed = True
        with self._conn_lock:
            for conn in self._connections:
                conn.close()
            self._connections.clear()


def create_backend(backend: str = "none", **kwargs) -> MemoryBackend:
    """
    Factory function to create a capability backend.

    Args:
        backend: "none", "memory", "sqlite" or "sqlite:///path/to.db"
        **kwargs: Additional arguments for the backend (db_path)

    Returns:
        MemoryBackend instance
    """
    if backend in ("none", "memory", "", None):
        return NullBackend()

    elif backend == "sqlite" or backend.startswith("sqlite://"):
        db_path = kwargs.get("db_path", "~/.pattern-nexus/backend.db")
        if backend.startswith("sqlite://"):
            db_path = backend.replace("sqlite://", "")
        return SQLiteBackend(db_path)

    else:
        raise ValueError(f"Unknown memory backend: {backend}")
