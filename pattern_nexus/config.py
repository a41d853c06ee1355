"""
Configuration for Pattern Nexus.

Values come from constructor arguments or PATTERN_NEXUS_* environment
variables (see StoreConfig.from_env).
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

ENV_PREFIX = "PATTERN_NEXUS_"

DEFAULT_CAUSAL_CONFIDENCE = 0.8
DEFAULT_CAUSAL_WEIGHT = 1.0
DEFAULT_MAX_PENDING_WRITES = 1000


@dataclass
class StoreConfig:
    """Settings for a PatternMemoryStore."""

    backend: str = "none"                 # "none", "sqlite", "sqlite:///path"
    data_dir: str = "~/.pattern-nexus"
    vector_index: str = "numpy"           # "numpy" or "faiss"
    encoder: str = "features"
    backend_timeout: float = 2.0          # seconds, per backend read
    causal_confidence: float = DEFAULT_CAUSAL_CONFIDENCE
    causal_weight: float = DEFAULT_CAUSAL_WEIGHT
    max_pending_writes: int = DEFAULT_MAX_PENDING_WRITES  # queued backend writes before dropping

    def __post_init__(self):
        if self.backend_timeout <= 0:
            raise ValueError("backend_timeout must be positive")
        if self.max_pending_writes < 1:
            raise ValueError("max_pending_writes must be at least 1")

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "StoreConfig":
        """Build config from PATTERN_NEXUS_* environment variables."""
        env = os.environ if environ is None else environ

        def get(name: str, default):
            raw = env.get(ENV_PREFIX + name)
            if raw is None or raw == "":
                return default
            if isinstance(default, (int, float)):
                try:
                    return type(default)(raw)
                except ValueError:
                    raise ValueError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}")
            return raw

        return cls(
            backend=get("BACKEND", cls.backend),
            data_dir=get("DATA_DIR", cls.data_dir),
            vector_index=get("VECTOR_INDEX", cls.vector_index),
            encoder=get("ENCODER", cls.encoder),
            backend_timeout=get("BACKEND_TIMEOUT", cls.backend_timeout),
            causal_confidence=get("CAUSAL_CONFIDENCE", cls.causal_confidence),
            causal_weight=get("CAUSAL_WEIGHT", cls.causal_weight),
            max_pending_writes=get("MAX_PENDING_WRITES", cls.max_pending_writes),
        )
