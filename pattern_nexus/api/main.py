"""
Pattern Nexus API

HTTP wrapper around a single PatternMemoryStore - record trading decisions,
recall the ones that worked.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from pydantic import BaseModel, ConfigDict, Field

from ..config import StoreConfig
from ..core.store import PatternMemoryStore

logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"


# =============================================================================
# Lifespan
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown."""
    if getattr(app.state, "store", None) is None:
        app.state.store = PatternMemoryStore(StoreConfig.from_env())
    yield
    try:
        app.state.store.close()
    except Exception as e:
        logger.warning(f"Store close failed on shutdown: {e}")
    finally:
        app.state.store = None


def get_store(request: Request) -> PatternMemoryStore:
    return request.app.state.store


# =============================================================================
# Request/Response Models
# =============================================================================

class PatternModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    action: str = Field(default="", description="buy, sell or hold", max_length=100)
    price: float = 0.0
    volume: float = 0.0
    momentum: float = 0.0
    cash: float = 0.0
    positions: float = 0.0


class StoreRequest(BaseModel):
    pattern: PatternModel
    outcome: float = Field(..., description="Signed result; positive = success")


class SimilarRequest(BaseModel):
    pattern: PatternModel
    k: int = Field(default=5, ge=1, le=100, description="Max results")


class CritiqueRequest(BaseModel):
    trajectory: List[Dict[str, Any]] = Field(default_factory=list)


class EntryResponse(BaseModel):
    id: int
    action: str
    outcome: float
    success: bool
    timestamp: float


class MatchResponse(BaseModel):
    id: int
    pattern: Dict[str, Any]
    outcome: float
    success: bool
    timestamp: float
    similarity: float


class SimilarResponse(BaseModel):
    count: int
    matches: List[MatchResponse]


class CausalResponse(BaseModel):
    action: str
    causal_paths: List[Dict[str, Any]]
    insight: str


class CritiqueResponse(BaseModel):
    episodes: List[Dict[str, Any]]
    summary: str


# =============================================================================
# FastAPI App
# =============================================================================

app = FastAPI(
    title="Pattern Nexus API",
    description="Pattern memory for trading agents. Remember what worked.",
    version=API_VERSION,
    lifespan=lifespan,
)


@app.get("/")
async def root():
    """API status and endpoint discovery."""
    return {
        "service": "Pattern Nexus",
        "status": "operational",
        "version": API_VERSION,
        "endpoints": {
            "store": "POST /v1/patterns",
            "similar": "POST /v1/similar",
            "causal": "GET /v1/causal/{action}",
            "critique": "POST /v1/critique",
            "skills": "GET /v1/skills",
            "stats": "GET /v1/stats",
        },
    }


@app.get("/health")
async def health():
    """Health check."""
    return {"status": "healthy"}


@app.post("/v1/patterns", response_model=EntryResponse)
def store_pattern(request: StoreRequest, raw: Request):
    """Record a decision and its outcome."""
    entry = get_store(raw).store_pattern(request.pattern.model_dump(), request.outcome)
    return EntryResponse(
        id=entry.id,
        action=entry.action,
        outcome=entry.outcome,
        success=entry.success,
        timestamp=entry.timestamp,
    )


@app.post("/v1/similar", response_model=SimilarResponse)
def find_similar(request: SimilarRequest, raw: Request):
    """Successful past patterns most like this one."""
    matches = get_store(raw).find_similar(request.pattern.model_dump(), k=request.k)
    return SimilarResponse(
        count=len(matches),
        matches=[MatchResponse(**m.to_dict(digits=6)) for m in matches],
    )


@app.get("/v1/causal/{action}", response_model=CausalResponse)
def causal_reasoning(action: str, raw: Request):
    """What followed the most recent pattern with this action."""
    result = get_store(raw).get_causal_reasoning(action)
    return CausalResponse(
        action=result["action"],
        causal_paths=[edge.to_dict() for edge in result["causal_paths"]],
        insight=result["insight"],
    )


@app.post("/v1/critique", response_model=CritiqueResponse)
def self_critique(request: CritiqueRequest, raw: Request):
    """Past episodes for the task this trajectory starts with."""
    result = get_store(raw).get_self_critique(request.trajectory)
    return CritiqueResponse(
        episodes=[episode.to_dict() for episode in result["episodes"]],
        summary=result["summary"],
    )


@app.get("/v1/skills")
def list_skills(raw: Request, query: Optional[str] = None, limit: int = 100):
    """Learned skills (successful patterns)."""
    store = get_store(raw)
    if query is None:
        skills = store.get_skills()[:max(limit, 0)]
    else:
        skills = store.search_skills(query, limit=limit)
    return {"count": len(skills), "skills": skills}


@app.get("/v1/stats")
def stats(raw: Request):
    """Store statistics."""
    return get_store(raw).get_stats()


# =============================================================================
# Run with: python -m pattern_nexus.api.main --port 8000
# =============================================================================

if __name__ == "__main__":
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(description="Serve the Pattern Nexus API")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s: %(message)s")
    uvicorn.run(app, host=args.host, port=args.port)
