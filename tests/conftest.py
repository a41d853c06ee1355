"""
Shared fixtures for Pattern Nexus tests.
"""

import pytest

from pattern_nexus.config import StoreConfig
from pattern_nexus.core.store import PatternMemoryStore


@pytest.fixture
def config() -> StoreConfig:
    return StoreConfig(backend_timeout=1.0)


@pytest.fixture
def store(config):
    """Fresh in-memory store."""
    s = PatternMemoryStore(config)
    yield s
    s.close()


@pytest.fixture
def make_pattern():
    """Factory fixture for trading patterns."""

    def _make(action="buy", price=100.0, volume=5000.0, momentum=0.1, cash=50000.0, positions=1):
        return {
            "action": action,
            "price": price,
            "volume": volume,
            "momentum": momentum,
            "cash": cash,
            "positions": positions,
        }

    return _make


@pytest.fixture
def scenario_store(store, make_pattern):
    """A(buy, +10), B(sell, -5), C(buy, +20) in that order."""
    store.store_pattern(make_pattern("buy", price=100), 10)
    store.store_pattern(make_pattern("sell", price=110), -5)
    store.store_pattern(make_pattern("buy", price=105), 20)
    return store
