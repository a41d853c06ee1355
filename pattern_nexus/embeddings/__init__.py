"""
Encoders for Pattern Nexus.

Providers:
- "features": Fixed 128-dim trading feature vector (just numpy)
"""

from .features import ACTIONS, DIMENSION, FeatureEncoder

__all__ = ["ACTIONS", "DIMENSION", "FeatureEncoder", "create_encoder"]


def create_encoder(provider: str = "features", **kwargs) -> FeatureEncoder:
    """
    Factory function to create a pattern encoder.

    Args:
        provider: "features" (default)
        **kwargs: dimension, actions
    """
    if provider == "features":
        return FeatureEncoder(**kwargs)
    else:
        raise ValueError(f"Unknown encoder provider: {provider}")
