"""Confidence scoring (weighted contributions minus penalties, clamped to [0, 1])."""

from .confidence import ScoreContext, default_weights, link_quality, score

__all__ = ["ScoreContext", "default_weights", "link_quality", "score"]
