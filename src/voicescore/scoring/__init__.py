"""Spoken-proficiency scoring.

Public API:
    - score: transcript + speaking time -> ScoreMetrics
    - ScoreMetrics: immutable band scores and ratios
"""

from .engine import score
from .metrics import MAX_BAND, MIN_BAND, ScoreMetrics

__all__ = ["MAX_BAND", "MIN_BAND", "ScoreMetrics", "score"]
