"""
Scoring module - Heatmap normalization and local maximum search

Provides:
- Sigmoid normalization of heatmap logits
- Separable square-window maximum filter
- Candidate keypoint selection
"""

from .local_max import maximum_filter_1d, maximum_filter_2d
from .score_field import Candidate, normalize, select_candidates

__all__ = [
    "maximum_filter_1d",
    "maximum_filter_2d",
    "Candidate",
    "normalize",
    "select_candidates",
]
