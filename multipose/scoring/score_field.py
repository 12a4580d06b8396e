"""
Heatmap score normalization and candidate keypoint selection
"""

import logging
import numpy as np
from dataclasses import dataclass
from typing import List
from scipy.special import expit

from ..core.config import DecoderConfig
from ..tensors.validation import check_tensor_size
from .local_max import maximum_filter_2d

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Candidate:
    """Local-maximum heatmap cell that may seed a pose"""
    row: int
    col: int
    keypoint_id: int
    score: float


def normalize(raw_scores: np.ndarray) -> np.ndarray:
    """
    Apply the logistic sigmoid to every element, in place

    NaN stays NaN and +/-inf map to 1/0. No correction is attempted.

    Args:
        raw_scores: Float array of heatmap logits, modified in place

    Returns:
        The same array, for chaining
    """
    expit(raw_scores, out=raw_scores)
    return raw_scores


def select_candidates(config: DecoderConfig, scores: np.ndarray) -> List[Candidate]:
    """
    Find local-maximum keypoint cells above the heatmap threshold

    For every keypoint channel of the [H, W, K] score tensor, values not
    strictly above ``heatmap_score_threshold`` are zeroed, the slice is
    max-filtered with ``local_max_radius`` and a cell is kept when it
    equals its filtered value and is positive.

    Args:
        config: DecoderConfig
        scores: Normalized heatmap, H*W*K values

    Returns:
        Candidates ordered by keypoint id, then row, then column
    """
    check_tensor_size(scores, config.heatmap_size, "heatmap")
    field = np.asarray(scores).reshape(
        config.feature_height, config.feature_width, config.num_keypoints
    )

    candidates = []
    for keypoint_id in range(config.num_keypoints):
        channel = field[:, :, keypoint_id]
        kp_scores = np.where(channel > config.heatmap_score_threshold, channel, 0).astype(channel.dtype)
        filtered = maximum_filter_2d(kp_scores, config.local_max_radius)

        rows, cols = np.nonzero((kp_scores == filtered) & (kp_scores > 0))
        for row, col in zip(rows, cols):
            candidates.append(
                Candidate(int(row), int(col), keypoint_id, float(channel[row, col]))
            )

    logger.debug("Selected %d candidate keypoints", len(candidates))
    return candidates
