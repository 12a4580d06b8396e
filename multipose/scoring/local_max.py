"""
Local maximum filtering over 2D score fields

Separable square-window max filter: a pass along rows, then a pass
along columns, each an O(n) sliding-window maximum. Cells near a border
take the maximum over the in-bounds part of their window.
"""

import numpy as np
from scipy.ndimage import maximum_filter1d


def maximum_filter_1d(values: np.ndarray, radius: int, axis: int = -1) -> np.ndarray:
    """
    Sliding-window maximum of width ``2 * radius + 1`` along one axis

    ``mode="nearest"`` repeats the edge value, which for a max is the
    same as clamping the window to the array bounds.

    Args:
        values: Input array
        radius: Window radius (0 returns a copy of the input)
        axis: Axis to filter along

    Returns:
        Filtered array with the same shape and dtype
    """
    return maximum_filter1d(values, size=2 * radius + 1, axis=axis, mode="nearest")


def maximum_filter_2d(scores: np.ndarray, radius: int) -> np.ndarray:
    """
    Square-window maximum filter of side ``2 * radius + 1``

    Args:
        scores: 2D score field (H, W)
        radius: Window radius in cells

    Returns:
        Array (H, W) where each cell holds the max of its clamped window

    Example:
        >>> field = np.array([[0., 1., 0.], [0., 0., 0.], [2., 0., 0.]])
        >>> maximum_filter_2d(field, 1)
        array([[1., 1., 1.],
               [2., 2., 1.],
               [2., 2., 0.]])
    """
    if scores.ndim != 2:
        raise ValueError(f"Expected a 2D score field, got shape {scores.shape}")

    row_max = maximum_filter_1d(scores, radius, axis=1)
    return maximum_filter_1d(row_max, radius, axis=0)
