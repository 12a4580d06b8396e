"""
Tensor reshaping for PoseNet model outputs

The model emits channel-major groups per grid cell. Decoding wants the
(y, x) pair of each keypoint or edge next to each other:

- offsets:        [H, W, 2, K] -> [H, W, K, 2]
- displacements:  [H, W, 4, E] -> forward [H, W, E, 2] (groups 0-1)
                                  backward [H, W, E, 2] (groups 2-3)

All functions are pure index permutations and have exact inverses.
"""

import numpy as np
from typing import Tuple

from ..core.config import DecoderConfig
from ..core.constants import DISPLACEMENT_GROUPS
from ..core.exceptions import ResourceExhaustedError
from .validation import check_tensor_size


def _contiguous(array: np.ndarray, what: str) -> np.ndarray:
    try:
        return np.ascontiguousarray(array)
    except MemoryError as e:
        raise ResourceExhaustedError(f"Couldn't allocate buffer for {what}") from e


def reshape_offsets(raw_offsets: np.ndarray, config: DecoderConfig) -> np.ndarray:
    """
    Reorder short-range offsets from [H, W, 2, K] to [H, W, K, 2]

    Args:
        raw_offsets: Flat or shaped offsets tensor with H*W*2*K values
        config: DecoderConfig giving H, W and K

    Returns:
        New contiguous array of shape (H, W, K, 2)

    Raises:
        TensorShapeError: If the tensor size does not match the config
        ResourceExhaustedError: If the output buffer cannot be allocated
    """
    check_tensor_size(raw_offsets, config.offsets_size, "offsets")
    h, w, k = config.feature_height, config.feature_width, config.num_keypoints

    grouped = np.asarray(raw_offsets).reshape(h, w, 2, k)
    return _contiguous(grouped.transpose(0, 1, 3, 2), "short-range offsets")


def inverse_reshape_offsets(offsets: np.ndarray, config: DecoderConfig) -> np.ndarray:
    """
    Undo reshape_offsets: [H, W, K, 2] back to a flat [H, W, 2, K] buffer
    """
    check_tensor_size(offsets, config.offsets_size, "offsets")
    h, w, k = config.feature_height, config.feature_width, config.num_keypoints

    paired = np.asarray(offsets).reshape(h, w, k, 2)
    return _contiguous(paired.transpose(0, 1, 3, 2), "short-range offsets").reshape(-1)


def reshape_displacements(
    raw_displacements: np.ndarray,
    config: DecoderConfig
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Split mid-range displacements into backward and forward tensors

    Args:
        raw_displacements: Flat or shaped tensor with H*W*4*E values
        config: DecoderConfig giving H, W and K (E = K - 1)

    Returns:
        (backward, forward), each a contiguous array of shape (H, W, E, 2)

    Raises:
        TensorShapeError: If the tensor size does not match the config
        ResourceExhaustedError: If an output buffer cannot be allocated
    """
    check_tensor_size(raw_displacements, config.displacements_size, "displacements")
    h, w, e = config.feature_height, config.feature_width, config.num_edges

    grouped = np.asarray(raw_displacements).reshape(h, w, DISPLACEMENT_GROUPS, e)
    forward = _contiguous(grouped[:, :, 0:2, :].transpose(0, 1, 3, 2),
                          "forward displacements")
    backward = _contiguous(grouped[:, :, 2:4, :].transpose(0, 1, 3, 2),
                           "backward displacements")
    return backward, forward


def inverse_reshape_displacements(
    backward: np.ndarray,
    forward: np.ndarray,
    config: DecoderConfig
) -> np.ndarray:
    """
    Undo reshape_displacements, rebuilding the flat [H, W, 4, E] buffer
    """
    h, w, e = config.feature_height, config.feature_width, config.num_edges
    half_size = config.displacements_size // 2
    check_tensor_size(backward, half_size, "backward displacements")
    check_tensor_size(forward, half_size, "forward displacements")

    try:
        raw = np.empty((h, w, DISPLACEMENT_GROUPS, e), dtype=np.result_type(backward, forward))
    except MemoryError as err:
        raise ResourceExhaustedError("Couldn't allocate buffer for displacements") from err

    raw[:, :, 0:2, :] = np.asarray(forward).reshape(h, w, e, 2).transpose(0, 1, 3, 2)
    raw[:, :, 2:4, :] = np.asarray(backward).reshape(h, w, e, 2).transpose(0, 1, 3, 2)
    return raw.reshape(-1)
