"""
Custom exceptions for multipose

Provides specific exception types for:
- Configuration errors (decoder parameters, keypoint/edge tables)
- Tensor shape mismatches
- Scratch buffer allocation failures
- Data loading errors
"""

import logging

logger = logging.getLogger(__name__)


class MultiPoseException(Exception):
    """
    Base exception class for all multipose exceptions

    All custom exceptions should inherit from this class for easy
    exception catching and handling at the application level.
    """
    pass


class ConfigError(MultiPoseException):
    """
    Raised when configuration is invalid or missing

    Reasons:
    - Decoder parameter is out of valid range
    - Keypoint or pose chain table is malformed
    - num_keypoints does not match the pose graph
    - Invalid configuration file format

    Example:
        >>> from multipose.core.exceptions import ConfigError
        >>> from multipose.core.config import DecoderConfig
        >>> try:
        ...     config = DecoderConfig(output_stride=0)
        ... except ConfigError as e:
        ...     print(f"Configuration error: {e}")
    """
    pass


class TensorShapeError(ConfigError):
    """
    Raised when a model output tensor does not match the decoder config

    The heatmap must hold H*W*K values, the offsets H*W*2*K and the
    displacements H*W*4*(K-1). A mismatch is never truncated or padded.

    Example:
        >>> from multipose.core.exceptions import TensorShapeError
        >>> from multipose import decode_poses
        >>> try:
        ...     decode_poses(heatmap[:-1], offsets, displacements)
        ... except TensorShapeError as e:
        ...     print(f"Bad tensor: {e}")
    """
    pass


class ResourceExhaustedError(MultiPoseException):
    """
    Raised when a per-call scratch buffer cannot be allocated

    The decoder never terminates the process; callers decide whether to
    retry on a later frame.
    """
    pass


class DataLoadError(MultiPoseException):
    """
    Raised when data files fail to load

    Applicable to:
    - NPZ/NPY dumps of model outputs
    - Pose result CSV files

    Example:
        >>> from multipose.core.exceptions import DataLoadError
        >>> from multipose.io import TensorLoader
        >>> try:
        ...     outputs = TensorLoader.load("frame_0001.npz")
        ... except DataLoadError as e:
        ...     print(f"Failed to load data: {e}")
    """
    pass


def handle_multipose_exception(e: MultiPoseException, verbose: bool = True) -> str:
    """
    Handle multipose exceptions with formatted error message

    Args:
        e: The MultiPoseException instance
        verbose: If True, log the error message

    Returns:
        Formatted error message string
    """
    error_type = type(e).__name__
    error_msg = str(e)
    formatted_msg = f"[{error_type}] {error_msg}"

    if verbose:
        logger.error(formatted_msg)

    return formatted_msg
