"""
Core module - Configuration, constants, and exceptions for multipose
"""

from .config import (
    MultiPoseConfig,
    DecoderConfig,
    SourceConfig,
)
from .constants import (
    KEYPOINT_NAMES,
    NUM_KEYPOINTS,
    POSE_CHAIN,
    CSV_POSE_COLUMNS,
)
from .exceptions import (
    MultiPoseException,
    ConfigError,
    TensorShapeError,
    ResourceExhaustedError,
    DataLoadError,
    handle_multipose_exception,
)

__all__ = [
    "MultiPoseConfig",
    "DecoderConfig",
    "SourceConfig",
    "KEYPOINT_NAMES",
    "NUM_KEYPOINTS",
    "POSE_CHAIN",
    "CSV_POSE_COLUMNS",
    "MultiPoseException",
    "ConfigError",
    "TensorShapeError",
    "ResourceExhaustedError",
    "DataLoadError",
    "handle_multipose_exception",
]
