"""
multipose - Multi-person pose decoding for PoseNet-style model outputs

A Python package for:
- Heatmap normalization and local maximum keypoint search
- Pose chain propagation from root keypoints
- Greedy non-maximum suppression across pose instances
- Loading dumped model outputs and writing pose results
"""

__version__ = "0.1.0"
__author__ = "multipose developers"

# Core imports (config, constants, exceptions)
from .core.config import MultiPoseConfig, DecoderConfig, SourceConfig
from .core.constants import (
    KEYPOINT_NAMES,
    NUM_KEYPOINTS,
    POSE_CHAIN,
)
from .core.exceptions import (
    MultiPoseException,
    ConfigError,
    TensorShapeError,
    ResourceExhaustedError,
    DataLoadError,
)

# Lazy imports for modules with external dependencies
def __getattr__(name):
    """Lazy loading for modules with external dependencies"""
    if name in ("decode_poses", "InstanceAssembler", "PoseDecoder",
                "PoseGraph", "get_pose_graph", "PoseInstance", "Keypoint"):
        from . import pose
        return getattr(pose, name)
    elif name in ("TensorLoader", "ModelOutputs", "CSVWriter", "CSVReader", "PoseRow"):
        from . import io
        return getattr(io, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

__all__ = [
    # Version
    "__version__",
    # Config
    "MultiPoseConfig",
    "DecoderConfig",
    "SourceConfig",
    # Constants
    "KEYPOINT_NAMES",
    "NUM_KEYPOINTS",
    "POSE_CHAIN",
    # Exceptions
    "MultiPoseException",
    "ConfigError",
    "TensorShapeError",
    "ResourceExhaustedError",
    "DataLoadError",
    # Decoding
    "decode_poses",
    "InstanceAssembler",
    "PoseDecoder",
    "PoseGraph",
    "get_pose_graph",
    "PoseInstance",
    "Keypoint",
    # IO
    "TensorLoader",
    "ModelOutputs",
    "CSVWriter",
    "CSVReader",
    "PoseRow",
]
