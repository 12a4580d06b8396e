"""
Pose module - Multi-person pose decoding

Provides:
- Pose graph (keypoint table and pose chain)
- Single-pose decoder (propagation along the chain)
- Instance assembler with non-maximum suppression
- Result types and keypoint utilities
"""

from .graph import Edge, PoseGraph, get_pose_graph
from .types import DecodedPose, Keypoint, PoseInstance
from .decoder import PoseDecoder
from .assembler import (
    InstanceAssembler,
    decode_poses,
    root_is_suppressed,
    instance_score,
)
from .keypoint_utils import (
    compute_scale_back,
    filter_keypoints,
    compute_keypoint_stats,
    compute_pose_center,
    poses_to_array,
    array_to_poses,
)

__all__ = [
    # Graph
    "Edge",
    "PoseGraph",
    "get_pose_graph",
    # Types
    "DecodedPose",
    "Keypoint",
    "PoseInstance",
    # Decoding
    "PoseDecoder",
    "InstanceAssembler",
    "decode_poses",
    "root_is_suppressed",
    "instance_score",
    # Keypoint utilities
    "compute_scale_back",
    "filter_keypoints",
    "compute_keypoint_stats",
    "compute_pose_center",
    "poses_to_array",
    "array_to_poses",
]
