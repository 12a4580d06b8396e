"""
Keypoint utilities for decoded poses

Provides:
- Scale-back factors from model input to source frame
- Keypoint filtering by confidence
- Pose metrics computation
- Array conversion of decoded poses
"""

import numpy as np
from typing import Dict, Tuple, Optional, List, Sequence

from ..core.config import SourceConfig
from ..core.constants import KEYPOINT_NAMES
from .types import Keypoint, PoseInstance


def compute_scale_back(
    source_width: int,
    source_height: int,
    scaled_width: int,
    scaled_height: int
) -> Tuple[float, float]:
    """
    Compute factors mapping model-input pixels back to the source frame

    Shorthand for SourceConfig(...).scale_back().

    Args:
        source_width: Width of the source camera frame
        source_height: Height of the source camera frame
        scaled_width: Width of the frame as fed to the model
        scaled_height: Height of the frame as fed to the model

    Returns:
        (scale_x, scale_y)

    Raises:
        ConfigError: If a dimension is not positive

    Example:
        >>> compute_scale_back(1920, 1080, 640, 360)
        (3.0, 3.0)
    """
    source = SourceConfig(
        source_width=source_width,
        source_height=source_height,
        model_input_width=scaled_width,
        model_input_height=scaled_height,
    )
    return source.scale_back()


def filter_keypoints(
    pose: PoseInstance,
    conf_threshold: float = 0.3
) -> Dict[str, Tuple[int, int, float]]:
    """
    Keep keypoints of a pose at or above a confidence threshold

    Args:
        pose: Decoded pose
        conf_threshold: Minimum keypoint score

    Returns:
        Dict mapping keypoint name to (x, y, score)

    Example:
        >>> filtered = filter_keypoints(pose, conf_threshold=0.5)
        >>> 'nose' in filtered
        True
    """
    return {
        name: (x, y, score)
        for name, (x, y, score) in pose.to_dict().items()
        if score >= conf_threshold
    }


def compute_keypoint_stats(
    keypoints: Dict[str, Tuple[float, float, float]]
) -> Dict:
    """
    Compute statistics about keypoints

    Args:
        keypoints: Keypoint dict, name -> (x, y, score)

    Returns:
        Stats dict with num_valid, mean_confidence, bounds, center

    Example:
        >>> keypoints = {'nose': (100, 100, 0.9), 'leftShoulder': (80, 150, 0.85)}
        >>> stats = compute_keypoint_stats(keypoints)
        >>> print(stats['num_valid'])  # 2
        >>> print(stats['mean_confidence'])  # 0.875
    """
    if not keypoints:
        return {
            "num_valid": 0,
            "mean_confidence": 0.0,
            "bounds": None,
            "center": None,
        }

    coords = np.array([(x, y) for x, y, _ in keypoints.values()], dtype=np.float64)
    confs = np.array([conf for _, _, conf in keypoints.values()], dtype=np.float64)

    x_min, y_min = coords.min(axis=0)
    x_max, y_max = coords.max(axis=0)

    return {
        "num_valid": len(keypoints),
        "mean_confidence": float(np.mean(confs)),
        "bounds": (float(x_min), float(y_min), float(x_max), float(y_max)),
        "center": (float(x_min + x_max) / 2, float(y_min + y_max) / 2),
    }


def compute_pose_center(
    keypoints: Dict[str, Tuple[float, float, float]]
) -> Optional[Tuple[float, float]]:
    """
    Compute center of mass of keypoints

    Args:
        keypoints: Keypoint dict with confidence

    Returns:
        (center_x, center_y) or None if no valid keypoints

    Example:
        >>> keypoints = {'nose': (100, 100, 0.9), 'leftHip': (80, 200, 0.8)}
        >>> compute_pose_center(keypoints)
        (90.0, 150.0)
    """
    if not keypoints:
        return None

    coords = np.array([(x, y) for x, y, _ in keypoints.values()], dtype=np.float64)
    center = coords.mean(axis=0)
    return float(center[0]), float(center[1])


def poses_to_array(
    poses: Sequence[PoseInstance],
    num_keypoints: int = len(KEYPOINT_NAMES)
) -> np.ndarray:
    """
    Stack poses into an array of shape (N, K, 3) with [x, y, score] rows

    Args:
        poses: Decoded poses sharing one keypoint table
        num_keypoints: K of the returned array when poses is empty

    Example:
        >>> arr = poses_to_array(poses)
        >>> arr.shape
        (2, 17, 3)
    """
    if not poses:
        return np.zeros((0, num_keypoints, 3), dtype=np.float32)

    return np.array(
        [[[kpt.x, kpt.y, kpt.score] for kpt in pose.keypoints] for pose in poses],
        dtype=np.float32,
    )


def array_to_poses(
    arr: np.ndarray,
    pose_scores: Optional[Sequence[float]] = None,
    keypoint_names: Sequence[str] = KEYPOINT_NAMES
) -> List[PoseInstance]:
    """
    Convert an (N, K, 3) [x, y, score] array back to PoseInstances

    Args:
        arr: Array from poses_to_array
        pose_scores: Per-pose scores (default: 0.0 for each pose)
        keypoint_names: K names labelling the keypoints

    Returns:
        List of PoseInstance
    """
    if pose_scores is None:
        pose_scores = [0.0] * len(arr)

    keypoint_names = tuple(keypoint_names)
    poses = []
    for rows, pose_score in zip(arr, pose_scores):
        keypoints = tuple(
            Keypoint(score=float(score), x=int(round(x)), y=int(round(y)))
            for x, y, score in rows
        )
        poses.append(PoseInstance(pose_score=float(pose_score), keypoints=keypoints,
                                  keypoint_names=keypoint_names))
    return poses
