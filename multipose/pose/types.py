"""
Pose result types
"""

import math
import numpy as np
from dataclasses import dataclass
from typing import Dict, Sequence, Tuple

from ..core.constants import KEYPOINT_NAMES


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero"""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


@dataclass
class DecodedPose:
    """
    Pose being decoded, in model-input pixel space

    keypoint_coords rows are (y, x), i.e. (row, col) order, matching the
    grid layout of the model outputs.
    """
    keypoint_scores: np.ndarray
    keypoint_coords: np.ndarray
    pose_score: float = 0.0

    @classmethod
    def empty(cls, num_keypoints: int) -> "DecodedPose":
        return cls(
            keypoint_scores=np.zeros(num_keypoints, dtype=np.float64),
            keypoint_coords=np.zeros((num_keypoints, 2), dtype=np.float64),
        )


@dataclass(frozen=True)
class Keypoint:
    """Single keypoint in source-frame pixels"""
    score: float
    x: int
    y: int


@dataclass(frozen=True)
class PoseInstance:
    """
    One decoded person: aggregate score plus one Keypoint per keypoint id

    keypoint_names labels the keypoints in id order; it defaults to the
    PoseNet names and is the decoding graph's names otherwise.

    Example:
        >>> poses = decode_poses(heatmap, offsets, displacements)
        >>> nose = poses[0].keypoint('nose')
        >>> print(nose.x, nose.y, nose.score)
    """
    pose_score: float
    keypoints: Tuple[Keypoint, ...]
    keypoint_names: Tuple[str, ...] = KEYPOINT_NAMES

    def __post_init__(self):
        if len(self.keypoints) != len(self.keypoint_names):
            raise ValueError(
                f"{len(self.keypoints)} keypoints for "
                f"{len(self.keypoint_names)} keypoint names"
            )

    @classmethod
    def from_decoded(
        cls,
        pose: DecodedPose,
        scale_x: float = 1.0,
        scale_y: float = 1.0,
        keypoint_names: Sequence[str] = KEYPOINT_NAMES
    ) -> "PoseInstance":
        """Scale a DecodedPose back to source-frame integer pixels"""
        keypoints = tuple(
            Keypoint(
                score=float(score),
                x=round_half_away(float(coord[1]) * scale_x),
                y=round_half_away(float(coord[0]) * scale_y),
            )
            for score, coord in zip(pose.keypoint_scores, pose.keypoint_coords)
        )
        return cls(pose_score=float(pose.pose_score), keypoints=keypoints,
                   keypoint_names=tuple(keypoint_names))

    def keypoint(self, name: str) -> Keypoint:
        """
        Get a keypoint by name

        Raises:
            KeyError: If the name is not one of keypoint_names
        """
        try:
            return self.keypoints[self.keypoint_names.index(name)]
        except ValueError:
            raise KeyError(f"Unknown keypoint name: {name!r}") from None

    def to_dict(self) -> Dict[str, Tuple[int, int, float]]:
        """Map keypoint name to (x, y, score)"""
        return {
            name: (kpt.x, kpt.y, kpt.score)
            for name, kpt in zip(self.keypoint_names, self.keypoints)
        }
