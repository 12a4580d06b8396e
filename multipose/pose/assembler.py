"""
Multi-person pose assembly with greedy non-maximum suppression

Provides:
- InstanceAssembler: turns ranked root candidates into accepted poses
- root_is_suppressed / instance_score: the two NMS checks
- decode_poses(): entry point from raw model outputs to PoseInstances

Candidates are scanned by descending score. A root within the NMS
radius of the same keypoint of an accepted pose is skipped without
decoding. Otherwise the pose is decoded, scored on the keypoints that
do not overlap any accepted pose, and accepted when the score clears
min_pose_score. Scanning stops at max_pose_detections.

The two distance checks differ: the root pre-filter compares the
squared distance *squared again* against nms_radius**2, the
per-keypoint overlap check uses the plain squared distance. Keep both
as they are; golden outputs depend on them.
"""

import logging
import numpy as np
from typing import List, Optional, Sequence

from ..core.config import DecoderConfig
from ..core.exceptions import ConfigError, ResourceExhaustedError
from ..scoring.score_field import Candidate, normalize, select_candidates
from ..tensors.reshape import reshape_offsets, reshape_displacements
from ..tensors.validation import validate_model_outputs, copy_as_float32
from .decoder import PoseDecoder
from .graph import PoseGraph, get_pose_graph
from .types import DecodedPose, PoseInstance

logger = logging.getLogger(__name__)


def root_is_suppressed(
    accepted: Sequence[DecodedPose],
    keypoint_id: int,
    root_coords: np.ndarray,
    squared_nms_radius: float
) -> bool:
    """
    Check a root candidate against the same keypoint of accepted poses

    Uses ``(dy**2 + dx**2) ** 2 < squared_nms_radius``.

    Returns:
        True if any accepted pose is within the radius
    """
    for pose in accepted:
        dy, dx = root_coords - pose.keypoint_coords[keypoint_id]
        if (dy * dy + dx * dx) ** 2 < squared_nms_radius:
            return True
    return False


def instance_score(
    accepted: Sequence[DecodedPose],
    pose: DecodedPose,
    squared_nms_radius: float,
    num_keypoints: int
) -> float:
    """
    Score a decoded pose against the poses accepted so far

    With no accepted poses this is the mean keypoint score. Otherwise a
    keypoint contributes only when its squared distance to the same
    keypoint of every accepted pose exceeds ``squared_nms_radius``; the
    sum is still divided by ``num_keypoints``.

    Raises:
        ResourceExhaustedError: If the distance buffer cannot be allocated
    """
    if not accepted:
        return float(np.sum(pose.keypoint_scores) / num_keypoints)

    try:
        others = np.stack([p.keypoint_coords for p in accepted])
        squared_dist = np.sum((others - pose.keypoint_coords) ** 2, axis=2)
    except MemoryError as e:
        raise ResourceExhaustedError("Couldn't allocate NMS distance buffer") from e

    not_overlapped = np.all(squared_dist > squared_nms_radius, axis=0)
    return float(np.sum(pose.keypoint_scores[not_overlapped]) / num_keypoints)


class InstanceAssembler:
    """
    Greedy pose assembly over ranked root candidates

    Example:
        >>> assembler = InstanceAssembler(config)
        >>> poses = assembler.assemble(candidates, decoder)
        >>> [round(p.pose_score, 2) for p in poses]
        [0.82, 0.47]
    """

    def __init__(self, config: DecoderConfig, graph: Optional[PoseGraph] = None):
        self.config = config
        self.graph = graph if graph is not None else get_pose_graph()

    def assemble(
        self,
        candidates: Sequence[Candidate],
        decoder: PoseDecoder
    ) -> List[DecodedPose]:
        """
        Accept up to max_pose_detections poses

        Args:
            candidates: Root candidates in emission order
            decoder: PoseDecoder over the same frame

        Returns:
            Accepted DecodedPose list, in acceptance order
        """
        config = self.config
        squared_nms_radius = config.squared_nms_radius

        # sorted() is stable, so equal scores keep emission order
        ranked = sorted(candidates, key=lambda c: c.score, reverse=True)

        accepted: List[DecodedPose] = []
        for candidate in ranked:
            if len(accepted) >= config.max_pose_detections:
                break

            root_coords = decoder.root_coords(candidate)
            if root_is_suppressed(accepted, candidate.keypoint_id,
                                  root_coords, squared_nms_radius):
                continue

            pose = decoder.decode(candidate)
            score = instance_score(accepted, pose, squared_nms_radius,
                                   config.num_keypoints)

            if score > config.min_pose_score:
                pose.pose_score = score
                accepted.append(pose)

        return accepted


def decode_poses(
    heatmap: np.ndarray,
    offsets: np.ndarray,
    displacements: np.ndarray,
    config: Optional[DecoderConfig] = None,
    scale_x: float = 1.0,
    scale_y: float = 1.0,
    graph: Optional[PoseGraph] = None
) -> List[PoseInstance]:
    """
    Decode multi-person poses from one frame of PoseNet outputs

    The input tensors are never modified; the heatmap is copied before
    normalization so repeated calls on the same buffers give identical
    results.

    Args:
        heatmap: Heatmap logits, H*W*K values in [H, W, K] order
        offsets: Short-range offsets, H*W*2*K values in [H, W, 2, K] order
        displacements: Mid-range displacements, H*W*4*(K-1) values in
            [H, W, 4, K-1] order
        config: DecoderConfig (default: PoseNet MobileNet defaults)
        scale_x: Horizontal scale from model input to source pixels
        scale_y: Vertical scale from model input to source pixels
        graph: PoseGraph (default: the PoseNet pose chain)

    Returns:
        Accepted PoseInstances, highest root score first

    Raises:
        ConfigError: If config.num_keypoints does not match the graph
        TensorShapeError: If a tensor size does not match the config
        ResourceExhaustedError: If a scratch buffer cannot be allocated

    Example:
        >>> from multipose import decode_poses, DecoderConfig
        >>> poses = decode_poses(heatmap, offsets, displacements,
        ...                      DecoderConfig(), scale_x=3.0, scale_y=2.25)
        >>> for pose in poses:
        ...     print(pose.pose_score, pose.keypoint('nose'))
    """
    if config is None:
        config = DecoderConfig()
    if graph is None:
        graph = get_pose_graph()

    if graph.num_keypoints != config.num_keypoints:
        raise ConfigError(
            f"num_keypoints={config.num_keypoints} does not match pose graph "
            f"with {graph.num_keypoints} keypoints"
        )

    validate_model_outputs(heatmap, offsets, displacements, config)

    try:
        scores = copy_as_float32(heatmap, "heatmap")
        if config.normalize_heatmap:
            normalize(scores)

        reshaped_offsets = reshape_offsets(np.asarray(offsets, dtype=np.float32), config)
        displacements_bwd, displacements_fwd = reshape_displacements(
            np.asarray(displacements, dtype=np.float32), config
        )

        candidates = select_candidates(config, scores)
        decoder = PoseDecoder(config, graph, scores, reshaped_offsets,
                              displacements_bwd, displacements_fwd)
        accepted = InstanceAssembler(config, graph).assemble(candidates, decoder)
    except MemoryError as e:
        raise ResourceExhaustedError("Couldn't allocate decoding buffers") from e

    results = [
        PoseInstance.from_decoded(pose, scale_x, scale_y, graph.keypoint_names)
        for pose in accepted
    ]

    if logger.isEnabledFor(logging.DEBUG):
        for i, pose in enumerate(results):
            logger.debug("Pose #%d, score = %.4f", i, pose.pose_score)
            for name, kpt in zip(graph.keypoint_names, pose.keypoints):
                logger.debug("  %-14s score = %.4f, coords = [%d, %d]",
                             name, kpt.score, kpt.x, kpt.y)

    return results
