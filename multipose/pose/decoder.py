"""
Single-pose decoding by propagation along the pose chain

Starting from a root keypoint, the decoder walks the pose chain twice:
backward (child -> parent, last edge first) with the backward
displacements, then forward (parent -> child, first edge first) with
the forward displacements. Since the chain is a spanning tree, every
keypoint is reached whichever keypoint the root is.
"""

import numpy as np
from typing import Tuple

from ..core.config import DecoderConfig
from ..scoring.score_field import Candidate
from .graph import PoseGraph
from .types import DecodedPose, round_half_away


class PoseDecoder:
    """
    Decode one pose instance per root candidate

    Holds read-only views of the normalized heatmap, reshaped offsets and
    reshaped displacements for a single frame. Decoding never writes to
    them, so one decoder serves every root of the frame.

    Example:
        >>> decoder = PoseDecoder(config, graph, scores, offsets, bwd, fwd)
        >>> pose = decoder.decode(candidates[0])
        >>> pose.keypoint_coords[graph.keypoint_id('nose')]
        array([112.3, 240.8])
    """

    def __init__(
        self,
        config: DecoderConfig,
        graph: PoseGraph,
        scores: np.ndarray,
        offsets: np.ndarray,
        displacements_bwd: np.ndarray,
        displacements_fwd: np.ndarray
    ):
        """
        Args:
            config: DecoderConfig
            graph: PoseGraph with config.num_keypoints keypoints
            scores: Normalized heatmap, H*W*K values
            offsets: Reshaped offsets (H, W, K, 2)
            displacements_bwd: Reshaped backward displacements (H, W, E, 2)
            displacements_fwd: Reshaped forward displacements (H, W, E, 2)
        """
        h, w = config.feature_height, config.feature_width
        k, e = config.num_keypoints, config.num_edges

        self.config = config
        self.graph = graph
        self.scores = np.asarray(scores).reshape(h, w, k)
        self.offsets = np.asarray(offsets).reshape(h, w, k, 2)
        self.displacements_bwd = np.asarray(displacements_bwd).reshape(h, w, e, 2)
        self.displacements_fwd = np.asarray(displacements_fwd).reshape(h, w, e, 2)

    def _to_grid(self, coord: np.ndarray) -> Tuple[int, int]:
        """Nearest grid cell of a pixel coordinate, clamped to the feature map"""
        stride = self.config.output_stride
        row = round_half_away(float(coord[0]) / stride)
        col = round_half_away(float(coord[1]) / stride)
        row = max(0, min(row, self.config.feature_height - 1))
        col = max(0, min(col, self.config.feature_width - 1))
        return row, col

    def _image_coords(self, row: int, col: int, keypoint_id: int) -> np.ndarray:
        stride = float(self.config.output_stride)
        offset = self.offsets[row, col, keypoint_id]
        return np.array([
            row * stride + float(offset[0]),
            col * stride + float(offset[1]),
        ])

    def root_coords(self, candidate: Candidate) -> np.ndarray:
        """
        Pixel coordinate (y, x) of a root candidate

        Grid cell times output stride, refined by the root's short-range
        offset at that cell.
        """
        return self._image_coords(candidate.row, candidate.col, candidate.keypoint_id)

    def propagate(
        self,
        edge_id: int,
        keypoint_coords: np.ndarray,
        source_id: int,
        target_id: int,
        displacements: np.ndarray
    ) -> Tuple[float, np.ndarray]:
        """
        Locate the target keypoint of an edge from its source keypoint

        Args:
            edge_id: Index of the edge in the pose chain
            keypoint_coords: (K, 2) current pixel coordinates of the pose
            source_id: Keypoint already located
            target_id: Keypoint to locate
            displacements: Backward or forward displacements (H, W, E, 2)

        Returns:
            (target_score, target_coords) where target_coords is (y, x)
        """
        source_coords = keypoint_coords[source_id]
        src_row, src_col = self._to_grid(source_coords)

        displaced = source_coords + displacements[src_row, src_col, edge_id]
        row, col = self._to_grid(displaced)

        score = float(self.scores[row, col, target_id])
        return score, self._image_coords(row, col, target_id)

    def decode(self, candidate: Candidate) -> DecodedPose:
        """
        Build a full pose from one root candidate

        Args:
            candidate: Root keypoint (grid cell, keypoint id, score)

        Returns:
            DecodedPose with every keypoint reachable from the root set
        """
        pose = DecodedPose.empty(self.config.num_keypoints)
        scores = pose.keypoint_scores
        coords = pose.keypoint_coords

        scores[candidate.keypoint_id] = candidate.score
        coords[candidate.keypoint_id] = self.root_coords(candidate)

        edges = self.graph.edges

        # Backward: child -> parent
        for edge_id in range(len(edges) - 1, -1, -1):
            source_id, target_id = edges[edge_id].child, edges[edge_id].parent
            if scores[source_id] > 0.0 and scores[target_id] == 0.0:
                scores[target_id], coords[target_id] = self.propagate(
                    edge_id, coords, source_id, target_id, self.displacements_bwd
                )

        # Forward: parent -> child
        for edge_id in range(len(edges)):
            source_id, target_id = edges[edge_id].parent, edges[edge_id].child
            if scores[source_id] > 0.0 and scores[target_id] == 0.0:
                scores[target_id], coords[target_id] = self.propagate(
                    edge_id, coords, source_id, target_id, self.displacements_fwd
                )

        return pose
