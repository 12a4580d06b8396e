"""
Pose graph - keypoint taxonomy and parent/child edges

Provides:
- PoseGraph: validated keypoint table and pose chain (spanning tree)
- Edge: (parent_id, child_id) pair
- get_pose_graph(): shared default PoseNet graph
"""

from functools import lru_cache
from typing import Dict, NamedTuple, Sequence, Tuple

from ..core.constants import KEYPOINT_NAMES, POSE_CHAIN
from ..core.exceptions import ConfigError


class Edge(NamedTuple):
    """Directed edge of the pose chain, parent -> child"""
    parent: int
    child: int


class PoseGraph:
    """
    Immutable keypoint table plus the pose chain connecting it

    Keypoint names are resolved to integer ids once, at construction.
    The chain must hold exactly ``num_keypoints - 1`` edges that span
    every keypoint without cycles.

    Example:
        >>> graph = PoseGraph(KEYPOINT_NAMES, POSE_CHAIN)
        >>> graph.keypoint_id('leftWrist')
        9
        >>> graph.edges[0]
        Edge(parent=0, child=1)
    """

    def __init__(
        self,
        keypoint_names: Sequence[str],
        pose_chain: Sequence[Tuple[str, str]]
    ):
        """
        Build and validate the graph

        Args:
            keypoint_names: Ordered keypoint names; position is the id
            pose_chain: (parent_name, child_name) pairs in edge order

        Raises:
            ConfigError: If a name is duplicated or unknown, or the chain
                is not a spanning tree over the keypoints
        """
        self._names: Tuple[str, ...] = tuple(keypoint_names)
        self._ids: Dict[str, int] = {}
        for idx, name in enumerate(self._names):
            if name in self._ids:
                raise ConfigError(f"Duplicate keypoint name: {name!r}")
            self._ids[name] = idx

        if len(self._names) < 2:
            raise ConfigError("Pose graph needs at least 2 keypoints")

        if len(pose_chain) != len(self._names) - 1:
            raise ConfigError(
                f"Pose chain must have {len(self._names) - 1} edges, "
                f"got {len(pose_chain)}"
            )

        edges = []
        for parent, child in pose_chain:
            for name in (parent, child):
                if name not in self._ids:
                    raise ConfigError(f"Pose chain references unknown keypoint: {name!r}")
            edges.append(Edge(self._ids[parent], self._ids[child]))
        self._edges: Tuple[Edge, ...] = tuple(edges)

        self._check_spanning_tree()

    def _check_spanning_tree(self) -> None:
        # With n-1 edges, the graph is a tree iff every edge joins two
        # previously disconnected components
        root = list(range(len(self._names)))

        def find(i):
            while root[i] != i:
                root[i] = root[root[i]]
                i = root[i]
            return i

        for edge in self._edges:
            a, b = find(edge.parent), find(edge.child)
            if a == b:
                raise ConfigError(
                    f"Pose chain has a cycle at edge "
                    f"{self._names[edge.parent]!r} -> {self._names[edge.child]!r}"
                )
            root[a] = b

    @property
    def num_keypoints(self) -> int:
        return len(self._names)

    @property
    def num_edges(self) -> int:
        return len(self._edges)

    @property
    def keypoint_names(self) -> Tuple[str, ...]:
        return self._names

    @property
    def edges(self) -> Tuple[Edge, ...]:
        return self._edges

    def keypoint_id(self, name: str) -> int:
        """
        Look up the id of a keypoint by name

        Raises:
            KeyError: If the name is not in the keypoint table
        """
        try:
            return self._ids[name]
        except KeyError:
            raise KeyError(f"Unknown keypoint name: {name!r}") from None

    def keypoint_name(self, keypoint_id: int) -> str:
        return self._names[keypoint_id]

    def __repr__(self) -> str:
        return f"PoseGraph(num_keypoints={self.num_keypoints}, num_edges={self.num_edges})"


@lru_cache(maxsize=None)
def get_pose_graph() -> PoseGraph:
    """
    Get the default PoseNet pose graph

    Built once per process and shared between threads.

    Returns:
        PoseGraph over KEYPOINT_NAMES and POSE_CHAIN
    """
    return PoseGraph(KEYPOINT_NAMES, POSE_CHAIN)
