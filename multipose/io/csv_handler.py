"""
CSV handling for decoded pose results

Provides:
- PoseRow dataclass, one row per decoded pose
- CSV writing with a header built from the keypoint names
- CSV reading grouped by frame
"""

import csv
from pathlib import Path
from dataclasses import dataclass, field
from typing import List, Dict, Union
from collections import defaultdict

from ..core.exceptions import DataLoadError
from ..core.constants import CSV_POSE_COLUMNS
from ..pose.types import Keypoint, PoseInstance

_ROW_COLUMNS = ('frame', 'pose_id', 'pose_score')


@dataclass
class PoseRow:
    """Dataclass for pose decoding result rows, keypoints in id order"""
    frame: int
    pose_id: int
    pose_score: float
    keypoints: Dict[str, Dict[str, float]] = field(default_factory=dict)

    @classmethod
    def from_pose(cls, frame: int, pose_id: int, pose: PoseInstance) -> "PoseRow":
        """Create a row from a decoded PoseInstance"""
        keypoints = {
            name: {'x': kpt.x, 'y': kpt.y, 'score': kpt.score}
            for name, kpt in zip(pose.keypoint_names, pose.keypoints)
        }
        return cls(frame=frame, pose_id=pose_id, pose_score=pose.pose_score,
                   keypoints=keypoints)

    @classmethod
    def from_dict(cls, d: Dict) -> "PoseRow":
        """
        Create instance from dictionary

        Keypoint names are taken from the ``{name}_score`` columns, in
        column order.
        """
        row = cls(
            frame=int(d['frame']),
            pose_id=int(d['pose_id']),
            pose_score=float(d['pose_score']),
        )

        for column in d:
            if column in _ROW_COLUMNS or not column.endswith('_score'):
                continue
            kpt_name = column[:-len('_score')]
            row.keypoints[kpt_name] = {
                'x': int(float(d.get(f'{kpt_name}_x', 0))),
                'y': int(float(d.get(f'{kpt_name}_y', 0))),
                'score': float(d[column]),
            }

        return row

    def to_dict(self) -> Dict:
        """Convert to dictionary"""
        d = {
            'frame': self.frame,
            'pose_id': self.pose_id,
            'pose_score': self.pose_score,
        }

        for kpt_name, kpt in self.keypoints.items():
            d[f'{kpt_name}_x'] = kpt['x']
            d[f'{kpt_name}_y'] = kpt['y']
            d[f'{kpt_name}_score'] = kpt['score']

        return d

    def to_pose(self) -> PoseInstance:
        """Convert back to a PoseInstance"""
        keypoints = tuple(
            Keypoint(score=kpt['score'], x=kpt['x'], y=kpt['y'])
            for kpt in self.keypoints.values()
        )
        return PoseInstance(pose_score=self.pose_score, keypoints=keypoints,
                            keypoint_names=tuple(self.keypoints))


class CSVWriter:
    """CSV writing for pose decoding results"""

    @staticmethod
    def write_poses(output_path: Union[str, Path], poses: List[PoseRow]) -> None:
        """
        Write pose results to CSV

        The header follows the keypoints of the first row; every row
        must share that keypoint table.

        Args:
            output_path: Path to output CSV file
            poses: List of PoseRow instances

        Example:
            >>> from multipose.io import CSVWriter, PoseRow
            >>> rows = [PoseRow.from_pose(frame, i, pose) for i, pose in enumerate(poses)]
            >>> CSVWriter.write_poses('poses.csv', rows)
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        fieldnames = list(poses[0].to_dict()) if poses else CSV_POSE_COLUMNS

        with open(output_path, 'w', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()

            for pose in poses:
                writer.writerow(pose.to_dict())


class CSVReader:
    """CSV reading for pose decoding results"""

    @staticmethod
    def read_poses(csv_path: Union[str, Path]) -> Dict[int, List[PoseRow]]:
        """
        Read pose results from CSV, grouped by frame number

        Args:
            csv_path: Path to pose CSV file

        Returns:
            Dictionary mapping frame number to list of PoseRow

        Raises:
            DataLoadError: If CSV cannot be read

        Example:
            >>> from multipose.io import CSVReader
            >>> poses = CSVReader.read_poses('poses.csv')
            >>> for frame, rows in poses.items():
            ...     print(f"Frame {frame}: {len(rows)} poses")
        """
        csv_path = Path(csv_path)

        if not csv_path.exists():
            raise DataLoadError(f"CSV file not found: {csv_path}")

        poses_by_frame = defaultdict(list)

        try:
            with open(csv_path, 'r', newline='') as f:
                reader = csv.DictReader(f)

                for row in reader:
                    pose = PoseRow.from_dict(row)
                    poses_by_frame[pose.frame].append(pose)

            return dict(poses_by_frame)

        except Exception as e:
            raise DataLoadError(f"Failed to read pose CSV: {e}")
