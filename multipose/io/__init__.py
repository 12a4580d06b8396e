"""
IO module - Data loading and saving utilities

Provides unified interfaces for:
- Loading dumped model output tensors (NPZ)
- Pose result CSV reading/writing with dataclasses
"""

from .tensor_loader import ModelOutputs, TensorLoader
from .csv_handler import (
    CSVWriter,
    CSVReader,
    PoseRow,
)

__all__ = [
    "ModelOutputs",
    "TensorLoader",
    "CSVWriter",
    "CSVReader",
    "PoseRow",
]
