"""
Loading of dumped PoseNet model outputs

Supports:
- NPZ files holding heatmap, offsets and displacements arrays
- Batch loading of many frames with a progress bar
"""

import logging
import numpy as np
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union
from tqdm import tqdm

from ..core.config import DecoderConfig
from ..core.exceptions import DataLoadError, TensorShapeError
from ..tensors.validation import validate_model_outputs

logger = logging.getLogger(__name__)

TENSOR_KEYS = ('heatmap', 'offsets', 'displacements')


@dataclass
class ModelOutputs:
    """The three raw model output tensors of one frame"""
    heatmap: np.ndarray
    offsets: np.ndarray
    displacements: np.ndarray
    name: str = ""

    def validate(self, config: DecoderConfig) -> None:
        """Check tensor sizes against a decoder config"""
        validate_model_outputs(self.heatmap, self.offsets, self.displacements, config)

    def save(self, npz_path: Union[str, Path]) -> None:
        """Write the tensors to an NPZ file"""
        npz_path = Path(npz_path)
        npz_path.parent.mkdir(parents=True, exist_ok=True)
        np.savez(npz_path, heatmap=self.heatmap, offsets=self.offsets,
                 displacements=self.displacements)


class TensorLoader:
    """
    NPZ loading for dumped model outputs

    Example:
        >>> from multipose.io import TensorLoader
        >>> outputs = TensorLoader.load("dumps/frame_0001.npz")
        >>> poses = decode_poses(outputs.heatmap, outputs.offsets, outputs.displacements)
    """

    @staticmethod
    def load(
        npz_path: Union[str, Path],
        config: Optional[DecoderConfig] = None
    ) -> ModelOutputs:
        """
        Load one frame of model outputs

        Args:
            npz_path: Path to an NPZ file with heatmap/offsets/displacements
            config: If given, tensor sizes are validated against it

        Returns:
            ModelOutputs with float32 tensors

        Raises:
            DataLoadError: If the file is missing, unreadable or lacks a key
            TensorShapeError: If config is given and a size does not match
        """
        npz_path = Path(npz_path)

        if not npz_path.exists():
            raise DataLoadError(f"Tensor file not found: {npz_path}")

        try:
            with np.load(npz_path, allow_pickle=False) as data:
                missing = [key for key in TENSOR_KEYS if key not in data.files]
                if missing:
                    raise DataLoadError(f"Missing tensors {missing} in {npz_path}")
                tensors: Dict[str, np.ndarray] = {
                    key: np.asarray(data[key], dtype=np.float32) for key in TENSOR_KEYS
                }
        except DataLoadError:
            raise
        except Exception as e:
            raise DataLoadError(f"Failed to load tensor file {npz_path}: {e}")

        outputs = ModelOutputs(name=npz_path.stem, **tensors)
        if config is not None:
            outputs.validate(config)
        return outputs

    @staticmethod
    def load_batch(
        npz_paths: Sequence[Union[str, Path]],
        config: Optional[DecoderConfig] = None,
        show_progress: bool = True
    ) -> List[ModelOutputs]:
        """
        Load several frames, skipping files that fail to load

        Args:
            npz_paths: NPZ files, one per frame
            config: If given, frames with mismatched tensor sizes are skipped
            show_progress: Show progress bar

        Returns:
            ModelOutputs for the frames that loaded, in input order
        """
        frames = []
        iterator = tqdm(npz_paths, desc="Loading tensors") if show_progress else npz_paths

        for npz_path in iterator:
            try:
                frames.append(TensorLoader.load(npz_path, config))
            except (DataLoadError, TensorShapeError) as e:
                logger.warning("Skipping %s: %s", npz_path, e)
                continue

        return frames
