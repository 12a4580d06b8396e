"""
Size checks for model output tensors
"""

import numpy as np

from ..core.config import DecoderConfig
from ..core.exceptions import TensorShapeError, ResourceExhaustedError


def check_tensor_size(tensor: np.ndarray, expected_size: int, name: str) -> None:
    """
    Check that a tensor holds exactly the expected number of values

    Raises:
        TensorShapeError: On any mismatch
    """
    size = np.size(tensor)
    if size != expected_size:
        raise TensorShapeError(
            f"{name} tensor has {size} values, expected {expected_size}"
        )


def validate_model_outputs(
    heatmap: np.ndarray,
    offsets: np.ndarray,
    displacements: np.ndarray,
    config: DecoderConfig
) -> None:
    """
    Validate all three model outputs against the decoder config

    Args:
        heatmap: H*W*K values
        offsets: H*W*2*K values
        displacements: H*W*4*(K-1) values
        config: DecoderConfig

    Raises:
        TensorShapeError: If any tensor has the wrong number of values
    """
    check_tensor_size(heatmap, config.heatmap_size, "heatmap")
    check_tensor_size(offsets, config.offsets_size, "offsets")
    check_tensor_size(displacements, config.displacements_size, "displacements")


def copy_as_float32(tensor: np.ndarray, name: str) -> np.ndarray:
    """
    Copy a tensor into a new flat float32 buffer owned by the caller

    Raises:
        ResourceExhaustedError: If the buffer cannot be allocated
    """
    try:
        return np.array(tensor, dtype=np.float32, copy=True).reshape(-1)
    except MemoryError as e:
        raise ResourceExhaustedError(f"Couldn't allocate buffer for {name}") from e
