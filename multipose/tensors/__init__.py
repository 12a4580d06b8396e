"""
Tensors module - Model output validation and reshaping

Provides:
- Tensor size checks against the decoder config
- Offset and displacement layout permutations (and their inverses)
"""

from .validation import check_tensor_size, validate_model_outputs, copy_as_float32
from .reshape import (
    reshape_offsets,
    inverse_reshape_offsets,
    reshape_displacements,
    inverse_reshape_displacements,
)

__all__ = [
    "check_tensor_size",
    "validate_model_outputs",
    "copy_as_float32",
    "reshape_offsets",
    "inverse_reshape_offsets",
    "reshape_displacements",
    "inverse_reshape_displacements",
]
