"""
Tests module - Unit and integration tests for multipose

Provides:
- Core module tests (config, constants, exceptions)
- Tensor reshaping tests
- Scoring tests (sigmoid, local maximum filter, candidates)
- Pose graph, decoder and assembler tests
- IO tests (tensor dumps, pose CSV)
"""

__all__ = []
