"""
Configuration management for multipose

Central configuration system supporting:
- Frozen dataclass-based configs
- YAML file loading
- Environment variable overrides
"""

import os
import yaml
from dataclasses import dataclass, field, asdict, replace
from pathlib import Path
from typing import Optional, Dict, Any, Tuple

from .constants import (
    NUM_KEYPOINTS,
    DEFAULT_OUTPUT_STRIDE,
    DEFAULT_MAX_POSE_DETECTIONS,
    DEFAULT_MIN_POSE_SCORE,
    DEFAULT_HEATMAP_SCORE_THRESHOLD,
    DEFAULT_NMS_RADIUS,
    DEFAULT_FEATURE_HEIGHT,
    DEFAULT_FEATURE_WIDTH,
    DEFAULT_LOCAL_MAX_RADIUS,
    DEFAULT_MODEL_INPUT_WIDTH,
    DEFAULT_MODEL_INPUT_HEIGHT,
    DISPLACEMENT_GROUPS,
    ENV_PREFIX,
)
from .exceptions import ConfigError


@dataclass(frozen=True)
class DecoderConfig:
    """Per-decode parameters for multi-person pose decoding"""
    feature_height: int = DEFAULT_FEATURE_HEIGHT
    feature_width: int = DEFAULT_FEATURE_WIDTH
    num_keypoints: int = NUM_KEYPOINTS
    output_stride: int = DEFAULT_OUTPUT_STRIDE
    local_max_radius: int = DEFAULT_LOCAL_MAX_RADIUS
    nms_radius: int = DEFAULT_NMS_RADIUS
    heatmap_score_threshold: float = DEFAULT_HEATMAP_SCORE_THRESHOLD
    min_pose_score: float = DEFAULT_MIN_POSE_SCORE
    max_pose_detections: int = DEFAULT_MAX_POSE_DETECTIONS
    normalize_heatmap: bool = True  # False if the model already applies a sigmoid

    def __post_init__(self):
        """Validate configuration"""
        if self.feature_height < 1 or self.feature_width < 1:
            raise ConfigError("feature_height and feature_width must be >= 1")
        if self.num_keypoints < 2:
            raise ConfigError("num_keypoints must be >= 2")
        if self.output_stride < 1:
            raise ConfigError("output_stride must be >= 1")
        if self.local_max_radius < 0:
            raise ConfigError("local_max_radius must be >= 0")
        if self.nms_radius < 0:
            raise ConfigError("nms_radius must be >= 0")
        if self.max_pose_detections < 1:
            raise ConfigError("max_pose_detections must be >= 1")

    @property
    def num_edges(self) -> int:
        return self.num_keypoints - 1

    @property
    def squared_nms_radius(self) -> int:
        return self.nms_radius ** 2

    @property
    def heatmap_size(self) -> int:
        """Expected number of values in the heatmap tensor"""
        return self.feature_height * self.feature_width * self.num_keypoints

    @property
    def offsets_size(self) -> int:
        """Expected number of values in the short-range offset tensor"""
        return self.heatmap_size * 2

    @property
    def displacements_size(self) -> int:
        """Expected number of values in the mid-range displacement tensor"""
        return self.feature_height * self.feature_width * DISPLACEMENT_GROUPS * self.num_edges


@dataclass(frozen=True)
class SourceConfig:
    """Source frame and model input dimensions used to scale results back"""
    source_width: int = DEFAULT_MODEL_INPUT_WIDTH
    source_height: int = DEFAULT_MODEL_INPUT_HEIGHT
    model_input_width: int = DEFAULT_MODEL_INPUT_WIDTH
    model_input_height: int = DEFAULT_MODEL_INPUT_HEIGHT

    def __post_init__(self):
        """Validate configuration"""
        for field_name in ('source_width', 'source_height',
                           'model_input_width', 'model_input_height'):
            if getattr(self, field_name) < 1:
                raise ConfigError(f"{field_name} must be >= 1")

    def scale_back(self) -> Tuple[float, float]:
        """(scale_x, scale_y) mapping model input pixels to source pixels"""
        return (
            self.source_width / self.model_input_width,
            self.source_height / self.model_input_height,
        )


_DECODER_ENV_TYPES = {
    'feature_height': int,
    'feature_width': int,
    'num_keypoints': int,
    'output_stride': int,
    'local_max_radius': int,
    'nms_radius': int,
    'heatmap_score_threshold': float,
    'min_pose_score': float,
    'max_pose_detections': int,
}

_SOURCE_ENV_TYPES = {
    'source_width': int,
    'source_height': int,
    'model_input_width': int,
    'model_input_height': int,
}


def _env_overrides(section: str, types: Dict[str, type]) -> Dict[str, Any]:
    overrides = {}
    for name, cast in types.items():
        var_name = f"{ENV_PREFIX}{section}_{name}".upper()
        if var_name in os.environ:
            try:
                overrides[name] = cast(os.environ[var_name])
            except ValueError as e:
                raise ConfigError(f"Invalid value for {var_name}: {e}")
    return overrides


@dataclass(frozen=True)
class MultiPoseConfig:
    """Master configuration class combining all subconfigs"""
    decoder: DecoderConfig = field(default_factory=DecoderConfig)
    source: SourceConfig = field(default_factory=SourceConfig)

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "MultiPoseConfig":
        """
        Load configuration from YAML file

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            MultiPoseConfig instance

        Raises:
            FileNotFoundError: If YAML file not found
            ConfigError: If YAML format or a value is invalid
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        try:
            with open(yaml_path, 'r') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML format in {yaml_path}: {e}")

        try:
            return cls(
                decoder=DecoderConfig(**data.get('decoder', {})),
                source=SourceConfig(**data.get('source', {})),
            )
        except TypeError as e:
            raise ConfigError(f"Unknown configuration key in {yaml_path}: {e}")

    @classmethod
    def from_env(cls, base_config: Optional["MultiPoseConfig"] = None) -> "MultiPoseConfig":
        """
        Create config from environment variables

        Supports environment variables like:
        - MULTIPOSE_DECODER_NMS_RADIUS
        - MULTIPOSE_DECODER_MIN_POSE_SCORE
        - MULTIPOSE_SOURCE_SOURCE_WIDTH

        Args:
            base_config: Base configuration to override (default: new config)

        Returns:
            New MultiPoseConfig instance with environment overrides
        """
        config = base_config if base_config is not None else cls()

        decoder = replace(config.decoder, **_env_overrides('decoder', _DECODER_ENV_TYPES))
        source = replace(config.source, **_env_overrides('source', _SOURCE_ENV_TYPES))

        return replace(config, decoder=decoder, source=source)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary"""
        return asdict(self)

    def to_yaml(self, yaml_path: str) -> None:
        """
        Save configuration to YAML file

        Args:
            yaml_path: Path to save YAML configuration
        """
        yaml_path = Path(yaml_path)
        yaml_path.parent.mkdir(parents=True, exist_ok=True)

        with open(yaml_path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    def __str__(self) -> str:
        """String representation of config"""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)
