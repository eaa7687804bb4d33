"""
Configuration management for the fingermatch engine.

This module provides utilities for loading, validating, and accessing
configuration parameters from YAML files. All values are read once at
construction time; components never consult the configuration again.
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union
import yaml


@dataclass(frozen=True)
class NormalizationConfig:
    """Configuration for canvas normalization."""
    canvas_size: int = 256
    clahe_clip_limit: float = 3.0
    clahe_tile_size: tuple = (8, 8)
    polarity_threshold: float = 127.0


@dataclass(frozen=True)
class SegmentationConfig:
    """Configuration for skin segmentation and graph-cut refinement."""
    hsv_lower: tuple = (0, 40, 80)
    hsv_upper: tuple = (20, 160, 255)
    skin_kernel_size: int = 9
    skin_iterations: int = 2
    max_side: int = 900
    rect_padding: float = 0.20
    fallback_coverage: float = 0.96
    min_rect_side: int = 50
    min_rect_area_ratio: float = 0.05
    grabcut_iterations: int = 7
    min_component_area: float = 0.01
    max_component_area: float = 0.90
    min_aspect_ratio: float = 0.8
    median_kernel: int = 5
    roi_padding: float = 0.05


@dataclass(frozen=True)
class RidgeConfig:
    """Configuration for Gabor ridge enhancement."""
    energy_frequencies: tuple = (0.08, 0.10, 0.12, 0.15)
    energy_orientations: int = 12
    clahe_clip_limit: float = 2.0
    sharpen_factor: float = 1.6
    threshold_block_size: int = 15
    threshold_offset: float = -3.0


@dataclass(frozen=True)
class AlignmentConfig:
    """Configuration for rotation search alignment."""
    max_angle: float = 20.0
    angle_step: float = 4.0


@dataclass(frozen=True)
class FeatureConfig:
    """Configuration for feature extraction."""
    core_ratio: float = 0.7
    orientation_block_size: int = 16
    frequency_block_size: int = 32
    gabor_frequencies: tuple = (0.08, 0.10, 0.13)
    gabor_orientations: int = 8
    gabor_kernel_size: int = 21
    gabor_sigma: float = 3.5
    texture_grid: int = 4
    peak_min_distance: int = 3
    peak_height_ratio: float = 0.3


@dataclass(frozen=True)
class ScoringConfig:
    """Configuration for fusion weights and decision bands."""
    weights: Dict[str, float] = field(default_factory=lambda: {
        'orientation': 0.30,
        'gabor': 0.25,
        'frequency': 0.20,
        'texture': 0.15,
        'pixel': 0.10,
    })
    match_threshold: float = 58.0
    uncertain_threshold: float = 45.0
    min_coherence: float = 0.2
    num_workers: Optional[int] = None


@dataclass(frozen=True)
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"
    log_dir: Optional[str] = None


@dataclass(frozen=True)
class Config:
    """
    Main configuration container for the fingermatch engine.

    Attributes:
        normalization: Canvas normalization settings
        segmentation: Skin segmentation and refinement settings
        ridges: Ridge enhancement settings
        alignment: Alignment search settings
        features: Feature extraction settings
        scoring: Fusion weights and decision thresholds
        logging: Logging configuration
    """
    normalization: NormalizationConfig = field(default_factory=NormalizationConfig)
    segmentation: SegmentationConfig = field(default_factory=SegmentationConfig)
    ridges: RidgeConfig = field(default_factory=RidgeConfig)
    alignment: AlignmentConfig = field(default_factory=AlignmentConfig)
    features: FeatureConfig = field(default_factory=FeatureConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


_SECTIONS = {
    'normalization': NormalizationConfig,
    'segmentation': SegmentationConfig,
    'ridges': RidgeConfig,
    'alignment': AlignmentConfig,
    'features': FeatureConfig,
    'scoring': ScoringConfig,
    'logging': LoggingConfig,
}


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        path: Path to the YAML file

    Returns:
        Dictionary containing the configuration (empty for an empty file)

    Raises:
        FileNotFoundError: If the configuration file does not exist
        yaml.YAMLError: If the YAML file is malformed
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, 'r') as f:
        return yaml.safe_load(f) or {}


def merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge two configuration dictionaries.

    The override dictionary values take precedence over base values.

    Args:
        base: Base configuration dictionary
        override: Override configuration dictionary

    Returns:
        Merged configuration dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def _build_section(section_cls: type, values: Dict[str, Any]) -> Any:
    """Instantiate a config section, converting YAML lists to tuples."""
    known = {f.name: f for f in fields(section_cls)}
    unknown = set(values) - set(known)
    if unknown:
        raise ValueError(
            f"Unknown keys for {section_cls.__name__}: {sorted(unknown)}"
        )

    kwargs = {}
    for key, value in values.items():
        if isinstance(value, list):
            value = tuple(value)
        kwargs[key] = value

    return section_cls(**kwargs)


def config_from_dict(config_dict: Dict[str, Any]) -> Config:
    """
    Build a Config from a (possibly partial) nested dictionary.

    Args:
        config_dict: Mapping of section name to section values

    Returns:
        Config object; missing sections and keys keep their defaults

    Raises:
        ValueError: If a section or key is not recognised
    """
    unknown = set(config_dict) - set(_SECTIONS)
    if unknown:
        raise ValueError(f"Unknown configuration sections: {sorted(unknown)}")

    sections = {
        name: _build_section(section_cls, config_dict.get(name) or {})
        for name, section_cls in _SECTIONS.items()
    }
    scoring = sections['scoring']
    if set(scoring.weights) != set(DEFAULT_CONFIG.scoring.weights):
        raise ValueError(
            f"Scoring weights must define exactly "
            f"{sorted(DEFAULT_CONFIG.scoring.weights)}, got {sorted(scoring.weights)}"
        )

    return Config(**sections)


def load_config(
    config_path: Union[str, Path],
    base_config_path: Optional[Union[str, Path]] = None
) -> Config:
    """
    Load configuration from YAML files.

    Optionally merges with a base configuration file.

    Args:
        config_path: Path to the main configuration file
        base_config_path: Optional path to base configuration to merge with

    Returns:
        Config object with loaded settings
    """
    config_dict = load_yaml(config_path)

    if base_config_path is not None:
        base_dict = load_yaml(base_config_path)
        config_dict = merge_configs(base_dict, config_dict)

    return config_from_dict(config_dict)


# Default configuration instance
DEFAULT_CONFIG = Config()
