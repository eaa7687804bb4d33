"""
Utility modules for the fingermatch engine.
"""

from .config import (
    Config,
    NormalizationConfig,
    SegmentationConfig,
    RidgeConfig,
    AlignmentConfig,
    FeatureConfig,
    ScoringConfig,
    LoggingConfig,
    config_from_dict,
    load_config,
    load_yaml,
    merge_configs,
    DEFAULT_CONFIG
)
from .logger import (
    ProgressTracker,
    setup_logger
)
from .io import (
    load_image,
    save_image,
    discover_images,
    load_candidates,
    save_json,
    SUPPORTED_EXTENSIONS
)

__all__ = [
    # Config
    'Config',
    'NormalizationConfig',
    'SegmentationConfig',
    'RidgeConfig',
    'AlignmentConfig',
    'FeatureConfig',
    'ScoringConfig',
    'LoggingConfig',
    'config_from_dict',
    'load_config',
    'load_yaml',
    'merge_configs',
    'DEFAULT_CONFIG',
    # Logger
    'ProgressTracker',
    'setup_logger',
    # IO
    'load_image',
    'save_image',
    'discover_images',
    'load_candidates',
    'save_json',
    'SUPPORTED_EXTENSIONS',
]
