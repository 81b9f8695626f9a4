"""Configuration for auto-rotation."""

from .autorotate_config import AutoRotateConfig, RecognitionSettings

__all__ = [
    "AutoRotateConfig",
    "RecognitionSettings",
]
