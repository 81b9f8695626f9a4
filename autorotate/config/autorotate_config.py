"""
Configuration for auto-rotation and the recognition backend.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional

from ..imaging.codec import OutputFormat
from ..rotation.selector import MINIMUM_NUMBER_OF_WORDS


@dataclass
class RecognitionSettings:
    """Settings for the Tesseract recognition backend."""
    tesseract_cmd: Optional[str] = None
    page_segmentation_mode: int = 3
    timeout_seconds: float = 0

    def __post_init__(self):
        """Validate recognition settings."""
        if not 0 <= self.page_segmentation_mode <= 13:
            raise ValueError(
                f"page_segmentation_mode must be between 0 and 13, got {self.page_segmentation_mode}"
            )
        if self.timeout_seconds < 0:
            raise ValueError(f"timeout_seconds must be >= 0, got {self.timeout_seconds}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "tesseract_cmd": self.tesseract_cmd,
            "page_segmentation_mode": self.page_segmentation_mode,
            "timeout_seconds": self.timeout_seconds,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecognitionSettings":
        """Create from dictionary."""
        return cls(
            tesseract_cmd=data.get("tesseract_cmd"),
            page_segmentation_mode=data.get("page_segmentation_mode", 3),
            timeout_seconds=data.get("timeout_seconds", 0),
        )


@dataclass
class AutoRotateConfig:
    """
    Configuration for the auto-rotator service.

    Attributes:
        min_text_length: Recognised characters the best rotation must reach
            before it is applied
        output_format: Default format scans are saved as
        settings_path: JSON file for persisted settings (None = memory only)
        recognition: Recognition backend settings
    """
    min_text_length: int = MINIMUM_NUMBER_OF_WORDS
    output_format: str = "png"
    settings_path: Optional[str] = None
    recognition: RecognitionSettings = field(default_factory=RecognitionSettings)

    def __post_init__(self):
        """Validate configuration values."""
        self._validate()

    def _validate(self):
        """Validate all configuration values."""
        if self.min_text_length < 0:
            raise ValueError(f"min_text_length must be >= 0, got {self.min_text_length}")

        # Raises ValueError for unknown formats
        OutputFormat.from_name(self.output_format)

        # Convert recognition settings from dict if needed
        if isinstance(self.recognition, dict):
            object.__setattr__(
                self,
                "recognition",
                RecognitionSettings.from_dict(self.recognition),
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "min_text_length": self.min_text_length,
            "output_format": self.output_format,
            "settings_path": self.settings_path,
            "recognition": self.recognition.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AutoRotateConfig":
        """Create from dictionary (e.g., from YAML config)."""
        recognition_data = data.get("recognition", {})
        recognition = (
            RecognitionSettings.from_dict(recognition_data) if recognition_data else RecognitionSettings()
        )

        return cls(
            min_text_length=data.get("min_text_length", MINIMUM_NUMBER_OF_WORDS),
            output_format=data.get("output_format", "png"),
            settings_path=data.get("settings_path"),
            recognition=recognition,
        )

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "AutoRotateConfig":
        """Load configuration from YAML file."""
        import yaml

        with open(yaml_path, "r") as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data.get("autorotate", data))

    @classmethod
    def default(cls) -> "AutoRotateConfig":
        """Create default configuration."""
        return cls()
