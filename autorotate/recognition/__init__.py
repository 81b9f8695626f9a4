"""
Recognition Module

Text-recognition engines, their language catalog, and provisioning with
fallback across languages.
"""

from .models import RecognizerLanguage, normalize_language_tag, system_language_tags
from .base import RecognitionEngine, RecognizerFactory
from .tesseract import TesseractEngine, TesseractRecognizerFactory
from .provisioner import (
    EngineCell,
    EngineSnapshot,
    EngineProvisioner,
    ProvisioningOutcome,
    ProvisioningTier,
)

__all__ = [
    "RecognizerLanguage",
    "normalize_language_tag",
    "system_language_tags",
    "RecognitionEngine",
    "RecognizerFactory",
    "TesseractEngine",
    "TesseractRecognizerFactory",
    "EngineCell",
    "EngineSnapshot",
    "EngineProvisioner",
    "ProvisioningOutcome",
    "ProvisioningTier",
]
