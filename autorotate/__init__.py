"""
Scanned Page Auto-Rotation Package

Determines which cardinal rotation makes a scanned page upright, using text
recognition as the scoring oracle, and manages the recognition language
with fallback when the configured one is unavailable.
"""

from .config.autorotate_config import AutoRotateConfig, RecognitionSettings
from .imaging.codec import OutputFormat, OpenCVImageCodec
from .recognition.models import RecognizerLanguage
from .recognition.provisioner import EngineProvisioner, ProvisioningOutcome, ProvisioningTier
from .recognition.tesseract import TesseractRecognizerFactory
from .rotation.models import Rotation, RotationResult
from .rotation.selector import RotationSelector, MINIMUM_NUMBER_OF_WORDS
from .service import AutoRotatorService
from .settings.store import AppSetting, SettingsStore

__all__ = [
    "AutoRotateConfig",
    "RecognitionSettings",
    "OutputFormat",
    "OpenCVImageCodec",
    "RecognizerLanguage",
    "EngineProvisioner",
    "ProvisioningOutcome",
    "ProvisioningTier",
    "TesseractRecognizerFactory",
    "Rotation",
    "RotationResult",
    "RotationSelector",
    "MINIMUM_NUMBER_OF_WORDS",
    "AutoRotatorService",
    "AppSetting",
    "SettingsStore",
]
