"""
Auto-rotator service.

Wires the engine provisioner, the rotation selector and the settings
store together. Construct it once; it provisions an engine immediately and
re-provisions whenever the language preference changes, until close().
"""

from typing import List, Optional, Union
import logging

from .config.autorotate_config import AutoRotateConfig
from .imaging.codec import ImageCodec, OutputFormat
from .recognition.base import RecognizerFactory
from .recognition.models import RecognizerLanguage
from .recognition.provisioner import EngineProvisioner, ProvisioningOutcome
from .recognition.tesseract import TesseractRecognizerFactory
from .rotation.models import Rotation, RotationResult
from .rotation.selector import ErrorCallback, ImageSource, RotationSelector
from .settings.store import SettingsStore

logger = logging.getLogger(__name__)


class AutoRotatorService:
    """
    Recommends rotations for scanned pages.

    Example:
        >>> with AutoRotatorService(SettingsStore("settings.json")) as service:
        ...     rotation = asyncio.run(service.determine_rotation("scan.png"))
    """

    def __init__(
        self,
        settings: SettingsStore,
        factory: Optional[RecognizerFactory] = None,
        codec: Optional[ImageCodec] = None,
        config: Optional[AutoRotateConfig] = None,
        error_callback: Optional[ErrorCallback] = None,
    ):
        """
        Initialize service and provision the recognition engine.

        Args:
            settings: Store holding the language preference
            factory: Recognition engine factory (default: Tesseract)
            codec: Image codec (default: OpenCV)
            config: Service configuration
            error_callback: Error-tracking sink for swallowed failures
        """
        self.config = config or AutoRotateConfig()
        self.settings = settings
        self.factory = factory or TesseractRecognizerFactory.from_settings(self.config.recognition)

        self.provisioner = EngineProvisioner(self.factory, settings)
        self.selector = RotationSelector(
            self.provisioner.cell,
            codec=codec,
            min_text_length=self.config.min_text_length,
            error_callback=error_callback,
        )

        logger.info("AutoRotatorService: Initializing")
        self.provisioner.initialize()
        self._subscription = settings.subscribe(self.provisioner.on_setting_changed)

    @classmethod
    def from_config(
        cls,
        config: AutoRotateConfig,
        error_callback: Optional[ErrorCallback] = None,
    ) -> "AutoRotatorService":
        """Create a service with a settings store at config.settings_path."""
        return cls(
            SettingsStore(config.settings_path),
            config=config,
            error_callback=error_callback,
        )

    @property
    def available_languages(self) -> List[RecognizerLanguage]:
        """All installed recognizer languages, in catalog order."""
        return self.provisioner.available_languages

    @property
    def default_language(self) -> Optional[RecognizerLanguage]:
        """Language chosen when no preference is configured."""
        return self.provisioner.default_language

    @property
    def current_language(self) -> Optional[RecognizerLanguage]:
        """Language of the bound engine, None when auto-rotation is unavailable."""
        return self.provisioner.language

    @property
    def is_available(self) -> bool:
        return self.provisioner.engine is not None

    def initialize(self) -> ProvisioningOutcome:
        """Re-run provisioning."""
        return self.provisioner.initialize()

    def select_language(self, selection: Union[int, str]) -> bool:
        """Set the language preference by catalog index or tag."""
        return self.provisioner.select_language(selection)

    async def determine_rotation(
        self,
        source: ImageSource,
        output_format: Optional[Union[str, OutputFormat]] = None,
    ) -> Rotation:
        """
        Get the rotation that makes the scan upright. Never raises.

        Args:
            source: Decoded image or encoded bytes / file path
            output_format: Format the scan will be saved as (default: config)
        """
        return await self.selector.determine_rotation(
            source, output_format or self.config.output_format
        )

    async def evaluate(
        self,
        source: ImageSource,
        output_format: Optional[Union[str, OutputFormat]] = None,
    ) -> RotationResult:
        """Like determine_rotation(), with per-candidate detail."""
        return await self.selector.evaluate(
            source, output_format or self.config.output_format
        )

    def close(self) -> None:
        """Stop following settings changes."""
        self._subscription.close()

    def __enter__(self) -> "AutoRotatorService":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
