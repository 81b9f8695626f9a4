"""
Tesseract Recognition Engine
=============================
Recognition engines backed by Tesseract via the pytesseract binding.

Prerequisites:
    1. System package:   sudo apt install tesseract-ocr (+ tesseract-ocr-<lang>)
    2. Python binding:   pip install pytesseract pillow

Design notes:
    - The catalog is whatever ``tesseract --list-langs`` reports, in that
      order. Helper models (orientation/script detection, equations) are
      not recognizer languages and are skipped.
    - Tesseract model codes are mapped to language tags through
      TESSERACT_LANGUAGES; unmapped models keep their code as the tag.
    - Every recognise call is a separate tesseract process, so engines are
      safe to use from several threads at once.
"""

from typing import Dict, List, Optional, Tuple
import logging

import cv2
import numpy as np
import pytesseract
from PIL import Image

from ..errors import RecognitionError
from .base import RecognitionEngine, RecognizerFactory
from .models import RecognizerLanguage

logger = logging.getLogger(__name__)


# tesseract model code -> (language tag, display name)
TESSERACT_LANGUAGES: Dict[str, Tuple[str, str]] = {
    "ara": ("ar-SA", "Arabic (Saudi Arabia)"),
    "ces": ("cs-CZ", "Czech (Czechia)"),
    "chi_sim": ("zh-Hans-CN", "Chinese (Simplified, China)"),
    "chi_tra": ("zh-Hant-TW", "Chinese (Traditional, Taiwan)"),
    "dan": ("da-DK", "Danish (Denmark)"),
    "deu": ("de-DE", "German (Germany)"),
    "ell": ("el-GR", "Greek (Greece)"),
    "eng": ("en-US", "English (United States)"),
    "fin": ("fi-FI", "Finnish (Finland)"),
    "fra": ("fr-FR", "French (France)"),
    "hun": ("hu-HU", "Hungarian (Hungary)"),
    "ita": ("it-IT", "Italian (Italy)"),
    "jpn": ("ja-JP", "Japanese (Japan)"),
    "kor": ("ko-KR", "Korean (Korea)"),
    "nld": ("nl-NL", "Dutch (Netherlands)"),
    "nor": ("nb-NO", "Norwegian Bokmål (Norway)"),
    "pol": ("pl-PL", "Polish (Poland)"),
    "por": ("pt-PT", "Portuguese (Portugal)"),
    "ron": ("ro-RO", "Romanian (Romania)"),
    "rus": ("ru-RU", "Russian (Russia)"),
    "slk": ("sk-SK", "Slovak (Slovakia)"),
    "spa": ("es-ES", "Spanish (Spain)"),
    "swe": ("sv-SE", "Swedish (Sweden)"),
    "tur": ("tr-TR", "Turkish (Türkiye)"),
    "ukr": ("uk-UA", "Ukrainian (Ukraine)"),
}

# Installed models that cannot recognise text on their own
HELPER_MODELS = frozenset({"osd", "equ", "snum"})


def language_for_model(model: str) -> RecognizerLanguage:
    """Get the RecognizerLanguage for a tesseract model code."""
    tag, display_name = TESSERACT_LANGUAGES.get(model, (model.replace("_", "-"), model))
    return RecognizerLanguage(tag=tag, display_name=display_name)


class TesseractEngine(RecognitionEngine):
    """
    Tesseract-based recognizer for one installed model.

    Usage::

        engine = TesseractEngine(language, model="eng")
        text = engine.recognize(bitmap.pixels)
    """

    def __init__(
        self,
        language: RecognizerLanguage,
        model: str,
        page_segmentation_mode: int = 3,
        timeout_seconds: float = 0,
    ):
        """
        Args:
            language               : Language this engine is bound to.
            model                  : Tesseract model code (e.g. "eng").
            page_segmentation_mode : Page segmentation mode (0-13). Common:
                                     3 = Fully automatic (default)
                                     6 = Uniform block of text
                                     11 = Sparse text
            timeout_seconds        : Kill tesseract after this long (0 = never).
        """
        super().__init__(language)
        self.model = model
        self.page_segmentation_mode = page_segmentation_mode
        self.timeout_seconds = timeout_seconds

    def _recognize(self, pixels: np.ndarray) -> str:
        if pixels.ndim == 3:
            pixels = cv2.cvtColor(pixels, cv2.COLOR_BGR2RGB)
        image = Image.fromarray(pixels)

        try:
            text = pytesseract.image_to_string(
                image,
                lang=self.model,
                config=f"--psm {self.page_segmentation_mode}",
                timeout=self.timeout_seconds,
            )
        except pytesseract.TesseractError as e:
            raise RecognitionError(f"Tesseract failed ({self.model}): {e.message}") from e
        except RuntimeError as e:
            # pytesseract signals its timeout as a bare RuntimeError
            raise RecognitionError(f"Tesseract did not finish ({self.model}): {e}") from e

        logger.debug(f"Tesseract [{self.model}] recognised {len(text)} chars")
        return text


class TesseractRecognizerFactory(RecognizerFactory):
    """
    Builds TesseractEngine instances for installed models.

    Example:
        >>> factory = TesseractRecognizerFactory()
        >>> [language.tag for language in factory.available_languages()]
        ['de-DE', 'en-US']
    """

    def __init__(
        self,
        tesseract_cmd: Optional[str] = None,
        page_segmentation_mode: int = 3,
        timeout_seconds: float = 0,
        profile_languages=None,
    ):
        """
        Initialize factory.

        Args:
            tesseract_cmd: Path to the tesseract binary (default: from PATH)
            page_segmentation_mode: Page segmentation mode for new engines
            timeout_seconds: Per-call timeout for new engines (0 = none)
            profile_languages: Returns preferred language tags (see RecognizerFactory)
        """
        super().__init__(profile_languages=profile_languages)
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.page_segmentation_mode = page_segmentation_mode
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls, settings, profile_languages=None) -> "TesseractRecognizerFactory":
        """Create from RecognitionSettings."""
        return cls(
            tesseract_cmd=settings.tesseract_cmd,
            page_segmentation_mode=settings.page_segmentation_mode,
            timeout_seconds=settings.timeout_seconds,
            profile_languages=profile_languages,
        )

    def installed_models(self) -> List[str]:
        """
        Get installed recognition models in tesseract's order.

        Returns:
            Model codes, or an empty list when tesseract is unavailable
        """
        try:
            models = pytesseract.get_languages(config="")
        except (pytesseract.TesseractNotFoundError, pytesseract.TesseractError, OSError) as e:
            logger.warning(f"Could not list tesseract languages: {e}")
            return []
        return [model for model in models if model and model not in HELPER_MODELS]

    def available_languages(self) -> List[RecognizerLanguage]:
        return [language_for_model(model) for model in self.installed_models()]

    def create(self, language: RecognizerLanguage) -> TesseractEngine:
        model = self._model_for(language)
        if model is None:
            raise RecognitionError(f"No tesseract model installed for {language.tag}")

        return TesseractEngine(
            language,
            model=model,
            page_segmentation_mode=self.page_segmentation_mode,
            timeout_seconds=self.timeout_seconds,
        )

    def _model_for(self, language: RecognizerLanguage) -> Optional[str]:
        """Find the installed model behind a catalog language."""
        for model in self.installed_models():
            if language_for_model(model).matches(language.tag):
                return model
        return None
