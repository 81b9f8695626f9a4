"""
Recognition engine and factory interfaces.

Factories build engines bound to one RecognizerLanguage. Construction can
fail for reasons outside our control (model not installed, binary missing),
so every try_* method returns None instead of raising.
"""

from typing import Callable, List, Optional
import logging
import threading

import numpy as np

from .models import RecognizerLanguage, normalize_language_tag, primary_subtag, system_language_tags

logger = logging.getLogger(__name__)


def collapse_whitespace(text: str) -> str:
    """Join recognised lines and words with single spaces."""
    return " ".join(text.split())


class RecognitionEngine:
    """
    Text recognizer bound to exactly one language.

    Subclasses implement _recognize(). Engines that set ``thread_safe`` to
    False have their calls serialised by an internal lock.
    """

    thread_safe = True

    def __init__(self, language: RecognizerLanguage):
        self.language = language
        self._lock = threading.Lock()

    def recognize(self, pixels: np.ndarray) -> str:
        """
        Extract text from a bitmap.

        Args:
            pixels: BGR or grayscale image

        Returns:
            Recognised text with whitespace collapsed ("" when nothing found)

        Raises:
            RecognitionError: If the engine fails
        """
        if self.thread_safe:
            text = self._recognize(pixels)
        else:
            with self._lock:
                text = self._recognize(pixels)
        return collapse_whitespace(text or "")

    def _recognize(self, pixels: np.ndarray) -> str:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(language={self.language.tag!r})"


class RecognizerFactory:
    """
    Builds recognition engines from the host's installed language models.

    Subclasses implement available_languages() and create().
    """

    def __init__(self, profile_languages: Optional[Callable[[], List[str]]] = None):
        """
        Initialize factory.

        Args:
            profile_languages: Returns the user's preferred language tags,
                most preferred first (default: read from the environment)
        """
        self._profile_languages = profile_languages or system_language_tags

    def available_languages(self) -> List[RecognizerLanguage]:
        """Get installed languages in catalog order."""
        raise NotImplementedError

    def create(self, language: RecognizerLanguage) -> RecognitionEngine:
        """
        Build an engine for a catalog language.

        Raises:
            Exception: Any construction failure
        """
        raise NotImplementedError

    def profile_language_tags(self) -> List[str]:
        """Get the user's preferred language tags."""
        return [normalize_language_tag(tag) for tag in self._profile_languages() if tag]

    def find_language(self, tag: str) -> Optional[RecognizerLanguage]:
        """Find the catalog entry with exactly this tag."""
        if not tag:
            return None
        for language in self.available_languages():
            if language.matches(tag):
                return language
        return None

    def try_create_from_language(self, language: RecognizerLanguage) -> Optional[RecognitionEngine]:
        """Build an engine, or None if construction fails."""
        try:
            return self.create(language)
        except Exception as e:
            logger.debug(f"Could not create engine for {language.tag}: {e}")
            return None

    def try_create(self, tag: str) -> Optional[RecognitionEngine]:
        """
        Build an engine for an exact language tag.

        Returns:
            Engine, or None if the tag is not installed or fails to load
        """
        language = self.find_language(tag)
        if language is None:
            logger.debug(f"Language {tag!r} is not installed")
            return None
        return self.try_create_from_language(language)

    def try_create_default(self) -> Optional[RecognitionEngine]:
        """
        Build an engine from the user's preferred languages.

        Each preferred tag is tried exactly, then by language subtag
        ("en-GB" falls back to an installed "en-US").
        """
        catalog = self.available_languages()
        for tag in self.profile_language_tags():
            for language in self._profile_matches(tag, catalog):
                engine = self.try_create_from_language(language)
                if engine is not None:
                    return engine
        return None

    def default_language(self) -> Optional[RecognizerLanguage]:
        """
        Best installed match for the user's preferred languages, or None.

        Only the catalog is consulted; no engine is built. This is the
        language try_create_default() tries first.
        """
        catalog = self.available_languages()
        for tag in self.profile_language_tags():
            matches = self._profile_matches(tag, catalog)
            if matches:
                return matches[0]
        return None

    def _profile_matches(
        self,
        tag: str,
        catalog: List[RecognizerLanguage],
    ) -> List[RecognizerLanguage]:
        """Catalog entries for a preferred tag, exact matches first."""
        exact = [language for language in catalog if language.matches(tag)]
        subtag = primary_subtag(tag)
        related = [
            language for language in catalog
            if language.primary_subtag == subtag and language not in exact
        ]
        return exact + related
