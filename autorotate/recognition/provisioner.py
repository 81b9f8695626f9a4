"""
Recognition engine provisioning.

Resolves the persisted language preference to a loaded engine, falling
back through an ordered list of tiers:

    1. the configured language tag
    2. the user's default language
    3. the first installed language that loads

and writes the language that actually loaded back to the preference.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging
import threading

from ..settings.store import AppSetting, SettingsStore
from .base import RecognitionEngine, RecognizerFactory
from .models import RecognizerLanguage

logger = logging.getLogger(__name__)


class ProvisioningTier(Enum):
    """Where the current engine came from."""
    CONFIGURED = "configured"
    SYSTEM_DEFAULT = "system_default"
    CATALOG = "catalog"
    NONE = "none"


@dataclass(frozen=True)
class EngineSnapshot:
    """Engine reference as seen by one reader, with the cell version it came from."""
    engine: Optional[RecognitionEngine]
    version: int

    @property
    def language(self) -> Optional[RecognizerLanguage]:
        return self.engine.language if self.engine is not None else None


class EngineCell:
    """
    Single-owner holder for the current engine.

    Readers take a snapshot and keep using it; swap() replaces the reference
    as a whole, so a reader never observes a half-updated engine.
    """

    def __init__(self, engine: Optional[RecognitionEngine] = None):
        self._lock = threading.Lock()
        self._snapshot = EngineSnapshot(engine=engine, version=0)

    def get(self) -> EngineSnapshot:
        with self._lock:
            return self._snapshot

    def swap(self, engine: Optional[RecognitionEngine]) -> EngineSnapshot:
        """
        Replace the engine.

        Returns:
            The snapshot that was replaced
        """
        with self._lock:
            previous = self._snapshot
            self._snapshot = EngineSnapshot(engine=engine, version=previous.version + 1)
            return previous


@dataclass
class ProvisioningOutcome:
    """
    Result of one provisioning run.

    Attributes:
        tier: Tier that produced the engine (NONE if every tier failed)
        language: Language of the bound engine, if any
        configured_tag: Preference value read at the start of the run
        persisted: Whether the preference was rewritten
    """
    tier: ProvisioningTier
    language: Optional[RecognizerLanguage]
    configured_tag: str
    persisted: bool = False

    @property
    def available(self) -> bool:
        """Check if an engine is bound."""
        return self.language is not None

    @property
    def resolved_tag(self) -> str:
        """Tag written to (or already in) the preference; "" when unbound."""
        return self.language.tag if self.language is not None else ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "tier": self.tier.value,
            "language": self.language.to_dict() if self.language else None,
            "configured_tag": self.configured_tag,
            "persisted": self.persisted,
        }


EngineAttempt = Callable[[], Optional[RecognitionEngine]]


class EngineProvisioner:
    """
    Owns the recognition engine and keeps the language preference in sync.

    Example:
        >>> provisioner = EngineProvisioner(TesseractRecognizerFactory(), SettingsStore())
        >>> outcome = provisioner.initialize()
        >>> outcome.tier, outcome.resolved_tag
        (<ProvisioningTier.SYSTEM_DEFAULT: 'system_default'>, 'en-US')
    """

    def __init__(
        self,
        factory: RecognizerFactory,
        settings: SettingsStore,
        cell: Optional[EngineCell] = None,
    ):
        """
        Initialize provisioner. No engine is loaded until initialize().

        Args:
            factory: Builds engines for installed languages
            settings: Store holding the language preference
            cell: Engine holder shared with readers (default: new cell)
        """
        self.factory = factory
        self.settings = settings
        self.cell = cell or EngineCell()
        self.last_outcome: Optional[ProvisioningOutcome] = None

        self._lock = threading.RLock()
        self._local = threading.local()

    @property
    def engine(self) -> Optional[RecognitionEngine]:
        """Currently bound engine."""
        return self.cell.get().engine

    @property
    def language(self) -> Optional[RecognizerLanguage]:
        """Language of the currently bound engine."""
        return self.cell.get().language

    @property
    def available_languages(self) -> List[RecognizerLanguage]:
        """All installed languages, in catalog order."""
        try:
            return self.factory.available_languages()
        except Exception as e:
            logger.warning(f"Listing recognizer languages failed: {e}")
            return []

    @property
    def default_language(self) -> Optional[RecognizerLanguage]:
        """Language tier 2 tries first, ignoring the preference."""
        try:
            return self.factory.default_language()
        except Exception as e:
            logger.warning(f"Resolving the default recognizer language failed: {e}")
            return None

    def initialize(self) -> ProvisioningOutcome:
        """
        Bind an engine following the tier order and persist the result.

        Never raises for engine failures: a run where every tier fails
        leaves no engine bound and the preference empty.

        Returns:
            ProvisioningOutcome describing the binding
        """
        with self._lock:
            configured_tag = self.settings.get(AppSetting.AUTO_ROTATE_LANGUAGE, "") or ""
            logger.info(f"Provisioning recognition engine (configured: {configured_tag!r})")

            engine, tier = self._resolve(self._tiers(configured_tag))
            self.cell.swap(engine)

            outcome = ProvisioningOutcome(
                tier=tier,
                language=engine.language if engine is not None else None,
                configured_tag=configured_tag,
            )

            # Also rewrites a configured tag that only matched ignoring case
            if outcome.resolved_tag != configured_tag:
                outcome.persisted = self._write_back(outcome.resolved_tag)

            if outcome.available:
                logger.info(
                    f"Recognition engine bound to {outcome.resolved_tag} "
                    f"(tier: {tier.value}, persisted: {outcome.persisted})"
                )
            else:
                logger.warning("No recognition language could be loaded; auto-rotation unavailable")

            self.last_outcome = outcome
            return outcome

    def on_setting_changed(self, key: str) -> None:
        """
        Settings listener: re-provision when the language preference changes.

        Changes made by our own write-back are ignored.
        """
        if key != AppSetting.AUTO_ROTATE_LANGUAGE.value:
            return
        if getattr(self._local, "writing_back", False):
            return
        logger.info("Recognition language preference changed, re-provisioning")
        self.initialize()

    def select_language(self, selection) -> bool:
        """
        Set the language preference by catalog index or by tag.

        An out-of-range index is ignored. Re-provisioning happens through
        the settings change notification.

        Args:
            selection: Catalog index (int) or language tag (str)

        Returns:
            True if the preference changed
        """
        if isinstance(selection, int):
            languages = self.available_languages
            if not 0 <= selection < len(languages):
                logger.warning(f"Ignoring language index {selection} ({len(languages)} installed)")
                return False
            tag = languages[selection].tag
        else:
            tag = str(selection)

        try:
            return self.settings.set(AppSetting.AUTO_ROTATE_LANGUAGE, tag)
        except OSError as e:
            logger.warning(f"Could not save recognition language {tag!r}: {e}")
            return False

    def _tiers(self, configured_tag: str) -> List[Tuple[ProvisioningTier, EngineAttempt]]:
        """Ordered attempts for one provisioning run."""
        tiers: List[Tuple[ProvisioningTier, EngineAttempt]] = []
        if configured_tag:
            tiers.append((ProvisioningTier.CONFIGURED, lambda: self.factory.try_create(configured_tag)))
        tiers.append((ProvisioningTier.SYSTEM_DEFAULT, self.factory.try_create_default))
        tiers.append((ProvisioningTier.CATALOG, self._first_installed))
        return tiers

    def _resolve(
        self,
        tiers: List[Tuple[ProvisioningTier, EngineAttempt]],
    ) -> Tuple[Optional[RecognitionEngine], ProvisioningTier]:
        """Run attempts in order; the first engine wins."""
        for tier, attempt in tiers:
            try:
                engine = attempt()
            except Exception as e:
                logger.warning(f"Provisioning tier {tier.value} failed: {e}")
                engine = None

            if engine is not None:
                return engine, tier
            logger.debug(f"Provisioning tier {tier.value} produced no engine")

        return None, ProvisioningTier.NONE

    def _first_installed(self) -> Optional[RecognitionEngine]:
        for language in self.factory.available_languages():
            engine = self.factory.try_create_from_language(language)
            if engine is not None:
                return engine
        return None

    def _write_back(self, tag: str) -> bool:
        self._local.writing_back = True
        try:
            return self.settings.set(AppSetting.AUTO_ROTATE_LANGUAGE, tag)
        except OSError as e:
            logger.warning(f"Could not persist recognition language {tag!r}: {e}")
            return False
        finally:
            self._local.writing_back = False
