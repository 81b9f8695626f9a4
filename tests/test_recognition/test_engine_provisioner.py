"""Tests for engine provisioning and language write-back."""

import pytest

from autorotate.recognition.provisioner import (
    EngineCell,
    EngineProvisioner,
    ProvisioningOutcome,
    ProvisioningTier,
)
from autorotate.settings.store import AppSetting, SettingsStore

from tests.fixtures.recognition_fixtures import (
    ENGLISH,
    FRENCH,
    GERMAN,
    FakeRecognizerFactory,
    ScriptedEngine,
)


LANGUAGE = AppSetting.AUTO_ROTATE_LANGUAGE


class RecordingStore(SettingsStore):
    """In-memory store that records every write."""

    def __init__(self, language: str = ""):
        super().__init__()
        self._values[LANGUAGE.value] = language
        self.writes = []

    def set(self, key, value):
        self.writes.append(value)
        return super().set(key, value)


def make_provisioner(language="", **factory_kwargs):
    store = RecordingStore(language)
    factory = FakeRecognizerFactory(**factory_kwargs)
    return EngineProvisioner(factory, store), factory, store


class TestEngineCell:
    """Tests for EngineCell."""

    def test_initially_empty(self):
        snapshot = EngineCell().get()
        assert snapshot.engine is None
        assert snapshot.language is None
        assert snapshot.version == 0

    def test_swap_returns_previous(self):
        """Test swap replaces the engine and bumps the version."""
        first = ScriptedEngine()
        cell = EngineCell(first)

        previous = cell.swap(ScriptedEngine(language=GERMAN))

        assert previous.engine is first
        assert cell.get().language == GERMAN
        assert cell.get().version == 1

    def test_snapshot_unaffected_by_swap(self):
        """Test a reader's snapshot keeps its engine."""
        cell = EngineCell(ScriptedEngine())
        snapshot = cell.get()

        cell.swap(None)

        assert snapshot.language == ENGLISH
        assert cell.get().engine is None


class TestTierOrder:
    """Tests for the provisioning tiers."""

    def test_nothing_loaded_before_initialize(self):
        provisioner, factory, _ = make_provisioner("en-US")
        assert provisioner.engine is None
        assert factory.attempts == []

    def test_configured_language_loads(self):
        """Test tier 1 success binds the tag and writes nothing."""
        provisioner, factory, store = make_provisioner("de-DE")

        outcome = provisioner.initialize()

        assert outcome.tier == ProvisioningTier.CONFIGURED
        assert provisioner.language == GERMAN
        assert factory.attempts == ["de-DE"]
        assert store.writes == []
        assert not outcome.persisted

    def test_configured_tag_case_canonicalised(self):
        """Test a tag matched ignoring case is rewritten to the bound tag."""
        provisioner, factory, store = make_provisioner("de-de")

        outcome = provisioner.initialize()

        assert outcome.tier == ProvisioningTier.CONFIGURED
        assert provisioner.language == GERMAN
        assert store.get(LANGUAGE) == "de-DE"
        assert store.writes == ["de-DE"]
        assert outcome.persisted
        assert factory.attempts == ["de-DE"]

    def test_unknown_configured_falls_back_to_default(self):
        """Test xx-XX is rewritten to the user's default language."""
        provisioner, factory, store = make_provisioner(
            "xx-XX", catalog=[ENGLISH, GERMAN], profile=["en-US"]
        )

        outcome = provisioner.initialize()

        assert outcome.tier == ProvisioningTier.SYSTEM_DEFAULT
        assert provisioner.language == ENGLISH
        assert store.get(LANGUAGE) == "en-US"
        assert store.writes == ["en-US"]
        assert outcome.persisted

    def test_unloadable_configured_falls_back(self):
        """Test an installed but broken language also falls back."""
        provisioner, factory, store = make_provisioner(
            "de-DE", loadable={"en-US"}, profile=["en-US"]
        )

        outcome = provisioner.initialize()

        assert outcome.tier == ProvisioningTier.SYSTEM_DEFAULT
        assert factory.attempts == ["de-DE", "en-US"]
        assert store.get(LANGUAGE) == "en-US"

    def test_empty_preference_skips_tier_one(self):
        """Test an unset preference goes straight to the default."""
        provisioner, factory, store = make_provisioner("", profile=["de-DE"])

        outcome = provisioner.initialize()

        assert outcome.tier == ProvisioningTier.SYSTEM_DEFAULT
        assert factory.attempts == ["de-DE"]
        assert store.get(LANGUAGE) == "de-DE"

    def test_catalog_fallback(self):
        """Test the first loadable installed language is used last."""
        provisioner, factory, store = make_provisioner(
            "ja-JP",
            catalog=[ENGLISH, GERMAN, FRENCH],
            loadable={"de-DE", "fr-FR"},
            profile=["it-IT"],
        )

        outcome = provisioner.initialize()

        assert outcome.tier == ProvisioningTier.CATALOG
        assert provisioner.language == GERMAN
        assert factory.attempts == ["en-US", "de-DE"]
        assert store.get(LANGUAGE) == "de-DE"

    def test_short_circuit(self):
        """Test later tiers are not tried once one succeeds."""
        provisioner, factory, _ = make_provisioner("fr-FR", catalog=[ENGLISH, FRENCH])

        provisioner.initialize()

        assert factory.attempts == ["fr-FR"]

    def test_all_tiers_fail(self):
        """Test no engine leaves the preference empty."""
        provisioner, _, store = make_provisioner("xx-XX", loadable=set())

        outcome = provisioner.initialize()

        assert outcome.tier == ProvisioningTier.NONE
        assert not outcome.available
        assert provisioner.engine is None
        assert store.get(LANGUAGE) == ""

    def test_all_tiers_fail_already_empty(self):
        """Test an empty preference is not rewritten with itself."""
        provisioner, _, store = make_provisioner("", catalog=[])

        outcome = provisioner.initialize()

        assert outcome.tier == ProvisioningTier.NONE
        assert store.writes == []
        assert not outcome.persisted

    def test_empty_catalog(self):
        """Test an empty catalog means no engine."""
        provisioner, _, _ = make_provisioner("en-US", catalog=[], profile=["en-US"])

        assert not provisioner.initialize().available

    def test_tier_exception_contained(self):
        """Test an exception inside a tier moves on to the next one."""
        provisioner, factory, _ = make_provisioner("", catalog=[GERMAN])

        def broken():
            raise RuntimeError("profile lookup failed")

        factory.try_create_default = broken

        outcome = provisioner.initialize()

        assert outcome.tier == ProvisioningTier.CATALOG
        assert provisioner.language == GERMAN

    def test_preference_matches_engine(self):
        """Test the preference always equals the bound tag after a run."""
        for configured in ["", "de-DE", "xx-XX", "fr-FR"]:
            provisioner, _, store = make_provisioner(configured, catalog=[ENGLISH, GERMAN])
            outcome = provisioner.initialize()
            assert store.get(LANGUAGE) == outcome.resolved_tag == provisioner.language.tag

    def test_reinitialize_replaces_engine(self):
        """Test each run swaps the engine in the cell."""
        provisioner, _, _ = make_provisioner("en-US")
        provisioner.initialize()
        first = provisioner.engine
        version = provisioner.cell.get().version

        provisioner.initialize()

        assert provisioner.engine is not first
        assert provisioner.cell.get().version == version + 1


class TestSettingsFollow:
    """Tests for re-provisioning on preference changes."""

    def test_reprovision_on_change(self):
        """Test a changed preference rebinds the engine."""
        provisioner, _, store = make_provisioner("en-US")
        provisioner.initialize()
        store.subscribe(provisioner.on_setting_changed)

        store.set(LANGUAGE, "de-DE")

        assert provisioner.language == GERMAN
        assert provisioner.last_outcome.tier == ProvisioningTier.CONFIGURED

    def test_other_keys_ignored(self):
        """Test unrelated settings do not re-provision."""
        provisioner, factory, store = make_provisioner("en-US")
        provisioner.initialize()
        store.subscribe(provisioner.on_setting_changed)

        store.set("theme", "dark")

        assert factory.attempts == ["en-US"]

    def test_write_back_does_not_recurse(self):
        """Test the write-back of a fallback does not trigger another run."""
        provisioner, factory, store = make_provisioner("en-US", profile=["en-US"])
        provisioner.initialize()
        store.subscribe(provisioner.on_setting_changed)
        runs = []
        original = provisioner.initialize

        def counting():
            runs.append(1)
            return original()

        provisioner.initialize = counting

        store.set(LANGUAGE, "xx-XX")

        assert len(runs) == 1
        assert store.get(LANGUAGE) == "en-US"
        assert provisioner.language == ENGLISH

    def test_unchanged_value_no_reprovision(self):
        """Test setting the same value does nothing."""
        provisioner, factory, store = make_provisioner("en-US")
        provisioner.initialize()
        store.subscribe(provisioner.on_setting_changed)

        store.set(LANGUAGE, "en-US")

        assert factory.attempts == ["en-US"]


class TestSelectLanguage:
    """Tests for select_language."""

    @pytest.fixture
    def subscribed(self):
        provisioner, factory, store = make_provisioner(
            "en-US", catalog=[ENGLISH, GERMAN, FRENCH]
        )
        provisioner.initialize()
        store.subscribe(provisioner.on_setting_changed)
        return provisioner, store

    def test_select_by_index(self, subscribed):
        provisioner, store = subscribed

        assert provisioner.select_language(2)
        assert store.get(LANGUAGE) == "fr-FR"
        assert provisioner.language == FRENCH

    def test_select_by_tag(self, subscribed):
        provisioner, store = subscribed

        assert provisioner.select_language("de-DE")
        assert provisioner.language == GERMAN

    @pytest.mark.parametrize("index", [-1, 3, 99])
    def test_out_of_range_index_ignored(self, subscribed, index):
        """Test invalid indices leave everything unchanged."""
        provisioner, store = subscribed

        assert not provisioner.select_language(index)
        assert store.get(LANGUAGE) == "en-US"
        assert provisioner.language == ENGLISH

    def test_select_tag_other_case(self, subscribed):
        """Test the stored tag ends up in the catalog's casing."""
        provisioner, store = subscribed

        provisioner.select_language("fr-fr")

        assert provisioner.language == FRENCH
        assert store.get(LANGUAGE) == "fr-FR"

    def test_select_unavailable_tag_falls_back(self, subscribed):
        """Test choosing a missing language ends on a working one."""
        provisioner, store = subscribed

        provisioner.select_language("xx-XX")

        assert provisioner.language == ENGLISH
        assert store.get(LANGUAGE) == "en-US"


class TestUnwritableSettings:
    """Tests for a preference file that cannot be saved."""

    @pytest.fixture
    def blocked_path(self, tmp_path):
        """Settings path whose parent directory is a regular file."""
        parent = tmp_path / "not_a_directory"
        parent.write_text("")
        return parent / "settings.json"

    def test_write_back_failure_contained(self, blocked_path):
        """Test initialize() binds the engine and reports nothing persisted."""
        store = SettingsStore(blocked_path, defaults={LANGUAGE.value: "xx-XX"})
        provisioner = EngineProvisioner(FakeRecognizerFactory(), store)

        outcome = provisioner.initialize()

        assert outcome.tier == ProvisioningTier.SYSTEM_DEFAULT
        assert not outcome.persisted
        assert provisioner.language == ENGLISH
        assert provisioner.last_outcome is outcome
        assert store.get(LANGUAGE) == "xx-XX"

    def test_select_language_failure_contained(self, blocked_path):
        """Test a failed save leaves the engine unchanged."""
        store = SettingsStore(blocked_path, defaults={LANGUAGE.value: "en-US"})
        provisioner = EngineProvisioner(FakeRecognizerFactory(), store)
        provisioner.initialize()
        store.subscribe(provisioner.on_setting_changed)

        assert not provisioner.select_language("de-DE")
        assert provisioner.language == ENGLISH
        assert store.get(LANGUAGE) == "en-US"


class TestProvisionerQueries:
    """Tests for catalog queries."""

    def test_available_languages(self):
        provisioner, _, _ = make_provisioner(catalog=[GERMAN, ENGLISH])
        assert provisioner.available_languages == [GERMAN, ENGLISH]

    def test_available_languages_failure(self):
        """Test catalog errors give an empty list."""
        provisioner, factory, _ = make_provisioner()

        def broken():
            raise OSError("tesseract crashed")

        factory.available_languages = broken

        assert provisioner.available_languages == []

    def test_default_language(self):
        provisioner, factory, _ = make_provisioner(profile=["de-DE"])
        assert provisioner.default_language == GERMAN
        assert factory.attempts == []

    def test_outcome_to_dict(self):
        outcome = ProvisioningOutcome(
            tier=ProvisioningTier.SYSTEM_DEFAULT,
            language=ENGLISH,
            configured_tag="xx-XX",
            persisted=True,
        )
        assert outcome.to_dict() == {
            "tier": "system_default",
            "language": {"tag": "en-US", "display_name": "English (United States)"},
            "configured_tag": "xx-XX",
            "persisted": True,
        }
