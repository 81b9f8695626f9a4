"""
Recognizer language values and host language discovery.
"""

from dataclasses import dataclass
from typing import Dict, Any, List, Optional
import locale
import os


@dataclass(frozen=True)
class RecognizerLanguage:
    """
    Language/script model the recognition engine can load.

    Attributes:
        tag: Language tag, e.g. "en-US"
        display_name: Human-readable name, e.g. "English (United States)"
    """
    tag: str
    display_name: str

    def __post_init__(self):
        """Validate tag."""
        if not self.tag:
            raise ValueError("tag must not be empty")

    @property
    def primary_subtag(self) -> str:
        """Language part of the tag ("en" for "en-US")."""
        return primary_subtag(self.tag)

    def matches(self, tag: str) -> bool:
        """Exact, case-insensitive tag comparison."""
        return self.tag.lower() == normalize_language_tag(tag).lower()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "tag": self.tag,
            "display_name": self.display_name,
        }


def normalize_language_tag(value: Optional[str]) -> str:
    """
    Turn a POSIX locale name into a language tag.

    "en_US.UTF-8" -> "en-US", "de_DE@euro" -> "de-DE". Values that are
    already tags pass through unchanged.
    """
    if not value:
        return ""
    tag = value.split(".", 1)[0].split("@", 1)[0]
    return tag.replace("_", "-").strip()


def primary_subtag(tag: str) -> str:
    """Get the language subtag of a tag, lower-cased."""
    return normalize_language_tag(tag).split("-", 1)[0].lower()


def system_language_tags() -> List[str]:
    """
    Get the user's preferred languages, most preferred first.

    Reads LANGUAGE (colon separated), LC_ALL, LC_MESSAGES and LANG, then
    the process locale. "C" and "POSIX" are skipped, duplicates dropped.
    """
    candidates: List[str] = []

    language_list = os.environ.get("LANGUAGE", "")
    candidates.extend(language_list.split(":"))

    for variable in ("LC_ALL", "LC_MESSAGES", "LANG"):
        candidates.append(os.environ.get(variable, ""))

    try:
        candidates.append(locale.getlocale()[0] or "")
    except ValueError:
        # unknown locale name in the environment
        pass

    tags: List[str] = []
    seen = set()
    for candidate in candidates:
        tag = normalize_language_tag(candidate)
        if not tag or tag.upper() in ("C", "POSIX"):
            continue
        if tag.lower() in seen:
            continue
        seen.add(tag.lower())
        tags.append(tag)

    return tags
