"""
Data structures for rotation selection.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List
from enum import Enum


class Rotation(Enum):
    """Cardinal clockwise rotations that can be applied to a scan."""
    NONE = 0  # Leave the image as scanned
    CLOCKWISE_90 = 90
    CLOCKWISE_180 = 180
    CLOCKWISE_270 = 270  # 90° counter-clockwise

    @property
    def degrees(self) -> int:
        """Get rotation in degrees."""
        return self.value

    @classmethod
    def from_degrees(cls, degrees: int) -> "Rotation":
        """
        Look up a rotation by its clockwise angle.

        Args:
            degrees: Angle in degrees, any multiple of 90 (negative allowed)

        Returns:
            Matching Rotation

        Raises:
            ValueError: If the angle is not a multiple of 90
        """
        if degrees % 90 != 0:
            raise ValueError(f"rotation must be a multiple of 90 degrees, got {degrees}")
        return cls(degrees % 360)


# Evaluation order; earlier entries win ties.
CANDIDATE_ORDER = (
    Rotation.NONE,
    Rotation.CLOCKWISE_90,
    Rotation.CLOCKWISE_180,
    Rotation.CLOCKWISE_270,
)


class SelectionReason(Enum):
    """Why a selection call returned the rotation it did."""
    NO_ENGINE = "no_engine"
    BELOW_THRESHOLD = "below_threshold"
    ACCEPTED = "accepted"
    FAILED = "failed"


@dataclass(frozen=True)
class RotationCandidate:
    """
    Score of a single rendering of the page.

    Attributes:
        rotation: Rotation applied before recognition
        text_length: Number of characters the engine recognised
    """
    rotation: Rotation
    text_length: int

    def __post_init__(self):
        """Validate score."""
        if self.text_length < 0:
            raise ValueError(f"text_length must be >= 0, got {self.text_length}")

    def beats(self, other: "RotationCandidate") -> bool:
        """Strictly better than another candidate; equal scores never win."""
        return self.text_length > other.text_length

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "rotation": self.rotation.name,
            "degrees": self.rotation.degrees,
            "text_length": self.text_length,
        }


@dataclass
class RotationResult:
    """
    Outcome of one rotation selection call.

    Attributes:
        rotation: Rotation to apply (NONE when the evidence is too weak)
        reason: Why this rotation was returned
        candidates: Every candidate scored, in evaluation order
        min_text_length: Threshold the best candidate had to reach
        language_tag: Language of the engine used, if any
        error: Failure message when reason is FAILED
    """
    rotation: Rotation
    reason: SelectionReason
    candidates: List[RotationCandidate] = field(default_factory=list)
    min_text_length: int = 0
    language_tag: Optional[str] = None
    error: Optional[str] = None

    @property
    def needs_rotation(self) -> bool:
        """Check if the image should be rotated."""
        return self.rotation != Rotation.NONE

    @property
    def best_candidate(self) -> Optional[RotationCandidate]:
        """Highest scoring candidate, earliest one on ties."""
        best = None
        for candidate in self.candidates:
            if best is None or candidate.beats(best):
                best = candidate
        return best

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "rotation": self.rotation.name,
            "degrees": self.rotation.degrees,
            "needs_rotation": self.needs_rotation,
            "reason": self.reason.value,
            "min_text_length": self.min_text_length,
            "language_tag": self.language_tag,
            "candidates": [c.to_dict() for c in self.candidates],
            "error": self.error,
        }

    @classmethod
    def no_engine(cls, min_text_length: int = 0) -> "RotationResult":
        """Create result for calls made while no engine is bound."""
        return cls(
            rotation=Rotation.NONE,
            reason=SelectionReason.NO_ENGINE,
            min_text_length=min_text_length,
        )

    @classmethod
    def failed(
        cls,
        error: str,
        candidates: Optional[List[RotationCandidate]] = None,
        min_text_length: int = 0,
        language_tag: Optional[str] = None,
    ) -> "RotationResult":
        """Create result for a call aborted by a codec or recognition failure."""
        return cls(
            rotation=Rotation.NONE,
            reason=SelectionReason.FAILED,
            candidates=list(candidates or []),
            min_text_length=min_text_length,
            language_tag=language_tag,
            error=error,
        )
