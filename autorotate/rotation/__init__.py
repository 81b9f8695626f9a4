"""
Rotation Module

Cardinal rotation types and helpers. The selector lives in
``autorotate.rotation.selector`` since it depends on the codec, which in
turn uses these helpers.
"""

from .models import (
    Rotation,
    RotationCandidate,
    RotationResult,
    SelectionReason,
    CANDIDATE_ORDER,
)
from .correction import rotate_image, correct_orientation, get_rotated_dimensions

__all__ = [
    "Rotation",
    "RotationCandidate",
    "RotationResult",
    "SelectionReason",
    "CANDIDATE_ORDER",
    "rotate_image",
    "correct_orientation",
    "get_rotated_dimensions",
]
