"""
Image rotation utilities.

Only cardinal rotations are supported; skew correction is out of scope.
"""

from typing import Tuple, Union
import numpy as np
import cv2

from .models import Rotation, RotationResult


# cv2.rotate codes for each non-trivial rotation
_CV2_ROTATE_CODES = {
    Rotation.CLOCKWISE_90: cv2.ROTATE_90_CLOCKWISE,
    Rotation.CLOCKWISE_180: cv2.ROTATE_180,
    Rotation.CLOCKWISE_270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


def rotate_image(
    image: np.ndarray,
    rotation: Union[Rotation, int],
) -> np.ndarray:
    """
    Rotate image clockwise by a cardinal angle.

    Args:
        image: Input image (BGR or grayscale)
        rotation: Rotation or angle in degrees (multiple of 90)

    Returns:
        Rotated image. Always a new array, the input is never modified.

    Raises:
        ValueError: If the angle is not a multiple of 90

    Example:
        >>> rotated = rotate_image(image, Rotation.CLOCKWISE_90)
    """
    if not isinstance(rotation, Rotation):
        rotation = Rotation.from_degrees(rotation)

    if rotation == Rotation.NONE:
        return image.copy()

    return cv2.rotate(image, _CV2_ROTATE_CODES[rotation])


def correct_orientation(
    image: np.ndarray,
    result: RotationResult,
) -> np.ndarray:
    """
    Apply the rotation recommended by a selection result.

    Args:
        image: Input image
        result: Rotation selection result

    Returns:
        Corrected image
    """
    if not result.needs_rotation:
        return image.copy()

    return rotate_image(image, result.rotation)


def get_rotated_dimensions(
    width: int,
    height: int,
    rotation: Union[Rotation, int],
) -> Tuple[int, int]:
    """
    Calculate new dimensions after rotation.

    Args:
        width: Original width
        height: Original height
        rotation: Rotation or angle in degrees (multiple of 90)

    Returns:
        (new_width, new_height)
    """
    if not isinstance(rotation, Rotation):
        rotation = Rotation.from_degrees(rotation)

    if rotation in (Rotation.NONE, Rotation.CLOCKWISE_180):
        return (width, height)
    return (height, width)
