"""
Image codec used to materialise rotated renderings of a scan.

Bitmaps and encoded streams are explicit resources: each one is released
exactly once, either by calling release() or by leaving its ``with`` block.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Tuple, Union
import logging

import numpy as np
import cv2

from ..errors import CodecError
from ..rotation.correction import rotate_image
from ..rotation.models import Rotation

logger = logging.getLogger(__name__)


class OutputFormat(Enum):
    """Target encodings a scan can be saved as."""
    PNG = "png"
    JPEG = "jpeg"
    TIFF = "tiff"
    BMP = "bmp"

    @property
    def extension(self) -> str:
        """File extension understood by cv2.imencode."""
        return {
            OutputFormat.PNG: ".png",
            OutputFormat.JPEG: ".jpg",
            OutputFormat.TIFF: ".tiff",
            OutputFormat.BMP: ".bmp",
        }[self]

    @classmethod
    def from_name(cls, name: Union[str, "OutputFormat"]) -> "OutputFormat":
        """Parse a format name or file extension (e.g. "jpg", ".TIF")."""
        if isinstance(name, OutputFormat):
            return name
        key = name.lower().lstrip(".")
        aliases = {"jpg": "jpeg", "tif": "tiff"}
        key = aliases.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unsupported output format: {name}") from None


@dataclass(frozen=True)
class EncoderSettings:
    """Encoder parameters for one output format."""
    format: OutputFormat
    params: Tuple[int, ...] = ()


def optimized_encoder_settings(output_format: Union[str, OutputFormat]) -> EncoderSettings:
    """
    Get encoder settings tuned for the intermediate re-encode.

    The intermediate image is decoded again straight away, so fast
    lossless (or near-lossless) settings are preferred over small files.

    Args:
        output_format: Target format or its name

    Returns:
        EncoderSettings for cv2.imencode
    """
    output_format = OutputFormat.from_name(output_format)

    if output_format == OutputFormat.PNG:
        params = (cv2.IMWRITE_PNG_COMPRESSION, 1)
    elif output_format == OutputFormat.JPEG:
        params = (cv2.IMWRITE_JPEG_QUALITY, 95)
    elif output_format == OutputFormat.TIFF:
        params = (cv2.IMWRITE_TIFF_COMPRESSION, 1)  # 1 = no compression
    else:
        params = ()

    return EncoderSettings(format=output_format, params=params)


class Bitmap:
    """
    Decoded image buffer with explicit release.

    Example:
        >>> with codec.decode(data) as bitmap:
        ...     text = engine.recognize(bitmap.pixels)
    """

    def __init__(
        self,
        pixels: np.ndarray,
        on_release: Optional[Callable[["Bitmap"], None]] = None,
    ):
        self._pixels = pixels
        self._on_release = on_release

    @property
    def pixels(self) -> np.ndarray:
        """Underlying BGR (or grayscale) array."""
        if self._pixels is None:
            raise CodecError("Bitmap has already been released")
        return self._pixels

    @property
    def released(self) -> bool:
        return self._pixels is None

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    def release(self) -> None:
        """Drop the pixel buffer. Releasing twice is a no-op."""
        if self._pixels is None:
            return
        self._pixels = None
        if self._on_release is not None:
            self._on_release(self)

    def __enter__(self) -> "Bitmap":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class EncodedStream:
    """In-memory encoded image with explicit release."""

    def __init__(
        self,
        data: bytes,
        output_format: OutputFormat,
        on_release: Optional[Callable[["EncodedStream"], None]] = None,
    ):
        self._data = data
        self.format = output_format
        self._on_release = on_release

    @property
    def data(self) -> bytes:
        if self._data is None:
            raise CodecError("Stream has already been released")
        return self._data

    @property
    def released(self) -> bool:
        return self._data is None

    def release(self) -> None:
        """Drop the encoded bytes. Releasing twice is a no-op."""
        if self._data is None:
            return
        self._data = None
        if self._on_release is not None:
            self._on_release(self)

    def __enter__(self) -> "EncodedStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class ImageCodec:
    """
    Decode/encode interface used by the rotation selector.

    Subclasses implement decode() and encode(); read() is shared.
    """

    def decode(self, data: bytes) -> Bitmap:
        """
        Decode an encoded image.

        Raises:
            CodecError: If the data is not a decodable image
        """
        raise NotImplementedError

    def encode(
        self,
        bitmap: Bitmap,
        settings: EncoderSettings,
        rotation: Rotation = Rotation.NONE,
    ) -> EncodedStream:
        """
        Encode a bitmap with a rotation transform applied.

        Raises:
            CodecError: If encoding fails
        """
        raise NotImplementedError

    def read(self, path: Union[str, Path]) -> Bitmap:
        """
        Read and decode an image file.

        Raises:
            CodecError: If the file is missing or unreadable
        """
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise CodecError(f"Could not read image {path}: {e}") from e
        return self.decode(data)


class OpenCVImageCodec(ImageCodec):
    """ImageCodec backed by cv2.imdecode / cv2.imencode."""

    def __init__(self, read_flags: int = cv2.IMREAD_COLOR):
        """
        Initialize codec.

        Args:
            read_flags: cv2.imdecode flags (default: 3-channel BGR)
        """
        self.read_flags = read_flags

    def decode(self, data: bytes) -> Bitmap:
        if not data:
            raise CodecError("Cannot decode empty image data")

        buffer = np.frombuffer(data, dtype=np.uint8)
        pixels = cv2.imdecode(buffer, self.read_flags)
        if pixels is None:
            raise CodecError(f"Could not decode image ({len(data)} bytes)")

        return Bitmap(pixels)

    def encode(
        self,
        bitmap: Bitmap,
        settings: EncoderSettings,
        rotation: Rotation = Rotation.NONE,
    ) -> EncodedStream:
        pixels = rotate_image(bitmap.pixels, rotation)

        try:
            ok, encoded = cv2.imencode(
                settings.format.extension, pixels, list(settings.params)
            )
        except cv2.error as e:
            raise CodecError(f"Encoding as {settings.format.value} failed: {e}") from e

        if not ok:
            raise CodecError(f"Encoding as {settings.format.value} failed")

        logger.debug(
            f"Encoded {pixels.shape[1]}x{pixels.shape[0]} bitmap as "
            f"{settings.format.value} ({rotation.degrees}°, {encoded.size} bytes)"
        )
        return EncodedStream(encoded.tobytes(), settings.format)
