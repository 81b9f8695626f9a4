"""
Image Codec Module

Decoding, rotated re-encoding and explicit buffer release for scans.
"""

from .codec import (
    OutputFormat,
    EncoderSettings,
    optimized_encoder_settings,
    Bitmap,
    EncodedStream,
    ImageCodec,
    OpenCVImageCodec,
)

__all__ = [
    "OutputFormat",
    "EncoderSettings",
    "optimized_encoder_settings",
    "Bitmap",
    "EncodedStream",
    "ImageCodec",
    "OpenCVImageCodec",
]
