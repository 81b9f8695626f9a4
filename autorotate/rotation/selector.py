"""
Rotation selection using text recognition as the scoring oracle.

The page is rendered at 0°, 90°, 180° and 270° (in that order), each
rendering is recognised, and the rotation that yields the most text wins.
"""

from pathlib import Path
from typing import Callable, List, Optional, Union
import asyncio
import logging

import numpy as np

from ..imaging.codec import (
    Bitmap,
    EncoderSettings,
    ImageCodec,
    OpenCVImageCodec,
    OutputFormat,
    optimized_encoder_settings,
)
from ..recognition.base import RecognitionEngine
from ..recognition.provisioner import EngineCell
from .models import (
    CANDIDATE_ORDER,
    Rotation,
    RotationCandidate,
    RotationResult,
    SelectionReason,
)

logger = logging.getLogger(__name__)

# Minimum score for a rotation to be trusted. Despite the name this is
# compared against the recognised character count, not a word count.
MINIMUM_NUMBER_OF_WORDS = 50

ImageSource = Union[Bitmap, np.ndarray, bytes, str, Path]
ErrorCallback = Callable[[BaseException], None]


class RotationSelector:
    """
    Picks the rotation under which a scan reads best.

    Example:
        >>> selector = RotationSelector(provisioner.cell)
        >>> rotation = asyncio.run(selector.determine_rotation("scan.png", "png"))
        >>> rotation
        <Rotation.CLOCKWISE_180: 180>
    """

    def __init__(
        self,
        cell: EngineCell,
        codec: Optional[ImageCodec] = None,
        min_text_length: int = MINIMUM_NUMBER_OF_WORDS,
        error_callback: Optional[ErrorCallback] = None,
    ):
        """
        Initialize selector.

        Args:
            cell: Holder of the current recognition engine
            codec: Image codec (default: OpenCV)
            min_text_length: Character count the best rotation must reach
            error_callback: Error-tracking sink for swallowed failures
        """
        if min_text_length < 0:
            raise ValueError(f"min_text_length must be >= 0, got {min_text_length}")

        self.cell = cell
        self.codec = codec or OpenCVImageCodec()
        self.min_text_length = min_text_length
        self.error_callback = error_callback

    async def determine_rotation(
        self,
        source: ImageSource,
        output_format: Union[str, OutputFormat] = OutputFormat.PNG,
    ) -> Rotation:
        """
        Get the rotation to apply to a scan.

        Never raises; any failure yields Rotation.NONE.

        Args:
            source: Decoded image (Bitmap / array, left untouched) or an
                encoded image (bytes / file path)
            output_format: Format the scan will be saved as

        Returns:
            Recommended clockwise rotation
        """
        result = await self.evaluate(source, output_format)
        return result.rotation

    async def evaluate(
        self,
        source: ImageSource,
        output_format: Union[str, OutputFormat] = OutputFormat.PNG,
    ) -> RotationResult:
        """
        Score all four rotations and pick one.

        Args:
            source: See determine_rotation()
            output_format: Format the scan will be saved as

        Returns:
            RotationResult with every candidate scored
        """
        # Keep using this engine even if re-provisioning swaps it meanwhile
        engine = self.cell.get().engine
        if engine is None:
            return RotationResult.no_engine(self.min_text_length)

        language_tag = engine.language.tag
        candidates: List[RotationCandidate] = []

        try:
            settings = optimized_encoder_settings(output_format)
            bitmap, owned = await self._load(source)
            try:
                best = await self._score_original(engine, bitmap)
                candidates.append(best)

                for rotation in CANDIDATE_ORDER[1:]:
                    candidate = await self._score_rotation(engine, bitmap, settings, rotation)
                    candidates.append(candidate)
                    if candidate.beats(best):
                        best = candidate
            finally:
                if owned:
                    bitmap.release()

        except Exception as e:
            logger.error(f"Determining the recommended rotation failed: {e}", exc_info=True)
            self._track_error(e)
            return RotationResult.failed(
                str(e),
                candidates=candidates,
                min_text_length=self.min_text_length,
                language_tag=language_tag,
            )

        logger.debug(
            "Rotation scores: "
            + ", ".join(f"{c.rotation.degrees}°={c.text_length}" for c in candidates)
        )

        if best.text_length < self.min_text_length:
            # Too little text to trust; could just be noise or a photo
            return RotationResult(
                rotation=Rotation.NONE,
                reason=SelectionReason.BELOW_THRESHOLD,
                candidates=candidates,
                min_text_length=self.min_text_length,
                language_tag=language_tag,
            )

        return RotationResult(
            rotation=best.rotation,
            reason=SelectionReason.ACCEPTED,
            candidates=candidates,
            min_text_length=self.min_text_length,
            language_tag=language_tag,
        )

    async def _load(self, source: ImageSource):
        """
        Get a bitmap for the source.

        Returns:
            (bitmap, owned) where owned means this call must release it
        """
        if isinstance(source, Bitmap):
            return source, False
        if isinstance(source, np.ndarray):
            return Bitmap(source), False
        if isinstance(source, (bytes, bytearray)):
            return await asyncio.to_thread(self.codec.decode, bytes(source)), True
        return await asyncio.to_thread(self.codec.read, source), True

    async def _score_original(
        self,
        engine: RecognitionEngine,
        bitmap: Bitmap,
    ) -> RotationCandidate:
        text = await asyncio.to_thread(engine.recognize, bitmap.pixels)
        return RotationCandidate(Rotation.NONE, len(text))

    async def _score_rotation(
        self,
        engine: RecognitionEngine,
        bitmap: Bitmap,
        settings: EncoderSettings,
        rotation: Rotation,
    ) -> RotationCandidate:
        """Re-encode with the rotation applied, decode, recognise."""
        stream = await asyncio.to_thread(self.codec.encode, bitmap, settings, rotation)
        with stream:
            rotated = await asyncio.to_thread(self.codec.decode, stream.data)
        with rotated:
            text = await asyncio.to_thread(engine.recognize, rotated.pixels)
        return RotationCandidate(rotation, len(text))

    def _track_error(self, error: BaseException) -> None:
        if self.error_callback is None:
            return
        try:
            self.error_callback(error)
        except Exception as e:
            logger.warning(f"Error callback failed: {e}")
