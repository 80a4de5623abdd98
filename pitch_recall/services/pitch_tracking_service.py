"""Service that feeds an audio provider into a pitch tracker."""

from typing import Optional

import numpy as np

from ..detection.pitch_tracker import PitchTracker
from ..logger import get_logger
from ..pitch_types import RawFrame, SampleBlock
from .interfaces import IAudioProvider

logger = get_logger(__name__)


class PitchTrackingService:
    """Connects an audio provider's callback to ``PitchTracker.ingest``.

    The provider calls back on its own thread; the tracker is read from the
    consumer's refresh loop through ``get_smoothed_frame`` at any time.
    """

    def __init__(self, audio_provider: IAudioProvider, tracker: Optional[PitchTracker] = None) -> None:
        self._audio_provider = audio_provider
        self.tracker = tracker or PitchTracker()
        self._running = False
        self._last_frame: Optional[RawFrame] = None

    def start(self) -> None:
        """Start streaming audio into the tracker."""
        if self._running:
            logger.warning("Pitch tracking already running")
            return
        self._audio_provider.start(self._audio_callback)
        self._running = True
        logger.info(f"Pitch tracking started on {self._audio_provider.describe()}")

    def stop(self) -> None:
        """Stop the provider; tracker history is kept until reset()."""
        if not self._running:
            return
        self._audio_provider.stop()
        self._running = False
        logger.info("Pitch tracking stopped")

    def is_running(self) -> bool:
        return self._running

    @property
    def last_frame(self) -> Optional[RawFrame]:
        return self._last_frame

    def to_block(self, audio_data: bytes) -> SampleBlock:
        """Convert interleaved float32 bytes to a mono SampleBlock."""
        audio_chunk = np.frombuffer(audio_data, dtype=np.float32)
        num_channels = self._audio_provider.channels
        if num_channels > 1 and audio_chunk.size > 0:
            audio_chunk = audio_chunk.reshape(-1, num_channels).mean(axis=1)
        return SampleBlock(samples=audio_chunk, sample_rate=self._audio_provider.sample_rate)

    def _audio_callback(self, audio_data: bytes) -> None:
        try:
            self._last_frame = self.tracker.ingest(self.to_block(audio_data))
        except ValueError as e:
            logger.error(f"Dropped audio block: {e}")
