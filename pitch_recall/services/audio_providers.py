import threading
import time
from typing import Any, Callable, Dict, Iterator, List, Optional

import numpy as np
import soundfile as sf

from ..logger import get_logger
from .interfaces import IAudioProvider

logger = get_logger(__name__)


def list_input_devices() -> List[Dict[str, Any]]:
    """Return the input-capable devices known to PortAudio."""
    import sounddevice as sd

    devices = []
    for device_id, device in enumerate(sd.query_devices()):
        if device["max_input_channels"] > 0:
            devices.append(
                {
                    "id": device_id,
                    "name": device["name"],
                    "channels": device["max_input_channels"],
                    "default_samplerate": device["default_samplerate"],
                }
            )
    return devices


class LiveAudioProvider(IAudioProvider):
    """Provides live audio from an input device using sounddevice."""

    def __init__(
        self,
        device_id: Optional[int] = None,
        sample_rate: int = 44100,
        channels: int = 1,
        chunk_size: int = 2048,
    ):
        self._device_id = device_id
        self._sample_rate = sample_rate
        self._channels = channels
        self._chunk_size = chunk_size
        self._stream: Optional[Any] = None
        self._on_data_callback: Optional[Callable[[bytes], None]] = None

    def start(self, on_data_callback: Callable[[bytes], None]) -> None:
        self._on_data_callback = on_data_callback
        import sounddevice as sd

        self._stream = sd.InputStream(
            device=self._device_id,
            channels=self._channels,
            samplerate=self._sample_rate,
            blocksize=self._chunk_size,
            callback=self._audio_callback,
            dtype="float32",
        )
        self._stream.start()
        logger.info(
            f"Live audio started: device={self._device_id}, rate={self._sample_rate}Hz, "
            f"block={self._chunk_size}"
        )

    def stop(self) -> None:
        if self._stream:
            self._stream.stop()
            self._stream.close()
            self._stream = None
            logger.info("Live audio stopped")

    def _audio_callback(self, indata: np.ndarray, _frames: int, _time_info, status) -> None:
        if status:
            logger.warning(f"Audio stream status: {status}")
        if self._on_data_callback:
            self._on_data_callback(indata.tobytes())

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def channels(self) -> int:
        return self._channels

    def describe(self) -> str:
        device = "default device" if self._device_id is None else f"device {self._device_id}"
        return f"{device} ({self._sample_rate} Hz, {self._channels} ch, block {self._chunk_size})"


class WavFileAudioProvider(IAudioProvider):
    """Provides audio data by reading from a WAV file."""

    def __init__(
        self, file_path: str, chunk_size: int, loop: bool = False, gain: float = 1.0
    ):
        self._file_path = file_path
        self._chunk_size = chunk_size
        self._loop = loop
        self._gain = gain
        self._on_data_callback: Optional[Callable[[bytes], None]] = None
        self._is_running = False
        self._thread: Optional[threading.Thread] = None

        with sf.SoundFile(self._file_path) as f:
            self._sample_rate = f.samplerate
            self._source_channels = f.channels

    def iter_blocks(self) -> Iterator[np.ndarray]:
        """Yield mono float32 blocks of ``chunk_size`` samples, once through the file.

        A trailing partial block is dropped so every block has the same size.
        """
        with sf.SoundFile(self._file_path) as f:
            while True:
                data = f.read(self._chunk_size, dtype="float32", always_2d=True)
                if len(data) < self._chunk_size:
                    break
                block = data.mean(axis=1) if data.shape[1] > 1 else data[:, 0].copy()
                if self._gain != 1.0:
                    block *= self._gain
                yield block

    def start(self, on_data_callback: Callable[[bytes], None]) -> None:
        if self._is_running:
            return

        self._on_data_callback = on_data_callback
        self._is_running = True
        self._thread = threading.Thread(target=self._stream_data, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._is_running = False
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join()
        self._thread = None

    @property
    def is_running(self) -> bool:
        """Returns True if the provider is currently streaming data."""
        return self._is_running

    def _stream_data(self) -> None:
        try:
            while self._is_running:
                for block in self.iter_blocks():
                    if not self._is_running:
                        break
                    if self._on_data_callback:
                        self._on_data_callback(block.tobytes())
                    # Simulate real-time playback speed
                    time.sleep(self._chunk_size / self.sample_rate)
                if not self._loop:
                    break
        except (OSError, RuntimeError) as e:
            logger.error(f"Error streaming WAV file {self._file_path}: {e}")
        finally:
            self._is_running = False

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def source_channels(self) -> int:
        return self._source_channels

    def describe(self) -> str:
        return f"WAV file {self._file_path} ({self._sample_rate} Hz, {self._source_channels} ch)"

    @property
    def channels(self) -> int:
        # Blocks are mixed down to mono before delivery
        return 1
