import threading

import numpy as np
import pytest
import soundfile as sf

from pitch_recall.detection.pitch_tracker import PitchTracker
from pitch_recall.pitch_types import TrackerStatus
from pitch_recall.services.audio_providers import WavFileAudioProvider
from pitch_recall.services.interfaces import IAudioProvider
from pitch_recall.services.pitch_tracking_service import PitchTrackingService

SAMPLE_RATE = 44100


def write_tone(path, freq=440.0, seconds=0.5, channels=1, amplitude=0.3):
    t = np.arange(int(SAMPLE_RATE * seconds)) / SAMPLE_RATE
    tone = amplitude * np.sin(2 * np.pi * freq * t)
    data = np.column_stack([tone] * channels) if channels > 1 else tone
    sf.write(str(path), data.astype(np.float32), SAMPLE_RATE)
    return path


class FakeProvider(IAudioProvider):
    def __init__(self, channels=1, fail=False):
        self._channels = channels
        self.fail = fail
        self.callback = None
        self.stopped = False

    def start(self, on_data_callback):
        if self.fail:
            raise OSError("no device")
        self.callback = on_data_callback

    def stop(self):
        self.stopped = True

    @property
    def sample_rate(self):
        return SAMPLE_RATE

    @property
    def channels(self):
        return self._channels


def test_iter_blocks_yields_full_mono_blocks(tmp_path):
    path = write_tone(tmp_path / "stereo.wav", seconds=0.25, channels=2)
    provider = WavFileAudioProvider(str(path), chunk_size=2048)
    blocks = list(provider.iter_blocks())

    assert provider.source_channels == 2
    assert provider.channels == 1
    assert len(blocks) == int(SAMPLE_RATE * 0.25) // 2048
    assert all(block.shape == (2048,) for block in blocks)
    assert all(block.dtype == np.float32 for block in blocks)


def test_iter_blocks_applies_gain(tmp_path):
    path = write_tone(tmp_path / "tone.wav", amplitude=0.2)
    plain = next(WavFileAudioProvider(str(path), chunk_size=1024).iter_blocks())
    louder = next(WavFileAudioProvider(str(path), chunk_size=1024, gain=2.0).iter_blocks())
    np.testing.assert_allclose(louder, plain * 2.0, atol=1e-6)


def test_wav_provider_streams_to_callback(tmp_path):
    path = write_tone(tmp_path / "tone.wav", seconds=0.2)
    provider = WavFileAudioProvider(str(path), chunk_size=2048)
    received = []
    finished = threading.Event()

    def on_data(data):
        received.append(data)
        if len(received) == int(SAMPLE_RATE * 0.2) // 2048:
            finished.set()

    provider.start(on_data)
    assert finished.wait(timeout=5.0)
    provider.stop()
    assert not provider.is_running
    assert all(len(chunk) == 2048 * 4 for chunk in received)


def test_service_feeds_tracker():
    provider = FakeProvider()
    service = PitchTrackingService(provider, PitchTracker())
    service.start()
    assert service.is_running()

    t = np.arange(2048) / SAMPLE_RATE
    provider.callback((0.3 * np.sin(2 * np.pi * 440.0 * t)).astype(np.float32).tobytes())
    assert service.last_frame.status is TrackerStatus.LISTENING
    assert abs(service.last_frame.frequency_hz - 440.0) < 1.0

    service.stop()
    assert provider.stopped
    assert not service.is_running()


def test_service_mixes_down_interleaved_channels():
    service = PitchTrackingService(FakeProvider(channels=2))
    interleaved = np.array([1.0, 0.0, 0.5, 0.5, 0.0, -1.0], dtype=np.float32)
    block = service.to_block(interleaved.tobytes())
    np.testing.assert_allclose(block.samples, [0.5, 0.5, -0.5])
    assert block.sample_rate == SAMPLE_RATE


def test_service_start_failure_leaves_it_stopped():
    service = PitchTrackingService(FakeProvider(fail=True))
    with pytest.raises(OSError):
        service.start()
    assert not service.is_running()


def test_service_drops_corrupt_blocks():
    provider = FakeProvider()
    service = PitchTrackingService(provider, PitchTracker())
    service.start()

    provider.callback(np.array([0.1, np.inf, 0.2], dtype=np.float32).tobytes())
    assert service.last_frame is None
    assert service.tracker.snapshot() == ()

    t = np.arange(2048) / SAMPLE_RATE
    provider.callback((0.3 * np.sin(2 * np.pi * 440.0 * t)).astype(np.float32).tobytes())
    assert service.last_frame.status is TrackerStatus.LISTENING
