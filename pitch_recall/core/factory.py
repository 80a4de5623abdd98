"""Factory for creating Pitch Recall components."""

from dataclasses import fields
from typing import Any, Dict, Iterable, Optional

from ..detection.pitch_estimator import YinPitchEstimator
from ..detection.pitch_tracker import PitchTracker
from ..detection.voice_range import VoiceMode
from ..logger import get_logger
from ..pitch_session import PitchSession
from ..pitch_types import TrackerSettings
from ..services.audio_providers import LiveAudioProvider, WavFileAudioProvider
from .config import DEFAULT_CONFIGS, ConfigManager
from .interfaces import IPitchEstimator

logger = get_logger(__name__)

ESTIMATOR_BACKENDS = ("yin", "aubio")


def _known_options(section: str, config: Dict[str, Any], known: Iterable[str]) -> Dict[str, Any]:
    """Drop keys a component does not accept, logging what was ignored."""
    accepted = set(known)
    ignored = sorted(set(config) - accepted)
    if ignored:
        logger.warning(f"Ignoring unknown '{section}' options: {ignored}")
    return {key: value for key, value in config.items() if key in accepted}


class ComponentFactory:
    """Factory for creating Pitch Recall components."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """Initialize the component factory.

        Args:
            config_manager: Configuration manager, or None to create a default one
        """
        self.config_manager = config_manager or ConfigManager()

    def create_estimator(self, **kwargs) -> IPitchEstimator:
        """Create a pitch estimator.

        Args:
            **kwargs: Overrides for the 'estimator' configuration

        Returns:
            Pitch estimator instance

        Raises:
            ValueError: If the configured backend is unknown
        """
        config = self.config_manager.get_config("estimator")
        config.update(kwargs)
        backend = config.get("backend", "yin")

        if backend == "yin":
            instance: IPitchEstimator = YinPitchEstimator(
                min_hz=config["min_hz"],
                max_hz=config["max_hz"],
                threshold=config.get("threshold", 0.12),
            )
        elif backend == "aubio":
            # aubio is an optional extra
            from ..detection.aubio_estimator import AubioPitchEstimator

            instance = AubioPitchEstimator(
                method=config.get("method", "yin"),
                min_hz=config["min_hz"],
                max_hz=config["max_hz"],
            )
        else:
            raise ValueError(
                f"Unknown estimator backend: {backend} (expected one of {ESTIMATOR_BACKENDS})"
            )

        logger.info(f"Created pitch estimator: {backend}")
        return instance

    def create_tracker(self, estimator: Optional[IPitchEstimator] = None, **kwargs) -> PitchTracker:
        """Create a pitch tracker.

        Args:
            estimator: Estimator to use, or None to build one from configuration
            **kwargs: Overrides for the 'tracker' configuration

        Returns:
            Pitch tracker instance
        """
        config = _known_options(
            "tracker",
            self.config_manager.get_config("tracker"),
            (f.name for f in fields(TrackerSettings)),
        )
        config.update(kwargs)
        settings = TrackerSettings().merged(**config)
        return PitchTracker(settings=settings, estimator=estimator or self.create_estimator())

    def create_session(self, tracker: Optional[PitchTracker] = None, **kwargs) -> PitchSession:
        """Create a practice session.

        Args:
            tracker: Tracker to read from, or None to build one from configuration
            **kwargs: Overrides for the 'session' configuration and extra
                PitchSession arguments (notes, clock, rng, events)

        Returns:
            Session instance
        """
        config = _known_options(
            "session", self.config_manager.get_config("session"), DEFAULT_CONFIGS["session"]
        )
        config.update(kwargs)
        voice_mode = config.pop("voice_mode", "auto")
        if not isinstance(voice_mode, VoiceMode):
            voice_mode = VoiceMode(voice_mode)

        instance = PitchSession(tracker or self.create_tracker(), voice_mode=voice_mode, **config)
        logger.info("Created pitch session")
        return instance

    def create_audio_provider(
        self, wav_file: Optional[str] = None, device_id: Optional[int] = None, **kwargs
    ):
        """Create a live or WAV-file audio provider.

        Args:
            wav_file: Path of a WAV file to stream, or None for live input
            device_id: Input device for live capture, or None for the default
            **kwargs: Overrides for the 'audio_input' configuration

        Returns:
            Audio provider instance
        """
        config = self.config_manager.get_config("audio_input")
        config.update(kwargs)

        if wav_file is not None:
            return WavFileAudioProvider(
                file_path=wav_file,
                chunk_size=config["frames_per_buffer"],
                loop=config.get("loop", False),
                gain=config.get("gain", 1.0),
            )
        return LiveAudioProvider(
            device_id=device_id,
            sample_rate=config["sample_rate"],
            channels=config["channels"],
            chunk_size=config["frames_per_buffer"],
        )
