from abc import ABC, abstractmethod
from typing import Callable


class IAudioProvider(ABC):
    """Source of raw audio for the pitch tracker.

    Providers deliver interleaved float32 bytes from their own thread; the
    consumer converts them to mono ``SampleBlock`` objects.
    """

    @abstractmethod
    def start(self, on_data_callback: Callable[[bytes], None]) -> None:
        """Begin delivering audio to ``on_data_callback``.

        Raises:
            OSError: If the underlying device or file cannot be opened
        """
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop delivering audio; safe to call when not started."""
        pass

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        """Sample rate of the delivered audio in Hz."""
        pass

    @property
    @abstractmethod
    def channels(self) -> int:
        """Number of interleaved channels in each delivered chunk."""
        pass

    def describe(self) -> str:
        """Short human-readable description used in log messages."""
        return f"{type(self).__name__} ({self.sample_rate} Hz, {self.channels} ch)"
