"""Continuous in-tune hold tracking."""

from enum import Enum
from typing import Optional

from .logger import get_logger
from .pitch_types import HoldProgress

logger = get_logger(__name__)


class HoldState(Enum):
    IDLE = "idle"
    HOLDING = "holding"
    HELD = "held"


class HoldTimer:
    """Measures how long the target has been held in tune without a break.

    Success is signalled once per unbroken streak: the call that crosses the
    required duration reports ``just_succeeded=True``, later calls in the same
    streak only ``success=True``. Any out-of-tune call starts over.
    """

    def __init__(self) -> None:
        self._start_ms: Optional[float] = None
        self._succeeded = False

    @property
    def state(self) -> HoldState:
        if self._start_ms is None:
            return HoldState.IDLE
        return HoldState.HELD if self._succeeded else HoldState.HOLDING

    def reset(self) -> None:
        self._start_ms = None
        self._succeeded = False

    def update(self, in_tune: bool, now_ms: float, required_ms: float) -> HoldProgress:
        """Advance the timer by one evaluation.

        Args:
            in_tune: Whether the current frame is in tune
            now_ms: Current time in milliseconds
            required_ms: Hold duration needed for success

        Returns:
            Progress snapshot for this evaluation

        Raises:
            ValueError: If required_ms is not positive
        """
        if required_ms <= 0:
            raise ValueError(f"required_ms must be positive, got {required_ms}")

        if not in_tune:
            self.reset()
            return HoldProgress(progress=0.0, elapsed_ms=0.0, success=False, just_succeeded=False)

        if self._start_ms is None:
            self._start_ms = now_ms

        elapsed_ms = max(0.0, now_ms - self._start_ms)
        progress = min(1.0, elapsed_ms / required_ms)

        just_succeeded = False
        if not self._succeeded and elapsed_ms >= required_ms:
            self._succeeded = True
            just_succeeded = True
            logger.info(f"Target held for {elapsed_ms:.0f}ms")

        return HoldProgress(
            progress=progress,
            elapsed_ms=elapsed_ms,
            success=self._succeeded,
            just_succeeded=just_succeeded,
        )
