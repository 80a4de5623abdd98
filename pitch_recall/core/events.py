"""Event system for Pitch Recall components."""

from typing import Any, Callable, Dict, List
from enum import Enum, auto

from ..logger import get_logger

logger = get_logger(__name__)


class SessionEventType(Enum):
    """Event types raised by a practice session."""

    TARGET_CHANGED = auto()  # (note)
    WRONG_NOTE = auto()  # (detected_pitch_class, target_note)
    SUCCESS = auto()  # (target_note, elapsed_ms)


class EventEmitter:
    """Minimal synchronous publish/subscribe hub.

    Listeners run on the emitting thread, in registration order. A listener
    that raises is logged and skipped; the remaining listeners still run.
    """

    def __init__(self):
        self._listeners: Dict[Any, List[Callable]] = {}

    def on(self, event_type: Any, callback: Callable) -> None:
        """Register ``callback`` for ``event_type``; duplicates are ignored."""
        callbacks = self._listeners.setdefault(event_type, [])
        if callback not in callbacks:
            callbacks.append(callback)
            logger.debug(f"Added listener for event {event_type}")

    def off(self, event_type: Any, callback: Callable) -> None:
        """Remove a previously registered callback, if present."""
        callbacks = self._listeners.get(event_type, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def listener_count(self, event_type: Any) -> int:
        return len(self._listeners.get(event_type, []))

    def emit(self, event_type: Any, *args, **kwargs) -> None:
        """Call every listener of ``event_type`` with the given arguments."""
        # Copy so listeners may unsubscribe themselves while being called
        for callback in list(self._listeners.get(event_type, [])):
            try:
                callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in event listener for {event_type}: {e}", exc_info=True)

    def clear(self) -> None:
        """Remove all event listeners."""
        self._listeners = {}
        logger.debug("Cleared all event listeners")


class SessionEvents(EventEmitter):
    """Typed helpers over the generic emitter for session events."""

    def on_target_changed(self, callback: Callable) -> None:
        """Register ``callback(note)`` for new targets."""
        self.on(SessionEventType.TARGET_CHANGED, callback)

    def on_wrong_note(self, callback: Callable) -> None:
        """Register ``callback(detected_pitch_class, target_note)``."""
        self.on(SessionEventType.WRONG_NOTE, callback)

    def on_success(self, callback: Callable) -> None:
        """Register ``callback(target_note, elapsed_ms)`` for completed holds."""
        self.on(SessionEventType.SUCCESS, callback)

    def emit_target_changed(self, note) -> None:
        self.emit(SessionEventType.TARGET_CHANGED, note)

    def emit_wrong_note(self, detected_pitch_class: int, target_note) -> None:
        self.emit(SessionEventType.WRONG_NOTE, detected_pitch_class, target_note)

    def emit_success(self, target_note, elapsed_ms: float) -> None:
        self.emit(SessionEventType.SUCCESS, target_note, elapsed_ms)
