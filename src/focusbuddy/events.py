"""Event system for FocusBuddy.

Provides a simple pub/sub event emitter for attention, mood and gesture events.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class Event:
    """Base event class."""

    name: str
    timestamp: datetime = field(default_factory=datetime.now)
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class MoodChangedEvent(Event):
    """Emitted when the robot's mood changes between ticks."""

    name: str = "mood_changed"
    previous: str = ""
    mood: str = ""
    level: float = 0.0


@dataclass
class RobotStateChangedEvent(Event):
    """Emitted when the coarse robot state changes (drives sound cues)."""

    name: str = "robot_state_changed"
    previous: str = ""
    state: str = ""


@dataclass
class DistractedEvent(Event):
    """Emitted on every tick spent in a distracting application."""

    name: str = "distracted"
    context: str = ""
    ignore_count: int = 0


@dataclass
class GestureEvent(Event):
    """Emitted once per recognized gesture, carrying the command to run."""

    name: str = "gesture"
    gesture: str = ""
    command: str = ""


@dataclass
class MotivationEvent(Event):
    """Emitted when a long, well-focused stretch deserves encouragement."""

    name: str = "motivation"
    focus_percentage: float = 0.0
    focused_seconds: float = 0.0


class EventEmitter:
    """Simple event emitter for pub/sub pattern."""

    def __init__(self):
        self._handlers: dict[str, list[Callable]] = defaultdict(list)

    def on(self, event_name: str, handler: Callable | None = None):
        """Register an event handler.

        Can be used as a decorator:
            @emitter.on("gesture")
            def handle_gesture(event):
                ...

        Or directly:
            emitter.on("gesture", handle_gesture)
        """
        def decorator(fn: Callable) -> Callable:
            self._handlers[event_name].append(fn)
            return fn

        if handler is not None:
            self._handlers[event_name].append(handler)
            return handler

        return decorator

    def off(self, event_name: str, handler: Callable):
        """Unregister an event handler."""
        if event_name in self._handlers:
            self._handlers[event_name] = [
                h for h in self._handlers[event_name] if h != handler
            ]

    def emit(self, event: Event):
        """Emit an event to all registered handlers."""
        for handler in self._handlers.get(event.name, []):
            try:
                handler(event)
            except Exception as e:
                # Log but don't crash the tick on handler errors
                logger.error(f"Error in event handler for {event.name}: {e}", exc_info=True)

