"""Event bus module for in-process service communication."""

from seawatch.core.events.bus import EventBus, HandlerFailure, get_event_bus
from seawatch.core.events.types import EventTypes

__all__ = ["EventBus", "EventTypes", "HandlerFailure", "get_event_bus"]
