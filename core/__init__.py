"""Core services shared by the region backup store: config, logging, events."""

from core.event_bus import EventBus
from core.event_types import EventType

__all__ = ["EventBus", "EventType"]
