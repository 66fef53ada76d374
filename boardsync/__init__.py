"""Card scheduling event bus and external task/calendar sync."""

__version__ = "1.0.0"
