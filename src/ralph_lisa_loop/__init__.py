"""Ralph-Lisa Loop: turn-based dual-agent collaboration."""

__version__ = "3.1.0"
