"""Route group exports."""

from . import health, plaques, routes, sessions

__all__ = ["health", "plaques", "routes", "sessions"]
