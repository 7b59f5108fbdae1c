"""postboard - posts demo split into a gateway tier and a cache-aside API tier."""

__version__ = "0.1.0"
