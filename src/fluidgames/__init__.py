"""Fluid mechanics and heat transfer minigames: shared simulation core."""

__version__ = "0.1.0"
