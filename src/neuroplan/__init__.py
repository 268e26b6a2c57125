"""Brain-state aware task planning core."""

__version__ = "0.1.0"
