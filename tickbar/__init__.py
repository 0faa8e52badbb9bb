"""Terminal progress rendering: formatting helpers, draw targets, multi-line layout and an in-memory terminal."""

__version__ = "0.1.0"
__all__ = ["draw_target", "format", "in_memory", "multi"]