# volmask/errors.py
"""Error types raised while baking a volume mask."""


class BakeError(Exception):
    """Base class for every failure that aborts a bake."""

    stage = None


class ConfigurationError(BakeError, ValueError):
    """Invalid resolution, unknown shape, degenerate falloff or noise settings."""


class AllocationError(BakeError, MemoryError):
    """A synthesis or extraction buffer could not be allocated."""


class IndexingInvariantError(BakeError, IndexError):
    """Layer count, layer depth or packed offset does not match the grid extent."""


class ExportError(BakeError):
    """A persisted grid could not be written or read back."""
