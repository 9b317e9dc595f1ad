"""idsweep: resumable, rate-paced batch processor for remote identifier lookups."""

from idsweep.version import __version__

__all__ = ["__version__"]
