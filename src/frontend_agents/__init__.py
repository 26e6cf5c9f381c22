"""Frontend development automation with cooperating agent workers."""

__version__ = "0.1.0"
