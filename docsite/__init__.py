"""Documentation site generator with incremental watch-mode rebuilds."""

__version__ = "0.1.0"
