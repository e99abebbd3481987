"""Console logging, unwind tables and developer tasks for Taperipper."""

__version__ = "0.1.0"