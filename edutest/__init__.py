"""edutest: test administration, timed sessions and scoring."""

__version__ = "0.1.0"
