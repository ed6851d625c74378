"""MKV Tracks Swapper - reorder MKV tracks by preferred language."""

__version__ = "0.1.0"
