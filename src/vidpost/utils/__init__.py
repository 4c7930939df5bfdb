"""Utility functions for vidpost."""

from vidpost.utils.logging import get_logger
from vidpost.utils.process import run_streaming

__all__ = ["get_logger", "run_streaming"]
