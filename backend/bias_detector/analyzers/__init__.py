"""Analyzers that call the hosted model."""

from .circularity_analyzer import ANALYSIS_FAILURE_MESSAGE, CircularityAnalyzer

__all__ = ["ANALYSIS_FAILURE_MESSAGE", "CircularityAnalyzer"]
