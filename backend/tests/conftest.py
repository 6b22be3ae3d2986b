"""Pytest configuration and fixtures."""
import sys
from pathlib import Path

import pytest

# Add backend to path
backend_path = Path(__file__).parent.parent
sys.path.insert(0, str(backend_path))

from bias_detector.errors import AnalysisFailure  # noqa: E402
from bias_detector.models import AnalysisResult  # noqa: E402


class FakeAnalyzer:
    """Stand-in for CircularityAnalyzer that records calls and never hits the network."""

    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.calls = []

    async def analyze(self, generated_text, reference_text):
        self.calls.append((generated_text, reference_text))
        if generated_text in self.fail_on:
            raise AnalysisFailure("model unavailable")
        return AnalysisResult(
            score=0.75,
            explanation=f"Restates the reference: {reference_text}",
            highlighted_text=f"<mark>{generated_text}</mark>",
        )


@pytest.fixture
def make_analyzer():
    """Factory for fake analyzers failing on the given generated texts."""
    return FakeAnalyzer


@pytest.fixture
def sample_batch_csv_path():
    """Path to sample_batch.csv."""
    return Path(__file__).parent.parent.parent / "examples" / "sample_batch.csv"
