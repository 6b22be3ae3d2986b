"""Pydantic models and domain entities for the backend service."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from pydantic import BaseModel, ConfigDict, Field

FAILED_SCORE = -1.0


class AnalysisResult(BaseModel):
    """Circularity verdict returned by the model for one text pair."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    score: float
    explanation: str
    highlighted_text: str = Field(alias="highlightedText")


class BatchRecord(AnalysisResult):
    """One batch row: the analysis outcome plus the texts it was computed from."""

    original_generated_text: str = Field(alias="originalGeneratedText")
    original_reference_text: str = Field(alias="originalReferenceText")

    @property
    def failed(self) -> bool:
        return self.score == FAILED_SCORE

    @classmethod
    def from_result(
        cls, result: AnalysisResult, generated_text: str, reference_text: str
    ) -> "BatchRecord":
        return cls(
            score=result.score,
            explanation=result.explanation,
            highlighted_text=result.highlighted_text,
            original_generated_text=generated_text,
            original_reference_text=reference_text,
        )

    @classmethod
    def failure(cls, message: str, generated_text: str, reference_text: str) -> "BatchRecord":
        """Placeholder for a row whose analysis call did not succeed.

        The sentinel score marks the row as not scored; the generated text is kept
        without any highlight markup.
        """
        return cls(
            score=FAILED_SCORE,
            explanation=f"Failed to process row: {message}",
            highlighted_text=generated_text,
            original_generated_text=generated_text,
            original_reference_text=reference_text,
        )


class AnalyzeRequest(BaseModel):
    """Schema describing a single text pair submitted for analysis."""

    generated_text: str
    reference_text: str


@dataclass(frozen=True)
class Progress:
    current: int
    total: int

    @property
    def fraction(self) -> float:
        return self.current / self.total if self.total else 0.0


@dataclass
class ParsedTable:
    """Header and accepted data rows of an uploaded CSV blob."""

    header: List[str]
    rows: List[List[str]] = field(default_factory=list)
    generated_text_index: int = 0
    reference_text_index: int = 0
