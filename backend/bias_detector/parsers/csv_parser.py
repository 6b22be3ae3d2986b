"""Lenient CSV reader for batch uploads and the JSON-in-CSV results writer."""

from __future__ import annotations

import json
import logging
import re
from typing import Iterable, List

from bias_detector.errors import InsufficientRowsError, MissingColumnsError
from bias_detector.models import BatchRecord, ParsedTable

from .base import BaseParser

logger = logging.getLogger(__name__)

GENERATED_TEXT_COLUMN = "generated_text"
REFERENCE_TEXT_COLUMN = "reference_text"

RESULTS_HEADER = ("originalGeneratedText", "originalReferenceText", "score", "explanation")

_LINE_BREAK_PATTERN = re.compile(r"\r?\n")
# A comma only separates fields when an even number of quotes follows it on the line.
_FIELD_SPLIT_PATTERN = re.compile(r',(?=(?:(?:[^"]*"){2})*[^"]*$)')
_EDGE_QUOTE_PATTERN = re.compile(r'^"|"$')


def _clean_field(value: str) -> str:
    return _EDGE_QUOTE_PATTERN.sub("", value.strip())


class CSVParser(BaseParser):
    """Parse uploaded CSV text into a header and rows.

    Quotes are only used to keep commas inside a field; ``""`` and backslash escapes
    are left untouched.
    """

    def parse(self, source: str) -> ParsedTable:
        lines = [line for line in _LINE_BREAK_PATTERN.split(source) if line.strip()]
        if len(lines) < 2:
            raise InsufficientRowsError()

        header = [_clean_field(name) for name in lines[0].split(",")]
        if GENERATED_TEXT_COLUMN not in header or REFERENCE_TEXT_COLUMN not in header:
            raise MissingColumnsError()

        generated_index = header.index(GENERATED_TEXT_COLUMN)
        reference_index = header.index(REFERENCE_TEXT_COLUMN)
        required_width = max(generated_index, reference_index)

        rows: List[List[str]] = []
        for line_number, line in enumerate(lines[1:], start=1):
            values = self.split_row(line)
            if len(values) <= required_width:
                logger.warning("Skipping malformed CSV row: %d", line_number)
                continue
            rows.append(values)

        logger.debug(
            "CSV parsed (columns=%d, accepted_rows=%d, data_lines=%d)",
            len(header),
            len(rows),
            len(lines) - 1,
        )
        return ParsedTable(
            header=header,
            rows=rows,
            generated_text_index=generated_index,
            reference_text_index=reference_index,
        )

    @staticmethod
    def split_row(line: str) -> List[str]:
        return [_clean_field(value) for value in _FIELD_SPLIT_PATTERN.split(line)]


def _format_score(score: float) -> str:
    if isinstance(score, float) and score.is_integer():
        return str(int(score))
    return repr(score)


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def serialize_records(records: Iterable[BatchRecord]) -> str:
    """Render batch records as downloadable CSV text.

    Text columns are JSON string literals, the score is a bare number. The format is
    meant for JSON-aware consumers and does not round-trip through ``CSVParser``.
    """

    lines = [",".join(RESULTS_HEADER)]
    for record in records:
        lines.append(
            ",".join(
                [
                    _quote(record.original_generated_text),
                    _quote(record.original_reference_text),
                    _format_score(record.score),
                    _quote(record.explanation),
                ]
            )
        )
    return "\n".join(lines)
