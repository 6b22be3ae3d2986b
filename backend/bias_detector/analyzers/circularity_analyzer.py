# -*- coding: utf-8 -*-
"""LLM based circularity analyzer."""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Dict, List, Literal, Optional

from anthropic import APIError as AnthropicAPIError
from anthropic import AsyncAnthropic
from openai import APIError as OpenAIAPIError
from openai import AsyncOpenAI

from bias_detector.config import Settings
from bias_detector.errors import AnalysisFailure
from bias_detector.models import AnalysisResult
from bias_detector.prompts.circularity_prompt import (
    CIRCULARITY_PROMPT,
    CIRCULARITY_SYSTEM_PROMPT,
    JSON_ONLY_INSTRUCTION,
)

logger = logging.getLogger(__name__)

ANALYSIS_FAILURE_MESSAGE = (
    "Failed to get analysis from the AI model. "
    "The model might be overloaded or the input is invalid."
)

DEFAULT_MODELS = {
    "claude": "claude-sonnet-4-5-20250929",
    "openai": "gpt-5",
}

CIRCULARITY_JSON_SCHEMA: Dict[str, Any] = {
    "name": "CircularityAnalysis",
    "schema": {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "score": {
                "type": "number",
                "description": "A circularity score from 0.0 to 1.0, where 1.0 indicates very high circularity.",
            },
            "explanation": {
                "type": "string",
                "description": "A detailed explanation of the circular bias found, referencing specific parts of the text.",
            },
            "highlightedText": {
                "type": "string",
                "description": "The original generated text, but with the circularly biased sections wrapped in <mark> tags.",
            },
        },
        "required": ["score", "explanation", "highlightedText"],
    },
}


class CircularityAnalyzer:
    """Score how much a generated text merely restates its reference.

    Every call to :meth:`analyze` makes exactly one request to the configured provider.
    Nothing is retried or cached.
    """

    def __init__(
        self,
        api_key: str,
        provider: Literal["claude", "openai"] = "claude",
        model: Optional[str] = None,
        temperature: float = 0.2,
        client: Any = None,
    ) -> None:
        if provider not in DEFAULT_MODELS:
            raise ValueError(f"Unsupported provider: {provider}")

        self.provider = provider
        self.model = model or DEFAULT_MODELS[provider]
        self.temperature = temperature

        if client is not None:
            self.client = client
        elif provider == "claude":
            self.client = AsyncAnthropic(api_key=api_key)
        else:
            self.client = AsyncOpenAI(api_key=api_key)

        logger.info("Analiz istemcisi oluşturuldu (provider=%s, model=%s)", self.provider, self.model)

    @classmethod
    def from_settings(cls, settings: Settings) -> "CircularityAnalyzer":
        return cls(
            api_key=settings.api_key,
            provider=settings.llm_provider,
            model=settings.model,
            temperature=settings.temperature,
        )

    async def analyze(self, generated_text: str, reference_text: str) -> AnalysisResult:
        """Return the model's verdict or raise :class:`AnalysisFailure`."""

        prompt = self._build_prompt(generated_text, reference_text)
        logger.debug(
            "LLM prompt hazırlandı (provider=%s, uzunluk=%s karakter)",
            self.provider,
            len(prompt),
        )

        try:
            if self.provider == "claude":
                raw_text = await self._analyze_with_claude(prompt)
            else:
                raw_text = await self._analyze_with_gpt(prompt)
            payload = self._extract_json_payload(raw_text)
            return self._validate_payload(payload)
        except (TimeoutError, AnthropicAPIError, OpenAIAPIError, ValueError) as exc:
            logger.exception("Analiz isteği başarısız oldu (provider=%s)", self.provider)
            raise AnalysisFailure(ANALYSIS_FAILURE_MESSAGE) from exc

    @staticmethod
    def _build_prompt(generated_text: str, reference_text: str) -> str:
        return CIRCULARITY_PROMPT.format(
            generated_text=generated_text,
            reference_text=reference_text,
        )

    @staticmethod
    def _openai_supports_temperature(model_name: str) -> bool:
        """Return True when the given OpenAI model supports temperature."""

        unsupported_prefixes = ("gpt-5", "o1", "o3", "o4")
        if any(model_name.startswith(prefix) for prefix in unsupported_prefixes):
            logger.debug(
                "OpenAI modeli %s temperature parametresini desteklemiyor; parametre atlanacak.",
                model_name,
            )
            return False
        return True

    async def _analyze_with_claude(self, prompt: str) -> str:
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=4096,
            temperature=self.temperature,
            system=f"{CIRCULARITY_SYSTEM_PROMPT}\n\n{JSON_ONLY_INSTRUCTION}",
            messages=[{"role": "user", "content": prompt}],
        )

        text_chunks = [
            getattr(block, "text", "")
            for block in getattr(response, "content", [])
            if getattr(block, "type", "") == "text"
        ]
        raw_text = "".join(text_chunks).strip()
        logger.debug("Claude yanıtı alındı (uzunluk=%s karakter)", len(raw_text))
        return raw_text

    async def _analyze_with_gpt(self, prompt: str) -> str:
        request_kwargs: Dict[str, Any] = {
            "model": self.model,
            "instructions": CIRCULARITY_SYSTEM_PROMPT,
            "input": prompt,
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": CIRCULARITY_JSON_SCHEMA["name"],
                    "schema": CIRCULARITY_JSON_SCHEMA["schema"],
                    "strict": True,
                }
            },
        }
        if self._openai_supports_temperature(self.model):
            request_kwargs["temperature"] = self.temperature

        response = await self.client.responses.create(**request_kwargs)

        collected_chunks: List[str] = []
        for output_block in getattr(response, "output", None) or []:
            for content in getattr(output_block, "content", None) or []:
                if getattr(content, "type", "") in {"output_text", "text", ""}:
                    text_value = getattr(content, "text", "") or ""
                    if text_value:
                        collected_chunks.append(text_value)
        raw_text = "".join(collected_chunks).strip()

        if not raw_text:
            raw_text = (getattr(response, "output_text", "") or "").strip()

        logger.debug("OpenAI yanıtı alındı (uzunluk=%s karakter)", len(raw_text))
        return raw_text

    @staticmethod
    def _extract_json_payload(raw_text: str) -> Dict[str, Any]:
        """Extract a JSON object from an LLM response.

        Tries a fenced code block first, then the whole text, then the first balanced
        ``{...}`` span.
        """
        if not raw_text or not raw_text.strip():
            raise ValueError("LLM response payload is empty.")

        raw_text = raw_text.strip()
        candidates: List[str] = []

        code_block_match = re.search(r"```(?:json)?\s*(.+?)\s*```", raw_text, flags=re.DOTALL)
        if code_block_match:
            candidates.append(code_block_match.group(1).strip())
        candidates.append(raw_text)

        first_brace = raw_text.find("{")
        if first_brace != -1:
            depth = 0
            in_string = False
            escaped = False
            for index in range(first_brace, len(raw_text)):
                char = raw_text[index]
                if escaped:
                    escaped = False
                    continue
                if char == "\\":
                    escaped = True
                    continue
                if char == '"':
                    in_string = not in_string
                    continue
                if in_string:
                    continue
                if char == "{":
                    depth += 1
                elif char == "}":
                    depth -= 1
                    if depth == 0:
                        candidates.append(raw_text[first_brace : index + 1])
                        break

        for candidate in candidates:
            try:
                payload = json.loads(candidate)
            except json.JSONDecodeError:
                continue
            if isinstance(payload, dict):
                return payload

        logger.error("All parsing strategies failed. Response preview: %s", raw_text[:500])
        raise ValueError("Unable to parse JSON object from LLM response.")

    @staticmethod
    def _validate_payload(payload: Dict[str, Any]) -> AnalysisResult:
        score = payload.get("score")
        explanation = payload.get("explanation")
        highlighted_text = payload.get("highlightedText")

        if (
            isinstance(score, bool)
            or not isinstance(score, (int, float))
            or not isinstance(explanation, str)
            or not isinstance(highlighted_text, str)
        ):
            raise ValueError("Invalid JSON structure received from API.")

        # json.loads accepts NaN/Infinity and huge integers; only finite floats are scores.
        try:
            numeric_score = float(score)
        except OverflowError as exc:
            raise ValueError("Score is out of range.") from exc
        if not math.isfinite(numeric_score):
            raise ValueError("Score must be a finite number.")

        return AnalysisResult(
            score=numeric_score,
            explanation=explanation,
            highlighted_text=highlighted_text,
        )
