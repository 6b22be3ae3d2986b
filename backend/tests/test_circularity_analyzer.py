"""Tests for the circularity analyzer."""
import asyncio
import json

import anthropic
import httpx
import openai
import pytest

from bias_detector.analyzers.circularity_analyzer import (
    ANALYSIS_FAILURE_MESSAGE,
    CIRCULARITY_JSON_SCHEMA,
    CircularityAnalyzer,
)
from bias_detector.config import Settings
from bias_detector.errors import AnalysisFailure
from bias_detector.pipeline import run_batch

VALID_PAYLOAD = {
    "score": 0.82,
    "explanation": "The second sentence paraphrases the reference.",
    "highlightedText": "Intro. <mark>Paraphrased sentence.</mark>",
}


class _Block:
    def __init__(self, text, block_type="text"):
        self.type = block_type
        self.text = text


class DummyMessages:
    """Mimics ``AsyncAnthropic().messages``."""

    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return type("Response", (), {"content": [_Block(self.text)]})()


class DummyResponses:
    """Mimics ``AsyncOpenAI().responses``."""

    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        content = _Block(self.text, block_type="output_text")
        return type("Response", (), {"output": [type("Out", (), {"content": [content]})()]})()


def _claude_analyzer(text=None, error=None):
    messages = DummyMessages(text=text, error=error)
    client = type("AnthropicDummy", (), {"messages": messages})()
    return CircularityAnalyzer(api_key="test-key", provider="claude", client=client), messages


def _openai_analyzer(text=None, error=None, model=None):
    responses = DummyResponses(text=text, error=error)
    client = type("OpenAIDummy", (), {"responses": responses})()
    analyzer = CircularityAnalyzer(api_key="test-key", provider="openai", model=model, client=client)
    return analyzer, responses


class TestCircularityAnalyzer:
    """Test suite for CircularityAnalyzer."""

    def test_initialization_builds_sdk_clients(self):
        """Without an injected client the provider SDK client is created."""
        claude = CircularityAnalyzer(api_key="test-key", provider="claude")
        gpt = CircularityAnalyzer(api_key="test-key", provider="openai")

        assert isinstance(claude.client, anthropic.AsyncAnthropic)
        assert isinstance(gpt.client, openai.AsyncOpenAI)
        assert claude.model == "claude-sonnet-4-5-20250929"
        assert gpt.model == "gpt-5"

    def test_unknown_provider_rejected(self):
        with pytest.raises(ValueError, match="Unsupported provider"):
            CircularityAnalyzer(api_key="test-key", provider="gemini")

    def test_from_settings_passes_credential_and_model(self):
        settings = Settings(llm_provider="openai", api_key="sk-test", model="gpt-4.1", temperature=0.4)

        analyzer = CircularityAnalyzer.from_settings(settings)

        assert analyzer.provider == "openai"
        assert analyzer.model == "gpt-4.1"
        assert analyzer.temperature == 0.4
        assert analyzer.client.api_key == "sk-test"

    def test_build_prompt_contains_both_texts(self):
        prompt = CircularityAnalyzer._build_prompt("GEN {braces}", "REF text")

        assert "Reference Text:" in prompt
        assert "Generated Text:" in prompt
        assert "GEN {braces}" in prompt
        assert prompt.index("REF text") < prompt.index("GEN {braces}")

    def test_claude_success(self):
        """A well-formed Claude reply becomes an AnalysisResult."""
        analyzer, messages = _claude_analyzer(text=json.dumps(VALID_PAYLOAD))

        result = asyncio.run(analyzer.analyze("generated", "reference"))

        assert result.score == pytest.approx(0.82)
        assert result.explanation == VALID_PAYLOAD["explanation"]
        assert result.highlighted_text == VALID_PAYLOAD["highlightedText"]
        assert len(messages.calls) == 1
        call = messages.calls[0]
        assert call["model"] == "claude-sonnet-4-5-20250929"
        assert call["temperature"] == 0.2
        assert "highlightedText" in call["system"]
        assert "generated" in call["messages"][0]["content"]

    def test_claude_reply_in_code_block(self):
        analyzer, _ = _claude_analyzer(text="Here you go:\n```json\n" + json.dumps(VALID_PAYLOAD) + "\n```")

        result = asyncio.run(analyzer.analyze("g", "r"))

        assert result.score == pytest.approx(0.82)

    def test_claude_reply_with_surrounding_text(self):
        analyzer, _ = _claude_analyzer(text="Analysis: " + json.dumps(VALID_PAYLOAD) + " Done.")

        result = asyncio.run(analyzer.analyze("g", "r"))

        assert result.explanation == VALID_PAYLOAD["explanation"]

    def test_integer_score_accepted(self):
        payload = dict(VALID_PAYLOAD, score=1)
        analyzer, _ = _claude_analyzer(text=json.dumps(payload))

        result = asyncio.run(analyzer.analyze("g", "r"))

        assert result.score == 1.0

    def test_openai_request_uses_json_schema(self):
        """OpenAI calls carry the strict schema and skip temperature on gpt-5."""
        analyzer, responses = _openai_analyzer(text=json.dumps(VALID_PAYLOAD))

        result = asyncio.run(analyzer.analyze("generated", "reference"))

        assert result.score == pytest.approx(0.82)
        call = responses.calls[0]
        assert call["model"] == "gpt-5"
        assert "temperature" not in call
        text_format = call["text"]["format"]
        assert text_format["type"] == "json_schema"
        assert text_format["strict"] is True
        assert text_format["schema"] == CIRCULARITY_JSON_SCHEMA["schema"]
        assert "reference" in call["input"]

    def test_openai_temperature_for_supported_models(self):
        analyzer, responses = _openai_analyzer(text=json.dumps(VALID_PAYLOAD), model="gpt-4.1")

        asyncio.run(analyzer.analyze("g", "r"))

        assert responses.calls[0]["temperature"] == 0.2

    @pytest.mark.parametrize(
        "payload",
        [
            {"score": "0.5", "explanation": "x", "highlightedText": "y"},
            {"score": True, "explanation": "x", "highlightedText": "y"},
            {"score": 0.5, "explanation": 3, "highlightedText": "y"},
            {"score": 0.5, "explanation": "x"},
            {"explanation": "x", "highlightedText": "y"},
        ],
    )
    def test_wrong_shape_raises_analysis_failure(self, payload):
        analyzer, _ = _claude_analyzer(text=json.dumps(payload))

        with pytest.raises(AnalysisFailure) as excinfo:
            asyncio.run(analyzer.analyze("g", "r"))

        assert str(excinfo.value) == ANALYSIS_FAILURE_MESSAGE

    @pytest.mark.parametrize("score_literal", ["NaN", "Infinity", "-Infinity", "1e400", "1" + "0" * 400])
    def test_non_finite_score_raises_analysis_failure(self, score_literal):
        """Scores that are not finite floats are rejected like any other bad shape."""
        text = '{"score": %s, "explanation": "x", "highlightedText": "y"}' % score_literal
        analyzer, _ = _claude_analyzer(text=text)

        with pytest.raises(AnalysisFailure) as excinfo:
            asyncio.run(analyzer.analyze("g", "r"))

        assert str(excinfo.value) == ANALYSIS_FAILURE_MESSAGE

    def test_oversized_score_becomes_batch_placeholder(self):
        """A reply whose score overflows a float fails only its own row."""
        text = '{"score": 1%s, "explanation": "x", "highlightedText": "y"}' % ("0" * 400)
        analyzer, messages = _claude_analyzer(text=text)

        records = asyncio.run(
            run_batch("generated_text,reference_text\na,b\nc,d", None, analyzer)
        )

        assert [record.score for record in records] == [-1, -1]
        assert records[0].explanation == f"Failed to process row: {ANALYSIS_FAILURE_MESSAGE}"
        assert len(messages.calls) == 2

    @pytest.mark.parametrize("text", ["", "No JSON here at all", "{not json}", "[1, 2, 3]"])
    def test_unparseable_reply_raises_analysis_failure(self, text):
        analyzer, _ = _claude_analyzer(text=text)

        with pytest.raises(AnalysisFailure, match="Failed to get analysis"):
            asyncio.run(analyzer.analyze("g", "r"))

    def test_transport_errors_raise_analysis_failure(self):
        """SDK and timeout errors all surface as the same AnalysisFailure."""
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        errors = [
            anthropic.APIConnectionError(request=request),
            TimeoutError("timed out"),
        ]
        for error in errors:
            analyzer, messages = _claude_analyzer(error=error)
            with pytest.raises(AnalysisFailure) as excinfo:
                asyncio.run(analyzer.analyze("g", "r"))
            assert str(excinfo.value) == ANALYSIS_FAILURE_MESSAGE
            assert excinfo.value.__cause__ is error
            assert len(messages.calls) == 1

        openai_error = openai.APIConnectionError(
            request=httpx.Request("POST", "https://api.openai.com/v1/responses")
        )
        analyzer, responses = _openai_analyzer(error=openai_error)
        with pytest.raises(AnalysisFailure):
            asyncio.run(analyzer.analyze("g", "r"))
        assert len(responses.calls) == 1

    def test_extract_json_payload_empty_raises_error(self):
        with pytest.raises(ValueError, match="LLM response payload is empty"):
            CircularityAnalyzer._extract_json_payload("   ")
