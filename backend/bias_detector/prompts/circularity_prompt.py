"""Prompt templates for circular bias detection."""

HIGHLIGHT_START = "<mark>"
HIGHLIGHT_END = "</mark>"

CIRCULARITY_SYSTEM_PROMPT = """You are an expert AI assistant specializing in detecting circular reasoning and confirmation bias in text. Your task is to analyze a 'Generated Text' against a 'Reference Text' and identify passages where the generated text relies too heavily on the reference, essentially repeating information without adding new value or insight.
- A high score (e.g., 0.8-1.0) means the generated text is almost a direct copy or very minor paraphrase of the reference.
- A medium score (e.g., 0.4-0.7) means the text borrows heavily but has some original structure.
- A low score (e.g., 0.0-0.3) means the text is original and uses the reference appropriately as a source.
You must return your analysis in a structured JSON format."""

JSON_ONLY_INSTRUCTION = (
    "Reply with ONLY a valid JSON object: no markdown, no code blocks, no explanatory text. "
    'The object must contain exactly the keys "score" (a number from 0.0 to 1.0), '
    '"explanation" (a string) and "highlightedText" (the original generated text with the '
    f"circularly biased sections wrapped in {HIGHLIGHT_START}{HIGHLIGHT_END} tags). "
    "Ensure all strings are properly escaped, especially quotes and newlines."
)

CIRCULARITY_PROMPT = """Please analyze the following texts for circular bias.

Reference Text:
---
{reference_text}
---

Generated Text:
---
{generated_text}
---

Provide your analysis in the required JSON format."""
