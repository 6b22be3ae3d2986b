"""Process-wide settings read once at startup."""

from __future__ import annotations

import os
from typing import List, Literal, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from bias_detector.errors import ConfigurationError

DEFAULT_CORS_ORIGINS = "http://localhost:5173"  # Vite default port

_API_KEY_VARS = {"claude": "CLAUDE_API_KEY", "openai": "OPENAI_API_KEY"}
_MODEL_VARS = {"claude": "CLAUDE_MODEL", "openai": "OPENAI_MODEL"}


class Settings(BaseModel):
    """Credential and tuning knobs for the analysis client."""

    llm_provider: Literal["claude", "openai"] = "claude"
    api_key: str
    model: Optional[str] = None
    temperature: float = 0.2
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables.

        Raises ``ConfigurationError`` when the provider is unknown or its API key is
        absent; no analysis call can be made without it.
        """

        env = os.environ if environ is None else environ

        provider = env.get("LLM_PROVIDER", "claude").strip().lower() or "claude"
        if provider not in _API_KEY_VARS:
            raise ConfigurationError(f"Unsupported LLM_PROVIDER: {provider}")

        key_var = _API_KEY_VARS[provider]
        api_key = (env.get(key_var) or "").strip()
        if not api_key:
            raise ConfigurationError(f"{key_var} environment variable not set")

        raw_temperature = env.get("LLM_TEMPERATURE", "0.2")
        try:
            temperature = float(raw_temperature)
        except ValueError as exc:
            raise ConfigurationError(f"LLM_TEMPERATURE must be a number, got {raw_temperature!r}") from exc

        return cls(
            llm_provider=provider,
            api_key=api_key,
            model=(env.get(_MODEL_VARS[provider]) or "").strip() or None,
            temperature=temperature,
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )


def load_settings() -> Settings:
    load_dotenv()
    return Settings.from_env()


def cors_origins(environ: Optional[Mapping[str, str]] = None) -> List[str]:
    env = os.environ if environ is None else environ
    raw = env.get("CORS_ORIGINS", DEFAULT_CORS_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]
