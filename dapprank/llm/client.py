"""LLM client for script classification.

Combines prompt construction, provider configuration, request handling,
error classification and response parsing into a single module.
"""
import hashlib
import json
import logging
import os
import re
import warnings
from pathlib import Path
from typing import Any

from litellm import acompletion
from litellm.exceptions import ContextWindowExceededError
from litellm.exceptions import RateLimitError as LiteLLMRateLimitError

from ..config.constants import DappRankConstants
from ..exceptions import (
    ClassifierError,
    ClassifierParseError,
    ContextOverflowError,
    QuotaExhaustedError,
    RateLimitError,
)

logger = logging.getLogger(__name__)

warnings.filterwarnings("ignore", message=".*Pydantic serializer warnings.*")
warnings.filterwarnings("ignore", message=".*close_litellm_async_clients.*")

QUOTA_KEYWORDS = ["quota exceeded", "exceeded your current quota", "insufficient_quota"]
RATE_LIMIT_KEYWORDS = ["rate limit", "too many requests", "status: 429", "429", "throttling"]


# ── Provider Configuration ───────────────────────────────────────────

class ProviderConfig:
    """Configuration for an LLM provider reached through LiteLLM."""

    def __init__(self, model: str, api_key: str | None = None, base_url: str | None = None):
        self.base_url = base_url
        model_lower = model.lower()
        self.is_gemini = "gemini" in model_lower and not model_lower.startswith("vertex_ai/")
        if self.is_gemini and not model.startswith("gemini/"):
            self.model = f"gemini/{model.replace('models/', '')}"
        else:
            self.model = model
        self.api_key = api_key if api_key is not None else (
            os.getenv("DAPPRANK_LLM_API_KEY") or os.getenv("GOOGLE_API_KEY")
        )

    def validate(self) -> None:
        """Raise ValueError if required credentials are missing."""
        if not self.api_key and not self.model.startswith("ollama/"):
            raise ValueError(f"API key required for model {self.model} (set GOOGLE_API_KEY)")

    def get_request_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if self.api_key:
            if self.is_gemini:
                if not os.getenv("GEMINI_API_KEY"):
                    os.environ["GEMINI_API_KEY"] = self.api_key
            else:
                params["api_key"] = self.api_key
        if self.base_url:
            params["api_base"] = self.base_url
        return params


# ── Prompt Builder ───────────────────────────────────────────────────

class PromptBuilder:
    """Loads the script analysis prompt and its response schema."""

    def __init__(self, prompts_dir: Path | None = None):
        self.prompts_dir = prompts_dir or DappRankConstants.get_prompts_path()
        prompt_file = self.prompts_dir / "script_analysis_prompt.md"
        schema_file = self.prompts_dir / "script_analysis_schema.json"
        self.instructions = prompt_file.read_text(encoding="utf-8").strip()
        self.response_schema: dict[str, Any] = json.loads(schema_file.read_text(encoding="utf-8"))

    @property
    def system_prompt(self) -> str:
        schema_text = json.dumps(self.response_schema, indent=2)
        return f"{self.instructions}\n\n{schema_text}\n"

    @property
    def prompt_hash(self) -> str:
        """Short hash of the system prompt. Changing the prompt starts a new cache generation."""
        return create_prompt_hash(self.system_prompt)

    def build_messages(self, source: str, label: str) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": f"File: {label}\n\nCode:\n```javascript\n{source}\n```"},
        ]


def create_prompt_hash(prompt: str) -> str:
    return hashlib.sha256(prompt.encode("utf-8")).hexdigest()[:8]


# ── Error Classification ─────────────────────────────────────────────

def classify_llm_error(error: Exception) -> ClassifierError:
    """Map a provider exception onto the classifier error taxonomy."""
    if isinstance(error, ClassifierError):
        return error
    message = str(error)
    lowered = message.lower()
    if isinstance(error, ContextWindowExceededError) or (
        "token count" in lowered and "exceeds" in lowered
    ):
        return ContextOverflowError(message)
    if any(kw in lowered for kw in QUOTA_KEYWORDS):
        return QuotaExhaustedError(message)
    if isinstance(error, LiteLLMRateLimitError) or any(kw in lowered for kw in RATE_LIMIT_KEYWORDS):
        return RateLimitError(message)
    return ClassifierError(message)


# ── Request Handler ──────────────────────────────────────────────────

class LLMRequestHandler:
    """Sends a single completion request. Retries are owned by the caller."""

    def __init__(
        self,
        provider_config: ProviderConfig,
        response_schema: dict[str, Any] | None = None,
        max_tokens: int = 8192,
        temperature: float = 0.1,
        timeout: int = 300,
    ):
        self.provider_config = provider_config
        self.response_schema = response_schema
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout

    async def make_request(self, messages: list[dict[str, str]]) -> str:
        request_params: dict[str, Any] = {
            "model": self.provider_config.model,
            "messages": messages,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "timeout": self.timeout,
            **self.provider_config.get_request_params(),
        }
        if self.response_schema:
            request_params["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": "script_analysis_response", "schema": self.response_schema},
            }
        try:
            response = await acompletion(**request_params)
        except Exception as e:
            raise classify_llm_error(e) from e
        return response.choices[0].message.content or ""


# ── Response Parser ──────────────────────────────────────────────────

FENCED_JSON = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```")


class ResponseParser:
    """Extracts the JSON object from a classifier response."""

    @staticmethod
    def parse(response: str) -> dict[str, Any]:
        """Parse direct JSON, falling back to a fenced markdown block."""
        if not response or not response.strip():
            raise ClassifierParseError("Empty response from LLM")
        try:
            parsed = json.loads(response.strip())
        except json.JSONDecodeError:
            match = FENCED_JSON.search(response)
            if not match:
                raise ClassifierParseError(f"Could not find JSON in response: {response[:200]}")
            try:
                parsed = json.loads(match.group(1))
            except json.JSONDecodeError as e:
                raise ClassifierParseError(f"Could not parse fenced JSON: {e}") from e
        if not isinstance(parsed, dict):
            raise ClassifierParseError(f"Expected a JSON object, got {type(parsed).__name__}")
        return parsed


# ── Classifier ───────────────────────────────────────────────────────

class LLMClassifier:
    """Script classifier backed by an LLM. One call per invocation, no retries."""

    def __init__(
        self,
        model: str = DappRankConstants.DEFAULT_LLM_MODEL,
        api_key: str | None = None,
        base_url: str | None = None,
        max_tokens: int = DappRankConstants.DEFAULT_LLM_MAX_TOKENS,
        temperature: float = DappRankConstants.DEFAULT_LLM_TEMPERATURE,
        timeout: int = 300,
        prompt_builder: PromptBuilder | None = None,
    ):
        self.provider_config = ProviderConfig(model=model, api_key=api_key, base_url=base_url)
        self.provider_config.validate()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.request_handler = LLMRequestHandler(
            self.provider_config,
            response_schema=self.prompt_builder.response_schema,
            max_tokens=max_tokens,
            temperature=temperature,
            timeout=timeout,
        )
        self.response_parser = ResponseParser()

    @property
    def prompt_hash(self) -> str:
        return self.prompt_builder.prompt_hash

    async def classify(self, source: str, label: str) -> dict[str, Any]:
        messages = self.prompt_builder.build_messages(source, label)
        response = await self.request_handler.make_request(messages)
        logger.debug("Received classifier response for %s (%d chars)", label, len(response))
        return self.response_parser.parse(response)
