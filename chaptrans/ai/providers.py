"""
AI Provider API Implementations

This module contains one backend class per AI provider:
- Gemini (generateContent REST API)
- Ollama (local /api/chat)
- OpenAI-compatible chat completions (OpenAI, DeepSeek, custom providers)

Every backend exposes generate(system_prompt, user_content, json_mode) and
returns the text of the first candidate. No retries happen here: a failed
call raises BackendError and the caller decides what to do.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from chaptrans.config import BUILTIN_PROVIDER_DISPLAY_NAMES, PROVIDER_DEFAULTS
from chaptrans.logger import get_logger
from chaptrans.ai.exceptions import BackendError

logger = get_logger(__name__)

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"


@dataclass
class TokenUsage:
    """Token counters for one backend: last call and running totals."""
    last_prompt_tokens: int = 0
    last_completion_tokens: int = 0
    total_prompt_tokens: int = 0
    total_completion_tokens: int = 0

    def record(self, prompt_tokens: int, completion_tokens: int):
        self.last_prompt_tokens = prompt_tokens or 0
        self.last_completion_tokens = completion_tokens or 0
        self.total_prompt_tokens += self.last_prompt_tokens
        self.total_completion_tokens += self.last_completion_tokens

    def last(self) -> Dict[str, int]:
        return {
            'prompt_tokens': self.last_prompt_tokens,
            'completion_tokens': self.last_completion_tokens,
        }

    def total(self) -> Dict[str, int]:
        return {
            'prompt_tokens': self.total_prompt_tokens,
            'completion_tokens': self.total_completion_tokens,
        }


def get_httpx_timeout(timeout_config: Any) -> httpx.Timeout:
    """
    Convert timeout configuration to httpx.Timeout object.

    Args:
        timeout_config: Either a number (read timeout) or a dict with
            connect, write, read, pool keys

    Returns:
        httpx.Timeout object
    """
    if isinstance(timeout_config, dict):
        return httpx.Timeout(
            connect=timeout_config.get('connect', 10.0),
            write=timeout_config.get('write', 60.0),
            read=timeout_config.get('read', float(PROVIDER_DEFAULTS['timeout'])),
            pool=timeout_config.get('pool', 10.0),
        )
    else:
        timeout_value = float(timeout_config) if timeout_config else float(PROVIDER_DEFAULTS['timeout'])
        return httpx.Timeout(
            connect=10.0,
            write=60.0,
            read=timeout_value,
            pool=10.0,
        )


def resolve_model(provider_config: Dict[str, Any], model_override: Optional[str] = None) -> str:
    """
    Get the model to use.

    Priority:
    1. model_override (if set)
    2. First model from 'models' array
    3. 'model' field
    """
    if model_override:
        return model_override

    models = provider_config.get('models', [])
    if models and isinstance(models, list) and models[0]:
        return models[0]

    return provider_config.get('model', '')


def handle_http_error(e: httpx.HTTPStatusError, provider: str):
    """Turn an HTTP status error into a BackendError carrying the raw body."""
    status_code = e.response.status_code
    body = e.response.text
    error_text = body[:500] if body else "No details"

    try:
        error_json = e.response.json()
        if isinstance(error_json, dict) and "error" in error_json:
            error_detail = error_json["error"]
            if isinstance(error_detail, dict):
                error_text = error_detail.get("message", str(error_detail))
            else:
                error_text = str(error_detail)
    except ValueError:
        pass

    raise BackendError(
        f"{provider} API error ({status_code}): {error_text}",
        provider=provider,
        code="http_error",
        details={"status_code": status_code, "body": body},
    )


def post_json(
    provider: str,
    url: str,
    body: Dict[str, Any],
    timeout: Any,
    headers: Optional[Dict[str, str]] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> Dict[str, Any]:
    """POST a JSON body and return the decoded JSON response."""
    try:
        httpx_timeout = get_httpx_timeout(timeout)
        with httpx.Client(timeout=httpx_timeout, transport=transport) as client:
            response = client.post(url, headers=headers, json=body)
            response.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.error(f"{provider} API HTTP error: {e.response.status_code} - {e.response.text}")
        handle_http_error(e, provider)
    except httpx.TimeoutException:
        raise BackendError(f"{provider} API request timeout", provider=provider, code="timeout")
    except httpx.HTTPError as e:
        logger.error(f"{provider} API call failed: {e}")
        raise BackendError(f"{provider} API call failed: {e}", provider=provider, code="network_error")

    try:
        result = response.json()
    except ValueError as e:
        raise BackendError(
            f"{provider} API returned invalid JSON: {e}",
            provider=provider,
            code="invalid_response",
            details={"body": response.text},
        )

    if not isinstance(result, dict):
        raise BackendError(
            f"Unexpected {provider} API response format",
            provider=provider,
            code="invalid_response",
            details={"body": response.text},
        )
    return result


def _dig(value: Any, *path: Any) -> Any:
    """
    Follow dict keys and list indices through a decoded response.

    Returns None as soon as a level has the wrong type or is missing.

    Example:
        >>> _dig({"choices": [{"message": {"content": "hi"}}]}, "choices", 0, "message", "content")
        'hi'
    """
    for step in path:
        if isinstance(step, int):
            if not isinstance(value, list) or len(value) <= step:
                return None
        elif not isinstance(value, dict):
            return None
        value = value[step] if isinstance(step, int) else value.get(step)
    return value


def _token_count(value: Any) -> int:
    # bool is an int subclass but never a token count
    return value if isinstance(value, int) and not isinstance(value, bool) else 0


def _unexpected_format(provider: str, result: Dict[str, Any]) -> BackendError:
    return BackendError(
        f"Unexpected {provider} API response format: no text content",
        provider=provider,
        code="invalid_response",
        details={"body": result},
    )


class GeminiBackend:
    """Google Gemini via the generateContent REST endpoint."""

    provider = "gemini"

    def __init__(self, provider_config: Dict[str, Any], model_override: Optional[str] = None,
                 transport: Optional[httpx.BaseTransport] = None):
        self.config = provider_config
        self.api_key = provider_config['api_key']
        self.model = resolve_model(provider_config, model_override)
        self.timeout = provider_config.get('timeout', PROVIDER_DEFAULTS['timeout'])
        self.temperature = provider_config.get('temperature', PROVIDER_DEFAULTS['temperature'])
        self.transport = transport
        self.usage = TokenUsage()

    def generate(self, system_prompt: str, user_content: str, json_mode: bool) -> str:
        url = f"{GEMINI_API_BASE}/{self.model}:generateContent?key={self.api_key}"

        generation_config: Dict[str, Any] = {"temperature": self.temperature}
        if json_mode:
            generation_config["responseMimeType"] = "application/json"

        body = {
            "system_instruction": {
                "parts": [{"text": system_prompt}]
            },
            "contents": [{
                "parts": [{"text": user_content}]
            }],
            "generationConfig": generation_config,
        }

        logger.debug(f"Calling Gemini API: {self.model} (json_mode={json_mode})")
        result = post_json("Gemini", url, body, self.timeout, transport=self.transport)

        prompt_tokens = _token_count(_dig(result, 'usageMetadata', 'promptTokenCount'))
        completion_tokens = _token_count(_dig(result, 'usageMetadata', 'candidatesTokenCount'))

        # Fallback: calculate from total if candidatesTokenCount is missing
        if completion_tokens == 0 and prompt_tokens > 0:
            total_tokens = _token_count(_dig(result, 'usageMetadata', 'totalTokenCount'))
            if total_tokens > prompt_tokens:
                completion_tokens = total_tokens - prompt_tokens
        self.usage.record(prompt_tokens, completion_tokens)

        text = _dig(result, 'candidates', 0, 'content', 'parts', 0, 'text')
        if isinstance(text, str):
            logger.debug(f"Received {len(text)} chars from Gemini (tokens: {self.usage.last()})")
            return text

        raise _unexpected_format("Gemini", result)


class OllamaBackend:
    """Local Ollama server via /api/chat (non-streaming)."""

    provider = "ollama"

    def __init__(self, provider_config: Dict[str, Any], model_override: Optional[str] = None,
                 transport: Optional[httpx.BaseTransport] = None):
        self.config = provider_config
        self.base_url = provider_config['base_url'].rstrip('/')
        self.model = resolve_model(provider_config, model_override)
        self.timeout = provider_config.get('timeout', PROVIDER_DEFAULTS['timeout'])
        self.temperature = provider_config.get('temperature', PROVIDER_DEFAULTS['temperature'])
        self.num_ctx = provider_config.get('num_ctx', PROVIDER_DEFAULTS['num_ctx'])
        self.transport = transport
        self.usage = TokenUsage()

    def generate(self, system_prompt: str, user_content: str, json_mode: bool) -> str:
        url = f"{self.base_url}/api/chat"

        body: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
            "stream": False,
            "options": {
                "temperature": self.temperature,
                "num_ctx": self.num_ctx,
            },
        }
        if json_mode:
            body["format"] = "json"

        logger.debug(f"Calling Ollama API: {self.model} at {self.base_url} (json_mode={json_mode})")
        result = post_json("Ollama", url, body, self.timeout, transport=self.transport)

        self.usage.record(_token_count(result.get('prompt_eval_count')), _token_count(result.get('eval_count')))

        content = _dig(result, 'message', 'content')
        if isinstance(content, str):
            logger.debug(f"Received {len(content)} chars from Ollama (tokens: {self.usage.last()})")
            return content

        raise _unexpected_format("Ollama", result)


class OpenAICompatibleBackend:
    """
    Chat completions API in the OpenAI format.

    Serves OpenAI, DeepSeek and any custom provider block that declares an api_url.
    """

    def __init__(self, provider: str, provider_config: Dict[str, Any], model_override: Optional[str] = None,
                 transport: Optional[httpx.BaseTransport] = None):
        self.provider = provider
        self.config = provider_config
        self.api_key = provider_config['api_key']
        self.api_url = provider_config['api_url']
        self.model = resolve_model(provider_config, model_override)
        self.timeout = provider_config.get('timeout', PROVIDER_DEFAULTS['timeout'])
        self.temperature = provider_config.get('temperature', PROVIDER_DEFAULTS['temperature'])
        self.transport = transport
        self.usage = TokenUsage()

    @property
    def display_name(self) -> str:
        return BUILTIN_PROVIDER_DISPLAY_NAMES.get(self.provider, f"Custom provider '{self.provider}'")

    def generate(self, system_prompt: str, user_content: str, json_mode: bool) -> str:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        body: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
            "temperature": self.temperature,
        }
        if json_mode:
            body["response_format"] = {"type": "json_object"}

        logger.debug(f"Calling {self.display_name} API (model: {self.model}, json_mode={json_mode})")
        result = post_json(self.display_name, self.api_url, body, self.timeout,
                           headers=headers, transport=self.transport)

        self.usage.record(
            _token_count(_dig(result, 'usage', 'prompt_tokens')),
            _token_count(_dig(result, 'usage', 'completion_tokens')),
        )

        content = _dig(result, 'choices', 0, 'message', 'content')
        if isinstance(content, str):
            logger.debug(f"Received {len(content)} chars from {self.display_name} (tokens: {self.usage.last()})")
            return content

        raise _unexpected_format(self.display_name, result)
