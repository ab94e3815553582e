"""
Hosted model backends.

Every backend takes the rendered prompt and the output schema and returns the
raw text of a single completion. Failures are raised as BackendError; turning
them into a usable result is the AssessmentClient's job.
"""

import abc
import json
from typing import Any, Dict, List, Optional

import aiohttp

from selfcheck.config import Settings

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1/chat/completions"

# Keys of the OpenAPI subset accepted by Gemini's responseSchema.
_GEMINI_SCHEMA_KEYS = ("type", "description", "enum", "properties", "required", "items")


class BackendError(Exception):
    """The model service could not produce a completion."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class ModelBackend(abc.ABC):
    name = "base"

    @abc.abstractmethod
    async def submit(self, prompt: str, schema: Dict[str, Any]) -> str:
        """Return the model's raw text for `prompt`, constrained to `schema`."""


class _HTTPBackend(ModelBackend):

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        temperature: float = 0.2,
        request_timeout: float = 120.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        if not api_key:
            raise ValueError(f"API key for {self.name} not found in environment")
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.request_timeout = request_timeout
        self._session = session

    @abc.abstractmethod
    def url(self) -> str:
        ...

    @abc.abstractmethod
    def headers(self) -> Dict[str, str]:
        ...

    @abc.abstractmethod
    def payload(self, prompt: str, schema: Dict[str, Any]) -> Dict[str, Any]:
        ...

    @abc.abstractmethod
    def extract_text(self, data: Dict[str, Any]) -> str:
        ...

    async def submit(self, prompt: str, schema: Dict[str, Any]) -> str:
        if self._session is not None:
            return await self._post(self._session, prompt, schema)
        async with aiohttp.ClientSession() as session:
            return await self._post(session, prompt, schema)

    async def _post(self, session: aiohttp.ClientSession, prompt: str, schema: Dict[str, Any]) -> str:
        try:
            async with session.post(
                self.url(),
                headers=self.headers(),
                json=self.payload(prompt, schema),
                timeout=aiohttp.ClientTimeout(total=self.request_timeout),
            ) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise BackendError(
                        f"API error {response.status} from {self.name}: {error_text[:200]}",
                        status=response.status,
                    )
                data = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise BackendError(f"API request to {self.name} failed: {e}") from e

        try:
            return self.extract_text(data)
        except (KeyError, IndexError, TypeError) as e:
            raise BackendError(f"Failed to parse {self.name} response envelope: {e!r}") from e


def to_gemini_schema(schema: Dict[str, Any]) -> Dict[str, Any]:
    """Translate a JSON schema into the upper-case OpenAPI subset Gemini accepts."""
    out: Dict[str, Any] = {}
    for key in _GEMINI_SCHEMA_KEYS:
        if key not in schema:
            continue
        value = schema[key]
        if key == "type":
            out["type"] = value.upper()
        elif key == "properties":
            out["properties"] = {name: to_gemini_schema(sub) for name, sub in value.items()}
        elif key == "items":
            out["items"] = to_gemini_schema(value)
        else:
            out[key] = value
    return out


class GeminiBackend(_HTTPBackend):
    name = "gemini"

    def url(self) -> str:
        return f"{GEMINI_BASE_URL}/{self.model}:generateContent"

    def headers(self) -> Dict[str, str]:
        return {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }

    def payload(self, prompt: str, schema: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "responseMimeType": "application/json",
                "responseSchema": to_gemini_schema(schema),
            },
        }

    def extract_text(self, data: Dict[str, Any]) -> str:
        parts: List[Dict[str, Any]] = data["candidates"][0]["content"]["parts"]
        text = "".join(part.get("text", "") for part in parts)
        if not text:
            raise KeyError("text")
        return text


class OpenRouterBackend(_HTTPBackend):
    name = "openrouter"

    def url(self) -> str:
        return OPENROUTER_BASE_URL

    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def payload(self, prompt: str, schema: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
            "response_format": {
                "type": "json_schema",
                "json_schema": {"name": "self_check_assessment", "strict": True, "schema": schema},
            },
        }

    def extract_text(self, data: Dict[str, Any]) -> str:
        content = data["choices"][0]["message"]["content"]
        if not content:
            raise KeyError("content")
        return content


class MockBackend(ModelBackend):
    """Canned answer for running the app without an API key."""

    name = "mock"

    async def submit(self, prompt: str, schema: Dict[str, Any]) -> str:
        return json.dumps({
            "decision": "REMOTE",
            "reason": "これはモックの応答です。実際の判定にはAPIキーを設定してください。",
            "aiAdvice": "こまめに水分を摂り、無理をせず休憩を挟みながら過ごしてください。",
            "reportDraft": (
                "お疲れ様です。体調が万全ではないため、本日は在宅勤務に切り替えさせていただけますでしょうか。"
                "Slackは常に確認できる状態にしておきます。よろしくお願いいたします。"
            ),
            "score": 30,
        }, ensure_ascii=False)


class StaticBackend(ModelBackend):
    """
    Deterministic backend: returns `text`, or raises `error` when given.
    Records every submitted prompt in `calls`.
    """

    name = "static"

    def __init__(self, text: str = "", error: Optional[BaseException] = None):
        self.text = text
        self.error = error
        self.calls: List[str] = []

    async def submit(self, prompt: str, schema: Dict[str, Any]) -> str:
        self.calls.append(prompt)
        if self.error is not None:
            raise self.error
        return self.text


def make_backend(settings: Settings, session: Optional[aiohttp.ClientSession] = None) -> ModelBackend:
    if settings.provider == "mock":
        return MockBackend()
    if settings.provider == "openrouter":
        return OpenRouterBackend(settings.api_key, settings.model, settings.temperature, session=session)
    if settings.provider == "gemini":
        return GeminiBackend(settings.api_key, settings.model, settings.temperature, session=session)
    raise ValueError(f"Unknown provider: {settings.provider}")
