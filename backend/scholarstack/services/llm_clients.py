"""
HTTP clients for the two supported LLM providers.

Both providers are reached over their REST APIs with httpx. A Credential is
an explicit (provider, api_key) pair chosen when the key is configured, so
dispatch never has to guess the provider from the key text.
"""
import httpx
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel

from scholarstack.core.config import settings

logger = logging.getLogger(__name__)


class Provider(str, Enum):
    OPENAI = "openai"
    GEMINI = "gemini"

    @classmethod
    def infer_from_key(cls, api_key: str) -> "Provider":
        """
        Only used once, when a key is stored without an explicit provider.
        """
        return cls.OPENAI if api_key.strip().startswith("sk-") else cls.GEMINI


class Credential(BaseModel):
    provider: Provider
    api_key: str

    class Config:
        frozen = True

    def __repr__(self) -> str:
        return f"Credential(provider={self.provider.value!r}, api_key='***')"

    __str__ = __repr__


class LLMBackendError(Exception):
    """Raised for transport failures and non-2xx responses from a provider."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class LLMBackend(ABC):
    """
    Common interface for embedding and chat-completion calls.

    `history` items are {"role": "user" | "assistant", "content": str}.
    """

    provider: Provider

    def __init__(self, credential: Credential, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._credential = credential
        self._transport = transport

    @property
    @abstractmethod
    def default_chat_model(self) -> str:
        pass

    @property
    @abstractmethod
    def embed_model(self) -> str:
        pass

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        pass

    @abstractmethod
    async def chat(
        self,
        system_prompt: str,
        history: List[Dict[str, str]],
        query: str,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        pass

    def _client(self, base_url: str, headers: Dict[str, str]) -> httpx.AsyncClient:
        kwargs = {"base_url": base_url, "headers": headers, "timeout": settings.LLM_TIMEOUT}
        if self._transport is not None:
            kwargs["transport"] = self._transport
        return httpx.AsyncClient(**kwargs)

    async def _post(self, client: httpx.AsyncClient, url: str, payload: dict) -> dict:
        try:
            response = await client.post(url, json=payload)
        except httpx.HTTPError as e:
            raise LLMBackendError(f"Could not reach {self.provider.value}: {e}") from e

        if response.status_code != 200:
            # Error bodies can be long HTML pages; keep the log line short
            logger.error(
                "%s request to %s failed: status %d, body: %s",
                self.provider.value, url, response.status_code, response.text[:200],
            )
            raise LLMBackendError(
                f"{self.provider.value} error ({response.status_code}): {response.text[:200]}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise LLMBackendError(f"{self.provider.value} returned invalid JSON") from e


class OpenAIBackend(LLMBackend):
    provider = Provider.OPENAI

    @property
    def default_chat_model(self) -> str:
        return settings.OPENAI_CHAT_MODEL

    @property
    def embed_model(self) -> str:
        return settings.OPENAI_EMBED_MODEL

    def _openai_client(self) -> httpx.AsyncClient:
        return self._client(
            settings.OPENAI_BASE_URL,
            {"Authorization": f"Bearer {self._credential.api_key}"},
        )

    async def embed(self, text: str) -> List[float]:
        payload = {"model": self.embed_model, "input": [text], "encoding_format": "float"}
        async with self._openai_client() as client:
            data = await self._post(client, "/embeddings", payload)
        try:
            return data["data"][0]["embedding"]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMBackendError("Unexpected embeddings response format from OpenAI") from e

    async def chat(self, system_prompt, history, query, model, temperature, max_tokens) -> str:
        messages = [{"role": "system", "content": system_prompt}]
        messages.extend({"role": m["role"], "content": m["content"]} for m in history)
        messages.append({"role": "user", "content": query})
        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        async with self._openai_client() as client:
            data = await self._post(client, "/chat/completions", payload)
        try:
            return data["choices"][0]["message"].get("content") or ""
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise LLMBackendError("Unexpected chat response format from OpenAI") from e


class GeminiBackend(LLMBackend):
    provider = Provider.GEMINI

    @property
    def default_chat_model(self) -> str:
        return settings.GEMINI_CHAT_MODEL

    @property
    def embed_model(self) -> str:
        return settings.GEMINI_EMBED_MODEL

    def _gemini_client(self) -> httpx.AsyncClient:
        return self._client(
            settings.GEMINI_BASE_URL,
            {"x-goog-api-key": self._credential.api_key},
        )

    async def embed(self, text: str) -> List[float]:
        payload = {
            "model": f"models/{self.embed_model}",
            "content": {"parts": [{"text": text}]},
        }
        async with self._gemini_client() as client:
            data = await self._post(client, f"/models/{self.embed_model}:embedContent", payload)
        try:
            return data["embedding"]["values"]
        except (KeyError, TypeError) as e:
            raise LLMBackendError("Unexpected embeddings response format from Gemini") from e

    async def chat(self, system_prompt, history, query, model, temperature, max_tokens) -> str:
        # Gemini calls the assistant role "model"
        contents = [
            {"role": "model" if m["role"] == "assistant" else "user", "parts": [{"text": m["content"]}]}
            for m in history
        ]
        contents.append({"role": "user", "parts": [{"text": query}]})
        payload = {
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            "contents": contents,
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_tokens,
            },
        }
        async with self._gemini_client() as client:
            data = await self._post(client, f"/models/{model}:generateContent", payload)
        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMBackendError("Unexpected chat response format from Gemini") from e
        return "".join(part.get("text", "") for part in parts)


_BACKENDS = {
    Provider.OPENAI: OpenAIBackend,
    Provider.GEMINI: GeminiBackend,
}


def get_backend(credential: Credential, transport: Optional[httpx.AsyncBaseTransport] = None) -> LLMBackend:
    return _BACKENDS[credential.provider](credential, transport=transport)
