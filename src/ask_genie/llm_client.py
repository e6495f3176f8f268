"""Chat-completion client that answers a question against a block of context."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import requests
from pydantic import ValidationError

from .schemas import ChatCompletionRequest, ChatCompletionResponse, ChatMessage, ProviderErrorBody

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://api.openai.com/v1/chat/completions"


class QueryError(Exception):
    """Base class for every failed `query` call."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class TransportError(QueryError):
    """The request never got a response: encoding, network, DNS, TLS or timeout failure."""


class ProviderError(QueryError):
    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProviderErrorOpaque(QueryError):
    def __init__(self, status_code: int) -> None:
        super().__init__(f"HTTP error! status: {status_code}")
        self.status_code = status_code


class MalformedResponseError(QueryError):
    """The endpoint answered 2xx but the body is not a chat completion."""


@dataclass(frozen=True)
class CompletionConfig:
    credential: str
    model: str
    system_prompt: str
    endpoint: str = DEFAULT_ENDPOINT
    # None keeps requests from enforcing any timeout
    timeout_s: float | None = None


def build_request(config: CompletionConfig, context: str, question: str) -> ChatCompletionRequest:
    """Build the three-message request: instructions, grounding context, user question."""
    return ChatCompletionRequest(
        model=config.model,
        messages=[
            ChatMessage(role="system", content=config.system_prompt),
            ChatMessage(role="system", content=f"context: {context}"),
            ChatMessage(role="user", content=question),
        ],
    )


def _provider_error(resp: requests.Response) -> QueryError:
    try:
        body: Any = resp.json()
        parsed = ProviderErrorBody.model_validate(body)
    except (ValueError, ValidationError):
        # requests raises a ValueError subclass for non-JSON bodies
        return ProviderErrorOpaque(resp.status_code)

    error = parsed.error
    message = error if isinstance(error, str) else error.message
    return ProviderError(message, resp.status_code)


def _parse_answer(resp: requests.Response) -> str:
    try:
        body: Any = resp.json()
    except ValueError as exc:
        raise MalformedResponseError(f"Response body is not JSON: {exc}") from exc

    try:
        return ChatCompletionResponse.model_validate(body).answer
    except ValidationError as exc:
        raise MalformedResponseError(f"Unexpected chat completion response format: {exc}") from exc


class CompletionClient:
    def __init__(self, config: CompletionConfig) -> None:
        self._config = config

    @property
    def config(self) -> CompletionConfig:
        return self._config

    async def query(self, context: str, question: str) -> str:
        """Ask `question` against `context` and return the model's answer.

        The blocking HTTP call runs in a worker thread so concurrent calls
        proceed as independent requests.

        Raises:
            TransportError: the request never got a response
            ProviderError: non-2xx status with a provider error message
            ProviderErrorOpaque: non-2xx status with an unreadable body
            MalformedResponseError: 2xx status without choices[0].message.content
        """
        return await asyncio.to_thread(self.query_sync, context, question)

    def query_sync(self, context: str, question: str) -> str:
        try:
            body = build_request(self._config, context, question).model_dump_json().encode("utf-8")
        except ValueError as exc:
            # lone surrogates (e.g. from surrogateescape stdin) cannot be sent as UTF-8 JSON
            logger.warning("Completion request could not be encoded: %s", exc)
            raise TransportError(f"Request could not be encoded: {exc}") from exc

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._config.credential}",
        }

        logger.info(
            "Completion request, model: %s, context length: %d, question length: %d",
            self._config.model,
            len(context),
            len(question),
        )

        try:
            resp = requests.post(
                self._config.endpoint,
                headers=headers,
                data=body,
                timeout=self._config.timeout_s,
            )
        except requests.RequestException as exc:
            logger.warning("Completion request failed: %s", exc)
            raise TransportError(f"Request failed: {exc}") from exc

        if not 200 <= resp.status_code < 300:
            error = _provider_error(resp)
            logger.warning("Provider returned HTTP %d: %s", resp.status_code, error.message)
            raise error

        try:
            answer = _parse_answer(resp)
        except MalformedResponseError as exc:
            logger.warning("%s", exc.message)
            raise

        logger.info("Completion finished, answer length: %d", len(answer))
        return answer
