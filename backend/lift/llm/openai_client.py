import asyncio
import logging
import os
import random
import re
import time
from typing import Any, Awaitable, Callable, Optional

from langchain.chat_models import init_chat_model
from langchain_core.messages import BaseMessage, HumanMessage

from lift import config
from lift.errors import AuthenticationError, UpstreamError
from .base import BaseCompletionClient

logger = logging.getLogger("lift.llm")

MISSING_KEY_MESSAGE = (
    f"Completion service API key is not configured. Set {config.OPENAI_API_KEY_ENV} in the environment."
)
AUTH_FAILED_MESSAGE = "Authentication failed. Check your OpenAI API key and permissions."
UPSTREAM_FAILED_MESSAGE = "The completion service is unavailable. Please try again."

_TRANSIENT_STATUS = {408, 409, 429, 500, 502, 503, 504}
_AUTH_STATUS = {401, 403}
_TRANSIENT_TYPES = {"RateLimitError", "APITimeoutError", "APIConnectionError", "InternalServerError"}
_AUTH_TYPES = {"AuthenticationError", "PermissionDeniedError"}

# "Error code: 429 - {...}" is how the openai SDK renders status errors
_STATUS_IN_MESSAGE = re.compile(r"\b(?:error code|status(?: code)?)\s*[:=]?\s*(\d{3})\b", re.IGNORECASE)
_TRANSIENT_PHRASES = re.compile(
    r"\b(?:rate limit(?:ed)?|rate_limit_exceeded|too many requests|timed out|timeout"
    r"|temporarily unavailable|service unavailable|overloaded|server is busy"
    r"|connection (?:error|reset|refused|aborted))\b",
    re.IGNORECASE,
)
_AUTH_PHRASES = re.compile(
    r"\b(?:incorrect api key|invalid api key|invalid_api_key|authentication failed|unauthorized|permission denied)\b",
    re.IGNORECASE,
)


def _status_code(exc: BaseException) -> Optional[int]:
    code = getattr(exc, "status_code", None)
    if isinstance(code, int):
        return code
    match = _STATUS_IN_MESSAGE.search(str(exc))
    return int(match.group(1)) if match else None


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return True
    if type(exc).__name__ in _TRANSIENT_TYPES:
        return True
    status = _status_code(exc)
    if status is not None:
        return status in _TRANSIENT_STATUS
    return bool(_TRANSIENT_PHRASES.search(str(exc)))


def _is_auth_failure(exc: BaseException) -> bool:
    if type(exc).__name__ in _AUTH_TYPES:
        return True
    status = _status_code(exc)
    if status is not None:
        return status in _AUTH_STATUS
    return bool(_AUTH_PHRASES.search(str(exc)))


def _message_text(message: Any) -> str:
    """Flatten a chat model response into plain text."""
    content = getattr(message, "content", message)
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(part.get("text") or "")
        content = "".join(parts)
    return (content or "").strip() if isinstance(content, str) else ""


class OpenAICompletionClient(BaseCompletionClient):
    """
    Wraps a langchain chat model bound to the OpenAI chat completions API.
    Attributes:
        model (str): Provider-prefixed model identifier, e.g. "openai:gpt-4o-mini".
        temperature (float): Sampling temperature used for every call.
        timeout (float): Upper bound in seconds for one call, retries excluded.
        max_tries (int): Attempts per prompt; only transient failures are retried.
    The underlying chat model is created on first use, so a missing API key
    surfaces as an AuthenticationError on the first call rather than at import.
    """

    def __init__(
        self,
        model: str = config.MODEL,
        temperature: float = config.TEMPERATURE,
        timeout: float = config.REQUEST_TIMEOUT,
        api_key: Optional[str] = None,
        max_tries: int = 2,
        max_concurrency: int = config.MAX_CONCURRENCY,
    ) -> None:
        super().__init__(model=model, temperature=temperature)
        self.timeout = timeout
        self.max_tries = max(1, max_tries)
        self.max_concurrency = max(1, max_concurrency)
        self._api_key = api_key
        self._client = None
        self._json_client = None
        self._sema: Optional[asyncio.Semaphore] = None
        self._sema_loop: Optional[asyncio.AbstractEventLoop] = None

    def _ensure_initialized(self) -> None:
        if self._client is not None:
            return
        api_key = self._api_key or os.environ.get(config.OPENAI_API_KEY_ENV)
        if not api_key:
            logger.error("Completion call attempted without %s", config.OPENAI_API_KEY_ENV)
            raise AuthenticationError(MISSING_KEY_MESSAGE)
        self._client = init_chat_model(
            self.model,
            temperature=self.temperature,
            timeout=self.timeout,
            max_retries=0,
            api_key=api_key,
        )
        self._json_client = self._client.bind(response_format={"type": "json_object"})
        logger.info("Chat model initialized model=%s temperature=%s timeout=%ss", self.model, self.temperature, self.timeout)

    def _runnable(self, json_mode: bool):
        self._ensure_initialized()
        return self._json_client if json_mode else self._client

    def _semaphore(self) -> asyncio.Semaphore:
        # One semaphore per running loop; TestClient and the CLI each bring their own.
        loop = asyncio.get_running_loop()
        if self._sema is None or self._sema_loop is not loop:
            self._sema = asyncio.Semaphore(self.max_concurrency)
            self._sema_loop = loop
        return self._sema

    def complete(self, prompt: str, json_mode: bool = False) -> str:
        runnable = self._runnable(json_mode)
        messages: list[BaseMessage] = [HumanMessage(prompt)]
        logger.info("Completion request chars=%d json_mode=%s", len(prompt), json_mode)
        response = _with_retries(lambda: runnable.invoke(messages), max_tries=self.max_tries)
        return _require_text(response)

    async def acomplete(self, prompt: str, json_mode: bool = False) -> str:
        runnable = self._runnable(json_mode)
        messages: list[BaseMessage] = [HumanMessage(prompt)]
        async with self._semaphore():
            logger.info("Completion request chars=%d json_mode=%s", len(prompt), json_mode)
            start = time.time()
            response = await _awith_retries(
                lambda: asyncio.wait_for(runnable.ainvoke(messages), timeout=self.timeout),
                max_tries=self.max_tries,
            )
            logger.info("Completion response in %dms", int((time.time() - start) * 1000))
        return _require_text(response)


def _require_text(response: Any) -> str:
    text = _message_text(response)
    if not text:
        raise UpstreamError("AI did not return content.")
    return text


def _translate(exc: BaseException) -> UpstreamError:
    if isinstance(exc, UpstreamError):
        return exc
    if _is_auth_failure(exc):
        return AuthenticationError(AUTH_FAILED_MESSAGE)
    return UpstreamError(UPSTREAM_FAILED_MESSAGE)


# ---- Bounded retries ----

def _backoff(tries: int, base_delay: float) -> float:
    return base_delay * (2 ** (tries - 1)) + random.uniform(0, 0.25)


def _with_retries(call: Callable[[], Any], *, max_tries: int = 2, base_delay: float = 0.5):
    tries = 0
    while True:
        tries += 1
        try:
            return call()
        except Exception as e:
            if _is_auth_failure(e) or not _is_transient(e) or tries >= max_tries:
                logger.warning("Completion failed after %d attempt(s): %r", tries, e)
                raise _translate(e) from e
            time.sleep(_backoff(tries, base_delay))


async def _awith_retries(call: Callable[[], Awaitable[Any]], *, max_tries: int = 2, base_delay: float = 0.5):
    tries = 0
    while True:
        tries += 1
        try:
            return await call()
        except Exception as e:
            if _is_auth_failure(e) or not _is_transient(e) or tries >= max_tries:
                logger.warning("Completion failed after %d attempt(s): %r", tries, e)
                raise _translate(e) from e
            await asyncio.sleep(_backoff(tries, base_delay))
