"""Model invocation client for MovSense.

Wraps a single call to the multimodal chat-completions API with a hard
per-call timeout and a shared retry policy.

Retry rules:
- HTTP 429 and 5xx, timeouts and network errors are retried
- Any other 4xx, and responses without usable content, are terminal
- Delay before retry n is base * 2^(n-1) plus up to `jitter` seconds,
  capped at `max_delay`
"""

import asyncio
import random
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import httpx
import structlog
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from movsense.config.settings import settings
from movsense.config.errors import ErrorCode, ModelInvocationError

logger = structlog.get_logger()


def _token_count(value: Any) -> int:
    """Reported token usage as a non-negative int. Unusable values count as 0."""
    if isinstance(value, bool):
        return 0
    try:
        count = int(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(count, 0)


def is_retryable_error(error: BaseException) -> bool:
    """Default retry predicate: only classified retryable model errors."""
    return isinstance(error, ModelInvocationError) and error.retryable


@dataclass
class RetryPolicy:
    """Retry policy shared by every model call site.

    Attributes:
        max_attempts: Total attempts including the first call.
        base_delay: Delay before the first retry, in seconds.
        jitter: Upper bound of the random delay added to each wait.
        max_delay: Cap on any single wait.
        is_retryable: Predicate deciding whether an error is retried.
        sleep: Awaitable used between attempts (replaced in tests).
    """

    max_attempts: int = 3
    base_delay: float = 3.0
    jitter: float = 1.0
    max_delay: float = 30.0
    is_retryable: Callable[[BaseException], bool] = is_retryable_error
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)

    @classmethod
    def from_settings(cls, max_attempts: int, **overrides: Any) -> "RetryPolicy":
        """Build a policy from the configured backoff parameters."""
        params = {
            "max_attempts": max_attempts,
            "base_delay": settings.retry_base_delay_seconds,
            "jitter": settings.retry_jitter_seconds,
            "max_delay": settings.retry_max_delay_seconds,
        }
        params.update(overrides)
        return cls(**params)

    def delay_for(self, retry_number: int) -> float:
        """Seconds to wait before retry `retry_number` (1-based)."""
        exponential = self.base_delay * (2 ** max(retry_number - 1, 0))
        return min(exponential + random.uniform(0, self.jitter), self.max_delay)

    def _wait(self, retry_state: RetryCallState) -> float:
        return self.delay_for(retry_state.attempt_number)

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "model_call_retry",
            attempt=retry_state.attempt_number,
            max_attempts=self.max_attempts,
            delay_s=round(retry_state.next_action.sleep, 2) if retry_state.next_action else None,
            error_code=getattr(error, "code", None),
            status_code=getattr(error, "status_code", None),
        )

    async def run(self, fn: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Any:
        """Call `fn` under this policy.

        Raises:
            The last error once it is non-retryable or attempts run out.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait,
            retry=retry_if_exception(self.is_retryable),
            sleep=self.sleep,
            before_sleep=self._before_sleep,
            reraise=True,
        )
        try:
            return await retrying(fn, *args, **kwargs)
        except ModelInvocationError as e:
            e.attempts = retrying.statistics.get("attempt_number", 1)
            raise


class ModelClient:
    """Client for the external vision-language completion API.

    Each call to `complete` sends one prompt with zero or more images and
    returns the model's text content.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        """Initialize ModelClient.

        Args:
            api_key: Provider API key (default from settings).
            base_url: API base URL (default from settings).
            timeout: Default per-call timeout in seconds.
            http_client: Optional shared httpx client. When omitted a client
                is opened per call.
        """
        self.api_key = api_key or settings.openai_api_key
        self.base_url = (base_url or settings.openai_base_url).rstrip("/")
        self.timeout = timeout or settings.model_timeout_seconds
        self._http = http_client
        self._total_tokens_used = 0

    @property
    def total_tokens_used(self) -> int:
        """Get total tokens used across all calls."""
        return self._total_tokens_used

    def build_payload(
        self,
        prompt: str,
        image_urls: Sequence[str],
        model: str,
        detail: str,
        max_tokens: int,
        temperature: float,
        system_prompt: Optional[str] = None,
        json_object: bool = False
    ) -> Dict[str, Any]:
        """Build a chat-completions request body."""
        content: List[Dict[str, Any]] = [{"type": "text", "text": prompt}]
        content.extend(
            {"type": "image_url", "image_url": {"url": url, "detail": detail}}
            for url in image_urls
        )

        messages: List[Dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": content})

        payload: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if json_object:
            payload["response_format"] = {"type": "json_object"}
        return payload

    async def complete(
        self,
        prompt: str,
        image_urls: Sequence[str] = (),
        *,
        model: str,
        detail: str = "low",
        max_tokens: int = 1000,
        temperature: float = 0.1,
        system_prompt: Optional[str] = None,
        json_object: bool = False,
        retry_policy: Optional[RetryPolicy] = None,
        timeout: Optional[float] = None
    ) -> str:
        """Send one prompt and return the model's text content.

        Args:
            prompt: User prompt text.
            image_urls: Image references attached after the text.
            model: Model name.
            detail: Image detail mode ("low" or "high").
            max_tokens: Response token limit.
            temperature: Sampling temperature.
            system_prompt: Optional system message.
            json_object: Request a JSON object response format.
            retry_policy: Retry policy (default: single attempt).
            timeout: Hard wall-clock bound for each attempt.

        Returns:
            The text content of the first choice.

        Raises:
            ModelInvocationError: When the call fails terminally or retries
                are exhausted.
        """
        payload = self.build_payload(
            prompt,
            image_urls,
            model=model,
            detail=detail,
            max_tokens=max_tokens,
            temperature=temperature,
            system_prompt=system_prompt,
            json_object=json_object,
        )
        policy = retry_policy or RetryPolicy(max_attempts=1)
        return await policy.run(self._post_once, payload, timeout or self.timeout)

    async def _post_once(self, payload: Dict[str, Any], timeout: float) -> str:
        """Perform a single HTTP attempt and classify any failure."""
        start_time = time.perf_counter()
        try:
            response = await asyncio.wait_for(self._send(payload, timeout), timeout=timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.warning("model_call_timeout", model=payload["model"], timeout_s=timeout)
            raise ModelInvocationError(
                code=ErrorCode.MODEL_TIMEOUT,
                message=f"Model call timed out after {timeout}s",
                retryable=True,
            ) from e
        except httpx.TransportError as e:
            logger.warning("model_call_network_error", model=payload["model"], error=str(e))
            raise ModelInvocationError(
                code=ErrorCode.MODEL_NETWORK_ERROR,
                message=f"Network error calling model: {e}",
                retryable=True,
            ) from e
        except httpx.RequestError as e:
            logger.warning("model_call_request_error", model=payload["model"], error=str(e))
            raise ModelInvocationError(
                code=ErrorCode.MODEL_CLIENT_ERROR,
                message=f"Request to model failed: {e}",
                retryable=False,
            ) from e

        latency_ms = round((time.perf_counter() - start_time) * 1000, 2)

        if response.status_code >= 400:
            error = ModelInvocationError.from_status(response.status_code, response.text)
            logger.warning(
                "model_call_http_error",
                model=payload["model"],
                status_code=response.status_code,
                retryable=error.retryable,
                latency_ms=latency_ms,
            )
            raise error

        content = self._extract_content(response)

        logger.info(
            "model_call_completed",
            model=payload["model"],
            status_code=response.status_code,
            latency_ms=latency_ms,
            content_length=len(content),
        )
        return content

    async def _send(self, payload: Dict[str, Any], timeout: float) -> httpx.Response:
        url = f"{self.base_url}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if self._http is not None:
            return await self._http.post(url, json=payload, headers=headers, timeout=timeout)
        async with httpx.AsyncClient(timeout=timeout) as client:
            return await client.post(url, json=payload, headers=headers)

    def _extract_content(self, response: httpx.Response) -> str:
        """Pull the first choice's text out of a completion response."""
        try:
            data = response.json()
        except ValueError as e:
            raise ModelInvocationError(
                code=ErrorCode.MODEL_EMPTY_RESPONSE,
                message="Model response body is not JSON",
                status_code=response.status_code,
            ) from e

        usage = data.get("usage") if isinstance(data, dict) else None
        if isinstance(usage, dict):
            self._total_tokens_used += _token_count(usage.get("total_tokens"))

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None

        if not isinstance(content, str) or not content.strip():
            raise ModelInvocationError(
                code=ErrorCode.MODEL_EMPTY_RESPONSE,
                message="No content in model response",
                status_code=response.status_code,
            )
        return content
