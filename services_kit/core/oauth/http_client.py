"""
httpx client construction for the Auth API.

Builds an ``httpx.AsyncClient`` with a retrying transport. Redirects are
never followed: several Auth API endpoints answer with ``302 Found`` and
the authorization code travels in the ``Location`` header.
"""

from __future__ import annotations

import asyncio
import logging
import random
import typing
from dataclasses import dataclass

import httpx

from .constants import HttpDefaults, ValidationLimits
from .validation import validate_range

_logger = logging.getLogger(__name__)

# 500 is a documented Auth API error answer carrying an error body, so it
# is returned to the caller instead of being retried.
RETRYABLE_STATUS_CODES = (429, 502, 503, 504)

# Only these methods may be repeated after the request went out.
REPLAYABLE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

# Request extension set to False by callers whose GET consumes a one-time
# credential (refresh tokens, authorization codes, OTPs).
REPLAYABLE_EXTENSION = "replayable"


@dataclass
class HttpClientConfig:
    """Transport settings for Auth API requests.

    ``max_retries`` counts attempts per request; 0 disables the retrying
    transport entirely. With ``enable_logging`` each request line and
    status is logged at DEBUG, without query strings (refresh tokens and
    codes travel there).
    """

    timeout: float = HttpDefaults.REQUEST_TIMEOUT
    max_retries: int = HttpDefaults.MAX_RETRIES
    retry_jitter: bool = True
    enable_logging: bool = True

    def __post_init__(self) -> None:
        validate_range(
            self.timeout,
            "timeout",
            min_value=ValidationLimits.MIN_TIMEOUT,
            max_value=ValidationLimits.MAX_TIMEOUT,
        )
        validate_range(
            self.max_retries,
            "max_retries",
            min_value=ValidationLimits.MIN_RETRIES,
            max_value=ValidationLimits.MAX_RETRIES,
        )


class AsyncRetryTransport(httpx.AsyncHTTPTransport):
    """Retries Auth API requests that are safe to send again, with backoff.

    A request that never reached the server (``ConnectError``,
    ``ConnectTimeout``) is always retried. Anything else is retried only
    for a replayable request: a GET/HEAD/OPTIONS whose ``replayable``
    extension is not False. POSTs and credential-consuming GETs are sent
    at most once, since the server may already have acted on them.

    The delay doubles per attempt starting at ``HttpDefaults.RETRY_BASE_DELAY``.
    Cancelling the calling task interrupts the sleep.
    """

    def __init__(
        self,
        max_retries: int = HttpDefaults.MAX_RETRIES,
        retry_jitter: bool = True,
        **kwargs: typing.Any,
    ) -> None:
        super().__init__(**kwargs)
        self.max_retries = max(1, max_retries)
        self.retry_jitter = retry_jitter

    @staticmethod
    def is_replayable(request: httpx.Request) -> bool:
        if request.method not in REPLAYABLE_METHODS:
            return False
        return request.extensions.get(REPLAYABLE_EXTENSION, True) is not False

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        replayable = self.is_replayable(request)
        attempts_left = self.max_retries
        attempt = 0
        while True:
            attempt += 1
            attempts_left -= 1
            try:
                response = await super().handle_async_request(request)
            except (httpx.ConnectError, httpx.ConnectTimeout) as e:
                if not attempts_left:
                    raise
                await self._wait(request, attempt, f"connection failed ({e})")
                continue
            except (httpx.NetworkError, httpx.TimeoutException) as e:
                if not (replayable and attempts_left):
                    raise
                await self._wait(request, attempt, f"failed ({e})")
                continue

            if (
                not replayable
                or response.status_code not in RETRYABLE_STATUS_CODES
                or not attempts_left
            ):
                return response

            await response.aclose()
            await self._wait(request, attempt, f"answered {response.status_code}")

    async def _wait(self, request: httpx.Request, attempt: int, reason: str) -> None:
        wait = self.backoff(attempt)
        _logger.warning(
            "%s %s %s; attempt %d/%d, next in %.1fs",
            request.method,
            request.url.path,
            reason,
            attempt,
            self.max_retries,
            wait,
        )
        await asyncio.sleep(wait)

    def backoff(self, attempt: int) -> float:
        """Seconds to wait after the ``attempt``-th (1-based) failure."""
        wait: float = HttpDefaults.RETRY_BASE_DELAY * 2 ** (attempt - 1)
        if self.retry_jitter:
            wait += random.uniform(0, 1)
        return wait


async def _log_request(request: httpx.Request) -> None:
    _logger.debug("-> %s %s", request.method, request.url.path)


async def _log_response(response: httpx.Response) -> None:
    request = response.request
    _logger.debug("<- %d %s %s", response.status_code, request.method, request.url.path)


def build_async_client(base_url: str, config: HttpClientConfig | None = None) -> httpx.AsyncClient:
    """Create the AsyncClient used by HttpxOAuthService.

    Example:
        >>> client = build_async_client("https://quack.duckduckgo.com")
        >>> service = HttpxOAuthService(client)
    """
    config = config or HttpClientConfig()

    transport = None
    if config.max_retries > 0:
        transport = AsyncRetryTransport(
            max_retries=config.max_retries,
            retry_jitter=config.retry_jitter,
        )

    event_hooks: dict[str, list[typing.Any]] = {"request": [], "response": []}
    if config.enable_logging:
        event_hooks["request"].append(_log_request)
        event_hooks["response"].append(_log_response)

    return httpx.AsyncClient(
        base_url=base_url,
        transport=transport,
        timeout=httpx.Timeout(config.timeout),
        follow_redirects=False,
        event_hooks=event_hooks,
    )


__all__ = [
    "HttpClientConfig",
    "AsyncRetryTransport",
    "RETRYABLE_STATUS_CODES",
    "REPLAYABLE_EXTENSION",
    "build_async_client",
]
