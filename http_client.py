import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import aiohttp

from config import JSON_HEADERS, MAX_ATTEMPTS, REQUEST_TIMEOUT, RETRY_DELAY
from errors import InvalidResponseError, ProviderUnreachableError

logger = logging.getLogger(__name__)

Params = Dict[str, Any]
Transport = Callable[[str, Params], Awaitable[Any]]


def is_transient(exc: BaseException) -> bool:
    """Network trouble, timeouts, non-2xx and unreadable bodies are worth another try."""
    return isinstance(exc, (aiohttp.ClientError, asyncio.TimeoutError, ValueError))


async def aiohttp_transport(url: str, params: Params) -> Any:
    timeout = aiohttp.ClientTimeout(total=REQUEST_TIMEOUT)
    async with aiohttp.ClientSession(headers=JSON_HEADERS, timeout=timeout) as session:
        async with session.get(url, params=params) as r:
            r.raise_for_status()
            return await r.json(content_type=None)


class RetryingClient:
    """
    GET with a fixed attempt budget and a fixed pause between attempts.
    The transport and the sleep are injectable so tests never touch the network or the clock.
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        max_attempts: int = MAX_ATTEMPTS,
        delay: float = RETRY_DELAY,
        is_retryable: Callable[[BaseException], bool] = is_transient,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.transport = transport or aiohttp_transport
        self.max_attempts = max_attempts
        self.delay = delay
        self.is_retryable = is_retryable
        self.sleep = sleep

    async def get_json(self, url: str, params: Optional[Params] = None) -> Any:
        params = {k: str(v) for k, v in (params or {}).items()}
        last_error = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                return await self.transport(url, params)
            except Exception as e:
                if not self.is_retryable(e):
                    raise
                last_error = e
                logger.warning("GET %s failed (attempt %d/%d): %s", url, attempt, self.max_attempts, e)

            if attempt < self.max_attempts:
                await self.sleep(self.delay)

        logger.error("GET %s gave up after %d attempts", url, self.max_attempts)
        # JSONDecodeError and UnicodeDecodeError are both ValueErrors
        if isinstance(last_error, (ValueError, aiohttp.ContentTypeError)):
            raise InvalidResponseError(f"Invalid data received from {url}") from last_error
        raise ProviderUnreachableError(url, self.max_attempts, last_error) from last_error
