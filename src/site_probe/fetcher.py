"""
HTTP fetch capability.

``HttpFetcher`` performs one GET per call, never follows redirects, and reads
at most a bounded prefix of the body. Failures are raised as ``FetchError``
with a code distinguishing timeouts, TLS failures, malformed URLs and other
transport errors; retries are never attempted.
"""

import asyncio
import time
from typing import Optional, Protocol

import httpx

from .audit_logger import AuditLogger, LoggingMixin
from .config import FetchConfig
from .enums import FetchErrorCode
from .exceptions import FetchError
from .models import FetchResponse


class Fetcher(Protocol):
    """Anything that can fetch one URL without following redirects."""

    async def fetch(
        self,
        url: str,
        *,
        timeout: Optional[float] = None,
        max_body_bytes: Optional[int] = None,
    ) -> FetchResponse:
        ...


class HttpFetcher(LoggingMixin):
    """
    Async fetcher backed by a shared ``httpx.AsyncClient``.

    Use as an async context manager, or call ``close()`` when done.
    """

    def __init__(
        self,
        config: Optional[FetchConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Initialize the fetcher.

        Args:
            config: Fetch settings (timeouts, body bound, headers)
            transport: Optional transport override, e.g. ``httpx.MockTransport``
            logger: Optional audit logger
        """
        self._config = config or FetchConfig()
        self._transport = transport
        self._logger = logger
        self._client: Optional[httpx.AsyncClient] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> "HttpFetcher":
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _ensure_client(self, url: Optional[str] = None) -> httpx.AsyncClient:
        if self._closed:
            raise FetchError(
                code=FetchErrorCode.NETWORK_ERROR.value,
                message="Fetcher is closed",
                details={"url": url},
            )
        if self._client is None:
            self._client = httpx.AsyncClient(
                verify=self._config.verify_tls,
                timeout=httpx.Timeout(self._config.timeout_seconds),
                follow_redirects=False,
                headers={
                    "User-Agent": self._config.user_agent,
                    "Accept": self._config.accept,
                },
                transport=self._transport,
            )
        return self._client

    async def fetch(
        self,
        url: str,
        *,
        timeout: Optional[float] = None,
        max_body_bytes: Optional[int] = None,
    ) -> FetchResponse:
        """
        Fetch ``url`` once.

        Args:
            url: Absolute http(s) URL
            timeout: Overall timeout in seconds (defaults to the config value)
            max_body_bytes: Body prefix bound (defaults to the config value)

        Returns:
            FetchResponse with lower-cased headers and the decoded body prefix

        Raises:
            FetchError: On timeout, TLS failure, invalid URL or transport error
        """
        client = self._ensure_client(url)
        timeout = timeout if timeout is not None else self._config.timeout_seconds
        limit = max_body_bytes if max_body_bytes is not None else self._config.body_prefix_bytes
        start_time = time.perf_counter()

        try:
            status, headers, body = await asyncio.wait_for(
                self._read(client, url, timeout, limit), timeout
            )
        except asyncio.TimeoutError as e:
            raise self._failure(FetchErrorCode.TIMEOUT, "Timeout", url, e) from e
        except httpx.TimeoutException as e:
            raise self._failure(FetchErrorCode.TIMEOUT, "Timeout", url, e) from e
        except httpx.InvalidURL as e:
            raise self._failure(FetchErrorCode.INVALID_URL, f"Invalid URL: {e}", url, e) from e
        except httpx.ConnectError as e:
            message = str(e) or type(e).__name__
            if "ssl" in message.lower() or "certificate" in message.lower():
                raise self._failure(FetchErrorCode.TLS_ERROR, message, url, e) from e
            raise self._failure(FetchErrorCode.NETWORK_ERROR, message, url, e) from e
        except httpx.HTTPError as e:
            message = str(e) or type(e).__name__
            raise self._failure(FetchErrorCode.NETWORK_ERROR, message, url, e) from e

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        self._log_debug(
            "HttpFetcher",
            f"GET {url} -> {status}",
            {"url": url, "status": status, "elapsed_ms": round(elapsed_ms, 1)},
        )
        return FetchResponse(
            url=url,
            status=status,
            headers=headers,
            body=body,
            elapsed_ms=elapsed_ms,
        )

    @staticmethod
    async def _read(
        client: httpx.AsyncClient, url: str, timeout: float, limit: int
    ) -> tuple[int, dict[str, str], str]:
        async with client.stream("GET", url, timeout=httpx.Timeout(timeout)) as response:
            chunks: list[bytes] = []
            received = 0
            async for chunk in response.aiter_bytes():
                chunks.append(chunk)
                received += len(chunk)
                if received >= limit:
                    break
            raw = b"".join(chunks)[:limit]
            body = raw.decode(response.encoding or "utf-8", errors="replace")
            headers = {k.lower(): v for k, v in response.headers.items()}
            return response.status_code, headers, body

    def _failure(
        self, code: FetchErrorCode, message: str, url: str, error: Exception
    ) -> FetchError:
        self._log_debug(
            "HttpFetcher",
            f"GET {url} failed: {message}",
            {"url": url, "code": code.value, "error_type": type(error).__name__},
        )
        return FetchError(code=code.value, message=message, details={"url": url})

    async def close(self) -> None:
        """Close the HTTP client. A closed fetcher cannot be reopened."""
        self._closed = True
        if self._client:
            await self._client.aclose()
            self._client = None
