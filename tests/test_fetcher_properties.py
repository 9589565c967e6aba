"""
Property-based tests for the HTTP fetch capability.

Uses httpx.MockTransport so no request leaves the process.
"""

import asyncio

import httpx
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from site_probe.config import FetchConfig
from site_probe.enums import FetchErrorCode
from site_probe.exceptions import FetchError
from site_probe.fetcher import HttpFetcher


def fetch_with(handler, url: str = "https://example.com/", config: FetchConfig = None, **kwargs):
    async def run():
        async with HttpFetcher(config, transport=httpx.MockTransport(handler)) as fetcher:
            return await fetcher.fetch(url, **kwargs)

    return asyncio.run(run())


def raising(error_factory):
    def handler(request: httpx.Request) -> httpx.Response:
        raise error_factory(request)

    return handler


class TestFetchResponseProperty:
    """
    Tests for the shape of successful fetches.
    """

    def test_status_headers_and_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                headers={"Content-Type": "text/html; charset=utf-8", "CF-Ray": "abc"},
                content="<html>Grüße</html>".encode("utf-8"),
            )

        response = fetch_with(handler)
        assert response.url == "https://example.com/"
        assert response.status == 200
        assert response.headers["content-type"] == "text/html; charset=utf-8"
        assert response.header("CF-Ray") == "abc"
        assert response.body == "<html>Grüße</html>"

    def test_redirects_are_not_followed(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(301, headers={"Location": "https://elsewhere.org/"})

        response = fetch_with(handler)
        assert response.status == 301
        assert response.header("location") == "https://elsewhere.org/"
        assert seen == ["https://example.com/"]

    def test_browser_like_request_headers(self) -> None:
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured.update(request.headers)
            return httpx.Response(200)

        config = FetchConfig(user_agent="ProbeAgent/1.0")
        fetch_with(handler, config=config)
        assert captured["user-agent"] == "ProbeAgent/1.0"
        assert captured["accept"].startswith("text/html")

    @given(size=st.integers(min_value=0, max_value=30000), limit=st.integers(min_value=1, max_value=10000))
    @settings(max_examples=25, deadline=None)
    def test_body_is_bounded(self, size: int, limit: int) -> None:
        """
        *For any* body size and bound, the returned body SHALL be the first
        ``min(size, bound)`` bytes of the payload.
        """
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"a" * size)

        response = fetch_with(handler, max_body_bytes=limit)
        assert response.body == "a" * min(size, limit)

    def test_invalid_bytes_are_replaced(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                headers={"Content-Type": "text/html; charset=utf-8"},
                content=b"ok \xff\xfe end",
            )

        body = fetch_with(handler).body
        assert body.startswith("ok ")
        assert body.endswith(" end")
        assert "\ufffd" in body


class TestFetchErrorProperty:
    """
    Tests for mapping transport failures to FetchError codes.
    """

    def test_timeout(self) -> None:
        handler = raising(lambda r: httpx.ConnectTimeout("timed out", request=r))
        with pytest.raises(FetchError) as excinfo:
            fetch_with(handler)
        assert excinfo.value.code == FetchErrorCode.TIMEOUT.value
        assert excinfo.value.is_timeout
        assert excinfo.value.message == "Timeout"

    def test_read_timeout(self) -> None:
        handler = raising(lambda r: httpx.ReadTimeout("read timed out", request=r))
        with pytest.raises(FetchError) as excinfo:
            fetch_with(handler)
        assert excinfo.value.is_timeout

    def test_certificate_failure(self) -> None:
        handler = raising(lambda r: httpx.ConnectError(
            "[SSL: CERTIFICATE_VERIFY_FAILED] certificate verify failed", request=r
        ))
        with pytest.raises(FetchError) as excinfo:
            fetch_with(handler)
        assert excinfo.value.code == FetchErrorCode.TLS_ERROR.value

    def test_dns_failure(self) -> None:
        handler = raising(lambda r: httpx.ConnectError(
            "[Errno -2] Name or service not known", request=r
        ))
        with pytest.raises(FetchError) as excinfo:
            fetch_with(handler)
        assert excinfo.value.code == FetchErrorCode.NETWORK_ERROR.value
        assert "Name or service not known" in excinfo.value.message
        assert not excinfo.value.is_timeout

    def test_other_transport_error(self) -> None:
        handler = raising(lambda r: httpx.RemoteProtocolError("peer closed", request=r))
        with pytest.raises(FetchError) as excinfo:
            fetch_with(handler)
        assert excinfo.value.code == FetchErrorCode.NETWORK_ERROR.value
        assert excinfo.value.details == {"url": "https://example.com/"}

    def test_invalid_url(self) -> None:
        handler = raising(lambda r: httpx.InvalidURL("bad host"))
        with pytest.raises(FetchError) as excinfo:
            fetch_with(handler)
        assert excinfo.value.code == FetchErrorCode.INVALID_URL.value


class TestOverallDeadlineProperty:
    """Tests for the whole-fetch time bound."""

    def test_slow_body_is_a_timeout(self) -> None:
        async def drip():
            for _ in range(50):
                yield b"x" * 10
                await asyncio.sleep(0.1)

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=drip())

        async def run():
            loop = asyncio.get_running_loop()
            started = loop.time()
            with pytest.raises(FetchError) as excinfo:
                async with HttpFetcher(
                    FetchConfig(timeout_seconds=0.5), transport=httpx.MockTransport(handler)
                ) as fetcher:
                    await fetcher.fetch("https://example.com/", max_body_bytes=100000)
            return excinfo.value, loop.time() - started

        error, elapsed = asyncio.run(run())
        assert error.is_timeout
        assert error.message == "Timeout"
        assert elapsed < 2.0


class TestFetcherLifecycle:
    """Tests for client ownership."""

    def test_close_is_idempotent(self) -> None:
        async def run():
            fetcher = HttpFetcher(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
            response = await fetcher.fetch("https://example.com/")
            await fetcher.close()
            await fetcher.close()
            return fetcher, response

        fetcher, response = asyncio.run(run())
        assert response.status == 200
        assert fetcher.closed

    def test_closed_fetcher_is_not_reopened(self) -> None:
        async def run():
            fetcher = HttpFetcher(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
            await fetcher.close()
            with pytest.raises(FetchError) as excinfo:
                await fetcher.fetch("https://example.com/")
            return fetcher, excinfo.value

        fetcher, error = asyncio.run(run())
        assert error.code == FetchErrorCode.NETWORK_ERROR.value
        assert error.message == "Fetcher is closed"
        assert fetcher._client is None
