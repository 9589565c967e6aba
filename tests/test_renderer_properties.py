"""
Tests for the Playwright-backed rendering capability.

The Playwright driver is replaced by in-memory browser, context and page
objects so no browser process is started.
"""

import asyncio
import base64
from typing import Optional
from unittest.mock import patch

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from site_probe.config import RenderConfig
from site_probe.enums import RenderErrorCode
from site_probe.exceptions import RenderError
from site_probe.renderer import CONTENT_PREFIX_CHARS, PlaywrightRenderer


class FakeResponse:
    def __init__(self, status: int) -> None:
        self.status = status


class FakePage:
    """Page whose navigation outcome is scripted per ``wait_until`` value."""

    def __init__(self, browser: "FakeBrowser") -> None:
        self.browser = browser
        self.url = "about:blank"
        self.gotos: list[tuple[str, str, float]] = []

    async def goto(self, url: str, wait_until: str, timeout: float):
        self.gotos.append((url, wait_until, timeout))
        outcome = self.browser.navigation.get(wait_until)
        if isinstance(outcome, BaseException):
            if self.browser.disconnect_on_error:
                self.browser.connected = False
            raise outcome
        self.url = self.browser.landing or url
        return None if outcome is None else FakeResponse(outcome)

    async def content(self) -> str:
        return self.browser.html

    async def screenshot(self, type: str, full_page: bool) -> bytes:
        return self.browser.png


class FakeContext:
    def __init__(self, browser: "FakeBrowser") -> None:
        self.browser = browser
        self.closed = False

    async def new_page(self) -> FakePage:
        page = FakePage(self.browser)
        self.browser.pages.append(page)
        return page

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    def __init__(self) -> None:
        self.connected = True
        self.navigation: dict = {"networkidle": 200}
        self.disconnect_on_error = False
        self.landing: Optional[str] = None
        self.html = "<html><body>Rendered</body></html>"
        self.png = b"\x89PNG fake image"
        self.contexts: list[FakeContext] = []
        self.pages: list[FakePage] = []
        self.context_options: list[dict] = []
        self.closed = False

    def is_connected(self) -> bool:
        return self.connected

    async def new_context(self, **options) -> FakeContext:
        self.context_options.append(options)
        context = FakeContext(self)
        self.contexts.append(context)
        return context

    async def close(self) -> None:
        self.closed = True
        self.connected = False


class FakeChromium:
    def __init__(self, driver: "FakeDriver") -> None:
        self.driver = driver

    async def launch(self, headless: bool, args: list[str]) -> FakeBrowser:
        self.driver.launches.append({"headless": headless, "args": args})
        if self.driver.launch_error is not None:
            raise self.driver.launch_error
        browser = FakeBrowser()
        self.driver.browsers.append(browser)
        return browser


class FakeDriver:
    """Stands in for ``async_playwright()`` and the started Playwright object."""

    def __init__(self) -> None:
        self.chromium = FakeChromium(self)
        self.launches: list[dict] = []
        self.browsers: list[FakeBrowser] = []
        self.launch_error: Optional[BaseException] = None
        self.starts = 0
        self.stopped = False

    def __call__(self) -> "FakeDriver":
        return self

    async def start(self) -> "FakeDriver":
        self.starts += 1
        return self

    async def stop(self) -> None:
        self.stopped = True


QUICK = RenderConfig(settle_seconds=0.0, timeout_seconds=5.0)


def render_with(driver: FakeDriver, prepare=None, config: RenderConfig = QUICK, **kwargs):
    """Render once with a fresh renderer; ``prepare`` tweaks the launched browser."""

    async def run():
        renderer = PlaywrightRenderer(config)
        try:
            if prepare is not None:
                prepare(await renderer._ensure_browser())
            return await renderer.render("https://example.com/", **kwargs)
        finally:
            await renderer.close()

    with patch("site_probe.renderer.async_playwright", driver):
        return asyncio.run(run())


class TestRenderSnapshotProperty:
    """
    Tests for successful renders.
    """

    def test_snapshot_reports_landing_url_and_status(self) -> None:
        driver = FakeDriver()

        def prepare(browser: FakeBrowser) -> None:
            browser.landing = "https://other.org/welcome"

        snapshot = render_with(driver, prepare)

        assert snapshot.requested_url == "https://example.com/"
        assert snapshot.final_url == "https://other.org/welcome"
        assert snapshot.status == 200
        assert snapshot.content == "<html><body>Rendered</body></html>"
        assert snapshot.screenshot is None

        browser = driver.browsers[0]
        assert browser.pages[0].gotos == [("https://example.com/", "networkidle", 5000.0)]
        assert browser.context_options[0]["viewport"] == {"width": 1280, "height": 800}
        assert browser.context_options[0]["ignore_https_errors"] is True
        assert browser.contexts[0].closed

    def test_missing_response_counts_as_200(self) -> None:
        def prepare(browser: FakeBrowser) -> None:
            browser.navigation = {"networkidle": None}

        assert render_with(FakeDriver(), prepare).status == 200

    @given(size=st.integers(min_value=0, max_value=3 * CONTENT_PREFIX_CHARS))
    @settings(max_examples=20, deadline=None)
    def test_content_is_a_bounded_prefix(self, size: int) -> None:
        """
        *For any* page size, the snapshot content SHALL be the first
        ``CONTENT_PREFIX_CHARS`` characters of the page.
        """
        html = "".join(chr(ord("a") + i % 26) for i in range(size))

        def prepare(browser: FakeBrowser) -> None:
            browser.html = html

        assert render_with(FakeDriver(), prepare).content == html[:CONTENT_PREFIX_CHARS]

    def test_screenshot_is_a_png_data_url(self) -> None:
        driver = FakeDriver()
        snapshot = render_with(driver, capture_screenshot=True)

        prefix = "data:image/png;base64,"
        assert snapshot.screenshot.startswith(prefix)
        assert base64.b64decode(snapshot.screenshot[len(prefix):]) == b"\x89PNG fake image"

    def test_idle_timeout_falls_back_to_dom_loaded(self) -> None:
        driver = FakeDriver()

        def prepare(browser: FakeBrowser) -> None:
            browser.navigation = {
                "networkidle": PlaywrightTimeoutError("Timeout 5000ms exceeded"),
                "domcontentloaded": 200,
            }

        snapshot = render_with(driver, prepare)

        assert snapshot.status == 200
        assert [g[1] for g in driver.browsers[0].pages[0].gotos] == [
            "networkidle", "domcontentloaded",
        ]


class TestRenderErrorProperty:
    """
    Tests for mapping browser failures to RenderError codes.
    """

    def test_timeout(self) -> None:
        driver = FakeDriver()

        def prepare(browser: FakeBrowser) -> None:
            browser.navigation = {
                "networkidle": PlaywrightTimeoutError("Timeout 5000ms exceeded"),
                "domcontentloaded": PlaywrightTimeoutError("Timeout 5000ms exceeded"),
            }

        with pytest.raises(RenderError) as excinfo:
            render_with(driver, prepare)

        assert excinfo.value.code == RenderErrorCode.TIMEOUT.value
        assert excinfo.value.is_timeout
        assert excinfo.value.message == "Timeout"
        assert excinfo.value.details == {"url": "https://example.com/"}
        assert driver.browsers[0].contexts[0].closed

    def test_navigation_error(self) -> None:
        driver = FakeDriver()

        def prepare(browser: FakeBrowser) -> None:
            browser.navigation = {"networkidle": PlaywrightError("net::ERR_NAME_NOT_RESOLVED")}

        with pytest.raises(RenderError) as excinfo:
            render_with(driver, prepare)

        assert excinfo.value.code == RenderErrorCode.NAVIGATION_ERROR.value
        assert "ERR_NAME_NOT_RESOLVED" in excinfo.value.message
        assert driver.browsers[0].contexts[0].closed

    def test_browser_crash(self) -> None:
        driver = FakeDriver()

        def prepare(browser: FakeBrowser) -> None:
            browser.navigation = {"networkidle": PlaywrightError("Target closed")}
            browser.disconnect_on_error = True

        with pytest.raises(RenderError) as excinfo:
            render_with(driver, prepare)

        assert excinfo.value.code == RenderErrorCode.BROWSER_ERROR.value
        # A dead browser's contexts are gone with it
        assert not driver.browsers[0].contexts[0].closed

    def test_launch_failure(self) -> None:
        driver = FakeDriver()
        driver.launch_error = PlaywrightError("Executable doesn't exist")

        with pytest.raises(RenderError) as excinfo:
            render_with(driver)

        assert excinfo.value.code == RenderErrorCode.BROWSER_ERROR.value
        assert excinfo.value.message.startswith("Browser launch failed")


class TestBrowserLifecycle:
    """Tests for lazy launch, relaunch and shutdown."""

    def test_browser_is_shared_and_relaunched_after_disconnect(self) -> None:
        driver = FakeDriver()

        async def run():
            async with PlaywrightRenderer(QUICK) as renderer:
                await renderer.render("https://example.com/")
                await renderer.render("https://example.org/")
                driver.browsers[0].connected = False
                return await renderer.render("https://example.net/")

        with patch("site_probe.renderer.async_playwright", driver):
            snapshot = asyncio.run(run())

        assert snapshot.final_url == "https://example.net/"
        assert driver.starts == 1
        assert len(driver.launches) == 2
        assert len(driver.browsers[0].contexts) == 2
        assert len(driver.browsers[1].contexts) == 1

    def test_launch_options_follow_config(self) -> None:
        driver = FakeDriver()
        config = RenderConfig(settle_seconds=0.0, headless=False, browser_args=["--mute-audio"])
        render_with(driver, config=config)
        assert driver.launches == [{"headless": False, "args": ["--mute-audio"]}]

    def test_close_stops_browser_and_driver(self) -> None:
        driver = FakeDriver()
        render_with(driver)
        assert driver.browsers[0].closed
        assert driver.stopped
