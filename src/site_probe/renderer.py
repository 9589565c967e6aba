"""
Full page rendering capability backed by a headless Chromium.

``PlaywrightRenderer`` owns one browser process for its lifetime, opens a
fresh context per render, and limits concurrent pages with a semaphore.
"""

import asyncio
import base64
import time
from typing import Optional, Protocol

from playwright.async_api import Browser, Error as PlaywrightError, Playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .audit_logger import AuditLogger, LoggingMixin
from .config import RenderConfig
from .domain_utils import root_domain
from .enums import RenderErrorCode
from .exceptions import RenderError
from .models import RenderSnapshot

# Classification only needs the head of the document
CONTENT_PREFIX_CHARS = 8192


class Renderer(Protocol):
    """Anything that can load a page in a browser and report where it landed."""

    async def render(
        self,
        url: str,
        *,
        timeout: Optional[float] = None,
        capture_screenshot: bool = False,
    ) -> RenderSnapshot:
        ...


class PlaywrightRenderer(LoggingMixin):
    """
    Renderer using the Playwright async API.

    The browser is started lazily on first use and relaunched when it has
    disconnected. Use as an async context manager, or call ``close()``.
    """

    def __init__(
        self,
        config: Optional[RenderConfig] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._config = config or RenderConfig()
        self._logger = logger
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._launch_lock = asyncio.Lock()
        self._pages = asyncio.Semaphore(max(1, self._config.max_pages))

    async def __aenter__(self) -> "PlaywrightRenderer":
        await self._ensure_browser()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _ensure_browser(self) -> Browser:
        async with self._launch_lock:
            if self._playwright is None:
                self._playwright = await async_playwright().start()
            if self._browser is None or not self._browser.is_connected():
                try:
                    self._browser = await self._playwright.chromium.launch(
                        headless=self._config.headless,
                        args=list(self._config.browser_args),
                    )
                except PlaywrightError as e:
                    raise RenderError(
                        code=RenderErrorCode.BROWSER_ERROR.value,
                        message=f"Browser launch failed: {e}",
                    ) from e
                self._log_info(
                    "PlaywrightRenderer",
                    "Browser launched",
                    {"headless": self._config.headless},
                )
            return self._browser

    async def render(
        self,
        url: str,
        *,
        timeout: Optional[float] = None,
        capture_screenshot: bool = False,
    ) -> RenderSnapshot:
        """
        Load ``url``, wait for scripted redirects to settle, and snapshot the page.

        Args:
            url: Absolute http(s) URL
            timeout: Navigation timeout in seconds (defaults to the config value)
            capture_screenshot: Capture a PNG of the viewport

        Returns:
            RenderSnapshot with the browser's final URL and the content prefix

        Raises:
            RenderError: TIMEOUT when navigation times out, NAVIGATION_ERROR or
                BROWSER_ERROR otherwise
        """
        timeout = timeout if timeout is not None else self._config.timeout_seconds
        timeout_ms = timeout * 1000
        start_time = time.perf_counter()

        browser = await self._ensure_browser()
        async with self._pages:
            context = await browser.new_context(
                viewport={
                    "width": self._config.viewport_width,
                    "height": self._config.viewport_height,
                },
                user_agent=self._config.user_agent,
                ignore_https_errors=True,
            )
            try:
                page = await context.new_page()
                try:
                    response = await page.goto(url, wait_until="networkidle", timeout=timeout_ms)
                except PlaywrightTimeoutError:
                    # Pages with long-polling never go idle
                    response = await page.goto(
                        url, wait_until="domcontentloaded", timeout=timeout_ms
                    )

                await asyncio.sleep(self._config.settle_seconds)
                if root_domain(page.url) == root_domain(url):
                    # Give delayed script redirects a second chance
                    await asyncio.sleep(self._config.settle_seconds)

                content = await page.content()
                screenshot = None
                if capture_screenshot:
                    png = await page.screenshot(type="png", full_page=False)
                    screenshot = "data:image/png;base64," + base64.b64encode(png).decode("ascii")

                return RenderSnapshot(
                    requested_url=url,
                    final_url=page.url,
                    content=content[:CONTENT_PREFIX_CHARS],
                    status=response.status if response is not None else 200,
                    screenshot=screenshot,
                    elapsed_ms=(time.perf_counter() - start_time) * 1000,
                )
            except PlaywrightTimeoutError as e:
                raise RenderError(
                    code=RenderErrorCode.TIMEOUT.value,
                    message="Timeout",
                    details={"url": url},
                ) from e
            except PlaywrightError as e:
                code = (
                    RenderErrorCode.BROWSER_ERROR
                    if not browser.is_connected()
                    else RenderErrorCode.NAVIGATION_ERROR
                )
                raise RenderError(code=code.value, message=str(e), details={"url": url}) from e
            finally:
                if browser.is_connected():
                    await context.close()

    async def close(self) -> None:
        """Close the browser and stop Playwright."""
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
