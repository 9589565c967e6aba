"""
Property-based tests for the rendering-backed resolver.

The browser is replaced by a fake renderer returning canned snapshots.
"""

import asyncio
from typing import Optional

from hypothesis import given, settings
from hypothesis import strategies as st

from site_probe.enums import Category, RenderErrorCode
from site_probe.exceptions import RenderError
from site_probe.models import RenderSnapshot
from site_probe.render_resolver import RenderResolver
from site_probe.unique_redirect import UniqueRedirectDetector


PLAIN_PAGE = "<html><head><title>Shop</title></head><body>Fresh bread daily</body></html>"
SCREENSHOT = "data:image/png;base64,iVBORw0KGgo="


class FakeRenderer:
    """Renderer returning a fixed landing URL and content, or raising."""

    def __init__(
        self,
        final_url: Optional[str] = None,
        content: str = PLAIN_PAGE,
        status: int = 200,
        error: Optional[RenderError] = None,
    ) -> None:
        self.final_url = final_url
        self.content = content
        self.status = status
        self.error = error
        self.calls: list[tuple] = []

    async def render(
        self,
        url: str,
        *,
        timeout: Optional[float] = None,
        capture_screenshot: bool = False,
    ) -> RenderSnapshot:
        self.calls.append((url, capture_screenshot))
        if self.error is not None:
            raise self.error
        return RenderSnapshot(
            requested_url=url,
            final_url=self.final_url or url,
            content=self.content,
            status=self.status,
            screenshot=SCREENSHOT if capture_screenshot else None,
        )


def resolve(renderer: FakeRenderer, address: str, corpus=None, unique: bool = False, **kwargs):
    resolver = RenderResolver(
        renderer,
        unique_detector=UniqueRedirectDetector(enabled=unique),
    )
    return asyncio.run(resolver.resolve(address, corpus or [address], **kwargs))


class TestRenderedLandingProperty:
    """
    Property-based tests for classifying where the browser landed.
    """

    def test_page_that_stays_put_is_up(self) -> None:
        outcome = resolve(FakeRenderer(), "https://example.com")
        assert outcome.category == Category.UP
        assert outcome.reason == "HTTP 200 (rendered)"
        assert outcome.http_status == 200
        assert outcome.redirect_target is None

    def test_www_hop_on_same_root_is_up(self) -> None:
        outcome = resolve(FakeRenderer("https://www.example.com/"), "https://example.com")
        assert outcome.category == Category.UP
        assert outcome.redirect_target is None

    @given(
        target_host=st.sampled_from(["other.org", "www.other.org", "shop.other.co.uk"]),
        path=st.sampled_from(["/", "/landing", "/a?b=c"]),
    )
    @settings(max_examples=30)
    def test_cross_domain_landing_is_redirect_up(self, target_host: str, path: str) -> None:
        """
        *For any* navigation that lands on a live page of another root domain,
        the outcome SHALL be redirect_up with the landing URL as target.
        """
        final_url = f"https://{target_host}{path}"
        outcome = resolve(FakeRenderer(final_url), "https://example.com")
        assert outcome.category == Category.REDIRECT_UP
        assert outcome.redirect_target == final_url
        assert outcome.final_destination == final_url
        assert outcome.reason.startswith("Redirect to other.")
        assert outcome.reason.endswith("(rendered)")

    def test_cross_domain_landing_on_error_page_is_redirect_down(self) -> None:
        renderer = FakeRenderer("https://other.org/", content="<h1>404 Not Found</h1>")
        outcome = resolve(renderer, "https://example.com")
        assert outcome.category == Category.REDIRECT_DOWN
        assert outcome.reason == "Redirect → HTTP 200 but shows error page (rendered)"
        assert outcome.redirect_target == "https://other.org/"

    def test_unique_flag_on_cross_domain_landing(self) -> None:
        outcome = resolve(
            FakeRenderer("https://other.org/"),
            "https://example.com",
            corpus=["https://example.com"],
            unique=True,
        )
        assert outcome.is_unique_redirect

    def test_parked_page(self) -> None:
        renderer = FakeRenderer(content="<p>Powered by sedoparking</p>")
        outcome = resolve(renderer, "https://example.com")
        assert outcome.category == Category.REDIRECT_DOWN
        assert outcome.is_parked_domain
        assert outcome.reason == "Parked domain with dynamic JS redirect (rendered)"
        assert outcome.redirect_target is None

    def test_same_domain_server_error(self) -> None:
        outcome = resolve(FakeRenderer(status=503), "https://example.com")
        assert outcome.category == Category.DOWN
        assert outcome.reason == "Server error HTTP 503 (rendered)"

    def test_challenge_page(self) -> None:
        renderer = FakeRenderer(content="<title>Just a moment...</title>")
        outcome = resolve(renderer, "https://example.com")
        assert outcome.category == Category.CLOUDFLARE_BLOCK
        assert outcome.reason == "Cloudflare challenge page detected (rendered)"


class TestSourceScanProperty:
    """
    Tests for redirect markers the browser did not act on.
    """

    def test_script_marker_to_other_root(self) -> None:
        content = '<script>if(geo){window.location.href = "https://elsewhere.net/x"}</script>'
        outcome = resolve(FakeRenderer(content=content), "https://example.com")
        assert outcome.category == Category.REDIRECT_UP
        assert outcome.reason == "JS redirect to elsewhere.net (rendered)"
        assert outcome.redirect_target == "https://elsewhere.net/x"

    def test_meta_marker_to_other_root(self) -> None:
        content = '<meta http-equiv="refresh" content="10; url=https://elsewhere.net/">'
        outcome = resolve(FakeRenderer(content=content), "https://example.com")
        assert outcome.category == Category.REDIRECT_UP
        assert outcome.reason == "Meta refresh redirect to elsewhere.net (rendered)"

    def test_marker_on_same_root_is_up(self) -> None:
        content = '<script>location.href = "https://www.example.com/login"</script>'
        outcome = resolve(FakeRenderer(content=content), "https://example.com")
        assert outcome.category == Category.UP
        assert outcome.reason == "HTTP 200 (rendered)"


class TestRenderFailureProperty:
    """
    Tests for render failures becoming down outcomes.
    """

    def test_timeout(self) -> None:
        renderer = FakeRenderer(error=RenderError(RenderErrorCode.TIMEOUT.value, "Timeout"))
        outcome = resolve(renderer, "https://example.com")
        assert outcome.category == Category.DOWN
        assert outcome.reason == "Timeout (rendered)"
        assert outcome.http_status == 0

    @given(message=st.text(min_size=1, max_size=300))
    @settings(max_examples=50)
    def test_error_message_is_truncated(self, message: str) -> None:
        """
        *For any* navigation error, the reason SHALL carry at most the first
        100 characters of the error message.
        """
        renderer = FakeRenderer(error=RenderError(RenderErrorCode.NAVIGATION_ERROR.value, message))
        outcome = resolve(renderer, "https://example.com")
        assert outcome.category == Category.DOWN
        assert outcome.reason == f"Error: {message[:100]}"


class TestRenderedExtrasProperty:
    """Tests for screenshots and page text on rendered outcomes."""

    def test_screenshot_is_requested_and_attached(self) -> None:
        renderer = FakeRenderer()
        outcome = resolve(renderer, "https://example.com", capture_screenshot=True)
        assert renderer.calls == [("https://example.com", True)]
        assert outcome.screenshot == SCREENSHOT

    def test_no_screenshot_by_default(self) -> None:
        outcome = resolve(FakeRenderer(), "https://example.com")
        assert outcome.screenshot is None

    def test_scraped_text(self) -> None:
        outcome = resolve(FakeRenderer(), "https://example.com", scrape_text=True)
        assert outcome.scraped_text == "Shop Fresh bread daily"
