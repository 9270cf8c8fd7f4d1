"""Capture sessions — one browser page rendering one URL."""

from __future__ import annotations

import logging
from typing import Protocol, Sequence

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from page_diff.errors import (
    NavigationFailure,
    NavigationTimeout,
    ScreenshotFailure,
    StabilizationFailure,
    StabilizationWaitTimeout,
)
from page_diff.imaging.codec import PngCodec
from page_diff.imaging.raw_image import RawImage

logger = logging.getLogger(__name__)

_REMOVE_ELEMENTS_SCRIPT = """
(selectors) => {
    let removed = 0;
    const invalid = [];
    for (const selector of selectors) {
        let nodes;
        try {
            nodes = document.querySelectorAll(selector);
        } catch (e) {
            invalid.push(selector);
            continue;
        }
        nodes.forEach((node) => { node.remove(); removed++; });
    }
    return { removed, invalid };
}
"""


class CaptureSession(Protocol):
    async def navigate(self, url: str, timeout_ms: int) -> None: ...

    async def remove_elements(self, selectors: Sequence[str]) -> None: ...

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> None: ...

    async def wait_fixed(self, duration_ms: int) -> None: ...

    async def screenshot(self, full_page: bool, timeout_ms: int | None = None) -> RawImage: ...

    async def close(self) -> None: ...


class BrowsingEnvironment(Protocol):
    async def open_session(self) -> CaptureSession: ...


class PlaywrightCaptureSession:
    """Capture session backed by a single Playwright page."""

    def __init__(self, page: Page, codec: PngCodec | None = None):
        self.page = page
        self.codec = codec or PngCodec()
        self._closed = False

    async def navigate(self, url: str, timeout_ms: int) -> None:
        try:
            response = await self.page.goto(url, wait_until="load", timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout(f"Navigation to {url} timed out after {timeout_ms}ms") from e
        except PlaywrightError as e:
            raise NavigationFailure(f"Navigation to {url} failed: {e.message}") from e
        if response is not None:
            logger.debug("Loaded %s (status %s)", url, response.status)

    async def remove_elements(self, selectors: Sequence[str]) -> None:
        """Delete every element matching any selector. Missing matches are fine."""
        if not selectors:
            return
        try:
            result = await self.page.evaluate(_REMOVE_ELEMENTS_SCRIPT, list(selectors))
        except PlaywrightError as e:
            raise StabilizationFailure(f"Element removal failed: {e.message}") from e
        result = result or {}
        if result.get("invalid"):
            logger.warning("Skipped invalid selectors: %s", ", ".join(result["invalid"]))
        logger.debug("Removed %d elements for %d selectors",
                     result.get("removed", 0), len(selectors))

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> None:
        try:
            await self.page.wait_for_selector(selector, timeout=timeout_ms)
        except PlaywrightError as e:
            raise StabilizationWaitTimeout(
                f"Selector '{selector}' did not appear within {timeout_ms}ms: {e.message}"
            ) from e

    async def wait_fixed(self, duration_ms: int) -> None:
        try:
            await self.page.wait_for_timeout(duration_ms)
        except PlaywrightError as e:
            raise StabilizationFailure(f"Fixed wait of {duration_ms}ms failed: {e.message}") from e

    async def screenshot(self, full_page: bool, timeout_ms: int | None = None) -> RawImage:
        try:
            data = await self.page.screenshot(type="png", full_page=full_page, timeout=timeout_ms)
        except PlaywrightError as e:
            raise ScreenshotFailure(f"Screenshot failed: {e.message}") from e
        return self.codec.decode(bytes(data))

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self.page.close(run_before_unload=True)
        except PlaywrightError as e:
            logger.warning("Closing page failed: %s", e.message)
