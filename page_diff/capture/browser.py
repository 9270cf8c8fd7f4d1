"""Browser utilities — one Chromium process and context per comparison request."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import Browser, BrowserContext, Playwright, async_playwright

from page_diff.imaging.codec import PngCodec
from page_diff.models.config import DEFAULT_USER_AGENT, CompareConfig, ViewportConfig

from .session import PlaywrightCaptureSession

logger = logging.getLogger(__name__)


async def launch_browser(
    playwright: Playwright, headless: bool = True, args: Optional[list[str]] = None,
) -> Browser:
    """Launch Chromium with container-friendly arguments."""
    return await playwright.chromium.launch(
        headless=headless,
        args=args if args is not None else ["--no-sandbox", "--disable-setuid-sandbox"],
    )


async def create_context(
    browser: Browser,
    viewport: ViewportConfig,
    user_agent: Optional[str] = None,
) -> BrowserContext:
    """Create the browser context both capture sessions render in."""
    return await browser.new_context(
        viewport={"width": viewport.width, "height": viewport.height},
        device_scale_factor=viewport.device_scale_factor,
        ignore_https_errors=True,
        user_agent=user_agent or DEFAULT_USER_AGENT,
    )


class PlaywrightEnvironment:
    """Browsing environment handing out one page per capture session."""

    def __init__(self, context: BrowserContext, codec: PngCodec | None = None):
        self.context = context
        self.codec = codec or PngCodec()

    async def open_session(self) -> PlaywrightCaptureSession:
        page = await self.context.new_page()
        return PlaywrightCaptureSession(page, self.codec)


@asynccontextmanager
async def playwright_environment(
    viewport: ViewportConfig,
    config: CompareConfig | None = None,
    codec: PngCodec | None = None,
) -> AsyncIterator[PlaywrightEnvironment]:
    """Launch a browser for one request and tear it down however the request ends."""
    config = config or CompareConfig()
    async with async_playwright() as p:
        logger.debug("Launching Chromium (headless=%s)...", config.headless)
        browser = await launch_browser(p, headless=config.headless, args=config.browser_args)
        try:
            context = await create_context(browser, viewport, user_agent=config.user_agent)
            yield PlaywrightEnvironment(context, codec)
        finally:
            await browser.close()
            logger.debug("Browser closed")
