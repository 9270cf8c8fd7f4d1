"""Pytest configuration and shared fixtures."""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Optional

import pytest

from page_diff.errors import StabilizationWaitTimeout
from page_diff.imaging.raw_image import RawImage
from page_diff.models.config import (
    CaptureRequest,
    CompareConfig,
    DiffOptions,
    StabilizationConfig,
    ViewportConfig,
)

RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)
WHITE = (255, 255, 255, 255)
BLACK = (0, 0, 0, 255)


def solid_image(width: int, height: int, rgba=RED) -> RawImage:
    """Create a single-color RGBA image."""
    return RawImage(width=width, height=height, pixels=bytes(rgba) * (width * height))


def image_from_rows(rows: list[list[tuple]]) -> RawImage:
    """Create an image from a list of rows of RGBA tuples."""
    height = len(rows)
    width = len(rows[0])
    pixels = b"".join(bytes(px) for row in rows for px in row)
    return RawImage(width=width, height=height, pixels=pixels)


# ============================================================================
# Browser Test Doubles
# ============================================================================


@dataclass
class PageBehavior:
    """How a fake capture session behaves for one URL."""
    image: RawImage = field(default_factory=lambda: solid_image(100, 100))
    nav_delay: float = 0.0
    nav_error: Optional[Exception] = None
    nav_hangs: bool = False
    selector_found: bool = True
    selector_hangs: bool = False
    remove_error: Optional[Exception] = None
    remove_hangs: bool = False
    wait_error: Optional[Exception] = None
    screenshot_hangs: bool = False


class FakeSession:
    """Capture session double that records every call it receives."""

    def __init__(self, environment: "FakeEnvironment"):
        self.environment = environment
        self.behavior: PageBehavior | None = None
        self.url: str | None = None
        self.calls: list[tuple] = []
        self.close_calls = 0

    async def navigate(self, url: str, timeout_ms: int) -> None:
        self.url = url
        self.behavior = self.environment.behaviors.get(url, PageBehavior())
        self.calls.append(("navigate", url, timeout_ms))
        if self.behavior.nav_hangs:
            await asyncio.sleep(3600)
        if self.behavior.nav_delay:
            await asyncio.sleep(self.behavior.nav_delay)
        if self.behavior.nav_error:
            raise self.behavior.nav_error

    async def remove_elements(self, selectors) -> None:
        self.calls.append(("remove_elements", list(selectors)))
        if self.behavior.remove_error:
            raise self.behavior.remove_error
        if self.behavior.remove_hangs:
            await asyncio.sleep(3600)

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> None:
        self.calls.append(("wait_for_selector", selector, timeout_ms))
        if self.behavior.selector_hangs:
            await asyncio.sleep(3600)
        if not self.behavior.selector_found:
            raise StabilizationWaitTimeout(f"Selector '{selector}' not found")

    async def wait_fixed(self, duration_ms: int) -> None:
        self.calls.append(("wait_fixed", duration_ms))
        if self.behavior.wait_error:
            raise self.behavior.wait_error

    async def screenshot(self, full_page: bool, timeout_ms: int | None = None) -> RawImage:
        self.calls.append(("screenshot", full_page))
        if self.behavior.screenshot_hangs:
            await asyncio.sleep(3600)
        return self.behavior.image

    async def close(self) -> None:
        self.calls.append(("close",))
        self.close_calls += 1


class FakeEnvironment:
    """Browsing environment double; behaviors are keyed by URL."""

    def __init__(self, behaviors: dict[str, PageBehavior] | None = None):
        self.behaviors = behaviors or {}
        self.sessions: list[FakeSession] = []
        self.entered = 0
        self.exited = 0
        self.viewport: ViewportConfig | None = None

    async def open_session(self) -> FakeSession:
        session = FakeSession(self)
        self.sessions.append(session)
        return session

    def session_for(self, url: str) -> FakeSession:
        return next(s for s in self.sessions if s.url == url)

    def factory(self, viewport: ViewportConfig):
        @asynccontextmanager
        async def _environment():
            self.viewport = viewport
            self.entered += 1
            try:
                yield self
            finally:
                self.exited += 1

        return _environment()


# ============================================================================
# Request Fixtures
# ============================================================================

URL_A = "https://a.example.com/"
URL_B = "https://b.example.com/"


def make_request(url: str = URL_A, **kwargs) -> CaptureRequest:
    stabilization = kwargs.pop("stabilization", StabilizationConfig())
    return CaptureRequest(url=url, stabilization=stabilization, **kwargs)


@pytest.fixture
def request_a() -> CaptureRequest:
    return make_request(URL_A)


@pytest.fixture
def request_b() -> CaptureRequest:
    return make_request(URL_B)


@pytest.fixture
def diff_options() -> DiffOptions:
    return DiffOptions()


@pytest.fixture
def compare_config() -> CompareConfig:
    return CompareConfig(
        viewport=ViewportConfig(width=1280, height=720, device_scale_factor=2.0),
        full_page=True,
        timeout_ms=30000,
        stabilization=StabilizationConfig(
            remove_selectors=["#cookie-banner", ".ads"],
            wait_selector="#app .ready",
            wait_ms=1000,
        ),
        diff=DiffOptions(threshold=0.2, include_anti_aliased=False, output_alpha=200),
        output_dir="./test-output",
    )
