"""Page comparator — validates, captures both pages, reconciles and diffs them."""

from __future__ import annotations

import asyncio
import logging
import time
from functools import partial

from page_diff.capture.browser import playwright_environment
from page_diff.capture.orchestrator import CaptureOrchestrator, EnvironmentFactory
from page_diff.errors import CoreError, InternalError, InvalidInput
from page_diff.imaging.codec import PngCodec
from page_diff.imaging.pixel_diff import diff_images
from page_diff.imaging.reconcile import reconcile
from page_diff.models.comparison import CaptureResult, ComparisonOutcome, DiffResult
from page_diff.models.config import CaptureRequest, CompareConfig, DiffOptions
from page_diff.url_utils import is_valid_http_url

logger = logging.getLogger(__name__)


def validate_request(request: CaptureRequest, side: str) -> None:
    """Reject a capture request that could never succeed."""
    if not is_valid_http_url(request.url):
        raise InvalidInput(f"URL must be a valid http(s) URL: {request.url!r}", side)
    vp = request.viewport
    if vp.width <= 0 or vp.height <= 0 or vp.device_scale_factor <= 0:
        raise InvalidInput(
            f"Viewport must be positive, got {vp.width}x{vp.height}@{vp.device_scale_factor}", side,
        )
    if request.timeout_ms <= 0:
        raise InvalidInput(f"timeout_ms must be positive, got {request.timeout_ms}", side)
    stabilization = request.stabilization
    if stabilization.wait_ms is not None and stabilization.wait_ms < 0:
        raise InvalidInput(f"wait_ms must not be negative, got {stabilization.wait_ms}", side)
    if any(not s.strip() for s in stabilization.remove_selectors):
        raise InvalidInput("remove_selectors must not contain empty selectors", side)


def validate_diff_options(options: DiffOptions) -> None:
    if not 0 <= options.threshold <= 1:
        raise InvalidInput(f"threshold must be within [0, 1], got {options.threshold}")
    if not 0 <= options.output_alpha <= 255:
        raise InvalidInput(f"output_alpha must be within [0, 255], got {options.output_alpha}")


class PageComparator:
    """Compares two web pages: capture both, then diff their pixels."""

    def __init__(
        self,
        config: CompareConfig | None = None,
        environment_factory: EnvironmentFactory | None = None,
        codec: PngCodec | None = None,
    ):
        self.config = config or CompareConfig()
        self.codec = codec or PngCodec()
        self.environment_factory = environment_factory or partial(
            playwright_environment, config=self.config, codec=self.codec,
        )
        self.orchestrator = CaptureOrchestrator(self.environment_factory)

    def compare(
        self,
        request_a: CaptureRequest,
        request_b: CaptureRequest,
        diff_options: DiffOptions | None = None,
    ) -> ComparisonOutcome:
        """Run a full comparison. Blocks until both captures and the diff are done."""
        return asyncio.run(self.compare_async(request_a, request_b, diff_options))

    async def compare_async(
        self,
        request_a: CaptureRequest,
        request_b: CaptureRequest,
        diff_options: DiffOptions | None = None,
    ) -> ComparisonOutcome:
        diff_options = diff_options or self.config.diff
        validate_request(request_a, "A")
        validate_request(request_b, "B")
        if request_a.viewport != request_b.viewport:
            raise InvalidInput("Both pages must be captured with the same viewport")
        if request_a.full_page != request_b.full_page:
            raise InvalidInput("Both pages must use the same capture mode (full page or viewport)")
        validate_diff_options(diff_options)

        start = time.time()
        logger.info("Comparing %s against %s", request_a.url, request_b.url)
        try:
            capture_a, capture_b = await self.orchestrator.capture_pair(request_a, request_b)
            diff = self._diff(capture_a, capture_b, diff_options) if diff_options.enabled else None
        except CoreError:
            raise
        except Exception as e:
            logger.exception("Unexpected comparison failure")
            raise InternalError(str(e) or type(e).__name__) from e

        logger.info("Comparison complete in %.1fs", time.time() - start)
        return ComparisonOutcome(
            capture_a=capture_a,
            capture_b=capture_b,
            diff=diff,
            viewport=request_a.viewport,
            full_page=request_a.full_page,
        )

    @staticmethod
    def _diff(
        capture_a: CaptureResult, capture_b: CaptureResult, options: DiffOptions,
    ) -> DiffResult:
        image_a, image_b = reconcile(capture_a.as_image(), capture_b.as_image())
        if (image_a.width, image_a.height) != (capture_a.width, capture_a.height) or \
                (image_b.width, image_b.height) != (capture_b.width, capture_b.height):
            logger.info("Sizes differ (%dx%d vs %dx%d), comparing common %dx%d region",
                        capture_a.width, capture_a.height, capture_b.width, capture_b.height,
                        image_a.width, image_a.height)
        diff = diff_images(image_a, image_b, options)
        logger.info("Diff: %d of %d pixels differ (%.2f%%)",
                    diff.differing_pixel_count, diff.width * diff.height,
                    diff.mismatch_ratio * 100)
        return diff


def compare(
    request_a: CaptureRequest,
    request_b: CaptureRequest,
    diff_options: DiffOptions | None = None,
    config: CompareConfig | None = None,
) -> ComparisonOutcome:
    """Compare two pages with a Playwright-backed comparator."""
    return PageComparator(config).compare(request_a, request_b, diff_options)
