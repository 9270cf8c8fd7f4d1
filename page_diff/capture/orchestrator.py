"""Capture orchestrator — renders both pages concurrently in one browsing environment."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import AsyncContextManager, Callable

from page_diff.errors import (
    CoreError,
    InternalError,
    NavigationTimeout,
    ScreenshotFailure,
    StabilizationFailure,
    StabilizationWaitTimeout,
)
from page_diff.models.comparison import CaptureResult
from page_diff.models.config import MAX_STABILIZATION_WAIT_MS, CaptureRequest, ViewportConfig

from .session import BrowsingEnvironment, CaptureSession

logger = logging.getLogger(__name__)

EnvironmentFactory = Callable[[ViewportConfig], AsyncContextManager[BrowsingEnvironment]]


class CaptureOrchestrator:
    """Runs the A and B capture sessions side by side with fail-fast joining.

    Both sessions share the environment produced by ``environment_factory``
    for the duration of one request. Every session that was opened is closed
    exactly once, and the environment is torn down, before a failure is
    re-raised.
    """

    def __init__(self, environment_factory: EnvironmentFactory):
        self.environment_factory = environment_factory

    async def capture_pair(
        self, request_a: CaptureRequest, request_b: CaptureRequest,
    ) -> tuple[CaptureResult, CaptureResult]:
        start = time.time()
        async with self.environment_factory(request_a.viewport) as environment:
            tasks = [
                asyncio.create_task(self._capture_side(environment, "A", request_a)),
                asyncio.create_task(self._capture_side(environment, "B", request_b)),
            ]
            try:
                result_a, result_b = await asyncio.gather(*tasks)
            except BaseException:
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
        logger.info("Captured both pages in %.1fs", time.time() - start)
        return result_a, result_b

    async def _capture_side(
        self, environment: BrowsingEnvironment, side: str, request: CaptureRequest,
    ) -> CaptureResult:
        start = time.time()
        logger.info("[%s] Capturing %s", side, request.url)
        session = None
        try:
            session = await environment.open_session()
            result = await self._run_steps(session, side, request)
        except CoreError as e:
            if e.side is None:
                e.side = side
            logger.error("[%s] Capture failed: %s", side, e.message)
            raise
        except asyncio.CancelledError:
            logger.debug("[%s] Capture cancelled", side)
            raise
        except Exception as e:
            logger.error("[%s] Unexpected capture failure: %s", side, e)
            raise InternalError(str(e) or type(e).__name__, side) from e
        finally:
            if session is not None:
                await session.close()
        logger.info("[%s] Captured %dx%d in %.1fs",
                    side, result.width, result.height, time.time() - start)
        return result

    async def _run_steps(
        self, session: CaptureSession, side: str, request: CaptureRequest,
    ) -> CaptureResult:
        timeout_ms = request.timeout_ms
        stabilization = request.stabilization

        try:
            await asyncio.wait_for(session.navigate(request.url, timeout_ms), timeout_ms / 1000)
        except asyncio.TimeoutError as e:
            raise NavigationTimeout(
                f"Navigation to {request.url} timed out after {timeout_ms}ms", side,
            ) from e

        if stabilization.remove_selectors:
            logger.debug("[%s] Removing elements: %s", side, stabilization.remove_selectors)
            try:
                await asyncio.wait_for(
                    session.remove_elements(stabilization.remove_selectors), timeout_ms / 1000,
                )
            except asyncio.TimeoutError as e:
                raise StabilizationFailure(
                    f"Element removal timed out after {timeout_ms}ms", side,
                ) from e

        if stabilization.wait_selector:
            await self._wait_for_selector_best_effort(
                session, side, stabilization.wait_selector,
                min(timeout_ms, MAX_STABILIZATION_WAIT_MS),
            )

        if stabilization.wait_ms is not None and stabilization.wait_ms > 0:
            wait_ms = min(stabilization.wait_ms, MAX_STABILIZATION_WAIT_MS)
            logger.debug("[%s] Waiting %dms before screenshot", side, wait_ms)
            # Bound is the wait itself plus the request budget.
            try:
                await asyncio.wait_for(session.wait_fixed(wait_ms), (wait_ms + timeout_ms) / 1000)
            except asyncio.TimeoutError as e:
                raise StabilizationFailure(
                    f"Fixed wait of {wait_ms}ms did not finish within {timeout_ms}ms", side,
                ) from e

        try:
            image = await asyncio.wait_for(
                session.screenshot(request.full_page, timeout_ms), timeout_ms / 1000,
            )
        except asyncio.TimeoutError as e:
            raise ScreenshotFailure(f"Screenshot timed out after {timeout_ms}ms", side) from e
        image.validate()
        return CaptureResult(
            side=side, url=request.url,
            pixels=image.pixels, width=image.width, height=image.height,
        )

    @staticmethod
    async def _wait_for_selector_best_effort(
        session: CaptureSession, side: str, selector: str, timeout_ms: int,
    ) -> None:
        """Wait for a selector; a missing selector never fails the capture."""
        try:
            await asyncio.wait_for(session.wait_for_selector(selector, timeout_ms), timeout_ms / 1000)
        except (StabilizationWaitTimeout, asyncio.TimeoutError) as e:
            logger.warning("[%s] Wait selector '%s' not found within %dms, capturing anyway (%s)",
                           side, selector, timeout_ms, e)
