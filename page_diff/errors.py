"""Error taxonomy for the comparison pipeline.

Every error may name the side ("A" or "B") it came from so the caller can
tell which page failed.
"""

from __future__ import annotations

from typing import Optional


class CoreError(Exception):
    """Base class for every error the comparison pipeline surfaces."""

    def __init__(self, message: str, side: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.side = side

    def __str__(self) -> str:
        if self.side:
            return f"[{self.side}] {self.message}"
        return self.message


class InvalidInput(CoreError):
    """Malformed URL or options, detected before any browser is launched."""


class CaptureError(CoreError):
    """A fatal failure inside one capture session."""


class NavigationTimeout(CaptureError):
    pass


class NavigationFailure(CaptureError):
    pass


class StabilizationFailure(CaptureError):
    pass


class ScreenshotFailure(CaptureError):
    pass


class StabilizationWaitTimeout(CoreError):
    """A wait selector never appeared. Never fatal."""


class ImageError(CoreError):
    pass


class EmptyImage(ImageError):
    pass


class BufferMismatch(ImageError):
    pass


class DecodeError(ImageError):
    pass


class InternalError(CoreError):
    """Catch-all for unexpected failures; the message is kept for diagnostics."""
