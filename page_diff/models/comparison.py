"""Comparison result data structures produced by the pipeline."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict

from page_diff.imaging.raw_image import RawImage
from page_diff.models.config import ViewportConfig


class CaptureResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    side: str  # "A" or "B"
    url: str
    pixels: bytes  # RGBA, row-major
    width: int
    height: int

    def as_image(self) -> RawImage:
        return RawImage(width=self.width, height=self.height, pixels=self.pixels)


class DiffResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    pixels: bytes  # RGBA diff visualization
    width: int
    height: int
    differing_pixel_count: int = 0

    @property
    def mismatch_ratio(self) -> float:
        total = self.width * self.height
        return self.differing_pixel_count / total if total else 0.0

    def as_image(self) -> RawImage:
        return RawImage(width=self.width, height=self.height, pixels=self.pixels)


class ComparisonOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    capture_a: CaptureResult
    capture_b: CaptureResult
    diff: Optional[DiffResult] = None
    viewport: ViewportConfig
    full_page: bool = False
