"""Raw RGBA image buffer shared by the codec, reconciler and diff engine."""

from __future__ import annotations

from dataclasses import dataclass

from page_diff.errors import BufferMismatch, EmptyImage


@dataclass(frozen=True)
class RawImage:
    width: int
    height: int
    pixels: bytes  # RGBA, 4 bytes per pixel, row-major

    @property
    def stride(self) -> int:
        return self.width * 4

    def validate(self) -> "RawImage":
        """Raise if the buffer cannot hold a width x height RGBA image."""
        if self.width <= 0 or self.height <= 0:
            raise EmptyImage(f"Image has no pixels ({self.width}x{self.height})")
        expected = self.width * self.height * 4
        if len(self.pixels) != expected:
            raise BufferMismatch(
                f"Buffer length {len(self.pixels)} does not match "
                f"{self.width}x{self.height} RGBA ({expected} bytes)"
            )
        return self
