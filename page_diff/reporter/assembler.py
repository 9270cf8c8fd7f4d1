"""Result assembler — packages a comparison outcome for transport or disk."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from page_diff.errors import CoreError
from page_diff.imaging.codec import PngCodec, to_data_url
from page_diff.models.comparison import ComparisonOutcome

logger = logging.getLogger(__name__)


def _meta(outcome: ComparisonOutcome) -> dict[str, Any]:
    diff = outcome.diff
    return {
        "viewport": outcome.viewport.model_dump(),
        "full_page": outcome.full_page,
        "urls": {"a": outcome.capture_a.url, "b": outcome.capture_b.url},
        "sizes": {
            "a": {"width": outcome.capture_a.width, "height": outcome.capture_a.height},
            "b": {"width": outcome.capture_b.width, "height": outcome.capture_b.height},
        },
        "diff": {
            "width": diff.width,
            "height": diff.height,
            "differing_pixel_count": diff.differing_pixel_count,
            "mismatch_ratio": round(diff.mismatch_ratio, 6),
        } if diff else None,
    }


def build_payload(outcome: ComparisonOutcome, codec: PngCodec | None = None) -> dict[str, Any]:
    """Build the response body with both screenshots and the diff as PNG data URLs."""
    codec = codec or PngCodec()
    diff_url = to_data_url(codec.encode(outcome.diff.as_image())) if outcome.diff else None
    return {
        "ok": True,
        "a": to_data_url(codec.encode(outcome.capture_a.as_image())),
        "b": to_data_url(codec.encode(outcome.capture_b.as_image())),
        "diff": diff_url,
        "meta": _meta(outcome),
    }


def build_error_payload(error: Exception) -> dict[str, Any]:
    side = error.side if isinstance(error, CoreError) else None
    return {
        "ok": False,
        "error": str(error) or "Unknown error",
        "error_type": type(error).__name__,
        "side": side,
    }


def write_outputs(
    outcome: ComparisonOutcome, output_dir: Path, codec: PngCodec | None = None,
) -> dict[str, str]:
    """Write a.png, b.png, diff.png and report.json; return artifact name -> path."""
    codec = codec or PngCodec()
    output_dir.mkdir(parents=True, exist_ok=True)
    images = {"a": outcome.capture_a.as_image(), "b": outcome.capture_b.as_image()}
    if outcome.diff:
        images["diff"] = outcome.diff.as_image()

    artifacts: dict[str, str] = {}
    for name, image in images.items():
        path = output_dir / f"{name}.png"
        path.write_bytes(codec.encode(image))
        artifacts[name] = str(path)

    report_path = output_dir / "report.json"
    with open(report_path, "w") as f:
        json.dump({"ok": True, "artifacts": dict(artifacts), "meta": _meta(outcome)}, f, indent=2)
    artifacts["report"] = str(report_path)
    logger.debug("Wrote %d artifacts to %s", len(artifacts), output_dir)
    return artifacts
