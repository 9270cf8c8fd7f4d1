"""Configuration and request models for page comparison."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/139.0.0.0 Safari/537.36 page-diff-viewer-screenshoter"
)

# Upper bound for the selector wait and the fixed settle wait.
MAX_STABILIZATION_WAIT_MS = 15000


class ViewportConfig(BaseModel):
    width: int = 1366
    height: int = 768
    device_scale_factor: float = 1.0


class StabilizationConfig(BaseModel):
    remove_selectors: list[str] = Field(default_factory=list)
    wait_selector: Optional[str] = None
    wait_ms: Optional[int] = None


class CaptureRequest(BaseModel):
    """Everything needed to render and screenshot one side of a comparison."""
    url: str
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    full_page: bool = False
    timeout_ms: int = 45000
    stabilization: StabilizationConfig = Field(default_factory=StabilizationConfig)


class DiffOptions(BaseModel):
    enabled: bool = True
    threshold: float = 0.1  # 0..1, smaller is more sensitive
    include_anti_aliased: bool = True
    output_alpha: int = 255  # 0..255, alpha of highlighted pixels


class CompareConfig(BaseModel):
    # Capture
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    full_page: bool = False
    timeout_ms: int = 45000
    stabilization: StabilizationConfig = Field(default_factory=StabilizationConfig)

    # Diff
    diff: DiffOptions = Field(default_factory=DiffOptions)

    # Browser
    user_agent: str = DEFAULT_USER_AGENT
    headless: bool = True
    browser_args: list[str] = Field(
        default_factory=lambda: ["--no-sandbox", "--disable-setuid-sandbox"]
    )

    # Output
    output_dir: str = "./page-diff-output"

    def capture_request(self, url: str) -> CaptureRequest:
        """Build the capture request for one side from the shared settings."""
        return CaptureRequest(
            url=url,
            viewport=self.viewport.model_copy(),
            full_page=self.full_page,
            timeout_ms=self.timeout_ms,
            stabilization=self.stabilization.model_copy(deep=True),
        )

    @classmethod
    def load(cls, path: str | Path) -> "CompareConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
