"""Tests for the page comparator (consumer-facing compare operation)."""

import pytest

from page_diff.comparator import (
    PageComparator,
    validate_diff_options,
    validate_request,
)
from page_diff.errors import InternalError, InvalidInput, NavigationTimeout
from page_diff.models.comparison import ComparisonOutcome
from page_diff.models.config import DiffOptions, StabilizationConfig, ViewportConfig

from conftest import BLUE, RED, URL_A, URL_B, FakeEnvironment, PageBehavior, make_request, solid_image


def _comparator(env: FakeEnvironment) -> PageComparator:
    return PageComparator(environment_factory=env.factory)


class TestValidation:
    """Tests for input validation before capture."""

    @pytest.mark.parametrize("url", [
        "not-a-url", "", "ftp://example.com", "javascript:alert(1)", "https://", "example.com",
    ])
    def test_rejects_invalid_urls(self, url):
        with pytest.raises(InvalidInput):
            validate_request(make_request(url), "A")

    @pytest.mark.parametrize("url", ["http://localhost:3000/", "https://example.com/a?b=c"])
    def test_accepts_http_urls(self, url):
        validate_request(make_request(url), "A")

    def test_rejects_non_positive_viewport(self):
        request = make_request(URL_A, viewport=ViewportConfig(width=0))
        with pytest.raises(InvalidInput):
            validate_request(request, "A")

    def test_rejects_non_positive_scale(self):
        request = make_request(URL_A, viewport=ViewportConfig(device_scale_factor=0))
        with pytest.raises(InvalidInput):
            validate_request(request, "A")

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(InvalidInput):
            validate_request(make_request(URL_A, timeout_ms=0), "B")

    def test_rejects_negative_wait(self):
        request = make_request(URL_A, stabilization=StabilizationConfig(wait_ms=-1))
        with pytest.raises(InvalidInput):
            validate_request(request, "A")

    def test_rejects_blank_remove_selector(self):
        request = make_request(URL_A, stabilization=StabilizationConfig(remove_selectors=[" "]))
        with pytest.raises(InvalidInput):
            validate_request(request, "A")

    def test_error_names_side(self):
        with pytest.raises(InvalidInput) as exc_info:
            validate_request(make_request("not-a-url"), "B")
        assert exc_info.value.side == "B"

    @pytest.mark.parametrize("options", [
        DiffOptions(threshold=-0.1), DiffOptions(threshold=1.5),
        DiffOptions(output_alpha=-1), DiffOptions(output_alpha=256),
    ])
    def test_rejects_out_of_range_diff_options(self, options):
        with pytest.raises(InvalidInput):
            validate_diff_options(options)


class TestCompare:
    """Tests for PageComparator.compare with fake browsing environments."""

    def test_invalid_url_opens_nothing(self, request_b):
        env = FakeEnvironment()
        with pytest.raises(InvalidInput):
            _comparator(env).compare(make_request("not-a-url"), request_b)
        assert env.entered == 0
        assert env.sessions == []

    def test_identical_red_pages(self, request_a, request_b):
        env = FakeEnvironment({
            URL_A: PageBehavior(image=solid_image(100, 100, RED)),
            URL_B: PageBehavior(image=solid_image(100, 100, RED)),
        })
        outcome = _comparator(env).compare(request_a, request_b, DiffOptions())

        assert isinstance(outcome, ComparisonOutcome)
        assert outcome.diff.differing_pixel_count == 0

    def test_red_vs_blue(self, request_a, request_b):
        env = FakeEnvironment({
            URL_A: PageBehavior(image=solid_image(100, 100, RED)),
            URL_B: PageBehavior(image=solid_image(100, 100, BLUE)),
        })
        outcome = _comparator(env).compare(request_a, request_b, DiffOptions(threshold=0.1))
        assert outcome.diff.differing_pixel_count == 10000

    def test_different_sizes_are_reconciled(self, request_a, request_b):
        env = FakeEnvironment({
            URL_A: PageBehavior(image=solid_image(200, 150)),
            URL_B: PageBehavior(image=solid_image(200, 100)),
        })
        outcome = _comparator(env).compare(request_a, request_b)

        assert (outcome.diff.width, outcome.diff.height) == (200, 100)
        assert outcome.diff.differing_pixel_count == 0
        # Captures keep their original sizes
        assert outcome.capture_a.height == 150
        assert outcome.capture_b.height == 100

    def test_diff_disabled(self, request_a, request_b):
        env = FakeEnvironment()
        outcome = _comparator(env).compare(request_a, request_b, DiffOptions(enabled=False))
        assert outcome.diff is None
        assert outcome.capture_a.width == 100

    def test_uses_config_diff_options_by_default(self, compare_config, request_a, request_b):
        compare_config.diff = DiffOptions(enabled=False)
        env = FakeEnvironment()
        comparator = PageComparator(compare_config, environment_factory=env.factory)
        assert comparator.compare(request_a, request_b).diff is None

    def test_outcome_metadata(self):
        viewport = ViewportConfig(width=1366, height=768)
        request_a = make_request(URL_A, full_page=True, viewport=viewport)
        request_b = make_request(URL_B, full_page=True, viewport=viewport)
        outcome = _comparator(FakeEnvironment()).compare(request_a, request_b)
        assert outcome.viewport == viewport
        assert outcome.full_page is True

    def test_outcome_is_immutable(self, request_a, request_b):
        outcome = _comparator(FakeEnvironment()).compare(request_a, request_b)
        with pytest.raises(Exception):
            outcome.full_page = True

    def test_viewport_mismatch_rejected(self, request_a):
        request_b = make_request(URL_B, viewport=ViewportConfig(width=375, height=812))
        env = FakeEnvironment()
        with pytest.raises(InvalidInput):
            _comparator(env).compare(request_a, request_b)
        assert env.entered == 0

    def test_capture_mode_mismatch_rejected(self, request_a):
        request_b = make_request(URL_B, full_page=True)
        env = FakeEnvironment()
        with pytest.raises(InvalidInput):
            _comparator(env).compare(request_a, request_b)
        assert env.entered == 0

    def test_session_error_keeps_side(self, request_a):
        stab = StabilizationConfig(wait_ms=100)
        request_b = make_request(URL_B, stabilization=stab)
        env = FakeEnvironment({URL_B: PageBehavior(wait_error=RuntimeError("context closed"))})
        with pytest.raises(InternalError) as exc_info:
            _comparator(env).compare(request_a, request_b)
        assert exc_info.value.side == "B"

    def test_navigation_timeout_surfaces_with_side(self, request_a):
        request_b = make_request(URL_B, timeout_ms=1000)
        env = FakeEnvironment({URL_B: PageBehavior(nav_hangs=True)})
        with pytest.raises(NavigationTimeout) as exc_info:
            _comparator(env).compare(request_a, request_b)

        assert exc_info.value.side == "B"
        assert env.session_for(URL_A).close_calls == 1
        assert env.exited == 1

    def test_unexpected_error_wrapped_as_internal(self, request_a, request_b):
        env = FakeEnvironment()

        async def broken_open_session():
            raise RuntimeError("browser vanished")

        env.open_session = broken_open_session
        with pytest.raises(InternalError) as exc_info:
            _comparator(env).compare(request_a, request_b)
        assert "browser vanished" in str(exc_info.value)
        assert env.exited == 1
