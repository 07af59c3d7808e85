"""Pytest configuration and shared fixtures."""

import io
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
from PIL import Image

from visual_regression.core.evaluator import RegressionEvaluator
from visual_regression.models.config import VisualRegressionConfig
from visual_regression.models.screenshot import ScreenshotKey

RED = (255, 0, 0)
BLUE = (0, 0, 255)
WHITE = (255, 255, 255)


def make_png(color: tuple = RED, size: tuple = (10, 10)) -> bytes:
    """Create solid-colour PNG bytes."""
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def make_mock_page(screenshot: bytes | None = None, viewport: dict | None = None, box: dict | None = None):
    """Create an AsyncMock Playwright page for capture tests."""
    page = AsyncMock()
    page.viewport_size = viewport if viewport is not None else {"width": 1280, "height": 720}
    page.screenshot = AsyncMock(return_value=screenshot or make_png(size=(1280, 720)))

    locator = Mock()
    locator.first.bounding_box = AsyncMock(
        return_value=box if box is not None else {"x": 0, "y": 0, "width": 10, "height": 10}
    )
    page.locator = Mock(return_value=locator)

    browser = Mock()
    browser.browser_type.name = "chromium"
    browser.version = "120.0"
    page.context = Mock()
    page.context.browser = browser
    return page


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def vr_config(tmp_path: Path) -> VisualRegressionConfig:
    """Create a config whose artifact trees live under tmp_path."""
    return VisualRegressionConfig(
        baseline_folder=tmp_path / "baseline",
        current_folder=tmp_path / "new",
        error_folder=tmp_path / "failures",
        mismatch_tolerance=0.3,
    )


@pytest.fixture
def evaluator(vr_config: VisualRegressionConfig) -> RegressionEvaluator:
    return RegressionEvaluator(vr_config)


# ============================================================================
# Key Fixtures
# ============================================================================


@pytest.fixture
def screenshot_key() -> ScreenshotKey:
    """Create a key for the home page header on desktop chromium."""
    return ScreenshotKey(
        test_module="home",
        test_step="renders_header",
        browser_name="chromium",
        browser_version="120.0",
        platform="linux",
        width=1280,
        height=720,
    )


@pytest.fixture
def red_png() -> bytes:
    return make_png(RED)


@pytest.fixture
def blue_png() -> bytes:
    return make_png(BLUE)
