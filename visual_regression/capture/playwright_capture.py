"""Screenshot capture through Playwright, cropped to a target element."""

from __future__ import annotations

import io
import logging
import platform
from dataclasses import dataclass

from PIL import Image
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from visual_regression.errors import DriverIOError
from visual_regression.models.screenshot import Selector

logger = logging.getLogger(__name__)

_WINDOW_SIZE_JS = "() => ({width: window.innerWidth, height: window.innerHeight})"


@dataclass
class ElementBox:
    x: float
    y: float
    width: float
    height: float


@dataclass
class CaptureResult:
    window_width: int
    window_height: int
    element_box: ElementBox | None
    image: bytes  # PNG, cropped to element_box when one was given


def crop_image(image: bytes, box: ElementBox) -> bytes:
    """Crop PNG bytes to ``box``, clamped to the image bounds."""
    with Image.open(io.BytesIO(image)) as img:
        left = max(0, int(round(box.x)))
        top = max(0, int(round(box.y)))
        right = min(img.width, int(round(box.x + box.width)))
        bottom = min(img.height, int(round(box.y + box.height)))
        if right <= left or bottom <= top:
            raise DriverIOError(
                "Element lies outside the captured screenshot",
                {"box": f"{box.x},{box.y} {box.width}x{box.height}", "image": f"{img.width}x{img.height}"},
            )
        cropped = img.crop((left, top, right, bottom))
        buf = io.BytesIO()
        cropped.save(buf, format="PNG")
    return buf.getvalue()


def browser_identity(page: Page) -> tuple[str, str, str]:
    """Return (browser name, browser version, platform) for file naming."""
    browser = page.context.browser
    if browser is None:
        return "unknown", "unknown", platform.system().lower()
    return browser.browser_type.name, browser.version, platform.system().lower()


class PlaywrightCapture:
    """Captures a screenshot of one element on a Playwright page.

    Geometry is read before the screenshot is taken, and the element's origin
    and size come from a single ``bounding_box`` call so a layout shift cannot
    slip in between them.
    """

    def __init__(self, page: Page, censor_selectors: list[str] | tuple[str, ...] = (), timeout_ms: int = 5000):
        self.page = page
        self.censor_selectors = list(censor_selectors)
        self.timeout_ms = timeout_ms

    async def window_size(self) -> tuple[int, int]:
        size = self.page.viewport_size
        if size:
            return size["width"], size["height"]
        try:
            size = await self.page.evaluate(_WINDOW_SIZE_JS)
        except PlaywrightError as e:
            raise DriverIOError("Failed to read window size", {"error": e}) from e
        return int(size["width"]), int(size["height"])

    async def element_box(self, selector: Selector) -> ElementBox:
        try:
            box = await self.page.locator(selector.css).first.bounding_box(timeout=self.timeout_ms)
        except PlaywrightError as e:
            raise DriverIOError("Failed to locate element", {"selector": selector.css, "error": e}) from e
        if box is None:
            raise DriverIOError("Element is not visible", {"selector": selector.css})
        return ElementBox(x=box["x"], y=box["y"], width=box["width"], height=box["height"])

    async def screenshot(self) -> bytes:
        mask = [self.page.locator(s) for s in self.censor_selectors]
        try:
            return await self.page.screenshot(full_page=False, mask=mask, animations="disabled")
        except PlaywrightError as e:
            raise DriverIOError("Failed to take screenshot", {"error": e}) from e

    async def capture(self, selector: Selector | None) -> CaptureResult:
        width, height = await self.window_size()
        box = await self.element_box(selector) if selector is not None else None
        image = await self.screenshot()
        if box is not None:
            image = crop_image(image, box)
        logger.debug("Captured %dx%d window%s", width, height,
                     f", cropped to {selector.css}" if selector is not None else "")
        return CaptureResult(window_width=width, window_height=height, element_box=box, image=image)
