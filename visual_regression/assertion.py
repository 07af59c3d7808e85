"""Assertion-style entry point for UI tests: capture, compare, report."""

from __future__ import annotations

import logging
from typing import Any

from playwright.async_api import Page

from visual_regression.capture.playwright_capture import PlaywrightCapture, browser_identity
from visual_regression.core.evaluator import RegressionEvaluator
from visual_regression.models.config import VisualRegressionConfig
from visual_regression.models.screenshot import ScreenshotKey, SimpleSelector, Verdict, coerce_selector

logger = logging.getLogger(__name__)


class AssertionResult:
    def __init__(self, passed: bool, message: str = "", verdict: Verdict | None = None):
        self.passed = passed
        self.message = message
        self.verdict = verdict

    def __bool__(self) -> bool:
        return self.passed


class VisualAssertion:
    """Checks the current page (or one element of it) against its baseline."""

    def __init__(self, config: VisualRegressionConfig, evaluator: RegressionEvaluator | None = None):
        self.config = config
        self.evaluator = evaluator or RegressionEvaluator(config)

    async def check(
        self,
        page: Page,
        test_module: str,
        test_step: str,
        selector: Any = None,
        label: str | None = None,
        message: str | None = None,
    ) -> AssertionResult:
        """Capture and evaluate a screenshot.

        ``selector`` may be a CSS string or a sequence of page-object
        sections (outermost first); it defaults to the configured
        ``default_selector``. ``message`` replaces the message of a passing
        check. Capture failures raise DriverIOError.
        """
        if not self.config.enabled:
            return AssertionResult(True, "Visual regression disabled")

        target = coerce_selector(selector) or SimpleSelector(value=self.config.default_selector)
        browser_name, browser_version, os_name = browser_identity(page)

        capture = PlaywrightCapture(page, censor_selectors=self.config.censor_selectors)
        shot = await capture.capture(target)

        key = ScreenshotKey(
            test_module=test_module,
            test_step=test_step,
            browser_name=browser_name,
            browser_version=browser_version,
            platform=os_name,
            width=shot.window_width,
            height=shot.window_height,
            selector=target,
            label=label,
        )
        verdict = await self.evaluator.evaluate_async(key, shot.image)

        text = verdict.message
        if verdict.passed and message:
            text = message
        logger.debug("Visual check %s: %s", verdict.relative_path, "pass" if verdict.passed else "fail")
        return AssertionResult(verdict.passed, text, verdict)
