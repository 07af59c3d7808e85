"""Regression evaluator — baseline seeding, comparison, artifacts and verdict."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, TypeVar

from visual_regression.core.artifact_store import ArtifactStore
from visual_regression.core.comparator import ImageComparator
from visual_regression.core.naming import NamingStrategy
from visual_regression.errors import ArtifactIOError, DimensionMismatch
from visual_regression.models.config import VisualRegressionConfig
from visual_regression.models.screenshot import ScreenshotKey, Verdict, VerdictReason

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RegressionEvaluator:
    """Turns a captured screenshot into a Verdict against its baseline."""

    def __init__(
        self,
        config: VisualRegressionConfig,
        store: ArtifactStore | None = None,
        comparator: ImageComparator | None = None,
        naming: NamingStrategy | None = None,
    ):
        self.config = config
        self.store = store or ArtifactStore(config)
        self.comparator = comparator or ImageComparator(
            pixel_tolerance=config.pixel_tolerance,
            ignore_antialiasing=config.ignore_antialiasing,
        )
        self.naming = naming or NamingStrategy(config)

    def evaluate(self, key: ScreenshotKey, current: bytes) -> Verdict:
        """Compare ``current`` with the baseline filed under ``key``.

        A missing baseline is seeded from ``current`` and the check passes.
        Artifact write failures end up in ``Verdict.warnings`` and never
        change the outcome, unless ``swallow_artifact_errors`` is off.
        """
        path = self.naming.build_path(key)
        selector = self.naming.selector_text(key.selector)
        tolerance = self.config.mismatch_tolerance
        warnings: list[str] = []

        current_file = self._artifact_step(warnings, self.store.write_current, path, current)

        try:
            status = self.store.ensure_baseline_exists(path, current_file or current)
        except ArtifactIOError as e:
            self._record(warnings, e)
            status = None
        if status is None or not status.existed:
            return Verdict(
                passed=True,
                mismatch_percent=0.0,
                reason=VerdictReason.BASELINE_CREATED,
                message=f'Visual Regression: baseline created for "{selector}" ({path})',
                relative_path=str(path),
                baseline_missing=True,
                warnings=warnings,
            )

        baseline = self.store.read_baseline(path)
        try:
            result = self.comparator.compare(current, baseline)
        except DimensionMismatch as e:
            logger.warning("Dimension mismatch for %s: %s", path, e)
            self._artifact_step(warnings, self.store.clear_stale_error, path)
            return Verdict(
                passed=False,
                mismatch_percent=100.0,
                reason=VerdictReason.DIMENSION_MISMATCH,
                message=(
                    f"Visual Regression: Screen size changed from "
                    f"{e.baseline_size[0]}x{e.baseline_size[1]} to "
                    f"{e.current_size[0]}x{e.current_size[1]} "
                    f"(see: {self.store.resolve_current(path)})"
                ),
                relative_path=str(path),
                warnings=warnings,
            )

        # Diff image is always kept for inspection
        diff_path = self._artifact_step(warnings, self.store.write_diff_artifact, path, result.diff_image)
        self._artifact_step(warnings, self.store.clear_stale_error, path)

        mismatch = result.mismatch_percent
        passed = mismatch < tolerance
        error_path = None
        if passed:
            message = f'Visual Regression: "{selector}" change is less than {tolerance}%'
            reason = VerdictReason.WITHIN_TOLERANCE
        else:
            error_path = self._artifact_step(warnings, self.store.promote_to_error, path, result.diff_image)
            shown = error_path or self.store.resolve_error(path)
            message = f"Visual Regression: Screen differs by {mismatch}% (see: {shown})"
            reason = VerdictReason.MISMATCH
            logger.warning("Visual regression in %s: %s%% >= %s%%", path, mismatch, tolerance)

        return Verdict(
            passed=passed,
            mismatch_percent=mismatch,
            reason=reason,
            message=message,
            relative_path=str(path),
            diff_path=str(diff_path) if diff_path else None,
            error_path=str(error_path) if error_path else None,
            warnings=warnings,
        )

    def evaluate_file(self, key: ScreenshotKey, image_path: str | Path) -> Verdict:
        return self.evaluate(key, Path(image_path).read_bytes())

    async def evaluate_async(self, key: ScreenshotKey, current: bytes) -> Verdict:
        """Run ``evaluate`` in a worker thread so the event loop stays free."""
        return await asyncio.to_thread(self.evaluate, key, current)

    def _artifact_step(self, warnings: list[str], action: Callable[..., T], *args) -> T | None:
        try:
            return action(*args)
        except ArtifactIOError as e:
            self._record(warnings, e)
            return None

    def _record(self, warnings: list[str], error: ArtifactIOError) -> None:
        if not self.config.swallow_artifact_errors:
            raise error
        logger.warning("Artifact I/O failed: %s", error)
        warnings.append(str(error))
