"""Artifact naming — maps a ScreenshotKey to a stable relative path."""

from __future__ import annotations

import re
from pathlib import PurePosixPath

from visual_regression.models.config import VisualRegressionConfig
from visual_regression.models.screenshot import ScreenshotKey, Selector

_NON_WORD = re.compile(r"\W+")
_EXTENSION = re.compile(r"(\.[a-zA-Z0-9]+)$")


def sanitize(text: str) -> str:
    """Replace every run of non-word characters with a single underscore."""
    return _NON_WORD.sub("_", text)


def diff_name(path: PurePosixPath | str) -> PurePosixPath:
    """Insert ``.diff`` before the final extension: ``foo.png`` -> ``foo.diff.png``."""
    path = PurePosixPath(path)
    name, count = _EXTENSION.subn(r".diff\1", path.name)
    if not count:
        name = f"{path.name}.diff"
    return path.with_name(name)


class NamingStrategy:
    """Builds artifact paths relative to the baseline/current/error roots."""

    def __init__(self, config: VisualRegressionConfig):
        self.config = config

    def selector_text(self, selector: Selector | None) -> str:
        if selector is None or not selector.css.strip():
            return self.config.default_selector
        return selector.css

    def build_path(self, key: ScreenshotKey) -> PurePosixPath:
        # Separate the screenshots by client and viewport
        client = "_".join([key.browser_name, key.browser_version, key.platform])
        directory = PurePosixPath(key.test_module, client, f"{key.width}x{key.height}")

        filename = key.test_step
        selector = self.selector_text(key.selector)
        if selector:
            filename += "__" + sanitize(selector)
        if key.label:
            filename += "--" + key.label
        return directory / f"{filename}.png"
