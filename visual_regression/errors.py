"""Exceptions raised by the visual regression pipeline."""

from __future__ import annotations


class VisualRegressionError(Exception):
    """Base exception for visual regression failures."""

    def __init__(self, message: str, context: dict | None = None):
        self.message = message
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if not self.context:
            return self.message
        context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} [{context_str}]"


class DimensionMismatch(VisualRegressionError):
    """Raised when the current image and the baseline differ in size."""

    def __init__(self, current_size: tuple[int, int], baseline_size: tuple[int, int]):
        self.current_size = current_size
        self.baseline_size = baseline_size
        super().__init__(
            "Image dimensions differ",
            {
                "current": f"{current_size[0]}x{current_size[1]}",
                "baseline": f"{baseline_size[0]}x{baseline_size[1]}",
            },
        )


class ImageDecodeError(VisualRegressionError):
    """Raised when image bytes cannot be decoded."""


class ArtifactIOError(VisualRegressionError):
    """Raised when a diff, error or baseline artifact cannot be written or removed."""


class DriverIOError(VisualRegressionError):
    """Raised when the browser cannot supply geometry or a screenshot."""
