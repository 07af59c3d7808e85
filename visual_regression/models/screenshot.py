"""Screenshot identity and comparison result data structures."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class SimpleSelector(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["simple"] = "simple"
    value: str

    @property
    def css(self) -> str:
        return self.value


class CompositeSelector(BaseModel):
    """Selector fragments ordered from the outermost ancestor to the element."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["composite"] = "composite"
    fragments: tuple[str, ...]

    @property
    def css(self) -> str:
        return " ".join(self.fragments)


Selector = Union[SimpleSelector, CompositeSelector]


def coerce_selector(raw: Any) -> Selector | None:
    """Normalize the accepted selector shapes into a Selector.

    Accepts None, a CSS string, a Selector, or a sequence whose items are
    strings, dicts with a ``selector`` key, or objects with a ``selector``
    attribute (page-object sections, outermost first). Empty input gives None.
    """
    if raw is None:
        return None
    if isinstance(raw, (SimpleSelector, CompositeSelector)):
        return raw
    if isinstance(raw, str):
        return SimpleSelector(value=raw) if raw.strip() else None

    fragments = []
    for item in raw:
        if isinstance(item, str):
            fragment = item
        elif isinstance(item, dict):
            fragment = item.get("selector") or ""
        else:
            fragment = getattr(item, "selector", "") or ""
        if fragment.strip():
            fragments.append(fragment.strip())
    if not fragments:
        return None
    return CompositeSelector(fragments=tuple(fragments))


class ScreenshotKey(BaseModel):
    """Identity a screenshot is filed under."""

    model_config = ConfigDict(frozen=True)

    test_module: str
    test_step: str
    browser_name: str
    browser_version: str
    platform: str
    width: int
    height: int
    selector: Optional[Selector] = None
    label: Optional[str] = None

    @field_validator("test_module", "test_step", "browser_name", "browser_version", "platform", "label")
    @classmethod
    def check_path_segment(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        # these become directory and file names under the artifact roots
        if not v and info.field_name == "label":
            return v
        if v in (None, "", ".", "..") or any(c in v for c in "/\\\0"):
            raise ValueError(f"must be a single path segment, got {v!r}")
        return v


class BaselineStatus(BaseModel):
    existed: bool
    path: str


class ComparisonResult(BaseModel):
    mismatch_percent: float
    diff_image: bytes  # PNG
    width: int
    height: int
    differing_pixels: int = 0


class VerdictReason(str, Enum):
    BASELINE_CREATED = "baseline_created"
    WITHIN_TOLERANCE = "within_tolerance"
    MISMATCH = "mismatch"
    DIMENSION_MISMATCH = "dimension_mismatch"


class Verdict(BaseModel):
    """Outcome of one baseline comparison."""
    mismatch_percent: float = 0.0
    passed: bool
    message: str = ""
    reason: VerdictReason
    relative_path: str
    diff_path: Optional[str] = None
    error_path: Optional[str] = None
    baseline_missing: bool = False
    warnings: list[str] = Field(default_factory=list)
