"""Configuration model for visual regression checks."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


class VisualRegressionConfig(BaseModel):
    """Settings shared by every component of one evaluation run.

    Loaded once at startup and never mutated afterwards.
    """

    model_config = ConfigDict(frozen=True)

    # Baseline screenshots stored here
    baseline_folder: Path = Path("screenshots/baseline")
    # Screenshots (and diffs) for the current run stored here
    current_folder: Path = Path("screenshots/new")
    # Diffs of screenshots failing comparison stored here
    error_folder: Path = Path("screenshots/failures")

    # Used when no selector is given
    default_selector: str = "body"
    # Masked out of every capture
    censor_selectors: list[str] = Field(default_factory=list)

    # Percent of differing pixels at which a check fails
    mismatch_tolerance: float = 0.3

    # Comparator tuning
    pixel_tolerance: int = 32
    ignore_antialiasing: bool = True

    # Artifact write failures become warnings instead of errors
    swallow_artifact_errors: bool = True

    enabled: bool = True

    @field_validator("mismatch_tolerance")
    @classmethod
    def check_tolerance_range(cls, v: float) -> float:
        if not 0 <= v <= 100:
            raise ValueError(f"mismatch_tolerance must be between 0 and 100, got {v}")
        return v

    @field_validator("pixel_tolerance")
    @classmethod
    def check_pixel_tolerance_range(cls, v: int) -> int:
        if not 0 <= v <= 255:
            raise ValueError(f"pixel_tolerance must be between 0 and 255, got {v}")
        return v

    @field_validator("default_selector")
    @classmethod
    def check_default_selector(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("default_selector must not be empty")
        return v

    @classmethod
    def load(cls, path: str | Path) -> "VisualRegressionConfig":
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
            json.dump(self.model_dump(mode="json"), f, indent=2)
