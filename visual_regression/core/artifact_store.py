"""Artifact store — baseline, current, diff and error files on disk."""

from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path, PurePosixPath

from visual_regression.core.naming import diff_name
from visual_regression.errors import ArtifactIOError
from visual_regression.models.config import VisualRegressionConfig
from visual_regression.models.screenshot import BaselineStatus

logger = logging.getLogger(__name__)


def atomic_write(dest: Path, data: bytes) -> None:
    """Write bytes to a sibling temp file, then rename it over ``dest``.

    The temp file is created with mode 0o666 filtered by the process umask,
    the same mode a plain ``open(dest, "wb")`` would give.
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    tmp_name = dest.parent / f".{dest.name}.{uuid.uuid4().hex[:8]}.tmp"
    fd = os.open(tmp_name, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o666)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, dest)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


class ArtifactStore:
    """Resolves and manages the three parallel artifact trees.

    Every tree uses the same relative path. The current tree also holds the
    ``.diff`` images; the error tree holds ``.diff`` images of failing keys only.
    """

    def __init__(self, config: VisualRegressionConfig):
        self.baseline_folder = Path(config.baseline_folder)
        self.current_folder = Path(config.current_folder)
        self.error_folder = Path(config.error_folder)

    def resolve_baseline(self, path: PurePosixPath | str) -> Path:
        return self.baseline_folder / path

    def resolve_current(self, path: PurePosixPath | str) -> Path:
        return self.current_folder / path

    def resolve_diff(self, path: PurePosixPath | str) -> Path:
        return self.current_folder / diff_name(path)

    def resolve_error(self, path: PurePosixPath | str) -> Path:
        return self.error_folder / diff_name(path)

    def write_current(self, path: PurePosixPath | str, image: bytes) -> Path:
        """Persist a freshly captured screenshot into the current tree."""
        dest = self.resolve_current(path)
        self._write(dest, image, "current screenshot")
        return dest

    def ensure_baseline_exists(self, path: PurePosixPath | str, current: Path | bytes) -> BaselineStatus:
        """Seed the baseline from ``current`` when none exists yet.

        ``current`` is either the current screenshot file or its bytes.
        """
        dest = self.resolve_baseline(path)
        if dest.is_file():
            return BaselineStatus(existed=True, path=str(dest))

        if isinstance(current, Path):
            try:
                current = current.read_bytes()
            except OSError as e:
                raise ArtifactIOError(
                    "Failed to read current screenshot", {"path": current, "error": e}
                ) from e
        self._write(dest, current, "baseline")
        logger.info("Baseline missing, seeded new baseline at %s", dest)
        return BaselineStatus(existed=False, path=str(dest))

    def read_baseline(self, path: PurePosixPath | str) -> bytes:
        src = self.resolve_baseline(path)
        try:
            return src.read_bytes()
        except OSError as e:
            raise ArtifactIOError("Failed to read baseline", {"path": src, "error": e}) from e

    def write_diff_artifact(self, path: PurePosixPath | str, diff_image: bytes) -> Path:
        dest = self.resolve_diff(path)
        self._write(dest, diff_image, "diff image")
        logger.debug("Wrote diff image %s", dest)
        return dest

    def promote_to_error(self, path: PurePosixPath | str, diff_image: bytes) -> Path:
        dest = self.resolve_error(path)
        self._write(dest, diff_image, "error artifact")
        logger.debug("Wrote error artifact %s", dest)
        return dest

    def clear_stale_error(self, path: PurePosixPath | str) -> bool:
        """Remove a previous error artifact for this key. Returns True if one existed."""
        dest = self.resolve_error(path)
        try:
            dest.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise ArtifactIOError("Failed to remove stale error artifact", {"path": dest, "error": e}) from e
        logger.debug("Removed stale error artifact %s", dest)
        return True

    def approve(self, path: PurePosixPath | str) -> Path:
        """Accept the current screenshot as the new baseline for this key."""
        source = self.resolve_current(path)
        if not source.is_file():
            raise FileNotFoundError(f"No current screenshot at {source}")
        dest = self.resolve_baseline(path)
        self._write(dest, source.read_bytes(), "baseline")
        self.clear_stale_error(path)
        logger.info("Approved %s as new baseline", path)
        return dest

    def list_errors(self) -> list[PurePosixPath]:
        """Relative paths (screenshot names, not diff names) of all failing keys."""
        if not self.error_folder.exists():
            return []
        paths = []
        for diff_file in sorted(self.error_folder.rglob("*.diff.png")):
            rel = PurePosixPath(diff_file.relative_to(self.error_folder).as_posix())
            paths.append(rel.with_name(rel.name.replace(".diff.png", ".png")))
        return paths

    def _write(self, dest: Path, data: bytes, what: str) -> None:
        try:
            atomic_write(dest, data)
        except OSError as e:
            raise ArtifactIOError(f"Failed to write {what}", {"path": dest, "error": e}) from e
