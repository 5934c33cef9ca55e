"""Temporary artifact management: unique scratch paths, scoped deletion, retrying cleanup."""
import logging
import re
import shutil
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union

from convertors.conversion.retry import DELETE_RETRY, RetryPolicy

logger = logging.getLogger("converter.scratch")

PathLike = Union[str, Path]


def sanitize_filename(name: str) -> str:
    """Keep [A-Za-z0-9-_.], max 100 chars. Falls back to 'file'."""
    s = re.sub(r"\s+", "_", name or "")
    s = re.sub(r"[^a-zA-Z0-9\-_.]", "", s)
    return s[:100] or "file"


def unique_name(stem: str, extension: str) -> str:
    """<stem>_<millis>_<token>.<ext>; unique across concurrent requests sharing a directory."""
    ext = extension.lstrip(".").lower()
    return f"{sanitize_filename(stem)}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}.{ext}"


def output_path_for(directory: Path, original_name: str, extension: str) -> Path:
    return Path(directory) / unique_name(Path(original_name or "").stem, extension)


class ScratchManager:
    """Owns the scratch directory. Intermediates never leave it and are always removed."""

    def __init__(self, scratch_dir: Path, retry: RetryPolicy = DELETE_RETRY):
        self.scratch_dir = Path(scratch_dir)
        self.retry = retry
        self.scratch_dir.mkdir(parents=True, exist_ok=True)

    def allocate(self, prefix: str, extension: str) -> Path:
        return self.scratch_dir / unique_name(prefix, extension)

    @contextmanager
    def with_scratch(self, prefix: str, extension: str) -> Iterator[Path]:
        """Yield a unique scratch file path; the file is deleted on exit, success or not."""
        path = self.allocate(prefix, extension)
        try:
            yield path
        finally:
            self.cleanup([path])

    @contextmanager
    def scratch_dir_scope(self, prefix: str) -> Iterator[Path]:
        """Private scratch directory, removed with its contents on exit."""
        path = self.scratch_dir / f"{sanitize_filename(prefix)}_{uuid.uuid4().hex}"
        path.mkdir(parents=True)
        try:
            yield path
        finally:
            self.cleanup([path])

    def cleanup(self, paths: Iterable[Optional[PathLike]]) -> list[Path]:
        """Best-effort delete. Missing paths count as deleted. Returns the paths that leaked."""
        return cleanup_files(paths, self.retry)


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
        logger.debug("Deleted directory: %s", path)
        return
    try:
        path.unlink()
    except FileNotFoundError:
        logger.debug("File not found for deletion: %s", path)
        return
    logger.debug("Deleted file: %s", path)


def cleanup_files(paths: Iterable[Optional[PathLike]], retry: RetryPolicy = DELETE_RETRY) -> list[Path]:
    """Delete paths with bounded retry on PermissionError. Never raises; returns leaked paths."""
    leaked: list[Path] = []
    for p in paths:
        if p is None:
            continue
        path = Path(p)
        try:
            retry.call(lambda: _remove(path), description=f"delete {path.name}")
        except PermissionError as e:
            logger.error("Failed to delete %s after %s attempts: %s", path, retry.max_attempts, e)
            leaked.append(path)
        except OSError as e:
            logger.error("Error deleting %s: %s", path, e)
            leaked.append(path)
    return leaked
