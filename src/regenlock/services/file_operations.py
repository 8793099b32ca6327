"""File emission for export artifacts.

Artifacts are written with the temp-file-rename pattern so a reader never
sees a half-written file, even when an export run is interrupted.
"""

import os
import re
from pathlib import Path
from typing import Protocol, Union

import structlog

logger = structlog.get_logger()


def atomic_write(path: Path, content: Union[str, bytes]) -> None:
    """
    Atomically write content to file with temp-file-rename pattern.

    1. Write to a temporary file in the target directory
    2. fsync to ensure data is on disk
    3. Atomic rename to replace the target

    Args:
        path: Target file path
        content: Text (written as UTF-8) or raw bytes

    Raises:
        OSError: On file I/O errors
        PermissionError: On permission errors
    """
    temp_path = path.parent / f".{path.name}.tmp.{os.getpid()}"
    data = content.encode("utf-8") if isinstance(content, str) else content

    try:
        with open(temp_path, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())

        # On POSIX systems, this is atomic even if target exists
        temp_path.replace(path)

        logger.debug("atomic_write_success", path=str(path), size=len(data))

    except Exception as e:
        if temp_path.exists():
            temp_path.unlink()
        logger.error("atomic_write_failed", path=str(path), error=str(e))
        raise


def safe_filename_base(value: str, fallback: str = "item", max_length: int = 60) -> str:
    """Lowercase, hyphen-separated, filesystem-safe name ('Sunset Logo!' -> 'sunset-logo')."""
    normalized = re.sub(r"[^a-z0-9]+", "-", (value or "").strip().lower()).strip("-")
    return normalized[:max_length].rstrip("-") or fallback


class ArtifactEmitter(Protocol):
    """Anything that can turn a filename and content into a downloadable artifact."""

    def emit(self, filename: str, content: Union[str, bytes]) -> Path:
        ...


class DirectoryEmitter:
    """Emit artifacts as files in one output directory."""

    def __init__(self, out_dir: Path):
        self.out_dir = Path(out_dir)

    def emit(self, filename: str, content: Union[str, bytes]) -> Path:
        """
        Write one artifact.

        Args:
            filename: Bare file name (no directories)
            content: Text or bytes

        Returns:
            Path of the written file

        Raises:
            ValueError: If filename contains a path separator
            OSError: On file I/O errors
        """
        if Path(filename).name != filename:
            raise ValueError(f"Artifact filename must not contain directories: {filename}")
        self.out_dir.mkdir(parents=True, exist_ok=True)
        path = self.out_dir / filename
        atomic_write(path, content)
        return path
