"""
Temporary Staging.

Copies streams into a local scratch directory. Every staged file and scratch
directory is a scoped resource: it is deleted when its `with` block exits,
unless ownership was explicitly released to the caller.
"""

import logging
import os
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Generator, List, Optional, Union

from datafiles.ingestion.errors import StagingError, StagingLimitExceeded

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class StagedFile:
    """
    Handle to a fully written file in scratch storage.

    Used as a context manager, the file is deleted on exit unless `release()`
    was called, which hands ownership (and the duty to delete it) to the
    caller.
    """

    def __init__(self, path: Path, size: int):
        self.path = Path(path)
        self.size = size
        self._owned = True

    def __repr__(self):
        return f"StagedFile(path='{self.path}', size={self.size})"

    def __enter__(self) -> "StagedFile":
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._owned:
            self.discard()
        return False

    @property
    def owned(self) -> bool:
        return self._owned

    def release(self) -> Path:
        self._owned = False
        return self.path

    def discard(self) -> None:
        self._owned = False
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove temp file {self.path.name}: {e}")


class StagedBatch:
    """Group of staged files that are all discarded unless released together."""

    def __init__(self):
        self._files: List[StagedFile] = []

    def __enter__(self) -> "StagedBatch":
        return self

    def __exit__(self, exc_type, exc, tb):
        for staged in self._files:
            if staged.owned:
                staged.discard()
        return False

    def __len__(self):
        return len(self._files)

    def add(self, staged: StagedFile) -> StagedFile:
        self._files.append(staged)
        return staged

    def release_all(self) -> None:
        for staged in self._files:
            staged.release()


def _check_scratch_dir(scratch_dir: Optional[Union[str, Path]]) -> Path:
    if scratch_dir is None:
        raise StagingError("Temp directory is not configured.")
    scratch_dir = Path(scratch_dir)
    if not scratch_dir.is_dir():
        raise StagingError(f"Temp directory {scratch_dir} does not exist.")
    return scratch_dir


def copy_stream(
    stream: BinaryIO,
    out: BinaryIO,
    max_bytes: Optional[int] = None,
) -> int:
    """
    Copy `stream` into `out` chunk by chunk.

    Raises StagingLimitExceeded as soon as more than `max_bytes` bytes have
    been read, so oversized (or maliciously compressed) input is never fully
    written out.
    """
    written = 0
    while True:
        chunk = stream.read(CHUNK_SIZE)
        if not chunk:
            return written
        written += len(chunk)
        if max_bytes is not None and written > max_bytes:
            raise StagingLimitExceeded(written, max_bytes)
        out.write(chunk)


def stage(
    stream: BinaryIO,
    scratch_dir: Optional[Union[str, Path]],
    max_bytes: Optional[int] = None,
) -> StagedFile:
    """
    Save a stream as a new file in the scratch directory.

    Raises:
        StagingError: scratch directory unconfigured/missing, or the copy
            failed (disk exhaustion, I/O error). No partial file is left.
        StagingLimitExceeded: the stream is longer than `max_bytes`. No
            partial file is left.
    """
    scratch_dir = _check_scratch_dir(scratch_dir)
    try:
        fd, name = tempfile.mkstemp(prefix="tmp", suffix="upload", dir=scratch_dir)
    except OSError as e:
        raise StagingError(
            f"Failed to create a temp file in {scratch_dir}: {e}") from e

    path = Path(name)
    logger.debug(f"Will attempt to save the file as: {path}")
    try:
        with os.fdopen(fd, "wb") as out:
            size = copy_stream(stream, out, max_bytes)
    except StagingLimitExceeded:
        path.unlink(missing_ok=True)
        raise
    except OSError as e:
        path.unlink(missing_ok=True)
        raise StagingError(
            f"Failed to save the upload as a temp file (temp disk space?): {e}"
        ) from e
    except BaseException:
        path.unlink(missing_ok=True)
        raise

    return StagedFile(path, size)


def adopt(path: Path, scratch_dir: Union[str, Path]) -> StagedFile:
    """Move an existing file (on the same filesystem) into scratch storage."""
    scratch_dir = _check_scratch_dir(scratch_dir)
    fd, name = tempfile.mkstemp(prefix="tmp", suffix="upload", dir=scratch_dir)
    os.close(fd)
    target = Path(name)
    try:
        os.replace(path, target)
    except OSError:
        target.unlink(missing_ok=True)
        raise
    return StagedFile(target, target.stat().st_size)


@contextmanager
def scratch_directory(
    scratch_dir: Optional[Union[str, Path]],
    prefix: str = "ingest_",
) -> Generator[Path, None, None]:
    """Temporary directory inside the scratch area, removed on every exit path."""
    root = _check_scratch_dir(scratch_dir)
    temp_dir = Path(tempfile.mkdtemp(prefix=prefix, dir=root))
    try:
        yield temp_dir
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)
        if temp_dir.exists():
            logger.warning(f"Could not remove temp dir: {temp_dir}")
        else:
            logger.debug(f"Cleaned up temp dir: {temp_dir}")
