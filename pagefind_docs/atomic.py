"""Write-to-temp-then-rename helpers for the shared snapshot file.

Readers of the destination only ever see the previous complete file or the
new complete file.
"""

from __future__ import annotations

import os
import shutil
import uuid
from pathlib import Path
from typing import Callable, Union

PathLike = Union[str, Path]


def temp_path_for(destination: PathLike) -> Path:
    """Return a unique hidden temp path next to *destination*."""
    dest = Path(destination)
    return dest.with_name(f".{dest.name}.tmp.{os.getpid()}.{uuid.uuid4().hex}")


def _fsync(path: Path) -> None:
    try:
        with open(path, "rb") as fh:
            os.fsync(fh.fileno())
    except OSError:
        # Some filesystems do not support fsync on read-only handles.
        pass


def atomic_replace(destination: PathLike, produce: Callable[[Path], None]) -> int:
    """Call ``produce(tmp_path)`` then rename the temp file over *destination*.

    Returns:
        Size of the new destination file in bytes.
    """
    dest = Path(destination)
    dest.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = temp_path_for(dest)
    try:
        produce(tmp_path)
        _fsync(tmp_path)
        os.replace(tmp_path, dest)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    return dest.stat().st_size


def atomic_write_bytes(destination: PathLike, data: bytes) -> int:
    return atomic_replace(destination, lambda tmp: tmp.write_bytes(data))


def atomic_copy(source: PathLike, destination: PathLike) -> int:
    return atomic_replace(destination, lambda tmp: shutil.copyfile(source, tmp))
