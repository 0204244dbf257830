"""Local filesystem helpers shared by the sync engines."""

import os
import uuid
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

SIDECAR_SUFFIX = ".xmp"


def iter_files(root: Path) -> Iterator[Path]:
    """Yield every regular, non-hidden file below ``root`` in a stable order."""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        for fname in sorted(filenames):
            if fname.startswith("."):
                continue
            yield Path(dirpath) / fname


def is_image(path: Path, image_extensions: frozenset[str]) -> bool:
    return path.suffix.lower() in image_extensions


def is_sidecar(path: Path, image_extensions: frozenset[str]) -> bool:
    """True for ``<name><image ext>.xmp`` files, i.e. sidecars written by this tool."""
    return path.suffix.lower() == SIDECAR_SUFFIX and is_image(Path(path.stem), image_extensions)


def is_source_annotation(path: Path, image_extensions: frozenset[str]) -> bool:
    """True for ``<stem>.xmp`` files written by the desktop cataloging tool."""
    return path.suffix.lower() == SIDECAR_SUFFIX and not is_sidecar(path, image_extensions)


def base_path(path: Path, image_extensions: frozenset[str]) -> Path:
    """Directory plus filename stem shared by an image, its annotation and its sidecar.

    Examples:
        a/IMG_1.JPG -> a/IMG_1
        a/IMG_1.xmp -> a/IMG_1
        a/IMG_1.JPG.xmp -> a/IMG_1
    """
    if is_sidecar(path, image_extensions):
        return path.with_name(Path(path.stem).stem)
    return path.with_name(path.stem)


def temp_path_for(target: Path) -> Path:
    """A hidden, unique path next to ``target`` that keeps its suffix."""
    return target.with_name(f".{target.stem}.{uuid.uuid4().hex[:8]}.tmp{target.suffix}")


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.2, max=2),
    retry=retry_if_exception_type(PermissionError),
    reraise=True,
)
def replace_into_place(source: Path, target: Path) -> None:
    """Atomically move ``source`` over ``target``, retrying briefly on locked files."""
    os.replace(source, target)


def file_created_at(path: Path) -> datetime:
    """Creation time of a file as an aware UTC datetime.

    Uses the birth time where the platform reports one, else ``st_ctime``.
    On Linux that is the inode change time, which is never earlier than the
    moment the file arrived, even when a copy kept an older mtime.
    """
    st = path.stat()
    timestamp = getattr(st, "st_birthtime", None)
    if timestamp is None:
        timestamp = st.st_ctime
    return datetime.fromtimestamp(timestamp, UTC)
