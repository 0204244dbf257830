"""Strip desktop-tool specific tags from source annotations via ExifTool."""

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from exiftool import ExifToolHelper  # type: ignore[attr-defined]
from exiftool.exceptions import ExifToolException

logger = logging.getLogger(__name__)


class TagStripError(RuntimeError):
    """The tag-stripping tool failed; no output was produced."""


class TagStripper(Protocol):
    """Copy an annotation to ``destination`` without proprietary tags."""

    def strip_and_copy(self, source: Path, destination: Path) -> None: ...


def build_strip_args(
    source: Path, destination: Path, stripped_groups: Sequence[str]
) -> list[str]:
    """ExifTool arguments that rebuild ``source`` into ``destination``.

    All tags are cleared first and then copied back from the source file
    (``@``), leaving out the stripped groups.
    """
    args = ["-all=", "-tagsFromFile", "@", "-all:all"]
    args.extend(f"--{group}:all" for group in stripped_groups)
    args.extend(["-o", str(destination), str(source)])
    return args


class ExifToolTagStripper:
    """TagStripper backed by the ExifTool binary through PyExifTool."""

    def __init__(self, executable: str = "exiftool", stripped_groups: Sequence[str] = ()) -> None:
        self.executable = executable
        self.stripped_groups = tuple(stripped_groups)

    def strip_and_copy(self, source: Path, destination: Path) -> None:
        args = build_strip_args(source, destination, self.stripped_groups)
        logger.debug("exiftool %s", " ".join(args))
        try:
            with ExifToolHelper(executable=self.executable) as et:
                et.execute(*args)
        except ExifToolException as exc:
            raise TagStripError(f"ExifTool failed for {source}: {exc}") from exc
        if not destination.exists():
            raise TagStripError(f"ExifTool produced no output for {source}")
