"""Resolve local files to catalog assets by content checksum."""

import hashlib
import logging
from pathlib import Path

from photo_sidecar_sync.catalog.client import CatalogClient

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def compute_checksum(path: Path) -> str:
    """Return the hex SHA-1 digest of a file, which is what the catalog indexes."""
    digest = hashlib.sha1()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def device_asset_id(path: Path) -> str:
    """Synthetic per-device asset id: ``<file name>-<file size>``."""
    return f"{path.name}-{path.stat().st_size}"


class ChecksumResolver:
    """Look up the catalog asset matching a local file's content."""

    def __init__(self, client: CatalogClient, device_id: str) -> None:
        self.client = client
        self.device_id = device_id

    def resolve(self, path: Path) -> str | None:
        """Return the matching asset id, or None when the catalog has no such file.

        Raises:
            OSError: the file cannot be read.
            CatalogError: the catalog could not be reached or answered garbage.
        """
        checksum = compute_checksum(path)
        result = self.client.bulk_check(checksum, device_asset_id(path), self.device_id)
        logger.debug("Checksum %s for %s -> %s", checksum, path, result.asset_id)
        return result.asset_id
