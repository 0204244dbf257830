"""Fetch asset detail from the catalog and map it onto AssetRecord."""

import logging
from datetime import datetime
from typing import Any

from photo_sidecar_sync.catalog.client import CatalogClient
from photo_sidecar_sync.models import AssetRecord, FaceAnnotation

logger = logging.getLogger(__name__)

BOX_KEYS = ("boundingBoxX1", "boundingBoxY1", "boundingBoxX2", "boundingBoxY2")


class MetadataExtractor:
    """Fetch descriptive metadata for a resolved asset."""

    def __init__(self, client: CatalogClient) -> None:
        self.client = client

    def extract(self, asset_id: str) -> AssetRecord:
        """Fetch and parse one asset.

        Raises:
            CatalogError: transport failure or unknown asset id
                (``AssetNotFoundError`` for the latter).
        """
        return parse_asset(self.client.get_asset(asset_id))


def parse_asset(data: dict) -> AssetRecord:
    """Convert an asset detail payload into an AssetRecord.

    Missing optional fields become None; they are never an error.
    """
    exif = data.get("exifInfo") or {}
    return AssetRecord(
        id=str(data["id"]),
        checksum=data.get("checksum"),
        captured_at=_parse_datetime(exif.get("dateTimeOriginal")),
        latitude=_optional_float(exif.get("latitude")),
        longitude=_optional_float(exif.get("longitude")),
        make=_optional_text(exif.get("make")),
        model=_optional_text(exif.get("model")),
        width=_optional_int(exif.get("exifImageWidth")),
        height=_optional_int(exif.get("exifImageHeight")),
        orientation=parse_orientation(exif.get("orientation")),
        is_favorite=bool(data.get("isFavorite", False)),
        description=_optional_text(exif.get("description")),
        original_file_name=_optional_text(data.get("originalFileName")),
        faces=tuple(_parse_faces(data.get("people") or [])),
    )


def parse_orientation(value: Any) -> int | None:
    """Parse an EXIF orientation code; anything outside 1-8 is None."""
    code = _optional_int(value)
    if code is None or not 1 <= code <= 8:
        return None
    return code


def _parse_faces(people: list[dict]) -> list[FaceAnnotation]:
    faces: list[FaceAnnotation] = []
    for person in people:
        name = (person.get("name") or "").strip()
        if not name:
            # Unnamed clusters carry no subject to tag
            continue
        for face in person.get("faces") or []:
            coords = [_optional_float(face.get(key)) for key in BOX_KEYS]
            if any(c is None for c in coords):
                logger.debug("Dropping face of %s without a complete box: %s", name, face)
                continue
            x1, y1, x2, y2 = coords
            faces.append(
                FaceAnnotation(
                    name=name,
                    x1=x1,
                    y1=y1,
                    x2=x2,
                    y2=y2,
                    image_width=_optional_int(face.get("imageWidth")),
                    image_height=_optional_int(face.get("imageHeight")),
                )
            )
    return faces


def _parse_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        logger.debug("Ignoring unparseable timestamp %r", value)
        return None


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _optional_int(value: Any) -> int | None:
    number = _optional_float(value)
    return None if number is None else int(number)
