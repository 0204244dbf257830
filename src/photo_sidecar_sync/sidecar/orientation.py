"""Convert pixel face boxes into orientation-corrected unit-square regions."""

import logging
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from photo_sidecar_sync.models import AssetRecord, FaceAnnotation, NormalizedFaceRegion

logger = logging.getLogger(__name__)

EXIF_ORIENTATION_TAG = 0x0112

ROTATED = frozenset({5, 6, 7, 8})  # 90/270 degrees, 5 and 7 also mirrored
ROTATED_MIRRORED = frozenset({5, 7})
HALF_TURN = frozenset({3, 4})
MIRRORED = frozenset({2, 4})


def normalize_face(
    face: FaceAnnotation,
    orientation: int | None,
    fallback_size: tuple[int | None, int | None] = (None, None),
) -> NormalizedFaceRegion | None:
    """Transform one face box into display-orientation unit-square coordinates.

    The box is normalized against the pixel size reported with the face;
    ``fallback_size`` is used only when that size is missing. Returns None when
    no usable size is known. Results are not clamped to [0, 1].
    """
    image_width = face.image_width or fallback_size[0]
    image_height = face.image_height or fallback_size[1]
    if not image_width or not image_height or image_width <= 0 or image_height <= 0:
        logger.warning("No usable image size for face of %s, dropping it", face.name)
        return None

    w = face.x2 - face.x1
    h = face.y2 - face.y1
    cx = face.x1 + w / 2
    cy = face.y1 + h / 2

    x = cx / image_width
    y = cy / image_height
    w = w / image_width
    h = h / image_height

    if orientation in ROTATED:
        x, y, w, h = y, 1 - x, h, w
        if orientation in ROTATED_MIRRORED:
            x = 1 - x
    if orientation in HALF_TURN:
        x, y = 1 - x, 1 - y
    if orientation in MIRRORED:
        x = 1 - x

    region = NormalizedFaceRegion(name=face.name, x=x, y=y, w=w, h=h)
    if not all(0.0 <= v <= 1.0 for v in (x, y, w, h)):
        logger.warning("Face region of %s lies outside the image: %s", face.name, region)
    return region


def transform_faces(
    asset: AssetRecord, orientation: int | None = None
) -> list[NormalizedFaceRegion]:
    """Normalize every face of an asset; ``orientation`` overrides the asset's code."""
    code = orientation if orientation is not None else asset.orientation
    regions = []
    for face in asset.faces:
        region = normalize_face(face, code, (asset.width, asset.height))
        if region is not None:
            regions.append(region)
    return regions


def read_local_orientation(path: Path) -> int:
    """Read the EXIF orientation of a local image, defaulting to 1."""
    try:
        with Image.open(path) as img:
            value = img.getexif().get(EXIF_ORIENTATION_TAG)
    except (OSError, UnidentifiedImageError):
        return 1
    if isinstance(value, int) and 1 <= value <= 8:
        return value
    return 1
