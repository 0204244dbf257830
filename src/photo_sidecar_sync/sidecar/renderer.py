"""Render catalog metadata into XMP sidecar documents."""

import logging
from datetime import datetime
from pathlib import Path
from xml.etree import ElementTree as ET

from photo_sidecar_sync.files import replace_into_place, temp_path_for
from photo_sidecar_sync.models import AssetRecord, NormalizedFaceRegion
from photo_sidecar_sync.sidecar.orientation import ROTATED

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
TOOLKIT = f"photo-sidecar-sync (schema {SCHEMA_VERSION})"

FAVORITE_RATING = 5
REGION_TYPE = "Face"
REGION_DESCRIPTION = "Catalog face region"

NAMESPACES = {
    "x": "adobe:ns:meta/",
    "rdf": "http://www.w3.org/1999/02/22-rdf-syntax-ns#",
    "dc": "http://purl.org/dc/elements/1.1/",
    "xmp": "http://ns.adobe.com/xap/1.0/",
    "exif": "http://ns.adobe.com/exif/1.0/",
    "tiff": "http://ns.adobe.com/tiff/1.0/",
    "photoshop": "http://ns.adobe.com/photoshop/1.0/",
    "mwg-rs": "http://www.metadataworkinggroup.com/schemas/regions/",
    "stArea": "http://ns.adobe.com/xmp/sType/Area#",
    "stDim": "http://ns.adobe.com/xap/1.0/sType/Dimensions#",
}
XML_LANG = "{http://www.w3.org/XML/1998/namespace}lang"

PACKET_HEADER = '<?xpacket begin="\ufeff" id="W5M0MpCehiHzreSzNTczkc9d"?>'
PACKET_FOOTER = '<?xpacket end="w"?>'


def _tag(prefix: str, name: str) -> str:
    return f"{{{NAMESPACES[prefix]}}}{name}"


def format_gps(value: float, positive: str, negative: str) -> str:
    """Format a decimal coordinate as XMP ``DDD,MM.mmmmmmK``.

    Examples:
        52.5, "N", "S" -> '52,30.000000N'
        -0.1275, "E", "W" -> '0,7.650000W'
    """
    ref = positive if value >= 0 else negative
    magnitude = abs(value)
    degrees = int(magnitude)
    minutes = round((magnitude - degrees) * 60, 6)
    if minutes >= 60:
        degrees += 1
        minutes = 0.0
    return f"{degrees},{minutes:.6f}{ref}"


def format_datetime(value: datetime) -> str:
    return value.isoformat(timespec="seconds")


def _format_unit(value: float) -> str:
    return f"{value:.6f}"


def display_dimensions(asset: AssetRecord, orientation: int | None) -> tuple[int, int] | None:
    """Pixel size of the image as displayed; width and height swap for 90/270 turns."""
    if not asset.width or not asset.height:
        return None
    if orientation in ROTATED:
        return asset.height, asset.width
    return asset.width, asset.height


class SidecarRenderer:
    """Serialize asset metadata and face regions into an XMP packet.

    Rendering is pure; use :func:`write_sidecar` to put the result on disk.
    """

    def __init__(self) -> None:
        for prefix, uri in NAMESPACES.items():
            ET.register_namespace(prefix, uri)

    def render(
        self,
        asset: AssetRecord,
        regions: list[NormalizedFaceRegion],
        title: str,
        fallback_created_at: datetime | None = None,
        orientation: int | None = None,
    ) -> str:
        """Render the sidecar document.

        Args:
            asset: Metadata of the resolved catalog asset.
            regions: Orientation-corrected face regions (may be empty).
            title: Original filename of the image.
            fallback_created_at: File-system creation time, used when the
                asset carries no capture timestamp.
            orientation: EXIF orientation the regions were corrected for;
                defaults to the asset's own code.

        Returns:
            The complete XMP packet as text.
        """
        xmpmeta = ET.Element(_tag("x", "xmpmeta"))
        xmpmeta.set(_tag("x", "xmptk"), TOOLKIT)
        rdf = ET.SubElement(xmpmeta, _tag("rdf", "RDF"))
        desc = ET.SubElement(rdf, _tag("rdf", "Description"))
        desc.set(_tag("rdf", "about"), "")

        self._add_alt(desc, _tag("dc", "title"), title)
        self._add_alt(desc, _tag("dc", "description"), asset.description or "")

        created_at = asset.captured_at or fallback_created_at
        if created_at is not None:
            stamp = format_datetime(created_at)
            ET.SubElement(desc, _tag("xmp", "CreateDate")).text = stamp
            ET.SubElement(desc, _tag("photoshop", "DateCreated")).text = stamp
            ET.SubElement(desc, _tag("exif", "DateTimeOriginal")).text = stamp

        if asset.is_favorite:
            ET.SubElement(desc, _tag("xmp", "Rating")).text = str(FAVORITE_RATING)

        if asset.latitude is not None and asset.longitude is not None:
            ET.SubElement(desc, _tag("exif", "GPSVersionID")).text = "2.2.0.0"
            ET.SubElement(desc, _tag("exif", "GPSLatitude")).text = format_gps(
                asset.latitude, "N", "S"
            )
            ET.SubElement(desc, _tag("exif", "GPSLongitude")).text = format_gps(
                asset.longitude, "E", "W"
            )

        if asset.make:
            ET.SubElement(desc, _tag("tiff", "Make")).text = asset.make
        if asset.model:
            ET.SubElement(desc, _tag("tiff", "Model")).text = asset.model

        if regions:
            code = orientation if orientation is not None else asset.orientation
            self._add_regions(desc, regions, display_dimensions(asset, code))

        ET.indent(xmpmeta, space=" ")
        body = ET.tostring(xmpmeta, encoding="unicode")
        return f"{PACKET_HEADER}\n{body}\n{PACKET_FOOTER}\n"

    def _add_alt(self, parent: ET.Element, tag: str, text: str) -> None:
        container = ET.SubElement(parent, tag)
        alt = ET.SubElement(container, _tag("rdf", "Alt"))
        li = ET.SubElement(alt, _tag("rdf", "li"))
        li.set(XML_LANG, "x-default")
        li.text = text

    def _add_regions(
        self,
        parent: ET.Element,
        regions: list[NormalizedFaceRegion],
        dimensions: tuple[int, int] | None,
    ) -> None:
        regions_elem = ET.SubElement(parent, _tag("mwg-rs", "Regions"))
        regions_elem.set(_tag("rdf", "parseType"), "Resource")
        if dimensions is not None:
            applied = ET.SubElement(regions_elem, _tag("mwg-rs", "AppliedToDimensions"))
            applied.set(_tag("stDim", "w"), str(dimensions[0]))
            applied.set(_tag("stDim", "h"), str(dimensions[1]))
            applied.set(_tag("stDim", "unit"), "pixel")
        region_list = ET.SubElement(regions_elem, _tag("mwg-rs", "RegionList"))
        bag = ET.SubElement(region_list, _tag("rdf", "Bag"))
        for region in regions:
            li = ET.SubElement(bag, _tag("rdf", "li"))
            item = ET.SubElement(li, _tag("rdf", "Description"))
            ET.SubElement(item, _tag("mwg-rs", "Name")).text = region.name
            ET.SubElement(item, _tag("mwg-rs", "Type")).text = REGION_TYPE
            ET.SubElement(item, _tag("mwg-rs", "Description")).text = REGION_DESCRIPTION
            area = ET.SubElement(item, _tag("mwg-rs", "Area"))
            area.set(_tag("stArea", "x"), _format_unit(region.x))
            area.set(_tag("stArea", "y"), _format_unit(region.y))
            area.set(_tag("stArea", "w"), _format_unit(region.w))
            area.set(_tag("stArea", "h"), _format_unit(region.h))
            area.set(_tag("stArea", "unit"), "normalized")


def write_sidecar(content: str, path: Path, dry_run: bool = False) -> bool:
    """Write rendered content to ``path`` through an atomic replace.

    In dry-run mode nothing is written. Returns True when the file was written.
    """
    if dry_run:
        logger.debug("Dry run: not writing %s", path)
        return False
    temp = temp_path_for(path)
    try:
        temp.write_text(content, encoding="utf-8")
        replace_into_place(temp, path)
    finally:
        temp.unlink(missing_ok=True)
    return True
