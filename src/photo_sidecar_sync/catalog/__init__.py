"""Catalog CLI: inspect assets and external libraries on the catalog server."""

import argparse
import sys
from pathlib import Path


def main() -> None:
    """CLI entry point for catalog operations."""
    parser = argparse.ArgumentParser(description="Photo catalog server tools")
    subparsers = parser.add_subparsers(dest="command")

    # list-libraries
    subparsers.add_parser("list-libraries", help="List external libraries")

    # scan-library
    scan_parser = subparsers.add_parser("scan-library", help="Trigger an external library scan")
    scan_parser.add_argument("--library-id", required=True, help="External library ID")

    # lookup
    lookup_parser = subparsers.add_parser(
        "lookup", help="Resolve a local file by checksum and show its catalog metadata"
    )
    lookup_parser.add_argument("file", type=Path, help="Local image file")

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return

    from photo_sidecar_sync.catalog.client import CatalogClient, CatalogError
    from photo_sidecar_sync.config import SyncSettings

    try:
        client = CatalogClient.from_settings(SyncSettings.from_env())
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    try:
        if args.command == "list-libraries":
            for lib in client.list_external_libraries():
                print(f"  {lib.id}  {lib.name}  {', '.join(lib.import_paths)}")

        elif args.command == "scan-library":
            client.scan_library(args.library_id)
            print(f"Scan of library {args.library_id} triggered.")

        elif args.command == "lookup":
            _cmd_lookup(client, args.file)
    except (CatalogError, OSError) as e:
        print(f"Error: {e}")
        sys.exit(1)


def _cmd_lookup(client, path: Path) -> None:
    """Print what the sidecar of ``path`` would be built from."""
    from photo_sidecar_sync.catalog.extractor import MetadataExtractor
    from photo_sidecar_sync.catalog.resolver import ChecksumResolver
    from photo_sidecar_sync.config import DEVICE_ID
    from photo_sidecar_sync.sidecar.orientation import transform_faces

    asset_id = ChecksumResolver(client, DEVICE_ID).resolve(path)
    if asset_id is None:
        print(f"{path.name}: not found in catalog")
        return

    asset = MetadataExtractor(client).extract(asset_id)
    print(f"{path.name}: asset {asset.id}")
    print(f"  captured:    {asset.captured_at.isoformat() if asset.captured_at else '-'}")
    print(f"  camera:      {asset.make or '-'} {asset.model or ''}".rstrip())
    if asset.latitude is not None and asset.longitude is not None:
        print(f"  gps:         {asset.latitude:.6f}, {asset.longitude:.6f}")
    print(f"  orientation: {asset.orientation or '-'}")
    print(f"  favorite:    {'yes' if asset.is_favorite else 'no'}")
    for region in transform_faces(asset):
        print(
            f"  face {region.name}: x={region.x:.3f} y={region.y:.3f} "
            f"w={region.w:.3f} h={region.h:.3f}"
        )
