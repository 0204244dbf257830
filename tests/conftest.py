"""Shared test fixtures."""

import json
import os
import shutil
from pathlib import Path

import duckdb
import httpx
import pytest

from photo_sidecar_sync.catalog.client import CatalogClient
from photo_sidecar_sync.catalog.resolver import compute_checksum
from photo_sidecar_sync.models import AssetRecord, FaceAnnotation
from photo_sidecar_sync.sidecar.stripper import TagStripError
from photo_sidecar_sync.sync.schema import ensure_schema

IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".cr2", ".png"})
BASE_URL = "http://catalog.test:2283/api"


@pytest.fixture
def db_conn():
    """In-memory DuckDB connection with schema initialized."""
    conn = duckdb.connect(":memory:")
    ensure_schema(conn)
    yield conn
    conn.close()


def write_file(path: Path, content: str | bytes = "x", mtime_ns: int | None = None) -> Path:
    """Create a file (and parents), optionally pinning its modification time."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content)
    if mtime_ns is not None:
        os.utime(path, ns=(mtime_ns, mtime_ns))
    return path


def make_asset(
    asset_id: str = "asset-1",
    orientation: int | None = 1,
    is_favorite: bool = False,
    faces: tuple[FaceAnnotation, ...] = (),
    **overrides,
) -> AssetRecord:
    """Helper to create an AssetRecord with sensible defaults."""
    fields = dict(
        id=asset_id,
        checksum=None,
        captured_at=None,
        latitude=None,
        longitude=None,
        make=None,
        model=None,
        width=None,
        height=None,
        orientation=orientation,
        is_favorite=is_favorite,
        faces=faces,
    )
    fields.update(overrides)
    return AssetRecord(**fields)


def asset_payload(
    asset_id: str,
    is_favorite: bool = False,
    orientation: str | None = "1",
    people: list[dict] | None = None,
    **exif,
) -> dict:
    """Asset detail JSON as the catalog server returns it."""
    exif_info = {
        "dateTimeOriginal": None,
        "latitude": None,
        "longitude": None,
        "make": None,
        "model": None,
        "exifImageWidth": None,
        "exifImageHeight": None,
        "orientation": orientation,
    }
    exif_info.update(exif)
    return {
        "id": asset_id,
        "checksum": "abc",
        "originalFileName": "IMG.JPG",
        "isFavorite": is_favorite,
        "exifInfo": exif_info,
        "people": people or [],
    }


class FakeCatalog:
    """In-process catalog server behind an httpx.MockTransport."""

    def __init__(self) -> None:
        self.assets_by_checksum: dict[str, str] = {}
        self.assets: dict[str, dict] = {}
        self.libraries: list[dict] = []
        self.scanned: list[str] = []
        self.requests: list[httpx.Request] = []
        self.fail_with: int | None = None

    def add(self, image: Path, payload: dict) -> None:
        """Register a local file's content as the given asset."""
        self.assets_by_checksum[compute_checksum(image)] = payload["id"]
        self.assets[payload["id"]] = payload

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            return httpx.Response(self.fail_with, text="boom")
        path = request.url.path.removeprefix("/api")
        if request.method == "POST" and path == "/bulk-check":
            body = json.loads(request.content)
            asset_id = self.assets_by_checksum.get(body["checksum"])
            return httpx.Response(200, json={"isExist": asset_id is not None, "assetId": asset_id})
        if request.method == "GET" and path.startswith("/asset/"):
            asset = self.assets.get(path.removeprefix("/asset/"))
            if asset is None:
                return httpx.Response(404, json={"message": "Not found"})
            return httpx.Response(200, json=asset)
        if request.method == "GET" and path == "/external-libraries":
            return httpx.Response(200, json=self.libraries)
        if request.method == "POST" and path.startswith("/external-libraries/"):
            self.scanned.append(path.split("/")[2])
            return httpx.Response(204)
        return httpx.Response(404)

    def client(self) -> CatalogClient:
        return CatalogClient(BASE_URL, "secret", transport=httpx.MockTransport(self.handler))


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog()


class FakeStripper:
    """TagStripper that copies the annotation verbatim, or fails for chosen sources."""

    def __init__(self) -> None:
        self.calls: list[tuple[Path, Path]] = []
        self.failing: set[str] = set()

    def strip_and_copy(self, source: Path, destination: Path) -> None:
        self.calls.append((source, destination))
        if source.name in self.failing:
            raise TagStripError(f"exiftool exited with status 1 for {source}")
        shutil.copyfile(source, destination)


@pytest.fixture
def stripper() -> FakeStripper:
    return FakeStripper()
