"""Catalog server REST API client."""

from dataclasses import dataclass
from typing import Any

import httpx

from photo_sidecar_sync.config import SyncSettings
from photo_sidecar_sync.models import ExternalLibrary

API_KEY_HEADER = "x-api-key"


class CatalogError(RuntimeError):
    """Transport failure, non-2xx response or malformed body from the catalog."""


class AssetNotFoundError(CatalogError):
    """The catalog does not know the requested asset."""


@dataclass(frozen=True)
class BulkCheckResult:
    """Answer of the bulk-check endpoint for one checksum."""

    exists: bool
    asset_id: str | None


class CatalogClient:
    """Client for the catalog server REST API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("Catalog API key is required. Set CATALOG_API_KEY in .env file.")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(
        cls, settings: SyncSettings, transport: httpx.BaseTransport | None = None
    ) -> "CatalogClient":
        return cls(
            settings.api_base_url,
            settings.require_api_key(),
            timeout=settings.timeout,
            transport=transport,
        )

    def _call(self, method: str, path: str, json: dict | None = None) -> Any:
        """Make a catalog API call and return the parsed JSON (None for empty bodies)."""
        try:
            with httpx.Client(
                base_url=self.base_url,
                headers={API_KEY_HEADER: self.api_key, "Accept": "application/json"},
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                resp = client.request(method, path, json=json)
                resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == httpx.codes.NOT_FOUND:
                raise AssetNotFoundError(f"{method} {path}: not found") from exc
            raise CatalogError(
                f"{method} {path} failed: {exc.response.status_code} {exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise CatalogError(f"{method} {path} failed: {exc}") from exc

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise CatalogError(f"{method} {path} returned malformed JSON") from exc

    def bulk_check(self, checksum: str, device_asset_id: str, device_id: str) -> BulkCheckResult:
        """Ask the catalog whether an asset with this checksum exists."""
        data = self._call(
            "POST",
            "/bulk-check",
            json={
                "checksum": checksum,
                "deviceAssetId": device_asset_id,
                "deviceId": device_id,
            },
        )
        if not isinstance(data, dict) or "isExist" not in data:
            raise CatalogError(f"Invalid bulk-check response for checksum {checksum}: {data!r}")
        exists = bool(data["isExist"])
        asset_id = data.get("assetId") or None
        if exists and asset_id is None:
            raise CatalogError(f"Bulk-check reported a match without an asset id: {data!r}")
        return BulkCheckResult(exists=exists, asset_id=asset_id if exists else None)

    def get_asset(self, asset_id: str) -> dict:
        """Retrieve the full detail of a single asset."""
        data = self._call("GET", f"/asset/{asset_id}")
        if not isinstance(data, dict) or not data:
            raise CatalogError(f"Empty or invalid detail for asset {asset_id}")
        return data

    def list_external_libraries(self) -> list[ExternalLibrary]:
        """List external libraries registered on the server."""
        data = self._call("GET", "/external-libraries")
        if not isinstance(data, list):
            raise CatalogError(f"Invalid external library list: {data!r}")
        return [
            ExternalLibrary(
                id=str(lib["id"]),
                name=lib.get("name") or "",
                import_paths=tuple(lib.get("importPaths") or ()),
            )
            for lib in data
        ]

    def scan_library(self, library_id: str) -> None:
        """Trigger a rescan of an external library."""
        self._call("POST", f"/external-libraries/{library_id}/scan", json={})
