"""Project-wide configuration."""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(os.environ.get("SIDECAR_SYNC_PROJECT_ROOT", Path.cwd()))

load_dotenv(PROJECT_ROOT / ".env")

STATE_DB_PATH = PROJECT_ROOT / "sidecar_sync_state.duckdb"

# Remote catalog
CATALOG_URL = os.environ.get("CATALOG_URL", "http://localhost")
CATALOG_PORT = int(os.environ.get("CATALOG_PORT", "2283"))
CATALOG_API_KEY = os.environ.get("CATALOG_API_KEY", "")
CATALOG_TIMEOUT = float(os.environ.get("CATALOG_TIMEOUT", "30"))
DEVICE_ID = os.environ.get("DEVICE_ID", "photo-sidecar-sync")

# Local trees
SOURCE_ROOT = os.environ.get("SOURCE_ROOT", "")
INBOX_ROOT = os.environ.get("INBOX_ROOT", "")

DEFAULT_IMAGE_EXTENSIONS = (
    ".jpg,.jpeg,.png,.heic,.heif,.tif,.tiff,.dng,.cr2,.cr3,.nef,.arw,.orf,.rw2"
)
IMAGE_EXTENSIONS = os.environ.get("IMAGE_EXTENSIONS", DEFAULT_IMAGE_EXTENSIONS)
DRY_RUN = os.environ.get("DRY_RUN", "").lower() in {"1", "true", "yes", "on"}
INBOX_BATCH_SIZE = int(os.environ.get("INBOX_BATCH_SIZE", "50"))

# ExifTool tag stripping
EXIFTOOL_PATH = os.environ.get("EXIFTOOL_PATH", "exiftool")
DEFAULT_STRIPPED_GROUPS = "XMP-crs,XMP-crss,XMP-digiKam,XMP-MicrosoftPhoto"
STRIPPED_GROUPS = os.environ.get("STRIPPED_GROUPS", DEFAULT_STRIPPED_GROUPS)


def parse_extensions(value: str) -> frozenset[str]:
    """Parse a comma separated extension list into lowercase dotted suffixes.

    Examples:
        'jpg, .JPEG,cr2' -> {'.jpg', '.jpeg', '.cr2'}
    """
    extensions = set()
    for part in value.split(","):
        ext = part.strip().lower()
        if not ext:
            continue
        if not ext.startswith("."):
            ext = f".{ext}"
        extensions.add(ext)
    return frozenset(extensions)


def _split_list(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


@dataclass(frozen=True)
class SyncSettings:
    """Validated settings injected into the catalog client and sync engines.

    Optional paths are ``None`` when not configured; commands that need them
    call :meth:`require_source_root` / :meth:`require_inbox_root`.
    """

    catalog_url: str
    catalog_port: int
    api_key: str
    source_root: Path | None = None
    inbox_root: Path | None = None
    image_extensions: frozenset[str] = field(
        default_factory=lambda: parse_extensions(DEFAULT_IMAGE_EXTENSIONS)
    )
    dry_run: bool = False
    device_id: str = "photo-sidecar-sync"
    timeout: float = 30.0
    exiftool_path: str = "exiftool"
    stripped_groups: tuple[str, ...] = _split_list(DEFAULT_STRIPPED_GROUPS)
    inbox_batch_size: int = 50
    state_db_path: Path = STATE_DB_PATH

    def __post_init__(self) -> None:
        if not self.catalog_url.startswith(("http://", "https://")):
            raise ValueError(f"Catalog URL must start with http:// or https://: {self.catalog_url!r}")
        if not 0 < self.catalog_port < 65536:
            raise ValueError(f"Catalog port out of range: {self.catalog_port}")
        if not self.image_extensions:
            raise ValueError("At least one image extension is required.")
        if ".xmp" in self.image_extensions:
            raise ValueError("'.xmp' cannot be configured as an image extension.")
        if self.inbox_batch_size < 1:
            raise ValueError(f"Inbox batch size must be positive: {self.inbox_batch_size}")
        if self.timeout <= 0:
            raise ValueError(f"Catalog timeout must be positive: {self.timeout}")

    @property
    def api_base_url(self) -> str:
        """Base URL of the catalog REST API, e.g. ``http://nas:2283/api``."""
        return f"{self.catalog_url.rstrip('/')}:{self.catalog_port}/api"

    def require_api_key(self) -> str:
        if not self.api_key:
            raise ValueError("Catalog API key is required. Set CATALOG_API_KEY in .env file.")
        return self.api_key

    def require_source_root(self) -> Path:
        if self.source_root is None:
            raise ValueError("Source root is required. Set SOURCE_ROOT in .env file.")
        return self.source_root

    def require_inbox_root(self) -> Path:
        if self.inbox_root is None:
            raise ValueError("Inbox root is required. Set INBOX_ROOT in .env file.")
        return self.inbox_root

    @classmethod
    def from_env(cls) -> "SyncSettings":
        """Build settings from the module-level environment defaults."""
        return cls(
            catalog_url=CATALOG_URL,
            catalog_port=CATALOG_PORT,
            api_key=CATALOG_API_KEY,
            source_root=Path(SOURCE_ROOT) if SOURCE_ROOT else None,
            inbox_root=Path(INBOX_ROOT) if INBOX_ROOT else None,
            image_extensions=parse_extensions(IMAGE_EXTENSIONS),
            dry_run=DRY_RUN,
            device_id=DEVICE_ID,
            timeout=CATALOG_TIMEOUT,
            exiftool_path=EXIFTOOL_PATH,
            stripped_groups=_split_list(STRIPPED_GROUPS),
            inbox_batch_size=INBOX_BATCH_SIZE,
            state_db_path=STATE_DB_PATH,
        )
