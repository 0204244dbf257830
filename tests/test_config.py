"""Tests for settings parsing and validation."""

from pathlib import Path

import pytest

from photo_sidecar_sync import config
from photo_sidecar_sync.config import SyncSettings, parse_extensions


def make_settings(**overrides) -> SyncSettings:
    fields = dict(catalog_url="http://nas.local", catalog_port=2283, api_key="secret")
    fields.update(overrides)
    return SyncSettings(**fields)


def test_parse_extensions_normalizes():
    assert parse_extensions("jpg, .JPEG,cr2,,") == frozenset({".jpg", ".jpeg", ".cr2"})


def test_parse_extensions_empty():
    assert parse_extensions("") == frozenset()


def test_default_extensions_cover_raw_formats():
    settings = make_settings()
    assert {".jpg", ".cr2", ".nef", ".dng"} <= settings.image_extensions


def test_api_base_url():
    assert make_settings(catalog_url="https://nas.local/").api_base_url == (
        "https://nas.local:2283/api"
    )


@pytest.mark.parametrize(
    "overrides,message",
    [
        ({"catalog_url": "nas.local"}, "http"),
        ({"catalog_port": 0}, "port"),
        ({"catalog_port": 70000}, "port"),
        ({"image_extensions": frozenset()}, "extension"),
        ({"image_extensions": frozenset({".jpg", ".xmp"})}, "xmp"),
        ({"inbox_batch_size": 0}, "batch"),
        ({"timeout": 0}, "timeout"),
    ],
)
def test_invalid_settings_rejected(overrides, message):
    with pytest.raises(ValueError, match=message):
        make_settings(**overrides)


def test_require_helpers():
    settings = make_settings(api_key="", source_root=Path("/photos"))
    assert settings.require_source_root() == Path("/photos")
    with pytest.raises(ValueError, match="CATALOG_API_KEY"):
        settings.require_api_key()
    with pytest.raises(ValueError, match="INBOX_ROOT"):
        settings.require_inbox_root()


def test_from_env_reads_module_settings(monkeypatch, tmp_path):
    monkeypatch.setattr(config, "CATALOG_URL", "https://photos.example")
    monkeypatch.setattr(config, "CATALOG_PORT", 443)
    monkeypatch.setattr(config, "CATALOG_API_KEY", "k")
    monkeypatch.setattr(config, "SOURCE_ROOT", str(tmp_path))
    monkeypatch.setattr(config, "INBOX_ROOT", "")
    monkeypatch.setattr(config, "IMAGE_EXTENSIONS", "jpg,png")
    monkeypatch.setattr(config, "STRIPPED_GROUPS", "XMP-crs, XMP-lr")

    settings = SyncSettings.from_env()

    assert settings.api_base_url == "https://photos.example:443/api"
    assert settings.source_root == tmp_path
    assert settings.inbox_root is None
    assert settings.image_extensions == frozenset({".jpg", ".png"})
    assert settings.stripped_groups == ("XMP-crs", "XMP-lr")
