"""Tests for face box normalization across EXIF orientations."""

import pytest
from conftest import make_asset
from PIL import Image

from photo_sidecar_sync.models import FaceAnnotation
from photo_sidecar_sync.sidecar.orientation import (
    normalize_face,
    read_local_orientation,
    transform_faces,
)

ALL_ORIENTATIONS = range(1, 9)


def face(x1, y1, x2, y2, width=100, height=200, name="Alice"):
    return FaceAnnotation(
        name=name, x1=x1, y1=y1, x2=x2, y2=y2, image_width=width, image_height=height
    )


def as_tuple(region):
    return (region.x, region.y, region.w, region.h)


@pytest.mark.parametrize("orientation", ALL_ORIENTATIONS)
def test_zero_size_center_box_is_invariant(orientation):
    region = normalize_face(face(50, 100, 50, 100), orientation)
    assert as_tuple(region) == pytest.approx((0.5, 0.5, 0.0, 0.0))


@pytest.mark.parametrize("orientation", ALL_ORIENTATIONS)
def test_full_frame_box_covers_unit_square(orientation):
    region = normalize_face(face(0, 0, 100, 200), orientation)
    assert as_tuple(region) == pytest.approx((0.5, 0.5, 1.0, 1.0))


def test_orientation_1_only_normalizes():
    region = normalize_face(face(10, 10, 30, 50), 1)
    assert as_tuple(region) == pytest.approx((0.2, 0.15, 0.2, 0.2))


def test_orientation_3_rotates_half_turn():
    region = normalize_face(face(10, 10, 30, 50), 3)
    assert as_tuple(region) == pytest.approx((0.8, 0.85, 0.2, 0.2))


def test_orientation_2_mirrors_horizontally():
    region = normalize_face(face(10, 10, 30, 50), 2)
    assert as_tuple(region) == pytest.approx((0.8, 0.15, 0.2, 0.2))


def test_orientation_4_mirrors_vertically():
    # half turn then horizontal mirror leaves only the vertical flip
    region = normalize_face(face(10, 10, 30, 50), 4)
    assert as_tuple(region) == pytest.approx((0.2, 0.85, 0.2, 0.2))


def test_orientation_6_swaps_axes():
    # w, h in source space: 0.2, 0.3 (60/200)
    region = normalize_face(face(10, 20, 30, 80), 6)
    # center (0.2, 0.25) -> (0.25, 0.8)
    assert as_tuple(region) == pytest.approx((0.25, 0.8, 0.3, 0.2))


def test_orientation_8_matches_6():
    assert as_tuple(normalize_face(face(10, 20, 30, 80), 8)) == pytest.approx(
        as_tuple(normalize_face(face(10, 20, 30, 80), 6))
    )


@pytest.mark.parametrize("orientation", [5, 7])
def test_mirrored_rotations_flip_x_after_swap(orientation):
    region = normalize_face(face(10, 20, 30, 80), orientation)
    assert as_tuple(region) == pytest.approx((0.75, 0.8, 0.3, 0.2))


def test_unknown_orientation_is_identity():
    assert as_tuple(normalize_face(face(10, 10, 30, 50), None)) == pytest.approx(
        (0.2, 0.15, 0.2, 0.2)
    )


def test_uses_face_image_size_not_asset_size():
    asset = make_asset(width=4000, height=3000, faces=(face(10, 10, 30, 50),))
    (region,) = transform_faces(asset)
    assert region.x == pytest.approx(0.2)


def test_falls_back_to_asset_size_when_face_size_missing():
    annotated = face(10, 10, 30, 50, width=None, height=None)
    asset = make_asset(width=100, height=200, faces=(annotated,))
    (region,) = transform_faces(asset)
    assert as_tuple(region) == pytest.approx((0.2, 0.15, 0.2, 0.2))


def test_face_without_any_size_is_dropped():
    asset = make_asset(faces=(face(10, 10, 30, 50, width=0, height=0),))
    assert transform_faces(asset) == []


def test_out_of_range_box_is_not_clamped():
    region = normalize_face(face(90, 10, 130, 50), 1)
    assert region.x == pytest.approx(1.1)


def test_orientation_override_wins_over_asset():
    asset = make_asset(orientation=1, faces=(face(10, 10, 30, 50),))
    (region,) = transform_faces(asset, orientation=3)
    assert (region.x, region.y) == pytest.approx((0.8, 0.85))


def test_read_local_orientation(tmp_path):
    path = tmp_path / "rotated.jpg"
    exif = Image.Exif()
    exif[0x0112] = 6
    Image.new("RGB", (4, 2)).save(path, exif=exif)
    assert read_local_orientation(path) == 6


def test_read_local_orientation_defaults_for_non_images(tmp_path):
    path = tmp_path / "broken.jpg"
    path.write_bytes(b"not a jpeg")
    assert read_local_orientation(path) == 1
