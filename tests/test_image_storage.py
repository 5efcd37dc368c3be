"""Unit tests for gallery image storage."""
from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException

from app.modules.household.image_storage import ImageStorage


def test_build_path():
    assert ImageStorage.build_path(7, "events", "party.jpg", now_ms=1700000000000) == "7/events/1700000000000-party.jpg"


def test_build_path_without_group():
    assert ImageStorage.build_path(None, "events", "a.png", now_ms=1).startswith("nogroup/events/")


class TestValidate:
    def test_accepts_small_image(self):
        ImageStorage(MagicMock(), "Images").validate("image/png", 1024)

    def test_rejects_non_image(self):
        with pytest.raises(HTTPException) as exc:
            ImageStorage(MagicMock(), "Images").validate("application/pdf", 1024)

        assert exc.value.status_code == 400

    def test_rejects_large_file(self):
        with pytest.raises(HTTPException) as exc:
            ImageStorage(MagicMock(), "Images").validate("image/png", 6 * 1024 * 1024)

        assert exc.value.status_code == 413


def test_upload_returns_public_url():
    supabase = MagicMock()
    bucket = supabase.storage.from_.return_value
    bucket.get_public_url.return_value = "https://cdn.example.com/7/events/1-a.png"

    url = ImageStorage(supabase, "Images").upload_file(b"data", "7/events/1-a.png", "image/png")

    supabase.storage.from_.assert_called_with("Images")
    bucket.upload.assert_called_once_with("7/events/1-a.png", b"data", {"content-type": "image/png"})
    assert url == "https://cdn.example.com/7/events/1-a.png"


def test_upload_failure_is_500():
    supabase = MagicMock()
    supabase.storage.from_.return_value.upload.side_effect = RuntimeError("bucket not found")

    with pytest.raises(HTTPException) as exc:
        ImageStorage(supabase, "Images").upload_file(b"data", "p", "image/png")

    assert exc.value.status_code == 500


def test_build_path_keeps_names_in_one_segment():
    path = ImageStorage.build_path(7, "events/../../8", "..\\secret/party.jpg", now_ms=1)

    assert path == "7/events_.._.._8/1-.._secret_party.jpg"
    assert path.count("/") == 2


def test_build_path_replaces_dot_segments():
    assert ImageStorage.build_path(7, "..", "a.png", now_ms=1) == "7/_/1-a.png"
