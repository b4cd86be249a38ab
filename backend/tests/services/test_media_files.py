"""Tests for mapping media locators to upload files and removing them."""

from __future__ import annotations

import pytest

from courseware.services.media_files import (
    ERROR,
    MISSING,
    REMOVED,
    SKIPPED,
    remove_media_file,
    resolve_upload_path,
)


class TestResolveUploadPath:
    def test_maps_prefix_to_root(self, upload_root):
        path = resolve_upload_path("/uploads/images/cat.png", upload_root, "/uploads")
        assert path == (upload_root / "images" / "cat.png").resolve()

    def test_percent_encoded_names(self, upload_root):
        path = resolve_upload_path("/uploads/images/my%20cat.png", upload_root, "/uploads")
        assert path.name == "my cat.png"

    def test_trailing_slash_on_prefix(self, upload_root):
        path = resolve_upload_path("/uploads/a.png", upload_root, "/uploads/")
        assert path == (upload_root / "a.png").resolve()

    @pytest.mark.parametrize(
        "locator",
        [
            None,
            "",
            "https://cdn.example.com/uploads/images/cat.png",
            "//cdn.example.com/uploads/images/cat.png",
            "/static/images/cat.png",
            "/uploadsX/cat.png",
            "/uploads/",
            "/uploads/../secrets.txt",
            "/uploads/images/%2e%2e/%2e%2e/secrets.txt",
        ],
    )
    def test_foreign_locators_are_rejected(self, upload_root, locator):
        assert resolve_upload_path(locator, upload_root, "/uploads") is None


class TestRemoveMediaFile:
    def test_removes_existing_file(self, upload_root):
        target = upload_root / "videos" / "intro.mp4"
        target.parent.mkdir()
        target.write_bytes(b"\x00")

        assert remove_media_file("/uploads/videos/intro.mp4", upload_root, "/uploads") == REMOVED
        assert not target.exists()

    def test_already_gone(self, upload_root):
        assert remove_media_file("/uploads/gone.png", upload_root, "/uploads") == MISSING

    def test_external_url_skipped(self, upload_root):
        outcome = remove_media_file("https://example.com/a.png", upload_root, "/uploads")
        assert outcome == SKIPPED

    def test_unlink_failure_reported(self, upload_root, caplog):
        (upload_root / "images").mkdir()

        assert remove_media_file("/uploads/images", upload_root, "/uploads") == ERROR
        assert (upload_root / "images").is_dir()
        assert "Failed to remove media file" in caplog.text
