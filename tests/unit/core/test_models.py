#!/usr/bin/env python3
"""
Tests for atelier.core.models
"""

import pytest

from atelier.core.models import ProductImage, UploadFile, UploadStatus, UploadTask


class TestProductImage:

    def test_from_dict(self, image_record):
        image = ProductImage.from_dict(image_record("img-1", display_order=2, is_main=True))
        assert image.id == "img-1"
        assert image.is_main is True
        assert image.display_order == 2
        assert image.file_size == 2621440

    def test_from_dict_optional_fields(self):
        image = ProductImage.from_dict({"id": 7, "image_url": "https://cdn/x.png"})
        assert image.id == "7"
        assert image.is_main is False
        assert image.content_type is None
        assert image.file_size is None

    def test_from_dict_requires_id(self):
        with pytest.raises(KeyError):
            ProductImage.from_dict({"image_url": "https://cdn/x.png"})

    def test_from_dict_rejects_non_dict(self):
        with pytest.raises(TypeError):
            ProductImage.from_dict(["img-1"])

    def test_with_changes_leaves_original(self, make_image):
        image = make_image("img-1")
        promoted = image.with_changes(is_main=True)
        assert promoted.is_main is True
        assert image.is_main is False

    def test_to_dict(self, image_record):
        record = image_record("img-1")
        assert ProductImage.from_dict(record).to_dict() == record


class TestUploadFile:

    def test_fills_name_type_and_size(self, tmp_path):
        path = tmp_path / "ring.jpg"
        path.write_bytes(b"x" * 2048)

        upload_file = UploadFile(str(path))

        assert upload_file.name == "ring.jpg"
        assert upload_file.content_type == "image/jpeg"
        assert upload_file.size == 2048
        assert upload_file.read_bytes() == b"x" * 2048

    @pytest.mark.parametrize("name,expected", [
        ("ring.webp", "image/webp"), ("ring.png", "image/png"), ("ring.gif", "image/gif"),
    ])
    def test_image_types_detected(self, tmp_path, name, expected):
        path = tmp_path / name
        path.write_bytes(b"RIFF")
        assert UploadFile(str(path)).content_type == expected

    def test_unknown_extension(self, tmp_path):
        path = tmp_path / "notes.unknownext"
        path.write_bytes(b"")
        assert UploadFile(str(path)).content_type == "application/octet-stream"

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(OSError):
            UploadFile(str(tmp_path / "gone.png"))

    def test_identity_equality(self, make_file):
        first = make_file("same.png")
        second = UploadFile(first.path)
        assert first != second
        assert first == first


class TestUploadTask:

    def test_defaults(self, make_file):
        task = UploadTask(file=make_file())
        assert task.status == UploadStatus.UPLOADING
        assert task.progress == 0
        assert not task.is_terminal

    def test_copy_is_independent(self, make_file):
        task = UploadTask(file=make_file())
        snapshot = task.copy()
        task.progress = 50
        assert snapshot.progress == 0
        assert snapshot.file is task.file

    def test_identity_equality(self, make_file):
        upload_file = make_file()
        first = UploadTask(file=upload_file)
        second = UploadTask(file=upload_file)
        assert first != second
        assert first in [first]
        assert second not in [first]
