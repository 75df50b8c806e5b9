"""
Unit tests for bid photo storage.
"""
import os
from unittest.mock import AsyncMock, MagicMock

import pytest

from vendorbid.core.config import settings
from vendorbid.core.errors import BadRequestError
from vendorbid.services import uploads


def fake_upload(filename, content=b"\x89PNG fake"):
    photo = MagicMock()
    photo.filename = filename
    photo.read = AsyncMock(return_value=content)
    return photo


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))
    return tmp_path


class TestSaveBidPhotos:

    @pytest.mark.asyncio
    async def test_photos_written_with_public_paths(self, upload_dir):
        paths = await uploads.save_bid_photos([fake_upload("../../etc/stall front.png")])

        assert len(paths) == 1
        assert paths[0].startswith("/uploads/bids/")
        assert paths[0].endswith("-stall_front.png")
        stored = upload_dir / "bids" / paths[0].rsplit("/", 1)[-1]
        assert stored.read_bytes() == b"\x89PNG fake"

    @pytest.mark.asyncio
    async def test_oversized_photo_removes_earlier_ones(self, upload_dir, monkeypatch):
        """A photo over the size limit fails the batch and leaves no files behind."""
        monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE", 16)

        with pytest.raises(BadRequestError):
            await uploads.save_bid_photos([
                fake_upload("small.jpg", b"tiny"),
                fake_upload("huge.jpg", b"x" * 64),
            ])

        assert os.listdir(upload_dir / "bids") == []

    @pytest.mark.asyncio
    async def test_same_name_photos_keep_their_own_files(self, upload_dir):
        """Phones often send every part as image.jpg; none may overwrite another."""
        paths = await uploads.save_bid_photos([
            fake_upload("stall.jpg", b"first-photo"),
            fake_upload("stall.jpg", b"second-photo"),
        ])

        assert len(set(paths)) == 2
        bodies = [(upload_dir / "bids" / p.rsplit("/", 1)[-1]).read_bytes() for p in paths]
        assert bodies == [b"first-photo", b"second-photo"]

    @pytest.mark.asyncio
    async def test_existing_file_is_never_overwritten(self, upload_dir, monkeypatch):
        monkeypatch.setattr(uploads.time, "time", lambda: 1700000000.0)
        first = await uploads.save_bid_photos([fake_upload("stall.jpg", b"bid-one")])
        second = await uploads.save_bid_photos([fake_upload("stall.jpg", b"bid-two")])

        assert first != second
        stored = {p: (upload_dir / "bids" / p.rsplit("/", 1)[-1]).read_bytes() for p in first + second}
        assert sorted(stored.values()) == [b"bid-one", b"bid-two"]


class TestValidatePhotos:

    def test_empty_parts_are_ignored(self):
        assert uploads.validate_photos([fake_upload(""), None]) == []

    def test_extension_check_is_case_insensitive(self):
        photo = fake_upload("ONIONS.JPG")
        assert uploads.validate_photos([photo]) == [photo]

    def test_delete_missing_photo_is_harmless(self, upload_dir):
        uploads.delete_photos(["/uploads/bids/123-gone.png"])
