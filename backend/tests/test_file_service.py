"""
CatTrack Backend: File Service Unit Tests
==========================================

What:  Tests for FileService validation, storage, EXIF GPS and path
       resolution, against a temporary storage root.

Test Strategy:
    ✅ Allowed extensions (.jpg, .jpeg, .png, .gif, .webp), case-insensitive
    ✅ Rejected extensions (.bmp, .pdf, .exe, none)
    ✅ Size limits and empty files
    ✅ Pillow content check (bytes that are not an image)
    ✅ Storage under YYYY/MM/DD/<uuid>.<ext>
    ✅ EXIF GPS read back as decimal degrees
    ✅ Served paths cannot escape the storage root
"""

import io
import re

import pytest
from PIL import ExifTags, Image

from cattrack.config import settings
from cattrack.exceptions import NotFoundError, ValidationError
from cattrack.services.file_service import FileService


def _jpeg_with_gps(lat_dms, lat_ref, lng_dms, lng_ref) -> bytes:
    exif = Image.Exif()
    exif[ExifTags.IFD.GPSInfo] = {
        ExifTags.GPS.GPSLatitudeRef: lat_ref,
        ExifTags.GPS.GPSLatitude: lat_dms,
        ExifTags.GPS.GPSLongitudeRef: lng_ref,
        ExifTags.GPS.GPSLongitude: lng_dms,
    }
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8)).save(buffer, format="JPEG", exif=exif)
    return buffer.getvalue()


class TestFileValidation:

    @pytest.fixture(autouse=True)
    def _service(self, temp_storage):
        self.service = FileService(storage_root=temp_storage)

    # ── Extension Validation ──────────────────────────────────────────────

    @pytest.mark.parametrize("name", ["cat.jpg", "cat.jpeg", "cat.png", "cat.gif", "cat.webp"])
    def test_allowed_extensions(self, name):
        assert self.service.validate_extension(name) == "." + name.rsplit(".", 1)[1]

    def test_extension_case_insensitive(self):
        assert self.service.validate_extension("cat.JPG") == ".jpg"
        assert self.service.validate_extension("cat.Png") == ".png"

    @pytest.mark.parametrize("name", ["cat.bmp", "document.pdf", "malware.exe", "noextension"])
    def test_rejected_extensions(self, name):
        with pytest.raises(ValidationError, match="not supported"):
            self.service.validate_extension(name)

    # ── Size Validation ───────────────────────────────────────────────────

    def test_size_within_limit(self):
        self.service.validate_size(1000, 1000)

    def test_size_at_limit(self):
        self.service.validate_size(settings.max_file_size, settings.max_file_size)

    def test_size_over_limit(self):
        with pytest.raises(ValidationError, match="exceeds maximum"):
            self.service.validate_size(None, settings.max_file_size + 1)

    def test_declared_size_over_limit(self):
        with pytest.raises(ValidationError, match="exceeds maximum"):
            self.service.validate_size(settings.max_file_size + 1, 10)

    def test_empty_file(self):
        with pytest.raises(ValidationError, match="empty"):
            self.service.validate_size(0, 0)

    # ── Content Validation ────────────────────────────────────────────────

    def test_real_png_accepted(self, png_bytes):
        assert self.service.validate_image_content(png_bytes) == ".png"

    def test_non_image_rejected(self):
        with pytest.raises(ValidationError, match="not a valid image"):
            self.service.validate_image_content(b"definitely not an image")

    @pytest.mark.asyncio
    async def test_renamed_text_file_rejected(self):
        with pytest.raises(ValidationError, match="not a valid image"):
            await self.service.validate_and_store("cat.png", b"plain text pretending", None)

    # ── Storage ───────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_store_in_date_directory(self, png_bytes):
        abs_path, rel_path = await self.service.validate_and_store(
            filename="whatever.jpg",
            content=png_bytes,
            content_length=len(png_bytes),
        )

        assert re.fullmatch(r"\d{4}/\d{2}/\d{2}/[0-9a-f-]{36}\.png", rel_path)
        with open(abs_path, "rb") as f:
            assert f.read() == png_bytes

    @pytest.mark.asyncio
    async def test_resolve_stored_file(self, png_bytes):
        abs_path, rel_path = await self.service.validate_and_store("cat.png", png_bytes)
        assert str(self.service.resolve_stored_file(rel_path)) == abs_path

    def test_resolve_missing_file(self):
        with pytest.raises(NotFoundError):
            self.service.resolve_stored_file("2024/01/01/missing.png")

    def test_resolve_rejects_traversal(self):
        with pytest.raises(ValidationError, match="Invalid file path"):
            self.service.resolve_stored_file("../../etc/passwd")

    # ── Cleanup ───────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_cleanup_file_removes_file(self, tmp_path):
        test_file = tmp_path / "test.jpg"
        test_file.write_bytes(b"test content")

        await self.service.cleanup_file(str(test_file))
        assert not test_file.exists()

    @pytest.mark.asyncio
    async def test_cleanup_file_nonexistent(self, tmp_path):
        await self.service.cleanup_file(str(tmp_path / "nonexistent.jpg"))


class TestGpsExtraction:

    @pytest.fixture(autouse=True)
    def _service(self, temp_storage):
        self.service = FileService(storage_root=temp_storage)

    def test_image_without_exif(self, png_bytes):
        assert self.service.read_gps_location(png_bytes) is None

    def test_north_east(self):
        content = _jpeg_with_gps((40.0, 30.0, 0.0), "N", (2.0, 15.0, 0.0), "E")
        corner = self.service.read_gps_location(content)
        assert corner.lat == pytest.approx(40.5)
        assert corner.lng == pytest.approx(2.25)

    def test_south_west(self):
        content = _jpeg_with_gps((33.0, 52.0, 12.0), "S", (151.0, 12.0, 36.0), "W")
        corner = self.service.read_gps_location(content)
        assert corner.lat == pytest.approx(-(33 + 52 / 60 + 12 / 3600))
        assert corner.lng == pytest.approx(-(151 + 12 / 60 + 36 / 3600))

    def test_not_an_image(self):
        assert self.service.read_gps_location(b"nope") is None
