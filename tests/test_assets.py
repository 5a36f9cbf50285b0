"""Tests for working-asset storage."""

from pathlib import Path

import pytest

from conftest import make_data_uri
from specstash.artifacts import AssetFormat, AssetStore, decode_data_uri, format_for
from specstash.core.exceptions import AssetTooLargeError, InvalidAssetEncodingError
from specstash.storage import StorageLocator


class TestFormatFor:
    """Tests for format_for."""

    def test_known_extensions(self) -> None:
        assert format_for("shot.PNG") == AssetFormat.PNG
        assert format_for("photo.jpeg") == AssetFormat.JPG
        assert format_for("photo.jpg") == AssetFormat.JPG
        assert format_for("anim.gif") == AssetFormat.GIF
        assert format_for("pic.webp") == AssetFormat.WEBP

    def test_unknown_defaults_to_png(self) -> None:
        assert format_for("diagram.bmp") == AssetFormat.PNG
        assert format_for("no_extension") == AssetFormat.PNG


class TestDecodeDataUri:
    """Tests for decode_data_uri."""

    def test_valid(self) -> None:
        assert decode_data_uri(make_data_uri(b"hello")) == b"hello"

    @pytest.mark.parametrize(
        "data_uri",
        [
            "hello",
            "data:text/plain;base64,aGVsbG8=",
            "data:image/png,aGVsbG8=",
            "data:image/png;base64,",
            "data:image/png;base64,@@@not-base64@@@",
        ],
    )
    def test_invalid(self, data_uri: str) -> None:
        with pytest.raises(InvalidAssetEncodingError):
            decode_data_uri(data_uri)


class TestAssetStore:
    """Tests for AssetStore."""

    @pytest.mark.asyncio
    async def test_save_asset(
        self, asset_store: AssetStore, primary_root: Path, png_data_uri: str
    ) -> None:
        asset = await asset_store.save_asset("session-1", "screen.png", png_data_uri)

        expected_dir = primary_root.absolute() / "session-1" / "images"
        assert Path(asset.file_path) == expected_dir / f"{asset.asset_id}.png"
        assert Path(asset.file_path).read_bytes() == decode_data_uri(png_data_uri)
        assert asset.size == len(decode_data_uri(png_data_uri))
        assert asset.session_id == "session-1"
        assert asset.original_name == "screen.png"
        assert asset.format == AssetFormat.PNG
        assert asset.thumbnail_data_uri == png_data_uri

    @pytest.mark.asyncio
    async def test_format_comes_from_name(
        self, asset_store: AssetStore, png_data_uri: str
    ) -> None:
        asset = await asset_store.save_asset("session-1", "photo.JPEG", png_data_uri)
        assert asset.file_path.endswith(".jpg")

    @pytest.mark.asyncio
    async def test_oversized_asset_writes_nothing(
        self, locator: StorageLocator, primary_root: Path
    ) -> None:
        store = AssetStore(locator, max_asset_bytes=10)

        with pytest.raises(AssetTooLargeError) as exc_info:
            await store.save_asset("session-1", "big.png", make_data_uri(b"x" * 11))

        assert exc_info.value.size_bytes == 11
        assert exc_info.value.limit_bytes == 10
        assert not (primary_root / "session-1").exists()

    @pytest.mark.asyncio
    async def test_asset_at_limit_is_accepted(self, locator: StorageLocator) -> None:
        store = AssetStore(locator, max_asset_bytes=10)
        asset = await store.save_asset("session-1", "ok.png", make_data_uri(b"x" * 10))
        assert asset.size == 10

    @pytest.mark.asyncio
    async def test_invalid_encoding_writes_nothing(
        self, asset_store: AssetStore, primary_root: Path
    ) -> None:
        with pytest.raises(InvalidAssetEncodingError):
            await asset_store.save_asset("session-1", "bad.png", "not a data uri")

        assert not (primary_root / "session-1").exists()

    @pytest.mark.asyncio
    async def test_delete_asset_tolerates_missing(
        self, asset_store: AssetStore, png_data_uri: str
    ) -> None:
        asset = await asset_store.save_asset("session-1", "a.png", png_data_uri)

        await asset_store.delete_asset(asset.file_path)
        await asset_store.delete_asset(asset.file_path)

        assert not Path(asset.file_path).exists()

    @pytest.mark.asyncio
    async def test_cleanup_session(
        self, asset_store: AssetStore, primary_root: Path, png_data_uri: str
    ) -> None:
        await asset_store.save_asset("session-1", "a.png", png_data_uri)

        await asset_store.cleanup_session("session-1")
        await asset_store.cleanup_session("session-1")

        assert not (primary_root / "session-1").exists()

    @pytest.mark.asyncio
    async def test_cleanup_rejects_path_like_session(
        self, asset_store: AssetStore, primary_root: Path
    ) -> None:
        """A session ID that escapes the root never reaches the delete."""
        sibling = primary_root.parent / "precious"
        sibling.mkdir(parents=True)

        with pytest.raises(ValueError):
            await asset_store.cleanup_session("../precious")

        assert sibling.exists()
