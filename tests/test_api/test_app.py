"""Tests for application startup wiring."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

from bucketindex.main import create_app, create_lister, lifespan
from bucketindex.services.index_store import IndexStore
from bucketindex.storage.base import MemoryObjectLister
from tests.helpers import obj

if TYPE_CHECKING:
    from bucketindex.config import Settings


class TestCreateLister:
    def test_no_bucket_uses_empty_listing(self, test_settings: Settings) -> None:
        assert isinstance(create_lister(test_settings), MemoryObjectLister)

    def test_bucket_uses_s3(self, test_settings: Settings) -> None:
        test_settings.s3_bucket = "media"
        with patch("bucketindex.main.S3ObjectLister") as s3:
            lister = create_lister(test_settings)
        s3.from_settings.assert_called_once_with(test_settings)
        assert lister is s3.from_settings.return_value


class TestLifespan:
    async def test_startup_creates_state(self, test_settings: Settings) -> None:
        app = create_app(test_settings)
        async with lifespan(app):
            assert app.state.scan_gate.running is None
            assert isinstance(app.state.lister, MemoryObjectLister)
            async with app.state.session_factory() as session:
                assert await IndexStore(session).count_all() == 0

    async def test_startup_refresh(self, test_settings: Settings) -> None:
        test_settings.s3_bucket = "media"
        test_settings.index_refresh_on_startup = True
        source = MemoryObjectLister([[obj("a/b.txt", 1)]])
        app = create_app(test_settings)
        with patch("bucketindex.main.create_lister", return_value=source):
            async with lifespan(app):
                async with app.state.session_factory() as session:
                    assert await IndexStore(session).all_keys() == {"a/", "a/b.txt"}

    async def test_production_config_without_bucket_fails(self, tmp_path) -> None:  # type: ignore[no-untyped-def]
        from bucketindex.config import Settings

        settings = Settings(
            _env_file=None, database_url=f"sqlite+aiosqlite:///{tmp_path / 'x.db'}"
        )
        app = create_app(settings)
        with pytest.raises(ValueError, match="S3_BUCKET"):
            async with lifespan(app):
                pass
