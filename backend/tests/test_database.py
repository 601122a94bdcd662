"""
LittleNest Backend: Session Dependency Tests
==============================================

What:  Tests for get_db_session commit handling and post-commit tasks.
How:   The session factory is patched to hand out the mock session; image
       files live in a temporary storage root.

What we test:
    ✅ Queued tasks run only after a successful commit
    ✅ A failed commit rolls back and leaves stored images on disk
    ✅ A failing post-commit task does not stop the rest
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from sqlalchemy.exc import OperationalError

from littlenest.database import AFTER_COMMIT_KEY, add_after_commit, get_db_session
from littlenest.exceptions import FileStorageError
from littlenest.services.file_service import FileService


@pytest.fixture
def session_factory(mock_db_session):
    factory = MagicMock()
    factory.return_value.__aenter__.return_value = mock_db_session
    factory.return_value.__aexit__.return_value = False
    with patch("littlenest.database.async_session_factory", factory):
        yield factory


class TestGetDbSession:
    @pytest.fixture(autouse=True)
    def _storage(self, temp_storage):
        self.files = FileService(storage_root=temp_storage, url_prefix="/media")

    @pytest.mark.asyncio
    async def test_commit_then_run_tasks(self, session_factory, mock_db_session, sample_image_bytes):
        stored = await self.files.save_image("old.jpg", sample_image_bytes)
        sessions = get_db_session()
        session = await sessions.__anext__()
        add_after_commit(session, self.files.delete_image, stored.public_id)

        with pytest.raises(StopAsyncIteration):
            await sessions.__anext__()

        mock_db_session.commit.assert_awaited_once()
        assert not self.files.resolve(stored.public_id).exists()
        assert AFTER_COMMIT_KEY not in mock_db_session.info

    @pytest.mark.asyncio
    async def test_failed_commit_keeps_image(self, session_factory, mock_db_session, sample_image_bytes):
        stored = await self.files.save_image("old.jpg", sample_image_bytes)
        mock_db_session.commit.side_effect = OperationalError("COMMIT", {}, Exception("connection lost"))
        sessions = get_db_session()
        session = await sessions.__anext__()
        add_after_commit(session, self.files.delete_image, stored.public_id)

        with pytest.raises(OperationalError):
            await sessions.__anext__()

        mock_db_session.rollback.assert_awaited_once()
        assert self.files.resolve(stored.public_id).exists()
        assert AFTER_COMMIT_KEY not in mock_db_session.info

    @pytest.mark.asyncio
    async def test_route_error_skips_tasks(self, session_factory, mock_db_session):
        task = AsyncMock()
        sessions = get_db_session()
        session = await sessions.__anext__()
        add_after_commit(session, task, "blogs/2026/10/19/old.jpg")

        with pytest.raises(RuntimeError):
            await sessions.athrow(RuntimeError("handler failed"))

        mock_db_session.commit.assert_not_awaited()
        task.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failing_task_does_not_block_others(self, session_factory, mock_db_session):
        broken = AsyncMock(side_effect=FileStorageError(message="Failed to delete stored image."))
        second = AsyncMock()
        sessions = get_db_session()
        session = await sessions.__anext__()
        add_after_commit(session, broken, "blogs/a.jpg")
        add_after_commit(session, second, "blogs/b.jpg")

        with pytest.raises(StopAsyncIteration):
            await sessions.__anext__()

        broken.assert_awaited_once_with("blogs/a.jpg")
        second.assert_awaited_once_with("blogs/b.jpg")
