"""
Tests for the cleanup sweep and its scheduler.
"""

import asyncio
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, Mock

import pytest

from classroom_undo.cleanup import (
    CleanupScheduler,
    CleanupService,
    LastRunStore,
    start_cleanup_scheduler,
)
from classroom_undo.soft_delete import StudentRecord
from classroom_undo.undo.models import ActionPurgeResult

START = datetime(2025, 2, 7, 8, 0)


@pytest.fixture
def student_id(seed):
    return seed(
        StudentRecord,
        user_id="t1",
        name="Budi Santoso",
        class_id="c1",
        gender="Laki-laki",
    )


def load(session_factory, table, record_id):
    with session_factory() as session:
        return session.get(table, record_id)


class TestLastRunStore:
    """Test the last-run state file."""

    def test_missing_file_means_never(self, tmp_path):
        assert LastRunStore(tmp_path / "state.json").load() is None

    def test_save_then_load(self, tmp_path):
        store = LastRunStore(tmp_path / "nested" / "state.json")

        store.save(START)

        assert store.load() == START

    def test_unreadable_file_means_never(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json")

        assert LastRunStore(path).load() is None

    def test_aware_timestamps_are_normalized(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text('{"last_cleanup_timestamp": "2025-02-07T15:00:00+07:00"}')

        assert LastRunStore(path).load() == START

    def test_clear(self, tmp_path):
        store = LastRunStore(tmp_path / "state.json")
        store.save(START)

        store.clear()

        assert store.load() is None


class TestShouldRunCleanup:
    """Test the 24 hour throttle."""

    def test_never_run(self, cleanup_service):
        assert cleanup_service.should_run_cleanup() is True

    @pytest.mark.asyncio
    async def test_throttle_boundary(self, cleanup_service, clock):
        await cleanup_service.run_cleanup()

        clock.advance(hours=23, minutes=59)
        assert cleanup_service.should_run_cleanup() is False

        clock.advance(minutes=1)
        assert cleanup_service.should_run_cleanup() is True

    @pytest.mark.asyncio
    async def test_run_if_needed_skips_recent_run(self, cleanup_service, clock):
        first = await cleanup_service.run_cleanup_if_needed()
        clock.advance(hours=2)
        second = await cleanup_service.run_cleanup_if_needed()

        assert first is not None
        assert second is None


class TestRunCleanup:
    """Test the sweep itself."""

    @pytest.mark.asyncio
    async def test_purges_trash_and_history(
        self, cleanup_service, trash, undo_manager, ledger, session_factory, clock,
        student_id,
    ):
        await trash.soft_delete("students", student_id)
        action = await undo_manager.record_action(
            "t1", "delete", "students", [student_id]
        )
        clock.advance(days=31)

        result = await cleanup_service.run_cleanup()

        assert result.success is True
        assert result.error is None
        assert result.deleted_records["students"] == 1
        assert result.deleted_actions == 1
        assert result.total_deleted == 1
        assert result.timestamp == START + timedelta(days=31)
        assert load(session_factory, StudentRecord, student_id) is None
        assert await ledger.get_by_id(action.id) is None

    @pytest.mark.asyncio
    async def test_records_last_run(self, cleanup_service, clock):
        result = await cleanup_service.run_cleanup()

        assert cleanup_service.state.load() == result.timestamp
        clock.advance(hours=5, minutes=30)
        info = cleanup_service.get_last_cleanup_info()
        assert info.timestamp == START
        assert info.hours_ago == 5

    def test_last_cleanup_info_when_never_run(self, cleanup_service):
        info = cleanup_service.get_last_cleanup_info()

        assert info.timestamp is None
        assert info.hours_ago is None

    @pytest.mark.asyncio
    async def test_ledger_failure_is_reported(self, trash, undo_manager, config):
        undo_manager.cleanup_expired_actions = AsyncMock(
            return_value=ActionPurgeResult(success=False, error="disk full")
        )
        service = CleanupService(
            trash, undo_manager, state=LastRunStore(config.state_file)
        )

        result = await service.run_cleanup()

        assert result.success is False
        assert result.error == "disk full"
        assert service.state.load() == result.timestamp

    @pytest.mark.asyncio
    async def test_unexpected_error_gives_empty_result(
        self, trash, undo_manager, config
    ):
        trash.cleanup_expired = AsyncMock(side_effect=RuntimeError("boom"))
        service = CleanupService(
            trash, undo_manager, state=LastRunStore(config.state_file)
        )

        result = await service.run_cleanup()

        assert result.success is False
        assert result.error == "boom"
        assert result.total_deleted == 0
        assert result.deleted_actions == 0
        assert service.state.load() is None


class TestCleanupScheduler:
    """Test the background scheduler."""

    @pytest.mark.asyncio
    async def test_tick_swallows_errors(self, caplog):
        service = Mock()
        service.run_cleanup_if_needed = AsyncMock(side_effect=RuntimeError("boom"))
        scheduler = CleanupScheduler(service, check_seconds=3600)

        assert await scheduler.tick() is None
        assert "Scheduled cleanup failed" in caplog.text

    @pytest.mark.asyncio
    async def test_runs_on_start_then_every_interval(self):
        service = Mock()
        service.run_cleanup_if_needed = AsyncMock(return_value=None)
        sleeps = []
        gate = asyncio.Event()

        async def fake_sleep(seconds):
            sleeps.append(seconds)
            if len(sleeps) >= 2:
                await gate.wait()

        scheduler = CleanupScheduler(service, check_seconds=3600, sleep=fake_sleep)
        scheduler.start()
        for _ in range(20):
            await asyncio.sleep(0)

        assert scheduler.running is True
        assert sleeps == [3600, 3600]
        assert service.run_cleanup_if_needed.await_count == 2

        await scheduler.stop()
        assert scheduler.running is False

    @pytest.mark.asyncio
    async def test_start_cleanup_scheduler(self, cleanup_service, clock):
        scheduler = start_cleanup_scheduler(cleanup_service, check_seconds=3600)
        for _ in range(5):
            await asyncio.sleep(0)

        assert scheduler.running is True
        assert cleanup_service.get_last_cleanup_info().timestamp == START

        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_second_start_keeps_running_loop(self, caplog):
        service = Mock()
        service.run_cleanup_if_needed = AsyncMock(return_value=None)
        gate = asyncio.Event()

        async def fake_sleep(seconds):
            await gate.wait()

        scheduler = CleanupScheduler(service, check_seconds=3600, sleep=fake_sleep)
        scheduler.start()
        first_task = scheduler._task
        scheduler.start()
        for _ in range(5):
            await asyncio.sleep(0)

        assert scheduler._task is first_task
        assert service.run_cleanup_if_needed.await_count == 1
        assert "already running" in caplog.text

        await scheduler.stop()
        assert first_task.cancelled()

    @pytest.mark.asyncio
    async def test_failing_sleep_does_not_end_loop(self, caplog):
        service = Mock()
        service.run_cleanup_if_needed = AsyncMock(return_value=None)
        calls = []
        gate = asyncio.Event()

        async def flaky_sleep(seconds):
            calls.append(seconds)
            if len(calls) == 1:
                raise RuntimeError("timer broken")
            await gate.wait()

        scheduler = CleanupScheduler(service, check_seconds=0.01, sleep=flaky_sleep)
        scheduler.start()
        await asyncio.sleep(0.1)

        assert scheduler.running is True
        assert len(calls) == 2
        assert service.run_cleanup_if_needed.await_count == 2
        assert "timer broken" in caplog.text

        await scheduler.stop()

    def test_check_interval_defaults_to_config(self, cleanup_service):
        scheduler = CleanupScheduler(cleanup_service)
        assert scheduler.check_seconds == 3600

    @pytest.mark.asyncio
    async def test_stop_without_start(self, cleanup_service):
        scheduler = CleanupScheduler(cleanup_service)
        await scheduler.stop()
        assert scheduler.running is False
