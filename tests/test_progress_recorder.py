import asyncio
import pathlib
import sys
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from wellness_api.config import get_settings  # noqa: E402
from wellness_api.db.models import ProgressRecord  # noqa: E402
from wellness_api.db.session import Database  # noqa: E402
from wellness_api.errors import DuplicateEntry, NotFound, StorageFailure  # noqa: E402
from wellness_api.schemas.habit import HabitCreate  # noqa: E402
from wellness_api.schemas.progress import ProgressCreate, ProgressUpdate  # noqa: E402
from wellness_api.services import progress as progress_service  # noqa: E402
from wellness_api.services.habits import create_habit, delete_habit, get_habit  # noqa: E402
from wellness_api.services.progress import delete_progress, record_progress, update_progress  # noqa: E402

USER = "student-1"
DAY_ONE = datetime(2025, 3, 10, 8, 0, tzinfo=timezone.utc)


def _day(offset: int, hour: int = 8) -> datetime:
    return (DAY_ONE + timedelta(days=offset)).replace(hour=hour)


async def _setup(tmp_path, target: float = 30):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'recorder.db'}")
    await db.create_all()
    habit = await create_habit(
        db, USER, HabitCreate(name="Read", category="study", target={"value": target, "unit": "pages"})
    )
    return db, habit


async def _log(db, habit, offset: int, value: float = 30, hour: int = 8):
    return await _log_at(db, habit, _day(offset, hour), value)


async def _log_at(db, habit, moment: datetime, value: float = 30):
    return await record_progress(db, USER, ProgressCreate(habit=habit.id, value=value, unit="pages", date=moment))


async def _entries(db, habit_id: str) -> int:
    async with db.session_scope() as session:
        return await session.scalar(select(func.count(ProgressRecord.id)).where(ProgressRecord.habit_id == habit_id))


async def _streak(db, habit):
    streak = (await get_habit(db, USER, habit.id)).streak
    return streak.current, streak.longest


@pytest.fixture
def tokyo(monkeypatch):
    monkeypatch.setenv("WELLNESS_TIMEZONE", "Asia/Tokyo")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.mark.asyncio
async def test_completed_is_derived_from_target(tmp_path):
    db, habit = await _setup(tmp_path, target=30)
    below = await _log(db, habit, 0, value=29.5)
    exact = await _log(db, habit, 1, value=30)
    assert below.completed is False
    assert exact.completed is True
    assert exact.habit.name == "Read"
    assert exact.completion_percentage == 100
    assert below.completion_percentage == 98


@pytest.mark.asyncio
async def test_second_entry_same_day_is_rejected(tmp_path):
    db, habit = await _setup(tmp_path)
    await _log(db, habit, 0, hour=7)
    with pytest.raises(DuplicateEntry):
        await _log(db, habit, 0, value=5, hour=22)
    assert await _entries(db, habit.id) == 1


@pytest.mark.asyncio
async def test_concurrent_same_day_submissions_yield_one_entry(tmp_path):
    db, habit = await _setup(tmp_path)
    results = await asyncio.gather(_log(db, habit, 0, hour=9), _log(db, habit, 0, hour=10), return_exceptions=True)
    failures = [result for result in results if isinstance(result, Exception)]
    assert len(failures) == 1
    assert isinstance(failures[0], DuplicateEntry)
    assert await _entries(db, habit.id) == 1
    assert await _streak(db, habit) == (1, 1)
    assert len(db.locks) == 0


@pytest.mark.asyncio
async def test_unknown_or_foreign_habit_is_not_found(tmp_path):
    db, habit = await _setup(tmp_path)
    with pytest.raises(NotFound):
        await record_progress(db, "someone-else", ProgressCreate(habit=habit.id, value=30, unit="pages"))
    with pytest.raises(NotFound):
        await record_progress(db, USER, ProgressCreate(habit="missing", value=30, unit="pages"))


@pytest.mark.asyncio
async def test_streak_continues_and_resets(tmp_path):
    db, habit = await _setup(tmp_path)
    await _log(db, habit, 0)
    await _log(db, habit, 1)
    assert await _streak(db, habit) == (2, 2)

    await _log(db, habit, 4)
    assert await _streak(db, habit) == (1, 2)
    assert (await get_habit(db, USER, habit.id)).streak.last_completed == _day(4)


@pytest.mark.asyncio
async def test_missed_target_leaves_streak_untouched(tmp_path):
    db, habit = await _setup(tmp_path)
    await _log(db, habit, 0)
    await _log(db, habit, 1)
    await _log(db, habit, 2, value=3)
    assert await _streak(db, habit) == (2, 2)
    assert (await get_habit(db, USER, habit.id)).streak.last_completed == _day(1)

    # day 2 was logged but not completed, so day 3 starts over
    await _log(db, habit, 3)
    assert await _streak(db, habit) == (1, 2)


@pytest.mark.asyncio
async def test_value_edit_rederives_completion_without_streak_credit(tmp_path):
    db, habit = await _setup(tmp_path)
    entry = await _log(db, habit, 0, value=10)
    assert entry.completed is False
    edited = await update_progress(db, USER, entry.id, ProgressUpdate(value=45, notes="finished later"))
    assert edited.completed is True
    assert edited.notes == "finished later"
    assert await _streak(db, habit) == (0, 0)

    lowered = await update_progress(db, USER, entry.id, ProgressUpdate(value=1))
    assert lowered.completed is False
    assert lowered.notes == "finished later"


@pytest.mark.asyncio
async def test_optional_fields_can_be_cleared(tmp_path):
    db, habit = await _setup(tmp_path)
    entry = await record_progress(
        db,
        USER,
        ProgressCreate(habit=habit.id, value=30, unit="pages", date=_day(0), notes="library", location="campus", time_spent=25),
    )
    cleared = await update_progress(
        db, USER, entry.id, ProgressUpdate.model_validate({"notes": None, "location": None, "timeSpent": None})
    )
    assert (cleared.notes, cleared.location, cleared.time_spent) == (None, None, None)
    assert cleared.value == 30


@pytest.mark.asyncio
async def test_streak_failure_rolls_back_entry(tmp_path, monkeypatch):
    db, habit = await _setup(tmp_path)
    original = progress_service.update_streak

    async def failing_streak(*args, **kwargs):
        raise StorageFailure("habit write failed")

    monkeypatch.setattr(progress_service, "update_streak", failing_streak)
    with pytest.raises(StorageFailure):
        await _log(db, habit, 0)
    assert await _entries(db, habit.id) == 0

    monkeypatch.setattr(progress_service, "update_streak", original)
    entry = await _log(db, habit, 0)
    assert entry.completed is True
    assert await _streak(db, habit) == (1, 1)


@pytest.mark.asyncio
async def test_backfilled_completion_recomputes_streak(tmp_path):
    db, habit = await _setup(tmp_path)
    await _log(db, habit, 2)
    await _log(db, habit, 1)
    assert await _streak(db, habit) == (2, 2)

    await _log(db, habit, 0)
    assert await _streak(db, habit) == (3, 3)
    assert (await get_habit(db, USER, habit.id)).streak.last_completed == _day(2)


@pytest.mark.asyncio
async def test_relogging_a_deleted_day_does_not_double_count(tmp_path):
    db, habit = await _setup(tmp_path)
    await _log(db, habit, 0)
    latest = await _log(db, habit, 1)
    assert await _streak(db, habit) == (2, 2)

    await delete_progress(db, USER, latest.id)
    assert await _streak(db, habit) == (2, 2)

    await _log(db, habit, 1, hour=20)
    assert await _streak(db, habit) == (2, 2)
    assert (await get_habit(db, USER, habit.id)).streak.last_completed == _day(1, hour=20)


@pytest.mark.asyncio
async def test_concurrent_completions_on_consecutive_days(tmp_path):
    db, habit = await _setup(tmp_path)
    await asyncio.gather(_log(db, habit, 0), _log(db, habit, 1), _log(db, habit, 2))
    assert await _streak(db, habit) == (3, 3)


@pytest.mark.asyncio
async def test_deleting_habit_removes_its_entries(tmp_path):
    db, habit = await _setup(tmp_path)
    for offset in range(4):
        await _log(db, habit, offset)
    removed = await delete_habit(db, USER, habit.id)
    assert removed == 4
    assert await _entries(db, habit.id) == 0
    with pytest.raises(NotFound):
        await get_habit(db, USER, habit.id)
    with pytest.raises(NotFound):
        await delete_habit(db, USER, habit.id)


@pytest.mark.asyncio
async def test_record_queued_behind_delete_leaves_no_orphan(tmp_path):
    db, habit = await _setup(tmp_path)
    await _log(db, habit, 0)
    async with db.lock(f"habit:{habit.id}"):
        deleting = asyncio.create_task(delete_habit(db, USER, habit.id))
        await asyncio.sleep(0)
        recording = asyncio.create_task(_log(db, habit, 1, value=5))
        await asyncio.sleep(0)
    removed, recorded = await asyncio.gather(deleting, recording, return_exceptions=True)
    assert removed == 1
    assert isinstance(recorded, NotFound)
    assert await _entries(db, habit.id) == 0
    assert len(db.locks) == 0


@pytest.mark.asyncio
async def test_concurrent_delete_and_record_never_orphan_entries(tmp_path):
    db, habit = await _setup(tmp_path)
    results = await asyncio.gather(
        _log(db, habit, 0, value=5),
        delete_habit(db, USER, habit.id),
        _log(db, habit, 1, value=5),
        return_exceptions=True,
    )
    assert all(not isinstance(result, Exception) or isinstance(result, NotFound) for result in results)
    assert await _entries(db, habit.id) == 0


@pytest.mark.asyncio
async def test_local_day_decides_uniqueness_and_continuity(tmp_path, tokyo):
    db, habit = await _setup(tmp_path)
    # 23:30Z and 00:30Z the next UTC day are both 11 March in Tokyo
    first = await _log_at(db, habit, datetime(2025, 3, 10, 23, 30, tzinfo=timezone.utc))
    assert first.day_key == "2025-03-11"
    with pytest.raises(DuplicateEntry):
        await _log_at(db, habit, datetime(2025, 3, 11, 0, 30, tzinfo=timezone.utc))

    second = await _log_at(db, habit, datetime(2025, 3, 11, 16, 0, tzinfo=timezone.utc))
    assert second.day_key == "2025-03-12"
    assert await _streak(db, habit) == (2, 2)

    # two UTC days later, but the very next day in Tokyo
    third = await _log_at(db, habit, datetime(2025, 3, 13, 14, 30, tzinfo=timezone.utc))
    assert third.day_key == "2025-03-13"
    assert await _streak(db, habit) == (3, 3)
    assert await _entries(db, habit.id) == 3
