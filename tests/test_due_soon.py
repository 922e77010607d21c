from datetime import timedelta, timezone

from sqlalchemy import DateTime

from curtis_os import store
from curtis_os.models import Task, TaskCreate, TaskStatus

DAY = timedelta(days=1)


def titles(tasks):
    return [t.title for t in tasks]


def test_only_tasks_inside_window_are_returned(session, make_task, now):
    make_task("inside", DAY, base=now)
    make_task("after", 4 * DAY, base=now)
    make_task("before", -DAY, base=now)

    assert titles(store.due_soon_tasks(session, now=now)) == ["inside"]


def test_window_bounds_are_inclusive(session, make_task, now):
    make_task("today", timedelta(0), base=now)
    make_task("soon", 2 * DAY, base=now)
    make_task("edge", 3 * DAY, base=now)
    make_task("just-past-edge", 3 * DAY + timedelta(seconds=1), base=now)

    assert titles(store.due_soon_tasks(session, now=now)) == ["today", "soon", "edge"]


def test_completed_tasks_are_excluded(session, make_task, now):
    make_task("done", DAY, base=now, completed_at=now)
    make_task("done-overdue", -DAY, base=now, completed_at=now)
    make_task("open", DAY, base=now)

    assert titles(store.due_soon_tasks(session, now=now)) == ["open"]


def test_tasks_without_due_date_are_excluded(session, make_task, now):
    make_task("someday")
    make_task("tomorrow", DAY, base=now)

    assert titles(store.due_soon_tasks(session, now=now)) == ["tomorrow"]


def test_only_todo_status_qualifies(session, make_task, now):
    make_task("todo", DAY, base=now)
    make_task("doing", DAY, base=now, status=TaskStatus.IN_PROGRESS)
    make_task("reviewing", DAY, base=now, status=TaskStatus.REVIEW)
    make_task("shelved", DAY, base=now, status=TaskStatus.ARCHIVED)

    assert titles(store.due_soon_tasks(session, now=now)) == ["todo"]


def test_results_ordered_by_due_date(session, make_task, now):
    make_task("third", timedelta(hours=60), base=now)
    make_task("first", timedelta(hours=1), base=now)
    make_task("second", timedelta(hours=30), base=now)
    make_task("second-tie", timedelta(hours=30), base=now)

    result = store.due_soon_tasks(session, now=now)

    assert titles(result) == ["first", "second", "second-tie", "third"]
    due_dates = [t.due_date for t in result]
    assert due_dates == sorted(due_dates)


def test_custom_window_width(session, make_task, now):
    make_task("five-days", 5 * DAY, base=now)

    assert store.due_soon_tasks(session, now=now) == []
    assert titles(store.due_soon_tasks(session, now=now, days=7)) == ["five-days"]


def test_overdue_tasks(session, make_task, now):
    make_task("late", -2 * DAY, base=now)
    make_task("later", -DAY, base=now)
    make_task("late-but-done", -DAY, base=now, completed_at=now)
    make_task("upcoming", DAY, base=now)

    assert titles(store.overdue_tasks(session, now=now)) == ["late", "later"]


def test_task_stats(session, make_task, now):
    make_task("late", -DAY, base=now)
    make_task("soon", DAY, base=now)
    make_task("finished", None, status=TaskStatus.COMPLETED, completed_at=now - DAY)
    make_task("finished-long-ago", None, status=TaskStatus.COMPLETED, completed_at=now - 30 * DAY)

    stats = store.task_stats(session, now=now)

    assert stats.total == 4
    assert stats.completed_this_week == 1
    assert stats.overdue == 1
    assert stats.due_soon == 1


def test_aware_due_date_stored_as_naive_utc(session, now):
    local = (now + timedelta(days=1, hours=5)).replace(tzinfo=timezone(timedelta(hours=5)))

    task = store.create_task(session, TaskCreate(title="offset", due_date=local))
    session.expire_all()
    fresh = store.get_task(session, task.id)

    assert fresh.due_date == now + DAY
    assert fresh.due_date.tzinfo is None
    assert titles(store.due_soon_tasks(session, now=now)) == ["offset"]


def test_timestamp_columns_are_plain_naive_datetimes():
    for name in ("due_date", "completed_at", "created_at", "updated_at"):
        column_type = Task.__table__.c[name].type
        assert type(column_type) is DateTime
        assert column_type.timezone is False
