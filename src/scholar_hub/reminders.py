"""Due-date reminders for tasks."""

from datetime import date, datetime, time

from scholar_hub.models.planner import TaskItem

REMINDER_TIME = time(9, 0)


def reminder_for(task: TaskItem, now: datetime | None = None) -> datetime | None:
    """Return 09:00 on the task's due date, or None if that is not in the future."""
    if task.is_completed:
        return None
    try:
        due = date.fromisoformat(task.due_date)
    except ValueError:
        return None
    at = datetime.combine(due, REMINDER_TIME)
    if at <= (now or datetime.now()):
        return None
    return at


def upcoming_reminders(
    tasks: list[TaskItem], now: datetime | None = None
) -> list[tuple[TaskItem, datetime]]:
    reminders = []
    for task in tasks:
        at = reminder_for(task, now)
        if at is not None:
            reminders.append((task, at))
    return sorted(reminders, key=lambda pair: pair[1])
