"""Agent context used by the scheduling tools."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal, Protocol

from cuid2 import cuid_wrapper

from app.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()

ScheduleType = Literal["scheduled", "delayed", "cron"]


@dataclass
class ScheduledTask:
    """A task the agent has been asked to run later."""

    id: str
    type: ScheduleType
    callback: str
    payload: Any
    time: datetime | None = None
    delay_in_seconds: int | None = None
    cron: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def as_dict(self) -> dict[str, Any]:
        """Return the task as a dictionary."""
        return {
            "id": self.id,
            "type": self.type,
            "callback": self.callback,
            "payload": self.payload,
            "time": self.time.isoformat() if self.time else None,
            "delayInSeconds": self.delay_in_seconds,
            "cron": self.cron,
            "createdAt": self.created_at.isoformat(),
        }


class AgentContext(Protocol):
    """Agent capabilities exposed to tool executors."""

    def schedule(self, when: datetime | int | str, callback: str, payload: Any = None) -> ScheduledTask:
        """Record a task. ``when`` is a date, a delay in seconds or a cron expression."""
        ...

    def get_schedules(self) -> list[ScheduledTask]: ...

    async def cancel_schedule(self, task_id: str) -> bool: ...


class InMemoryScheduler:
    """Agent context that keeps scheduled tasks in memory.

    Tasks are recorded and listed only; nothing fires them.
    """

    def __init__(self) -> None:
        self.tasks: dict[str, ScheduledTask] = {}

    def schedule(self, when: datetime | int | str, callback: str, payload: Any = None) -> ScheduledTask:
        task_id = cuid()
        if isinstance(when, datetime):
            task = ScheduledTask(id=task_id, type="scheduled", callback=callback, payload=payload, time=when)
        elif isinstance(when, int):
            if when < 0:
                raise ValueError(f"Delay must be non-negative, got {when}")
            task = ScheduledTask(
                id=task_id, type="delayed", callback=callback, payload=payload, delay_in_seconds=when
            )
        elif isinstance(when, str) and when.strip():
            task = ScheduledTask(id=task_id, type="cron", callback=callback, payload=payload, cron=when.strip())
        else:
            raise ValueError(f"Invalid schedule: {when!r}")

        self.tasks[task_id] = task
        logger.info(f"Scheduled {task.type} task {task_id} for callback {callback}")
        return task

    def get_schedules(self) -> list[ScheduledTask]:
        return list(self.tasks.values())

    async def cancel_schedule(self, task_id: str) -> bool:
        task = self.tasks.pop(task_id, None)
        if task is None:
            logger.warning(f"Cancel requested for unknown task {task_id}")
            return False
        logger.info(f"Cancelled task {task_id}")
        return True
