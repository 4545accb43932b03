"""Task scheduling tools.

These run without confirmation. Each factory closes over the agent context
the tasks are recorded with.
"""

import json
from datetime import datetime
from typing import Annotated, Any, Literal

from langchain_core.tools import BaseTool, tool
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.services.scheduler import AgentContext
from app.utils.logging import get_logger

logger = get_logger(__name__)


class _ScheduleSpec(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScheduledAt(_ScheduleSpec):
    type: Literal["scheduled"] = "scheduled"
    date: datetime = Field(..., description="Date and time to run the task")


class DelayedBy(_ScheduleSpec):
    type: Literal["delayed"] = "delayed"
    delay_in_seconds: int = Field(..., ge=0, description="Seconds to wait before running the task")


class CronSchedule(_ScheduleSpec):
    type: Literal["cron"] = "cron"
    cron: str = Field(..., min_length=1, description="Cron expression for recurring tasks")


class NoSchedule(_ScheduleSpec):
    type: Literal["no-schedule"] = "no-schedule"


ScheduleWhen = Annotated[ScheduledAt | DelayedBy | CronSchedule | NoSchedule, Field(discriminator="type")]


class ScheduleTaskInput(BaseModel):
    """Input schema for the schedule tool."""

    when: ScheduleWhen
    description: str = Field(..., description="What the task should do")


class EmptyInput(BaseModel):
    """Empty input schema for tools that don't require parameters."""


class CancelTaskInput(BaseModel):
    """Input schema for cancelling a scheduled task."""

    # Top-level argument names are passed to the tool as keyword arguments verbatim
    taskId: str = Field(..., min_length=1, description="ID of the task to cancel")  # noqa: N815


def _require_agent(agent: AgentContext | None) -> AgentContext:
    if agent is None:
        raise RuntimeError("No agent context available")
    return agent


def create_schedule_task_tool(agent: AgentContext | None) -> BaseTool:
    @tool("scheduleTask", args_schema=ScheduleTaskInput)
    async def schedule_task(when: ScheduleWhen, description: str) -> str:
        """A tool to schedule a task to be executed at a later time"""
        if isinstance(when, NoSchedule):
            return "Not a valid schedule input"

        if isinstance(when, ScheduledAt):
            schedule_input: datetime | int | str = when.date
        elif isinstance(when, DelayedBy):
            schedule_input = when.delay_in_seconds
        else:
            schedule_input = when.cron

        try:
            _require_agent(agent).schedule(schedule_input, "execute_task", description)
        except Exception as e:
            logger.error(f"Error scheduling task: {e}", exc_info=True)
            return f"Error scheduling task: {e}"

        return f'Task scheduled for type "{when.type}" : {schedule_input}'

    return schedule_task


def create_get_scheduled_tasks_tool(agent: AgentContext | None) -> BaseTool:
    @tool("getScheduledTasks", args_schema=EmptyInput, response_format="content_and_artifact")
    async def get_scheduled_tasks() -> tuple[str, list[dict[str, Any]] | None]:
        """List all tasks that have been scheduled"""
        try:
            tasks = _require_agent(agent).get_schedules()
        except Exception as e:
            logger.error(f"Error listing scheduled tasks: {e}", exc_info=True)
            return f"Error listing scheduled tasks: {e}", None

        if not tasks:
            return "No scheduled tasks found.", None

        listed = [task.as_dict() for task in tasks]
        return json.dumps(listed, default=str), listed

    return get_scheduled_tasks


def create_cancel_scheduled_task_tool(agent: AgentContext | None) -> BaseTool:
    @tool("cancelScheduledTask", args_schema=CancelTaskInput)
    async def cancel_scheduled_task(taskId: str) -> str:  # noqa: N803
        """Cancel a scheduled task using its ID"""
        try:
            await _require_agent(agent).cancel_schedule(taskId)
        except Exception as e:
            logger.error(f"Error canceling task {taskId}: {e}", exc_info=True)
            return f"Error canceling task {taskId}: {e}"

        return f"Task {taskId} has been successfully canceled."

    return cancel_scheduled_task
