"""Weather and local time tools."""

from typing import Any

from langchain_core.tools import BaseTool, tool
from pydantic import BaseModel, Field

from app.tools.base import ExecutionContext, ToolDefinition
from app.utils.logging import get_logger

logger = get_logger(__name__)


class WeatherInput(BaseModel):
    """Input schema for the weather tool."""

    city: str = Field(..., min_length=1, description="City to show the weather for", examples=["Paris"])


class LocalTimeInput(BaseModel):
    """Input schema for the local time tool."""

    location: str = Field(..., min_length=1, description="Location to get the local time for")


async def get_weather_information(args: dict[str, Any], context: ExecutionContext) -> str:
    """Runs only after the user has confirmed the call."""
    params = WeatherInput.model_validate(args)
    logger.info(f"Getting weather information for {params.city} (call {context.tool_call_id})")
    return f"The weather in {params.city} is sunny"


def create_weather_tool() -> ToolDefinition:
    # No langchain tool: the user has to confirm before the weather is fetched
    return ToolDefinition(
        name="getWeatherInformation",
        description="show the weather in a given city to the user",
        input_schema_class=WeatherInput,
    )


def create_local_time_tool() -> BaseTool:
    @tool("getLocalTime", args_schema=LocalTimeInput)
    async def get_local_time(location: str) -> str:
        """get the local time for a specified location"""
        logger.info(f"Getting local time for {location}")
        return "10am"

    return get_local_time
