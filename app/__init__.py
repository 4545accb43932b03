"""Chat agent with human-confirmed tool execution."""

__version__ = "0.1.0"
