"""
Exception types for BrowserBot.

Configuration problems are fatal at startup. Turn failures are recovered by
the agent loop. Tool errors are reported back to the model.
"""

from typing import Optional


class BrowserBotError(Exception):
    """Base class for all BrowserBot errors."""


class ConfigurationError(BrowserBotError):
    """Required provider credentials or endpoints are missing or invalid."""


class TurnFailure(BrowserBotError):
    """A single model turn failed before its stream completed.

    Attributes:
        step: Iteration number the failure belongs to (if known)
    """

    def __init__(self, message: str, step: Optional[int] = None):
        super().__init__(message)
        self.step = step


class ToolExecutionError(BrowserBotError):
    """A browser tool could not be executed."""

    def __init__(self, tool: str, message: str):
        super().__init__(f"{tool}: {message}")
        self.tool = tool
