"""
Tool gateway for BrowserBot.

Sits between the model provider and the browser tool backend:

- only the essential browser tools are exposed to the model
- snapshot results are compressed before the model sees them
- every other tool result is replaced by a short acknowledgment
- duration-only waits (media playback) are handled here and can be
  skipped by the user
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from pydantic import ValidationError

from .compressor import SnapshotCompressor
from .errors import ToolExecutionError
from .tool_schemas import WaitForArgs
from .tools import ToolBackend
from .types import BrowserState, CompressedSnapshot, ToolSpec, content_to_text

logger = logging.getLogger(__name__)


ESSENTIAL_TOOLS = (
    "browser_navigate",
    "browser_click",
    "browser_type",
    "browser_snapshot",
    "browser_fill_form",
    "browser_take_screenshot",
    "browser_wait_for",
)

SNAPSHOT_TOOL = "browser_snapshot"
WAIT_TOOL = "browser_wait_for"

SkipSignal = Callable[[], Awaitable[Any]]


def acknowledgment(tool: str) -> str:
    """Fixed result shown to the model for non-snapshot tools."""
    return f"{tool} executed successfully"


class ToolGateway:
    """Exposes a filtered, context-friendly view of a tool backend."""

    def __init__(
        self,
        backend: ToolBackend,
        compressor: Optional[SnapshotCompressor] = None,
        skip_signal: Optional[SkipSignal] = None,
    ):
        """Initialize the gateway.

        Args:
            backend: Tool backend that executes browser tools
            compressor: Snapshot compressor (a default one if omitted)
            skip_signal: Awaitable factory that resolves when the user
                wants to cut a media wait short
        """
        self.backend = backend
        self.compressor = compressor or SnapshotCompressor()
        self.skip_signal = skip_signal
        self.last_snapshot: Optional[CompressedSnapshot] = None

    @property
    def last_observation(self) -> Optional[BrowserState]:
        """Page state from the last compressed snapshot, if any."""
        if self.last_snapshot is None:
            return None
        return self.last_snapshot.to_browser_state()

    def list_tools(self) -> list[ToolSpec]:
        """Backend tools that are on the essential allow-list."""
        return [spec for spec in self.backend.list_tools() if spec.name in ESSENTIAL_TOOLS]

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> str:
        """Run a tool and return the text the model should see.

        Args:
            name: Tool name
            arguments: Tool arguments from the model

        Returns:
            Compressed snapshot text, or a fixed acknowledgment

        Raises:
            ToolExecutionError: If the tool is not allowed or the backend fails
        """
        if name not in ESSENTIAL_TOOLS:
            raise ToolExecutionError(name, "Tool is not available")

        if name == WAIT_TOOL:
            seconds = self._duration_only_wait(arguments)
            if seconds is not None:
                await self.media_wait(seconds)
                return acknowledgment(name)

        output = await self.backend.invoke(name, arguments or {})

        if name == SNAPSHOT_TOOL:
            return self._record_snapshot(content_to_text(output.content)).text

        return acknowledgment(name)

    async def current_url(self) -> str:
        """Take a fresh snapshot and return its URL ("" on failure)."""
        try:
            output = await self.backend.invoke(SNAPSHOT_TOOL, {})
        except ToolExecutionError as e:
            logger.warning(f"Could not read current URL: {e}")
            return ""
        return self._record_snapshot(content_to_text(output.content)).url

    async def media_wait(self, seconds: float) -> bool:
        """Wait for a media duration unless the user skips it.

        Args:
            seconds: Duration to wait

        Returns:
            True if the wait was skipped
        """
        logger.info(f"Waiting {seconds:.0f}s for media playback")
        if self.skip_signal is None:
            await asyncio.sleep(seconds)
            return False

        sleep_task = asyncio.ensure_future(asyncio.sleep(seconds))
        skip_task = asyncio.ensure_future(self.skip_signal())
        try:
            done, _ = await asyncio.wait(
                {sleep_task, skip_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            pending = [task for task in (sleep_task, skip_task) if not task.done()]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        skipped = skip_task in done
        if skipped:
            logger.info("Media wait skipped by user")
        return skipped

    @staticmethod
    def _duration_only_wait(arguments: dict[str, Any]) -> Optional[float]:
        try:
            args = WaitForArgs(**(arguments or {}))
        except ValidationError:
            return None
        return args.time if args.is_duration_only else None

    def _record_snapshot(self, text: str) -> CompressedSnapshot:
        snapshot = self.compressor.compress_snapshot(text)
        logger.info(
            f"Snapshot compressed: {snapshot.original_size} -> {snapshot.compressed_size} chars "
            f"({snapshot.reduction:.1f}% reduction, {len(snapshot.elements)} elements)"
        )
        if snapshot.url or snapshot.elements:
            self.last_snapshot = snapshot
        return snapshot
