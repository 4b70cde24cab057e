"""
Browser tools for BrowserBot.

Provides browser tool execution via async Playwright. Page snapshots are
rendered as an accessibility tree in which every element line carries a
``[ref=eN]`` id; later tool calls target elements by that id.
"""

import asyncio
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Protocol

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from pydantic import BaseModel

from .errors import ToolExecutionError
from .tool_schemas import (
    TOOL_DESCRIPTIONS,
    TOOL_SCHEMAS,
    ClickArgs,
    FillFormArgs,
    NavigateArgs,
    PressKeyArgs,
    ScreenshotArgs,
    TypeArgs,
    WaitForArgs,
    tool_input_schema,
    validate_tool_args,
)
from .types import ToolOutput, ToolSpec

logger = logging.getLogger(__name__)


class ToolBackend(Protocol):
    """Tool-execution backend consumed by the tool gateway."""

    def list_tools(self) -> list[ToolSpec]:
        ...

    async def invoke(self, name: str, arguments: dict[str, Any]) -> ToolOutput:
        ...


# Element line of an aria snapshot: - role "name" [attr] [attr]: rest
_ARIA_LINE_RE = re.compile(
    r'^(?P<indent>\s*)- (?P<role>[a-z]+)'
    r'(?P<name> "(?:[^"\\]|\\.)*")?'
    r'(?P<attrs>(?: \[[^\]]*\])*)'
    r'(?P<rest>.*)$'
)

# Key that needed YAML quoting: - 'role "name: with colon"': rest
_QUOTED_KEY_RE = re.compile(r"^(?P<indent>\s*)- '(?P<key>(?:[^']|'')*)'(?P<rest>.*)$")

# Roles that are plain text content, never targets
_TEXT_ROLES = frozenset({"text"})


def unquote_key(line: str) -> str:
    """Undo YAML single-quoting of an aria snapshot key.

    Playwright quotes keys such as ``link "Deals: 50% off"``; the quoted
    line is rewritten unquoted so it parses like any other element line.
    """
    match = _QUOTED_KEY_RE.match(line)
    if not match:
        return line
    key = match.group("key").replace("''", "'")
    return f"{match.group('indent')}- {key}{match.group('rest')}"


def text_output(text: str, raw: Any = None) -> ToolOutput:
    """Wrap text as a single text content block."""
    return ToolOutput(content=[{"type": "text", "text": text}], raw=raw)


class BrowserTools:
    """Executes browser tools via Playwright."""

    def __init__(
        self,
        page: Page,
        default_timeout: int = 10000,
        screenshots_dir: Optional[Path] = None,
    ):
        """Initialize browser tools.

        Args:
            page: Playwright page instance
            default_timeout: Default timeout in milliseconds
            screenshots_dir: Directory for saving screenshots
        """
        self.page = page
        self.default_timeout = default_timeout
        self.screenshots_dir = screenshots_dir or Path.cwd() / "screenshots"
        self._refs: dict[str, tuple[str, Optional[str], int]] = {}

        self._handlers: dict[str, Callable[[Any], Awaitable[ToolOutput]]] = {
            "browser_navigate": self.navigate,
            "browser_click": self.click,
            "browser_type": self.type_text,
            "browser_fill_form": self.fill_form,
            "browser_snapshot": self.snapshot,
            "browser_take_screenshot": self.take_screenshot,
            "browser_wait_for": self.wait_for,
            "browser_press_key": self.press_key,
            "browser_navigate_back": self.navigate_back,
        }

    def list_tools(self) -> list[ToolSpec]:
        """All tools this backend can execute."""
        return [
            ToolSpec(
                name=name,
                description=TOOL_DESCRIPTIONS.get(name, ""),
                input_schema=tool_input_schema(name),
            )
            for name in TOOL_SCHEMAS
        ]

    async def invoke(self, name: str, arguments: dict[str, Any]) -> ToolOutput:
        """Validate arguments and execute a tool.

        Args:
            name: Tool name
            arguments: Raw arguments from the model

        Returns:
            ToolOutput with text content blocks

        Raises:
            ToolExecutionError: On unknown tools, invalid arguments or browser errors
        """
        handler = self._handlers.get(name)
        if handler is None:
            raise ToolExecutionError(name, "Unknown tool")

        is_valid, args, error = validate_tool_args(name, arguments)
        if not is_valid:
            raise ToolExecutionError(name, f"Invalid arguments: {error}")

        try:
            return await handler(args)
        except PlaywrightTimeoutError as e:
            raise ToolExecutionError(name, f"Timeout: {e}") from e
        except ValueError as e:
            raise ToolExecutionError(name, str(e)) from e
        except PlaywrightError as e:
            raise ToolExecutionError(name, f"{type(e).__name__}: {e}") from e

    # =========================================================================
    # Snapshot and element refs
    # =========================================================================

    def annotate_snapshot(self, aria_snapshot: str) -> str:
        """Add ``[ref=eN]`` ids to element lines and remember how to find them.

        Args:
            aria_snapshot: YAML from Locator.aria_snapshot()

        Returns:
            The snapshot with a ref on every element line
        """
        self._refs = {}
        by_role_name: dict[tuple[str, Optional[str]], int] = {}
        by_role: dict[str, int] = {}
        annotated = []

        for line in aria_snapshot.splitlines():
            line = unquote_key(line)
            match = _ARIA_LINE_RE.match(line)
            if not match or match.group("role") in _TEXT_ROLES:
                annotated.append(line)
                continue

            role = match.group("role")
            raw_name = match.group("name")
            name = raw_name.strip()[1:-1].replace('\\"', '"') if raw_name else None

            if name:
                nth = by_role_name.get((role, name), 0)
                by_role_name[(role, name)] = nth + 1
            else:
                nth = by_role.get(role, 0)
            by_role[role] = by_role.get(role, 0) + 1

            ref = f"e{len(self._refs) + 1}"
            self._refs[ref] = (role, name, nth)
            annotated.append(
                f"{match.group('indent')}- {role}{raw_name or ''}{match.group('attrs')}"
                f" [ref={ref}]{match.group('rest')}"
            )

        return "\n".join(annotated)

    def locate(self, ref: str) -> Locator:
        """Resolve a snapshot ref to a locator.

        Raises:
            ValueError: If the ref is not in the last snapshot
        """
        if ref not in self._refs:
            raise ValueError(
                f"Unknown ref '{ref}'. Take a new browser_snapshot and use a ref from it.",
            )
        role, name, nth = self._refs[ref]
        if name:
            return self.page.get_by_role(role, name=name, exact=True).nth(nth)
        return self.page.get_by_role(role).nth(nth)

    async def snapshot(self, args: Optional[BaseModel] = None) -> ToolOutput:
        """Capture the page as URL and title headers plus an annotated aria tree."""
        title = await self.page.title()
        tree = await self.page.locator("body").aria_snapshot(timeout=self.default_timeout)
        text = "\n".join([
            f"URL: {self.page.url}",
            f"Title: {title}",
            "",
            self.annotate_snapshot(tree),
        ])
        logger.debug(f"Snapshot of {self.page.url}: {len(self._refs)} refs")
        return text_output(text, raw={"url": self.page.url, "title": title})

    # =========================================================================
    # Actions
    # =========================================================================

    async def navigate(self, args: NavigateArgs) -> ToolOutput:
        await self.page.goto(args.url, wait_until="domcontentloaded")
        self._refs = {}
        return text_output(f"Navigated to {self.page.url}", raw={"url": self.page.url})

    async def navigate_back(self, args: Optional[BaseModel] = None) -> ToolOutput:
        await self.page.go_back(wait_until="domcontentloaded")
        self._refs = {}
        return text_output(f"Navigated back to {self.page.url}", raw={"url": self.page.url})

    async def click(self, args: ClickArgs) -> ToolOutput:
        locator = self.locate(args.ref)
        if args.double_click:
            await locator.dblclick(timeout=self.default_timeout)
        else:
            await locator.click(timeout=self.default_timeout)
        return text_output(f"Clicked {args.element}")

    async def type_text(self, args: TypeArgs) -> ToolOutput:
        locator = self.locate(args.ref)
        if args.slowly:
            await locator.press_sequentially(args.text, timeout=self.default_timeout)
        else:
            await locator.fill(args.text, timeout=self.default_timeout)
        if args.submit:
            await locator.press("Enter", timeout=self.default_timeout)
        return text_output(f"Typed into {args.element}")

    async def fill_form(self, args: FillFormArgs) -> ToolOutput:
        for field in args.fields:
            locator = self.locate(field.ref)
            if field.type in ("checkbox", "radio"):
                await locator.set_checked(
                    field.value.strip().lower() == "true",
                    timeout=self.default_timeout,
                )
            elif field.type == "combobox":
                await locator.select_option(label=field.value, timeout=self.default_timeout)
            else:
                await locator.fill(field.value, timeout=self.default_timeout)
        return text_output(f"Filled {len(args.fields)} form fields")

    async def take_screenshot(self, args: ScreenshotArgs) -> ToolOutput:
        self.screenshots_dir.mkdir(parents=True, exist_ok=True)
        filename = args.filename or f"screenshot-{datetime.now().strftime('%Y%m%d-%H%M%S')}.png"
        path = self.screenshots_dir / filename
        await self.page.screenshot(path=str(path), full_page=args.full_page)
        return text_output(f"Saved screenshot to {path}", raw={"path": str(path)})

    async def wait_for(self, args: WaitForArgs) -> ToolOutput:
        if args.time is not None:
            await asyncio.sleep(args.time)
        if args.text:
            await self.page.get_by_text(args.text).first.wait_for(
                state="visible",
                timeout=self.default_timeout,
            )
        if args.text_gone:
            await self.page.get_by_text(args.text_gone).first.wait_for(
                state="hidden",
                timeout=self.default_timeout,
            )
        return text_output("Wait finished")

    async def press_key(self, args: PressKeyArgs) -> ToolOutput:
        await self.page.keyboard.press(args.key)
        return text_output(f"Pressed {args.key}")
