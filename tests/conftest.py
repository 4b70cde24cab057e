"""
Shared fakes for the BrowserBot test suite.

The fakes stand in for the model provider and the Playwright-backed tool
backend so the agent loop can be driven end to end without a browser or
network access.
"""

import pytest

from browserbot.errors import ToolExecutionError
from browserbot.tool_schemas import TOOL_SCHEMAS
from browserbot.types import TextFragment, ToolOutput, ToolSpec


SAMPLE_SNAPSHOT = """URL: https://www.youtube.com/watch?v=abc
Title: Lofi Beats - YouTube

- banner [ref=e1]:
  - link "Skip to main content" [ref=e2]:
    - /url: "#main"
    - generic [ref=e3]: Skip
  - link "YouTube Home" [ref=e4]:
    - /url: /
  - search [ref=e5]:
    - combobox "Search" [ref=e6]
    - button "Search" [ref=e7]
- generic [ref=e8]:
  - heading "Lofi Beats to Study To" [level=1] [ref=e9]
  - button "Play" [ref=e10]
  - button "Hidden control" [ref=e11] (hidden)
  - link "Channel" [ref=e12] /url: https://www.youtube.com/@lofi
  - img "ok" [ref=e13]
  - separator [ref=e14]
  - button "No ref here"
- contentinfo [ref=e15]:
  - text: Keyboard shortcuts"""


SAMPLE_COMPRESSED = """URL: https://www.youtube.com/watch?v=abc
Title: Lofi Beats - YouTube

Interactive Elements (use ref value without brackets for browser tools):

[e4] link "YouTube Home" → /
[e6] combobox "Search"
[e7] button "Search"
[e9] heading "Lofi Beats to Study To"
[e10] button "Play"
[e12] link "Channel" → https://www.youtube.com/@lofi

Total interactive elements: 6"""


class ScriptedProvider:
    """Model provider that replays one scripted turn per call.

    Each turn is a list of items: strings become TextFragments, stream
    events are yielded as-is and exceptions are raised mid-stream. A turn
    given as an exception fails before yielding anything. Once the script
    runs out every turn answers "Still working".
    """

    def __init__(self, turns):
        self.turns = list(turns)
        self.calls = []

    async def stream(self, prompt, system_prompt, temperature, max_tokens, session_id=None, history=None):
        self.calls.append({
            "prompt": prompt,
            "system_prompt": system_prompt,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "session_id": session_id,
            "history": history,
        })
        turn = self.turns.pop(0) if self.turns else ["Still working"]
        if isinstance(turn, BaseException):
            raise turn
        for item in turn:
            if isinstance(item, BaseException):
                raise item
            if isinstance(item, str):
                yield TextFragment(item)
            else:
                yield item


class FakeBackend:
    """Tool backend that records calls and serves a fixed snapshot."""

    def __init__(self, snapshot_text=SAMPLE_SNAPSHOT, fail_tools=()):
        self.snapshot_text = snapshot_text
        self.fail_tools = set(fail_tools)
        self.calls = []

    def list_tools(self):
        return [ToolSpec(name=name, description=f"{name} tool") for name in TOOL_SCHEMAS]

    async def invoke(self, name, arguments):
        self.calls.append((name, arguments))
        if name in self.fail_tools:
            raise ToolExecutionError(name, "backend exploded")
        if name == "browser_snapshot":
            return ToolOutput(content=[{"type": "text", "text": self.snapshot_text}])
        return ToolOutput(content=[{"type": "text", "text": f"{name} verbose output " * 100}])


@pytest.fixture
def sample_snapshot():
    return SAMPLE_SNAPSHOT


@pytest.fixture
def sample_compressed():
    return SAMPLE_COMPRESSED


@pytest.fixture
def scripted_provider():
    """Factory for ScriptedProvider instances."""
    return ScriptedProvider


@pytest.fixture
def fake_backend():
    """Factory for FakeBackend instances."""
    return FakeBackend
