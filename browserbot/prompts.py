"""
Prompt composition and response parsing for BrowserBot.

Builds the system instructions and the per-iteration user message from the
task text, step budget and last page observation, and parses model output
for completion and failure signals. Everything here is pure and
deterministic.
"""

import re
from enum import Enum
from typing import Optional

from .types import BrowserState, Prompt, Verdict


class TaskCategory(str, Enum):
    """Closed set of task tags used by run policies."""
    MEDIA_PLAYBACK = "media_playback"
    WEB_SEARCH = "web_search"
    GENERAL = "general"


COMPLETION_SIGNALS = (
    "task complete",
    "successfully completed",
    "task finished",
)

FAILURE_SIGNALS = (
    "task failed",
    "cannot complete",
    "unable to proceed",
)

MEDIA_URL_PATTERNS = (
    "youtube.com/watch",
    "vimeo.com",
    "spotify.com",
    "soundcloud.com",
)

PREVIEW_ELEMENTS = 5

_MEDIA_TASK_RE = re.compile(r"\b(play|video|music|youtube|song)\b", re.IGNORECASE)
_SEARCH_TASK_RE = re.compile(r"\b(search|google|look up)\b", re.IGNORECASE)


TOOL_USAGE_INSTRUCTIONS = """IMPORTANT - Browser Tool Usage:
When using element tools (browser_click, browser_type, etc.), you must provide BOTH:
1. 'element': A human-readable description of the element
2. 'ref': The reference ID from the snapshot (WITHOUT brackets)

Example: If you see "[e90] searchbox "Search Amazon"", use:
- element: "Search Amazon searchbox"
- ref: "e90"

Do NOT try to guess CSS selectors - always use the ref IDs from the browser_snapshot output."""


SYSTEM_PROMPT = """You are BrowserBot, an AI agent that controls web browsers autonomously.

You have access to browser automation tools. Use them to:
- Navigate to URLs
- Take snapshots of pages to see content
- Click on elements
- Type text into form fields
- Wait for page elements or durations
- And more browser interactions

Your reasoning process for each iteration:
1. OBSERVE: Analyze the current browser state using browser_snapshot
2. REASON: Decide what action to take next based on the task
3. ACT: Use the appropriate browser tool

IMPORTANT INSTRUCTIONS:

For YOUTUBE/MEDIA tasks:
- After clicking a video, use browser_wait_for with ONLY the time parameter (no text parameter!)
- Calculate the time in seconds: minutes*60 + seconds
- Example: For a 5min 32sec video: browser_wait_for(time=332)
- DO NOT include any text parameter - wait for duration only!

For GOOGLE SEARCH:
- After typing in the search box, you MUST either:
  a) Click the "Google Search" button, OR
  b) Select an option from the dropdown suggestions
- Simply typing is NOT enough - you must trigger the search!
- After the search completes, use browser_snapshot to verify results are shown
- If you need to view a specific result, click on the link to open it

When the task is complete, respond with:
TASK COMPLETE: [explanation of what was accomplished]

If you cannot proceed or the task fails, respond with:
TASK FAILED: [explanation of why it failed]

Think step-by-step and use the tools available to you to accomplish the task."""


LAST_STEP_SYSTEM_PROMPT = """You are BrowserBot, an AI agent that controls web browsers.

IMPORTANT: This is your LAST iteration. You MUST complete the task now or declare it done/failed.

Your response MUST include exactly one of these conclusions:
- "TASK COMPLETE: [explanation]" if the task is finished
- "TASK FAILED: [reason]" if the task cannot be completed

Do not request more iterations. Make your final decision now."""


def build_instructions(is_last_step: bool = False, override: Optional[str] = None) -> str:
    """Build the system instructions for one iteration.

    Args:
        is_last_step: Use the template that forces a verdict
        override: Replaces the standard template (ignored on the last step)

    Returns:
        Instruction text ending with the tool usage block
    """
    if is_last_step:
        base = LAST_STEP_SYSTEM_PROMPT
    else:
        base = override or SYSTEM_PROMPT
    return f"{base}\n\n{TOOL_USAGE_INSTRUCTIONS}"


def format_browser_state(state: BrowserState) -> list[str]:
    """Format the BROWSER STATE block of a user turn."""
    lines = ["BROWSER STATE:", f"- Current URL: {state.url}"]
    if state.title:
        lines.append(f"- Page Title: {state.title}")
    lines.append(f"- Page Loaded: {'Yes' if state.loaded else 'No'}")

    if state.elements:
        lines.append(f"- Interactive Elements: {len(state.elements)} found")
        for element in state.elements[:PREVIEW_ELEMENTS]:
            visibility = "(visible)" if element.visible else "(hidden)"
            lines.append(f'  [{element.ref}] {element.role}: "{element.name}" {visibility}')
        if len(state.elements) > PREVIEW_ELEMENTS:
            lines.append(f"  ... and {len(state.elements) - PREVIEW_ELEMENTS} more elements")

    return lines


def build_user_turn(
    task: str,
    current_step: int,
    max_steps: int,
    observation: Optional[BrowserState] = None,
    is_last_step: bool = False,
) -> str:
    """Build the user message for one iteration.

    Args:
        task: Task text from the user
        current_step: Iteration number (1-based)
        max_steps: Step budget of the run
        observation: Page state from the last snapshot, if any
        is_last_step: Add the final-iteration warning and checklist

    Returns:
        User message text
    """
    parts = [f"TASK: {task}", ""]

    parts.append(f"CURRENT ITERATION: {current_step} of {max_steps} (max)")
    if is_last_step:
        parts.append("WARNING: This is your LAST iteration! Make final decision now.")
    parts.append("")

    if observation is not None:
        parts.extend(format_browser_state(observation))
        parts.append("")

    parts.append("INSTRUCTIONS:")
    if is_last_step:
        parts.append("- This is your FINAL iteration")
        parts.append("- You MUST conclude: either TASK COMPLETE or TASK FAILED")
        parts.append("- Do NOT request more iterations")
    else:
        parts.append("- Analyze the current state")
        parts.append("- Decide on the next action")
        parts.append("- Use available tools to execute the action")
        parts.append('- If task is complete, say "TASK COMPLETE"')
        parts.append('- If stuck, say "TASK FAILED" and explain why')

    return "\n".join(parts)


def build_prompt(
    task: str,
    current_step: int,
    max_steps: int,
    observation: Optional[BrowserState] = None,
    is_last_step: bool = False,
    system_override: Optional[str] = None,
) -> Prompt:
    """Build system instructions and user message together."""
    return Prompt(
        system=build_instructions(is_last_step, override=system_override),
        user=build_user_turn(task, current_step, max_steps, observation, is_last_step),
    )


def extract_section(text: str, name: str) -> Optional[str]:
    """Extract a ``NAME: ...`` section from a structured response.

    The section runs until the next line that starts with another
    upper-case ``HEADER:``.

    Args:
        text: Response text
        name: Section header without the colon

    Returns:
        Stripped section text, or None if absent
    """
    pattern = re.compile(
        rf"{re.escape(name)}:([^\n]+(?:\n(?![A-Z]+:)[^\n]+)*)",
        re.IGNORECASE,
    )
    match = pattern.search(text)
    if not match:
        return None
    return match.group(1).strip() or None


def parse_verdict(text: str) -> Verdict:
    """Parse completion and failure signals from a model response.

    Both flags are computed independently; a response may set both.

    Args:
        text: Full response text of a turn

    Returns:
        Verdict with flags and any structured sections
    """
    lowered = (text or "").lower()
    return Verdict(
        is_complete=any(signal in lowered for signal in COMPLETION_SIGNALS),
        is_failed=any(signal in lowered for signal in FAILURE_SIGNALS),
        observation=extract_section(text or "", "OBSERVATION"),
        reasoning=extract_section(text or "", "REASONING"),
        action=extract_section(text or "", "ACTION"),
    )


def classify_task(task: str) -> frozenset[TaskCategory]:
    """Tag a task by keyword matching on its text.

    Returns:
        Non-empty set of categories; GENERAL only when nothing else matched
    """
    categories = set()
    if _MEDIA_TASK_RE.search(task or ""):
        categories.add(TaskCategory.MEDIA_PLAYBACK)
    if _SEARCH_TASK_RE.search(task or ""):
        categories.add(TaskCategory.WEB_SEARCH)
    if not categories:
        categories.add(TaskCategory.GENERAL)
    return frozenset(categories)


def is_media_url(url: str) -> bool:
    """Check whether a URL points at a media playback page."""
    lowered = (url or "").lower()
    return any(pattern in lowered for pattern in MEDIA_URL_PATTERNS)
