"""
Snapshot compression for BrowserBot.

Turns a verbose accessibility-tree snapshot (YAML-like, one element per line,
nesting expressed by indentation) into a flat listing of the elements the
model can act on:

- skip-link, keyboard-shortcut and accessibility boilerplate sections are dropped
- hidden elements and elements without a reference id are dropped
- structural wrappers (generic, presentation, none, separator) are dropped
- everything else is emitted as ``[ref] role "name" → target``

Typical snapshots shrink by well over 80%. The compressor never raises:
input it cannot make sense of is returned unchanged.
"""

import logging
import re
from typing import Any, Optional

from .types import CompressedSnapshot, ObservationElement

logger = logging.getLogger(__name__)


INTERACTIVE_ROLES = frozenset({
    "button",
    "link",
    "textbox",
    "searchbox",
    "combobox",
    "listbox",
    "checkbox",
    "radio",
    "tab",
    "menuitem",
    "option",
    "slider",
    "spinbutton",
})

# Structural roles that never carry an action on their own
SKIP_ROLES = frozenset({
    "separator",
    "none",
    "presentation",
    "generic",
})

SKIP_NAVIGATION_KEYWORDS = (
    "skip to",
    "skip navigation",
    "keyboard shortcuts",
    "accessibility",
)

METADATA_PREFIXES = (
    "URL:",
    "Title:",
    "Page Loaded:",
    "Page URL:",
    "Page Title:",
)

BANNER = "Interactive Elements (use ref value without brackets for browser tools):"
COUNT_PREFIX = "Total interactive elements:"
HEADER_SCAN_LINES = 10
MIN_NAME_LENGTH = 3

_ROLE_RE = re.compile(r"^-\s+(\w+)")
_NAME_RE = re.compile(r'"([^"]+)"')
_REF_RE = re.compile(r"\[ref=(\w+)\]")
_URL_RE = re.compile(r'/url:\s*"?([^"\s]+)"?')
_HIDDEN_RE = re.compile(r"\(hidden\)")
_URL_CHILD_RE = re.compile(r'^-\s+/url:\s*"?([^"\s]+)"?')
_COMPACT_RE = re.compile(r'^\[(\w+)\]\s+(\w+)(?:\s+"([^"]*)")?(?:\s+→\s+(\S+))?\s*$')


def get_indent_level(line: str) -> int:
    """Get the indentation depth of a line (a tab counts as two spaces)."""
    level = 0
    for char in line:
        if char == " ":
            level += 1
        elif char == "\t":
            level += 2
        else:
            break
    return level


def _is_metadata(stripped: str) -> bool:
    return stripped.lstrip("- ").startswith(METADATA_PREFIXES)


class SnapshotCompressor:
    """Filters page snapshots down to actionable elements."""

    def compress(self, text: str) -> str:
        """Compress a snapshot into the compact listing.

        Args:
            text: Raw snapshot text

        Returns:
            Compact listing, or the input unchanged if it cannot be parsed
        """
        return self.compress_snapshot(text).text

    def compress_snapshot(self, text: str) -> CompressedSnapshot:
        """Compress a snapshot and keep the parsed details.

        Args:
            text: Raw snapshot text

        Returns:
            CompressedSnapshot; its text is the input itself on pass-through
        """
        if not isinstance(text, str) or not text.strip():
            return self._passthrough(text)
        try:
            return self._compress(text)
        except Exception:
            logger.warning("Snapshot compression failed, passing input through", exc_info=True)
            return self._passthrough(text)

    def _passthrough(self, text: Any) -> CompressedSnapshot:
        raw = text if isinstance(text, str) else ("" if text is None else str(text))
        return CompressedSnapshot(
            text=text,
            original_size=len(raw),
            compressed_size=len(raw),
        )

    def _compress(self, text: str) -> CompressedSnapshot:
        lines = text.split("\n")
        url, title, loaded = self._extract_header(lines)

        candidates: list[tuple[ObservationElement, int]] = []
        in_skip_section = False
        skip_depth = 0

        for line in lines:
            stripped = line.strip()
            if not stripped or _is_metadata(stripped):
                continue

            depth = get_indent_level(line)

            if in_skip_section:
                if depth <= skip_depth:
                    in_skip_section = False
                else:
                    continue

            if any(keyword in stripped.lower() for keyword in SKIP_NAVIGATION_KEYWORDS):
                in_skip_section = True
                skip_depth = depth
                continue

            child_url = _URL_CHILD_RE.match(stripped)
            if child_url:
                self._attach_url(candidates, depth, child_url.group(1))
                continue

            element = self.parse_line(stripped)
            if element is not None:
                candidates.append((element, depth))

        if not candidates and not (url or title):
            return self._passthrough(text)

        kept = [element for element, _ in candidates if element.ref and self.is_actionable(element)]

        output: list[str] = []
        if url:
            output.append(f"URL: {url}")
        if title:
            output.append(f"Title: {title}")
        output.append("")
        output.append(BANNER)
        output.append("")
        output.extend(self.format_element(element) for element in kept)
        output.append("")
        output.append(f"{COUNT_PREFIX} {len(kept)}")

        compact = "\n".join(output)
        return CompressedSnapshot(
            text=compact,
            url=url,
            title=title,
            loaded=loaded,
            elements=kept,
            original_size=len(text),
            compressed_size=len(compact),
        )

    @staticmethod
    def _extract_header(lines: list[str]) -> tuple[str, str, bool]:
        url = ""
        title = ""
        loaded = True
        for line in lines[:HEADER_SCAN_LINES]:
            if not url and "URL:" in line:
                url = line.split("URL:", 1)[1].strip()
            elif not title and "Title:" in line:
                title = line.split("Title:", 1)[1].strip()
            elif "Loaded:" in line:
                value = line.split("Loaded:", 1)[1].strip().lower()
                loaded = value not in ("no", "false", "0")
        return url, title, loaded

    @staticmethod
    def _attach_url(
        candidates: list[tuple[ObservationElement, int]],
        depth: int,
        url: str,
    ) -> None:
        """Give a ``- /url:`` child line's target to its owning element."""
        for index in range(len(candidates) - 1, -1, -1):
            element, element_depth = candidates[index]
            if element_depth < depth:
                if not element.url:
                    candidates[index] = (element.with_url(url), element_depth)
                return

    @staticmethod
    def parse_line(line: str) -> Optional[ObservationElement]:
        """Parse one stripped snapshot line into an element.

        Accepts the tree form ``- button "Search" [ref=e12]`` and the
        compact form ``[e12] button "Search" → /target``.

        Args:
            line: Line without leading indentation

        Returns:
            ObservationElement, or None if the line is not an element
        """
        role_match = _ROLE_RE.match(line)
        if role_match:
            name_match = _NAME_RE.search(line)
            ref_match = _REF_RE.search(line)
            url_match = _URL_RE.search(line)
            return ObservationElement(
                role=role_match.group(1),
                name=name_match.group(1) if name_match else "",
                ref=ref_match.group(1) if ref_match else "",
                url=url_match.group(1) if url_match else "",
                visible=not _HIDDEN_RE.search(line),
            )

        compact_match = _COMPACT_RE.match(line)
        if compact_match:
            ref, role, name, url = compact_match.groups()
            return ObservationElement(
                role=role,
                name=name or "",
                ref=ref,
                url=url or "",
            )

        return None

    @staticmethod
    def is_actionable(element: ObservationElement) -> bool:
        """Decide whether an element is worth showing to the model."""
        if not element.visible:
            return False
        if element.role in SKIP_ROLES:
            return False
        if element.role in INTERACTIVE_ROLES:
            return True
        if element.url:
            return True
        return len(element.name.strip()) >= MIN_NAME_LENGTH

    @staticmethod
    def format_element(element: ObservationElement) -> str:
        """Format an element as a single listing line."""
        parts = [f"[{element.ref}]", element.role]
        if element.name:
            parts.append(f'"{element.name}"')
        if element.url:
            parts.append(f"→ {element.url}")
        return " ".join(parts)


_default_compressor = SnapshotCompressor()


def compress_snapshot(text: str) -> str:
    """Compress a snapshot with the default compressor."""
    return _default_compressor.compress(text)
