"""
Tests for snapshot compression.
"""

from unittest.mock import patch

import pytest

from browserbot.compressor import (
    BANNER,
    SnapshotCompressor,
    compress_snapshot,
    get_indent_level,
)
from browserbot.types import ObservationElement


def _large_snapshot(wrappers: int = 200) -> str:
    lines = ["URL: https://example.com/catalog", "Title: Catalog", ""]
    for i in range(wrappers):
        lines.append(f"- generic [ref=g{i}]:")
        lines.append(f"  - paragraph: Lorem ipsum dolor sit amet, consectetur adipiscing elit {i}")
        lines.append("  - img")
    lines.append('- button "Add to cart" [ref=b1]')
    lines.append('- link "Checkout" [ref=b2]:')
    lines.append("  - /url: /checkout")
    return "\n".join(lines)


class TestCompressorOutput:
    """Shape and content of the compact listing."""

    @pytest.fixture
    def compressor(self):
        return SnapshotCompressor()

    def test_sample_snapshot(self, compressor, sample_snapshot, sample_compressed):
        assert compressor.compress(sample_snapshot) == sample_compressed

    def test_drops_skip_section_and_hidden(self, compressor, sample_snapshot):
        result = compressor.compress(sample_snapshot)
        assert "Skip to main content" not in result
        assert "Keyboard shortcuts" not in result
        assert "Hidden control" not in result
        assert "No ref here" not in result
        assert "separator" not in result
        assert "generic" not in result

    def test_url_child_attaches_to_owner(self, compressor, sample_snapshot):
        snapshot = compressor.compress_snapshot(sample_snapshot)
        home = next(e for e in snapshot.elements if e.ref == "e4")
        assert home.url == "/"

    def test_header_parsed(self, compressor, sample_snapshot):
        snapshot = compressor.compress_snapshot(sample_snapshot)
        assert snapshot.url == "https://www.youtube.com/watch?v=abc"
        assert snapshot.title == "Lofi Beats - YouTube"
        assert snapshot.loaded is True

    def test_page_loaded_no(self, compressor):
        text = 'Page URL: https://a.test\nPage Loaded: No\n\n- button "Go" [ref=e1]'
        snapshot = compressor.compress_snapshot(text)
        assert snapshot.loaded is False
        assert snapshot.url == "https://a.test"

    def test_count_matches_elements(self, compressor, sample_snapshot):
        snapshot = compressor.compress_snapshot(sample_snapshot)
        assert snapshot.text.endswith(f"Total interactive elements: {len(snapshot.elements)}")
        assert BANNER in snapshot.text

    def test_large_snapshot_reduction(self, compressor):
        snapshot = compressor.compress_snapshot(_large_snapshot())
        assert [e.ref for e in snapshot.elements] == ["b1", "b2"]
        assert snapshot.reduction > 80

    def test_skip_section_ends_at_sibling(self, compressor):
        text = "\n".join([
            "URL: https://a.test",
            '- region "Accessibility links" [ref=e1]:',
            '  - link "Help center" [ref=e2]',
            '- link "Pricing" [ref=e3]',
        ])
        snapshot = compressor.compress_snapshot(text)
        assert [e.ref for e in snapshot.elements] == ["e3"]


class TestCompressorPassthrough:
    """Input that cannot be compressed comes back unchanged."""

    @pytest.fixture
    def compressor(self):
        return SnapshotCompressor()

    def test_empty(self, compressor):
        assert compressor.compress("") == ""
        assert compressor.compress("   \n") == "   \n"

    def test_prose(self, compressor):
        text = "The page could not be captured.\nTry again later."
        assert compressor.compress(text) == text

    def test_internal_error_fails_open(self, compressor, sample_snapshot):
        with patch.object(SnapshotCompressor, "_compress", side_effect=RuntimeError("boom")):
            assert compressor.compress(sample_snapshot) == sample_snapshot

    def test_idempotent(self, compressor, sample_snapshot):
        once = compressor.compress(sample_snapshot)
        assert compressor.compress(once) == once

    def test_idempotent_large(self, compressor):
        once = compressor.compress(_large_snapshot())
        assert compressor.compress(once) == once

    def test_module_level_helper(self, sample_snapshot, sample_compressed):
        assert compress_snapshot(sample_snapshot) == sample_compressed


class TestLineParsing:
    """Single-line helpers."""

    def test_indent_levels(self):
        assert get_indent_level("- a") == 0
        assert get_indent_level("    - a") == 4
        assert get_indent_level("\t- a") == 2

    def test_parse_tree_line(self):
        element = SnapshotCompressor.parse_line('- link "Docs" [ref=e7] /url: https://docs.test')
        assert element == ObservationElement(role="link", name="Docs", ref="e7", url="https://docs.test")

    def test_parse_compact_line(self):
        element = SnapshotCompressor.parse_line('[e9] button "Play" → /watch')
        assert element == ObservationElement(role="button", name="Play", ref="e9", url="/watch")

    def test_parse_non_element(self):
        assert SnapshotCompressor.parse_line("Just some text") is None

    def test_short_names_are_not_actionable(self):
        assert not SnapshotCompressor.is_actionable(ObservationElement(role="img", name="ok", ref="e1"))
        assert SnapshotCompressor.is_actionable(ObservationElement(role="img", name="Logo", ref="e1"))
        assert SnapshotCompressor.is_actionable(ObservationElement(role="button", ref="e1"))

    def test_format_element(self):
        element = ObservationElement(role="link", name="Home", ref="e1", url="/")
        assert SnapshotCompressor.format_element(element) == '[e1] link "Home" → /'
        assert SnapshotCompressor.format_element(ObservationElement(role="button", ref="e2")) == "[e2] button"
