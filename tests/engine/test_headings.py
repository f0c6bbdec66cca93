"""
Tests for Heading Sections
==========================
"""

import pytest

from spec_diff.headings import is_heading, heading_owners, heading_positions, section_end


class TestIsHeading:
    """Tests for heading recognition."""

    @pytest.mark.parametrize("line", ["【A】", "  【概要】  ", "【A】 trailing text", "\t【x】\r"])
    def test_recognized(self, line):
        assert is_heading(line)

    @pytest.mark.parametrize("line", ["【A", "A】", "text 【A】", "", "[A]"])
    def test_not_recognized(self, line):
        assert not is_heading(line)

    def test_custom_markers(self):
        assert is_heading("## [Setup]", open_mark="## [", close_mark="]")
        assert not is_heading("【A】", open_mark="[", close_mark="]")


class TestSectionMaps:
    """Tests for ownership and occurrence maps."""

    def test_owners(self):
        lines = ["intro", "【A】", "a", " 【B】 ", "b", "【A】"]
        assert heading_owners(lines) == (None, "【A】", "【A】", "【B】", "【B】", "【A】")

    def test_owners_without_headings(self):
        assert heading_owners(["x", "y"]) == (None, None)

    def test_owners_is_immutable(self):
        assert isinstance(heading_owners(["【A】"]), tuple)

    def test_positions_track_repeats(self):
        lines = ["【A】", "x", "【B】", "【A】 ", "y"]
        assert heading_positions(lines) == {"【A】": [0, 3], "【B】": [2]}

    def test_section_end(self):
        lines = ["【A】", "a", "【B】", "b"]
        assert section_end(lines, 0) == 2
        assert section_end(lines, 2) == 4
