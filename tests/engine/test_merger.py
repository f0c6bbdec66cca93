"""
Tests for the Structural Merger
===============================
Heading-aware reinsertion and the overflow block.
"""

import pytest
from typing import List

from config_logging import NothingToMergeError
from spec_diff.differ import DiffEngine
from spec_diff.merger import (
    StructuralMerger,
    merge_documents,
    overflow_block,
    OVERFLOW_SEPARATOR,
    OVERFLOW_MARKER,
)
from spec_diff.models import SelectionSet


@pytest.fixture
def merger() -> StructuralMerger:
    return StructuralMerger()


def _is_subsequence(needle: List[str], haystack: List[str]) -> bool:
    it = iter(haystack)
    return all(any(item == candidate for candidate in it) for item in needle)


class TestHeadingPlacement:
    """Lines return to the section that owned them in the base document."""

    def test_line_restored_into_its_section(self, merger):
        base = ["【A】", "x", "y", "【B】", "z"]
        modified = ["【A】", "x", "【B】", "z"]
        result = merger.merge(base, modified, {2})
        assert result.lines == ["【A】", "x", "y", "【B】", "z"]
        assert result.inserted == {"【A】": ["y"]}
        assert result.orphans == []

    def test_inserted_after_last_occurrence_of_repeated_heading(self, merger):
        base = ["【A】", "a1", "lost", "【B】", "b1"]
        modified = ["【A】", "a1", "【B】", "b1", "【C】", "【A】", "a2", "【D】"]
        result = merger.merge(base, modified, [2])
        assert result.lines == [
            "【A】", "a1", "【B】", "b1", "【C】", "【A】", "a2", "lost", "【D】"
        ]

    def test_last_section_inserts_at_document_end(self, merger):
        base = ["【A】", "a", "【B】", "b", "gone"]
        modified = ["【A】", "a", "【B】", "b"]
        result = merger.merge(base, modified, [4])
        assert result.lines == ["【A】", "a", "【B】", "b", "gone"]

    def test_heading_as_final_line(self, merger):
        base = ["【A】", "gone"]
        modified = ["intro", "【A】"]
        result = merger.merge(base, modified, [1])
        assert result.lines == ["intro", "【A】", "gone"]

    def test_group_keeps_base_order(self, merger):
        base = ["【A】", "one", "two", "three"]
        modified = ["【A】", "two", "【B】"]
        result = merger.merge(base, modified, [3, 1])
        assert result.lines == ["【A】", "two", "one", "three", "【B】"]

    def test_groups_do_not_shift_each_other(self, merger):
        # 【B】 is discovered first but sits later in the modified document
        base = ["【B】", "b-lost", "【A】", "a-lost"]
        modified = ["【A】", "a", "【B】", "b"]
        result = merger.merge(base, modified, [1, 3])
        assert result.lines == ["【A】", "a", "a-lost", "【B】", "b", "b-lost"]
        assert list(result.inserted) == ["【B】", "【A】"]

    def test_many_groups(self, merger):
        base = ["【A】", "a+", "【B】", "b+", "【C】", "c+"]
        modified = ["【C】", "c", "【B】", "b", "【A】", "a"]
        result = merger.merge(base, modified, [1, 3, 5])
        assert result.lines == ["【C】", "c", "c+", "【B】", "b", "b+", "【A】", "a", "a+"]

    def test_heading_matched_on_trimmed_text(self, merger):
        base = ["  【A】  ", "lost"]
        modified = ["【A】", "kept"]
        result = merger.merge(base, modified, [1])
        assert result.lines == ["【A】", "kept", "lost"]


class TestOrphans:
    """Lines without a matching section go to the overflow block."""

    def test_line_without_heading_is_orphan(self, merger):
        base = ["note", "【A】", "x"]
        modified = ["【A】", "x"]
        result = merger.merge(base, modified, [0])
        assert result.lines == [
            "【A】", "x", "", "---", "[Auto-Appended Missing Blocks]", "", "note"
        ]
        assert result.orphans == ["note"]

    def test_heading_missing_from_modified(self, merger):
        base = ["【Old】", "x"]
        modified = ["【New】", "y"]
        result = merger.merge(base, modified, [0, 1])
        assert result.lines == ["【New】", "y"] + overflow_block(["【Old】", "x"])
        assert result.inserted == {}

    def test_similar_heading_does_not_match(self, merger):
        base = ["【A】概要", "lost"]
        modified = ["【A】", "kept"]
        result = merger.merge(base, modified, [1])
        assert result.lines[:2] == ["【A】", "kept"]
        assert result.orphans == ["lost"]

    def test_malformed_heading_falls_back_to_no_section(self, merger):
        base = ["【A", "lost"]
        modified = ["【A", "kept"]
        result = merger.merge(base, modified, [1])
        assert result.orphans == ["lost"]

    def test_overflow_follows_section_insertions(self, merger):
        base = ["stray", "【A】", "a-lost"]
        modified = ["【A】", "a"]
        result = merger.merge(base, modified, [0, 2])
        assert result.lines == [
            "【A】", "a", "a-lost", "", OVERFLOW_SEPARATOR, OVERFLOW_MARKER, "", "stray"
        ]
        assert result.inserted_count == 2


class TestMergeGuarantees:
    """Properties that hold for every merge."""

    @pytest.fixture
    def docs(self):
        base = ["head", "【A】", "a1", "a2", "【B】", "b1", "b2", "【C】", "c1"]
        modified = ["【B】", "b1", "new", "【A】", "a2", "【B】", "x"]
        return base, modified

    def test_empty_selection_raises(self, merger, docs):
        base, modified = docs
        with pytest.raises(NothingToMergeError):
            merger.merge(base, modified, SelectionSet())

    def test_selection_without_candidates_raises(self, merger, docs):
        base, modified = docs
        # 2 is "a1" (missing), 5 is "b1" (present), 99 is out of range
        with pytest.raises(NothingToMergeError):
            merger.merge(base, modified, [5, 99])

    def test_non_candidate_ids_ignored(self, merger, docs):
        base, modified = docs
        result = merger.merge(base, modified, [2, 5, 99])
        assert result.inserted_count == 1

    def test_existing_lines_preserved_in_order(self, merger, docs):
        base, modified = docs
        all_ids = DiffEngine().compute(base, modified).candidate_ids
        result = merger.merge(base, modified, all_ids)
        assert _is_subsequence(modified, result.lines)

    def test_inserted_lines_are_exactly_the_selection(self, merger, docs):
        base, modified = docs
        selected = [0, 2, 6, 8]
        result = merger.merge(base, modified, selected)
        restored = list(result.lines)
        for line in modified:
            restored.remove(line)
        restored = [line for line in restored
                    if line not in ("", OVERFLOW_SEPARATOR, OVERFLOW_MARKER)]
        assert sorted(restored) == sorted(base[i] for i in selected)

    def test_inputs_not_mutated(self, merger, docs):
        base, modified = docs
        base_copy, modified_copy = list(base), list(modified)
        merger.merge(base, modified, [0, 2, 6, 7, 8])
        assert base == base_copy
        assert modified == modified_copy

    def test_deterministic(self, merger, docs):
        base, modified = docs
        first = merger.merge(base, modified, [0, 2, 6, 8]).text
        second = merger.merge(base, modified, [8, 6, 2, 0]).text
        assert first == second

    def test_section_placement_of_fixture(self, merger, docs):
        base, modified = docs
        result = merger.merge(base, modified, [2, 6])
        # a1 under 【A】, b2 after the last 【B】
        assert result.lines == [
            "【B】", "b1", "new", "【A】", "a2", "a1", "【B】", "x", "b2"
        ]


class TestMergeText:
    """Text-level entry points and marker configuration."""

    def test_merge_documents_text(self):
        result = merge_documents("【A】\nx\ny\n【B】\nz", "【A】\nx\n【B】\nz", [2])
        assert result.text == "【A】\nx\ny\n【B】\nz"

    def test_custom_heading_markers(self):
        merger = StructuralMerger(heading_open='[', heading_close=']')
        result = merger.merge_text("[A]\nlost\n[B]\nb", "[A]\n[B]\nb", [1])
        assert result.lines == ["[A]", "lost", "[B]", "b"]

    def test_default_markers_ignore_square_brackets(self, merger):
        result = merger.merge_text("[A]\nlost", "[A]", [1])
        assert result.orphans == ["lost"]
