"""
Tests for the Spec Differ
=========================
Set-based missing-line detection and statistics.
"""

import pytest
from typing import List

from spec_diff.differ import DiffEngine, compute_diff, split_lines, join_lines
from spec_diff.models import MissingCandidate, DiffStats


@pytest.fixture
def engine() -> DiffEngine:
    return DiffEngine()


@pytest.fixture
def base_doc() -> List[str]:
    return ["【A】", "x", "y", "【B】", "z"]


@pytest.fixture
def modified_doc() -> List[str]:
    return ["【A】", "x", "【B】", "z"]


class TestSplitLines:
    """Tests for the text/line boundary."""

    def test_trailing_newline_gives_empty_line(self):
        assert split_lines("a\nb\n") == ["a", "b", ""]

    def test_empty_text_is_single_empty_line(self):
        assert split_lines("") == [""]

    def test_carriage_returns_are_kept(self):
        assert split_lines("a\r\nb") == ["a\r", "b"]

    def test_join_reverses_split(self):
        text = "【A】\n\nx\n"
        assert join_lines(split_lines(text)) == text


class TestDiffEngine:
    """Tests for DiffEngine.compute."""

    def test_missing_line_detected(self, engine, base_doc, modified_doc):
        result = engine.compute(base_doc, modified_doc)
        assert result.candidates == [MissingCandidate(id=2, text="y")]
        assert result.stats == DiffStats(shared=4, added=0, removed=1)

    def test_candidates_in_base_order(self, engine):
        base = ["c", "keep", "a", "b"]
        result = engine.compute(base, ["keep"])
        assert result.candidate_ids == [0, 2, 3]
        assert [c.text for c in result.candidates] == ["c", "a", "b"]

    def test_blank_lines_never_candidates(self, engine):
        result = engine.compute(["text", "", "   ", "\t"], ["other"])
        assert result.candidate_ids == [0]

    def test_duplicate_texts_are_distinct_candidates(self, engine):
        result = engine.compute(["dup", "x", "dup"], ["x"])
        assert result.candidates == [
            MissingCandidate(id=0, text="dup"),
            MissingCandidate(id=2, text="dup"),
        ]
        assert result.stats.removed == 2

    def test_shared_counts_every_base_occurrence(self, engine):
        result = engine.compute(["a", "a", "a"], ["a"])
        assert result.candidates == []
        assert result.stats.shared == 3

    def test_blank_base_line_counts_as_shared_when_modified_has_blank(self, engine):
        result = engine.compute(["a", ""], ["a", ""])
        assert result.stats.shared == 2

    def test_blank_base_line_uncounted_when_modified_has_no_blank(self, engine):
        result = engine.compute(["a", ""], ["a"])
        assert result.stats.shared == 1
        assert result.stats.removed == 0

    def test_added_ignores_blank_and_known_lines(self, engine):
        result = engine.compute(["a"], ["a", "new", "", "  ", "new"])
        assert result.stats.added == 2

    def test_comparison_uses_raw_text(self, engine):
        result = engine.compute(["line ", "  indented"], ["line", "indented"])
        assert result.candidate_ids == [0, 1]

    def test_empty_documents(self, engine):
        result = engine.compute([], [])
        assert result.candidates == []
        assert result.stats == DiffStats(0, 0, 0)

    def test_inputs_not_mutated(self, engine, base_doc, modified_doc):
        base_copy, modified_copy = list(base_doc), list(modified_doc)
        engine.compute(base_doc, modified_doc)
        assert base_doc == base_copy
        assert modified_doc == modified_copy

    def test_deterministic(self, engine, base_doc, modified_doc):
        first = engine.compute(base_doc, modified_doc).to_dict()
        second = engine.compute(base_doc, modified_doc).to_dict()
        assert first == second

    def test_every_nonblank_base_line_is_candidate_or_shared(self, engine):
        base = ["【A】", "one", "two", "", "two", "three", "【B】", "four"]
        modified = ["【A】", "two", "【B】", "four", "five"]
        result = engine.compute(base, modified)
        modified_set = set(modified)
        ids = set(result.candidate_ids)
        for index, line in enumerate(base):
            if not line.strip():
                assert index not in ids
                continue
            assert (index in ids) != (line in modified_set)
        nonblank_shared = sum(1 for line in base if line.strip() and line in modified_set)
        assert nonblank_shared + result.stats.removed == sum(1 for line in base if line.strip())


class TestComputeDiff:
    """Tests for the text-level convenience function."""

    def test_compute_from_text(self):
        result = compute_diff("【A】\nx\ny\n【B】\nz", "【A】\nx\n【B】\nz")
        assert result.to_dict() == {
            'candidates': [{'id': 2, 'text': 'y'}],
            'stats': {'shared': 4, 'added': 0, 'removed': 1},
        }

    def test_trailing_newline_participates_as_blank_line(self):
        result = compute_diff("a\n", "a\n")
        assert result.stats.shared == 2
        assert result.candidates == []
