"""
Spec Diff Models v1.0.0
=======================
Data classes for missing-line detection and structural merge results.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Any, Iterable, Iterator, Set


@dataclass(frozen=True)
class MissingCandidate:
    """
    A base-document line whose text does not occur in the modified document.

    Attributes:
        id: 0-based index of the line in the base document
        text: Raw line text (never blank)
    """
    id: int
    text: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {'id': self.id, 'text': self.text}


@dataclass(frozen=True)
class DiffStats:
    """
    Aggregate counts for a base/modified comparison.

    The three counts are independent set-membership tallies, so they do not
    have to add up to the combined line count of both documents.

    Attributes:
        shared: Base lines (positional, blanks included) whose text occurs in modified
        added: Non-blank modified lines whose text does not occur in base
        removed: Number of missing candidates
    """
    shared: int = 0
    added: int = 0
    removed: int = 0

    def to_dict(self) -> Dict[str, int]:
        """Convert to dictionary for JSON serialization."""
        return {
            'shared': self.shared,
            'added': self.added,
            'removed': self.removed
        }


@dataclass
class DiffResult:
    """
    Result of comparing a base document against a modified document.

    Attributes:
        candidates: Missing candidates in base order (ascending id)
        stats: Aggregate counts
    """
    candidates: List[MissingCandidate] = field(default_factory=list)
    stats: DiffStats = field(default_factory=DiffStats)

    @property
    def candidate_ids(self) -> List[int]:
        """Ids of all candidates, in base order."""
        return [c.id for c in self.candidates]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'candidates': [c.to_dict() for c in self.candidates],
            'stats': self.stats.to_dict()
        }


@dataclass
class MergeResult:
    """
    Modified document with selected missing lines restored.

    Attributes:
        lines: The merged document as a new list of lines
        inserted: Lines placed under each heading, keyed by heading text,
                  in the order the groups were discovered
        orphans: Lines appended to the overflow block
    """
    lines: List[str] = field(default_factory=list)
    inserted: Dict[str, List[str]] = field(default_factory=dict)
    orphans: List[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        """Merged document joined with newlines."""
        return '\n'.join(self.lines)

    @property
    def inserted_count(self) -> int:
        """Total number of restored lines, orphans included."""
        return sum(len(v) for v in self.inserted.values()) + len(self.orphans)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'lines': list(self.lines),
            'text': self.text,
            'inserted': {k: list(v) for k, v in self.inserted.items()},
            'orphans': list(self.orphans),
            'inserted_count': self.inserted_count
        }


class SelectionSet:
    """
    Caller-owned set of candidate ids chosen for restoration.

    Created empty at the start of a merge session, mutated by toggle,
    select-all and clear, then read by the merger.
    """

    def __init__(self, ids: Iterable[int] = ()):
        self._ids: Set[int] = set(ids)

    def toggle(self, candidate_id: int) -> bool:
        """Flip selection of an id. Returns True if it is now selected."""
        if candidate_id in self._ids:
            self._ids.discard(candidate_id)
            return False
        self._ids.add(candidate_id)
        return True

    def select(self, candidate_id: int):
        self._ids.add(candidate_id)

    def deselect(self, candidate_id: int):
        self._ids.discard(candidate_id)

    def select_all(self, candidates: Iterable[MissingCandidate]):
        """Replace the selection with every given candidate."""
        self._ids = {c.id for c in candidates}

    def clear(self):
        self._ids = set()

    @property
    def ids(self) -> frozenset:
        return frozenset(self._ids)

    def __contains__(self, candidate_id: object) -> bool:
        return candidate_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._ids))

    def __repr__(self) -> str:
        return f"SelectionSet({sorted(self._ids)!r})"
