"""
Structural Merger v1.0.0
========================
Restores selected missing lines into the modified document.

Each selected line goes back under the heading that owned it in the base
document, directly after the last occurrence of that heading's section in
the modified document. Lines whose heading is not present in the modified
document (or that had no heading) are collected into an overflow block
appended at the end.
"""

from typing import Dict, Iterable, List, Sequence

from config_logging import get_logger, NothingToMergeError

from .differ import DiffEngine, split_lines
from .headings import (
    HEADING_OPEN,
    HEADING_CLOSE,
    heading_owners,
    heading_positions,
    section_end,
)
from .models import MergeResult

logger = get_logger('spec_diff.merger')

OVERFLOW_SEPARATOR = '---'
OVERFLOW_MARKER = '[Auto-Appended Missing Blocks]'


def overflow_block(orphans: Sequence[str]) -> List[str]:
    """Lines appended after the document for orphan lines."""
    return ['', OVERFLOW_SEPARATOR, OVERFLOW_MARKER, ''] + list(orphans)


class StructuralMerger:
    """
    Heading-aware reinsertion of missing lines.

    Stateless apart from the heading markers; safe to share between threads.
    """

    def __init__(self, heading_open: str = HEADING_OPEN,
                 heading_close: str = HEADING_CLOSE,
                 engine: DiffEngine = None):
        self.heading_open = heading_open
        self.heading_close = heading_close
        self.engine = engine or DiffEngine()

    def merge(self, base: Sequence[str], modified: Sequence[str],
              selected: Iterable[int]) -> MergeResult:
        """
        Insert the selected missing lines into a copy of ``modified``.

        Args:
            base: Original document lines
            modified: Modified document lines
            selected: Candidate ids (base line indices) to restore

        Returns:
            MergeResult holding a new line list

        Raises:
            NothingToMergeError: if no selected id names a missing candidate
        """
        selected_ids = set(selected)
        candidates = self.engine.compute(base, modified).candidates
        chosen = [c for c in candidates if c.id in selected_ids]

        ignored = selected_ids - {c.id for c in chosen}
        if ignored:
            logger.warning(f"Ignoring {len(ignored)} selected id(s) that are not missing lines: "
                           f"{sorted(ignored)[:20]}")

        if not chosen:
            raise NothingToMergeError(selected=len(selected_ids))

        owners = heading_owners(base, self.heading_open, self.heading_close)
        positions = heading_positions(modified, self.heading_open, self.heading_close)

        groups: Dict[str, List[str]] = {}
        orphans: List[str] = []
        for candidate in chosen:
            heading = owners[candidate.id]
            if heading is not None and heading in positions:
                groups.setdefault(heading, []).append(candidate.text)
            else:
                orphans.append(candidate.text)

        # Insertion points refer to the untouched modified sequence
        insertions: Dict[int, List[str]] = {}
        for heading, lines in groups.items():
            last = positions[heading][-1]
            point = section_end(modified, last, self.heading_open, self.heading_close)
            insertions.setdefault(point, []).extend(lines)

        merged: List[str] = []
        for index, line in enumerate(modified):
            merged.extend(insertions.get(index, ()))
            merged.append(line)
        merged.extend(insertions.get(len(modified), ()))

        if orphans:
            merged.extend(overflow_block(orphans))

        result = MergeResult(lines=merged, inserted=groups, orphans=orphans)
        logger.info(
            f"Merge complete: {result.inserted_count} line(s) restored, "
            f"{len(groups)} heading group(s), {len(orphans)} orphan(s)"
        )
        return result

    def merge_text(self, base_text: str, modified_text: str,
                   selected: Iterable[int]) -> MergeResult:
        """Merge using raw document text."""
        return self.merge(split_lines(base_text), split_lines(modified_text), selected)


# Convenience function
def merge_documents(base_text: str, modified_text: str, selected: Iterable[int],
                    **kwargs) -> MergeResult:
    """
    Restore selected missing lines from ``base_text`` into ``modified_text``.

    Args:
        base_text: Original text
        modified_text: Modified text
        selected: Candidate ids to restore
        **kwargs: Passed to StructuralMerger (heading markers)

    Returns:
        MergeResult
    """
    return StructuralMerger(**kwargs).merge_text(base_text, modified_text, selected)
