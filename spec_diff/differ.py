"""
Spec Differ v1.0.0
==================
Membership-based line diff between a base and a modified document.

Lines are compared by raw text using set membership only. There is no
sequence alignment, so a line that was moved is not reported and a text
duplicated in the base counts as shared for every occurrence as long as it
appears at least once in the modified document.
"""

from typing import List, Sequence

from config_logging import get_logger

from .models import MissingCandidate, DiffStats, DiffResult

logger = get_logger('spec_diff.differ')


def split_lines(text: str) -> List[str]:
    """
    Split document text into lines.

    Splits on '\\n' only. A trailing newline yields a trailing empty line and
    an empty text yields a single empty line; nothing is stripped.
    """
    return (text or '').split('\n')


def join_lines(lines: Sequence[str]) -> str:
    """Inverse of split_lines."""
    return '\n'.join(lines)


class DiffEngine:
    """
    Detects base lines missing from a modified document.

    Stateless; one instance may be shared between threads.
    """

    def compute(self, base: Sequence[str], modified: Sequence[str]) -> DiffResult:
        """
        Compare two documents given as line sequences.

        Args:
            base: Original document lines
            modified: Modified document lines

        Returns:
            DiffResult with candidates in base order and aggregate stats
        """
        modified_set = set(modified)
        base_set = set(base)

        candidates = [
            MissingCandidate(id=index, text=line)
            for index, line in enumerate(base)
            if line.strip() and line not in modified_set
        ]

        stats = DiffStats(
            shared=sum(1 for line in base if line in modified_set),
            added=sum(1 for line in modified if line.strip() and line not in base_set),
            removed=len(candidates)
        )

        logger.debug(
            f"Diff computed: base={len(base)} lines, modified={len(modified)} lines, "
            f"shared={stats.shared}, added={stats.added}, removed={stats.removed}"
        )

        return DiffResult(candidates=candidates, stats=stats)

    def compute_text(self, base_text: str, modified_text: str) -> DiffResult:
        """Compare two documents given as raw text."""
        return self.compute(split_lines(base_text), split_lines(modified_text))


# Convenience function
def compute_diff(base_text: str, modified_text: str) -> DiffResult:
    """
    Compute missing candidates between two texts.

    Args:
        base_text: Original text
        modified_text: Modified text

    Returns:
        DiffResult
    """
    return DiffEngine().compute_text(base_text, modified_text)
