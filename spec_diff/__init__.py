"""
Spec Diff Module v1.0.0
=======================
Finds lines of a base document that are missing from a modified version
and restores a selected subset of them into the modified document,
keeping each line inside its original 【heading】 section.

Features:
- Set-based missing-line detection with shared/added/removed counts
- Heading-aware reinsertion after the last occurrence of a section
- Overflow block for lines whose section no longer exists
- Plain text upload and download helpers
"""

from .routes import sd_blueprint
from .differ import DiffEngine, compute_diff, split_lines, join_lines
from .merger import StructuralMerger, merge_documents, OVERFLOW_SEPARATOR, OVERFLOW_MARKER
from .headings import is_heading, heading_owners, heading_positions
from .models import (
    MissingCandidate,
    DiffStats,
    DiffResult,
    MergeResult,
    SelectionSet
)

__version__ = "1.0.0"
__all__ = [
    'sd_blueprint',
    'DiffEngine',
    'StructuralMerger',
    'compute_diff',
    'merge_documents',
    'split_lines',
    'join_lines',
    'is_heading',
    'heading_owners',
    'heading_positions',
    'OVERFLOW_SEPARATOR',
    'OVERFLOW_MARKER',
    'MissingCandidate',
    'DiffStats',
    'DiffResult',
    'MergeResult',
    'SelectionSet'
]
