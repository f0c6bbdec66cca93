"""
Heading Sections
================
Recognition of bracketed heading lines (【...】) and the section maps the
merger needs: which heading owns each line, and where each heading occurs.
"""

from typing import Dict, List, Optional, Sequence, Tuple

HEADING_OPEN = '【'
HEADING_CLOSE = '】'


def is_heading(line: str, open_mark: str = HEADING_OPEN,
               close_mark: str = HEADING_CLOSE) -> bool:
    """True if the trimmed line starts with the open mark and contains the close mark."""
    trimmed = line.strip()
    return trimmed.startswith(open_mark) and close_mark in trimmed


def heading_owners(lines: Sequence[str], open_mark: str = HEADING_OPEN,
                   close_mark: str = HEADING_CLOSE) -> Tuple[Optional[str], ...]:
    """
    Map every line index to the trimmed text of its nearest preceding heading.

    A heading line owns itself. Lines before the first heading map to None.

    Args:
        lines: Document lines
        open_mark: Opening heading bracket
        close_mark: Closing heading bracket

    Returns:
        Tuple indexed like ``lines``
    """
    owners = []
    current = None
    for line in lines:
        if is_heading(line, open_mark, close_mark):
            current = line.strip()
        owners.append(current)
    return tuple(owners)


def heading_positions(lines: Sequence[str], open_mark: str = HEADING_OPEN,
                      close_mark: str = HEADING_CLOSE) -> Dict[str, List[int]]:
    """
    Collect every index at which each heading occurs.

    Returns:
        Dict of trimmed heading text -> ascending list of line indices,
        in order of first occurrence
    """
    positions: Dict[str, List[int]] = {}
    for index, line in enumerate(lines):
        if is_heading(line, open_mark, close_mark):
            positions.setdefault(line.strip(), []).append(index)
    return positions


def section_end(lines: Sequence[str], heading_index: int, open_mark: str = HEADING_OPEN,
                close_mark: str = HEADING_CLOSE) -> int:
    """Index of the first heading after ``heading_index``, or ``len(lines)``."""
    for index in range(heading_index + 1, len(lines)):
        if is_heading(lines[index], open_mark, close_mark):
            return index
    return len(lines)
