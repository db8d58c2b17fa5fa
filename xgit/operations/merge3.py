"""Line-level three-way merge of file contents.

Both sides are diffed against the base. Changes from either side that
overlap or touch the same base lines form one region; a region changed by
one side takes that side, a region both sides changed identically takes
either, and anything else becomes a conflict block.
"""

from dataclasses import dataclass
from difflib import SequenceMatcher
from typing import List, Tuple

OURS = 0
THEIRS = 1

# (base_start, base_end, replacement_lines, side)
Change = Tuple[int, int, List[bytes], int]


@dataclass
class TextMergeResult:
    content: bytes
    conflicts: int

    @property
    def clean(self) -> bool:
        return self.conflicts == 0


def _changes(base: List[bytes], other: List[bytes], side: int) -> List[Change]:
    matcher = SequenceMatcher(None, base, other, autojunk=False)
    return [
        (i1, i2, other[j1:j2], side)
        for tag, i1, i2, j1, j2 in matcher.get_opcodes()
        if tag != 'equal'
    ]


def _apply(base: List[bytes], start: int, end: int, changes: List[Change]) -> List[bytes]:
    """Apply one side's changes to base[start:end]."""
    out: List[bytes] = []
    pos = start
    for c_start, c_end, lines, _ in changes:
        out.extend(base[pos:c_start])
        out.extend(lines)
        pos = c_end
    out.extend(base[pos:end])
    return out


def _terminated(lines: List[bytes]) -> List[bytes]:
    if lines and not lines[-1].endswith(b'\n'):
        return lines[:-1] + [lines[-1] + b'\n']
    return lines


def merge_lines(
    base: List[bytes],
    ours: List[bytes],
    theirs: List[bytes],
    ours_label: str = 'HEAD',
    theirs_label: str = 'theirs',
) -> Tuple[List[bytes], int]:
    """
    Merge two edited versions of a list of lines.

    Args:
        base: Common ancestor lines (with line endings)
        ours: Our lines
        theirs: Their lines
        ours_label: Name after the ``<<<<<<<`` marker
        theirs_label: Name after the ``>>>>>>>`` marker

    Returns:
        Tuple of (merged lines, number of conflict blocks)
    """
    changes = sorted(
        _changes(base, ours, OURS) + _changes(base, theirs, THEIRS),
        key=lambda c: (c[0], c[1], c[3]),
    )

    merged: List[bytes] = []
    conflicts = 0
    pos = 0
    i = 0
    while i < len(changes):
        start, end = changes[i][0], changes[i][1]
        region = [changes[i]]
        i += 1
        while i < len(changes) and changes[i][0] <= end:
            region.append(changes[i])
            end = max(end, changes[i][1])
            i += 1

        merged.extend(base[pos:start])
        ours_changes = [c for c in region if c[3] == OURS]
        theirs_changes = [c for c in region if c[3] == THEIRS]
        ours_lines = _apply(base, start, end, ours_changes)
        theirs_lines = _apply(base, start, end, theirs_changes)

        if not theirs_changes or ours_lines == theirs_lines:
            merged.extend(ours_lines)
        elif not ours_changes:
            merged.extend(theirs_lines)
        else:
            conflicts += 1
            merged.append(f'<<<<<<< {ours_label}\n'.encode())
            merged.extend(_terminated(ours_lines))
            merged.append(b'=======\n')
            merged.extend(_terminated(theirs_lines))
            merged.append(f'>>>>>>> {theirs_label}\n'.encode())
        pos = end

    merged.extend(base[pos:])
    return merged, conflicts


def merge_text(
    base: bytes,
    ours: bytes,
    theirs: bytes,
    ours_label: str = 'HEAD',
    theirs_label: str = 'theirs',
) -> TextMergeResult:
    """
    Three-way merge of whole file contents.

    Args:
        base: Ancestor content (b'' for a file added on both sides)
        ours: Our content
        theirs: Their content

    Returns:
        TextMergeResult with the merged bytes (including conflict markers)
    """
    lines, conflicts = merge_lines(
        base.splitlines(keepends=True),
        ours.splitlines(keepends=True),
        theirs.splitlines(keepends=True),
        ours_label,
        theirs_label,
    )
    return TextMergeResult(b''.join(lines), conflicts)


def conflict_content(
    ours: bytes,
    theirs: bytes,
    ours_label: str = 'HEAD',
    theirs_label: str = 'theirs',
) -> bytes:
    """Whole-file conflict block, for modify/delete and add/add conflicts."""
    parts = [f'<<<<<<< {ours_label}\n'.encode()]
    parts.extend(_terminated(ours.splitlines(keepends=True)))
    parts.append(b'=======\n')
    parts.extend(_terminated(theirs.splitlines(keepends=True)))
    parts.append(f'>>>>>>> {theirs_label}\n'.encode())
    return b''.join(parts)
