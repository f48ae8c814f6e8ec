"""
Line-level diff between two texts.

The edit script comes from a longest-common-subsequence alignment of the
two line sequences. Walking the LCS table from the top, equal lines are
matched as soon as they are seen, so when several minimal alignments exist
the earliest occurrences are the ones kept as unchanged. At a point where
either a removal or an addition is optimal, the removal is emitted first.

Everything here is pure: no I/O, no shared state.
"""
import enum
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from core.config import settings
from core.exceptions import DiffTooLargeException

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class DiffKind(str, enum.Enum):
    added = "added"
    removed = "removed"
    unchanged = "unchanged"


@dataclass(frozen=True)
class DiffLine:
    """One line of an edit script.

    ``old_line_number`` is set for removed and unchanged lines,
    ``new_line_number`` for added and unchanged lines. Both are 1-based.
    """
    kind: DiffKind
    text: str
    old_line_number: Optional[int] = None
    new_line_number: Optional[int] = None

    @property
    def line_number(self) -> int:
        """The number of the line on its own side (new side for additions)."""
        if self.kind is DiffKind.added:
            return self.new_line_number
        return self.old_line_number


@dataclass(frozen=True)
class DiffResult:
    """Ordered edit script in document order."""
    lines: Tuple[DiffLine, ...]

    def __iter__(self):
        return iter(self.lines)

    def __len__(self):
        return len(self.lines)

    def count(self, kind: DiffKind) -> int:
        return sum(1 for line in self.lines if line.kind is kind)

    @property
    def added(self) -> int:
        return self.count(DiffKind.added)

    @property
    def removed(self) -> int:
        return self.count(DiffKind.removed)

    @property
    def unchanged(self) -> int:
        return self.count(DiffKind.unchanged)

    @property
    def change_percentage(self) -> int:
        from services.comparison import change_percentage
        return change_percentage(self)


def split_lines(text: str) -> List[str]:
    """Split on \\n, \\r\\n or \\r.

    A single trailing line break ends the last line instead of opening an
    empty one, so ``"a\\n"`` is one line and ``""`` is none.
    """
    if not text:
        return []
    lines = _LINE_BREAK.split(text)
    if lines[-1] == "":
        lines.pop()
    return lines


def _lcs_table(old: Sequence[int], new: Sequence[int]) -> List[List[int]]:
    # table[i][j] is the LCS length of old[i:] and new[j:]
    n, m = len(old), len(new)
    table = [[0] * (m + 1) for _ in range(n + 1)]
    for i in range(n - 1, -1, -1):
        row, below = table[i], table[i + 1]
        old_line = old[i]
        for j in range(m - 1, -1, -1):
            if old_line == new[j]:
                row[j] = below[j + 1] + 1
            elif below[j] >= row[j + 1]:
                row[j] = below[j]
            else:
                row[j] = row[j + 1]
    return table


def _intern(old_lines: Sequence[str], new_lines: Sequence[str]) -> Tuple[List[int], List[int]]:
    # Compare small ints instead of strings inside the quadratic loop
    ids = {}
    old = [ids.setdefault(line, len(ids)) for line in old_lines]
    new = [ids.setdefault(line, len(ids)) for line in new_lines]
    return old, new


def compute_diff(old_text: str, new_text: str, max_cells: Optional[int] = None) -> DiffResult:
    """Compute the line edit script turning ``old_text`` into ``new_text``.

    Raises DiffTooLargeException when the part of the texts that needs
    aligning would take more than ``max_cells`` table cells.
    """
    if max_cells is None:
        max_cells = settings.diff_max_cells

    old_lines = split_lines(old_text)
    new_lines = split_lines(new_text)
    result: List[DiffLine] = []

    # A shared prefix is always matched first by the walk below, so it can
    # be emitted without building its part of the table.
    prefix = 0
    limit = min(len(old_lines), len(new_lines))
    while prefix < limit and old_lines[prefix] == new_lines[prefix]:
        result.append(DiffLine(DiffKind.unchanged, old_lines[prefix], prefix + 1, prefix + 1))
        prefix += 1

    old_rest = old_lines[prefix:]
    new_rest = new_lines[prefix:]
    cells = (len(old_rest) + 1) * (len(new_rest) + 1)
    if old_rest and new_rest and cells > max_cells:
        raise DiffTooLargeException(
            f"Texts are too large to compare ({len(old_rest)} x {len(new_rest)} differing lines)"
        )

    old_ids, new_ids = _intern(old_rest, new_rest)
    table = _lcs_table(old_ids, new_ids) if old_rest and new_rest else None

    i = j = 0
    n, m = len(old_ids), len(new_ids)
    while i < n and j < m:
        if old_ids[i] == new_ids[j]:
            result.append(DiffLine(DiffKind.unchanged, old_rest[i], prefix + i + 1, prefix + j + 1))
            i += 1
            j += 1
        elif table[i + 1][j] >= table[i][j + 1]:
            result.append(DiffLine(DiffKind.removed, old_rest[i], old_line_number=prefix + i + 1))
            i += 1
        else:
            result.append(DiffLine(DiffKind.added, new_rest[j], new_line_number=prefix + j + 1))
            j += 1

    for k in range(i, n):
        result.append(DiffLine(DiffKind.removed, old_rest[k], old_line_number=prefix + k + 1))
    for k in range(j, m):
        result.append(DiffLine(DiffKind.added, new_rest[k], new_line_number=prefix + k + 1))

    return DiffResult(lines=tuple(result))
