"""
Display projections of a diff and the change-magnitude metric.
"""
from typing import Dict, List, Tuple

from services.diff_engine import DiffKind, DiffLine, DiffResult

_MARKERS = {
    DiffKind.added: "+",
    DiffKind.removed: "-",
    DiffKind.unchanged: " ",
}


def side_by_side(diff: DiffResult) -> Tuple[List[DiffLine], List[DiffLine]]:
    """Split a diff into the old-side and new-side line lists."""
    old_side = [line for line in diff.lines if line.kind is not DiffKind.added]
    new_side = [line for line in diff.lines if line.kind is not DiffKind.removed]
    return old_side, new_side


def unified(diff: DiffResult) -> List[DiffLine]:
    """The raw edit script already is the unified view."""
    return list(diff.lines)


def diff_stats(diff: DiffResult) -> Dict[str, int]:
    stats = {kind.value: 0 for kind in DiffKind}
    for line in diff.lines:
        stats[line.kind.value] += 1
    return stats


def change_percentage(diff: DiffResult) -> int:
    """Share of added plus removed lines, 0-100, rounded half up."""
    stats = diff_stats(diff)
    changed = stats[DiffKind.added.value] + stats[DiffKind.removed.value]
    total = changed + stats[DiffKind.unchanged.value]
    if total == 0:
        return 0
    # floor(100 * changed / total + 1/2) in integer arithmetic
    return (200 * changed + total) // (2 * total)


def render_unified_text(diff: DiffResult) -> str:
    """Plain-text unified rendering: line number, marker, text."""
    if not diff.lines:
        return ""
    width = len(str(max(line.line_number for line in diff.lines)))
    return "\n".join(
        f"{line.line_number:>{width}} {_MARKERS[line.kind]} {line.text}"
        for line in diff.lines
    )
