"""Tests for diff projections and the change percentage."""
import pytest

from services.comparison import (
    change_percentage, diff_stats, render_unified_text, side_by_side, unified
)
from services.diff_engine import DiffKind, compute_diff


def test_side_by_side_filters_each_side():
    diff = compute_diff("A\nB\nC", "A\nX\nC")

    old_side, new_side = side_by_side(diff)

    assert [(line.kind, line.text) for line in old_side] == [
        (DiffKind.unchanged, "A"), (DiffKind.removed, "B"), (DiffKind.unchanged, "C")
    ]
    assert [(line.kind, line.text) for line in new_side] == [
        (DiffKind.unchanged, "A"), (DiffKind.added, "X"), (DiffKind.unchanged, "C")
    ]
    assert [line.old_line_number for line in old_side] == [1, 2, 3]
    assert [line.new_line_number for line in new_side] == [1, 2, 3]


def test_side_by_side_reuses_diff_lines():
    diff = compute_diff("A\nB", "B\nC")

    old_side, new_side = side_by_side(diff)

    assert all(line in diff.lines for line in old_side + new_side)


def test_unified_is_the_raw_diff():
    diff = compute_diff("A\nB\nC", "A\nX\nC")

    assert unified(diff) == list(diff.lines)


def test_diff_stats():
    diff = compute_diff("A\nB\nC", "A\nX\nY\nC")

    assert diff_stats(diff) == {"added": 2, "removed": 1, "unchanged": 2}


@pytest.mark.parametrize("old, new, expected", [
    ("A\nB\nC", "A\nB\nC", 0),
    ("A\nB\nC", "A\nX\nC", 50),
    ("", "A\nB", 100),
    ("A\nB", "", 100),
    ("", "", 0),
    ("a\nb", "a\nc", 67),
    ("a\nb\nc", "a\nb\nc\nd", 25),
    ("a\nb\nc\nd\ne\nf\ng", "a\nb\nc\nd\ne\nf\ng\nh", 13),
])
def test_change_percentage(old, new, expected):
    assert change_percentage(compute_diff(old, new)) == expected


def test_change_percentage_rounds_half_up():
    # 1 changed line out of 8 is 12.5%
    diff = compute_diff("1\n2\n3\n4\n5\n6\n7", "1\n2\n3\n4\n5\n6\n7\n8")

    assert diff.added == 1
    assert diff.unchanged == 7
    assert change_percentage(diff) == 13


def test_change_percentage_is_100_only_without_unchanged_lines():
    assert change_percentage(compute_diff("a\nb", "c")) == 100
    assert change_percentage(compute_diff("a\nb", "a\nc\nd\ne\nf\ng\nh\ni\nj")) < 100


def test_diff_result_property_matches_function():
    diff = compute_diff("A\nB\nC", "A\nX\nC")

    assert diff.change_percentage == change_percentage(diff)


def test_render_unified_text():
    diff = compute_diff("A\nB\nC", "A\nX\nC")

    assert render_unified_text(diff) == "1   A\n2 - B\n2 + X\n3   C"


def test_render_unified_text_empty():
    assert render_unified_text(compute_diff("", "")) == ""
