import pytest

from hud_layout.geometry import Point, Rect
from hud_layout.snap_lines import (
    are_in_proximity,
    find_next_snap_position,
    find_snap_lines,
    widget_edges,
)
from hud_layout.widget_catalog import WIDGET_GAP


def _rects(**entries):
    return {widget_id: Rect(*values) for widget_id, values in entries.items()}


def test_left_edges_within_threshold_snap_to_alignment():
    rects = _rects(anchor=(0, 0, 100, 50), dragged=(0, 300, 100, 50))
    result = find_snap_lines("dragged", Point(5, 300), rects.keys(), rects, 8)
    assert result.snapped_position == Point(0, 300)
    assert any(line.type == "vertical" and line.edge == "left" for line in result.snap_lines)


def test_left_edges_beyond_threshold_do_not_snap():
    rects = _rects(anchor=(0, 0, 100, 50), dragged=(0, 300, 100, 50))
    result = find_snap_lines("dragged", Point(10, 300), rects.keys(), rects, 8)
    assert result.snapped_position == Point(10, 300)
    assert result.snap_lines == ()


def test_gap_and_direct_snaps_are_classified():
    rects = _rects(anchor=(0, 0, 100, 50), dragged=(0, 0, 100, 50))

    gap = find_snap_lines("dragged", Point(100 + WIDGET_GAP, 0), rects.keys(), rects)
    vertical = [line for line in gap.snap_lines if line.type == "vertical"]
    assert [line.snap_type for line in vertical] == ["gap"]
    assert vertical[0].source_widget_id == "dragged"
    assert vertical[0].target_widget_id == "anchor"

    direct = find_snap_lines("dragged", Point(100, 0), rects.keys(), rects)
    vertical = [line for line in direct.snap_lines if line.type == "vertical"]
    assert [line.snap_type for line in vertical] == ["direct"]
    assert vertical[0].position == 100


def test_gap_rules_need_proximity():
    rects = _rects(anchor=(0, 0, 100, 50), dragged=(0, 0, 100, 50))
    # Aligned horizontally for a gap snap but 400 px below: only direct rules apply.
    result = find_snap_lines("dragged", Point(112, 450), rects.keys(), rects)
    assert result.snapped_position == Point(112, 450)


def test_axes_snap_independently_to_different_neighbours():
    rects = _rects(
        left_ref=(0, 0, 50, 50),
        top_ref=(300, 200, 50, 50),
        dragged=(0, 0, 50, 50),
    )
    result = find_snap_lines("dragged", Point(3, 204), rects.keys(), rects)
    assert result.snapped_position == Point(0, 200)
    sources = {(line.type, line.target_widget_id) for line in result.snap_lines}
    assert ("vertical", "left_ref") in sources
    assert ("horizontal", "top_ref") in sources


def test_smallest_correction_wins_but_every_match_draws_a_line():
    rects = _rects(near=(0, 0, 100, 50), far=(6, 300, 100, 50), dragged=(0, 100, 100, 50))
    result = find_snap_lines("dragged", Point(2, 150), rects.keys(), rects)
    assert result.snapped_position.x == 0
    targets = {line.target_widget_id for line in result.snap_lines if line.type == "vertical"}
    assert targets == {"near", "far"}


def test_excluded_widgets_are_not_targets():
    rects = _rects(anchor=(0, 0, 100, 50), dragged=(0, 300, 100, 50))
    result = find_snap_lines("dragged", Point(5, 300), rects.keys(), rects, exclude_ids=["anchor"])
    assert result.snapped_position == Point(5, 300)


def test_proximity_window_counts_overlap_or_gap():
    a = widget_edges(Rect(0, 0, 100, 100))
    assert are_in_proximity(a, widget_edges(Rect(150, 50, 10, 10)))
    assert not are_in_proximity(a, widget_edges(Rect(250, 50, 10, 10)))


def test_next_snap_picks_closest_stop_in_direction():
    rects = _rects(anchor=(0, 0, 100, 50), mover=(150, 0, 100, 50))
    result = find_next_snap_position("mover", Point(150, 0), "left", rects.keys(), rects)
    assert result.found
    assert result.position == Point(100 + WIDGET_GAP, 0)
    assert result.snap_line.snap_type == "gap"
    assert result.snap_line.type == "vertical"


def test_next_snap_reports_not_found_beyond_search_distance():
    rects = _rects(anchor=(0, 0, 100, 50), mover=(500, 0, 100, 50))
    result = find_next_snap_position("mover", Point(500, 0), "left", rects.keys(), rects)
    assert not result.found
    assert result.position is None
    assert find_next_snap_position("mover", Point(500, 0), "right", rects.keys(), rects).found is False


def test_next_snap_ignores_stops_within_one_pixel():
    rects = _rects(anchor=(0, 0, 100, 50), mover=(101, 200, 100, 50))
    result = find_next_snap_position("mover", Point(101, 200), "left", rects.keys(), rects, max_distance=200)
    # The 1 px hop onto the anchor's right edge is skipped.
    assert result.found
    assert result.position.x == 0
    assert result.snap_line.position == 0


def test_next_snap_rejects_unknown_direction():
    rects = _rects(mover=(0, 0, 10, 10))
    with pytest.raises(ValueError):
        find_next_snap_position("mover", Point(0, 0), "sideways", rects.keys(), rects)
