import math

from hud_layout.geometry import (
    Point,
    Rect,
    Screen,
    bounding_rect,
    calc_group_clamp_adjust,
    clamp_position,
    is_position_close,
    snap_to_grid,
)


def test_rect_denormalizes_right_and_bottom():
    rect = Rect(10, 20, 30, 40)
    assert rect.right == 40
    assert rect.bottom == 60
    assert rect.center_x == 25
    assert rect.center_y == 40
    moved = rect.moved_to(Point(0, 0))
    assert (moved.right, moved.bottom) == (30, 40)


def test_intersects_uses_open_intervals():
    a = Rect(0, 0, 10, 10)
    assert a.intersects(Rect(5, 5, 10, 10))
    # Touching edges do not count as an intersection.
    assert not a.intersects(Rect(10, 0, 10, 10))
    assert not a.intersects(Rect(0, 10, 10, 10))


def test_clamp_position_keeps_origin_inside_viewport():
    screen = Screen(800, 600)
    assert clamp_position(Point(-5, 700), screen) == Point(0, 600)
    assert clamp_position(Point(900, -1), screen) == Point(800, 0)
    assert clamp_position(Point(math.nan, math.inf), screen) == Point(0, 0)
    assert clamp_position(Point(12.5, 30), screen) == Point(12.5, 30)


def test_snap_to_grid_rounds_to_nearest_cell():
    assert snap_to_grid(Point(14, 16), 10) == Point(10, 20)
    assert snap_to_grid(Point(14, 16), 0) == Point(14, 16)


def test_bounding_rect_of_nothing_is_none():
    assert bounding_rect([]) is None
    box = bounding_rect([Rect(10, 10, 5, 5), Rect(0, 20, 5, 30)])
    assert box == Rect.from_edges(0, 10, 15, 50)


def test_group_clamp_adjust_is_shared_by_the_group():
    rects = {"a": Rect(10, 0, 40, 40), "b": Rect(50, 0, 40, 40)}
    moved = {"a": Point(40, 0), "b": Point(80, 0)}
    dx, dy = calc_group_clamp_adjust(["a", "b"], moved, rects, Screen(100, 100))
    assert (dx, dy) == (-20, 0)

    moved = {"a": Point(-15, -3), "b": Point(25, -3)}
    assert calc_group_clamp_adjust(["a", "b"], moved, rects, Screen(100, 100)) == (15, 3)


def test_position_tolerance_is_inclusive():
    assert is_position_close(Point(10, 10), Point(12, 8), 2)
    assert not is_position_close(Point(10, 10), Point(13, 10), 2)
