import pytest

from hud_layout.descriptors import WidgetDescriptor
from hud_layout.geometry import Point, Screen
from hud_layout.layout_store import LayoutStore
from hud_layout.measurement import StaticMeasurer
from hud_layout.multi_selection import MultiSelectionController
from hud_layout.position_resolver import LayoutEngine
from hud_layout.widget_catalog import WIDGET_GAP


def _fixed(x, y):
    def _position(widget_id, element, resolver):
        return Point(x, y)

    return _position


def _controller(layout, screen=Screen(300, 200), snap_to_grid=False):
    descriptors = [WidgetDescriptor(widget_id, widget_id, _fixed(x, y)) for widget_id, (x, y, _w, _h) in layout.items()]
    measurer = StaticMeasurer({widget_id: (w, h) for widget_id, (_x, _y, w, h) in layout.items()})
    store = LayoutStore(LayoutEngine(descriptors, measurer, lambda: screen))
    store.distribute_widgets()
    store.set_snap_to_grid(snap_to_grid)
    store.set_edit_mode(True)
    return store, MultiSelectionController(store)


def test_group_drag_clamps_the_group_as_a_unit():
    store, controller = _controller({"a": (10, 10, 40, 40), "b": (50, 10, 40, 40)}, screen=Screen(100, 100))
    controller.select_widget("a")
    controller.select_widget("b", additive=True)
    assert controller.begin_drag("a")

    positions = controller.drag_move(30, 0)
    assert positions == {"a": Point(20, 10), "b": Point(60, 10)}
    # Nothing is committed until the drag ends.
    assert store.get_widget("a").position == Point(10, 10)

    controller.end_drag()
    assert store.get_widget("a").position == Point(20, 10)
    assert store.get_widget("b").position == Point(60, 10)


def test_cancelled_drag_leaves_the_store_untouched():
    store, controller = _controller({"a": (10, 10, 40, 40)})
    controller.select_widget("a")
    controller.begin_drag("a")
    controller.drag_move(50, 50)
    assert controller.display_position("a") == Point(60, 60)
    controller.cancel_drag()
    assert controller.display_position("a") == Point(10, 10)
    assert store.get_widget("a").position == Point(10, 10)


def test_group_snaps_using_only_the_primary_widget():
    layout = {
        "anchor": (0, 0, 50, 50),
        "primary": (100, 100, 20, 20),
        "follower": (200, 100, 40, 40),
    }
    store, controller = _controller(layout)
    controller.select_widget("primary")
    controller.select_widget("follower", additive=True)
    controller.begin_drag("primary")

    positions = controller.drag_move(-97, 0, snap=True)
    # primary's left edge lands 3 px from the anchor's left edge and snaps onto it.
    assert positions["primary"] == Point(0, 100)
    assert positions["follower"] == Point(100, 100)
    assert controller.active_snap_lines
    assert all(line.source_widget_id == "primary" for line in controller.active_snap_lines)

    controller.end_drag()
    assert controller.active_snap_lines == ()


def test_grid_rounding_applies_to_the_primary_offset():
    store, controller = _controller({"a": (10, 10, 40, 40), "b": (53, 10, 40, 40)}, snap_to_grid=True)
    controller.select_widget("a")
    controller.select_widget("b", additive=True)
    controller.begin_drag("a")
    positions = controller.drag_move(14, 6)
    assert positions["a"] == Point(20, 20)
    assert positions["b"] == Point(63, 20)


def test_click_selection_semantics():
    store, controller = _controller({"a": (10, 10, 40, 40), "b": (60, 10, 40, 40)})
    controller.select_widget("a")
    controller.select_widget("b", additive=True)
    assert controller.selected_ids == ("a", "b")
    # A plain click on a selected widget keeps the group for dragging.
    controller.select_widget("a")
    assert controller.selected_ids == ("a", "b")
    controller.select_widget("a", additive=True)
    assert controller.selected_ids == ("b",)
    controller.select_widget("a")
    assert controller.selected_ids == ("a",)


def test_leaving_edit_mode_clears_selection():
    store, controller = _controller({"a": (10, 10, 40, 40)})
    controller.select_widget("a")
    store.set_edit_mode(False)
    assert controller.selected_ids == ()
    controller.select_widget("a")
    assert controller.selected_ids == ()


def test_marquee_selects_intersecting_widgets():
    layout = {"a": (10, 10, 40, 40), "b": (50, 10, 40, 40), "c": (10, 120, 20, 20)}
    store, controller = _controller(layout)
    assert controller.begin_marquee(Point(0, 0)) is True
    controller.update_marquee(Point(60, 30))
    assert controller.end_marquee() == ("a", "b")
    assert controller.marquee is None


def test_marquee_is_additive_with_modifier_and_ignores_hidden_widgets():
    layout = {"a": (10, 10, 40, 40), "b": (50, 10, 40, 40), "c": (10, 120, 20, 20)}
    store, controller = _controller(layout)
    controller.select_widget("c")
    store.hide_widgets(["b"])
    controller.begin_marquee(Point(0, 0), additive=True)
    controller.update_marquee(Point(200, 40))
    assert controller.end_marquee() == ("c", "a")


def test_marquee_does_not_start_over_a_widget():
    store, controller = _controller({"a": (10, 10, 40, 40)})
    assert controller.begin_marquee(Point(20, 20)) is False
    assert controller.widget_at(Point(20, 20)) == "a"


def test_minimap_is_locked_and_stays_out_of_groups():
    layout = {"minimap": (10, 100, 60, 60), "a": (100, 100, 40, 40)}
    store, controller = _controller(layout)
    controller.select_widget("a")
    controller.select_widget("minimap", additive=True)
    assert controller.selected_ids == ("a",)
    controller.begin_marquee(Point(0, 90))
    controller.update_marquee(Point(200, 199))
    assert controller.end_marquee() == ("a",)
    controller.select_widget("minimap")
    assert controller.begin_drag("minimap") is False


def test_nudges_are_staged_until_committed():
    store, controller = _controller({"a": (10, 10, 40, 40), "b": (60, 10, 40, 40)})
    controller.select_widget("a")
    controller.select_widget("b", additive=True)
    commits = []
    store.subscribe(commits.append)

    result = controller.nudge("right")
    assert result.moved
    assert result.positions == {"a": Point(11, 10), "b": Point(61, 10)}
    controller.nudge("down", large=True)
    assert controller.has_pending_nudge
    assert controller.display_position("b") == Point(61, 20)
    # Held keys never touch the store.
    assert store.get_widget("a").position == Point(10, 10)
    assert commits == []

    assert controller.commit_nudge() == {"a": Point(11, 20), "b": Point(61, 20)}
    assert store.get_widget("a").position == Point(11, 20)
    assert store.get_widget("b").position == Point(61, 20)
    assert len(commits) == 1
    assert not controller.has_pending_nudge


def test_cancelled_nudge_restores_store_positions():
    store, controller = _controller({"a": (10, 10, 40, 40)})
    controller.select_widget("a")
    controller.nudge("right", large=True)
    assert controller.display_position("a") == Point(20, 10)
    controller.cancel_nudge()
    assert controller.display_position("a") == Point(10, 10)
    assert controller.commit_nudge() == {}
    assert store.get_widget("a").position == Point(10, 10)


def test_selection_change_commits_staged_nudge():
    store, controller = _controller({"a": (10, 10, 40, 40), "b": (100, 10, 40, 40)})
    controller.select_widget("a")
    controller.nudge("down")
    controller.select_widget("b")
    assert store.get_widget("a").position == Point(10, 11)
    assert not controller.has_pending_nudge


def test_external_layout_change_drops_staged_nudge():
    store, controller = _controller({"a": (10, 10, 40, 40)})
    controller.select_widget("a")
    controller.nudge("right")
    store.update_widget_positions({"a": Point(30, 30)})
    assert not controller.has_pending_nudge
    assert controller.display_position("a") == Point(30, 30)


def test_nudge_at_the_edge_is_clamped_for_the_whole_group():
    store, controller = _controller({"a": (0, 10, 40, 40), "b": (60, 10, 40, 40)})
    controller.select_widget("a")
    controller.select_widget("b", additive=True)
    result = controller.nudge("left", large=True)
    assert not result.moved
    assert controller.display_position("b") == Point(60, 10)
    assert controller.commit_nudge() == {}
    assert store.get_widget("b").position == Point(60, 10)


def test_jump_snaps_selection_to_next_stop():
    store, controller = _controller({"a": (10, 10, 40, 40), "b": (150, 10, 40, 40)})
    controller.select_widget("b")
    result = controller.jump("left")
    assert result.found
    assert controller.display_position("b") == Point(50 + WIDGET_GAP, 10)
    assert store.get_widget("b").position == Point(150, 10)
    assert [line.snap_type for line in result.snap_lines] == ["gap"]
    assert controller.active_snap_lines == result.snap_lines

    controller.commit_nudge()
    assert store.get_widget("b").position == Point(50 + WIDGET_GAP, 10)


def test_jump_starts_from_the_staged_position():
    store, controller = _controller({"a": (10, 10, 40, 40), "b": (150, 10, 40, 40)})
    controller.select_widget("b")
    controller.jump("left")
    # From the gap stop the next one left lines up with the right edge of "a".
    result = controller.jump("left")
    assert result.found
    assert controller.display_position("b") == Point(50, 10)
    controller.commit_nudge()
    assert store.get_widget("b").position == Point(50, 10)


def test_failed_jump_leaves_positions_unchanged():
    store, controller = _controller({"a": (10, 10, 40, 40), "b": (150, 10, 40, 40)})
    controller.select_widget("a")
    result = controller.jump("left")
    assert not result.found
    assert not result.moved
    assert not controller.has_pending_nudge
    assert store.get_widget("a").position == Point(10, 10)


def test_keyboard_moves_need_edit_mode_and_valid_direction():
    store, controller = _controller({"a": (10, 10, 40, 40)})
    controller.select_widget("a")
    with pytest.raises(ValueError):
        controller.nudge("sideways")
    store.set_edit_mode(False)
    assert controller.nudge("right").moved is False
    assert store.get_widget("a").position == Point(10, 10)


def test_leaving_edit_mode_discards_staged_nudge():
    store, controller = _controller({"a": (10, 10, 40, 40)})
    controller.select_widget("a")
    controller.nudge("right")
    store.set_edit_mode(False)
    assert not controller.has_pending_nudge
    assert store.get_widget("a").position == Point(10, 10)
