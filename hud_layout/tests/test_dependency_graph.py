import logging

import pytest

from hud_layout.dependency_graph import DependencyCycleError, extract_dependencies, reverse_closure
from hud_layout.descriptors import WidgetDescriptor
from hud_layout.geometry import Point
from hud_layout.widget_catalog import STATUS_WIDGET_IDS, default_widget_descriptors


def _fixed(x, y):
    def _position(widget_id, element, resolver):
        return Point(x, y)

    return _position


def _right_of(anchor_id):
    def _position(widget_id, element, resolver):
        rect = resolver.get_widget_rect(anchor_id)
        if rect is None:
            return Point(0, 0)
        return Point(rect.right + 10, rect.y)

    return _position


def _chain():
    return [
        WidgetDescriptor("a", "a", _fixed(10, 10)),
        WidgetDescriptor("b", "b", _right_of("a")),
        WidgetDescriptor("c", "c", _right_of("b")),
        WidgetDescriptor("d", "d", _fixed(0, 500)),
    ]


def test_direct_dependencies_come_from_resolver_queries():
    graph = extract_dependencies(_chain())
    assert graph.dependencies_of("a") == frozenset()
    assert graph.dependencies_of("b") == frozenset({"a"})
    assert graph.dependencies_of("c") == frozenset({"b"})


def test_reverse_closure_follows_chains_in_declaration_order():
    graph = extract_dependencies(_chain())
    assert graph.dependents["a"] == ("b", "c")
    assert graph.dependents["b"] == ("c",)
    assert graph.dependents["d"] == ()
    assert graph.dependents_of(["a"]) == ("b", "c")
    assert graph.dependents_of(["a", "b"]) == ("c",)


def test_reverse_closure_reaches_a_fixed_point():
    closure = reverse_closure(["a", "b", "c", "d"], {"b": {"a"}, "c": {"b"}, "d": {"c"}})
    assert closure["a"] == ("b", "c", "d")
    assert closure["c"] == ("d",)


def test_self_reads_are_not_dependencies():
    def _self_reader(widget_id, element, resolver):
        resolver.get_widget_current_rect(widget_id)
        return Point(0, 0)

    graph = extract_dependencies([WidgetDescriptor("solo", "solo", _self_reader)])
    assert graph.dependencies_of("solo") == frozenset()


def test_throwing_position_function_has_no_dependencies(caplog):
    def _broken(widget_id, element, resolver):
        resolver.get_widget_rect("a")
        raise RuntimeError("boom")

    descriptors = _chain() + [WidgetDescriptor("broken", "broken", _broken)]
    with caplog.at_level(logging.WARNING, logger="HUDLayout.Engine"):
        graph = extract_dependencies(descriptors)
    assert graph.dependencies_of("broken") == frozenset()
    assert graph.dependencies_of("c") == frozenset({"b"})
    assert any("broken" in record.getMessage() for record in caplog.records)


def test_unknown_ids_are_ignored(caplog):
    descriptors = [WidgetDescriptor("lonely", "lonely", _right_of("ghost"))]
    with caplog.at_level(logging.WARNING, logger="HUDLayout.Engine"):
        graph = extract_dependencies(descriptors)
    assert graph.dependencies_of("lonely") == frozenset()
    assert any("ghost" in record.getMessage() for record in caplog.records)


def test_resolution_order_is_topological_with_declaration_tie_break():
    descriptors = list(reversed(_chain()))
    graph = extract_dependencies(descriptors)
    order = graph.resolution_order()
    assert order.index("a") < order.index("b") < order.index("c")
    # "d" is independent and declared first, so it stays first.
    assert order[0] == "d"


def test_cycles_fail_loudly():
    descriptors = [
        WidgetDescriptor("x", "x", _right_of("y")),
        WidgetDescriptor("y", "y", _right_of("x")),
        WidgetDescriptor("z", "z", _fixed(0, 0)),
    ]
    graph = extract_dependencies(descriptors)
    with pytest.raises(DependencyCycleError) as excinfo:
        graph.resolution_order()
    assert set(excinfo.value.cycle) == {"x", "y"}
    assert excinfo.value.cycle[0] == excinfo.value.cycle[-1]


def test_catalog_is_acyclic_and_chains_status_meters():
    graph = extract_dependencies(default_widget_descriptors())
    order = graph.resolution_order()
    assert len(order) == len(set(order))
    assert graph.dependencies_of("health") == frozenset({"minimap"})
    assert graph.dependencies_of("armor") == frozenset({"health"})
    minimap_dependents = graph.dependents["minimap"]
    assert "location" in minimap_dependents
    for status_id in STATUS_WIDGET_IDS:
        assert status_id in minimap_dependents
    assert graph.dependents["clock"] == ("money", "server_info")
    assert graph.dependents["speedometer"] == ("vehicle_name",)
