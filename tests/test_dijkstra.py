import pytest

from src.ecoroute.exceptions import NoPathFound
from src.ecoroute.models.domain import Point
from src.ecoroute.services.geospatial import distance_km
from src.ecoroute.services.graph.models import GraphAssembly
from src.ecoroute.services.routing.dijkstra import dijkstra, shortest_path, snap_to_graph

A = Point(0.0, 0.0)
B = Point(0.0, 0.01)
C = Point(0.01, 0.01)
D = Point(0.01, 0.0)


def _square(with_diagonal: bool = True):
    assembly = GraphAssembly()
    for node_id, point in (("A", A), ("B", B), ("C", C), ("D", D)):
        assembly.add_node(node_id, point)
    assembly.add_edges([("A", "B"), ("B", "C"), ("C", "D"), ("D", "A")])
    if with_diagonal:
        assembly.add_edge("A", "C")
    return assembly.freeze()


def test_diagonal_shortcut_is_taken():
    path, total = dijkstra(_square(), "A", "C")
    assert path == ["A", "C"]
    assert total == pytest.approx(distance_km(A, C))


def test_without_shortcut_path_goes_around():
    path, total = dijkstra(_square(with_diagonal=False), "A", "C")
    assert path[0] == "A" and path[-1] == "C"
    assert len(path) == 3
    assert total == pytest.approx(distance_km(A, B) + distance_km(B, C), rel=1e-6)


def test_lower_weight_beats_fewer_hops():
    assembly = GraphAssembly()
    for node_id, point in (("A", A), ("B", B), ("C", C)):
        assembly.add_node(node_id, point)
    assembly.add_edge("A", "C", weight_km=5.0)
    assembly.add_edge("A", "B", weight_km=1.0)
    assembly.add_edge("B", "C", weight_km=1.0)

    path, total = dijkstra(assembly.freeze(), "A", "C")
    assert path == ["A", "B", "C"]
    assert total == pytest.approx(2.0)


def test_same_node_is_zero_length_path():
    assert dijkstra(_square(), "B", "B") == (["B"], 0.0)


def test_disconnected_nodes_raise():
    assembly = GraphAssembly()
    assembly.add_node("A", A)
    assembly.add_node("Z", Point(1.0, 1.0))
    with pytest.raises(NoPathFound):
        dijkstra(assembly.freeze(), "A", "Z")


def test_unknown_node_raises():
    with pytest.raises(NoPathFound):
        dijkstra(_square(), "A", "missing")


def test_snap_picks_nearest_node_and_honours_radius():
    graph = _square()
    node, snap_km = snap_to_graph(graph, Point(0.009, 0.0005))
    assert node.node_id == "D"
    assert snap_km == pytest.approx(distance_km(Point(0.009, 0.0005), D), rel=1e-9)

    with pytest.raises(NoPathFound):
        snap_to_graph(graph, Point(1.0, 1.0), max_snap_km=0.5)


def test_snap_on_empty_graph_raises():
    with pytest.raises(NoPathFound):
        snap_to_graph(GraphAssembly().freeze(), A)


def test_shortest_path_maps_nodes_to_polyline():
    result = shortest_path(_square(), Point(0.0001, 0.0), Point(0.0099, 0.0101))
    assert result.node_ids == ("A", "C")
    assert result.polyline == (A, C)
    assert result.distance_km == pytest.approx(distance_km(A, C))
