"""
Lineage Graph Model Test Suite

Tests for the networkx-backed lineage graph: spots, links, path queries
and removal listeners.
"""

import os
import sys

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from trackpredict.graph.model import Link, ModelGraph, Spot


@pytest.fixture
def division():
    """root -> a -> (b1, b2), b1 -> c1"""
    graph = ModelGraph()
    root = graph.add_spot(0, [0.0, 0.0, 0.0])
    a = graph.add_spot(1, [1.0, 0.0, 0.0])
    b1 = graph.add_spot(2, [2.0, 1.0, 0.0])
    b2 = graph.add_spot(2, [2.0, -1.0, 0.0])
    c1 = graph.add_spot(3, [3.0, 2.0, 0.0])
    graph.add_link(root, a)
    graph.add_link(a, b1)
    graph.add_link(a, b2)
    graph.add_link(b1, c1)
    return graph, dict(root=root, a=a, b1=b1, b2=b2, c1=c1)


# =============================================================================
# TEST 1: Spots
# =============================================================================


class TestSpots:
    """Spot creation and accessors."""

    def test_ids_are_sequential(self):
        graph = ModelGraph()

        ids = [graph.add_spot(t, [0.0, 0.0, 0.0]) for t in range(3)]

        assert ids == [0, 1, 2]
        assert len(graph) == 3

    def test_default_covariance_from_radius(self):
        """Localization covariance defaults to radius^2 * I"""
        graph = ModelGraph()
        v = graph.add_spot(0, [1.0, 2.0, 3.0], radius=3.0, label="A")

        np.testing.assert_array_equal(graph.covariance(v), np.eye(3) * 9.0)
        assert graph.bounding_sphere_radius_squared(v) == pytest.approx(9.0)
        assert graph.spot(v).label == "A"

    def test_explicit_covariance(self):
        graph = ModelGraph()
        covariance = np.diag([1.0, 2.0, 3.0])
        v = graph.add_spot(0, [0.0, 0.0, 0.0], covariance=covariance)

        np.testing.assert_array_equal(graph.covariance(v), covariance)

    def test_accessors_return_copies(self):
        """Mutating a returned position does not move the spot"""
        graph = ModelGraph()
        v = graph.add_spot(4, [1.0, 2.0, 3.0])

        position = graph.position(v)
        position[0] = 100.0

        np.testing.assert_array_equal(graph.position(v), [1.0, 2.0, 3.0])
        assert graph.timepoint(v) == 4

    def test_unknown_vertex(self):
        with pytest.raises(KeyError):
            ModelGraph().spot(7)

    def test_spots_in_time_order(self):
        graph = ModelGraph()
        late = graph.add_spot(5, [0.0, 0.0, 0.0])
        early = graph.add_spot(1, [0.0, 0.0, 0.0])

        assert [s.id for s in graph.spots()] == [early, late]

    def test_spot_dataclass(self):
        spot = Spot(id=0, timepoint=0, position=[1, 2, 3], radius=2.0)

        assert spot.position.dtype == np.float64
        np.testing.assert_array_equal(spot.covariance, np.eye(3) * 4.0)


# =============================================================================
# TEST 2: Links
# =============================================================================


class TestLinks:
    """Links go forward in time."""

    def test_edges(self, division):
        graph, v = division

        assert graph.incoming_edges(v["a"]) == [Link(v["root"], v["a"])]
        assert sorted(link.target for link in graph.outgoing_edges(v["a"])) == [v["b1"], v["b2"]]
        assert graph.incoming_edges(v["root"]) == []
        assert graph.number_of_links() == 4

    def test_backward_link_rejected(self):
        graph = ModelGraph()
        a = graph.add_spot(3, [0.0, 0.0, 0.0])
        b = graph.add_spot(2, [0.0, 0.0, 0.0])

        with pytest.raises(ValueError):
            graph.add_link(a, b)

    def test_same_frame_link_rejected(self):
        graph = ModelGraph()
        a = graph.add_spot(2, [0.0, 0.0, 0.0])
        b = graph.add_spot(2, [1.0, 0.0, 0.0])

        with pytest.raises(ValueError):
            graph.add_link(a, b)

    def test_link_to_unknown_vertex(self):
        graph = ModelGraph()
        a = graph.add_spot(0, [0.0, 0.0, 0.0])

        with pytest.raises(KeyError):
            graph.add_link(a, 42)

    def test_remove_link(self, division):
        graph, v = division

        graph.remove_link(v["a"], v["b2"])

        assert graph.incoming_edges(v["b2"]) == []
        with pytest.raises(KeyError):
            graph.remove_link(v["a"], v["b2"])

    def test_roots_and_heads(self, division):
        graph, v = division

        assert graph.roots() == [v["root"]]
        assert sorted(graph.track_heads()) == sorted([v["b2"], v["c1"]])


# =============================================================================
# TEST 3: Ancestor Paths
# =============================================================================


class TestAncestorPath:
    """Paths from an ancestor down to a descendant."""

    def test_path_through_division(self, division):
        graph, v = division

        assert graph.ancestor_path(v["root"], v["c1"]) == [v["root"], v["a"], v["b1"], v["c1"]]
        assert graph.ancestor_path(v["a"], v["b2"]) == [v["a"], v["b2"]]

    def test_path_to_self(self, division):
        graph, v = division

        assert graph.ancestor_path(v["a"], v["a"]) == [v["a"]]

    def test_no_path_upward(self, division):
        graph, v = division

        assert graph.ancestor_path(v["c1"], v["root"]) is None

    def test_no_path_between_sisters(self, division):
        graph, v = division

        assert graph.ancestor_path(v["b1"], v["b2"]) is None

    def test_unknown_vertex(self, division):
        graph, v = division

        assert graph.ancestor_path(v["root"], 99) is None


# =============================================================================
# TEST 4: Removal Listeners
# =============================================================================


class TestRemovalListeners:
    """Listeners hear about spot removal before it happens."""

    def test_listener_called_before_removal(self, division):
        graph, v = division
        seen = []
        graph.add_vertex_removed_listener(
            lambda vertex: seen.append((vertex, graph.contains(vertex)))
        )

        graph.remove_spot(v["c1"])

        assert seen == [(v["c1"], True)]
        assert not graph.contains(v["c1"])
        assert graph.outgoing_edges(v["b1"]) == []

    def test_remove_listener(self, division):
        graph, v = division
        seen = []
        graph.add_vertex_removed_listener(seen.append)
        graph.remove_vertex_removed_listener(seen.append)

        graph.remove_spot(v["b2"])

        assert seen == []

    def test_remove_unknown_spot(self):
        with pytest.raises(KeyError):
            ModelGraph().remove_spot(0)
