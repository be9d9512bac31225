"""
Lineage Graph Model

Read-only graph interface consumed by the predictors, and a networkx-backed
implementation holding spots (detections) linked across frames.

Vertices are plain integer ids. Spot data (timepoint, position, radius,
covariance) is reached through the graph accessors, so a predictor never
holds on to vertex objects.

Usage:
    graph = ModelGraph()
    a = graph.add_spot(0, [0.0, 0.0, 0.0], radius=1.0)
    b = graph.add_spot(1, [1.0, 0.0, 0.0], radius=1.0)
    graph.add_link(a, b)
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Sequence

import networkx as nx
import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Link:
    """Directed edge between two spots, from the earlier to the later one."""

    source: int
    target: int


@dataclass
class Spot:
    """
    A detection in one frame.

    Attributes:
        id: Vertex id in the graph
        timepoint: Frame index
        position: Position [x, y, z]
        radius: Bounding sphere radius
        label: Free-text label
        covariance: Localization covariance (3x3), radius^2 * I by default
    """

    id: int
    timepoint: int
    position: np.ndarray
    radius: float = 1.0
    label: str = ""
    covariance: Optional[np.ndarray] = field(default=None)

    def __post_init__(self) -> None:
        self.position = np.asarray(self.position, dtype=np.float64).reshape(3)
        if self.covariance is None:
            self.covariance = np.eye(3) * self.radius**2
        else:
            self.covariance = np.asarray(self.covariance, dtype=np.float64).reshape(3, 3)

    @property
    def bounding_sphere_radius_squared(self) -> float:
        return float(self.radius**2)


class ReadOnlyGraph(ABC):
    """
    What a predictor needs from a lineage graph.

    Edges point forward in time. A vertex with exactly one incoming edge is
    part of a track; zero incoming edges is a track tail (root) and two or
    more is a track fusion.
    """

    @abstractmethod
    def contains(self, vertex: int) -> bool:
        """True if the vertex is in the graph."""

    @abstractmethod
    def incoming_edges(self, vertex: int) -> List[Link]:
        """Edges ending at the vertex."""

    @abstractmethod
    def outgoing_edges(self, vertex: int) -> List[Link]:
        """Edges starting at the vertex."""

    @abstractmethod
    def position(self, vertex: int) -> np.ndarray:
        """Position [x, y, z] of the vertex."""

    @abstractmethod
    def covariance(self, vertex: int) -> np.ndarray:
        """Localization covariance (3x3) of the vertex."""

    @abstractmethod
    def bounding_sphere_radius_squared(self, vertex: int) -> float:
        """Squared radius of the sphere enclosing the object."""

    @abstractmethod
    def timepoint(self, vertex: int) -> int:
        """Frame the vertex belongs to."""

    @abstractmethod
    def ancestor_path(self, ancestor: int, descendant: int) -> Optional[List[int]]:
        """
        Ordered vertices from ancestor to descendant, both included.

        Returns None if the descendant cannot be reached from the ancestor.
        """


VertexListener = Callable[[int], None]


class ModelGraph(ReadOnlyGraph):
    """
    Lineage graph of spots and links, stored in a networkx DiGraph.

    Spots are stored as the ``spot`` attribute of the nodes. Listeners
    registered with ``add_vertex_removed_listener`` are notified with the
    vertex id before a spot is removed.
    """

    def __init__(self) -> None:
        self._graph = nx.DiGraph()
        self._next_id = 0
        self._removed_listeners: List[VertexListener] = []

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_spot(
        self,
        timepoint: int,
        position: Sequence[float],
        radius: float = 1.0,
        label: str = "",
        covariance: Optional[np.ndarray] = None,
    ) -> int:
        """
        Add a spot to the graph.

        Returns:
            The id of the new vertex
        """
        vertex = self._next_id
        self._next_id += 1
        spot = Spot(
            id=vertex,
            timepoint=int(timepoint),
            position=position,
            radius=radius,
            label=label,
            covariance=covariance,
        )
        self._graph.add_node(vertex, spot=spot)
        return vertex

    def add_link(self, source: int, target: int) -> Link:
        """
        Link two spots.

        Raises:
            KeyError: If one of the spots is not in the graph
            ValueError: If the link does not go forward in time
        """
        t_source = self.timepoint(source)
        t_target = self.timepoint(target)
        if t_target <= t_source:
            raise ValueError(
                f"Link {source}->{target} goes from frame {t_source} to frame {t_target}"
            )
        self._graph.add_edge(source, target)
        return Link(source, target)

    def remove_link(self, source: int, target: int) -> None:
        """Remove the link between two spots."""
        if not self._graph.has_edge(source, target):
            raise KeyError(f"No link {source}->{target}")
        self._graph.remove_edge(source, target)

    def remove_spot(self, vertex: int) -> None:
        """Remove a spot and its links, notifying the removal listeners first."""
        if vertex not in self._graph:
            raise KeyError(f"Unknown vertex: {vertex}")
        for listener in list(self._removed_listeners):
            listener(vertex)
        self._graph.remove_node(vertex)

    def add_vertex_removed_listener(self, listener: VertexListener) -> None:
        self._removed_listeners.append(listener)

    def remove_vertex_removed_listener(self, listener: VertexListener) -> None:
        self._removed_listeners.remove(listener)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def spot(self, vertex: int) -> Spot:
        """Spot stored at the vertex."""
        try:
            return self._graph.nodes[vertex]["spot"]
        except KeyError:
            raise KeyError(f"Unknown vertex: {vertex}") from None

    def spots(self) -> Iterator[Spot]:
        """All spots, ordered by timepoint."""
        spots = [data["spot"] for _, data in self._graph.nodes(data=True)]
        return iter(sorted(spots, key=lambda s: (s.timepoint, s.id)))

    def roots(self) -> List[int]:
        """Vertices without incoming edges."""
        return [v for v in self._graph.nodes if self._graph.in_degree(v) == 0]

    def track_heads(self) -> List[int]:
        """Vertices without outgoing edges."""
        return [v for v in self._graph.nodes if self._graph.out_degree(v) == 0]

    def __len__(self) -> int:
        return self._graph.number_of_nodes()

    def number_of_links(self) -> int:
        return self._graph.number_of_edges()

    def contains(self, vertex: int) -> bool:
        return vertex in self._graph

    def incoming_edges(self, vertex: int) -> List[Link]:
        return [Link(s, t) for s, t in self._graph.in_edges(vertex)]

    def outgoing_edges(self, vertex: int) -> List[Link]:
        return [Link(s, t) for s, t in self._graph.out_edges(vertex)]

    def position(self, vertex: int) -> np.ndarray:
        return self.spot(vertex).position.copy()

    def covariance(self, vertex: int) -> np.ndarray:
        return self.spot(vertex).covariance.copy()

    def bounding_sphere_radius_squared(self, vertex: int) -> float:
        return self.spot(vertex).bounding_sphere_radius_squared

    def timepoint(self, vertex: int) -> int:
        return self.spot(vertex).timepoint

    def ancestor_path(self, ancestor: int, descendant: int) -> Optional[List[int]]:
        # Search backward from the descendant, over the reversed graph
        try:
            path = nx.shortest_path(self._graph.reverse(copy=False), descendant, ancestor)
        except (nx.NetworkXNoPath, nx.NodeNotFound):
            return None
        path.reverse()
        return path

    def __repr__(self) -> str:
        return f"ModelGraph(spots={len(self)}, links={self.number_of_links()})"
