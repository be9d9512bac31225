"""
Track Predictor for Lineage Graphs

Predicts where the next detection of a track should be, using one
nearly-constant-velocity Kalman filter per track head. Filters are created
lazily, and slide forward with the track: a filter registered for a vertex
is moved to a descendant when the descendant is queried, and replayed over
the detections in between.

Filter resolution for a vertex:
    1. A filter registered for the vertex is returned as is.
    2. Track tails (no incoming link) and fusions (several incoming links)
       have no filter.
    3. Otherwise the track is walked backward until a vertex with a filter
       is found, or until a tail or fusion is reached, where a new filter is
       created from the tail and its child.
    4. The filter is updated with every detection from there to the vertex,
       then registered for the vertex instead.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Generic, Iterator, List, Optional, Tuple, TypeVar

import numpy as np

from ..graph.model import ReadOnlyGraph
from .kalman import N_DIMS, NCVKalmanFilter, StateAndCovariance

logger = logging.getLogger(__name__)

V = TypeVar("V")


class TrackLoopError(ValueError):
    """Raised when walking a track backward comes back to a visited vertex."""


@dataclass
class PredictorConfig:
    """
    Parameters of the Kalman filters created by the predictor.

    Attributes:
        init_state_covariance: Trust in the initial state of a new filter
        process_std_factor: Process noise std as a fraction of the spot
            radius, for both position and velocity
    """

    init_state_covariance: float = 1e-1
    process_std_factor: float = 1e-2


class Predictor(ABC, Generic[V]):
    """Makes measurement predictions for the motion model it implements."""

    @abstractmethod
    def predict(self, track_head: V) -> StateAndCovariance:
        """
        Return the expected state of the next measurement.

        Args:
            track_head: The track head to run prediction on

        Returns:
            The predicted state and covariance
        """


class FilterRegistry:
    """
    Map of track heads to the Kalman filter following them.

    Holds at most one filter per vertex. Entries for deleted vertices must be
    removed by the application, with ``remove`` or ``prune``.
    """

    def __init__(self) -> None:
        self._filters: Dict[int, NCVKalmanFilter] = {}

    def get(self, vertex: int) -> Optional[NCVKalmanFilter]:
        return self._filters.get(vertex)

    def register(self, vertex: int, kf: NCVKalmanFilter) -> None:
        self._filters[vertex] = kf

    def remove(self, vertex: int) -> Optional[NCVKalmanFilter]:
        return self._filters.pop(vertex, None)

    def prune(self, graph: ReadOnlyGraph) -> int:
        """
        Drop the entries of vertices that are no longer in the graph.

        Returns:
            Number of entries removed
        """
        stale = [v for v in self._filters if not graph.contains(v)]
        for vertex in stale:
            del self._filters[vertex]
        return len(stale)

    def clear(self) -> None:
        self._filters.clear()

    def __contains__(self, vertex: int) -> bool:
        return vertex in self._filters

    def __len__(self) -> int:
        return len(self._filters)

    def __iter__(self) -> Iterator[int]:
        return iter(self._filters)


class NearlyConstantVelocityPredictor(Predictor[int]):
    """
    Measurement predictor based on a nearly-constant velocity Kalman filter.

    Not thread-safe: callers predicting on several lineages concurrently must
    use one predictor per lineage or lock around ``predict``.

    Example:
        >>> predictor = NearlyConstantVelocityPredictor(graph)
        >>> graph.add_vertex_removed_listener(predictor.forget)
        >>> prediction = predictor.predict(head)
        >>> prediction.position, prediction.velocity
    """

    def __init__(self, graph: ReadOnlyGraph, config: Optional[PredictorConfig] = None) -> None:
        """
        Initialize predictor.

        Args:
            graph: The lineage graph to predict on
            config: Parameters of the filters created (default: PredictorConfig())
        """
        self.graph = graph
        self.config = config or PredictorConfig()
        self._registry = FilterRegistry()

    @property
    def registry(self) -> FilterRegistry:
        """The filters currently registered, by track head."""
        return self._registry

    def predict(self, track_head: int) -> StateAndCovariance:
        """
        Predict the state of the next detection after the track head.

        Track heads for which no filter can be derived (track tails, fusions)
        get a prediction at their own position with zero velocity and an
        infinite velocity variance.

        Raises:
            KeyError: If the track head is not in the graph
            TrackLoopError: If the track loops back on itself
        """
        kf = self.get_kalman_filter(track_head)
        if kf is None:
            return self._degenerate_prediction(track_head)
        return kf.get_predicted_state()

    def forget(self, vertex: int) -> bool:
        """
        Drop the filter registered for a vertex.

        Must be called when the vertex is deleted from the graph.

        Returns:
            True if a filter was registered for the vertex
        """
        return self._registry.remove(vertex) is not None

    def get_kalman_filter(self, vertex: int) -> Optional[NCVKalmanFilter]:
        """
        Retrieve or create the Kalman filter for the specified vertex.

        Returns:
            The filter, now registered for the vertex, or None if the vertex
            is a track tail, a track fusion, or if another track's filter sits
            on the way to the vertex.

        Raises:
            KeyError: If the vertex is not in the graph
            TrackLoopError: If the track loops back on itself
        """
        if not self.graph.contains(vertex):
            self._registry.remove(vertex)
            raise KeyError(f"Vertex {vertex} is not in the graph")

        kf = self._registry.get(vertex)
        if kf is not None:
            return kf

        if len(self.graph.incoming_edges(vertex)) != 1:
            return None

        anchor, kf, created = self._walk_back(vertex)

        # We know there is a path from the anchor to the vertex, but there
        # might be track splits on the way
        path = self.graph.ancestor_path(anchor, vertex)
        if path is None:
            raise ValueError(f"No path from vertex {anchor} to vertex {vertex}")
        path = path[1:]

        # With a graph whose ancestor path follows the single parents walked
        # above this never fires; it guards ancestor_path implementations
        # that take another route to the vertex
        for v in path[:-1]:
            if v in self._registry:
                logger.warning(
                    "Vertex %d already has a filter on the way from %d to %d, "
                    "cannot resolve a filter for %d",
                    v,
                    anchor,
                    vertex,
                    vertex,
                )
                return None

        if not created:
            self._registry.remove(anchor)

        self._replay(kf, anchor, path)
        self._registry.register(vertex, kf)
        logger.debug(
            "Filter for vertex %d %s at vertex %d, replayed over %d detections",
            vertex,
            "created" if created else "found",
            anchor,
            len(path),
        )
        return kf

    def _walk_back(self, vertex: int) -> Tuple[int, NCVKalmanFilter, bool]:
        """
        Walk the track backward from the vertex to a filter.

        Returns:
            (anchor, filter, created): the vertex the filter is up to date
            for, the filter, and whether it was just instantiated
        """
        visited = {vertex}
        child = vertex
        current = vertex
        while True:
            kf = self._registry.get(current)
            if kf is not None:
                return current, kf, False

            edges = self.graph.incoming_edges(current)
            # Did we reach a track tail or a track fusion?
            if len(edges) != 1:
                return child, self._instantiate_kalman_filter(current, child), True

            child = current
            current = edges[0].source

            # In a time-directed graph there are no loops, but you never know
            if current in visited:
                raise TrackLoopError(f"Iterated over a track that is a loop, at vertex {current}")
            visited.add(current)

    def _replay(self, kf: NCVKalmanFilter, anchor: int, path: List[int]) -> None:
        """Update the filter with the detections along the path, frame by frame."""
        previous_t = self.graph.timepoint(anchor)
        for v in path:
            t = self.graph.timepoint(v)
            # Frames skipped by the link are occlusions
            for _ in range(t - previous_t - 1):
                kf.predict()
                kf.update(None)
            kf.predict()
            kf.update(self.graph.position(v), self.graph.covariance(v))
            previous_t = t

    def _instantiate_kalman_filter(self, source: int, target: int) -> NCVKalmanFilter:
        """New filter at the target, with the velocity of the source->target link."""
        dt = max(1, self.graph.timepoint(target) - self.graph.timepoint(source))
        target_position = self.graph.position(target)
        velocity = (target_position - self.graph.position(source)) / dt
        X0 = np.concatenate([target_position, velocity])

        process_std = np.sqrt(self.graph.bounding_sphere_radius_squared(target)) * (
            self.config.process_std_factor
        )
        return NCVKalmanFilter(
            X0,
            self.graph.covariance(target),
            self.config.init_state_covariance,
            process_std,
            process_std,
        )

    def _degenerate_prediction(self, vertex: int) -> StateAndCovariance:
        """Prediction at the vertex position, with no velocity information."""
        state = np.zeros(2 * N_DIMS)
        state[:N_DIMS] = self.graph.position(vertex)

        covariance = np.zeros((2 * N_DIMS, 2 * N_DIMS))
        covariance[:N_DIMS, :N_DIMS] = self.graph.covariance(vertex)
        covariance[N_DIMS:, N_DIMS:] = np.diag([np.inf] * N_DIMS)
        return StateAndCovariance(state=state, covariance=covariance)
