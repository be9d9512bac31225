"""
trackpredict Source Package

Track-state prediction over cell-lineage graphs:
- Nearly-constant velocity Kalman filtering in 3D
- Filters that follow track heads through divisions and gaps
- networkx-backed lineage graph model
- Synthetic lineages and headless accuracy runs
"""

from trackpredict.graph import Link, ModelGraph, ReadOnlyGraph, Spot
from trackpredict.tracking import (
    FilterRegistry,
    NCVKalmanFilter,
    NearlyConstantVelocityPredictor,
    Predictor,
    PredictorConfig,
    StateAndCovariance,
    TrackLoopError,
)

__version__ = "1.0.0"
__author__ = "trackpredict Contributors"

__all__ = [
    # Graph
    "ReadOnlyGraph",
    "ModelGraph",
    "Spot",
    "Link",
    # Tracking
    "NCVKalmanFilter",
    "StateAndCovariance",
    "Predictor",
    "NearlyConstantVelocityPredictor",
    "PredictorConfig",
    "FilterRegistry",
    "TrackLoopError",
]
