"""
Tracking Module

Track-state prediction on lineage graphs.

Components:
    - NCVKalmanFilter: Nearly-constant velocity Kalman filter (3D)
    - StateAndCovariance: State estimate container
    - NearlyConstantVelocityPredictor: Finds or builds the filter of a track head
    - FilterRegistry: Filters by track head
    - PredictorConfig: Parameters of the filters created by the predictor

Example:
    >>> from trackpredict.tracking import NearlyConstantVelocityPredictor
    >>> predictor = NearlyConstantVelocityPredictor(graph)
    >>> prediction = predictor.predict(track_head)
"""

from .kalman import NCVKalmanFilter, StateAndCovariance
from .predictor import (
    FilterRegistry,
    NearlyConstantVelocityPredictor,
    Predictor,
    PredictorConfig,
    TrackLoopError,
)

__all__ = [
    "NCVKalmanFilter",
    "StateAndCovariance",
    "Predictor",
    "NearlyConstantVelocityPredictor",
    "PredictorConfig",
    "FilterRegistry",
    "TrackLoopError",
]
