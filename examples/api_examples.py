"""
trackpredict API Examples

Usage examples demonstrating the track prediction API.
"""

import os
import sys

import numpy as np

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def example_kalman_filter():
    """
    Example 1: Nearly-Constant Velocity Kalman Filter

    Follow a cell moving along x, with one missed detection.
    """
    from trackpredict import NCVKalmanFilter

    kf = NCVKalmanFilter(
        [0.0, 0.0, 0.0, 1.0, 0.0, 0.0],  # x, y, z, vx, vy, vz
        np.eye(3) * 0.25,  # localization covariance
        0.1,  # initial state covariance
        0.01,  # position process std
        0.01,  # velocity process std
    )

    measurements = [[1.1, 0.0, 0.0], None, [2.9, 0.1, 0.0], [4.0, 0.0, 0.0]]

    print("=== Kalman Filter Example ===")
    for t, z in enumerate(measurements, start=1):
        kf.predict()
        kf.update(z, np.eye(3) * 0.25 if z is not None else None)
        status = "missed" if z is None else "detected"
        print(f"Frame {t} ({status}): position {np.round(kf.state[:3], 2)}")

    prediction = kf.get_predicted_state()
    print(f"Next position: {np.round(prediction.position, 2)}")
    print(f"Velocity: {np.round(prediction.velocity, 2)}")


def example_track_prediction():
    """
    Example 2: Predicting the Next Detection of a Track

    Build a short track in a lineage graph and query its head.
    """
    from trackpredict import ModelGraph, NearlyConstantVelocityPredictor

    graph = ModelGraph()
    previous = None
    for t in range(6):
        vertex = graph.add_spot(t, [2.0 * t, 1.0 * t, 0.0], radius=1.0)
        if previous is not None:
            graph.add_link(previous, vertex)
        previous = vertex

    predictor = NearlyConstantVelocityPredictor(graph)
    prediction = predictor.predict(previous)

    print("\n=== Track Prediction Example ===")
    print(f"Track head at frame {graph.timepoint(previous)}: {graph.position(previous)}")
    print(f"Predicted next position: {np.round(prediction.position, 2)}")
    print(f"Predicted velocity: {np.round(prediction.velocity, 2)}")
    print(f"Filters registered: {len(predictor.registry)}")


def example_degenerate_prediction():
    """
    Example 3: Track Tails

    A vertex without a parent has no velocity information.
    """
    from trackpredict import ModelGraph, NearlyConstantVelocityPredictor

    graph = ModelGraph()
    root = graph.add_spot(0, [5.0, 5.0, 5.0], radius=2.0)

    prediction = NearlyConstantVelocityPredictor(graph).predict(root)

    print("\n=== Track Tail Example ===")
    print(f"Predicted position: {prediction.position}")
    print(f"Velocity variance: {np.diag(prediction.covariance)[3:]}")


def example_headless_run():
    """
    Example 4: Accuracy on a Synthetic Lineage

    Generate dividing cells and compare with the no-motion baseline.
    """
    from trackpredict.simulation import HeadlessRunner, LineageConfig, PredictionRunConfig

    config = PredictionRunConfig(
        name="example",
        lineage=LineageConfig(
            n_founders=2, n_frames=30, noise_std=0.1, division_frames=[10, 20], seed=0
        ),
    )
    result = HeadlessRunner(config).run()

    print("\n=== Headless Run Example ===")
    print(f"Spots: {result.n_spots} ({result.n_missed} missed detections)")
    print(f"Predictions: {result.n_predictions}")
    print(f"Mean error: {result.mean_error:.3f}")
    print(f"No-motion error: {result.mean_baseline_error:.3f}")


if __name__ == "__main__":
    print("trackpredict API Examples")
    print("=" * 60)

    example_kalman_filter()
    example_track_prediction()
    example_degenerate_prediction()
    example_headless_run()

    print("\n" + "=" * 60)
    print("All examples completed successfully!")
