#!/usr/bin/env python3
"""
Headless Prediction CLI

Run a single prediction run on a synthetic lineage.

Usage:
    python headless.py                                  # Default lineage
    python headless.py --noise 0.5 --speed 3            # Custom lineage
    python headless.py --config scenarios/dividing_cells.yaml

Examples:
    # Quick test
    python headless.py --frames 10 --founders 1

    # Dividing cells with missed detections
    python headless.py --divisions 10 20 --gaps 0.1 --frames 30
"""

import argparse
import logging
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from trackpredict.io.scenario_loader import load_scenario
from trackpredict.simulation.headless_runner import HeadlessRunner, PredictionRunConfig
from trackpredict.simulation.lineage_generator import LineageConfig
from trackpredict.tracking.predictor import PredictorConfig


def main():
    parser = argparse.ArgumentParser(description="Run headless track prediction")

    # Config file
    parser.add_argument("--config", type=str, default=None, help="YAML scenario file")

    # Lineage parameters
    parser.add_argument(
        "--founders", type=int, default=1, help="Number of founder cells (default: 1)"
    )
    parser.add_argument("--frames", type=int, default=20, help="Number of frames (default: 20)")
    parser.add_argument(
        "--speed", type=float, default=2.0, help="Cell speed along x, per frame (default: 2)"
    )
    parser.add_argument(
        "--noise", type=float, default=0.1, help="Localization noise std (default: 0.1)"
    )
    parser.add_argument("--radius", type=float, default=1.0, help="Spot radius (default: 1)")
    parser.add_argument(
        "--divisions", type=int, nargs="*", default=[], help="Frames at which cells divide"
    )
    parser.add_argument(
        "--gaps", type=float, default=0.0, help="Missed detection probability (default: 0)"
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed")

    # Predictor parameters
    parser.add_argument(
        "--init-cov",
        type=float,
        default=0.1,
        help="Initial state covariance of new filters (default: 0.1)",
    )
    parser.add_argument(
        "--process-factor",
        type=float,
        default=0.01,
        help="Process noise std as a fraction of the radius (default: 0.01)",
    )

    # Options
    parser.add_argument("--quiet", action="store_true", help="Suppress output")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    # Load config
    if args.config:
        if not os.path.exists(args.config):
            print(f"Error: Config file not found: {args.config}")
            return 1
        config = load_scenario(args.config).to_run_config()
    else:
        config = PredictionRunConfig(
            name="cli",
            lineage=LineageConfig(
                n_founders=args.founders,
                n_frames=args.frames,
                velocity=(args.speed, 0.0, 0.0),
                noise_std=args.noise,
                radius=args.radius,
                division_frames=args.divisions,
                gap_probability=args.gaps,
                seed=args.seed,
            ),
            predictor=PredictorConfig(
                init_state_covariance=args.init_cov,
                process_std_factor=args.process_factor,
            ),
        )

    lineage = config.lineage
    if not args.quiet:
        print("=" * 60)
        print("trackpredict Headless Mode")
        print("=" * 60)
        print(f"Scenario: {config.name}")
        print(f"Founders: {lineage.n_founders}")
        print(f"Frames: {lineage.n_frames}")
        print(f"Speed: {lineage.speed:.2f} /frame")
        print(f"Noise std: {lineage.noise_std:.3f}")
        print(f"Divisions at: {lineage.division_frames or 'none'}")
        print(f"Missed detections: {lineage.gap_probability:.0%}")
        print("=" * 60)

    # Run
    runner = HeadlessRunner(config)
    result = runner.run()

    if not args.quiet:
        print("\n--- RESULTS ---")
        print(f"Spots: {result.n_spots:,} ({result.n_missed} missed detections)")
        print(f"Predictions: {result.n_predictions:,}")
        print(f"Without velocity: {result.n_degenerate:,}")
        print(f"Filters at track heads: {result.n_filters:,}")
        print(f"Mean error: {result.mean_error:.3f}")
        print(f"Max error: {result.max_error:.3f}")
        print(f"Mean error, no motion: {result.mean_baseline_error:.3f}")
        print(f"Runtime: {result.runtime_s * 1000:.1f} ms")
        print("=" * 60)
    else:
        # Machine-readable output
        print(f"{result.mean_error:.4f}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
