#!/usr/bin/env python3
"""
Batch Run Script - Monte Carlo Prediction Runs

Runs multiple headless prediction runs in parallel using multiprocessing.
Outputs results to CSV for analysis.

Usage:
    python batch_run.py                    # Run default sweep
    python batch_run.py --noise 0.1 0.5 --speeds 2 --gaps 0 0.2
    python batch_run.py --quick --runs 10  # Error vs noise curve
    python batch_run.py --output results.csv
"""

import argparse
import csv
import logging
import os
import sys
import time
from datetime import datetime
from multiprocessing import Pool, cpu_count
from typing import List

from tqdm import tqdm

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from trackpredict.simulation.headless_runner import (
    PredictionResult,
    PredictionRunConfig,
    run_single_simulation,
)
from trackpredict.simulation.scenario_generator import ParameterSpace, ScenarioGenerator


def run_batch(
    configs: List[PredictionRunConfig],
    n_workers: int = None,
    output_file: str = "output/batch_results.csv",
) -> List[PredictionResult]:
    """
    Run batch of prediction runs in parallel.

    Args:
        configs: List of run configurations
        n_workers: Worker processes (default: all CPUs but one)
        output_file: CSV file, one row per run

    Returns:
        List of run results
    """
    if n_workers is None:
        n_workers = max(1, cpu_count() - 1)

    print("=" * 60)
    print("trackpredict Batch Processor")
    print("=" * 60)
    print(f"Configurations: {len(configs)}")
    print(f"Workers: {n_workers}")
    print(f"Output: {output_file}")
    print("=" * 60)

    start_time = time.perf_counter()

    # Create output directory
    os.makedirs(os.path.dirname(output_file) or ".", exist_ok=True)

    results = []
    with Pool(n_workers) as pool:
        iterator = pool.imap_unordered(run_single_simulation, configs)
        for result in tqdm(iterator, total=len(configs), desc="Predicting"):
            results.append(result)

    total_time = time.perf_counter() - start_time

    _save_results_csv(results, output_file)
    _print_summary(results, total_time)

    return results


def _save_results_csv(results: List[PredictionResult], filepath: str) -> None:
    """Save results to CSV file."""
    if not results:
        return

    fieldnames = list(results[0].to_dict().keys())

    with open(filepath, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()

        for result in results:
            writer.writerow(result.to_dict())

    print(f"\n✓ Results saved to: {filepath}")


def _print_summary(results: List[PredictionResult], total_time: float) -> None:
    """Print batch run summary."""
    if not results:
        print("No results to summarize")
        return

    total_predictions = sum(r.n_predictions for r in results)
    total_degenerate = sum(r.n_degenerate for r in results)
    avg_error = sum(r.mean_error for r in results) / len(results)
    avg_baseline = sum(r.mean_baseline_error for r in results) / len(results)

    print("\n" + "=" * 60)
    print("BATCH COMPLETE")
    print("=" * 60)
    print(f"Total runs: {len(results)}")
    print(f"Total predictions: {total_predictions:,}")
    print(f"Without velocity: {total_degenerate:,}")
    print(f"Average error: {avg_error:.3f}")
    print(f"Average error, no motion: {avg_baseline:.3f}")
    print(f"Total time: {total_time:.2f}s")
    print(f"Runs/second: {len(results) / total_time:.1f}")
    print("=" * 60)


def main():
    parser = argparse.ArgumentParser(description="Run Monte Carlo prediction runs")
    parser.add_argument(
        "--noise",
        type=float,
        nargs="+",
        default=[0.05, 0.1, 0.2, 0.5, 1.0],
        help="Localization noise stds to sweep",
    )
    parser.add_argument(
        "--speeds",
        type=float,
        nargs="+",
        default=[0.5, 1.0, 2.0, 4.0],
        help="Cell speeds to sweep, per frame",
    )
    parser.add_argument(
        "--gaps",
        type=float,
        nargs="+",
        default=[0.0, 0.1],
        help="Missed detection probabilities to sweep",
    )
    parser.add_argument(
        "--divisions",
        type=int,
        nargs="*",
        default=[10, 20],
        help="Frames at which cells divide (default: 10 20)",
    )
    parser.add_argument("--frames", type=int, default=30, help="Frames per lineage (default: 30)")
    parser.add_argument(
        "--limit", type=int, default=None, help="Run at most this many configurations"
    )
    parser.add_argument(
        "--runs", type=int, default=5, help="Lineages per configuration (default: 5)"
    )
    parser.add_argument("--workers", type=int, default=None, help="Worker processes")
    parser.add_argument("--output", type=str, default=None, help="Output CSV file")
    parser.add_argument(
        "--quick", action="store_true", help="Noise sweep only (10 noise levels, 5 runs each)"
    )

    args = parser.parse_args()

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    output = args.output
    if output is None:
        output = os.path.join("output", f"batch_{datetime.now():%Y%m%d_%H%M%S}.csv")

    if args.quick:
        print("Running quick error vs noise sweep...")
        configs = ScenarioGenerator.quick_sweep(n_runs=args.runs)
    else:
        space = ParameterSpace(
            noise_stds=args.noise,
            speeds=args.speeds,
            gap_probabilities=args.gaps,
            n_runs_per_config=args.runs,
            n_frames=args.frames,
            division_frames=args.divisions,
        )
        print(f"Sweep: {space.total_configs} configurations x {args.runs} lineages")
        configs = ScenarioGenerator.generate(space)

    if args.limit:
        configs = configs[: args.limit]

    run_batch(configs=configs, n_workers=args.workers, output_file=output)

    return 0


if __name__ == "__main__":
    sys.exit(main())
