#!/usr/bin/env python3
"""
Performance Plotting Script

Generates prediction error curves from batch run results.

Usage:
    python plot_performance.py output/batch_results.csv
    python plot_performance.py output/batch_results.csv --save figures/
"""

import argparse
import os
import sys
from typing import Optional

import matplotlib
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

matplotlib.use("Agg")  # Non-interactive backend


def load_results(filepath: str) -> pd.DataFrame:
    """Load batch results from CSV."""
    return pd.read_csv(filepath)


def plot_error_vs_noise(df: pd.DataFrame, save_path: Optional[str] = None) -> None:
    """
    Plot mean prediction error vs localization noise for each speed.

    The no-motion baseline is drawn dashed in the same color.
    """
    fig, ax = plt.subplots(figsize=(10, 6))

    speeds = sorted(df["speed"].unique())
    colors = plt.cm.viridis(np.linspace(0.2, 0.8, len(speeds)))

    for speed, color in zip(speeds, colors):
        subset = df[df["speed"] == speed]
        grouped = subset.groupby("noise_std")[["mean_error", "mean_baseline_error"]].agg(
            ["mean", "std"]
        )

        ax.plot(
            grouped.index,
            grouped[("mean_error", "mean")],
            "o-",
            color=color,
            label=f"v = {speed:g} /frame",
            linewidth=2,
            markersize=6,
        )
        ax.fill_between(
            grouped.index,
            grouped[("mean_error", "mean")] - grouped[("mean_error", "std")],
            grouped[("mean_error", "mean")] + grouped[("mean_error", "std")],
            alpha=0.2,
            color=color,
        )
        ax.plot(
            grouped.index,
            grouped[("mean_baseline_error", "mean")],
            "--",
            color=color,
            linewidth=1,
        )

    ax.set_xlabel("Localization noise std", fontsize=12)
    ax.set_ylabel("Mean prediction error", fontsize=12)
    ax.set_title("Prediction Error vs Noise\n(dashed: no-motion baseline)", fontsize=14)
    ax.legend(title="Cell speed", loc="upper left")
    ax.grid(True, alpha=0.3)

    plt.tight_layout()
    _save_or_show(fig, save_path, "error_vs_noise.png")


def plot_error_histogram(df: pd.DataFrame, save_path: Optional[str] = None) -> None:
    """Plot the distribution of per-run mean errors, relative to noise."""
    fig, ax = plt.subplots(figsize=(10, 6))

    relative = df["mean_error"] / df["noise_std"]
    ax.hist(relative, bins=30, color="#00d4ff", alpha=0.8)

    ax.set_xlabel("Mean error / noise std", fontsize=12)
    ax.set_ylabel("Runs", fontsize=12)
    ax.set_title("Relative Prediction Error", fontsize=14)
    ax.grid(True, alpha=0.3)

    plt.tight_layout()
    _save_or_show(fig, save_path, "relative_error_hist.png")


def _save_or_show(fig, save_path: Optional[str], filename: str) -> None:
    if save_path:
        filepath = os.path.join(save_path, filename)
        fig.savefig(filepath, dpi=150, bbox_inches="tight")
        print(f"✓ Saved: {filepath}")
    else:
        plt.show()
    plt.close(fig)


def generate_report(df: pd.DataFrame, save_path: str) -> None:
    """Generate all plots and summary statistics."""
    os.makedirs(save_path, exist_ok=True)

    print(f"\n{'=' * 60}")
    print("PREDICTION PERFORMANCE REPORT")
    print(f"{'=' * 60}")

    print(f"\nTotal runs: {len(df)}")
    print(f"Noise std: {df['noise_std'].min():g} - {df['noise_std'].max():g}")
    print(f"Speeds: {sorted(df['speed'].unique())}")
    print(f"Overall mean error: {df['mean_error'].mean():.3f}")
    print(f"Overall no-motion error: {df['mean_baseline_error'].mean():.3f}")

    print("\nGenerating plots...")
    plot_error_vs_noise(df, save_path)
    plot_error_histogram(df, save_path)

    summary = (
        df.groupby(["noise_std", "speed", "gap_probability"])
        .agg(
            {
                "mean_error": ["mean", "std"],
                "max_error": "max",
                "mean_baseline_error": "mean",
                "n_predictions": "sum",
                "n_degenerate": "sum",
            }
        )
        .round(3)
    )

    summary_path = os.path.join(save_path, "summary_stats.csv")
    summary.to_csv(summary_path)
    print(f"✓ Saved: {summary_path}")

    print(f"\n{'=' * 60}")
    print(f"Report complete: {save_path}")
    print(f"{'=' * 60}")


def main():
    parser = argparse.ArgumentParser(description="Plot prediction performance from batch results")
    parser.add_argument("input", type=str, help="Input CSV file from batch_run.py")
    parser.add_argument(
        "--save",
        type=str,
        default="output/figures",
        help="Directory to save figures (default: output/figures)",
    )

    args = parser.parse_args()

    if not os.path.exists(args.input):
        print(f"Error: File not found: {args.input}")
        return 1

    df = load_results(args.input)
    print(f"Loaded {len(df)} results from: {args.input}")

    generate_report(df, args.save)

    return 0


if __name__ == "__main__":
    sys.exit(main())
