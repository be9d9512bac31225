"""
Scenario Generator

Generates prediction runs from parameter ranges for Monte Carlo analysis.

Features:
    - Cartesian product of parameter values
    - Predefined parameter spaces
    - Configurable ranges

Usage:
    space = ParameterSpace(
        noise_stds=[0.05, 0.1, 0.5],
        speeds=[1.0, 2.0],
    )
    configs = ScenarioGenerator.generate(space)
"""

from dataclasses import dataclass, field
from itertools import product
from typing import Iterator, List

import numpy as np

from ..tracking.predictor import PredictorConfig
from .headless_runner import PredictionRunConfig
from .lineage_generator import LineageConfig


@dataclass
class ParameterSpace:
    """
    Parameter space definition for Monte Carlo sweep.

    Attributes:
        noise_stds: List of localization noise stds [length]
        speeds: List of cell speeds [length/frame], motion along x
        gap_probabilities: List of missed-detection probabilities
        n_runs_per_config: Number of Monte Carlo runs per configuration
    """

    noise_stds: List[float] = field(default_factory=lambda: [0.05, 0.1, 0.2, 0.5, 1.0])
    speeds: List[float] = field(default_factory=lambda: [0.5, 1.0, 2.0, 4.0])
    gap_probabilities: List[float] = field(default_factory=lambda: [0.0])
    n_runs_per_config: int = 10

    # Fixed parameters
    n_founders: int = 4
    n_frames: int = 30
    division_frames: List[int] = field(default_factory=lambda: [10, 20])
    radius: float = 1.0
    predictor: PredictorConfig = field(default_factory=PredictorConfig)

    @property
    def total_configs(self) -> int:
        """Total number of configurations."""
        return len(self.noise_stds) * len(self.speeds) * len(self.gap_probabilities)

    @property
    def total_runs(self) -> int:
        """Total number of simulation runs."""
        return self.total_configs * self.n_runs_per_config


class ScenarioGenerator:
    """
    Generates prediction run configurations from parameter space.
    """

    @staticmethod
    def generate(space: ParameterSpace) -> List[PredictionRunConfig]:
        """
        Generate all configurations from parameter space.

        Args:
            space: Parameter space definition

        Returns:
            List of PredictionRunConfig objects
        """
        return list(ScenarioGenerator.generate_iterator(space))

    @staticmethod
    def generate_iterator(space: ParameterSpace) -> Iterator[PredictionRunConfig]:
        """
        Generate configurations as iterator (memory efficient).

        Args:
            space: Parameter space definition

        Yields:
            PredictionRunConfig objects
        """
        configurations = product(space.noise_stds, space.speeds, space.gap_probabilities)
        for config_idx, (noise_std, speed, gap_probability) in enumerate(configurations):
            # One seed per (configuration, run), never shared across the sweep
            for run_idx in range(space.n_runs_per_config):
                lineage = LineageConfig(
                    n_founders=space.n_founders,
                    n_frames=space.n_frames,
                    velocity=(speed, 0.0, 0.0),
                    noise_std=noise_std,
                    radius=space.radius,
                    division_frames=list(space.division_frames),
                    gap_probability=gap_probability,
                    seed=config_idx * space.n_runs_per_config + run_idx,
                )
                yield PredictionRunConfig(
                    name=f"noise{noise_std:g}_speed{speed:g}_gap{gap_probability:g}_run{run_idx}",
                    lineage=lineage,
                    predictor=space.predictor,
                )

    @staticmethod
    def quick_sweep(
        noise_min: float = 0.05,
        noise_max: float = 1.0,
        n_noise: int = 10,
        speed: float = 2.0,
        n_runs: int = 5,
    ) -> List[PredictionRunConfig]:
        """
        Quick noise sweep for an error vs noise curve.

        Args:
            noise_min: Minimum localization noise std
            noise_max: Maximum localization noise std
            n_noise: Number of noise points
            speed: Fixed cell speed [length/frame]
            n_runs: Runs per noise point

        Returns:
            List of configs
        """
        space = ParameterSpace(
            noise_stds=[float(n) for n in np.linspace(noise_min, noise_max, n_noise)],
            speeds=[speed],
            n_runs_per_config=n_runs,
        )
        return ScenarioGenerator.generate(space)
