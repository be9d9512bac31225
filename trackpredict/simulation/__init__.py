"""
trackpredict Simulation Package

Synthetic lineages, headless prediction runs and batch sweeps.
"""

from .headless_runner import (
    HeadlessRunner,
    PredictionResult,
    PredictionRunConfig,
    run_single_simulation,
)
from .lineage_generator import GeneratedLineage, LineageConfig, LineageGenerator
from .scenario_generator import ParameterSpace, ScenarioGenerator

__all__ = [
    "HeadlessRunner",
    "PredictionRunConfig",
    "PredictionResult",
    "run_single_simulation",
    "LineageConfig",
    "LineageGenerator",
    "GeneratedLineage",
    "ScenarioGenerator",
    "ParameterSpace",
]
