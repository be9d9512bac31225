"""
Headless Prediction Runner

Measures how well the predictor anticipates the next detection of each track
on a synthetic lineage, for batch processing and Monte Carlo analysis.

Features:
    - Frame-by-frame prediction, as when tracking a movie
    - Error against the true position of the next detection
    - No-motion baseline (next detection expected where the cell is)
    - Memory-efficient cleanup

Usage:
    config = PredictionRunConfig(lineage=LineageConfig(seed=0))
    runner = HeadlessRunner(config)
    result = runner.run()
"""

import gc
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List

import numpy as np

from ..tracking.predictor import NearlyConstantVelocityPredictor, PredictorConfig
from .lineage_generator import GeneratedLineage, LineageConfig, LineageGenerator

logger = logging.getLogger(__name__)


@dataclass
class PredictionRunConfig:
    """
    Configuration for a headless prediction run.

    Attributes:
        name: Run name
        lineage: Synthetic lineage definition
        predictor: Parameters of the predictor's filters
    """

    name: str = "run"
    lineage: LineageConfig = field(default_factory=LineageConfig)
    predictor: PredictorConfig = field(default_factory=PredictorConfig)


@dataclass
class PredictionResult:
    """
    Results from a headless prediction run.

    Attributes:
        config: Original configuration
        n_spots: Spots in the generated lineage
        n_missed: Detections dropped by the generator
        n_predictions: Predictions made with a Kalman filter
        n_degenerate: Predictions without velocity information
        n_filters: Filters registered at the end of the run
        mean_error: Mean distance between predicted and true next position
        max_error: Maximum of that distance
        mean_baseline_error: Mean distance for the no-motion baseline
        runtime_s: Wall-clock execution time
    """

    config: PredictionRunConfig
    n_spots: int = 0
    n_missed: int = 0
    n_predictions: int = 0
    n_degenerate: int = 0
    n_filters: int = 0
    mean_error: float = 0.0
    max_error: float = 0.0
    mean_baseline_error: float = 0.0
    runtime_s: float = 0.0
    errors: List[float] = field(default_factory=list)

    @property
    def improvement(self) -> float:
        """Ratio of the baseline error to the prediction error."""
        if self.mean_error == 0.0:
            return float("inf") if self.mean_baseline_error > 0.0 else 1.0
        return self.mean_baseline_error / self.mean_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for CSV/JSON export."""
        lineage = self.config.lineage
        return {
            "name": self.config.name,
            "noise_std": lineage.noise_std,
            "speed": lineage.speed,
            "n_frames": lineage.n_frames,
            "n_divisions": len(lineage.division_frames),
            "gap_probability": lineage.gap_probability,
            "n_spots": self.n_spots,
            "n_missed": self.n_missed,
            "n_predictions": self.n_predictions,
            "n_degenerate": self.n_degenerate,
            "n_filters": self.n_filters,
            "mean_error": self.mean_error,
            "max_error": self.max_error,
            "mean_baseline_error": self.mean_baseline_error,
            "runtime_s": self.runtime_s,
        }


class HeadlessRunner:
    """
    Headless prediction runner.

    Generates a lineage, then predicts the next detection of every spot that
    has one, in frame order.
    """

    def __init__(self, config: PredictionRunConfig):
        """
        Initialize headless runner.

        Args:
            config: Run configuration
        """
        self.config = config
        self._errors: List[float] = []
        self._baseline_errors: List[float] = []
        self._n_degenerate = 0

    def run(self) -> PredictionResult:
        """
        Execute the run.

        Returns:
            PredictionResult with error statistics
        """
        start_time = time.perf_counter()

        self._errors = []
        self._baseline_errors = []
        self._n_degenerate = 0

        lineage = LineageGenerator.generate(self.config.lineage)
        predictor = NearlyConstantVelocityPredictor(lineage.graph, self.config.predictor)
        lineage.graph.add_vertex_removed_listener(predictor.forget)

        for spot in lineage.graph.spots():
            self._evaluate(lineage, predictor, spot.id)

        runtime = time.perf_counter() - start_time
        result = self._build_result(lineage, len(predictor.registry), runtime)
        logger.info(
            "%s: %d predictions, mean error %.3f (baseline %.3f)",
            self.config.name,
            result.n_predictions,
            result.mean_error,
            result.mean_baseline_error,
        )

        self._cleanup()
        return result

    def _evaluate(
        self, lineage: GeneratedLineage, predictor: NearlyConstantVelocityPredictor, vertex: int
    ) -> None:
        """Predict the next detection after the vertex and score it."""
        graph = lineage.graph
        links = graph.outgoing_edges(vertex)
        if not links:
            return

        prediction = predictor.predict(vertex)
        if np.any(np.isinf(np.diag(prediction.covariance))):
            self._n_degenerate += len(links)
            return

        t = graph.timepoint(vertex)
        for link in links:
            # Links skipping frames: extrapolate over the missed frames
            frames_ahead = graph.timepoint(link.target) - t
            expected = prediction.position + (frames_ahead - 1) * prediction.velocity
            true_position = lineage.truth[link.target]
            self._errors.append(float(np.linalg.norm(expected - true_position)))
            self._baseline_errors.append(
                float(np.linalg.norm(graph.position(vertex) - true_position))
            )

    def _build_result(
        self, lineage: GeneratedLineage, n_filters: int, runtime: float
    ) -> PredictionResult:
        """Build run result from accumulated data."""
        errors = np.array(self._errors) if self._errors else np.array([0.0])
        baseline = np.array(self._baseline_errors) if self._baseline_errors else np.array([0.0])

        return PredictionResult(
            config=self.config,
            n_spots=len(lineage.graph),
            n_missed=lineage.n_missed,
            n_predictions=len(self._errors),
            n_degenerate=self._n_degenerate,
            n_filters=n_filters,
            mean_error=float(np.mean(errors)),
            max_error=float(np.max(errors)),
            mean_baseline_error=float(np.mean(baseline)),
            runtime_s=runtime,
            errors=self._errors[:100],  # Keep first 100 for debugging
        )

    def _cleanup(self) -> None:
        """Clean up memory after run."""
        self._errors = []
        self._baseline_errors = []
        gc.collect()


def run_single_simulation(config: PredictionRunConfig) -> PredictionResult:
    """
    Convenience function for multiprocessing.

    Args:
        config: Run configuration

    Returns:
        Run result
    """
    runner = HeadlessRunner(config)
    return runner.run()
