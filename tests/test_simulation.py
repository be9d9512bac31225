"""
trackpredict Simulation Validation Test Suite

Tests for synthetic lineage generation, headless prediction runs and
parameter sweeps.

Test ID | Description                    | Reference                 | Tolerance
--------|--------------------------------|---------------------------|------------
1       | Lineage structure              | Founders x frames         | Exact
2       | Division geometry              | Rotation about z          | 1e-9
3       | Zero-noise prediction error    | x = x0 + v*t              | 1e-9
4       | Kalman beats no-motion         | Baseline error            | Relative
5       | Sweep sizes                    | Cartesian product         | Exact
"""

import os
import sys

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from trackpredict.simulation.headless_runner import (
    HeadlessRunner,
    PredictionRunConfig,
    run_single_simulation,
)
from trackpredict.simulation.lineage_generator import LineageConfig, LineageGenerator
from trackpredict.simulation.scenario_generator import ParameterSpace, ScenarioGenerator

# =============================================================================
# TEST 1: Lineage Generation
# =============================================================================


class TestLineageGenerator:
    """Structure and ground truth of generated lineages."""

    def test_straight_tracks(self):
        """Two founders over 5 frames: 10 spots, 8 links"""
        lineage = LineageGenerator.generate(LineageConfig(n_founders=2, n_frames=5, seed=0))
        graph = lineage.graph

        assert len(graph) == 10
        assert graph.number_of_links() == 8
        assert len(graph.roots()) == 2
        assert lineage.n_missed == 0

    def test_truth_follows_velocity(self):
        """True positions advance by the velocity every frame"""
        config = LineageConfig(n_frames=4, velocity=(1.0, 2.0, 0.5), noise_std=0.0, seed=0)
        lineage = LineageGenerator.generate(config)

        for spot in lineage.graph.spots():
            expected = np.array([1.0, 2.0, 0.5]) * spot.timepoint
            np.testing.assert_allclose(lineage.truth[spot.id], expected)
            np.testing.assert_allclose(spot.position, expected)

    def test_noise_is_reproducible(self):
        """Same seed, same detections"""
        config = LineageConfig(n_frames=6, noise_std=0.5, seed=123)

        first = [s.position for s in LineageGenerator.generate(config).graph.spots()]
        second = [s.position for s in LineageGenerator.generate(config).graph.spots()]

        np.testing.assert_array_equal(np.array(first), np.array(second))

    def test_division(self):
        """A division at frame 2 splits the track into two daughters"""
        config = LineageConfig(
            n_frames=6,
            velocity=(1.0, 0.0, 0.0),
            noise_std=0.0,
            division_frames=[2],
            division_angle_deg=30.0,
            seed=0,
        )
        lineage = LineageGenerator.generate(config)
        graph = lineage.graph

        assert len(graph) == 9
        assert graph.number_of_links() == 8
        mother = [s.id for s in graph.spots() if s.timepoint == 2][0]
        daughters = [link.target for link in graph.outgoing_edges(mother)]
        assert len(daughters) == 2

        angle = np.radians(30.0)
        y_positions = sorted(lineage.truth[d][1] for d in daughters)
        assert y_positions == pytest.approx([-np.sin(angle), np.sin(angle)])
        for d in daughters:
            assert lineage.truth[d][0] == pytest.approx(2.0 + np.cos(angle))

    def test_all_detections_missed(self):
        """With gap probability 1 only the first detection of each founder remains"""
        config = LineageConfig(n_founders=3, n_frames=5, gap_probability=1.0, seed=0)
        lineage = LineageGenerator.generate(config)

        assert len(lineage.graph) == 3
        assert lineage.graph.number_of_links() == 0
        assert lineage.n_missed == 3 * 4

    def test_gaps_skip_frames(self):
        """Links over missed detections span more than one frame"""
        config = LineageConfig(n_frames=20, gap_probability=0.5, seed=5)
        lineage = LineageGenerator.generate(config)
        graph = lineage.graph

        spans = [
            graph.timepoint(link.target) - graph.timepoint(link.source)
            for spot in graph.spots()
            for link in graph.outgoing_edges(spot.id)
        ]
        assert lineage.n_missed > 0
        assert max(spans) > 1
        assert len(graph) + lineage.n_missed == 20


# =============================================================================
# TEST 2: Headless Runner
# =============================================================================


class TestHeadlessRunner:
    """Prediction error on generated lineages."""

    def test_exact_predictions_without_noise(self):
        """Zero noise, constant velocity: predictions are exact"""
        config = PredictionRunConfig(
            lineage=LineageConfig(n_frames=10, velocity=(1.0, 0.0, 0.0), noise_std=0.0, seed=0)
        )

        result = HeadlessRunner(config).run()

        assert result.n_spots == 10
        assert result.n_degenerate == 1  # the track tail
        assert result.n_predictions == 8
        assert result.mean_error == pytest.approx(0.0, abs=1e-9)
        assert result.mean_baseline_error == pytest.approx(1.0)
        assert result.n_filters == 1

    def test_exact_predictions_over_gaps(self):
        """Missed detections are bridged without error when there is no noise"""
        config = PredictionRunConfig(
            lineage=LineageConfig(n_frames=20, noise_std=0.0, gap_probability=0.5, seed=1)
        )

        result = HeadlessRunner(config).run()

        assert result.n_missed > 0
        assert result.max_error == pytest.approx(0.0, abs=1e-9)

    def test_kalman_beats_baseline(self):
        """Noisy moving cells: the Kalman prediction is closer than 'no motion'"""
        config = PredictionRunConfig(
            lineage=LineageConfig(n_founders=2, n_frames=30, noise_std=0.1, seed=4)
        )

        result = HeadlessRunner(config).run()

        assert result.n_predictions == 2 * 28
        assert result.mean_error < result.mean_baseline_error
        assert result.improvement > 1.0

    def test_divisions(self):
        """Each daughter branch ends with its own filter"""
        config = PredictionRunConfig(
            lineage=LineageConfig(n_frames=12, noise_std=0.05, division_frames=[4, 8], seed=2)
        )

        result = HeadlessRunner(config).run()

        assert result.n_filters == 4
        assert result.n_degenerate == 1
        assert result.mean_error < result.mean_baseline_error

    def test_to_dict(self):
        config = PredictionRunConfig(name="dict", lineage=LineageConfig(n_frames=5, seed=0))

        row = run_single_simulation(config).to_dict()

        assert row["name"] == "dict"
        assert row["n_frames"] == 5
        assert row["speed"] == pytest.approx(np.sqrt(5.0))
        for key in ("mean_error", "max_error", "mean_baseline_error", "runtime_s"):
            assert key in row


# =============================================================================
# TEST 3: Parameter Sweeps
# =============================================================================


class TestScenarioGenerator:
    """Monte Carlo configuration sweeps."""

    def test_cartesian_product(self):
        space = ParameterSpace(
            noise_stds=[0.1, 0.2],
            speeds=[1.0, 2.0, 3.0],
            gap_probabilities=[0.0, 0.1],
            n_runs_per_config=2,
        )

        configs = ScenarioGenerator.generate(space)

        assert space.total_configs == 12
        assert space.total_runs == 24
        assert len(configs) == 24
        assert len({c.name for c in configs}) == 24

    def test_quick_sweep(self):
        configs = ScenarioGenerator.quick_sweep(noise_min=0.1, noise_max=0.4, n_noise=4, n_runs=3)

        assert len(configs) == 12
        noise = sorted({c.lineage.noise_std for c in configs})
        assert noise == pytest.approx([0.1, 0.2, 0.3, 0.4])

    def test_runs_differ_by_seed(self):
        space = ParameterSpace(noise_stds=[0.1], speeds=[1.0], n_runs_per_config=3)

        seeds = [c.lineage.seed for c in ScenarioGenerator.generate_iterator(space)]

        assert len(set(seeds)) == 3

    def test_seeds_unique_across_sweep(self):
        """No two runs of the default sweep share a random stream"""
        space = ParameterSpace(gap_probabilities=[0.0, 0.1], n_runs_per_config=3)

        seeds = [c.lineage.seed for c in ScenarioGenerator.generate(space)]

        assert len(seeds) == space.total_runs
        assert len(set(seeds)) == len(seeds)

    def test_seeds_differ_between_nearby_configurations(self):
        """(noise 0.05, speed 1) and (noise 0.1, speed 0.5) get different seeds"""
        space = ParameterSpace(noise_stds=[0.05, 0.1], speeds=[0.5, 1.0], n_runs_per_config=1)

        seeds = {
            (c.lineage.noise_std, c.lineage.velocity[0]): c.lineage.seed
            for c in ScenarioGenerator.generate(space)
        }

        assert seeds[(0.05, 1.0)] != seeds[(0.1, 0.5)]
