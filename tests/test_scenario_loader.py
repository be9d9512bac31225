"""
Scenario Loader Test Suite

Tests for YAML scenario parsing and runner creation.
"""

import os
import sys

import pytest

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from trackpredict.io.scenario_loader import ScenarioLoader, load_scenario
from trackpredict.simulation.headless_runner import HeadlessRunner

SCENARIO_YAML = """
scenario:
  name: "Two cells"
  description: "Straight tracks"

lineage:
  n_founders: 2
  n_frames: 8
  velocity:
    vx: 1.5
    vy: 0.0
    vz: -0.5
  noise_std: 0.0
  division_frames: [4]
  gap_probability: 0.1
  seed: 7

predictor:
  init_state_covariance: 0.5
  process_std_factor: 0.02
"""


class TestScenarioLoader:
    """YAML scenario parsing."""

    def test_load_file(self, tmp_path):
        path = tmp_path / "scenario.yaml"
        path.write_text(SCENARIO_YAML, encoding="utf-8")

        config = ScenarioLoader(str(path)).get_config()

        assert config.name == "Two cells"
        assert config.description == "Straight tracks"
        assert config.lineage.n_founders == 2
        assert config.lineage.n_frames == 8
        assert config.lineage.velocity == (1.5, 0.0, -0.5)
        assert config.lineage.division_frames == [4]
        assert config.lineage.seed == 7
        assert config.predictor.init_state_covariance == pytest.approx(0.5)
        assert config.predictor.process_std_factor == pytest.approx(0.02)

    def test_defaults(self):
        loader = ScenarioLoader()
        loader.load_string("scenario:\n  name: Empty\n")

        config = loader.get_config()

        assert loader.get_scenario_name() == "Empty"
        assert config.lineage.n_founders == 1
        assert config.lineage.seed is None
        assert config.predictor.init_state_covariance == pytest.approx(0.1)
        assert config.predictor.process_std_factor == pytest.approx(0.01)

    def test_empty_document(self):
        loader = ScenarioLoader()
        loader.load_string("")

        assert loader.get_scenario_name() == "Unnamed Scenario"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ScenarioLoader(str(tmp_path / "missing.yaml"))

    def test_runner_requires_scenario(self):
        loader = ScenarioLoader()

        assert loader.get_scenario_name() == "Unknown"
        with pytest.raises(ValueError):
            loader.create_runner()

    def test_create_runner(self):
        loader = ScenarioLoader()
        loader.load_string(SCENARIO_YAML)

        runner = loader.create_runner()
        result = runner.run()

        assert isinstance(runner, HeadlessRunner)
        assert result.config.name == "Two cells"
        assert result.n_spots + result.n_missed == 2 * 5 + 4 * 3

    def test_shipped_scenario(self):
        config = load_scenario(os.path.join(PROJECT_ROOT, "scenarios", "dividing_cells.yaml"))

        assert config.name == "Dividing cells"
        assert config.lineage.division_frames == [10, 20]
