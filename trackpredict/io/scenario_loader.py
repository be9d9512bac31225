"""
Scenario Loader

YAML-based scenario configuration parser for trackpredict.

Loads prediction scenarios from YAML files and creates configured
HeadlessRunner instances.

Supported scenario elements:
    - Scenario metadata (name, description)
    - Synthetic lineage (founders, frames, velocity, noise, divisions, gaps)
    - Predictor parameters (initial state covariance, process noise factor)

Usage:
    loader = ScenarioLoader('scenarios/dividing_cells.yaml')
    runner = loader.create_runner()
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import yaml

from ..simulation.headless_runner import HeadlessRunner, PredictionRunConfig
from ..simulation.lineage_generator import LineageConfig
from ..tracking.predictor import PredictorConfig


@dataclass
class ScenarioConfig:
    """Complete scenario configuration."""

    name: str
    description: str
    lineage: LineageConfig
    predictor: PredictorConfig

    def to_run_config(self) -> PredictionRunConfig:
        return PredictionRunConfig(name=self.name, lineage=self.lineage, predictor=self.predictor)


class ScenarioLoader:
    """
    Loads prediction scenarios from YAML files.

    Usage:
        loader = ScenarioLoader('scenarios/dividing_cells.yaml')
        config = loader.get_config()
        runner = loader.create_runner()
    """

    def __init__(self, filepath: Optional[str] = None):
        """
        Initialize scenario loader.

        Args:
            filepath: Path to YAML scenario file (optional)
        """
        self.filepath = filepath
        self.data: Dict[str, Any] = {}
        self._config: Optional[ScenarioConfig] = None

        if filepath:
            self.load(filepath)

    def load(self, filepath: str) -> bool:
        """
        Load scenario from YAML file.

        Args:
            filepath: Path to YAML scenario file

        Returns:
            True if loaded successfully

        Raises:
            FileNotFoundError: If file doesn't exist
            yaml.YAMLError: If YAML parsing fails
        """
        if not os.path.exists(filepath):
            raise FileNotFoundError(f"Scenario file not found: {filepath}")

        self.filepath = filepath

        with open(filepath, "r", encoding="utf-8") as f:
            self.data = yaml.safe_load(f) or {}

        self._config = self._parse_config()
        return True

    def load_string(self, text: str) -> bool:
        """Load scenario from a YAML string."""
        self.data = yaml.safe_load(text) or {}
        self._config = self._parse_config()
        return True

    def _parse_config(self) -> ScenarioConfig:
        """Parse loaded YAML data into ScenarioConfig."""
        scenario = self.data.get("scenario", {})

        return ScenarioConfig(
            name=scenario.get("name", "Unnamed Scenario"),
            description=scenario.get("description", ""),
            lineage=self._parse_lineage(),
            predictor=self._parse_predictor(),
        )

    def _parse_lineage(self) -> LineageConfig:
        """Parse synthetic lineage configuration."""
        lineage = self.data.get("lineage", {})
        vel = lineage.get("velocity", {})
        seed = lineage.get("seed")

        return LineageConfig(
            n_founders=int(lineage.get("n_founders", 1)),
            n_frames=int(lineage.get("n_frames", 20)),
            velocity=(
                float(vel.get("vx", 2.0)),
                float(vel.get("vy", 1.0)),
                float(vel.get("vz", 0.0)),
            ),
            noise_std=float(lineage.get("noise_std", 0.1)),
            radius=float(lineage.get("radius", 1.0)),
            founder_spacing=float(lineage.get("founder_spacing", 50.0)),
            division_frames=[int(t) for t in lineage.get("division_frames", [])],
            division_angle_deg=float(lineage.get("division_angle_deg", 30.0)),
            gap_probability=float(lineage.get("gap_probability", 0.0)),
            seed=int(seed) if seed is not None else None,
        )

    def _parse_predictor(self) -> PredictorConfig:
        """Parse predictor configuration."""
        predictor = self.data.get("predictor", {})

        return PredictorConfig(
            init_state_covariance=float(predictor.get("init_state_covariance", 1e-1)),
            process_std_factor=float(predictor.get("process_std_factor", 1e-2)),
        )

    def get_config(self) -> Optional[ScenarioConfig]:
        """
        Get parsed scenario configuration.

        Returns:
            ScenarioConfig or None if not loaded
        """
        return self._config

    def get_scenario_name(self) -> str:
        """Get scenario name."""
        if self._config:
            return self._config.name
        return "Unknown"

    def create_runner(self) -> HeadlessRunner:
        """
        Create a HeadlessRunner from the loaded scenario.

        Raises:
            ValueError: If no scenario is loaded
        """
        if not self._config:
            raise ValueError("No scenario loaded. Call load() first.")
        return HeadlessRunner(self._config.to_run_config())


def load_scenario(filepath: str) -> ScenarioConfig:
    """
    Convenience function to load a scenario file.

    Args:
        filepath: Path to YAML scenario file

    Returns:
        ScenarioConfig instance
    """
    loader = ScenarioLoader(filepath)
    return loader.get_config()
