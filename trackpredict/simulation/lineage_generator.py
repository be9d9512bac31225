"""
Lineage Generator

Generates synthetic cell lineages for prediction runs: cells moving at
constant velocity, detected with Gaussian localization noise, dividing at
chosen frames and occasionally missed by the detector.

Features:
    - Several founder cells
    - Divisions with daughter velocities rotated about the z axis
    - Missed detections (links that skip a frame)
    - Ground truth positions for every spot

Usage:
    config = LineageConfig(n_frames=10, division_frames=[5], seed=0)
    lineage = LineageGenerator.generate(config)
    graph = lineage.graph
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np
from scipy.spatial.transform import Rotation

from ..graph.model import ModelGraph


@dataclass
class LineageConfig:
    """
    Synthetic lineage definition.

    Attributes:
        n_founders: Number of cells at the first frame
        n_frames: Number of frames
        velocity: Velocity of the founders [length/frame]
        noise_std: Std of the localization noise [length]
        radius: Radius of the spots [length]
        founder_spacing: Distance between founders along y [length]
        division_frames: Frames at which every cell divides
        division_angle_deg: Daughters turn by +/- this angle about z
        gap_probability: Probability of missing a detection
        seed: Random seed for reproducibility
    """

    n_founders: int = 1
    n_frames: int = 20
    velocity: Tuple[float, float, float] = (2.0, 1.0, 0.0)
    noise_std: float = 0.1
    radius: float = 1.0
    founder_spacing: float = 50.0
    division_frames: List[int] = field(default_factory=list)
    division_angle_deg: float = 30.0
    gap_probability: float = 0.0
    seed: Optional[int] = None

    @property
    def speed(self) -> float:
        """Founder speed [length/frame]."""
        return float(np.linalg.norm(self.velocity))


@dataclass
class GeneratedLineage:
    """
    A generated lineage and its ground truth.

    Attributes:
        graph: Spots and links
        truth: True position of the cell at each spot
        n_missed: Number of detections dropped
    """

    graph: ModelGraph
    truth: Dict[int, np.ndarray]
    n_missed: int = 0


@dataclass
class _Cell:
    name: str
    position: np.ndarray
    velocity: np.ndarray
    last_vertex: Optional[int] = None


class LineageGenerator:
    """
    Generates lineage graphs from a LineageConfig.
    """

    @staticmethod
    def generate(config: LineageConfig) -> GeneratedLineage:
        """
        Generate a lineage.

        Args:
            config: Lineage definition

        Returns:
            GeneratedLineage with graph and ground truth
        """
        rng = np.random.default_rng(config.seed)
        graph = ModelGraph()
        truth: Dict[int, np.ndarray] = {}
        n_missed = 0

        velocity = np.asarray(config.velocity, dtype=np.float64)
        cells = [
            _Cell(
                name=str(i + 1),
                position=np.array([0.0, i * config.founder_spacing, 0.0]),
                velocity=velocity.copy(),
            )
            for i in range(config.n_founders)
        ]
        division_frames = set(config.division_frames)

        for t in range(config.n_frames):
            next_cells = []
            for cell in cells:
                if t > 0:
                    cell.position = cell.position + cell.velocity

                # Never miss the first detection of a founder
                missed = cell.last_vertex is not None and rng.random() < config.gap_probability
                if missed:
                    n_missed += 1
                else:
                    measured = cell.position + rng.normal(0.0, config.noise_std, 3)
                    vertex = graph.add_spot(t, measured, config.radius, label=f"{cell.name}@{t}")
                    truth[vertex] = cell.position.copy()
                    if cell.last_vertex is not None:
                        graph.add_link(cell.last_vertex, vertex)
                    cell.last_vertex = vertex

                if t in division_frames:
                    next_cells.extend(LineageGenerator._divide(cell, config.division_angle_deg))
                else:
                    next_cells.append(cell)
            cells = next_cells

        return GeneratedLineage(graph=graph, truth=truth, n_missed=n_missed)

    @staticmethod
    def _divide(cell: _Cell, angle_deg: float) -> List[_Cell]:
        """Two daughters sharing the mother's last spot, turning apart."""
        daughters = []
        for suffix, sign in (("a", 1.0), ("b", -1.0)):
            rotation = Rotation.from_euler("z", sign * angle_deg, degrees=True)
            daughters.append(
                _Cell(
                    name=cell.name + suffix,
                    position=cell.position.copy(),
                    velocity=rotation.apply(cell.velocity),
                    last_vertex=cell.last_vertex,
                )
            )
        return daughters
