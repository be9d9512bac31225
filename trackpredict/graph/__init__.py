"""
Graph Module

Lineage graph interface and its networkx-backed implementation.

Components:
    - ReadOnlyGraph: What the predictors consume from a lineage graph
    - ModelGraph: Spots and links stored in a networkx DiGraph
    - Spot, Link: Vertex and edge records
"""

from .model import Link, ModelGraph, ReadOnlyGraph, Spot

__all__ = ["ReadOnlyGraph", "ModelGraph", "Spot", "Link"]
