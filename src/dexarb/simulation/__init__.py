"""Simulation module for demo mode without a node."""

from dexarb.simulation.market import SimulatedPair, create_simulated_pairs


__all__ = [
    "SimulatedPair",
    "create_simulated_pairs",
]
