"""Simulation and Investment Committee engines (pure functions over snapshots)."""
