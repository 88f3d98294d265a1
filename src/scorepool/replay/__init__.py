"""Deterministic replay of the settlement event log."""
