"""Simulation studies for joint longitudinal and time-to-event models."""

__version__ = "0.1.0"
