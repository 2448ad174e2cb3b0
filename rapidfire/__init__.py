"""Rapid Fire: batched HTTP load generation."""

__version__ = "0.1.0"
