"""Core components for the Pitch Recall application."""

# Import interfaces for easier access
from .interfaces import IPitchEstimator

__all__ = ["IPitchEstimator"]
