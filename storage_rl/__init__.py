"""Tabular Q-learning package for storage capacity control."""

from .learner import Action, LearnerConfig, QLearner
from .client import StorageAPIClient

__all__ = [
    "Action",
    "LearnerConfig",
    "QLearner",
    "StorageAPIClient",
]
