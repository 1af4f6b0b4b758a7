"""Shared dataclasses for RL pipeline."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Transition:
    state: str
    action: int
    reward: float
    next_state: str


@dataclass
class TrainingSummary:
    episodes: int
    total_reward: float
    mean_reward: float
    mean_utilization: float
    final_capacity: int
    final_epsilon: float
    q_states: int
