"""Tabular epsilon-greedy Q-learning agent."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from enum import IntEnum

import numpy as np


class Action(IntEnum):
    NO_OP = 0
    GROW = 1
    SHRINK = 2


ACTIONS: tuple[int, ...] = tuple(int(a) for a in Action)


@dataclass
class LearnerConfig:
    learning_rate: float = 0.1
    discount_factor: float = 0.95
    epsilon_start: float = 0.3
    epsilon_decay: float = 0.995
    epsilon_min: float = 0.01


class QLearner:
    """Q-table over discretized storage states with 3 advisory actions."""

    def __init__(
        self,
        config: LearnerConfig | None = None,
        seed: int | None = None,
        rng: np.random.Generator | None = None,
    ):
        self.config = config or LearnerConfig()
        if not 0.0 <= self.config.epsilon_min <= self.config.epsilon_start <= 1.0:
            raise ValueError("epsilon values must satisfy 0 <= epsilon_min <= epsilon_start <= 1")
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self._table: dict[str, dict[int, float]] = {}
        self.epsilon = float(self.config.epsilon_start)

    @property
    def state_count(self) -> int:
        return len(self._table)

    def value(self, state: str, action: int) -> float:
        row = self._table.get(state)
        if row is None:
            return 0.0
        return row.get(int(action), 0.0)

    def values(self, state: str) -> np.ndarray:
        return np.asarray([self.value(state, a) for a in ACTIONS], dtype=np.float64)

    def greedy_action(self, state: str) -> int:
        # np.argmax returns the first maximum, so ties go to the lowest index.
        return int(np.argmax(self.values(state)))

    def select_action(self, state: str, epsilon: float | None = None) -> int:
        eps = self.epsilon if epsilon is None else float(epsilon)
        if self.rng.random() < eps:
            return int(self.rng.integers(0, len(ACTIONS)))
        return self.greedy_action(state)

    def update(
        self,
        state: str,
        action: int,
        reward: float,
        next_state: str,
        learning_rate: float | None = None,
        discount_factor: float | None = None,
    ) -> float:
        """Apply one TD(0) update to Q(state, action) and return the new value."""
        alpha = self.config.learning_rate if learning_rate is None else float(learning_rate)
        gamma = self.config.discount_factor if discount_factor is None else float(discount_factor)
        action = int(action)
        if action not in ACTIONS:
            raise ValueError(f"action must be one of {ACTIONS}, got {action}")

        current = self.value(state, action)
        max_next = float(np.max(self.values(next_state)))
        new_value = current + alpha * (float(reward) + gamma * max_next - current)
        self._table.setdefault(state, {})[action] = new_value
        return new_value

    @staticmethod
    def decay_epsilon(epsilon: float, decay_rate: float = 0.995, floor: float = 0.01) -> float:
        return max(floor, epsilon * decay_rate)

    def step_epsilon(self) -> float:
        self.epsilon = self.decay_epsilon(
            self.epsilon,
            decay_rate=self.config.epsilon_decay,
            floor=self.config.epsilon_min,
        )
        return self.epsilon

    def reset(self) -> None:
        self._table = {}
        self.epsilon = float(self.config.epsilon_start)

    def q_table(self) -> dict[str, dict[int, float]]:
        return copy.deepcopy(self._table)
