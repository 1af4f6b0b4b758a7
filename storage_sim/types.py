"""Shared dataclasses for the storage controller."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from .allocator import Allocation


@dataclass
class MetricsRecord:
    episode: int
    reward: float
    utilization: float  # percent, one decimal
    storage: int
    waste: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class HistoryEntry:
    action: str
    type: str  # "add" | "remove"
    time: str
    utilization: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class StepResult:
    episode: int
    reward: float
    total_reward: float
    epsilon: float
    allocation: Allocation
    state: tuple[int, int]
    next_state: tuple[int, int]
    used: int
    action: int | None = None

    @property
    def encoded_states(self) -> tuple[tuple[int, int], tuple[int, int]]:
        return self.state, self.next_state

    @property
    def manual(self) -> bool:
        return self.action is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "episode": self.episode,
            "reward": self.reward,
            "total_reward": self.total_reward,
            "epsilon": self.epsilon,
            "allocation": self.allocation.to_dict(),
            "state": list(self.state),
            "next_state": list(self.next_state),
            "used": self.used,
            "action": self.action,
        }
