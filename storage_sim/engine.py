"""Storage controller: allocator + Q-learner control loop."""

from __future__ import annotations

import math
import numbers
import threading
from collections import deque
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable

import numpy as np

from storage_rl.learner import LearnerConfig, QLearner
from storage_rl.reward import compute_step_reward
from storage_rl.types import Transition

from .allocator import BUFFER_PERCENT, DEFAULT_BASE_UNIT_SIZE, MAX_CONTAINER_SIZE, Allocation, Container, optimize
from .scheduler import Scheduler, TrainingLoop
from .state_codec import UsageValidationError, clamp_base_unit_size, encode_state, parse_amount, state_key
from .types import HistoryEntry, MetricsRecord, StepResult


@dataclass
class ControllerConfig:
    base_unit_size: int = DEFAULT_BASE_UNIT_SIZE
    buffer_percent: float = BUFFER_PERCENT
    max_container_size: int = MAX_CONTAINER_SIZE
    metrics_window: int = 50
    history_window: int = 10
    tick_interval: float = 0.1
    perturb_probability: float = 0.5
    perturb_low: int = -5
    perturb_high: int = 14


class StorageController:
    """Thread-safe storage controller; every mutation runs under one lock."""

    def __init__(
        self,
        config: ControllerConfig | None = None,
        learner: QLearner | None = None,
        seed: int | None = None,
        scheduler: Scheduler | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.config = replace(config) if config is not None else ControllerConfig()
        self.config.base_unit_size = clamp_base_unit_size(self.config.base_unit_size)
        if self.config.metrics_window < 1 or self.config.history_window < 1:
            raise ValueError("metrics_window and history_window must be >= 1")
        if self.config.perturb_low > self.config.perturb_high:
            raise ValueError("perturb_low must be <= perturb_high")

        self._lock = threading.RLock()
        self._rng = np.random.default_rng(seed)
        self.learner = learner or QLearner(LearnerConfig(), seed=None if seed is None else seed + 1)
        self._clock = clock or datetime.now
        self._loop = TrainingLoop(
            tick=self.step,
            scheduler=scheduler,
            interval=self.config.tick_interval,
            lock=self._lock,
        )

        self._metrics: deque[MetricsRecord] = deque(maxlen=self.config.metrics_window)
        self._history: deque[HistoryEntry] = deque(maxlen=self.config.history_window)
        self.last_transition: Transition | None = None
        self._init_state()

    def _init_state(self) -> None:
        self._used = 0
        self._allocation = self._optimize(0)
        self.episode = 0
        self.total_reward = 0.0
        self._metrics.clear()
        self._history.clear()
        self.last_transition = None

    def _optimize(self, used: int) -> Allocation:
        return optimize(
            used,
            self.config.base_unit_size,
            max_container_size=self.config.max_container_size,
            buffer_percent=self.config.buffer_percent,
        )

    # --- accessors

    @property
    def used(self) -> int:
        with self._lock:
            return self._used

    @property
    def capacity(self) -> int:
        with self._lock:
            return self._allocation.total

    @property
    def containers(self) -> list[Container]:
        with self._lock:
            return [Container(c.id, c.size, c.used) for c in self._allocation.containers]

    @property
    def epsilon(self) -> float:
        with self._lock:
            return self.learner.epsilon

    @property
    def is_training(self) -> bool:
        return self._loop.running

    def metrics(self) -> list[MetricsRecord]:
        with self._lock:
            return list(self._metrics)

    def history(self) -> list[HistoryEntry]:
        """Most recent first."""
        with self._lock:
            return list(self._history)

    def q_table(self) -> dict[str, dict[int, float]]:
        with self._lock:
            return self.learner.q_table()

    def utilization_percent(self) -> float:
        with self._lock:
            return round(self._used / self._allocation.total * 100, 1)

    def summary(self) -> dict[str, Any]:
        with self._lock:
            total = self._allocation.total
            waste = total - self._used
            return {
                "utilization": round(self._used / total * 100, 1),
                "efficiency": round(100 - waste / total * 100, 1),
                "wasted": waste,
                "units": len(self._allocation.containers),
            }

    # --- control loop

    def _perturb_usage(self) -> int:
        cfg = self.config
        if self._rng.random() > cfg.perturb_probability:
            span = cfg.perturb_high - cfg.perturb_low + 1
            change = math.floor(self._rng.random() * span) + cfg.perturb_low
            return max(0, self._used + change)
        return self._used

    def step(self, usage_override: int | None = None) -> StepResult:
        """
        Run one atomic transition.

        With ``usage_override`` the step is manual: usage is set exactly and the
        containers are repacked, but no action is drawn, no reward is earned and
        the learner is not updated. Without it the usage is randomly perturbed
        and the full Q-learning update runs.
        """
        with self._lock:
            manual = usage_override is not None
            if manual and (isinstance(usage_override, bool) or not isinstance(usage_override, numbers.Integral)):
                raise UsageValidationError(f"usage_override must be an integer, got {usage_override!r}")

            prev_total = self._allocation.total
            state = encode_state(self._used, prev_total)

            action: int | None = None
            if manual:
                new_used = max(0, int(usage_override))
            else:
                action = self.learner.select_action(state_key(state))
                new_used = self._perturb_usage()

            allocation = self._optimize(new_used)
            next_state = encode_state(new_used, allocation.total)

            reward = 0.0
            if not manual:
                reward = compute_step_reward(new_used, allocation.total, prev_total)
                self.learner.update(state_key(state), action, reward, state_key(next_state))
                self.last_transition = Transition(
                    state=state_key(state),
                    action=action,
                    reward=reward,
                    next_state=state_key(next_state),
                )

            self._used = new_used
            self._allocation = allocation

            if not manual:
                record_episode = self.episode
                self.total_reward += reward
                self.learner.step_epsilon()
                self.episode += 1
                self._metrics.append(
                    MetricsRecord(
                        episode=record_episode,
                        reward=reward,
                        utilization=round(new_used / allocation.total * 100, 1),
                        storage=allocation.total,
                        waste=allocation.total - new_used,
                    )
                )

            return StepResult(
                episode=self.episode,
                reward=reward,
                total_reward=self.total_reward,
                epsilon=self.learner.epsilon,
                allocation=allocation,
                state=state,
                next_state=next_state,
                used=new_used,
                action=action,
            )

    def _record_history(self, description: str, kind: str, utilization: float) -> None:
        self._history.appendleft(
            HistoryEntry(
                action=description,
                type=kind,
                time=self._clock().strftime("%H:%M:%S"),
                utilization=utilization,
            )
        )

    def add_usage(self, amount: Any) -> StepResult | None:
        """Add ``amount`` GB of usage. Invalid amounts are ignored and return None."""
        try:
            value = parse_amount(amount)
        except UsageValidationError:
            return None
        with self._lock:
            utilization_before = self.utilization_percent()
            result = self.step(self._used + value)
            self._record_history(
                f"Added {value} GB storage, optimized to {result.allocation.total} GB",
                "add",
                utilization_before,
            )
            return result

    def remove_usage(self, amount: Any) -> StepResult | None:
        """Remove ``amount`` GB of usage; rejected when it exceeds what is in use."""
        try:
            value = parse_amount(amount)
        except UsageValidationError:
            return None
        with self._lock:
            if value > self._used:
                return None
            utilization_before = self.utilization_percent()
            result = self.step(self._used - value)
            self._record_history(
                f"Removed {value} GB, optimized to {result.allocation.total} GB",
                "remove",
                utilization_before,
            )
            return result

    def set_base_unit_size(self, value: Any) -> int:
        with self._lock:
            self.config.base_unit_size = clamp_base_unit_size(value)
            if self._used == 0:
                self._allocation = self._optimize(0)
            return self.config.base_unit_size

    def start_training(self) -> bool:
        return self._loop.start()

    def stop_training(self) -> bool:
        return self._loop.stop()

    def reset(self) -> None:
        with self._lock:
            self._loop.stop()
            self.learner.reset()
            self._init_state()

    def state_payload(self) -> dict[str, Any]:
        with self._lock:
            return {
                "used": self._used,
                "capacity": self._allocation.total,
                "base_unit_size": self.config.base_unit_size,
                "containers": [c.to_dict() for c in self._allocation.containers],
                "episode": self.episode,
                "total_reward": self.total_reward,
                "epsilon": self.learner.epsilon,
                "training": self.is_training,
                "q_states": self.learner.state_count,
                "summary": self.summary(),
            }
