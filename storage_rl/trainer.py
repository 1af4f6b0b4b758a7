"""Headless Q-learning trainer driving the storage controller step by step."""

from __future__ import annotations

import argparse
from collections import deque
from datetime import datetime
from pathlib import Path

import numpy as np
import yaml
from torch.utils.tensorboard import SummaryWriter
from tqdm import tqdm

from storage_sim.engine import ControllerConfig, StorageController

from .learner import LearnerConfig, QLearner
from .types import TrainingSummary


def load_config(path: str | Path) -> dict:
    """Load YAML config. Returns dict with 'controller', 'learner' and 'training' keys."""
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


class QLearningTrainer:
    def __init__(self, args: argparse.Namespace):
        self.args = args
        if args.episodes < 1:
            raise ValueError("--episodes must be >= 1")
        if args.initial_usage < 0:
            raise ValueError("--initial-usage must be >= 0")
        if args.stats_window < 1:
            raise ValueError("--stats-window must be >= 1")

        learner_cfg = LearnerConfig(
            learning_rate=args.lr,
            discount_factor=args.gamma,
            epsilon_start=args.epsilon_start,
            epsilon_decay=args.epsilon_decay,
            epsilon_min=args.epsilon_min,
        )
        controller_cfg = ControllerConfig(base_unit_size=args.base_unit_size)
        learner_seed = None if args.seed is None else args.seed + 1
        self.controller = StorageController(
            config=controller_cfg,
            learner=QLearner(learner_cfg, seed=learner_seed),
            seed=args.seed,
        )
        if args.initial_usage > 0:
            self.controller.step(args.initial_usage)

        self.run_timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        self.exp_name = getattr(args, "exp_name", None)
        if self.exp_name:
            self.tb_logdir = str(Path(args.tensorboard_logdir) / self.exp_name / f"run_{self.run_timestamp}")
        else:
            self.tb_logdir = str(Path(args.tensorboard_logdir) / f"run_{self.run_timestamp}")
        self.tb_writer = SummaryWriter(log_dir=self.tb_logdir)
        if self.exp_name:
            self.tb_writer.add_text("meta/exp_name", self.exp_name, 0)
        self._episode_bar: tqdm | None = None

        self._recent_rewards = deque(maxlen=args.stats_window)
        self._recent_utilization = deque(maxlen=args.stats_window)
        self._log_reward_sum = 0.0
        self._log_utilization_sum = 0.0
        self._log_count = 0

        self._log(
            "trainer_init "
            f"episodes={args.episodes} base_unit_size={controller_cfg.base_unit_size} "
            f"initial_usage={args.initial_usage} lr={args.lr} gamma={args.gamma} "
            f"epsilon_start={args.epsilon_start} epsilon_decay={args.epsilon_decay} "
            f"epsilon_min={args.epsilon_min} seed={args.seed} "
            f"tensorboard_logdir={self.tb_logdir} exp_name={self.exp_name or 'run_default'}"
        )

    def _log(self, message: str) -> None:
        ts = datetime.now().strftime("%H:%M:%S")
        text = f"[{ts}] {message}"
        if self._episode_bar is not None:
            self._episode_bar.write(text)
        else:
            print(text, flush=True)

    def _record_step(self, reward: float, utilization: float) -> None:
        self._recent_rewards.append(reward)
        self._recent_utilization.append(utilization)
        self._log_reward_sum += reward
        self._log_utilization_sum += utilization
        self._log_count += 1

    def _maybe_log_interval_stats(self, episode: int) -> None:
        if self.args.log_interval <= 0:
            return
        if episode % self.args.log_interval != 0:
            return
        if self._log_count == 0:
            return
        avg_reward_recent = float(np.mean(self._recent_rewards)) if self._recent_rewards else 0.0
        avg_util_recent = float(np.mean(self._recent_utilization)) if self._recent_utilization else 0.0
        self._log(
            "episode_stats "
            f"episode={episode} interval_episodes={self._log_count} "
            f"avg_reward_interval={self._log_reward_sum / self._log_count:.3f} "
            f"avg_utilization_interval={self._log_utilization_sum / self._log_count:.2f} "
            f"avg_reward_recent={avg_reward_recent:.3f} "
            f"avg_utilization_recent={avg_util_recent:.2f} "
            f"capacity={self.controller.capacity} used={self.controller.used} "
            f"epsilon={self.controller.epsilon:.4f} q_states={self.controller.learner.state_count} "
            f"total_reward={self.controller.total_reward:.2f}"
        )
        self._log_reward_sum = 0.0
        self._log_utilization_sum = 0.0
        self._log_count = 0

    def run(self) -> TrainingSummary:
        total_to_run = int(self.args.episodes)
        rewards: list[float] = []
        utilizations: list[float] = []

        try:
            self._episode_bar = tqdm(
                total=total_to_run,
                desc="Q-learning steps",
                unit="ep",
                mininterval=1.0,
                maxinterval=5.0,
            )

            for _ in range(total_to_run):
                result = self.controller.step()
                total = result.allocation.total
                utilization = result.used / total * 100.0
                rewards.append(result.reward)
                utilizations.append(utilization)
                self._record_step(result.reward, utilization)

                ep = result.episode
                self.tb_writer.add_scalar("train/reward", result.reward, ep)
                self.tb_writer.add_scalar("train/total_reward", result.total_reward, ep)
                self.tb_writer.add_scalar("train/utilization", utilization, ep)
                self.tb_writer.add_scalar("train/capacity", total, ep)
                self.tb_writer.add_scalar("train/waste", total - result.used, ep)
                self.tb_writer.add_scalar("train/epsilon", result.epsilon, ep)
                self.tb_writer.add_scalar("train/q_states", self.controller.learner.state_count, ep)

                self._maybe_log_interval_stats(ep)
                self._episode_bar.update(1)
                if self.args.log_interval > 0 and ep % self.args.log_interval == 0:
                    self._episode_bar.set_postfix(
                        {
                            "used": result.used,
                            "cap": total,
                            "r": f"{result.reward:.2f}",
                            "eps": f"{result.epsilon:.3f}",
                        }
                    )

        finally:
            self.tb_writer.flush()
            self.tb_writer.close()
            if self._episode_bar is not None:
                self._episode_bar.close()
                self._episode_bar = None

        summary = TrainingSummary(
            episodes=self.controller.episode,
            total_reward=self.controller.total_reward,
            mean_reward=float(np.mean(rewards)) if rewards else 0.0,
            mean_utilization=float(np.mean(utilizations)) if utilizations else 0.0,
            final_capacity=self.controller.capacity,
            final_epsilon=self.controller.epsilon,
            q_states=self.controller.learner.state_count,
        )
        self._log(
            "training_done "
            f"episodes={summary.episodes} total_reward={summary.total_reward:.2f} "
            f"mean_reward={summary.mean_reward:.3f} mean_utilization={summary.mean_utilization:.2f} "
            f"final_capacity={summary.final_capacity} final_epsilon={summary.final_epsilon:.4f} "
            f"q_states={summary.q_states}"
        )
        return summary


def build_parser(defaults: dict | None = None) -> argparse.ArgumentParser:
    d = defaults or {}
    train = d.get("training", {})
    ctl = d.get("controller", {})
    lrn = d.get("learner", {})
    p = argparse.ArgumentParser(description="Train tabular Q-learning storage controller (headless)")
    p.add_argument("--config", type=str, default=None, help="Path to YAML config (controller + learner + training)")
    p.add_argument("--episodes", type=int, default=train.get("episodes"), help="Training steps (required if no --config)")
    p.add_argument("--initial-usage", type=int, default=train.get("initial_usage", 0), help="Usage in GB before training")
    p.add_argument("--seed", type=int, default=train.get("seed"))
    p.add_argument("--log-interval", type=int, default=train.get("log_interval", 100))
    p.add_argument("--stats-window", type=int, default=train.get("stats_window", 50))
    p.add_argument("--tensorboard-logdir", default=train.get("tensorboard_logdir", "runs/storage_reinforcer"))
    p.add_argument("--exp-name", type=str, default=train.get("exp_name"), help="Optional experiment name for TensorBoard log grouping")
    p.add_argument("--base-unit-size", type=int, default=ctl.get("base_unit_size", 50))
    p.add_argument("--lr", type=float, default=lrn.get("learning_rate", 0.1))
    p.add_argument("--gamma", type=float, default=lrn.get("discount_factor", 0.95))
    p.add_argument("--epsilon-start", type=float, default=lrn.get("epsilon_start", 0.3))
    p.add_argument("--epsilon-decay", type=float, default=lrn.get("epsilon_decay", 0.995))
    p.add_argument("--epsilon-min", type=float, default=lrn.get("epsilon_min", 0.01))
    return p


def main() -> None:
    # Pre-parse to get --config
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", type=str, default=None)
    pre_args, _ = pre.parse_known_args()

    defaults = {}
    if pre_args.config:
        defaults = load_config(pre_args.config)

    parser = build_parser(defaults)
    args = parser.parse_args()

    if args.episodes is None:
        parser.error("--episodes required (or set in --config)")

    trainer = QLearningTrainer(args)
    trainer.run()


if __name__ == "__main__":
    main()
