# storage_rl/reward.py

from __future__ import annotations

TARGET_BAND_BONUS = 10.0
UNDERUSE_PENALTY = 15.0
OVERUSE_PENALTY = 10.0
WASTE_WEIGHT = 5.0
GROWTH_PENALTY = 2.0
SHRINK_BONUS = 5.0

TARGET_BAND = (0.6, 0.9)
UNDERUSE_THRESHOLD = 0.3
OVERUSE_THRESHOLD = 0.95
SHRINK_MIN_UTILIZATION = 0.5


def utilization_band_reward(utilization: float) -> float:
    # piecewise constant; (0.3, 0.6) and (0.9, 0.95] earn nothing
    low, high = TARGET_BAND
    if low <= utilization <= high:
        return TARGET_BAND_BONUS
    if utilization < UNDERUSE_THRESHOLD:
        return -UNDERUSE_PENALTY
    if utilization > OVERUSE_THRESHOLD:
        return -OVERUSE_PENALTY
    return 0.0


def compute_step_reward(used: int, total: int, prev_total: int) -> float:
    """Reward for holding ``used`` GB in ``total`` GB after capacity was ``prev_total``."""
    if total <= 0:
        raise ValueError(f"total must be positive, got {total}")
    utilization = used / total
    waste = (total - used) / total

    reward = utilization_band_reward(utilization)
    reward -= waste * WASTE_WEIGHT

    if total > prev_total:
        reward -= GROWTH_PENALTY
    if total < prev_total and utilization > SHRINK_MIN_UTILIZATION:
        reward += SHRINK_BONUS

    return float(reward)
