import re
import argparse
import matplotlib.pyplot as plt
import numpy as np
from pathlib import Path

METRICS = {
    "reward": ("avg_reward_interval", "Average reward per step"),
    "utilization": ("avg_utilization_interval", "Average utilization (%)"),
    "capacity": ("capacity", "Total capacity (GB)"),
    "epsilon": ("epsilon", "Epsilon"),
}


def parse_log(log_path: Path, key: str):
    episodes = []
    values = []

    pattern = re.compile(rf"episode=(\d+).*\b{re.escape(key)}=(-?[0-9.]+)")

    with open(log_path, "r", encoding="utf-8") as f:
        for line in f:
            if "episode_stats" not in line:
                continue
            m = pattern.search(line)
            if m:
                episodes.append(int(m.group(1)))
                values.append(float(m.group(2)))

    return np.array(episodes, dtype=np.int64), np.array(values, dtype=np.float64)


def smooth_xy(x, y, window: int):
    if window <= 1:
        return x, y
    if len(y) < window:
        return x, y
    y_s = np.convolve(y, np.ones(window) / window, mode="valid")
    x_s = x[window - 1 :]
    return x_s, y_s


def main():
    parser = argparse.ArgumentParser(description="Compare episode_stats curves from two storage trainer logs")
    parser.add_argument("--log-a", required=True, help="Path to first trainer log")
    parser.add_argument("--log-b", required=True, help="Path to second trainer log")
    parser.add_argument("--metric", default="reward", choices=sorted(METRICS))
    parser.add_argument("--output", default="compare_reward.png", help="Output image path")
    parser.add_argument("--smooth", type=int, default=0, help="Moving average window (0/1 = off)")
    parser.add_argument("--label-a", default="Run A", help="Legend label for first curve")
    parser.add_argument("--label-b", default="Run B", help="Legend label for second curve")
    args = parser.parse_args()

    key, ylabel = METRICS[args.metric]
    path_a = Path(args.log_a)
    path_b = Path(args.log_b)
    if not path_a.exists():
        raise FileNotFoundError(f"Log not found: {path_a}")
    if not path_b.exists():
        raise FileNotFoundError(f"Log not found: {path_b}")

    x1, y1 = parse_log(path_a, key)
    x2, y2 = parse_log(path_b, key)

    if len(x1) == 0:
        raise RuntimeError(f"No episode_stats found in log: {path_a}")
    if len(x2) == 0:
        raise RuntimeError(f"No episode_stats found in log: {path_b}")

    x1, y1 = smooth_xy(x1, y1, args.smooth)
    x2, y2 = smooth_xy(x2, y2, args.smooth)

    plt.figure(figsize=(9, 5))
    plt.plot(x1, y1, linewidth=2, label=args.label_a)
    plt.plot(x2, y2, linewidth=2, label=args.label_b)

    plt.xlabel("Episode")
    plt.ylabel(ylabel)
    plt.title(f"{ylabel} comparison")
    plt.grid(True)
    plt.legend()
    plt.tight_layout()

    out = Path(args.output)
    out.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(out, dpi=300)
    print(f"Saved: {out.resolve()}")


if __name__ == "__main__":
    main()
