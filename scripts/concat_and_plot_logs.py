import argparse
import glob
import math
import os

import matplotlib.pyplot as plt
from tensorboard.backend.event_processing.event_accumulator import EventAccumulator

TITLES = {
    "train/reward": "Step Reward",
    "train/total_reward": "Cumulative Reward",
    "train/utilization": "Utilization (%)",
    "train/capacity": "Total Capacity (GB)",
    "train/waste": "Wasted Space (GB)",
    "train/epsilon": "Epsilon",
    "train/q_states": "Visited States",
}

SIZE_GUIDANCE = {
    'compressedHistograms': 0, 'images': 0, 'audio': 0, 'scalars': 0, 'histograms': 0,
}

def get_sorted_run_dirs(base_dir):
    if not os.path.exists(base_dir):
        print(f"Error: Directory '{base_dir}' not found.")
        return []
    run_dirs = []
    for root, dirs, _ in os.walk(base_dir):
        run_dirs.extend(os.path.join(root, d) for d in dirs if d.startswith("run_"))
    return sorted(run_dirs, key=os.path.basename)

def extract_tags(run_dir):
    if not glob.glob(os.path.join(run_dir, "events.out.tfevents.*")): return []
    ea = EventAccumulator(run_dir, size_guidance=SIZE_GUIDANCE)
    ea.Reload()
    return ea.Tags().get('scalars', [])

def extract_data(run_dir, tags):
    ea = EventAccumulator(run_dir, size_guidance=SIZE_GUIDANCE)
    ea.Reload()
    available = set(ea.Tags().get('scalars', []))
    data = {}
    for tag in tags:
        if tag in available:
            events = ea.Scalars(tag)
            data[tag] = ([e.step for e in events], [e.value for e in events])
        else:
            data[tag] = ([], [])
    return data

def concat_and_plot(run_dirs, out_dir="media"):
    all_tags = sorted({t for d in run_dirs for t in extract_tags(d)})
    if not all_tags:
        print("No scalar tags found.")
        return

    print(f"Processing {len(run_dirs)} runs with {len(all_tags)} tags...")

    combined = {tag: {"steps": [], "values": []} for tag in all_tags}
    total_offset = 0

    for run_dir in run_dirs:
        print(f"  Reading {os.path.basename(run_dir)}...")
        run_data = extract_data(run_dir, all_tags)
        max_step = 0
        has_data = False

        for tag in all_tags:
            steps, values = run_data[tag]
            if not steps: continue

            has_data = True
            max_step = max(max_step, max(steps))
            combined[tag]["steps"].extend([s + total_offset for s in steps])
            combined[tag]["values"].extend(values)

        if has_data:
            total_offset += max_step

    os.makedirs(out_dir, exist_ok=True)
    chunk_size = 4
    num_parts = math.ceil(len(all_tags) / chunk_size)

    for i in range(num_parts):
        tags_subset = all_tags[i*chunk_size : (i+1)*chunk_size]
        fig, axes = plt.subplots(2, 2, figsize=(15, 10))
        fig.suptitle(f"Storage Training Metrics - Part {i + 1}", fontsize=16)
        axes = axes.flatten()

        for j, tag in enumerate(tags_subset):
            ax = axes[j]
            steps, values = combined[tag]["steps"], combined[tag]["values"]
            if steps:
                ax.plot(steps, values)
                ax.set_title(TITLES.get(tag, tag))
                ax.set_xlabel("Episode")
                ax.grid(True)
            else:
                ax.text(0.5, 0.5, "No Data", ha='center', va='center')
                ax.set_title(TITLES.get(tag, tag))

        for j in range(len(tags_subset), 4): fig.delaxes(axes[j])

        plt.tight_layout(rect=[0, 0.03, 1, 0.95])
        path = os.path.join(out_dir, f"combined_plot_part_{i+1}.png")
        plt.savefig(path)
        plt.close(fig)
        print(f"Saved {path}")

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Concatenate TensorBoard runs and plot storage training scalars")
    parser.add_argument("--logdir", default="runs/storage_reinforcer")
    parser.add_argument("--out-dir", default="media")
    args = parser.parse_args()
    run_dirs = get_sorted_run_dirs(args.logdir)
    if run_dirs:
        concat_and_plot(run_dirs, out_dir=args.out_dir)
    else:
        print("Log directory not found.")
