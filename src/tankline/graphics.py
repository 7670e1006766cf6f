#!/usr/bin/env python3
"""
Plot time-series from the JSONL file written by the runner
(out/tank_telemetry.jsonl).

Each line is expected as:
{"topic": "...", "payload": {...}}

This script:
- loads tank telemetry and plant events
- builds one meter plot per tank, a combined meter plot and a mode timeline
- marks notifications (overflow, failures, repairs) on the combined plot

Usage:
  tankline-plot --input out/tank_telemetry.jsonl --outdir out/plots

Notes:
- Uses matplotlib only (no seaborn).
- No fixed colors.
"""

from __future__ import annotations

import argparse
import json
import os
from typing import Any, Dict, List, Optional, Tuple

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402

from .plant.state import TANK_MODES  # noqa: E402


MARKED_EVENTS = ("overflow_error", "overflow_all_reset", "autonomous_failure", "repair_completed")

Series = Dict[str, List[Tuple[float, Any]]]


# ----------------------------
# Loading
# ----------------------------
def load_jsonl(path: str) -> Tuple[Series, Series, List[Dict[str, Any]]]:
    """
    Returns (meters, modes, events):
      meters[tank_id] = [(sim_time_s, meter_pct), ...]
      modes[tank_id]  = [(sim_time_s, mode), ...]
      events          = event payloads in file order
    """
    meters: Series = {}
    modes: Series = {}
    events: List[Dict[str, Any]] = []
    if not path or not os.path.exists(path):
        return meters, modes, events

    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError:
                continue
            if not isinstance(obj, dict):
                continue
            topic = obj.get("topic")
            payload = obj.get("payload")
            if not isinstance(topic, str) or not isinstance(payload, dict):
                continue

            t = payload.get("sim_time_s")
            if not is_number(t):
                continue

            if topic.endswith("/events"):
                events.append(payload)
                continue

            tank = payload.get("tank")
            if not isinstance(tank, dict) or not isinstance(tank.get("id"), str):
                continue
            tid = tank["id"]
            if is_number(tank.get("meter_pct")):
                meters.setdefault(tid, []).append((float(t), float(tank["meter_pct"])))
            if tank.get("mode") in TANK_MODES:
                modes.setdefault(tid, []).append((float(t), tank["mode"]))

    return meters, modes, events


def is_number(x: Any) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool)


def downsample(points: List[Tuple[float, Any]], max_points: int) -> List[Tuple[float, Any]]:
    if max_points <= 0 or len(points) <= max_points:
        return points
    step = max(1, len(points) // max_points)
    return points[::step]


def mode_code(mode: str) -> int:
    # STOPPED=0, RUNNING=1, ERROR=2 for the timeline
    return {"STOPPED": 0, "RUNNING": 1, "ERROR": 2}[mode]


# ----------------------------
# Plots
# ----------------------------
def plot_meter(pts: List[Tuple[float, float]], title: str, outpath: str) -> None:
    plt.figure()
    plt.plot([p[0] for p in pts], [p[1] for p in pts])
    plt.axhline(70.0, linestyle="--", linewidth=0.8)
    plt.title(title)
    plt.xlabel("sim time (s)")
    plt.ylabel("meter (%)")
    plt.ylim(0, 105)
    plt.tight_layout()
    plt.savefig(outpath, dpi=150)
    plt.close()


def plot_combined(meters: Series, events: List[Dict[str, Any]], outpath: str) -> None:
    plt.figure()
    for tid in sorted(meters):
        pts = meters[tid]
        plt.plot([p[0] for p in pts], [p[1] for p in pts], label=f"tank {tid}")
    for ev in events:
        if ev.get("type") in MARKED_EVENTS:
            plt.axvline(float(ev["sim_time_s"]), linestyle=":", linewidth=0.8)
    plt.title("Tank meters")
    plt.xlabel("sim time (s)")
    plt.ylabel("meter (%)")
    plt.ylim(0, 105)
    plt.legend()
    plt.tight_layout()
    plt.savefig(outpath, dpi=150)
    plt.close()


def plot_modes(modes: Series, outpath: str) -> None:
    plt.figure()
    for tid in sorted(modes):
        pts = modes[tid]
        plt.step([p[0] for p in pts], [mode_code(p[1]) for p in pts], where="post", label=f"tank {tid}")
    plt.yticks([0, 1, 2], ["STOPPED", "RUNNING", "ERROR"])
    plt.title("Tank modes")
    plt.xlabel("sim time (s)")
    plt.legend()
    plt.tight_layout()
    plt.savefig(outpath, dpi=150)
    plt.close()


def render(path: str, outdir: str, max_points: int = 5000) -> List[str]:
    meters, modes, events = load_jsonl(path)
    if not meters:
        return []

    os.makedirs(outdir, exist_ok=True)
    made: List[str] = []

    for tid, pts in sorted(meters.items()):
        outpath = os.path.join(outdir, f"tank_{tid}_meter.png")
        plot_meter(downsample(pts, max_points), f"Tank {tid} meter", outpath)
        made.append(outpath)

    outpath = os.path.join(outdir, "combo_meters.png")
    plot_combined({k: downsample(v, max_points) for k, v in meters.items()}, events, outpath)
    made.append(outpath)

    if modes:
        outpath = os.path.join(outdir, "combo_modes.png")
        plot_modes({k: downsample(v, max_points) for k, v in modes.items()}, outpath)
        made.append(outpath)

    return made


# ----------------------------
# Main
# ----------------------------
def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser(description="Plot tank telemetry JSONL")
    ap.add_argument("--input", default="out/tank_telemetry.jsonl", help="Runner JSONL path")
    ap.add_argument("--outdir", default="out/plots", help="Where to save PNG plots")
    ap.add_argument("--max-points", type=int, default=5000, help="Cap points per series (simple downsample)")
    args = ap.parse_args(argv)

    made = render(args.input, args.outdir, args.max_points)
    if not made:
        print("No data found. Check JSONL path.")
        return
    print(f"Plots saved to: {os.path.abspath(args.outdir)} (generated {len(made)} plots)")


if __name__ == "__main__":
    main()
