"""
experiments/run_experiments.py

Command-line harness: loads the config, runs every enabled simulation with
console/CSV event output and a report, and optionally runs random-mode
replications (mean ± CI next to the M/G/c reference), scenario sweeps,
common-random-number comparisons, and queue-length plots.
"""

from __future__ import annotations
import argparse
import dataclasses
import logging
import math
import os
import sys
from statistics import mean, stdev
from typing import Callable, Dict, List, Optional, Sequence

from scipy.stats import t as student_t

from dtsim.analytical import reference_for
from dtsim.config import (ROOT, RunSpec, advisory_threshold, apply_overrides, build_runs,
                          experiment_settings, load_config, random_input_from)
from dtsim.entities import EventKind, RandomInput, SimEvent
from dtsim.errors import ConfigurationError
from dtsim.output import ConsoleSink, CsvSink, MemorySink, MultiSink, ThreadedSink, render_report
from dtsim.simulation import run_simulation
from experiments.scenarios import SCENARIOS

logger = logging.getLogger(__name__)

OUTPUT_DIR = os.path.join(ROOT, "experiments", "output")


def mean_ci(values: List[float], confidence_level: float) -> tuple[float, float]:
    """Return (mean, half-width) using a t-distribution critical value."""
    if not values:
        return 0.0, 0.0
    mu = mean(values)
    n = len(values)
    if n < 2:
        return mu, 0.0
    level = min(max(confidence_level, 0.0), 0.999999)
    alpha = 1.0 - level
    tcrit = student_t.ppf(1 - alpha / 2.0, n - 1)
    half = tcrit * (stdev(values) / math.sqrt(n))
    return mu, float(half)


def sample_stddev(values: List[float]) -> float:
    """Return sample standard deviation or 0 if insufficient data."""
    if len(values) < 2:
        return 0.0
    return stdev(values)


def series(results: List[Dict], extractor: Callable[[Dict], float]) -> List[float]:
    """Collect a numeric series from each replication result."""
    return [float(extractor(res)) for res in results]


def run_mode(run: RunSpec, quiet: bool = False, plot: bool = False, threshold: Optional[int] = None):
    """Run one configured mode with console/CSV output and print its report."""
    print(f"=== Drive-Through Simulation ({run.name} mode) ===")
    sinks = []
    history = None
    if run.history_file:
        # A history file that cannot be opened costs the CSV, not the run.
        try:
            history = CsvSink(run.history_file)
        except OSError as exc:
            logger.warning("could not open history file %s: %s", run.history_file, exc)
            print(f"Warning: Failed to initialize CSV file {run.history_file}: {exc}", file=sys.stderr)
            print("Continuing simulation without CSV output.", file=sys.stderr)
    if history is not None:
        sinks.append(history)
    if not quiet:
        # Console rendering runs on its own thread; the queue keeps event order.
        sinks.insert(0, ThreadedSink(ConsoleSink(run.input.num_windows)))
    memory = MemorySink() if plot else None
    if memory is not None:
        sinks.append(memory)
    sink = MultiSink(*sinks)
    kwargs = {} if threshold is None else {"advisory_threshold": threshold}
    try:
        result = run_simulation(run.input, sink, **kwargs)
    finally:
        sink.close()
    print(render_report(result, title=f"Simulation Statistics ({run.name})"))
    if history is not None:
        print(f"Event history written to: {run.history_file}")
    if memory is not None:
        path = plot_trace(memory.events, run.input.num_windows, run.name)
        print(f"Queue/busy plot saved to: {path}")
    return result


def run_replications(base: RandomInput, replications: int, base_seed: int) -> List[Dict]:
    """Independent replications of a random-mode input with seeds base_seed + i."""
    results = []
    for rep in range(replications):
        inp = dataclasses.replace(base, seed=base_seed + rep)
        logger.info("replication %d/%d (seed=%d)", rep + 1, replications, inp.seed)
        results.append(run_simulation(inp).summary())
    return results


def print_replication_summary(name: str, base: RandomInput, results: List[Dict], confidence: float,
                              base_seed: int):
    level_pct = confidence * 100.0
    print(f"Scenario: {name} (replications={len(results)}, {level_pct:.1f}% CI, "
          f"seeds {base_seed}-{base_seed + len(results) - 1}, windows={base.num_windows})")
    avg_wait = mean_ci(series(results, lambda r: r["avg_wait"]), confidence)
    max_wait = mean_ci(series(results, lambda r: r["max_wait"]), confidence)
    avg_queue = mean_ci(series(results, lambda r: r["avg_queue_length"]), confidence)
    util = mean_ci(series(results, lambda r: r["utilization"] * 100.0), confidence)
    throughput = mean_ci(series(results, lambda r: r["throughput_per_hour"]), confidence)
    at_horizon = mean_ci(series(results, lambda r: r["in_system_at_horizon"] or 0), confidence)
    still = mean_ci(series(results, lambda r: r["still_in_system"]), confidence)
    wait_sd = sample_stddev(series(results, lambda r: r["avg_wait"]))
    ref = reference_for(base)
    print(f"  Avg wait: {avg_wait[0]:.2f} ± {avg_wait[1]:.2f} s (sd {wait_sd:.2f}; M/G/c ref {ref.Wq:.2f} s)")
    print(f"  Max wait: {max_wait[0]:.2f} ± {max_wait[1]:.2f} s")
    print(f"  Avg queue length: {avg_queue[0]:.3f} ± {avg_queue[1]:.3f} (M/G/c ref {ref.Lq:.3f})")
    print(f"  Utilization: {util[0]:.1f}% ± {util[1]:.1f}% (ref {ref.utilization * 100.0:.1f}%)")
    print(f"  Throughput: {throughput[0]:.2f} ± {throughput[1]:.2f} customers/hour")
    print(f"  In system at horizon: {at_horizon[0]:.2f} ± {at_horizon[1]:.2f}")
    print(f"  Still in system at end: {still[0]:.2f} ± {still[1]:.2f}")
    if ref.note:
        print(f"  Note: {ref.note}")
    print("-")


def run_crn(cfg: Dict, sc_a: Dict, sc_b: Dict, replications: int, base_seed: int, confidence: float):
    """
    Compare two scenarios with common random numbers: both use the same seed
    per replication, and the paired difference in average wait is reported.
    """
    inp_a = random_input_from(apply_overrides(cfg, sc_a["overrides"])["random_simulation"])
    inp_b = random_input_from(apply_overrides(cfg, sc_b["overrides"])["random_simulation"])
    rows = []
    for rep in range(replications):
        seed = base_seed + rep
        wa = run_simulation(dataclasses.replace(inp_a, seed=seed)).summary()["avg_wait"]
        wb = run_simulation(dataclasses.replace(inp_b, seed=seed)).summary()["avg_wait"]
        rows.append((seed, wa, wb))
    diffs = [b - a for (_, a, b) in rows]
    mean_diff, half = mean_ci(diffs, confidence)
    print(f"CRN paired avg-wait comparison ({sc_b['name']} - {sc_a['name']}):")
    print("  Replication | Seed | Wait1 (s) | Wait2 (s) | Difference")
    for idx, (seed, w1, w2) in enumerate(rows, start=1):
        print(f"    {idx:2d}        | {seed:4d} | {w1:9.2f} | {w2:9.2f} | {w2 - w1:9.2f}")
    print(f"  Mean difference: {mean_diff:.2f} s")
    print(f"  Std dev of differences: {sample_stddev(diffs):.2f}")
    print(f"  {confidence * 100:.1f}% CI of mean diff: {mean_diff - half:.2f} to {mean_diff + half:.2f} s")
    return mean_diff, half


def plot_trace(events: Sequence[SimEvent], num_windows: int, name: str) -> Optional[str]:
    """
    Persist a PNG step plot of queue length and busy servers over time, as
    reported by the event stream.
    """
    if not events:
        return None
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    x = [0.0] + [ev.time / 60.0 for ev in events]
    y_queue = [0] + [ev.queue_len for ev in events]
    y_busy = [0] + [ev.busy_servers for ev in events]
    arrivals = [ev.time / 60.0 for ev in events if ev.kind is EventKind.ARRIVAL]
    plt.figure(figsize=(9, 5))
    plt.step(x, y_queue, where="post", label="Queue length", color="#d97706")
    plt.step(x, y_busy, where="post", label="Busy windows", color="#2563eb")
    plt.axhline(num_windows, color="#6b7280", linestyle=":", label="Windows")
    if arrivals:
        plt.plot(arrivals, [0] * len(arrivals), "|", color="#10b981", label="Arrivals")
    plt.xlim(left=0)
    plt.xlabel("Time (minutes)")
    plt.ylabel("Customers")
    plt.title(f"{name}: queue and busy windows over time")
    plt.legend()
    plt.grid(True, linestyle="--", alpha=0.4)
    os.makedirs(OUTPUT_DIR, exist_ok=True)
    safe_name = name.lower().replace(" ", "_")
    out_path = os.path.join(OUTPUT_DIR, f"{safe_name}_trace.png")
    plt.tight_layout()
    plt.savefig(out_path, dpi=160)
    plt.close()
    return out_path


def _positive_int(text: str) -> int:
    value = int(text)
    if value < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {text}")
    return value


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="dtsim", description="Drive-through queueing simulation")
    p.add_argument("-c", "--config", default=None, help="path to the YAML config (default: config/config.yaml)")
    p.add_argument("-r", "--replications", type=_positive_int, default=None,
                   help="random-mode replications to summarize with confidence intervals")
    p.add_argument("--scenarios", action="store_true", help="run the scenario sweep from experiments/scenarios.py")
    p.add_argument("--compare", nargs=2, metavar=("A", "B"), help="CRN comparison between two named scenarios")
    p.add_argument("--plot", action="store_true", help="save queue/busy step plots under experiments/output/")
    p.add_argument("-q", "--quiet", action="store_true", help="do not print the per-event console table")
    p.add_argument("--log-level", default="WARNING", help="logging level (DEBUG, INFO, WARNING, ...)")
    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point: run enabled simulations, then any requested experiments."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        cfg = load_config(args.config)
        runs = build_runs(cfg)
        settings = experiment_settings(cfg)
        threshold = advisory_threshold(cfg)
    except ConfigurationError as exc:
        print(f"Failed to load {args.config or 'config/config.yaml'}: {exc}", file=sys.stderr)
        print("Please ensure the config file exists and at least one simulation is enabled.", file=sys.stderr)
        print("\nUsage: dtsim [--config <FILE>]", file=sys.stderr)
        return 2

    print("Enabled simulations: " + ", ".join(run.name for run in runs))
    for run in runs:
        run_mode(run, quiet=args.quiet, plot=args.plot, threshold=threshold)
        print()

    confidence = settings["confidence_level"]
    base_seed = settings["base_seed"]
    replications = args.replications or settings["replications"]
    rand_enabled = any(run.name == "random" for run in runs)

    try:
        if args.replications and rand_enabled:
            base = random_input_from(cfg["random_simulation"])
            results = run_replications(base, replications, base_seed)
            print_replication_summary("configured", base, results, confidence, base_seed)

        if args.scenarios:
            for sc in SCENARIOS:
                sc_cfg = apply_overrides(cfg, sc["overrides"])
                base = random_input_from(sc_cfg["random_simulation"])
                results = run_replications(base, replications, base_seed)
                print_replication_summary(sc["name"], base, results, confidence, base_seed)

        if args.compare:
            sc_index = {s["name"]: s for s in SCENARIOS}
            missing = [n for n in args.compare if n not in sc_index]
            if missing:
                print(f"[warn] CRN pair not found: {missing}")
            else:
                run_crn(cfg, sc_index[args.compare[0]], sc_index[args.compare[1]],
                        replications, base_seed, confidence)
    except ConfigurationError as exc:
        print(f"Invalid scenario configuration: {exc}", file=sys.stderr)
        return 2

    print("\nSimulation(s) completed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
