#!/usr/bin/env python3
"""
slmpc Tick Benchmark: cold vs warm-started active-set solves
"""

import sys
sys.path.insert(0, '../python')

import time
import numpy as np

import slmpc
from slmpc.mpc import SuccessiveLinearizationMPC, crane_scenario, pendulum_scenario

print(f"slmpc version: {slmpc.__version__}")
print()


def run_closed_loop(plant, config, reference):
    """Run one closed loop and collect per-tick statistics."""
    mpc = SuccessiveLinearizationMPC(plant, config)

    start = time.perf_counter()
    run = mpc.run(reference)
    elapsed = time.perf_counter() - start

    return {
        'time': elapsed,
        'mean_latency': run.latency.mean(),
        'max_latency': run.latency.max(),
        'mean_iterations': run.iterations.mean(),
        'deadline_misses': run.deadline_misses,
        'ticks': run.n_steps,
    }


def benchmark_warm_start(name, scenario, **overrides):
    """Compare warm and cold starts on one scenario."""
    print(f"  {name}")
    results = {}

    for label, warm in (('cold', False), ('warm', True)):
        plant, config, reference = scenario(warm_start=warm, **overrides)
        res = run_closed_loop(plant, config, reference)
        results[label] = res
        print(f"    {label}:  {res['mean_latency']*1000:8.3f} ms/tick "
              f"(max {res['max_latency']*1000:7.3f}), "
              f"iters={res['mean_iterations']:6.2f}, "
              f"misses={res['deadline_misses']}/{res['ticks']}")

    return results


def benchmark_horizons():
    """Benchmark tick latency across horizon lengths."""
    print("=" * 70)
    print("Pendulum Horizon Benchmark")
    print("=" * 70)

    all_results = []
    for horizon in (10, 20, 40, 80):
        print(f"\nHorizon: {horizon}")
        res = benchmark_warm_start(
            f"pendulum N={horizon}", pendulum_scenario,
            horizon=horizon, t_final=0.2,
        )
        all_results.append((horizon, res))

    # Summary table
    print("\n" + "=" * 70)
    print("Summary")
    print("=" * 70)
    print(f"{'N':>6} {'cold (ms)':>12} {'warm (ms)':>12} {'cold it':>10} {'warm it':>10} {'Speedup':>10}")
    print("-" * 70)

    for horizon, res in all_results:
        cold, warm = res['cold'], res['warm']
        speedup = cold['mean_latency'] / warm['mean_latency']
        print(f"{horizon:>6} {cold['mean_latency']*1000:>12.3f} {warm['mean_latency']*1000:>12.3f} "
              f"{cold['mean_iterations']:>10.2f} {warm['mean_iterations']:>10.2f} {speedup:>10.2f}x")


def benchmark_crane():
    """Benchmark the two-input gantry crane."""
    print("\n" + "=" * 70)
    print("Gantry Crane Benchmark")
    print("=" * 70)

    benchmark_warm_start("crane N=30", crane_scenario)
    benchmark_warm_start("crane N=30 per-step", crane_scenario, linearization="per_step")


if __name__ == "__main__":
    benchmark_horizons()
    benchmark_crane()
