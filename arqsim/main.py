#!/usr/bin/env python3
"""
ARQ Link Simulator - Main Entry Point

This is the main CLI interface for the ARQ link simulator.
It provides options for:
- Single simulation runs (stop-and-wait or sliding window)
- Window sweep over several window sizes and seeds

Usage:
    python main.py -w 1 -l 0.1
    python main.py -b 1e-5 -w 16 --policy gbn -v
    python main.py --sweep --windows 1 4 16 64 --runs 5 --parallel
"""

import argparse
import os
import sys

# Ensure project root is in path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from arqsim.config import (
    DEFAULT_BER, DEFAULT_CAPACITY, DEFAULT_PROP_DELAY, DEFAULT_DURATION,
    DEFAULT_HEADER_SIZE, DEFAULT_PAYLOAD_SIZE, DEFAULT_WINDOW_SIZE,
    DEFAULT_SEED, DEFAULT_POLICY, DEFAULT_TIMEOUT_FACTOR,
    SWEEP_WINDOW_SIZES, SWEEP_RUNS_PER_WINDOW
)
from arqsim.errors import ConfigurationError
from arqsim.utils.logger import LogLevel, SimulationLogger, set_logger
from simulation.simulator import Simulator, SimulatorConfig


def build_config(args) -> SimulatorConfig:
    """Create and validate the run configuration from parsed arguments."""
    config = SimulatorConfig(
        capacity=args.capacity,
        prop_delay=args.prop_delay,
        ber=args.ber,
        header_size=args.header,
        payload_size=args.payload,
        window_size=args.wsize,
        policy=args.policy,
        timeout_factor=args.timeout_factor,
        duration=args.duration,
        max_frames=args.frames,
        seed=args.seed,
        log_level=LogLevel.from_verbosity(args.verbose)
    )
    config.validate()
    return config


def run_single_simulation(config: SimulatorConfig, logger: SimulationLogger):
    """Run a single simulation and print its report."""
    sim = Simulator(config, logger=logger)
    report = sim.run()

    print("=" * 60)
    print("ARQ LINK SIMULATOR")
    print("=" * 60)
    print(f"\nConfiguration:")
    print(f"  Capacity: {config.capacity:g} b/s")
    print(f"  Propagation delay: {config.prop_delay:g} s")
    print(f"  BER: {config.ber:g}")
    print(f"  Frame: {config.header_size} + {config.payload_size} bytes")
    print(f"  Window size: {config.window_size} ({sim.sender.policy.name})")
    print(f"  Timeout: {sim.timeout * 1000:.4f} ms")
    print(f"  Duration: {config.duration:g} s")
    print(f"  Seed: {config.seed}")

    print("\n" + "=" * 60)
    print("RESULTS")
    print("=" * 60)

    print(f"\nTraffic:")
    print(f"  Transmitted {report.raw_bytes_transmitted} bytes "
          f"({report.payload_bytes_transmitted} of data)")
    print(f"  Delivered {report.raw_bytes_delivered} bytes "
          f"({report.payload_bytes_delivered} of data)")
    print(f"  Acknowledged {report.raw_bytes_acked} bytes "
          f"({report.payload_bytes_acked} of data)")

    print(f"\nPerformance Metrics:")
    print(f"  Goodput: {report.goodput_bps:.2f} b/s ({report.goodput_bps / 1e6:.4f} Mbps)")
    print(f"  Utilization: {report.utilization * 100:.4f}%")
    print(f"  Efficiency: {report.efficiency * 100:.4f}% "
          f"({report.efficiency_with_headers * 100:.4f}% considering headers)")

    print(f"\nFrame Statistics:")
    print(f"  Frames Sent: {report.frames_sent}")
    print(f"  Frames Delivered: {report.frames_delivered}")
    print(f"  Frames Acknowledged: {report.frames_acked}")
    print(f"  Retransmissions: {report.frames_retransmitted}")
    print(f"  Retransmission Rate: {report.retransmission_rate:.4f}")
    print(f"  Frame Error Rate: {report.frame_error_rate:.4f}")
    print(f"  Timeouts: {report.timeouts}")
    print(f"  ACKs Sent: {report.acks_sent} ({report.duplicate_acks} duplicate)")

    if report.rtt['samples'] > 0:
        print(f"\nRTT Statistics:")
        print(f"  Mean: {report.rtt['mean'] * 1000:.4f} ms")
        print(f"  Min: {report.rtt['min'] * 1000:.4f} ms")
        print(f"  Max: {report.rtt['max'] * 1000:.4f} ms")

    return report


def run_window_sweep(config: SimulatorConfig, args, logger: SimulationLogger):
    """Run the window sweep and print the aggregated table."""
    from simulation.runner import BatchRunner

    windows = args.windows or SWEEP_WINDOW_SIZES
    for window_size in windows:
        if window_size < 1:
            raise ConfigurationError("windows", window_size, ">= 1")
    if args.runs < 1:
        raise ConfigurationError("runs", args.runs, ">= 1")
    if args.workers is not None and args.workers < 1:
        raise ConfigurationError("workers", args.workers, ">= 1")

    runner = BatchRunner(
        base_config=config,
        window_sizes=windows,
        runs_per_config=args.runs,
        logger=logger
    )

    if args.parallel:
        runner.run_parallel(max_workers=args.workers)
    else:
        runner.run_sequential()

    print("=" * 60)
    print("WINDOW SWEEP")
    print("=" * 60)
    print(f"\n  Runs per window: {runner.runs_per_config} (seeds {config.seed}..."
          f"{config.seed + runner.runs_per_config - 1})")
    print(f"\n  {'W':>5} {'Goodput (Mbps)':>16} {'Std':>10} {'Util %':>9} {'Retx':>9}")
    for window_size, data in sorted(runner.get_aggregated_results().items()):
        print(f"  {window_size:>5} {data['goodput_mean'] / 1e6:>16.4f} "
              f"{data['goodput_std'] / 1e6:>10.4f} {data['utilization_mean'] * 100:>9.4f} "
              f"{data['retx_mean']:>9.1f}")

    optimal = runner.get_optimal_configuration()

    print("\n" + "=" * 60)
    print("OPTIMAL CONFIGURATION")
    print("=" * 60)
    print(f"  Window Size: {optimal['optimal_window_size']}")
    print(f"  Mean Goodput: {optimal['mean_goodput'] / 1e6:.4f} Mbps")
    print(f"  Mean Utilization: {optimal['mean_utilization'] * 100:.4f}%")

    return runner.results


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="arq-simul",
        description="Discrete-event simulator of ARQ protocols over a lossy link",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Stop-and-wait on the default 10 Gb/s, 1 ms link:
    python main.py

  Sliding window with bit errors and a trace of every event:
    python main.py -b 1e-5 -w 16 -v

  Go-back-N instead of selective repeat:
    python main.py -b 1e-5 -w 16 --policy gbn

  Window sweep in worker processes:
    python main.py --sweep --windows 1 4 16 64 --runs 5 --parallel
        """
    )

    # Link options
    parser.add_argument('-b', '--ber', type=float, default=DEFAULT_BER,
                        help=f'Bit error rate (default: {DEFAULT_BER})')
    parser.add_argument('-C', '--capacity', type=float, default=DEFAULT_CAPACITY,
                        help=f'Link capacity in bits per second (default: {DEFAULT_CAPACITY:g})')
    parser.add_argument('-p', '--prop_delay', type=float, default=DEFAULT_PROP_DELAY,
                        help=f'One-way propagation delay in seconds (default: {DEFAULT_PROP_DELAY:g})')
    parser.add_argument('-l', '--duration', type=float, default=DEFAULT_DURATION,
                        help=f'Simulated duration in seconds (default: {DEFAULT_DURATION:g})')

    # Frame options
    parser.add_argument('--header', type=int, default=DEFAULT_HEADER_SIZE,
                        help=f'Header length in bytes (default: {DEFAULT_HEADER_SIZE})')
    parser.add_argument('--payload', type=int, default=DEFAULT_PAYLOAD_SIZE,
                        help=f'Payload length in bytes (default: {DEFAULT_PAYLOAD_SIZE})')

    # Protocol options
    parser.add_argument('-w', '--wsize', type=int, default=DEFAULT_WINDOW_SIZE,
                        help=f'Window size in frames (default: {DEFAULT_WINDOW_SIZE})')
    parser.add_argument('--policy', choices=['sr', 'gbn'], default=DEFAULT_POLICY,
                        help='Retransmission policy: selective repeat or go-back-N '
                             f'(default: {DEFAULT_POLICY})')
    parser.add_argument('--timeout-factor', type=float, default=DEFAULT_TIMEOUT_FACTOR,
                        help='Retransmission timer as a multiple of the RTT estimate '
                             f'(default: {DEFAULT_TIMEOUT_FACTOR})')
    parser.add_argument('--frames', type=int, default=None,
                        help='Stop after sending this many new frames (default: unlimited)')
    parser.add_argument('-s', '--seed', type=int, default=DEFAULT_SEED,
                        help=f'Random seed (default: {DEFAULT_SEED})')

    # Window sweep options
    parser.add_argument('--sweep', action='store_true',
                        help='Run the simulation over several window sizes')
    parser.add_argument('--windows', type=int, nargs='+', default=None,
                        help=f'Window sizes for --sweep (default: {SWEEP_WINDOW_SIZES})')
    parser.add_argument('--runs', '-r', type=int, default=SWEEP_RUNS_PER_WINDOW,
                        help=f'Seeds per window size (default: {SWEEP_RUNS_PER_WINDOW})')
    parser.add_argument('--parallel', action='store_true',
                        help='Run sweep simulations in parallel')
    parser.add_argument('--workers', type=int, default=None,
                        help='Number of parallel workers')

    parser.add_argument('-v', '--verbose', action='count', default=0,
                        help='Increase logging verbosity (-v events, -vv debug)')

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logger = SimulationLogger(name="arq-simul", level=LogLevel.from_verbosity(args.verbose))
    set_logger(logger)

    try:
        config = build_config(args)
        if args.sweep:
            run_window_sweep(config, args, logger)
        else:
            run_single_simulation(config, logger)
    except ConfigurationError as e:
        logger.error(str(e), "CONFIG")
        return 2

    return 0


def cli():
    sys.exit(main())


if __name__ == "__main__":
    cli()
