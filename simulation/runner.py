"""
Batch Runner for Window Sweep Simulations

This module runs the same link configuration over several send window
sizes, several seeds each, and aggregates the results per window.
"""

import os
import time
import statistics
from typing import Optional, Callable, List, Dict
from dataclasses import dataclass, replace
from concurrent.futures import ProcessPoolExecutor, as_completed
import multiprocessing
import sys

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tqdm import tqdm

from arqsim.config import SWEEP_WINDOW_SIZES, SWEEP_RUNS_PER_WINDOW
from simulation.simulator import Simulator, SimulatorConfig
from arqsim.utils.logger import LogLevel, SimulationLogger, get_logger


@dataclass
class RunConfig:
    """Configuration for a single simulation run."""
    window_size: int
    run_id: int
    seed: int


def run_single_simulation(base_config: SimulatorConfig, run_config: RunConfig) -> Dict:
    """
    Run a single simulation with given configuration.

    This function is designed to be called in a separate process.

    Args:
        base_config: Link and frame parameters shared by the sweep
        run_config: Window size and seed for this run

    Returns:
        Dictionary with results
    """
    config = replace(
        base_config,
        window_size=run_config.window_size,
        seed=run_config.seed,
        log_level=LogLevel.ERROR  # Minimal logging for batch runs
    )

    sim = Simulator(config)
    report = sim.run()

    return {
        'window_size': run_config.window_size,
        'run_id': run_config.run_id,
        'seed': run_config.seed,
        'goodput_bps': report.goodput_bps,
        'utilization': report.utilization,
        'efficiency': report.efficiency,
        'frames_delivered': report.frames_delivered,
        'retransmissions': report.frames_retransmitted,
        'retransmission_rate': report.retransmission_rate,
        'frame_error_rate': report.frame_error_rate,
        'rtt_mean': report.rtt['mean'],
        'simulation_time': report.elapsed_time,
        'real_time': sim.real_time,
    }


class BatchRunner:
    """
    Batch Runner for window sweep simulations.

    Executes every window size with multiple seeds each.

    Attributes:
        base_config: Parameters shared by every run
        window_sizes: List of window sizes to test
        runs_per_config: Number of runs per window size
    """

    def __init__(
        self,
        base_config: Optional[SimulatorConfig] = None,
        window_sizes: Optional[List[int]] = None,
        runs_per_config: int = SWEEP_RUNS_PER_WINDOW,
        on_progress: Optional[Callable[[int, int, dict], None]] = None,
        logger: Optional[SimulationLogger] = None,
        show_progress: bool = True
    ):
        """
        Initialize batch runner.

        Args:
            base_config: Shared parameters; window size and seed are overridden
            window_sizes: List of window sizes (default from config)
            runs_per_config: Number of runs per window size
            on_progress: Callback for progress updates
            logger: Logger for progress messages
            show_progress: Show a tqdm progress bar
        """
        self.base_config = base_config or SimulatorConfig()
        self.window_sizes = window_sizes or SWEEP_WINDOW_SIZES
        self.runs_per_config = runs_per_config
        self.on_progress = on_progress
        self.logger = logger or get_logger()
        self.show_progress = show_progress

        # Results storage
        self.results: List[Dict] = []

        # Progress tracking
        self.total_runs = len(self.window_sizes) * self.runs_per_config
        self.completed_runs = 0
        self.start_time = 0.0

    def _generate_run_configs(self) -> List[RunConfig]:
        """Generate all run configurations."""
        configs = []

        for window_size in self.window_sizes:
            for run_id in range(self.runs_per_config):
                configs.append(RunConfig(
                    window_size=window_size,
                    run_id=run_id,
                    seed=self.base_config.seed + run_id
                ))

        return configs

    def _record(self, result: Dict):
        self.results.append(result)
        self.completed_runs += 1
        if self.on_progress:
            self.on_progress(self.completed_runs, self.total_runs, result)

    def run_sequential(self) -> List[Dict]:
        """
        Run all simulations sequentially.

        Returns:
            List of result dictionaries
        """
        configs = self._generate_run_configs()
        self.results = []
        self.completed_runs = 0
        self.start_time = time.time()

        self.logger.info(f"Running {self.total_runs} simulations sequentially", "SWEEP")

        for config in tqdm(configs, desc="Simulations", disable=not self.show_progress):
            self._record(run_single_simulation(self.base_config, config))

        total_time = time.time() - self.start_time
        self.logger.info(f"Completed {self.total_runs} simulations in {total_time:.1f}s", "SWEEP")

        return self.results

    def run_parallel(self, max_workers: Optional[int] = None) -> List[Dict]:
        """
        Run simulations in parallel using multiprocessing.

        Args:
            max_workers: Number of parallel workers (default: CPU count)

        Returns:
            List of result dictionaries, in sweep order
        """
        if max_workers is None:
            max_workers = multiprocessing.cpu_count()

        configs = self._generate_run_configs()
        self.results = []
        self.completed_runs = 0
        self.start_time = time.time()

        self.logger.info(
            f"Running {self.total_runs} simulations with {max_workers} workers", "SWEEP"
        )

        with ProcessPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(run_single_simulation, self.base_config, config): config
                for config in configs
            }

            for future in tqdm(as_completed(futures), total=len(futures),
                               desc="Simulations", disable=not self.show_progress):
                self._record(future.result())

        self.results.sort(key=lambda r: (r['window_size'], r['run_id']))

        total_time = time.time() - self.start_time
        self.logger.info(f"Completed {self.total_runs} simulations in {total_time:.1f}s", "SWEEP")

        return self.results

    def get_aggregated_results(self) -> Dict[int, Dict]:
        """
        Get aggregated results by window size.

        Returns:
            Dictionary keyed by window size with mean/std statistics
        """
        aggregated = {}

        for result in self.results:
            key = result['window_size']
            if key not in aggregated:
                aggregated[key] = {
                    'window_size': key,
                    'goodputs': [],
                    'utilizations': [],
                    'retransmissions': [],
                    'delivered': []
                }

            aggregated[key]['goodputs'].append(result['goodput_bps'])
            aggregated[key]['utilizations'].append(result['utilization'])
            aggregated[key]['retransmissions'].append(result['retransmissions'])
            aggregated[key]['delivered'].append(result['frames_delivered'])

        # Calculate statistics
        for data in aggregated.values():
            goodputs = data['goodputs']
            data['goodput_mean'] = statistics.mean(goodputs)
            data['goodput_std'] = statistics.stdev(goodputs) if len(goodputs) > 1 else 0
            data['goodput_min'] = min(goodputs)
            data['goodput_max'] = max(goodputs)
            data['utilization_mean'] = statistics.mean(data['utilizations'])
            data['retx_mean'] = statistics.mean(data['retransmissions'])
            data['delivered_mean'] = statistics.mean(data['delivered'])

        return aggregated

    def get_optimal_configuration(self) -> Dict:
        """
        Find the window size with the best mean goodput.

        Returns:
            Dictionary with optimal configuration info
        """
        aggregated = self.get_aggregated_results()

        if not aggregated:
            return {'error': 'No results available'}

        best_key = max(aggregated, key=lambda k: aggregated[k]['goodput_mean'])
        best_data = aggregated[best_key]

        return {
            'optimal_window_size': best_key,
            'mean_goodput': best_data['goodput_mean'],
            'goodput_std': best_data['goodput_std'],
            'mean_utilization': best_data['utilization_mean'],
            'mean_retransmissions': best_data['retx_mean']
        }


if __name__ == "__main__":
    print("=" * 60)
    print("BATCH RUNNER TEST")
    print("=" * 60)

    runner = BatchRunner(
        base_config=SimulatorConfig(ber=1e-5, duration=0.05),
        window_sizes=[1, 4, 16],
        runs_per_config=2
    )

    print(f"\nTest configuration:")
    print(f"  Window sizes: {runner.window_sizes}")
    print(f"  Runs per config: {runner.runs_per_config}")
    print(f"  Total runs: {runner.total_runs}")

    runner.run_sequential()

    print("\nAggregated results:")
    for window_size, data in runner.get_aggregated_results().items():
        print(f"  W={window_size}: Goodput={data['goodput_mean'] / 1e6:.2f} Mbps, "
              f"Retx={data['retx_mean']:.1f}")

    optimal = runner.get_optimal_configuration()
    print(f"\nOptimal window size: {optimal['optimal_window_size']}")
