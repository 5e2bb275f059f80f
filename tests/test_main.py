"""
Tests for the command-line interface and the window sweep.
"""

import importlib
import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from arqsim import main
from arqsim.utils.logger import LogLevel, SimulationLogger
from simulation.runner import BatchRunner, RunConfig, run_single_simulation
from simulation.simulator import SimulatorConfig


class TestCommandLine:
    """Tests for main.main()."""

    def test_default_run(self, capsys):
        """Test a short run with default link parameters."""
        assert main.main(["-l", "0.01"]) == 0

        out = capsys.readouterr().out
        assert "Acknowledged" in out
        assert "considering headers" in out
        assert "Retransmissions: 0" in out

    def test_short_flags(self, capsys):
        """Test that every short flag is accepted."""
        code = main.main(["-b", "1e-6", "-C", "1e8", "-p", "5e-4", "-l", "0.01",
                          "-w", "4", "-s", "1"])
        assert code == 0
        assert "Window size: 4" in capsys.readouterr().out

    def test_long_flags(self, capsys):
        """Test the long option names."""
        code = main.main(["--ber", "0", "--capacity", "1e9", "--prop_delay", "1e-3",
                          "--duration", "0.01", "--header", "20", "--payload", "1000",
                          "--wsize", "2", "--policy", "gbn", "--timeout-factor", "3"])
        assert code == 0
        assert "GO_BACK_N" in capsys.readouterr().out

    @pytest.mark.parametrize("argv", [
        ["-b", "2"],
        ["-C", "0"],
        ["-p", "-1"],
        ["-l", "0"],
        ["--payload", "0"],
        ["--header", "-1"],
        ["-w", "0"],
        ["--timeout-factor", "0.5"],
        ["--frames", "0"],
    ])
    def test_invalid_configuration_exit_code(self, argv, capsys):
        """Test that configuration errors exit with status 2 and a message on stderr."""
        assert main.main(argv) == 2

        captured = capsys.readouterr()
        assert "ERROR" in captured.err
        assert "RESULTS" not in captured.out

    def test_unknown_policy_is_usage_error(self):
        """Test that argparse rejects an unknown policy."""
        with pytest.raises(SystemExit) as info:
            main.main(["--policy", "xyz"])
        assert info.value.code == 2

    def test_verbose_traces_events(self, capsys):
        """Test that -v writes per-event lines to stderr only."""
        assert main.main(["-v", "-l", "0.005"]) == 0

        captured = capsys.readouterr()
        assert "[TX]" in captured.err
        assert "[ACK]" in captured.err
        assert "[TX]" not in captured.out

    def test_quiet_by_default(self, capsys):
        """Test that a clean run logs nothing."""
        assert main.main(["-l", "0.005"]) == 0
        assert capsys.readouterr().err == ""

    def test_default_log_level_is_warning(self):
        """Test that a logger built from the defaults shows warnings and errors only."""
        assert SimulationLogger().level == LogLevel.WARNING
        assert LogLevel.from_verbosity(0) == SimulationLogger().level

    def test_bounded_run(self, capsys):
        """Test --frames."""
        assert main.main(["--frames", "5", "-w", "2"]) == 0
        assert "Frames Delivered: 5" in capsys.readouterr().out

    def test_sweep(self, capsys):
        """Test a small window sweep."""
        code = main.main(["--sweep", "--windows", "1", "4", "--runs", "2", "-l", "0.005"])
        assert code == 0

        out = capsys.readouterr().out
        assert "WINDOW SWEEP" in out
        assert "OPTIMAL CONFIGURATION" in out

    def test_sweep_rejects_bad_window(self, capsys):
        """Test sweep argument validation."""
        assert main.main(["--sweep", "--windows", "1", "0"]) == 2
        assert main.main(["--sweep", "--runs", "0"]) == 2

    def test_checkout_script_delegates(self):
        """Test that the root main.py runs the packaged CLI."""
        checkout_script = importlib.import_module("main")

        assert checkout_script.cli is main.cli
        assert main.__name__ == "arqsim.main"


class TestBatchRunner:
    """Tests for the window sweep runner."""

    @pytest.fixture
    def base_config(self):
        return SimulatorConfig(duration=0.005, seed=100)

    def test_single_run_result(self, base_config):
        """Test the result dictionary of one run."""
        result = run_single_simulation(base_config, RunConfig(window_size=2, run_id=0, seed=5))

        assert result['window_size'] == 2
        assert result['seed'] == 5
        assert result['retransmissions'] == 0
        assert result['goodput_bps'] > 0

    def test_sequential_sweep(self, base_config):
        """Test seeds, result count and aggregation."""
        runner = BatchRunner(base_config, window_sizes=[1, 4], runs_per_config=2,
                             show_progress=False)
        results = runner.run_sequential()

        assert len(results) == runner.total_runs == 4
        assert [r['seed'] for r in results] == [100, 101, 100, 101]

        aggregated = runner.get_aggregated_results()
        assert set(aggregated) == {1, 4}
        assert aggregated[4]['goodput_mean'] > aggregated[1]['goodput_mean']
        assert aggregated[1]['goodput_std'] == 0

    def test_optimal_configuration(self, base_config):
        """Test that the largest window wins on an error-free link."""
        runner = BatchRunner(base_config, window_sizes=[1, 2, 8], runs_per_config=1,
                             show_progress=False)
        runner.run_sequential()

        assert runner.get_optimal_configuration()['optimal_window_size'] == 8

    def test_no_results(self, base_config):
        """Test the optimum before anything ran."""
        runner = BatchRunner(base_config, window_sizes=[1], show_progress=False)
        assert 'error' in runner.get_optimal_configuration()

    def test_progress_callback(self, base_config):
        """Test that progress is reported after every run."""
        progress = []
        runner = BatchRunner(base_config, window_sizes=[1, 2], runs_per_config=1,
                             on_progress=lambda done, total, r: progress.append((done, total)),
                             show_progress=False)
        runner.run_sequential()

        assert progress == [(1, 2), (2, 2)]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
