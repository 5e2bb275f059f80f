"""
End-to-end tests for the simulator.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from arqsim.arq.sender import RetransmissionPolicy, SenderState
from arqsim.errors import ConfigurationError
from simulation.simulator import Simulator, SimulatorConfig


def run(**overrides):
    sim = Simulator(SimulatorConfig(**overrides))
    return sim, sim.run()


class TestSimulatorConfig:
    """Tests for SimulatorConfig validation."""

    @pytest.mark.parametrize("field,value", [
        ("capacity", 0),
        ("capacity", -10.0),
        ("prop_delay", -1e-3),
        ("ber", 1.5),
        ("ber", -0.01),
        ("duration", 0),
        ("header_size", -1),
        ("payload_size", 0),
        ("window_size", 0),
        ("timeout_factor", 1.0),
        ("max_frames", 0),
        ("policy", "stop-and-go"),
    ])
    def test_invalid_values_rejected(self, field, value):
        """Test that out-of-range parameters raise ConfigurationError."""
        config = SimulatorConfig(**{field: value})
        with pytest.raises(ConfigurationError):
            config.validate()

    def test_error_names_parameter(self):
        """Test that the error names the offending parameter."""
        with pytest.raises(ConfigurationError) as info:
            SimulatorConfig(ber=2.0).validate()

        assert info.value.parameter == "ber"
        assert "ber" in str(info.value)

    def test_simulator_validates(self):
        """Test that the simulator refuses an invalid configuration."""
        with pytest.raises(ConfigurationError):
            Simulator(SimulatorConfig(window_size=0))

    def test_policy_parsing(self):
        """Test policy names and enum values."""
        assert SimulatorConfig(policy="GBN").get_policy() is RetransmissionPolicy.GO_BACK_N
        assert SimulatorConfig(policy="sr").get_policy() is RetransmissionPolicy.SELECTIVE_REPEAT
        assert (SimulatorConfig(policy=RetransmissionPolicy.GO_BACK_N).get_policy()
                is RetransmissionPolicy.GO_BACK_N)

    def test_sizes_in_bits(self):
        """Test byte-to-bit conversions; ACKs are header only."""
        config = SimulatorConfig(header_size=40, payload_size=1460)
        assert config.header_bits == 320
        assert config.payload_bits == 11680
        assert config.ack_bits == 320

    def test_default_timeout_tracks_rtt_estimate(self):
        """Test that the default timer is the round-trip estimate plus a small margin."""
        sim = Simulator(SimulatorConfig())
        rtt = sim.link_model.rtt_estimate(1500 * 8, 40 * 8)

        assert sim.timeout > rtt
        assert sim.timeout == pytest.approx(rtt, rel=1e-3)

    def test_timeout_is_factor_times_rtt(self):
        """Test the retransmission timeout."""
        sim = Simulator(SimulatorConfig(timeout_factor=3.0))
        rtt = 1.2e-6 + 32e-9 + 2e-3
        assert sim.timeout == pytest.approx(3.0 * rtt)


class TestEndToEnd:
    """End-to-end runs."""

    def test_stop_and_wait_default_link(self):
        """Test the 10 Gb/s, 1 ms, error-free stop-and-wait example."""
        sim, report = run()

        assert 49 <= report.frames_delivered <= 50
        assert report.frames_retransmitted == 0
        assert report.timeouts == 0
        assert report.elapsed_time == pytest.approx(0.1)
        assert report.goodput_bps == pytest.approx(report.frames_delivered * 11680 / 0.1)

    @pytest.mark.parametrize("window_size", [1, 2, 8, 32])
    @pytest.mark.parametrize("policy", ["sr", "gbn"])
    def test_no_errors_no_retransmissions(self, window_size, policy):
        """Test that an error-free link never retransmits."""
        _, report = run(window_size=window_size, policy=policy, duration=0.02)

        assert report.frames_retransmitted == 0
        assert report.frames_corrupted == 0
        assert report.duplicate_acks == 0
        assert report.frames_delivered > 0

    def test_larger_window_more_goodput(self):
        """Test that a window covering the bandwidth-delay product pays off."""
        _, small = run(window_size=1, duration=0.02)
        _, large = run(window_size=16, duration=0.02)

        assert large.goodput_bps > 10 * small.goodput_bps

    def test_utilization_bounded(self):
        """Test that utilization never exceeds one on a saturated link."""
        _, report = run(capacity=1e6, prop_delay=1e-4, window_size=64, duration=0.5)

        assert 0.9 < report.utilization <= 1.0

    def test_every_frame_corrupted(self):
        """Test that nothing is delivered when every frame is corrupted."""
        retransmissions = []
        for duration in (0.02, 0.05, 0.1):
            _, report = run(ber=1.0, duration=duration)
            assert report.frames_delivered == 0
            assert report.acks_sent == 0
            assert report.goodput_bps == 0
            retransmissions.append(report.frames_retransmitted)

        assert retransmissions[0] > 0
        assert retransmissions == sorted(retransmissions)
        assert retransmissions[0] < retransmissions[-1]

    def test_round_trip_bound(self):
        """Test that an error-free frame is acknowledged within 2 x (tx + prop)."""
        _, report = run(duration=0.02)
        tx = 1500 * 8 / 10e9

        assert report.rtt['samples'] > 0
        assert report.rtt['max'] <= 2 * (tx + 1e-3) + 1e-12

    def test_deterministic_for_seed(self):
        """Test that equal seeds give identical reports."""
        _, first = run(ber=2e-5, window_size=8, duration=0.02, seed=9)
        _, second = run(ber=2e-5, window_size=8, duration=0.02, seed=9)

        assert first.as_dict() == second.as_dict()
        assert first.frames_retransmitted > 0

    @pytest.mark.parametrize("policy", ["sr", "gbn"])
    def test_lossy_link_recovers(self, policy):
        """Test that both policies deliver data over a lossy link."""
        sim, report = run(ber=2e-5, window_size=8, duration=0.05, policy=policy)

        assert report.frames_delivered > 0
        assert report.frames_retransmitted > 0
        assert report.frames_delivered <= report.new_frames_sent
        assert report.frames_acked <= report.new_frames_sent
        assert report.frames_sent == report.new_frames_sent + report.frames_retransmitted

    def test_bounded_transfer_completes(self):
        """Test that a bounded transfer ends when the queue runs out."""
        sim, report = run(window_size=4, max_frames=10)

        assert sim.scheduler.exhausted
        assert sim.sender.state is SenderState.DONE
        assert report.frames_delivered == 10
        assert report.frames_acked == 10
        assert report.elapsed_time < 0.1

    def test_bounded_transfer_over_lossy_link(self):
        """Test that every frame of a bounded transfer eventually gets through."""
        sim, report = run(window_size=4, max_frames=20, ber=2e-5, duration=1.0)

        assert sim.sender.state is SenderState.DONE
        assert report.frames_delivered == 20

    def test_efficiency_figures(self):
        """Test that efficiency with headers exceeds payload efficiency."""
        _, report = run(window_size=8, duration=0.02)

        assert report.efficiency > 0
        assert report.efficiency_with_headers == pytest.approx(report.efficiency * 1500 / 1460)
        assert report.raw_bytes_acked == report.frames_acked * 1500
        assert report.payload_bytes_acked == report.frames_acked * 1460

    def test_retransmit_once_per_round_trip(self):
        """Test that a frame that never gets through is resent about every RTT."""
        _, report = run(ber=1.0, duration=0.1)
        rtt = 2 * 1e-3 + (1500 + 40) * 8 / 10e9

        assert report.timeouts == report.frames_retransmitted
        assert int(0.1 / rtt) - 2 <= report.frames_retransmitted <= int(0.1 / rtt)

    def test_long_run_holds_only_pending_events(self):
        """Test that consumed events are not retained by the scheduler."""
        sim, _ = run(window_size=64, duration=0.05)
        stats = sim.scheduler.get_statistics()

        assert stats['events_scheduled'] > 1000
        assert sim.scheduler.pending_count == 0
        assert (stats['events_dispatched'] + stats['events_cancelled']
                + stats['events_discarded'] == stats['events_scheduled'])

    def test_runs_once(self):
        """Test that a simulator cannot be rerun."""
        sim, _ = run(duration=0.005)
        with pytest.raises(RuntimeError):
            sim.run()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
