"""
Unit tests for the link model and the corruption source.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from arqsim.channel import CorruptionSource, Direction, Link, LinkModel
from arqsim.errors import ConfigurationError, InvalidConfiguration


HEADER_BITS = 40 * 8
PAYLOAD_BITS = 1460 * 8


def make_model(capacity=10e9, prop_delay=1e-3, ber=0.0, seed=42):
    return LinkModel(Link(capacity, prop_delay, ber), CorruptionSource(seed=seed))


class TestLink:
    """Tests for Link parameter validation."""

    @pytest.mark.parametrize("capacity", [0, -1.0, float("inf"), float("nan")])
    def test_invalid_capacity(self, capacity):
        """Test that capacity must be finite and positive."""
        with pytest.raises(InvalidConfiguration):
            Link(capacity_bps=capacity, prop_delay_s=1e-3)

    def test_negative_prop_delay(self):
        """Test that propagation delay cannot be negative."""
        with pytest.raises(InvalidConfiguration):
            Link(capacity_bps=1e6, prop_delay_s=-1e-3)

    @pytest.mark.parametrize("ber", [-0.1, 1.1, float("nan")])
    def test_invalid_ber(self, ber):
        """Test that BER must be a probability."""
        with pytest.raises(InvalidConfiguration):
            Link(capacity_bps=1e6, prop_delay_s=0.0, bit_error_rate=ber)

    def test_error_hierarchy(self):
        """Test that link errors are configuration errors and ValueErrors."""
        with pytest.raises(ConfigurationError) as info:
            Link(capacity_bps=0, prop_delay_s=0.0)

        assert isinstance(info.value, ValueError)
        assert info.value.parameter == "capacity"

    def test_zero_prop_delay_and_edge_ber_allowed(self):
        """Test boundary values that are valid."""
        Link(capacity_bps=1.0, prop_delay_s=0.0, bit_error_rate=0.0)
        Link(capacity_bps=1.0, prop_delay_s=0.0, bit_error_rate=1.0)

    def test_link_is_immutable(self):
        """Test that Link cannot be modified."""
        link = Link(capacity_bps=1e6, prop_delay_s=1e-3)
        with pytest.raises(AttributeError):
            link.capacity_bps = 2e6


class TestLinkModel:
    """Tests for LinkModel timing and corruption."""

    def test_transmission_time(self):
        """Test transmission time of a 1500-byte frame at 10 Gb/s."""
        model = make_model()
        assert model.transmission_time(HEADER_BITS, PAYLOAD_BITS) == pytest.approx(1.2e-6)

    def test_total_delay(self):
        """Test that total delay adds propagation once."""
        model = make_model()
        assert model.total_delay(HEADER_BITS, PAYLOAD_BITS) == pytest.approx(1.2e-6 + 1e-3)

    def test_rtt_estimate(self):
        """Test round-trip estimate of a data frame and a header-only ACK."""
        model = make_model()
        expected = 1.2e-6 + 32e-9 + 2e-3
        assert model.rtt_estimate(HEADER_BITS + PAYLOAD_BITS, HEADER_BITS) == pytest.approx(expected)

    def test_zero_ber_never_corrupts(self):
        """Test that BER 0 never corrupts a frame."""
        model = make_model(ber=0.0)
        assert not any(model.is_corrupted(HEADER_BITS + PAYLOAD_BITS) for _ in range(1000))
        assert model.frames_corrupted == 0

    def test_unit_ber_always_corrupts(self):
        """Test that BER 1 corrupts every frame."""
        model = make_model(ber=1.0)
        assert all(model.is_corrupted(HEADER_BITS + PAYLOAD_BITS) for _ in range(1000))

    def test_frame_error_probability(self):
        """Test the frame error probability formula."""
        model = make_model(ber=1e-4)
        bits = HEADER_BITS + PAYLOAD_BITS
        assert model.frame_error_probability(bits) == pytest.approx(1 - (1 - 1e-4) ** bits)

    def test_corruption_rate_matches_probability(self):
        """Test empirical corruption rate against the formula."""
        model = make_model(ber=1e-5, seed=123)
        bits = HEADER_BITS + PAYLOAD_BITS
        trials = 20000
        corrupted = sum(model.is_corrupted(bits) for _ in range(trials))

        assert corrupted / trials == pytest.approx(model.frame_error_probability(bits), abs=0.02)

    def test_one_draw_per_transmission(self):
        """Test that every transmission draws exactly once."""
        model = make_model(ber=0.5)
        for _ in range(5):
            model.transmit(Direction.FORWARD, 0.0, HEADER_BITS, PAYLOAD_BITS)

        assert model.source.draws == 5

    def test_transmit_idle_link(self):
        """Test send and arrival times on an idle transmitter."""
        model = make_model()
        tx = model.transmit(Direction.FORWARD, 0.5, HEADER_BITS, PAYLOAD_BITS)

        assert tx.send_time == 0.5
        assert tx.arrival_time == pytest.approx(0.5 + 1.2e-6 + 1e-3)
        assert not tx.corrupted

    def test_transmitter_serializes_frames(self):
        """Test that back-to-back frames wait for the transmitter."""
        model = make_model()
        first = model.transmit(Direction.FORWARD, 0.0, HEADER_BITS, PAYLOAD_BITS)
        second = model.transmit(Direction.FORWARD, 0.0, HEADER_BITS, PAYLOAD_BITS)

        assert second.send_time == pytest.approx(1.2e-6)
        assert second.arrival_time - first.arrival_time == pytest.approx(1.2e-6)

    def test_directions_are_independent(self):
        """Test that the reverse transmitter is not delayed by forward traffic."""
        model = make_model()
        model.transmit(Direction.FORWARD, 0.0, HEADER_BITS, PAYLOAD_BITS)
        ack = model.transmit(Direction.REVERSE, 0.0, HEADER_BITS, 0)

        assert ack.send_time == 0.0

    def test_reverse_direction_is_error_free(self):
        """Test that ACKs are never corrupted and draw nothing."""
        model = make_model(ber=1.0)
        for _ in range(100):
            assert not model.transmit(Direction.REVERSE, 0.0, HEADER_BITS, 0).corrupted

        assert model.source.draws == 0

    def test_statistics(self):
        """Test per-direction counters."""
        model = make_model(ber=1.0)
        model.transmit(Direction.FORWARD, 0.0, HEADER_BITS, PAYLOAD_BITS)
        model.transmit(Direction.REVERSE, 0.0, HEADER_BITS, 0)
        stats = model.get_statistics()

        assert stats['data_frames_offered'] == 1
        assert stats['ack_frames_offered'] == 1
        assert stats['data_bits_offered'] == HEADER_BITS + PAYLOAD_BITS
        assert stats['frames_corrupted'] == 1


class TestCorruptionSource:
    """Tests for CorruptionSource determinism."""

    def test_same_seed_same_sequence(self):
        """Test that equal seeds give equal draws."""
        a = CorruptionSource(seed=7)
        b = CorruptionSource(seed=7)
        assert [a.draw() for _ in range(50)] == [b.draw() for _ in range(50)]

    def test_different_seed_different_sequence(self):
        """Test that different seeds give different draws."""
        a = CorruptionSource(seed=7)
        b = CorruptionSource(seed=8)
        assert [a.draw() for _ in range(10)] != [b.draw() for _ in range(10)]

    def test_draws_in_unit_interval(self):
        """Test that draws are in [0, 1)."""
        source = CorruptionSource(seed=1)
        assert all(0.0 <= source.draw() < 1.0 for _ in range(1000))

    def test_reset_restarts_sequence(self):
        """Test that reset replays the same draws."""
        source = CorruptionSource(seed=11)
        first = [source.draw() for _ in range(5)]
        source.reset()

        assert [source.draw() for _ in range(5)] == first
        assert source.draws == 5


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
