"""
Configuration file for the ARQ Link Simulator.
Contains the default link and protocol parameters used by the CLI.
"""

# =============================================================================
# LINK PARAMETERS
# =============================================================================

# Link capacity (bits per second)
DEFAULT_CAPACITY = 10e9  # 10 Gbps

# One-way propagation delay (in seconds)
DEFAULT_PROP_DELAY = 1e-3  # 1 ms

# Bit error rate of the data direction (ACKs are error-free)
DEFAULT_BER = 0.0

# =============================================================================
# FRAME SIZES (in bytes)
# =============================================================================

DEFAULT_HEADER_SIZE = 40     # bytes
DEFAULT_PAYLOAD_SIZE = 1460  # bytes

# ACKs carry a header and no payload
ACK_PAYLOAD_SIZE = 0

# =============================================================================
# PROTOCOL PARAMETERS
# =============================================================================

# Send window (frames)
DEFAULT_WINDOW_SIZE = 1

# Sequence numbers wrap modulo SEQUENCE_SPACE_FACTOR * window size
SEQUENCE_SPACE_FACTOR = 2

# Retransmission timer = TIMEOUT_FACTOR * RTT estimate; the margin only
# keeps an ACK due at the same instant ahead of the expiry
DEFAULT_TIMEOUT_FACTOR = 1.001

# Retransmission policy: "sr" (selective repeat) or "gbn" (go-back-n)
DEFAULT_POLICY = "sr"

# =============================================================================
# SIMULATION SETTINGS
# =============================================================================

# Simulated duration (seconds)
DEFAULT_DURATION = 0.1

# Default seed of the corruption source
DEFAULT_SEED = 42

# Minimum level of the root logger (LogLevel.WARNING)
DEFAULT_LOG_LEVEL = 2

# =============================================================================
# WINDOW SWEEP CONFIGURATION
# =============================================================================

# Send window sizes compared by --sweep
SWEEP_WINDOW_SIZES = [1, 2, 4, 8, 16, 32, 64]

# Seeds per window size (actual seed = base seed + run_id)
SWEEP_RUNS_PER_WINDOW = 3


# Print configuration summary
if __name__ == "__main__":
    print("=" * 60)
    print("ARQ LINK SIMULATOR - DEFAULT CONFIGURATION")
    print("=" * 60)
    print(f"\nLink:")
    print(f"  Capacity: {DEFAULT_CAPACITY / 1e9:.1f} Gbps")
    print(f"  Propagation Delay: {DEFAULT_PROP_DELAY * 1000:.3f} ms")
    print(f"  Bit Error Rate: {DEFAULT_BER:.2e}")

    print(f"\nFrames:")
    print(f"  Header: {DEFAULT_HEADER_SIZE} bytes")
    print(f"  Payload: {DEFAULT_PAYLOAD_SIZE} bytes")

    print(f"\nProtocol:")
    print(f"  Window Size: {DEFAULT_WINDOW_SIZE}")
    print(f"  Policy: {DEFAULT_POLICY}")
    print(f"  Timeout Factor: {DEFAULT_TIMEOUT_FACTOR}")

