"""
Tiny int8 quantization shared by the compact PID tables.
"""

import numpy as np

BINNED_T = np.int8
NBINS = (1 << 8 * np.dtype(BINNED_T).itemsize) - 2   # 254
OVERFLOW_BIN = NBINS >> 1                           # 127
UNDERFLOW_BIN = -(NBINS >> 1)                       # -127
BINNED_MAX = np.float32(6.35)
BINNED_MIN = np.float32(-6.35)
BIN_WIDTH = (BINNED_MAX - BINNED_MIN) / np.float32(NBINS)  # 0.05


def pack_in_table(values):
    """
    Quantize nSigma values into the tiny int8 representation.

    Values at or beyond +-6.35 saturate to the overflow/underflow bins, and
    NaN is stored in the underflow bin. Rounding is half away from zero.

    Args:
        values (float or np.array): continuous nSigma values
    Returns:
        np.array of int8, same shape as values
    """
    v = np.asarray(values, dtype=np.float32)
    with np.errstate(invalid="ignore", over="ignore"):
        scaled = v / BIN_WIDTH
        half = np.where(v >= 0, np.float32(0.5), np.float32(-0.5)).astype(np.float32)
        binned = np.trunc(scaled + half)
        binned = np.where(v >= BINNED_MAX, OVERFLOW_BIN, binned)
        binned = np.where((v <= BINNED_MIN) | np.isnan(v), UNDERFLOW_BIN, binned)
    return binned.astype(BINNED_T)


def unpack(stored):
    """Back to nSigma units (bin centre)."""
    return BIN_WIDTH * np.asarray(stored).astype(np.float32)
