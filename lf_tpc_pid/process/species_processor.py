"""
Per-species TPC PID tables, tiny and full.

One implementation for all mass hypotheses; the particle short name selects
the stored columns, the mass and the charge.
"""

import logging

import numpy as np

from lf_tpc_pid.params.config_table import flag_set
from lf_tpc_pid.pid_constants import INNER_PARAM_BRANCH, SIGNAL_BRANCH
from lf_tpc_pid.response.bethe_bloch import expected_resolution, expected_signal
from lf_tpc_pid.response.tiny_binning import BINNED_T, pack_in_table

logger = logging.getLogger(__name__)


def stored_tiny_branch(particle):
    return f"tpcNSigmaStore{particle}"


def stored_full_branches(particle):
    return f"tpcExpSigma{particle}", f"tpcNSigma{particle}"


def uses_default_tiny(particle, table):
    return flag_set(table, particle, "Use default tiny")


def uses_default_full(particle, table):
    return flag_set(table, particle, "Use default full")


def compute_nsigma(particle, tracks, params):
    """
    Expected resolution and nSigma of every track for one hypothesis.

    Division by a vanishing resolution gives inf/NaN, which is left as is.
    """
    inner = np.asarray(tracks[INNER_PARAM_BRANCH], dtype=np.float32)
    signal = np.asarray(tracks[SIGNAL_BRANCH], dtype=np.float32)
    exp_signal = expected_signal(particle, inner, params)
    exp_sigma = expected_resolution(particle, inner, params)
    with np.errstate(divide="ignore", invalid="ignore"):
        nsigma = ((signal - exp_signal) / exp_sigma).astype(np.float32)
    return exp_sigma, nsigma


def process_tiny(particle, tracks, params, table):
    """
    Tiny nSigma table for one batch of tracks.

    Args:
        particle (str): short particle name
        tracks (dict): column name -> np.array for one batch
        params (BBParams): resolved constants for `particle`
        table (pd.DataFrame): parameter table holding the "Use default tiny" flag
    Returns:
        np.array of int8, one entry per track in input order
    """
    n = len(tracks[SIGNAL_BRANCH])
    logger.debug("Filling tiny table for particle %s (%d tracks)", particle, n)
    out = np.empty(n, dtype=BINNED_T)
    if uses_default_tiny(particle, table):
        out[:] = np.asarray(tracks[stored_tiny_branch(particle)], dtype=BINNED_T)
        return out

    _, nsigma = compute_nsigma(particle, tracks, params)
    out[:] = pack_in_table(nsigma)
    return out


def process_full(particle, tracks, params, table):
    """
    Full table for one batch: (expected resolution, nSigma) as float32.
    """
    n = len(tracks[SIGNAL_BRANCH])
    logger.debug("Filling full table for particle %s (%d tracks)", particle, n)
    exp_sigma_out = np.empty(n, dtype=np.float32)
    nsigma_out = np.empty(n, dtype=np.float32)
    if uses_default_full(particle, table):
        exp_sigma_branch, nsigma_branch = stored_full_branches(particle)
        exp_sigma_out[:] = np.asarray(tracks[exp_sigma_branch], dtype=np.float32)
        nsigma_out[:] = np.asarray(tracks[nsigma_branch], dtype=np.float32)
        return exp_sigma_out, nsigma_out

    exp_sigma, nsigma = compute_nsigma(particle, tracks, params)
    exp_sigma_out[:] = exp_sigma
    nsigma_out[:] = nsigma
    return exp_sigma_out, nsigma_out
