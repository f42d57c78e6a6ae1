"""
Expected TPC dE/dx and its resolution for a mass hypothesis.

All arithmetic runs in float32 so results agree with the single-precision
reference parametrization.
"""

import numpy as np
from numba import njit

from lf_tpc_pid.pid_constants import charge, mass, mass_over_z


@njit
def bethe_bloch_aleph(bg, kp1, kp2, kp3, kp4, kp5):
    """ALEPH parametrization of the Bethe-Bloch curve as a function of beta*gamma."""
    one = np.float32(1.0)
    beta = bg / np.sqrt(one + bg * bg)
    aa = beta ** kp4
    bb = (one / bg) ** kp5
    bb = np.log(kp3 + bb)
    return (kp2 - aa - bb) * kp1 / aa


@njit
def _expected_signal_kernel(inner_params, inv_mass_z, z, bb1, bb2, bb3, bb4, bb5, mip, exp):
    out = np.empty(inner_params.shape[0], dtype=np.float32)
    charge_factor = z ** exp
    for i in range(inner_params.shape[0]):
        bg = inner_params[i] * inv_mass_z
        out[i] = mip * bethe_bloch_aleph(bg, bb1, bb2, bb3, bb4, bb5) * charge_factor
    return out


@njit
def _expected_resolution_kernel(inner_params, inv_mass_z, inv_mass, z, bb1, bb2, bb3, bb4, bb5, mip, exp, res):
    out = np.empty(inner_params.shape[0], dtype=np.float32)
    one = np.float32(1.0)
    charge_factor = z ** exp
    for i in range(inner_params.shape[0]):
        p = inner_params[i]
        dedx = mip * bethe_bloch_aleph(p * inv_mass_z, bb1, bb2, bb3, bb4, bb5) * charge_factor
        delta_p = res * np.sqrt(dedx)
        bg_delta = p * (one + delta_p) * inv_mass
        dedx2 = mip * bethe_bloch_aleph(bg_delta, bb1, bb2, bb3, bb4, bb5) * charge_factor
        out[i] = abs(dedx2 - dedx)
    return out


def _as_float32(params):
    return tuple(np.float32(v) for v in params)


def expected_signal(particle, inner_param, params):
    """
    Expected dE/dx for `particle` at the TPC inner-wall momentum.

    Args:
        particle (str): short particle name, e.g. "Pi"
        inner_param (float or np.array): momentum at the TPC inner wall
        params (BBParams): resolved Bethe-Bloch constants
    Returns:
        np.float32 or np.array of float32, same shape as inner_param
    """
    inner = np.asarray(inner_param, dtype=np.float32)
    bb1, bb2, bb3, bb4, bb5, mip, exp, _ = _as_float32(params)
    out = _expected_signal_kernel(
        np.ascontiguousarray(inner.ravel()),
        np.float32(1.0) / np.float32(mass_over_z(particle)),
        np.float32(charge(particle)),
        bb1, bb2, bb3, bb4, bb5, mip, exp,
    )
    return out.reshape(inner.shape)[()]


def expected_resolution(particle, inner_param, params):
    """
    Absolute dE/dx resolution: the change of the expected signal under a
    fractional momentum smearing of res * sqrt(dE/dx). Never negative.
    """
    inner = np.asarray(inner_param, dtype=np.float32)
    bb1, bb2, bb3, bb4, bb5, mip, exp, res = _as_float32(params)
    out = _expected_resolution_kernel(
        np.ascontiguousarray(inner.ravel()),
        np.float32(1.0) / np.float32(mass_over_z(particle)),
        np.float32(1.0) / np.float32(mass(particle)),
        np.float32(charge(particle)),
        bb1, bb2, bb3, bb4, bb5, mip, exp, res,
    )
    return out.reshape(inner.shape)[()]
