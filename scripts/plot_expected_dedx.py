import argparse

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import uproot

from lf_tpc_pid.params.bb_params import DEFAULT_PARAMS
from lf_tpc_pid.pid_constants import INNER_PARAM_BRANCH, PARTICLE_LABELS, SIGNAL_BRANCH, TRACK_TREE
from lf_tpc_pid.response.bethe_bloch import expected_resolution, expected_signal


def expected_bands(params_by_particle, momenta):
    """
    Expected dE/dx and its resolution on a momentum grid.

    Returns:
        dict particle -> (signal, sigma), float32 arrays shaped like momenta
    """
    momenta = np.asarray(momenta, dtype=np.float32)
    return {
        p: (expected_signal(p, momenta, params), expected_resolution(p, momenta, params))
        for p, params in params_by_particle.items()
    }


def plot_expected_dedx(momenta, bands, output_png, tracks=None, n_sigma=3.0):
    momenta = np.asarray(momenta)
    fig, ax = plt.subplots(figsize=(8, 6))

    if tracks is not None:
        ax.hist2d(tracks[INNER_PARAM_BRANCH], tracks[SIGNAL_BRANCH], bins=(200, 200),
                  range=((momenta.min(), momenta.max()), (0, 1000)), cmin=1, cmap="Greys")

    for p, (signal, sigma) in bands.items():
        line, = ax.plot(momenta, signal, label=PARTICLE_LABELS[p])
        ax.fill_between(momenta, signal - n_sigma * sigma, signal + n_sigma * sigma,
                        color=line.get_color(), alpha=0.2)

    ax.set_xscale("log")
    ax.set_ylim(0, 1000)
    ax.set_xlabel("p at TPC inner wall (GeV/c)")
    ax.set_ylabel("TPC dE/dx (a.u.)")
    ax.set_title(f"Expected dE/dx, ±{n_sigma:g}σ bands")
    ax.legend()
    ax.grid(True)

    plt.tight_layout()
    plt.savefig(output_png, dpi=150)
    plt.close(fig)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Plot expected TPC dE/dx bands with default parameters.")
    parser.add_argument("--input_file", default=None, help="Optional track file to overlay")
    parser.add_argument("--output", default="expected_dedx.png")
    parser.add_argument("--particles", nargs="*", default=["El", "Pi", "Ka", "Pr", "De", "He"])
    args = parser.parse_args()

    momenta = np.logspace(-1, 1, 500)
    bands = expected_bands({p: DEFAULT_PARAMS for p in args.particles}, momenta)

    tracks = None
    if args.input_file:
        with uproot.open(args.input_file) as f:
            tracks = f[TRACK_TREE].arrays([INNER_PARAM_BRANCH, SIGNAL_BRANCH], library="np")

    plot_expected_dedx(momenta, bands, args.output, tracks=tracks)
    print(f"Saved {args.output}")
