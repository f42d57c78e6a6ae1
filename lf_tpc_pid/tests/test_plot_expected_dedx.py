import numpy as np

from lf_tpc_pid.params.bb_params import DEFAULT_PARAMS
from lf_tpc_pid.response.bethe_bloch import expected_signal
from scripts.plot_expected_dedx import expected_bands, plot_expected_dedx


def test_expected_bands():
    momenta = np.logspace(-1, 1, 20)
    bands = expected_bands({"Pi": DEFAULT_PARAMS, "He": DEFAULT_PARAMS}, momenta)
    assert set(bands) == {"Pi", "He"}
    signal, sigma = bands["Pi"]
    assert signal.shape == (20,) and sigma.shape == (20,)
    np.testing.assert_array_equal(signal, expected_signal("Pi", momenta, DEFAULT_PARAMS))


def test_plot_written(tmp_path):
    momenta = np.logspace(-1, 1, 50)
    bands = expected_bands({"Pr": DEFAULT_PARAMS}, momenta)
    tracks = {"tpcInnerParam": np.array([0.5, 1.0]), "tpcSignal": np.array([80.0, 60.0])}
    output = tmp_path / "bands.png"
    plot_expected_dedx(momenta, bands, str(output), tracks=tracks)
    assert output.stat().st_size > 0
