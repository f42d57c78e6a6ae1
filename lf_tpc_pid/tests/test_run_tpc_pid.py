import logging

import numpy as np
import pytest
import uproot

from lf_tpc_pid.params.bb_params import DEFAULT_PARAMS, BBParams
from lf_tpc_pid.params.config_table import default_table
from lf_tpc_pid.pid_constants import PARAMETER_NAMES
from lf_tpc_pid.process.species_processor import process_full, process_tiny
from lf_tpc_pid.run_tpc_pid import init_pid, main, run_pid
from lf_tpc_pid.utils.io_helpers import write_tracks


@pytest.fixture
def track_file(tmp_path):
    rng = np.random.default_rng(7)
    n = 25
    tracks = {
        "tpcInnerParam": rng.uniform(0.2, 3.0, n).astype(np.float32),
        "tpcSignal": rng.uniform(30.0, 300.0, n).astype(np.float32),
        "tpcNSigmaStorePi": rng.integers(-127, 128, n).astype(np.int8),
        "tpcExpSigmaKa": rng.uniform(1.0, 5.0, n).astype(np.float32),
        "tpcNSigmaKa": rng.normal(0.0, 2.0, n).astype(np.float32),
    }
    path = str(tmp_path / "tracks.root")
    write_tracks(path, tracks)
    return path, tracks


def tree_names(path):
    with uproot.open(path) as f:
        return set(f.keys(cycle=False))


def test_requested_table_without_enabled_species_is_fatal(tmp_path):
    output = tmp_path / "out.root"
    with pytest.raises(RuntimeError, match="Kaon"):
        run_pid(str(tmp_path / "missing.root"), str(output),
                process=["Pi"], requested_tables=["pidTPCLfKa"])
    assert not output.exists()


def test_fatal_check_covers_full_table():
    with pytest.raises(RuntimeError, match="Alpha"):
        init_pid(process=[], process_full=[], requested_tables=["pidTPCLfFullAl"])


def test_either_mode_enables_species():
    params = init_pid(process=["Ka"], requested_tables=["pidTPCLfKa", "pidTPCLfFullKa"])
    assert params == {"Ka": DEFAULT_PARAMS}


def test_only_enabled_species_are_resolved(fake_store):
    store = fake_store()
    params = init_pid(process=["Pi"], process_full=["De"],
                      file_param_bb={"Ka": "ccdb://Users/lf/Ka"}, ccdb=store)
    assert set(params) == {"Pi", "De"}
    assert store.calls == []


def test_init_resolves_through_store(fake_store, fake_hist, store_values):
    store = fake_store({"Users/lf/He": fake_hist(store_values)})
    params = init_pid(process_full=["He"], file_param_bb={"He": "ccdb://Users/lf/He"}, ccdb=store)
    assert params["He"] == BBParams(*store_values)


def test_unknown_particle():
    with pytest.raises(ValueError):
        init_pid(process=["Xi"])


def test_enable_and_skip_are_logged(caplog):
    with caplog.at_level(logging.INFO, logger="lf_tpc_pid"):
        init_pid(process=["Pr"])
    assert "Enabling Proton" in caplog.text
    assert "Skipping Electron" in caplog.text


def test_run_writes_enabled_tables_in_order(tmp_path, track_file):
    input_file, tracks = track_file
    output = str(tmp_path / "pid.root")
    run_pid(input_file, output, process=["Pi", "Ka"], process_full=["Ka"], step_size=4)

    assert tree_names(output) == {"pidTPCLfPi", "pidTPCLfKa", "pidTPCLfFullKa"}

    table = default_table()
    with uproot.open(output) as f:
        tiny_pi = f["pidTPCLfPi"]["tpcNSigmaStoreLfPi"].array(library="np")
        full_ka = f["pidTPCLfFullKa"].arrays(["tpcExpSigmaLfKa", "tpcNSigmaLfKa"], library="np")

    np.testing.assert_array_equal(tiny_pi, process_tiny("Pi", tracks, DEFAULT_PARAMS, table))
    exp_sigma, nsigma = process_full("Ka", tracks, DEFAULT_PARAMS, table)
    np.testing.assert_array_equal(full_ka["tpcExpSigmaLfKa"], exp_sigma)
    np.testing.assert_array_equal(full_ka["tpcNSigmaLfKa"], nsigma)


def test_run_with_legacy_passthrough(tmp_path, track_file):
    input_file, tracks = track_file
    table = default_table()
    table.loc["Pi", "Use default tiny"] = 2.0
    table.loc["Ka", "Use default full"] = 2.0
    output = str(tmp_path / "pid.root")
    run_pid(input_file, output, process=["Pi"], process_full=["Ka"], bb_parameters=table)

    with uproot.open(output) as f:
        tiny_pi = f["pidTPCLfPi"]["tpcNSigmaStoreLfPi"].array(library="np")
        nsigma_ka = f["pidTPCLfFullKa"]["tpcNSigmaLfKa"].array(library="np")
    np.testing.assert_array_equal(tiny_pi, tracks["tpcNSigmaStorePi"])
    np.testing.assert_array_equal(nsigma_ka, tracks["tpcNSigmaKa"])


def test_empty_input_still_produces_enabled_tables(tmp_path):
    input_file = str(tmp_path / "empty.root")
    with uproot.recreate(input_file) as f:
        f.mktree("tracks", {"tpcInnerParam": np.float32, "tpcSignal": np.float32})
    output = str(tmp_path / "pid.root")
    run_pid(input_file, output, process=["Pi"], process_full=["Al"])

    assert tree_names(output) == {"pidTPCLfPi", "pidTPCLfFullAl"}
    with uproot.open(output) as f:
        assert f["pidTPCLfPi"].num_entries == 0
        assert f["pidTPCLfFullAl"].num_entries == 0


def test_missing_track_tree(tmp_path, track_file):
    input_file, _ = track_file
    with pytest.raises(RuntimeError, match="Could not find"):
        run_pid(input_file, str(tmp_path / "pid.root"), process=["Pi"], tree_name="O2track")


def test_command_line(tmp_path, track_file):
    input_file, tracks = track_file
    tsv = tmp_path / "bb.tsv"
    values = [0.03, 20.0, 1e-15, 2.5, 6.0, 55.0, 2.0, 0.003]
    tsv.write_text(
        "particle\t" + "\t".join(PARAMETER_NAMES) + "\n"
        + "Pr\t0\t0\t2\t" + "\t".join(str(v) for v in values) + "\n"
    )
    output = str(tmp_path / "pid.root")
    main([input_file, output, "--process-full", "Pr", "--bb-parameters", str(tsv), "--log-level", "WARNING"])

    with uproot.open(output) as f:
        nsigma = f["pidTPCLfFullPr"]["tpcNSigmaLfPr"].array(library="np")
    _, expected = process_full("Pr", tracks, BBParams(*values), default_table())
    np.testing.assert_array_equal(nsigma, expected)
