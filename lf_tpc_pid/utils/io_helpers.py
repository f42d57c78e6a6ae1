import logging

import numpy as np
import uproot

from lf_tpc_pid.pid_constants import (
    INNER_PARAM_BRANCH,
    SIGNAL_BRANCH,
    TRACK_TREE,
    full_table_name,
    tiny_table_name,
)
from lf_tpc_pid.process.species_processor import (
    stored_full_branches,
    stored_tiny_branch,
    uses_default_full,
    uses_default_tiny,
)
from lf_tpc_pid.response.tiny_binning import BINNED_T

logger = logging.getLogger(__name__)


def tiny_output_branch(particle):
    return f"tpcNSigmaStoreLf{particle}"


def full_output_branches(particle):
    return f"tpcExpSigmaLf{particle}", f"tpcNSigmaLf{particle}"


def required_branches(tiny, full, table):
    """
    Track columns needed by the enabled processors. Stored PID columns are
    only read for species that pass them through.
    """
    branches = [INNER_PARAM_BRANCH, SIGNAL_BRANCH]
    for p in tiny:
        if uses_default_tiny(p, table):
            branches.append(stored_tiny_branch(p))
    for p in full:
        if uses_default_full(p, table):
            branches.extend(stored_full_branches(p))
    return list(dict.fromkeys(branches))


def iterate_tracks(input_file, tree_name, branches, step_size="100 MB"):
    """
    Yield batches of tracks as {branch: np.array}.
    """
    with uproot.open(input_file) as f:
        if tree_name not in f:
            raise RuntimeError(f"Could not find '{tree_name}' in {input_file}")
        tree = f[tree_name]
        missing = [b for b in branches if b not in tree.keys()]
        if missing:
            raise KeyError(f"Branches {missing} not found in '{tree_name}' of {input_file}")
        for batch in tree.iterate(branches, step_size=step_size, library="np"):
            yield batch


class PidTableWriter:
    """
    Writes the PID tables into one ROOT file, one TTree per table.
    Tables of the species passed in are created on open, so they exist even
    when the input has no tracks; others are created when first filled.
    Rows are appended batch by batch.
    """

    def __init__(self, output_file, tiny=(), full=()):
        self.output_file = output_file
        self.tiny = list(tiny)
        self.full = list(full)
        self.file = None
        self.created = set()

    def __enter__(self):
        self.file = uproot.recreate(self.output_file)
        for p in self.tiny:
            self._create(tiny_table_name(p), {tiny_output_branch(p): BINNED_T})
        for p in self.full:
            self._create(full_table_name(p), {b: np.float32 for b in full_output_branches(p)})
        return self

    def __exit__(self, exc_type, exc, tb):
        self.file.close()
        self.file = None
        return False

    def _create(self, name, branch_types):
        if name not in self.created:
            self.file.mktree(name, branch_types)
            self.created.add(name)

    def _extend(self, name, data):
        self._create(name, {k: v.dtype for k, v in data.items()})
        if len(next(iter(data.values()))) > 0:
            self.file[name].extend(data)

    def write_tiny(self, particle, nsigma_store):
        self._extend(tiny_table_name(particle),
                     {tiny_output_branch(particle): np.asarray(nsigma_store, dtype=BINNED_T)})

    def write_full(self, particle, exp_sigma, nsigma):
        exp_sigma_branch, nsigma_branch = full_output_branches(particle)
        self._extend(full_table_name(particle), {
            exp_sigma_branch: np.asarray(exp_sigma, dtype=np.float32),
            nsigma_branch: np.asarray(nsigma, dtype=np.float32),
        })


def write_tracks(output_file, tracks, tree_name=TRACK_TREE):
    """Write a flat track tree, e.g. for test inputs or skims."""
    with uproot.recreate(output_file) as f:
        f[tree_name] = {k: np.asarray(v) for k, v in tracks.items()}
    logger.info("Wrote %d tracks to '%s'", len(next(iter(tracks.values()))), output_file)
