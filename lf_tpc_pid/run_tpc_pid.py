"""
Run the light-flavour TPC PID response over a track file.
"""

import argparse
import logging
import time

from lf_tpc_pid.logging_config import setup_logging
from lf_tpc_pid.params.bb_params import resolve
from lf_tpc_pid.params.calib_store import CcdbManager
from lf_tpc_pid.params.config_table import default_table, load_bb_parameters
from lf_tpc_pid.pid_constants import (
    CCDB_URL,
    PARTICLE_LABELS,
    PARTICLE_NAMES,
    TRACK_TREE,
    full_table_name,
    tiny_table_name,
)
from lf_tpc_pid.process.species_processor import process_full, process_tiny
from lf_tpc_pid.utils.io_helpers import PidTableWriter, iterate_tracks, required_branches

logger = logging.getLogger(__name__)


def _check_particles(particles):
    unknown = [p for p in particles if p not in PARTICLE_NAMES]
    if unknown:
        raise ValueError(f"Unknown particles {unknown}, expected a subset of {PARTICLE_NAMES}")


def init_pid(process=(), process_full=(), bb_parameters=None, file_param_bb=None, ccdb=None,
             requested_tables=()):
    """
    Resolve the Bethe-Bloch parameters of every enabled species.

    Args:
        process (iterable[str]): species with the tiny table enabled
        process_full (iterable[str]): species with the full table enabled
        bb_parameters (pd.DataFrame): parameter table, all zeros if None
        file_param_bb (dict[str, str]): species -> file path or ccdb:// locator
        ccdb: calibration store with fetch(key)
        requested_tables (iterable[str]): tables asked for downstream
    Returns:
        dict[str, BBParams] for the enabled species
    Raises:
        RuntimeError: a requested table belongs to a species that is not enabled
    """
    process = set(process)
    process_full = set(process_full)
    requested_tables = set(requested_tables)
    _check_particles(process | process_full)
    table = default_table() if bb_parameters is None else bb_parameters
    file_param_bb = file_param_bb or {}

    params = {}
    for p in PARTICLE_NAMES:
        label = PARTICLE_LABELS[p]
        if p in process or p in process_full:
            logger.info("Enabling %s", label)
            params[p] = resolve(p, table, file_param_bb.get(p, ""), ccdb)
            continue
        logger.info("Skipping %s", label)
        if tiny_table_name(p) in requested_tables or full_table_name(p) in requested_tables:
            logger.critical("Requested %s table but not enabled in configuration", label)
            raise RuntimeError(f"Requested {label} table but not enabled in configuration")
    return params


def run_pid(input_file, output_file, **kwargs):
    """
    Read tracks, fill the enabled PID tables and write them to a new ROOT file.
    """
    total_start = time.perf_counter()

    tiny_species = list(kwargs.get("process", []))
    full_species = list(kwargs.get("process_full", []))
    table = kwargs.get("bb_parameters")
    if table is None:
        table = default_table()
    ccdb = kwargs.get("ccdb")
    if ccdb is None:
        ccdb = CcdbManager(url=kwargs.get("ccdb_url", CCDB_URL), timestamp=kwargs.get("ccdb_timestamp", -1))

    params = init_pid(
        process=tiny_species,
        process_full=full_species,
        bb_parameters=table,
        file_param_bb=kwargs.get("file_param_bb"),
        ccdb=ccdb,
        requested_tables=kwargs.get("requested_tables", ()),
    )
    init_end = time.perf_counter()

    branches = required_branches(tiny_species, full_species, table)
    n_tracks = 0
    with PidTableWriter(output_file, tiny_species, full_species) as writer:
        for batch in iterate_tracks(input_file, kwargs.get("tree_name", TRACK_TREE), branches,
                                    step_size=kwargs.get("step_size", "100 MB")):
            for p in PARTICLE_NAMES:
                if p in tiny_species:
                    writer.write_tiny(p, process_tiny(p, batch, params[p], table))
                if p in full_species:
                    writer.write_full(p, *process_full(p, batch, params[p], table))
            n_tracks += len(next(iter(batch.values())))
    total_end = time.perf_counter()

    logger.info("--- Timing Summary ---")
    logger.info("Init time:      %.2f s", init_end - total_start)
    logger.info("Processing:     %.2f s (%d tracks)", total_end - init_end, n_tracks)
    logger.info("Total runtime:  %.2f s", total_end - total_start)
    return params


def _parse_file_params(items):
    out = {}
    for item in items:
        particle, sep, locator = item.partition("=")
        if not sep:
            raise argparse.ArgumentTypeError(f"Expected PARTICLE=LOCATOR, got '{item}'")
        out[particle.strip()] = locator.strip()
    return out


def main(argv=None):
    parser = argparse.ArgumentParser(description="Produce light-flavour TPC PID tables.")
    parser.add_argument("input_file", help="ROOT file with the track tree")
    parser.add_argument("output_file", help="ROOT file to write the PID tables to")
    parser.add_argument("--tree", default=TRACK_TREE, help=f"Track tree name (default: {TRACK_TREE})")
    parser.add_argument("--step-size", default="100 MB", help="Batch size passed to uproot (default: 100 MB)")
    parser.add_argument("--bb-parameters", default=None,
                        help="TSV table of per-species Bethe-Bloch parameters and flags")
    parser.add_argument("--process", nargs="*", default=[], choices=PARTICLE_NAMES,
                        help="Species to produce the tiny table for")
    parser.add_argument("--process-full", nargs="*", default=[], choices=PARTICLE_NAMES,
                        help="Species to produce the full table for")
    parser.add_argument("--file-param", nargs="*", default=[], metavar="PARTICLE=LOCATOR",
                        help="Parameter file per species; ccdb:// prefix reads from the CCDB")
    parser.add_argument("--require-table", nargs="*", default=[], metavar="TABLE",
                        help="Tables required downstream, e.g. pidTPCLfPi")
    parser.add_argument("--ccdb-url", default=CCDB_URL, help=f"CCDB url (default: {CCDB_URL})")
    parser.add_argument("--ccdb-timestamp", type=int, default=-1,
                        help="Timestamp used to query the CCDB, -1 for now")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-file", default=None)
    args = parser.parse_args(argv)

    setup_logging(level=getattr(logging, args.log_level), log_file=args.log_file)

    run_pid(
        input_file=args.input_file,
        output_file=args.output_file,
        tree_name=args.tree,
        step_size=args.step_size,
        bb_parameters=load_bb_parameters(args.bb_parameters),
        process=args.process,
        process_full=args.process_full,
        file_param_bb=_parse_file_params(args.file_param),
        requested_tables=args.require_table,
        ccdb_url=args.ccdb_url,
        ccdb_timestamp=args.ccdb_timestamp,
    )


if __name__ == "__main__":
    main()
