# params/config_table.py

import logging
import math

import numpy as np
import pandas as pd

from lf_tpc_pid.pid_constants import FLAG_THRESHOLD, PARAMETER_NAMES, PARTICLE_NAMES

logger = logging.getLogger(__name__)


def default_table():
    """All-zero table: no species sets its own parameters or uses stored values."""
    return pd.DataFrame(
        np.zeros((len(PARTICLE_NAMES), len(PARAMETER_NAMES))),
        index=pd.Index(PARTICLE_NAMES, name="particle"),
        columns=PARAMETER_NAMES,
    )


def load_bb_parameters(tsv_path=None):
    """
    Read the per-species Bethe-Bloch parameter table.

    The file is tab separated, '#' starts a comment, the header row names the
    columns and the first column holds the particle short name. Species that
    are not listed get an all-zero row. Unknown columns are kept, so a
    misspelled label simply never matches.
    """
    table = default_table()
    if tsv_path is None:
        return table

    df = pd.read_csv(tsv_path, sep="\t", comment="#", index_col=0)
    df.index = df.index.astype(str).str.strip()
    df.columns = [str(c).strip() for c in df.columns]
    df.index.name = "particle"

    duplicated = df.index.duplicated(keep="last")
    if duplicated.any():
        logger.warning("Particles %s listed more than once in %s, keeping the last row",
                       sorted(set(df.index[duplicated])), tsv_path)
        df = df[~duplicated]

    unknown = [p for p in df.index if p not in PARTICLE_NAMES]
    if unknown:
        logger.warning("Ignoring unknown particles %s in %s", unknown, tsv_path)
        df = df.drop(index=unknown)

    # Columns missing from the file stay NaN so a malformed row can be detected
    table = table.reindex(columns=list(dict.fromkeys(PARAMETER_NAMES + list(df.columns))))
    for p in df.index:
        table.loc[p] = np.nan
        for col in df.columns:
            table.loc[p, col] = pd.to_numeric(df.loc[p, col], errors="coerce")
        for flag in PARAMETER_NAMES[:3]:
            if pd.isna(table.loc[p, flag]):
                table.loc[p, flag] = 0.0

    logger.info("Loaded Bethe-Bloch parameter table from %s (%d rows)", tsv_path, len(df))
    return table


def get_parameter(table, particle, label):
    """Float value of (particle, label), NaN when absent."""
    try:
        value = table.at[particle, label]
    except KeyError:
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def flag_set(table, particle, label, threshold=FLAG_THRESHOLD):
    return get_parameter(table, particle, label) >= threshold
