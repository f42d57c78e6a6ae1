"""
Bethe-Bloch parameter sets and the order in which their sources override each other:
built-in defaults, then the parameter table, then an external file or CCDB object.

Every setter returns a new BBParams; on any problem it logs and hands back
the set it was given.
"""

import logging
import math
from typing import NamedTuple

import uproot

from lf_tpc_pid.params.config_table import get_parameter
from lf_tpc_pid.pid_constants import (
    BB_PARAMETER_NAMES,
    CCDB_PREFIX,
    FLAG_THRESHOLD,
    HPAR_NAME,
)

logger = logging.getLogger(__name__)


class BBParams(NamedTuple):
    bb1: float = 0.03209809958934784     # ALEPH Bethe-Bloch parameter 1
    bb2: float = 19.9768009185791        # ALEPH Bethe-Bloch parameter 2
    bb3: float = 2.5266601063857674e-16  # ALEPH Bethe-Bloch parameter 3
    bb4: float = 2.7212300300598145      # ALEPH Bethe-Bloch parameter 4
    bb5: float = 6.080920219421387       # ALEPH Bethe-Bloch parameter 5
    mip: float = 50.0                    # MIP value
    exp: float = 2.299999952316284       # exponent of the charge factor
    res: float = 0.002                   # resolution

    def describe(self):
        return ", ".join(f"{k}: {v}" for k, v in self._asdict().items())


DEFAULT_PARAMS = BBParams()


def set_values_from_vector(v, prior):
    if len(v) != len(BBParams._fields):
        logger.error("The vector of Bethe-Bloch parameters has the wrong size %d, expected %d",
                     len(v), len(BBParams._fields))
        return prior
    params = BBParams(*(float(x) for x in v))
    logger.info("Before: set of parameters -> %s", prior.describe())
    logger.info("After: set of parameters -> %s", params.describe())
    return params


def set_values_from_table(particle, table, prior):
    """Override from the parameter table when its 'Set parameters' flag is on."""
    flag = get_parameter(table, particle, "Set parameters")
    if not flag >= FLAG_THRESHOLD:
        logger.info("Using default for %s, 'Set parameters' is %s < %s", particle, flag, FLAG_THRESHOLD)
        return prior

    values = [get_parameter(table, particle, name) for name in BB_PARAMETER_NAMES]
    v = [x for x in values if not math.isnan(x)]
    logger.info("Setting custom Bethe-Bloch parameters for mass hypothesis %s", particle)
    return set_values_from_vector(v, prior)


def set_values_from_histogram(h, prior):
    """
    Read the 8 constants from the labelled bins of a histogram-like object
    (anything with `axis().labels()` and `values()`, e.g. an uproot TH1).
    """
    if h is None:
        logger.error("No Bethe-Bloch parameter histogram available")
        return prior

    try:
        labels = list(h.axis().labels() or [])
        contents = h.values()
    except (AttributeError, TypeError) as e:
        logger.error("The Bethe-Bloch parameter object (%s) is not a labelled 1D histogram: %s",
                     type(h).__name__, e)
        return prior

    v = [float(contents[labels.index(name)]) for name in BB_PARAMETER_NAMES if name in labels]
    if len(v) != len(BB_PARAMETER_NAMES):
        missing = [name for name in BB_PARAMETER_NAMES if name not in labels]
        logger.error("The input histogram of Bethe-Bloch parameters is missing bins %s", missing)
        return prior

    logger.info("Setting custom Bethe-Bloch parameters from histogram %s", getattr(h, "name", HPAR_NAME))
    return set_values_from_vector(v, prior)


def set_values_from_file(path, prior):
    try:
        with uproot.open(path) as f:
            if HPAR_NAME not in f:
                logger.error("The input file %s does not contain the histogram %s", path, HPAR_NAME)
                return prior
            logger.info("Setting parameters from file %s", path)
            return set_values_from_histogram(f[HPAR_NAME], prior)
    except (OSError, ValueError, uproot.deserialization.DeserializationError) as e:
        logger.error("Could not open parameter file %s: %s", path, e)
        return prior


def set_values_from_locator(locator, store, prior):
    """
    Override from a local ROOT file or, with a ccdb:// prefix, from the
    calibration store. Empty or single-character locators mean "no override".
    """
    if locator is None or len(locator) <= 1:
        return prior
    logger.info("Loading parameters from %s", locator)
    if locator.startswith(CCDB_PREFIX):
        key = locator[len(CCDB_PREFIX):]
        if store is None:
            logger.error("No calibration store configured to fetch %s", key)
            return prior
        return set_values_from_histogram(store.fetch(key), prior)
    return set_values_from_file(locator, prior)


def resolve(particle, table, locator=None, store=None):
    """
    Resolve the parameter set of one species.

    Args:
        particle (str): short particle name
        table (pd.DataFrame): parameter table (see config_table)
        locator (str): file path or ccdb:// key, "" for none
        store: object with fetch(key), used for ccdb:// locators
    Returns:
        BBParams
    """
    params = DEFAULT_PARAMS
    if table is not None:
        params = set_values_from_table(particle, table, params)
    return set_values_from_locator(locator, store, params)
