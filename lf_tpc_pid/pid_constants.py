# pid_constants.py

# Mass hypotheses, in table order
PARTICLE_NAMES = ["El", "Mu", "Pi", "Ka", "Pr", "De", "Tr", "He", "Al"]

PARTICLE_LABELS = {
    "El": "Electron",
    "Mu": "Muon",
    "Pi": "Pion",
    "Ka": "Kaon",
    "Pr": "Proton",
    "De": "Deuteron",
    "Tr": "Triton",
    "He": "Helium3",
    "Al": "Alpha",
}

# Rest masses in GeV/c^2
MASSES = {
    "El": 0.000510998950,
    "Mu": 0.1056583755,
    "Pi": 0.13957039,
    "Ka": 0.493677,
    "Pr": 0.93827208816,
    "De": 1.87561294257,
    "Tr": 2.80892113298,
    "He": 2.80839160743,
    "Al": 3.7273794066,
}

CHARGES = {
    "El": 1, "Mu": 1, "Pi": 1, "Ka": 1, "Pr": 1,
    "De": 1, "Tr": 1, "He": 2, "Al": 2,
}

# Columns of the Bethe-Bloch parameter table
PARAMETER_NAMES = [
    "Use default tiny",
    "Use default full",
    "Set parameters",
    "bb1", "bb2", "bb3", "bb4", "bb5",
    "MIP value", "Charge exponent", "Resolution",
]
BB_PARAMETER_NAMES = PARAMETER_NAMES[3:]  # 8 physical constants, in BBParams order

FLAG_THRESHOLD = 1.5  # float-encoded toggles are "on" at or above this

# Calibration store
CCDB_PREFIX = "ccdb://"
CCDB_URL = "http://alice-ccdb.cern.ch"
CCDB_OBJECT_NAME = "ccdb_object"
HPAR_NAME = "hpar"  # histogram name inside a local parameter file

# Track tree
TRACK_TREE = "tracks"
INNER_PARAM_BRANCH = "tpcInnerParam"
SIGNAL_BRANCH = "tpcSignal"


def mass(particle):
    return MASSES[particle]


def charge(particle):
    return CHARGES[particle]


def mass_over_z(particle):
    return MASSES[particle] / CHARGES[particle]


def tiny_table_name(particle):
    return f"pidTPCLf{particle}"


def full_table_name(particle):
    return f"pidTPCLfFull{particle}"
