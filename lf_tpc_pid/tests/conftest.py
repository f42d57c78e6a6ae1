import numpy as np
import pytest

from lf_tpc_pid.params.config_table import default_table
from lf_tpc_pid.pid_constants import BB_PARAMETER_NAMES


class FakeHist:
    """Labelled 1D histogram with the uproot TH1 accessors used by the resolver."""

    def __init__(self, values, labels=BB_PARAMETER_NAMES, name="hpar"):
        self._values = np.asarray(values, dtype=np.float64)
        self._labels = list(labels)
        self.name = name

    def axis(self):
        return self

    def labels(self):
        return self._labels

    def values(self):
        return self._values


class FakeStore:
    def __init__(self, objects=None):
        self.objects = dict(objects or {})
        self.calls = []

    def fetch(self, key):
        self.calls.append(key)
        return self.objects.get(key)


@pytest.fixture
def fake_hist():
    return FakeHist


@pytest.fixture
def fake_store():
    return FakeStore


@pytest.fixture
def table():
    return default_table()


@pytest.fixture
def table_values():
    return [0.03, 20.0, 1e-15, 2.5, 6.0, 55.0, 2.0, 0.003]


@pytest.fixture
def store_values():
    return [0.031, 19.5, 2e-16, 2.6, 6.1, 48.0, 2.2, 0.004]
