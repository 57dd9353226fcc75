"""
Fixtures writing real ROOT files with uproot.

Both files hold the same 10-entry dataset: the four standard fields plus a
jagged "hits" field and its "nhits" counter.
"""

import awkward as ak
import numpy as np
import pytest
import uproot

from src.reconciliation.models import StoreOrigin
from src.reconciliation.stores.memory import MemoryStore

RECORDS = 10

HITS = [list(range(i % 3)) for i in range(RECORDS)]
NHITS = [len(hits) for hits in HITS]


def dataset():
    return {
        "value": np.arange(RECORDS, dtype=np.int32),
        "weight": np.arange(RECORDS, dtype=np.float32) * np.float32(0.5),
        "energy": np.arange(RECORDS, dtype=np.float64) * 1.25,
        "isNew": np.arange(RECORDS) % 2 == 0,
    }


def hits_array():
    return ak.values_astype(ak.Array(HITS), np.int32)


@pytest.fixture(scope="session")
def ttree_file(tmp_path_factory):
    """ROOT file holding a TTree 'events'; uproot adds the 'nhits' counter branch."""
    path = tmp_path_factory.mktemp("root") / "legacy.root"
    with uproot.recreate(path) as f:
        tree = f.mktree("events", {
            "value": np.int32,
            "weight": np.float32,
            "energy": np.float64,
            "isNew": np.bool_,
            "hits": "var * int32",
        })
        tree.extend({**dataset(), "hits": hits_array()})
    return str(path)


@pytest.fixture(scope="session")
def rntuple_file(tmp_path_factory):
    """ROOT file holding an RNTuple 'events' with the same content as ttree_file."""
    path = tmp_path_factory.mktemp("root") / "migrated.root"
    with uproot.recreate(path) as f:
        f.mkrntuple("events", ak.Array({
            **dataset(),
            "nhits": np.asarray(NHITS, dtype=np.int32),
            "hits": hits_array(),
        }))
    return str(path)


@pytest.fixture
def jagged_columnar_store():
    """In-memory RNTuple columns matching ttree_file, counter included."""
    data = dataset()
    return MemoryStore(
        [
            ("value", "std::int32_t", data["value"].tolist()),
            ("weight", "float", data["weight"].tolist()),
            ("energy", "double", data["energy"].tolist()),
            ("isNew", "bool", data["isNew"].tolist()),
            ("nhits", "std::int32_t", NHITS),
            ("hits", "std::vector<std::int32_t>", HITS),
        ],
        origin=StoreOrigin.COLUMNAR,
        location="migrated.root",
    )
