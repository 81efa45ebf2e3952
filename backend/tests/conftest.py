import pytest

from fakes import FakeRegistry


@pytest.fixture
def registry():
    return FakeRegistry({
        "fileSearchStores/acme": "Acme Kickoff",
        "fileSearchStores/q1": "Q1 Review",
        "fileSearchStores/ops": "Ops Sync",
    })
