import pytest

from netweave.capabilities import InMemoryKeyValueStore
from netweave.environment import Environment, set_current_env
from netweave.network_model import NetworkModel
from netweave.registry import ModelRegistry
from netweave.settings import get_settings


# ===========================================================================================
# ENV AND SETTINGS
# ===========================================================================================

ENV = set_current_env(Environment.TESTING)
SETTINGS = get_settings()


# ===========================================================================================
# FIXTURES
# ===========================================================================================

PEOPLE = [
    {"name": "alice", "team": "x", "v": 1},
    {"name": "bob",   "team": "x", "v": 2},
    {"name": "carol", "team": "y", "v": 3},
]


@pytest.fixture
def model() -> NetworkModel:
    return NetworkModel(model_id="test_model")


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def registry(store) -> ModelRegistry:
    return ModelRegistry(storage=store)


@pytest.fixture
def people_model(model):
    """A model with a `people` node class connected to a `teams` node class aggregated on `team`.

    Returns (model, people, teams, membership edge class).
    """
    people = model.add_static_table("people", [dict(row) for row in PEOPLE]).interpret_as_nodes()
    people.set_class_name("People")
    teams = people.aggregate("team")
    teams.set_class_name("Teams")
    membership = next(iter(people.connected_classes()))
    return model, people, teams, membership
