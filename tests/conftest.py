import pytest

from moderator.engine import (
    ActionResolver,
    Game,
    GameAction,
    PassiveSkillHandler,
    PlayerSetup,
    PlayerStateStore,
    load_default_catalogue,
)


@pytest.fixture(scope="session")
def catalogue():
    return load_default_catalogue()


def _setups(catalogue, roles):
    return [
        PlayerSetup(
            id=f"p{i}",
            name=f"Player {i}",
            role_id=role,
            team=catalogue.role_by_id(role).team,
        )
        for i, role in enumerate(roles, start=1)
    ]


@pytest.fixture
def make_store(catalogue):
    """Build a store seating one player per role: p1, p2, ..."""
    def _make(*roles):
        return PlayerStateStore(_setups(catalogue, roles))
    return _make


@pytest.fixture
def make_resolver(catalogue, make_store):
    def _make(*roles, night=1):
        store = make_store(*roles)
        resolver = ActionResolver(store, catalogue, PassiveSkillHandler(store, catalogue))
        resolver.night_number = night
        return store, resolver
    return _make


@pytest.fixture
def make_game(catalogue):
    def _make(*roles, logger=None):
        return Game(_setups(catalogue, roles), catalogue=catalogue, logger=logger)
    return _make


@pytest.fixture
def act():
    """Build an action for a player, reading the role from the store."""
    def _act(store, actor_id, kind, *targets, sub_action=None):
        return GameAction(
            actor_id=actor_id,
            role_id=store.get(actor_id).role_id,
            kind=kind,
            target_ids=list(targets),
            sub_action=sub_action,
        )
    return _act
