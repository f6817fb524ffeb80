"""Shared test fixtures and helpers."""

import random

import pytest

from battle import Battle
from models import ActionState, SimUnit
from state import SimState

# --- Standard scenarios ---

DUEL_SNAPSHOT = {
    "width": 5,
    "height": 5,
    "turn_number": 1,
    "units": [
        {"position": {"q": 0, "r": 0}, "health": 100, "max_health": 100, "faction": "red",
         "movement_range": 2, "attack_range": 2, "state": "Active"},
        {"position": {"q": 4, "r": 4}, "health": 75, "max_health": 100, "faction": "blue",
         "movement_range": 2, "attack_range": 2, "state": "Active"},
    ],
}


# --- Fixtures ---


@pytest.fixture
def rng():
    """Deterministic RNG seeded at 42."""
    return random.Random(42)


@pytest.fixture
def duel_state():
    """5x5 board, red at (0,0) with 100 HP, blue at (4,4) with 75 HP."""
    return SimState.from_snapshot(DUEL_SNAPSHOT)


@pytest.fixture
def adjacent_state():
    """Two full-health melee units standing next to each other."""
    return make_state([
        make_unit((2, 2), "red"),
        make_unit((3, 2), "blue"),
    ])


@pytest.fixture
def api_client():
    """Flask test client."""
    from app import app

    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


# --- Helper functions ---


def make_unit(position, faction, health=100, max_health=100, movement_range=2,
              attack_range=1, state=ActionState.ACTIVE):
    return SimUnit(
        position=position,
        health=health,
        max_health=max_health,
        faction=faction,
        movement_range=movement_range,
        attack_range=attack_range,
        state=state,
    )


def make_state(units, width=5, height=5, turn_number=1):
    """Create a SimState holding the given units."""
    return SimState(width=width, height=height, units=list(units), turn_number=turn_number)


def make_battle(units, width=5, height=5, seed=42):
    """Create a Battle holding the given units."""
    battle = Battle(width, height, seed=seed)
    for unit in units:
        battle.add_unit(unit)
    return battle
