"""
Live battle board for Hex Battle.

The authoritative board that humans and AI players act on. It keeps its own
event log and random source, validates incoming actions against the legal
set, and executes them with the same ``apply_action`` the planner simulates.
"""

from __future__ import annotations

import logging
import random
from typing import Any, Dict, List, Optional

from actions import ActionResult, apply_action, legal_actions, legal_actions_for_faction
from hex_grid import Hex
from models import Action, ActionState, ActionType, SimUnit
from state import SimState, faction_to_act, load_config

logger = logging.getLogger(__name__)


class ActionValidationError(Exception):
    """Raised when an action is not legal on the live board."""
    pass


class Battle:
    """
    A battle in progress.

    Args:
        width: Grid columns
        height: Grid rows
        seed: Seed for the combat random source (None = unseeded)
    """

    def __init__(self, width: int, height: int, seed: Optional[int] = None):
        self.state = SimState(width=width, height=height)
        self.rng = random.Random(seed)
        self.log: List[Dict[str, Any]] = []

    @property
    def width(self) -> int:
        return self.state.width

    @property
    def height(self) -> int:
        return self.state.height

    @property
    def turn(self) -> int:
        return self.state.turn_number

    @property
    def units(self) -> List[SimUnit]:
        return self.state.units

    def add_unit(self, unit: SimUnit) -> None:
        """Place a unit. Raises InvalidHexError off-board, SnapshotError if occupied."""
        self.state.add_unit(unit)

    def remove_unit(self, position: Hex) -> Optional[SimUnit]:
        unit = self.state.unit_at(position)
        if unit is not None:
            self.state.units.remove(unit)
        return unit

    def get_unit(self, position: Hex) -> Optional[SimUnit]:
        return self.state.unit_at(position)

    def current_faction(self) -> Optional[str]:
        return faction_to_act(self.state)

    def is_over(self) -> bool:
        return self.state.is_game_over()

    def winner(self) -> Optional[str]:
        return self.state.winner()

    def snapshot(self) -> SimState:
        """Independent copy of the board for planning."""
        return self.state.clone()

    def unit_actions(self, position: Hex) -> List[Action]:
        unit = self.state.unit_at(position)
        if unit is None:
            return []
        return legal_actions(self.state, unit)

    def faction_actions(self, faction: str) -> List[Action]:
        return legal_actions_for_faction(self.state, faction)

    def validate_action(self, action: Action) -> None:
        """Raise ActionValidationError unless ``action`` is legal right now."""
        if self.is_over():
            raise ActionValidationError("The battle is over")
        unit = self.state.unit_at(action.unit)
        if unit is None:
            raise ActionValidationError(f"No unit at {action.unit}")
        if unit.state == ActionState.PASSIVE:
            raise ActionValidationError(f"Unit at {action.unit} has already acted this turn")
        acting = self.current_faction()
        if unit.faction != acting:
            raise ActionValidationError(f"It is {acting}'s turn, not {unit.faction}'s")
        # Standing down is always allowed; everything else must be enumerated
        if action.kind != ActionType.PASS and action not in legal_actions(self.state, unit):
            raise ActionValidationError(f"Illegal action: {action}")

    def execute(self, action: Action) -> ActionResult:
        """
        Validate and apply an action, recording what happened in the log.

        Args:
            action: Action chosen by a human or an AI player

        Returns:
            ActionResult from apply_action
        """
        self.validate_action(action)
        turn = self.turn
        result = apply_action(self.state, action, self.rng)

        log_event(self, str(action), turn=turn)
        if result.combat is not None:
            log_event(self, str(result.combat), turn=turn, combat=result.combat.to_dict())
        if result.turn_advanced:
            log_event(self, f"Turn {self.turn} begins")
        winner = self.winner()
        if winner is not None:
            log_event(self, f"{winner} wins the battle")
        return result


def log_event(battle: Battle, event: str, **kwargs) -> None:
    """
    Add an event to the battle log.

    Args:
        battle: Battle being played
        event: Description of the event
        **kwargs: Additional event data to include
    """
    log_entry = {
        'turn': battle.turn,
        'event': event,
        **kwargs
    }
    battle.log.append(log_entry)
    logger.info(event)


def create_battle(width: int, height: int, units: List[Dict[str, Any]],
                  seed: Optional[int] = None) -> Battle:
    """
    Create a battle from a list of unit descriptions.

    Args:
        width: Grid columns
        height: Grid rows
        units: Dicts with position, health, max_health, faction and ranges
        seed: Combat seed

    Returns:
        New Battle with the units placed
    """
    snapshot = SimState.from_snapshot({'width': width, 'height': height, 'units': units})
    battle = Battle(width, height, seed=seed)
    for unit in snapshot.units:
        battle.add_unit(unit)
    return battle


def default_battle(seed: Optional[int] = None, config: Optional[Dict[str, Any]] = None) -> Battle:
    """Create the configured starting scenario (5x5 duel by default)."""
    scenario = (config or load_config())['scenario']
    return create_battle(scenario['width'], scenario['height'], scenario['units'], seed=seed)
