"""
Simulation state for Hex Battle.
Implements the cloneable board snapshot searched by the planner, the snapshot
codec used at the boundary with the live board, turn-order policy shared by
the board and the search, and configuration loading.

Units: position, health, faction, movement/attack range, action state
Turn: rolls over when every living unit is Passive
"""

from __future__ import annotations
import copy
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from hex_grid import HexGrid, Hex, InvalidHexError, get_grid
from models import ActionState, SimUnit

logger = logging.getLogger(__name__)

CONFIG_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'config.json')

DEFAULT_CONFIG: Dict[str, Any] = {
    'mcts': {
        'exploration_constant': 1.41,
        'max_iterations': 5000,
        'time_budget_ms': 1500,
        'rollout_move_cap': 50,
        'attack_preference': 0.9,
        'best_attack_share': 0.8,
        'best_move_share': 0.7,
        'kill_health_threshold': 35,
        'weak_enemy_threshold': 30,
        'score_scale': 2000.0,
        'attack_exploration_weight': 3.0,
        'leaf_value_weight': 0.3,
        'seed': None,
    },
    'evaluation': {},
    'scenario': {
        'width': 5,
        'height': 5,
        'ai_faction': 'blue',
        'units': [
            {'position': [0, 0], 'health': 100, 'max_health': 100, 'faction': 'red',
             'movement_range': 2, 'attack_range': 2},
            {'position': [4, 4], 'health': 75, 'max_health': 100, 'faction': 'blue',
             'movement_range': 2, 'attack_range': 2},
        ],
    },
}


class SnapshotError(ValueError):
    """Raised when a snapshot cannot be turned into a SimState."""
    pass


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load config.json, falling back to defaults for a missing file or keys.

    Args:
        path: Config file path (default: config.json next to this module)

    Returns:
        Dictionary with 'mcts', 'evaluation' and 'scenario' sections
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    try:
        with open(path or CONFIG_PATH, 'r') as f:
            loaded = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError):
        # Use defaults if config file is missing or invalid
        return config

    for section, values in loaded.items():
        if isinstance(values, dict) and isinstance(config.get(section), dict):
            config[section].update(values)
        else:
            config[section] = values
    return config


@dataclass
class SimState:
    """
    Snapshot of every living unit plus turn number and grid size.

    The state owns its units; ``clone`` returns a fully independent copy so
    that search branches never share mutable units.
    """
    width: int
    height: int
    units: List[SimUnit] = field(default_factory=list)
    turn_number: int = 1

    @property
    def grid(self) -> HexGrid:
        return get_grid(self.width, self.height)

    def clone(self) -> SimState:
        return SimState(
            width=self.width,
            height=self.height,
            units=[unit.clone() for unit in self.units],
            turn_number=self.turn_number,
        )

    def unit_at(self, position: Hex) -> Optional[SimUnit]:
        """Get the unit at a specific position, if any."""
        for unit in self.units:
            if unit.position == position:
                return unit
        return None

    def occupied_positions(self) -> set:
        return {u.position for u in self.units if u.alive}

    def faction_units(self, faction: str) -> List[SimUnit]:
        return [u for u in self.units if u.faction == faction and u.alive]

    def enemy_units(self, faction: str) -> List[SimUnit]:
        return [u for u in self.units if u.faction != faction and u.alive]

    def factions(self) -> List[str]:
        """Factions with living units, in order of first appearance."""
        seen: List[str] = []
        for unit in self.units:
            if unit.alive and unit.faction not in seen:
                seen.append(unit.faction)
        return seen

    def is_game_over(self) -> bool:
        return len(self.factions()) <= 1

    def winner(self) -> Optional[str]:
        """The last faction standing, or None while the game is undecided."""
        factions = self.factions()
        if len(factions) == 1:
            return factions[0]
        return None

    def all_units_passive(self) -> bool:
        living = [u for u in self.units if u.alive]
        return bool(living) and all(u.state == ActionState.PASSIVE for u in living)

    def reset_unit_states(self) -> None:
        """Start a new turn: every living unit becomes Active again."""
        for unit in self.units:
            unit.reset_state()
        self.turn_number += 1

    def remove_dead(self) -> List[SimUnit]:
        dead = [u for u in self.units if not u.alive]
        if dead:
            self.units = [u for u in self.units if u.alive]
        return dead

    def add_unit(self, unit: SimUnit) -> None:
        self.grid.validate(unit.position)
        if self.unit_at(unit.position) is not None:
            raise SnapshotError(f"Hex {unit.position} is already occupied")
        self.units.append(unit)

    def to_snapshot(self) -> Dict[str, Any]:
        """Plain-dict form of the state (JSON friendly)."""
        return {
            'width': self.width,
            'height': self.height,
            'turn_number': self.turn_number,
            'units': [unit.to_dict() for unit in self.units if unit.alive],
        }

    @classmethod
    def from_snapshot(cls, data: Dict[str, Any]) -> SimState:
        """
        Build a SimState from the dict produced by ``to_snapshot``.

        Dead units (health <= 0) are dropped. Positions are validated
        against the grid; out-of-bounds units raise InvalidHexError.

        Args:
            data: Snapshot dictionary

        Returns:
            New SimState owning fresh SimUnit objects
        """
        try:
            width = int(data['width'])
            height = int(data['height'])
            turn_number = int(data.get('turn_number', 1))
            raw_units = data.get('units', [])
        except (KeyError, TypeError, ValueError) as e:
            raise SnapshotError(f"Malformed snapshot: {e}") from e

        if width <= 0 or height <= 0:
            raise SnapshotError(f"Grid dimensions must be positive, got {width}x{height}")

        state = cls(width=width, height=height, turn_number=turn_number)
        for raw in raw_units:
            unit = _unit_from_dict(raw)
            if not unit.alive:
                continue
            state.add_unit(unit)
        return state


def _unit_from_dict(raw: Dict[str, Any]) -> SimUnit:
    try:
        pos = raw['position']
        position = (int(pos['q']), int(pos['r'])) if isinstance(pos, dict) else (int(pos[0]), int(pos[1]))
        max_health = int(raw.get('max_health', 100))
        return SimUnit(
            position=position,
            health=int(raw.get('health', max_health)),
            max_health=max_health,
            faction=str(raw['faction']),
            movement_range=int(raw.get('movement_range', 2)),
            attack_range=int(raw.get('attack_range', 1)),
            state=ActionState(raw.get('state', ActionState.ACTIVE.value)),
        )
    except (KeyError, TypeError, ValueError, IndexError) as e:
        raise SnapshotError(f"Malformed unit {raw!r}: {e}") from e


def faction_to_act(state: SimState, default: Optional[str] = None) -> Optional[str]:
    """
    Decide which faction moves next.

    A lone surviving faction always acts. Otherwise the first faction (in
    order of first appearance) with a non-Passive unit acts. If every unit
    is Passive the turn should already have rolled over; the first faction is
    returned and the anomaly is logged.

    Args:
        state: Current simulation state
        default: Returned when no units remain at all

    Returns:
        Faction identifier, or ``default`` for an empty board
    """
    factions = state.factions()
    if not factions:
        return default
    if len(factions) == 1:
        return factions[0]

    for faction in factions:
        if any(u.state != ActionState.PASSIVE for u in state.faction_units(faction)):
            return faction

    logger.warning("All units passive on turn %d without rollover; defaulting to %s",
                   state.turn_number, factions[0])
    return factions[0]


def advance_turn_if_needed(state: SimState) -> bool:
    """Roll the turn over when every living unit is Passive. Returns True if it did."""
    if state.all_units_passive():
        state.reset_unit_states()
        return True
    return False


__all__ = [
    'SimState', 'SnapshotError', 'InvalidHexError', 'load_config',
    'faction_to_act', 'advance_turn_if_needed', 'DEFAULT_CONFIG',
]
