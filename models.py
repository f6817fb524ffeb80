# Models for units and actions in Hex Battle

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

Hex = Tuple[int, int]


class ActionState(Enum):
    """Per-unit, per-turn action availability."""
    ACTIVE = "Active"    # Can move and attack
    READY = "Ready"      # Moved one hex next to an enemy, can still attack
    PASSIVE = "Passive"  # Done for this turn


class ActionType(Enum):
    MOVE = "Move"
    ATTACK = "Attack"
    MOVE_AND_ATTACK = "MoveAndAttack"
    PASS = "Pass"


@dataclass
class SimUnit:
    """
    A combatant on the board.

    Units are addressed by their position; at most one unit occupies a hex.
    Health is kept within [0, max_health] by ``take_damage``.
    """
    position: Hex  # (column, row)
    health: int
    max_health: int
    faction: str  # Faction identifier, e.g. 'red' or 'blue'
    movement_range: int = 2
    attack_range: int = 1
    state: ActionState = ActionState.ACTIVE

    def __post_init__(self) -> None:
        self.health = max(0, min(self.health, self.max_health))

    @property
    def alive(self) -> bool:
        return self.health > 0

    @property
    def health_fraction(self) -> float:
        if self.max_health <= 0:
            return 0.0
        return self.health / self.max_health

    def take_damage(self, damage: int) -> None:
        """Reduce health, never below zero."""
        self.health = max(0, min(self.max_health, self.health - damage))

    def move_to(self, position: Hex) -> None:
        self.position = position

    def reset_state(self) -> None:
        self.state = ActionState.ACTIVE

    def clone(self) -> "SimUnit":
        return SimUnit(
            position=self.position,
            health=self.health,
            max_health=self.max_health,
            faction=self.faction,
            movement_range=self.movement_range,
            attack_range=self.attack_range,
            state=self.state,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'position': {'q': self.position[0], 'r': self.position[1]},
            'health': self.health,
            'max_health': self.max_health,
            'faction': self.faction,
            'movement_range': self.movement_range,
            'attack_range': self.attack_range,
            'state': self.state.value,
        }

    def __str__(self) -> str:
        return (f"Unit at {self.position} - Health: {self.health}/{self.max_health} "
                f"- Faction: {self.faction} - State: {self.state.value}")


def _hex_to_dict(position: Optional[Hex]) -> Optional[Dict[str, int]]:
    if position is None:
        return None
    return {'q': position[0], 'r': position[1]}


def _hex_from_dict(data: Any) -> Optional[Hex]:
    if data is None:
        return None
    if isinstance(data, dict):
        return (int(data['q']), int(data['r']))
    q, r = data
    return (int(q), int(r))


@dataclass(frozen=True)
class Action:
    """
    An action for the unit standing on ``unit``.

    ``destination`` is set for Move and MoveAndAttack, ``target`` for Attack
    and MoveAndAttack. Used both as a search-tree edge and as the decision
    handed back to the caller.
    """
    kind: ActionType
    unit: Hex
    destination: Optional[Hex] = None
    target: Optional[Hex] = None

    @classmethod
    def move(cls, unit: Hex, destination: Hex) -> "Action":
        return cls(ActionType.MOVE, unit, destination=destination)

    @classmethod
    def attack(cls, unit: Hex, target: Hex) -> "Action":
        return cls(ActionType.ATTACK, unit, target=target)

    @classmethod
    def move_and_attack(cls, unit: Hex, destination: Hex, target: Hex) -> "Action":
        return cls(ActionType.MOVE_AND_ATTACK, unit, destination=destination, target=target)

    @classmethod
    def pass_turn(cls, unit: Hex) -> "Action":
        return cls(ActionType.PASS, unit)

    @property
    def is_attack(self) -> bool:
        return self.kind in (ActionType.ATTACK, ActionType.MOVE_AND_ATTACK)

    @property
    def is_move(self) -> bool:
        return self.kind == ActionType.MOVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.kind.value,
            'unit': _hex_to_dict(self.unit),
            'destination': _hex_to_dict(self.destination),
            'target': _hex_to_dict(self.target),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Action":
        """Parse the JSON form produced by ``to_dict``. Raises ValueError on bad input."""
        try:
            kind = ActionType(data['type'])
            unit = _hex_from_dict(data['unit'])
            destination = _hex_from_dict(data.get('destination'))
            target = _hex_from_dict(data.get('target'))
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed action: {data!r}") from e

        if kind in (ActionType.MOVE, ActionType.MOVE_AND_ATTACK) and destination is None:
            raise ValueError(f"{kind.value} action requires a destination")
        if kind in (ActionType.ATTACK, ActionType.MOVE_AND_ATTACK) and target is None:
            raise ValueError(f"{kind.value} action requires a target")
        return cls(kind, unit, destination=destination, target=target)

    def __str__(self) -> str:
        if self.kind == ActionType.MOVE:
            return f"Move from {self.unit} to {self.destination}"
        if self.kind == ActionType.ATTACK:
            return f"Attack from {self.unit} to {self.target}"
        if self.kind == ActionType.MOVE_AND_ATTACK:
            return f"Move from {self.unit} to {self.destination} then attack {self.target}"
        return f"Pass at {self.unit}"
