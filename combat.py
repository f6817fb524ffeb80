"""
Combat resolution for Hex Battle.

One damage law serves both real combat on the live board and planning
rollouts, so rollouts stay a faithful proxy of real outcomes.
"""

import random
from dataclasses import dataclass
from typing import Any, Dict

from hex_grid import Hex
from models import SimUnit

MIN_DAMAGE = 10
MAX_DAMAGE = 50
BASE_FRACTION = (0.20, 0.30)  # Share of the defender's max health
SPREAD = (0.8, 1.2)           # Random factor on the base damage
COUNTER_RANGE = 1


class CombatError(Exception):
    """Raised when a combat cannot be resolved."""
    pass


@dataclass
class CombatOutcome:
    attacker_position: Hex
    defender_position: Hex
    damage_to_defender: int
    damage_to_attacker: int = 0
    defender_eliminated: bool = False
    attacker_eliminated: bool = False
    counter_occurred: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'attacker_position': {'q': self.attacker_position[0], 'r': self.attacker_position[1]},
            'defender_position': {'q': self.defender_position[0], 'r': self.defender_position[1]},
            'damage_to_defender': self.damage_to_defender,
            'damage_to_attacker': self.damage_to_attacker,
            'defender_eliminated': self.defender_eliminated,
            'attacker_eliminated': self.attacker_eliminated,
            'counter_occurred': self.counter_occurred,
        }

    def __str__(self) -> str:
        text = f"Combat: attacker dealt {self.damage_to_defender} damage"
        if self.counter_occurred:
            text += f", defender countered for {self.damage_to_attacker} damage"
        if self.defender_eliminated:
            text += " - defender eliminated!"
        if self.attacker_eliminated:
            text += " - attacker eliminated!"
        return text


def roll_damage(defender_max_health: int, rng: random.Random) -> int:
    """
    Roll damage against a defender.

    base = max_health * U(0.20, 0.30), final = round(base * U(0.8, 1.2))
    clamped to [MIN_DAMAGE, MAX_DAMAGE].

    Args:
        defender_max_health: Maximum health of the unit being hit
        rng: Random source (the caller's, so seeded runs are reproducible)

    Returns:
        Integer damage in [10, 50]
    """
    base = defender_max_health * rng.uniform(*BASE_FRACTION)
    final = round(base * rng.uniform(*SPREAD))
    return max(MIN_DAMAGE, min(MAX_DAMAGE, final))


def resolve_combat(attacker: SimUnit, defender: SimUnit, distance: int,
                   rng: random.Random) -> CombatOutcome:
    """Resolve an attack and, at melee distance, the defender's counter-attack.

    Both units' health is mutated in place. Removing eliminated units from
    the board is left to the caller.

    Args:
        attacker: Attacking unit
        defender: Defending unit
        distance: Hex distance between the two at the time of the attack
        rng: Random source for damage rolls

    Returns:
        CombatOutcome describing damage dealt and eliminations
    """
    if not attacker.alive or not defender.alive:
        raise CombatError(f"Cannot resolve combat between {attacker} and {defender}: unit is dead")

    outcome = CombatOutcome(
        attacker_position=attacker.position,
        defender_position=defender.position,
        damage_to_defender=roll_damage(defender.max_health, rng),
    )
    defender.take_damage(outcome.damage_to_defender)
    outcome.defender_eliminated = not defender.alive

    # Counter-attack only from a surviving, adjacent defender
    if distance <= COUNTER_RANGE and defender.alive:
        outcome.counter_occurred = True
        outcome.damage_to_attacker = roll_damage(attacker.max_health, rng)
        attacker.take_damage(outcome.damage_to_attacker)
        outcome.attacker_eliminated = not attacker.alive

    return outcome
