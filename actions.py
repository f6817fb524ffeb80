"""
Legal-action enumeration and state transitions for Hex Battle.

``apply_action`` is the single implementation of the movement, attack and
action-state rules. The live board (battle.py) and the search (mcts.py) both
call it, so the planner always reasons with the rules that are executed.
"""

import logging
import random
from dataclasses import dataclass
from typing import List, Optional

from combat import CombatOutcome, resolve_combat
from hex_grid import Hex
from models import Action, ActionState, ActionType, SimUnit
from state import SimState, advance_turn_if_needed

logger = logging.getLogger(__name__)


@dataclass
class ActionResult:
    """What ``apply_action`` did. ``applied`` is False for stale actions."""
    applied: bool
    combat: Optional[CombatOutcome] = None
    turn_advanced: bool = False
    reason: str = ""


def attackable_enemies(state: SimState, position: Hex, faction: str, attack_range: int) -> List[SimUnit]:
    """Living enemies at a distance in (0, attack_range] from ``position``."""
    distances = state.grid.distances_from(position)
    enemies = []
    for unit in state.units:
        if not unit.alive or unit.faction == faction:
            continue
        d = distances.get(unit.position, -1)
        if 0 < d <= attack_range:
            enemies.append(unit)
    return enemies


def legal_actions(state: SimState, unit: SimUnit) -> List[Action]:
    """
    Enumerate the legal actions of one unit.

    Active/Ready units may attack any enemy in range. Active units may move
    anywhere within their movement range (friendly units block, enemy hexes
    are not destinations); a single-hex step that brings enemies into range
    becomes one MoveAndAttack per enemy instead of a plain Move. A unit with
    nothing else to do gets a Pass.

    Args:
        state: Current simulation state
        unit: Unit to enumerate for

    Returns:
        Attack-type actions first, then moves; empty for dead or Passive units
    """
    if not unit.alive or unit.state == ActionState.PASSIVE:
        return []

    attacks: List[Action] = []
    moves: List[Action] = []

    if unit.state in (ActionState.ACTIVE, ActionState.READY):
        for enemy in attackable_enemies(state, unit.position, unit.faction, unit.attack_range):
            attacks.append(Action.attack(unit.position, enemy.position))

    if unit.state == ActionState.ACTIVE:
        grid = state.grid
        friendly_blocked = {
            u.position for u in state.units
            if u.alive and u.faction == unit.faction and u.position != unit.position
        }
        distances = grid.distances_from(unit.position)
        for hex_pos in grid.movement_range(unit.position, unit.movement_range, friendly_blocked):
            occupant = state.unit_at(hex_pos)
            if occupant is not None and occupant.faction != unit.faction:
                continue  # Can't move onto enemy units

            if distances.get(hex_pos) == 1:
                targets = attackable_enemies(state, hex_pos, unit.faction, unit.attack_range)
                if targets:
                    for enemy in targets:
                        attacks.append(Action.move_and_attack(unit.position, hex_pos, enemy.position))
                    continue
            moves.append(Action.move(unit.position, hex_pos))

    actions = attacks + moves
    if not actions:
        actions.append(Action.pass_turn(unit.position))
    return actions


def legal_actions_for_faction(state: SimState, faction: str) -> List[Action]:
    """
    Aggregate legal actions over every living, non-Passive unit of a faction.

    Attack-type actions come before moves, and moves before passes. If the
    faction still has units but none can act, a single Pass for its first
    unit keeps the turn loop moving. A faction with no living units gets an
    empty list.
    """
    units = state.faction_units(faction)
    if not units:
        return []

    attacks: List[Action] = []
    moves: List[Action] = []
    passes: List[Action] = []
    for unit in units:
        if unit.state == ActionState.PASSIVE:
            continue
        for action in legal_actions(state, unit):
            if action.is_attack:
                attacks.append(action)
            elif action.is_move:
                moves.append(action)
            else:
                passes.append(action)

    actions = attacks + moves + passes
    if not actions:
        actions.append(Action.pass_turn(units[0].position))
    return actions


def _perform_move(state: SimState, unit: SimUnit, destination: Hex) -> Optional[str]:
    grid = state.grid
    if not grid.is_valid(destination):
        return f"destination {destination} is off the board"
    occupant = state.unit_at(destination)
    if occupant is not None and occupant is not unit:
        return f"destination {destination} is occupied"

    distance = grid.distance(unit.position, destination)
    unit.move_to(destination)

    if distance >= unit.movement_range:
        unit.state = ActionState.PASSIVE
    elif distance == 1:
        enemies = attackable_enemies(state, destination, unit.faction, unit.attack_range)
        unit.state = ActionState.READY if enemies else ActionState.PASSIVE
    else:
        unit.state = ActionState.PASSIVE
    return None


def _perform_attack(state: SimState, attacker: SimUnit, target: Hex,
                    rng: random.Random) -> Optional[CombatOutcome]:
    defender = state.unit_at(target)
    if defender is None or not defender.alive:
        return None

    distance = state.grid.distance(attacker.position, defender.position)
    outcome = resolve_combat(attacker, defender, distance, rng)
    state.remove_dead()

    # Attacker becomes passive after attacking
    if attacker.alive:
        attacker.state = ActionState.PASSIVE
    return outcome


def _reject(action: Action, reason: str) -> ActionResult:
    logger.warning("Ignoring %s: %s", action, reason)
    return ActionResult(applied=False, reason=reason)


def apply_action(state: SimState, action: Action, rng: random.Random) -> ActionResult:
    """
    Apply an action to the state in place.

    Stale actions (missing or dead unit, missing target, occupied
    destination) are logged and ignored rather than raised, so one bad edge
    cannot corrupt an in-progress search. After a successful action the turn
    rolls over if every living unit is Passive.

    Args:
        state: State to mutate
        action: Action to apply
        rng: Random source for combat rolls

    Returns:
        ActionResult describing the outcome
    """
    unit = state.unit_at(action.unit)
    if unit is None or not unit.alive:
        return _reject(action, f"no living unit at {action.unit}")

    combat = None
    if action.kind == ActionType.MOVE:
        if action.destination is None:
            return _reject(action, "move without destination")
        error = _perform_move(state, unit, action.destination)
        if error:
            return _reject(action, error)

    elif action.kind == ActionType.ATTACK:
        if action.target is None:
            return _reject(action, "attack without target")
        if state.unit_at(action.target) is None:
            return _reject(action, f"no target at {action.target}")
        combat = _perform_attack(state, unit, action.target, rng)

    elif action.kind == ActionType.MOVE_AND_ATTACK:
        if action.destination is None or action.target is None:
            return _reject(action, "move-and-attack needs destination and target")
        if state.unit_at(action.target) is None:
            return _reject(action, f"no target at {action.target}")
        error = _perform_move(state, unit, action.destination)
        if error:
            return _reject(action, error)
        combat = _perform_attack(state, unit, action.target, rng)

    else:
        unit.state = ActionState.PASSIVE

    turn_advanced = advance_turn_if_needed(state)
    return ActionResult(applied=True, combat=combat, turn_advanced=turn_advanced)
