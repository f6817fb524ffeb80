"""
Heuristic state evaluation for Hex Battle.

Scores a state from one faction's point of view (higher is better). The
score is the rollout payoff of the search, so the coefficients shape what the
planner considers a good position. They live in ``EvaluationWeights`` and can
be overridden from the ``evaluation`` section of config.json.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, List, Optional

from actions import attackable_enemies
from hex_grid import Hex
from models import SimUnit
from state import SimState


@dataclass
class EvaluationWeights:
    terminal_score: float = 10000.0
    unit_count: float = 500.0
    total_health: float = 10.0
    health_fraction: float = 300.0
    attackable_enemy: float = 150.0       # Per enemy a friendly unit can hit right now
    finishing_blow: float = 120.0         # Scaled by how wounded the attackable enemy is
    threat_penalty: float = 40.0          # Per enemy threatening a unit that has nothing to hit
    critical_health_fraction: float = 0.25
    cornered_free_neighbors: int = 2      # At most this many open neighbors counts as cornered
    retreat_bonus: float = 15.0           # Per hex of distance for critical, cornered units
    focus_fire: float = 60.0              # Per extra friendly threatening the same enemy
    average_distance: float = 5.0

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]]) -> "EvaluationWeights":
        """Build weights from a config section, ignoring unknown keys."""
        if not config:
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in config.items() if k in known})


DEFAULT_WEIGHTS = EvaluationWeights()


def _nearest_enemy_distance(state: SimState, unit: SimUnit, enemies: List[SimUnit]) -> int:
    distances = state.grid.distances_from(unit.position)
    return min(distances.get(e.position, 0) for e in enemies)


def _threat_count(state: SimState, unit: SimUnit, enemies: List[SimUnit]) -> int:
    """Enemies that could move and strike ``unit`` next turn."""
    distances = state.grid.distances_from(unit.position)
    return sum(
        1 for e in enemies
        if 0 < distances.get(e.position, -1) <= e.movement_range + e.attack_range
    )


def evaluate_state(state: SimState, faction: str, weights: Optional[EvaluationWeights] = None) -> float:
    """
    Score a state for ``faction``.

    Args:
        state: State to score
        faction: Perspective faction
        weights: Coefficient table (default: DEFAULT_WEIGHTS)

    Returns:
        ±terminal_score once one side is wiped out, else the weighted sum of
        material, health, offensive positioning, threat, retreat, focus-fire
        and distance terms
    """
    w = weights or DEFAULT_WEIGHTS

    if state.is_game_over():
        return w.terminal_score if state.winner() == faction else -w.terminal_score

    friendly = state.faction_units(faction)
    enemies = state.enemy_units(faction)
    if not friendly:
        return -w.terminal_score
    if not enemies:
        return w.terminal_score

    score = 0.0

    # Material
    score += (len(friendly) - len(enemies)) * w.unit_count
    score += (sum(u.health for u in friendly) - sum(u.health for u in enemies)) * w.total_health
    friendly_fraction = sum(u.health_fraction for u in friendly) / len(friendly)
    enemy_fraction = sum(u.health_fraction for u in enemies) / len(enemies)
    score += (friendly_fraction - enemy_fraction) * w.health_fraction

    occupied = state.occupied_positions()
    grid = state.grid
    threatened_by: Dict[Hex, int] = {}
    total_distance = 0

    for unit in friendly:
        targets = attackable_enemies(state, unit.position, unit.faction, unit.attack_range)
        if targets:
            for enemy in targets:
                score += w.attackable_enemy
                # Finishing blows: the lower the target's health, the better
                score += (1.0 - enemy.health_fraction) * w.finishing_blow
                threatened_by[enemy.position] = threatened_by.get(enemy.position, 0) + 1
        else:
            score -= _threat_count(state, unit, enemies) * w.threat_penalty

        nearest = _nearest_enemy_distance(state, unit, enemies)
        total_distance += nearest

        if unit.health_fraction <= w.critical_health_fraction:
            free = grid.free_neighbors(unit.position, occupied)
            if len(free) <= w.cornered_free_neighbors:
                score += nearest * w.retreat_bonus

    for count in threatened_by.values():
        if count > 1:
            score += (count - 1) * w.focus_fire

    score -= (total_distance / len(friendly)) * w.average_distance
    return score
