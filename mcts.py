"""
Monte Carlo Tree Search planner for Hex Battle.

Each iteration runs four phases on a tree of simulation states:

1. Selection: descend from the root by UCB1 while nodes are fully expanded.
   Attack edges get a wider exploration term.
2. Expansion: add one child for a random untried action, attacks first.
3. Simulation: play a biased random rollout from the new child and blend its
   squashed score with the child's own evaluation.
4. Backpropagation: push the value back up to the root, each node scored for
   the faction that chose it.

The loop stops when the wall-clock budget or the iteration cap is reached,
and the most-visited root child is returned. Nodes live in a flat list owned
by the search and refer to each other by index; the whole tree is dropped
once the decision is made.
"""

from __future__ import annotations

import logging
import math
import random
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from actions import apply_action, legal_actions_for_faction
from evaluation import EvaluationWeights, evaluate_state
from models import Action, ActionType
from state import SimState, faction_to_act

logger = logging.getLogger(__name__)


@dataclass
class SearchConfig:
    """Tunables for the search and its rollout policy."""

    exploration_constant: float = 1.41
    max_iterations: int = 5000
    time_budget_ms: float = 1500
    rollout_move_cap: int = 50
    attack_preference: float = 0.9    # Chance to attack when any attack exists
    best_attack_share: float = 0.8    # Chance to take the best-scored attack over a random one
    best_move_share: float = 0.7      # Same for moves
    kill_health_threshold: int = 35   # Targets at or below this are treated as killable
    weak_enemy_threshold: int = 30
    score_scale: float = 2000.0       # tanh(score / score_scale) in backpropagation
    attack_exploration_weight: float = 3.0  # UCB1 exploration multiplier on attack edges
    leaf_value_weight: float = 0.3    # Share of the expanded state's own evaluation in each sample
    seed: Optional[int] = None

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]], **overrides: Any) -> SearchConfig:
        """Build from the ``mcts`` section of config.json plus keyword overrides."""
        values = dict(config or {})
        values.update({k: v for k, v in overrides.items() if v is not None})
        known = set(cls.__dataclass_fields__)
        return cls(**{k: v for k, v in values.items() if k in known})


@dataclass
class SearchNode:
    state: SimState
    faction: Optional[str]  # Faction to move at this node
    action: Optional[Action] = None  # Action that produced this node from its parent
    parent: Optional[int] = None
    children: List[int] = field(default_factory=list)
    untried_actions: List[Action] = field(default_factory=list)
    visits: int = 0
    total_score: float = 0.0

    @property
    def mean_score(self) -> float:
        return self.total_score / self.visits if self.visits > 0 else 0.0

    def is_fully_expanded(self) -> bool:
        return not self.untried_actions

    def is_terminal(self) -> bool:
        return self.state.is_game_over()


@dataclass
class SearchStats:
    iterations: int = 0
    elapsed_ms: float = 0.0
    root_visits: int = 0
    child_visits: Dict[str, int] = field(default_factory=dict)
    stopped_by: str = ""


class MonteCarloTreeSearch:
    """
    Picks an action for ``faction`` from a SimState.

    One ``random.Random`` per instance feeds every random draw (damage rolls,
    expansion picks, rollout policy), so a seeded search is reproducible for a
    fixed iteration budget.
    """

    def __init__(self, faction: str, config: Optional[SearchConfig] = None,
                 weights: Optional[EvaluationWeights] = None):
        self.faction = faction
        self.config = config or SearchConfig()
        self.weights = weights
        self.rng = random.Random(self.config.seed)
        self.nodes: List[SearchNode] = []
        self.last_stats = SearchStats()

    # ------------------------------------------------------------------
    # Decision
    # ------------------------------------------------------------------

    def find_best_action(self, initial_state: SimState, time_budget_ms: Optional[float] = None,
                         max_iterations: Optional[int] = None) -> Optional[Action]:
        """
        Search from ``initial_state`` and return the chosen action.

        Args:
            initial_state: Board snapshot; never mutated
            time_budget_ms: Overrides config.time_budget_ms
            max_iterations: Overrides config.max_iterations

        Returns:
            The most-visited root action, a fallback if nothing was expanded,
            or None when the game is already over or the faction has no units
        """
        budget_ms = self.config.time_budget_ms if time_budget_ms is None else time_budget_ms
        iteration_cap = self.config.max_iterations if max_iterations is None else max_iterations
        self.last_stats = SearchStats()

        if initial_state.is_game_over():
            self.last_stats.stopped_by = "terminal"
            return None

        root_state = initial_state.clone()
        root = SearchNode(
            state=root_state,
            faction=self.faction,
            untried_actions=legal_actions_for_faction(root_state, self.faction),
        )
        self.nodes = [root]
        if not root.untried_actions:
            self.last_stats.stopped_by = "no_actions"
            return None

        start = time.perf_counter()
        deadline = start + budget_ms / 1000.0
        iterations = 0
        stopped_by = "iterations"
        while iterations < iteration_cap:
            if time.perf_counter() >= deadline:
                stopped_by = "time"
                break
            selected = self._select(0)
            expanded = self._expand(selected)
            self._backpropagate(expanded, self._sample_value(expanded))
            iterations += 1

        self.last_stats = SearchStats(
            iterations=iterations,
            elapsed_ms=(time.perf_counter() - start) * 1000.0,
            root_visits=root.visits,
            child_visits={str(self.nodes[c].action): self.nodes[c].visits for c in root.children},
            stopped_by=stopped_by,
        )
        logger.debug("MCTS for %s: %d iterations in %.1f ms (stopped by %s)",
                     self.faction, iterations, self.last_stats.elapsed_ms, stopped_by)
        return self._decide(root, initial_state)

    def _decide(self, root: SearchNode, initial_state: SimState) -> Optional[Action]:
        if root.children:
            best = max(root.children, key=lambda c: self.nodes[c].visits)
            return self.nodes[best].action

        # Nothing expanded (zero budget): fall back to any legal action
        if root.untried_actions:
            return self.rng.choice(root.untried_actions)
        units = initial_state.faction_units(self.faction)
        if units:
            return Action.pass_turn(units[0].position)
        return None

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def ucb1(self, index: int) -> float:
        """
        UCB1 value of a node as seen by the faction that chose its action.

        Attack edges carry ``attack_exploration_weight`` on the exploration
        term, so with similar means they receive about weight**2 times the
        visits of a move and stay the most-visited edges unless a move's
        mean is clearly better.
        """
        node = self.nodes[index]
        if node.visits == 0:
            return math.inf
        parent_visits = self.nodes[node.parent].visits if node.parent is not None else node.visits
        exploration = self.config.exploration_constant * math.sqrt(math.log(parent_visits) / node.visits)
        if node.action is not None and node.action.is_attack:
            exploration *= self.config.attack_exploration_weight
        return node.mean_score + exploration

    def _select(self, index: int) -> int:
        node = self.nodes[index]
        while not node.is_terminal() and node.is_fully_expanded() and node.children:
            index = max(node.children, key=self.ucb1)
            node = self.nodes[index]
        return index

    # ------------------------------------------------------------------
    # Expansion
    # ------------------------------------------------------------------

    def _expand(self, index: int) -> int:
        node = self.nodes[index]
        if node.is_terminal():
            return index

        if node.untried_actions:
            action = node.untried_actions.pop(self._next_untried(node.untried_actions))
            child_state = node.state.clone()
            apply_action(child_state, action, self.rng)
            next_faction = faction_to_act(child_state, default=self.faction)
            child = SearchNode(
                state=child_state,
                faction=next_faction,
                action=action,
                parent=index,
                untried_actions=legal_actions_for_faction(child_state, next_faction),
            )
            self.nodes.append(child)
            child_index = len(self.nodes) - 1
            node.children.append(child_index)
            return child_index

        if node.children:
            return self.rng.choice(node.children)
        return index

    def _next_untried(self, untried: List[Action]) -> int:
        """Index of a random untried attack-type action, or of any untried action once none is left."""
        attacks = [i for i, a in enumerate(untried) if a.is_attack]
        if attacks:
            return self.rng.choice(attacks)
        return self.rng.randrange(len(untried))

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------

    def normalize(self, score: float) -> float:
        return math.tanh(score / self.config.score_scale)

    def _sample_value(self, index: int) -> float:
        """Blend of a rollout from the node and the node's own evaluation, in [-1, 1] for the AI faction."""
        state = self.nodes[index].state
        rollout = self.normalize(self._simulate(state))
        weight = self.config.leaf_value_weight
        if weight <= 0:
            return rollout
        leaf = self.normalize(evaluate_state(state, self.faction, self.weights))
        return (1.0 - weight) * rollout + weight * leaf

    def _simulate(self, state: SimState) -> float:
        sim_state = state.clone()
        moves = 0
        while not sim_state.is_game_over() and moves < self.config.rollout_move_cap:
            current = faction_to_act(sim_state, default=self.faction)
            actions = legal_actions_for_faction(sim_state, current)
            if not actions:
                break
            action = self.choose_rollout_action(sim_state, actions, current)
            apply_action(sim_state, action, self.rng)
            moves += 1
        return evaluate_state(sim_state, self.faction, self.weights)

    def choose_rollout_action(self, state: SimState, actions: List[Action], faction: str) -> Action:
        """
        Biased rollout policy.

        Attacks are taken most of the time when available, favouring likely
        kills, wounded targets and move-then-attack. Otherwise moves that close
        distance and bring enemies into range are favoured. Each preference
        has a random fallback for variety.
        """
        cfg = self.config
        attacks = [a for a in actions if a.is_attack]
        moves = [a for a in actions if a.kind == ActionType.MOVE]

        if attacks and self.rng.random() < cfg.attack_preference:
            if self.rng.random() < cfg.best_attack_share:
                return max(attacks, key=lambda a: self._score_attack(state, a))
            return self.rng.choice(attacks)

        enemies = state.enemy_units(faction)
        if moves and enemies:
            if self.rng.random() < cfg.best_move_share:
                return max(moves, key=lambda a: self._score_move(state, a, enemies))

        return self.rng.choice(actions)

    def _score_attack(self, state: SimState, action: Action) -> float:
        target = state.unit_at(action.target)
        if target is None:
            return -math.inf
        score = 0.0
        if target.health <= self.config.kill_health_threshold:
            score += 1000  # Likely killing blow
        score += target.max_health - target.health
        if action.kind == ActionType.MOVE_AND_ATTACK:
            score += 50
        return score

    def _score_move(self, state: SimState, action: Action, enemies: list) -> float:
        unit = state.unit_at(action.unit)
        distances = state.grid.distances_from(action.destination)
        score = -10.0 * min(distances.get(e.position, 0) for e in enemies)
        if unit is not None:
            for enemy in enemies:
                if distances.get(enemy.position, 0) <= unit.attack_range:
                    score += 100  # Can attack next turn
                    if enemy.health <= self.config.weak_enemy_threshold:
                        score += 100
        return score

    # ------------------------------------------------------------------
    # Backpropagation
    # ------------------------------------------------------------------

    def _backpropagate(self, index: Optional[int], value: float) -> None:
        """
        Add one sample to every node from ``index`` up to the root.

        ``value`` is from the AI faction's point of view. Each node accumulates
        it from the point of view of the faction that chose the node's action
        (the parent's faction to move), negated when that is the opponent, so
        a parent's UCB1 ranks its children by its own mover's outcome.
        """
        while index is not None:
            node = self.nodes[index]
            mover = self.nodes[node.parent].faction if node.parent is not None else node.faction
            node.visits += 1
            node.total_score += value if mover == self.faction else -value
            index = node.parent
