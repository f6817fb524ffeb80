"""
Baseline agent ladder for calibrating the planner.

Three agents at increasing sophistication:

1. RandomAgent: uniformly random legal action -> absolute floor
2. GreedyAgent: one-ply lookahead on the evaluator -> heuristic floor
3. MCTSAgent: the full tree search

An MCTSAgent that cannot beat GreedyAgent is not getting value from its
rollouts.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod

from actions import apply_action
from battle import Battle
from evaluation import EvaluationWeights, evaluate_state
from mcts import MonteCarloTreeSearch, SearchConfig
from models import Action


class Agent(ABC):
    """Chooses one action for a faction on a live battle."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def choose(self, battle: Battle, faction: str, rng: random.Random) -> Action | None:
        ...


class RandomAgent(Agent):
    """Any legal action, uniformly."""

    @property
    def name(self) -> str:
        return "baseline_random"

    def choose(self, battle: Battle, faction: str, rng: random.Random) -> Action | None:
        actions = battle.faction_actions(faction)
        return rng.choice(actions) if actions else None


class GreedyAgent(Agent):
    """Applies each legal action to a copy of the board and keeps the best-scoring one.

    Combat outcomes are averaged over ``samples`` rolls per action.
    """

    def __init__(self, samples: int = 3, weights: EvaluationWeights | None = None):
        self.samples = samples
        self.weights = weights

    @property
    def name(self) -> str:
        return "baseline_greedy"

    def choose(self, battle: Battle, faction: str, rng: random.Random) -> Action | None:
        actions = battle.faction_actions(faction)
        if not actions:
            return None

        best_action = None
        best_score = float("-inf")
        snapshot = battle.snapshot()
        for action in actions:
            rolls = self.samples if action.is_attack else 1
            total = 0.0
            for _ in range(rolls):
                trial = snapshot.clone()
                apply_action(trial, action, rng)
                total += evaluate_state(trial, faction, self.weights)
            score = total / rolls
            if score > best_score:
                best_score = score
                best_action = action
        return best_action


class MCTSAgent(Agent):
    """Tree search with a fixed per-move budget."""

    def __init__(self, config: SearchConfig | None = None, weights: EvaluationWeights | None = None):
        self.config = config or SearchConfig(max_iterations=300, time_budget_ms=500)
        self.weights = weights

    @property
    def name(self) -> str:
        return f"mcts_{self.config.max_iterations}"

    def choose(self, battle: Battle, faction: str, rng: random.Random) -> Action | None:
        config = SearchConfig(**{**self.config.__dict__, "seed": rng.randrange(2**31)})
        search = MonteCarloTreeSearch(faction, config=config, weights=self.weights)
        return search.find_best_action(battle.snapshot())


BASELINE_AGENTS = {
    "random": RandomAgent,
    "greedy": GreedyAgent,
    "mcts": MCTSAgent,
}
