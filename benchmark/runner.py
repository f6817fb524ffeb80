"""
Batch arena runner for Hex Battle agents.

Plays N battles between two agents, alternating which faction each controls,
and summarizes win rates and game length with confidence intervals.

Usage:
    python -m benchmark.runner --help
"""

from __future__ import annotations

import argparse
import json
import logging
import random
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from battle import ActionValidationError, Battle, create_battle
from benchmark.baselines import BASELINE_AGENTS, Agent
from models import Action, ActionState
from state import load_config

log = logging.getLogger("arena")

MAX_TURNS = 50
Z_95 = 1.96


@dataclass
class MatchResult:
    """Result of a single arena battle."""

    seed: int
    agents: dict[str, str]  # faction -> agent name
    winner: str | None
    winner_agent: str | None
    turns: int
    actions: int
    invalid_actions: int = 0

    def to_dict(self) -> dict:
        return {
            "seed": self.seed,
            "agents": self.agents,
            "winner": self.winner,
            "winner_agent": self.winner_agent,
            "turns": self.turns,
            "actions": self.actions,
            "invalid_actions": self.invalid_actions,
        }


@dataclass
class ArenaSummary:
    games: int
    wins: dict[str, int] = field(default_factory=dict)
    draws: int = 0
    win_rate: dict[str, float] = field(default_factory=dict)
    win_rate_ci: dict[str, tuple[float, float]] = field(default_factory=dict)
    mean_turns: float = 0.0
    std_turns: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "games": self.games,
            "wins": self.wins,
            "draws": self.draws,
            "win_rate": self.win_rate,
            "win_rate_ci": {k: list(v) for k, v in self.win_rate_ci.items()},
            "mean_turns": self.mean_turns,
            "std_turns": self.std_turns,
        }


def _stand_down(battle: Battle, faction: str) -> None:
    for unit in battle.state.faction_units(faction):
        if unit.state != ActionState.PASSIVE:
            battle.execute(Action.pass_turn(unit.position))
            return


def play_match(battle: Battle, agents: dict[str, Agent], seed: int, max_turns: int = MAX_TURNS) -> MatchResult:
    """
    Play one battle to completion or the turn limit.

    Args:
        battle: Fresh battle
        agents: faction -> agent
        seed: Seed for the agents' random source
        max_turns: Turn limit (a draw when reached)

    Returns:
        MatchResult for the battle
    """
    rng = random.Random(seed)
    actions = 0
    invalid = 0
    while not battle.is_over() and battle.turn <= max_turns:
        faction = battle.current_faction()
        action = agents[faction].choose(battle, faction, rng)
        if action is None:
            _stand_down(battle, faction)
        else:
            try:
                battle.execute(action)
            except ActionValidationError as e:
                log.warning(f"{agents[faction].name} chose an illegal action: {e}")
                invalid += 1
                _stand_down(battle, faction)
        actions += 1

    winner = battle.winner()
    return MatchResult(
        seed=seed,
        agents={f: a.name for f, a in agents.items()},
        winner=winner,
        winner_agent=agents[winner].name if winner in agents else None,
        turns=battle.turn,
        actions=actions,
        invalid_actions=invalid,
    )


def run_arena(agent_a: Agent, agent_b: Agent, seeds: list[int],
              scenario: dict[str, Any] | None = None) -> list[MatchResult]:
    """Play one battle per seed, swapping sides on every other seed."""
    scenario = scenario or load_config()["scenario"]
    factions = []
    for unit in scenario["units"]:
        if unit["faction"] not in factions:
            factions.append(unit["faction"])
    if len(factions) != 2:
        raise ValueError(f"Arena scenarios need exactly two factions, got {factions}")

    results = []
    for i, seed in enumerate(seeds):
        first, second = (agent_a, agent_b) if i % 2 == 0 else (agent_b, agent_a)
        battle = create_battle(scenario["width"], scenario["height"], scenario["units"], seed=seed)
        result = play_match(battle, {factions[0]: first, factions[1]: second}, seed)
        log.info(f"seed={seed} winner={result.winner_agent} turns={result.turns}")
        results.append(result)
    return results


def summarize(results: list[MatchResult]) -> ArenaSummary:
    """Win counts, win rates with a 95% normal-approximation interval, and turn statistics."""
    summary = ArenaSummary(games=len(results))
    if not results:
        return summary

    names = sorted({name for r in results for name in r.agents.values()})
    winners = np.array([r.winner_agent or "" for r in results])
    n = len(results)
    for name in names:
        wins = int(np.sum(winners == name))
        p = wins / n
        half_width = Z_95 * np.sqrt(p * (1 - p) / n)
        summary.wins[name] = wins
        summary.win_rate[name] = p
        summary.win_rate_ci[name] = (float(max(0.0, p - half_width)), float(min(1.0, p + half_width)))
    summary.draws = int(np.sum(winners == ""))

    turns = np.array([r.turns for r in results], dtype=float)
    summary.mean_turns = float(np.mean(turns))
    summary.std_turns = float(np.std(turns))
    return summary


def main():
    parser = argparse.ArgumentParser(description="Play agents against each other")
    parser.add_argument("agent_a", choices=sorted(BASELINE_AGENTS))
    parser.add_argument("agent_b", choices=sorted(BASELINE_AGENTS))
    parser.add_argument("--games", type=int, default=20)
    parser.add_argument("--output", default=None, help="Write results JSON here")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(name)s] %(message)s", datefmt="%H:%M:%S")

    results = run_arena(BASELINE_AGENTS[args.agent_a](), BASELINE_AGENTS[args.agent_b](),
                        list(range(args.games)))
    summary = summarize(results)
    report = {"summary": summary.to_dict(), "games": [r.to_dict() for r in results]}
    print(json.dumps(report["summary"], indent=2))
    if args.output:
        with open(args.output, "w") as f:
            json.dump(report, f, indent=2)


if __name__ == "__main__":
    main()
