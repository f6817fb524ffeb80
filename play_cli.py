"""
CLI play mode for Hex Battle.

Human vs AI (or AI vs AI) on a small offset hex grid. ASCII renderer,
action entry, combat display, full game loop.

Usage: python play_cli.py [--watch] [--seed N] [--think-ms MS]
"""

import argparse
import logging
import random
from typing import List, Optional

from ai_player import AIPlayer
from battle import ActionValidationError, Battle, default_battle
from mcts import SearchConfig
from models import Action, ActionState
from state import load_config

MAX_TURNS = 50

STATE_MARK = {
    ActionState.ACTIVE: "",
    ActionState.READY: "'",
    ActionState.PASSIVE: ".",
}


# ---------------------------------------------------------------------------
# ASCII Hex Renderer
# ---------------------------------------------------------------------------


def render_board(battle: Battle) -> str:
    """Render the board; odd rows are shifted right like the grid itself."""
    lines = [""]
    lines.append("      " + "".join(f"{q:^6}" for q in range(battle.width)))
    for r in range(battle.height):
        offset = "   " if r % 2 == 1 else ""
        cells = []
        for q in range(battle.width):
            unit = battle.get_unit((q, r))
            if unit is None:
                cells.append(f"{'.':^6}")
            else:
                label = f"{unit.faction[0].upper()}{unit.health}{STATE_MARK[unit.state]}"
                cells.append(f"{label:^6}")
        lines.append(f"  {r:>2}  {offset}" + "".join(cells))
    lines.append("")
    return "\n".join(lines)


def show_status(battle: Battle) -> None:
    print(render_board(battle))
    print(f"  Turn {battle.turn} - {battle.current_faction()} to act")
    for unit in battle.units:
        print(f"    {unit}")


# ---------------------------------------------------------------------------
# Human input
# ---------------------------------------------------------------------------


def list_actions(actions: List[Action]) -> None:
    for i, action in enumerate(actions, 1):
        print(f"  {i:>3}. {action}")


def get_human_action(battle: Battle, faction: str) -> Optional[Action]:
    """Prompt until the player picks a legal action. Returns None on quit."""
    actions = battle.faction_actions(faction)
    for unit in battle.state.faction_units(faction):
        stand_down = Action.pass_turn(unit.position)
        if unit.state != ActionState.PASSIVE and stand_down not in actions:
            actions.append(stand_down)
    print(f"\n  Your actions ({faction}):")
    list_actions(actions)
    while True:
        raw = input("Pick (number, or q to quit): ").strip().lower()
        if raw in ("q", "quit", "exit"):
            return None
        try:
            idx = int(raw) - 1
            if 0 <= idx < len(actions):
                return actions[idx]
        except ValueError:
            pass
        print(f"  Enter 1-{len(actions)}")


def show_result(battle: Battle, start: int) -> None:
    """Print the log entries added since index ``start``."""
    for entry in battle.log[start:]:
        print(f"  [turn {entry['turn']}] {entry['event']}")


# ---------------------------------------------------------------------------
# Main Game Loop
# ---------------------------------------------------------------------------


def play(battle: Battle, players: dict, human: Optional[str] = None, verbose: bool = True) -> Optional[str]:
    """
    Run a battle to completion.

    Args:
        battle: Battle to play
        players: faction -> AIPlayer for AI-controlled factions
        human: Faction controlled from the keyboard, if any
        verbose: Print the board after every action

    Returns:
        Winning faction, or None if the turn limit was hit or the human quit
    """
    while not battle.is_over() and battle.turn <= MAX_TURNS:
        faction = battle.current_faction()
        if verbose:
            show_status(battle)
        log_start = len(battle.log)

        if faction == human:
            action = get_human_action(battle, faction)
            if action is None:
                return None
            try:
                battle.execute(action)
            except ActionValidationError as e:
                print(f"  ERROR: {e}")
                continue
        else:
            if players[faction].take_turn() is None:
                # No move came back from the search; end this faction's activity
                for unit in battle.state.faction_units(faction):
                    if unit.state != ActionState.PASSIVE:
                        battle.execute(Action.pass_turn(unit.position))
                        break

        if verbose:
            show_result(battle, log_start)

    return battle.winner()


def main():
    parser = argparse.ArgumentParser(description="Play Hex Battle in the terminal")
    parser.add_argument("--watch", action="store_true", help="AI vs AI instead of human vs AI")
    parser.add_argument("--seed", type=int, default=None, help="Seed for combat and search")
    parser.add_argument("--think-ms", type=float, default=None, help="AI thinking time per action")
    parser.add_argument("--verbose", action="store_true", help="Show search logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    print("=" * 50)
    print("  HEX BATTLE  -  CLI Play Mode")
    print("=" * 50)

    seed = args.seed if args.seed is not None else random.randint(0, 99999)
    print(f"\nSeed: {seed}")

    config = load_config()
    battle = default_battle(seed=seed, config=config)
    ai_faction = config['scenario'].get('ai_faction', 'blue')
    factions = battle.state.factions()
    human = None if args.watch else next((f for f in factions if f != ai_faction), None)

    players = {}
    for i, faction in enumerate(factions):
        if faction == human:
            continue
        search_config = SearchConfig.from_config(
            config['mcts'], time_budget_ms=args.think_ms, seed=seed + i,
        )
        players[faction] = AIPlayer(battle, faction, config=search_config)

    winner = play(battle, players, human=human)

    # --- End ---
    print("\n" + "=" * 50)
    if winner is None:
        print("  Battle ended without a winner.")
    elif winner == human:
        print("  VICTORY! Your forces hold the field.")
    elif human is not None:
        print(f"  DEFEAT. {winner} wins.")
    else:
        print(f"  {winner} wins.")
    print(f"  Final turn: {battle.turn}")
    print("=" * 50)


if __name__ == "__main__":
    main()
