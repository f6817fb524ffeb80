"""AI player that drives one faction of a Battle with MCTS."""

import logging
import queue
import threading
from typing import Callable, Optional

from actions import ActionResult
from battle import ActionValidationError, Battle
from evaluation import EvaluationWeights
from mcts import MonteCarloTreeSearch, SearchConfig
from models import Action, ActionState
from state import SimState, load_config

log = logging.getLogger("ai_player")


class AIPlayer:
    """
    Plans and executes moves for ``faction`` on a live battle.

    The search only ever sees a snapshot of the board, taken on the caller's
    thread, so it can run on a background thread while the caller keeps its
    own loop going. The decision comes back through a queue and is applied on
    the caller's thread with ``poll``. One search runs at a time: while a
    background decision is pending, the synchronous entry points refuse.
    """

    def __init__(self, battle: Battle, faction: str, config: Optional[SearchConfig] = None,
                 weights: Optional[EvaluationWeights] = None,
                 on_thinking_started: Optional[Callable[[], None]] = None,
                 on_action_selected: Optional[Callable[[Action], None]] = None,
                 on_thinking_completed: Optional[Callable[[], None]] = None):
        if config is None or weights is None:
            settings = load_config()
            config = config or SearchConfig.from_config(settings['mcts'])
            weights = weights or EvaluationWeights.from_config(settings['evaluation'])
        self.battle = battle
        self.faction = faction
        self.search = MonteCarloTreeSearch(faction, config=config, weights=weights)
        self.on_thinking_started = on_thinking_started
        self.on_action_selected = on_action_selected
        self.on_thinking_completed = on_thinking_completed
        self._decisions: "queue.Queue[Optional[Action]]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None

    def is_ai_turn(self) -> bool:
        """True when it is this faction's turn and it still has a unit to act with."""
        if self.battle.is_over():
            return False
        if self.battle.current_faction() != self.faction:
            return False
        return any(u.state != ActionState.PASSIVE for u in self.battle.state.faction_units(self.faction))

    @property
    def thinking(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def busy(self) -> bool:
        """A background search is running or its decision has not been polled yet."""
        return self._thread is not None

    def choose_action(self) -> Optional[Action]:
        """Run the search on a snapshot of the board (blocking). None while a background turn is pending."""
        if self.busy:
            log.warning(f"{self.faction} is already thinking; choose_action ignored")
            return None
        return self._search_from(self.battle.snapshot())

    def take_turn(self) -> Optional[ActionResult]:
        """Choose and execute one action synchronously. Returns None if nothing was done."""
        if self.busy or not self.is_ai_turn():
            return None
        action = self.choose_action()
        if action is None:
            return None
        return self.battle.execute(action)

    def start_turn(self) -> bool:
        """Start searching on a background thread. Returns False if not started."""
        if self.busy or not self.is_ai_turn():
            return False
        snapshot = self.battle.snapshot()
        self._thread = threading.Thread(target=self._think, args=(snapshot,), daemon=True,
                                        name=f"ai-{self.faction}")
        self._thread.start()
        return True

    def _search_from(self, snapshot: SimState) -> Optional[Action]:
        if self.on_thinking_started:
            self.on_thinking_started()
        action = self.search.find_best_action(snapshot)
        stats = self.search.last_stats
        log.info(f"{self.faction} chose {action} after {stats.iterations} iterations "
                 f"({stats.elapsed_ms:.0f} ms)")
        if self.on_thinking_completed:
            self.on_thinking_completed()
        if action is not None and self.on_action_selected:
            self.on_action_selected(action)
        return action

    def _think(self, snapshot: SimState) -> None:
        try:
            self._decisions.put(self._search_from(snapshot))
        except Exception as e:
            log.error(f"Search failed for {self.faction}: {e}")
            self._decisions.put(None)

    def poll(self, timeout: Optional[float] = None) -> Optional[ActionResult]:
        """
        Apply the background decision if one is ready.

        A decision that no longer fits the board (it changed while the
        search ran) is dropped with a warning.

        Args:
            timeout: Seconds to wait for the search (None = don't block)

        Returns:
            ActionResult once an action was executed, else None
        """
        try:
            if timeout is None:
                action = self._decisions.get_nowait()
            else:
                action = self._decisions.get(timeout=timeout)
        except queue.Empty:
            return None
        self._thread = None
        if action is None:
            return None
        try:
            return self.battle.execute(action)
        except ActionValidationError as e:
            log.warning(f"Dropping stale decision for {self.faction}: {e}")
            return None
