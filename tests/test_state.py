import json

import pytest

from conftest import DUEL_SNAPSHOT, make_state, make_unit
from hex_grid import InvalidHexError
from models import ActionState
from state import (
    DEFAULT_CONFIG,
    SimState,
    SnapshotError,
    advance_turn_if_needed,
    faction_to_act,
    load_config,
)


def _unit_tuples(state):
    return {
        (u.position, u.health, u.max_health, u.faction, u.movement_range, u.attack_range, u.state)
        for u in state.units
    }


class TestClone:
    def test_clone_is_independent(self, duel_state):
        copy = duel_state.clone()
        copy.units[0].take_damage(40)
        copy.units[1].move_to((3, 3))
        copy.turn_number = 9
        assert duel_state.units[0].health == 100
        assert duel_state.units[1].position == (4, 4)
        assert duel_state.turn_number == 1

    def test_clone_preserves_everything(self, duel_state):
        copy = duel_state.clone()
        assert _unit_tuples(copy) == _unit_tuples(duel_state)
        assert (copy.width, copy.height) == (5, 5)


class TestSnapshot:
    def test_from_snapshot(self, duel_state):
        assert len(duel_state.units) == 2
        red = duel_state.unit_at((0, 0))
        assert red.faction == "red"
        assert red.attack_range == 2
        assert duel_state.unit_at((4, 4)).health == 75

    def test_round_trip(self):
        state = make_state([
            make_unit((0, 0), "red", health=40, movement_range=3, attack_range=2),
            make_unit((2, 1), "red", state=ActionState.PASSIVE),
            make_unit((4, 4), "blue", health=90, state=ActionState.READY),
        ], turn_number=4)
        restored = SimState.from_snapshot(json.loads(json.dumps(state.to_snapshot())))
        assert _unit_tuples(restored) == _unit_tuples(state)
        assert restored.turn_number == 4

    def test_dead_units_dropped(self):
        data = json.loads(json.dumps(DUEL_SNAPSHOT))
        data["units"][1]["health"] = 0
        state = SimState.from_snapshot(data)
        assert len(state.units) == 1
        assert state.winner() == "red"

    def test_list_positions_accepted(self):
        state = SimState.from_snapshot({
            "width": 3, "height": 3,
            "units": [{"position": [1, 2], "health": 50, "max_health": 100, "faction": "red"}],
        })
        assert state.unit_at((1, 2)).health == 50

    def test_out_of_bounds_unit(self):
        with pytest.raises(InvalidHexError):
            SimState.from_snapshot({
                "width": 3, "height": 3,
                "units": [{"position": [3, 0], "health": 50, "max_health": 100, "faction": "red"}],
            })

    def test_duplicate_position(self):
        unit = {"position": [1, 1], "health": 50, "max_health": 100, "faction": "red"}
        with pytest.raises(SnapshotError):
            SimState.from_snapshot({"width": 3, "height": 3, "units": [unit, dict(unit, faction="blue")]})

    def test_malformed_snapshot(self):
        with pytest.raises(SnapshotError):
            SimState.from_snapshot({"height": 3})
        with pytest.raises(SnapshotError):
            SimState.from_snapshot({"width": 3, "height": 3, "units": [{"position": [0, 0]}]})
        with pytest.raises(SnapshotError):
            SimState.from_snapshot({"width": 0, "height": 3})

    def test_unknown_state_value(self):
        with pytest.raises(SnapshotError):
            SimState.from_snapshot({
                "width": 3, "height": 3,
                "units": [{"position": [0, 0], "faction": "red", "state": "Sleeping"}],
            })


class TestQueries:
    def test_factions_in_order_of_appearance(self):
        state = make_state([make_unit((0, 0), "blue"), make_unit((1, 0), "red"), make_unit((2, 0), "blue")])
        assert state.factions() == ["blue", "red"]

    def test_game_over_and_winner(self, duel_state):
        assert not duel_state.is_game_over()
        assert duel_state.winner() is None
        duel_state.unit_at((4, 4)).take_damage(100)
        assert duel_state.is_game_over()
        assert duel_state.winner() == "red"

    def test_empty_board_is_over_without_winner(self):
        state = make_state([])
        assert state.is_game_over()
        assert state.winner() is None

    def test_add_unit_rejects_occupied(self, duel_state):
        with pytest.raises(SnapshotError):
            duel_state.add_unit(make_unit((0, 0), "blue"))

    def test_remove_dead(self, duel_state):
        duel_state.unit_at((4, 4)).take_damage(100)
        dead = duel_state.remove_dead()
        assert [u.faction for u in dead] == ["blue"]
        assert len(duel_state.units) == 1


class TestTurnOrder:
    def test_first_faction_with_active_unit(self, duel_state):
        assert faction_to_act(duel_state) == "red"
        duel_state.unit_at((0, 0)).state = ActionState.PASSIVE
        assert faction_to_act(duel_state) == "blue"

    def test_ready_unit_still_acts(self, duel_state):
        duel_state.unit_at((0, 0)).state = ActionState.READY
        assert faction_to_act(duel_state) == "red"

    def test_lone_faction_acts(self):
        state = make_state([make_unit((0, 0), "red", state=ActionState.PASSIVE)])
        assert faction_to_act(state) == "red"

    def test_empty_board_returns_default(self):
        assert faction_to_act(make_state([]), default="red") == "red"

    def test_all_passive_defaults_to_first_faction(self, duel_state):
        for unit in duel_state.units:
            unit.state = ActionState.PASSIVE
        assert faction_to_act(duel_state) == "red"

    def test_rollover(self, duel_state):
        for unit in duel_state.units:
            unit.state = ActionState.PASSIVE
        assert advance_turn_if_needed(duel_state)
        assert duel_state.turn_number == 2
        assert all(u.state == ActionState.ACTIVE for u in duel_state.units)

    def test_no_rollover_while_someone_can_act(self, duel_state):
        duel_state.unit_at((0, 0)).state = ActionState.PASSIVE
        assert not advance_turn_if_needed(duel_state)
        assert duel_state.turn_number == 1


class TestConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(str(tmp_path / "nope.json")) == DEFAULT_CONFIG

    def test_invalid_json_gives_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        assert load_config(str(path)) == DEFAULT_CONFIG

    def test_sections_are_merged(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"mcts": {"max_iterations": 10}, "evaluation": {"unit_count": 1.0}}))
        config = load_config(str(path))
        assert config["mcts"]["max_iterations"] == 10
        assert config["mcts"]["exploration_constant"] == 1.41
        assert config["evaluation"] == {"unit_count": 1.0}
        assert config["scenario"]["width"] == 5

    def test_defaults_not_mutated(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"mcts": {"max_iterations": 10}}))
        load_config(str(path))
        assert DEFAULT_CONFIG["mcts"]["max_iterations"] == 5000

    def test_shipped_config_loads(self):
        config = load_config()
        assert set(config) >= {"mcts", "evaluation", "scenario"}
        assert len(config["scenario"]["units"]) == 2
