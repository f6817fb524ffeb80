"""Tests for legal-action enumeration and apply_action transitions."""

from actions import apply_action, attackable_enemies, legal_actions, legal_actions_for_faction
from conftest import make_state, make_unit
from models import Action, ActionState, ActionType


class TestLegalActions:
    def test_far_apart_only_moves(self, duel_state):
        red = duel_state.unit_at((0, 0))
        actions = legal_actions(duel_state, red)
        assert actions
        assert all(a.kind == ActionType.MOVE for a in actions)
        assert {a.destination for a in actions} == set(duel_state.grid.movement_range((0, 0), 2))

    def test_attacks_come_first(self, adjacent_state):
        actions = legal_actions(adjacent_state, adjacent_state.unit_at((2, 2)))
        kinds = [a.is_attack for a in actions]
        assert kinds[0]
        assert kinds == sorted(kinds, reverse=True)
        assert Action.attack((2, 2), (3, 2)) in actions

    def test_one_step_into_range_is_move_and_attack(self, adjacent_state):
        actions = legal_actions(adjacent_state, adjacent_state.unit_at((2, 2)))
        combined = [a for a in actions if a.kind == ActionType.MOVE_AND_ATTACK]
        assert {a.destination for a in combined} == {(2, 1), (2, 3)}
        assert all(a.target == (3, 2) for a in combined)
        # Those hexes are never offered as plain moves
        assert Action.move((2, 2), (2, 1)) not in actions
        assert Action.move((2, 2), (1, 2)) in actions

    def test_two_step_into_range_is_plain_move(self, adjacent_state):
        actions = legal_actions(adjacent_state, adjacent_state.unit_at((2, 2)))
        assert Action.move((2, 2), (3, 1)) in actions
        assert not any(a.destination == (3, 1) and a.is_attack for a in actions)

    def test_enemy_hex_is_never_a_destination(self, adjacent_state):
        actions = legal_actions(adjacent_state, adjacent_state.unit_at((2, 2)))
        assert all(a.destination != (3, 2) for a in actions)

    def test_ready_unit_can_only_attack(self, adjacent_state):
        red = adjacent_state.unit_at((2, 2))
        red.state = ActionState.READY
        assert legal_actions(adjacent_state, red) == [Action.attack((2, 2), (3, 2))]

    def test_passive_and_dead_units_have_nothing(self, adjacent_state):
        red = adjacent_state.unit_at((2, 2))
        red.state = ActionState.PASSIVE
        assert legal_actions(adjacent_state, red) == []
        blue = adjacent_state.unit_at((3, 2))
        blue.take_damage(100)
        assert legal_actions(adjacent_state, blue) == []

    def test_friendlies_block_movement(self):
        state = make_state([
            make_unit((0, 0), "red"),
            make_unit((1, 0), "red"),
            make_unit((0, 1), "red"),
            make_unit((4, 4), "blue"),
        ])
        assert legal_actions(state, state.unit_at((0, 0))) == [Action.pass_turn((0, 0))]

    def test_immobile_unit_with_nothing_to_hit_passes(self):
        state = make_state([make_unit((0, 0), "red", movement_range=0), make_unit((4, 4), "blue")])
        assert legal_actions(state, state.unit_at((0, 0))) == [Action.pass_turn((0, 0))]

    def test_attackable_enemies_respects_range(self, duel_state):
        assert attackable_enemies(duel_state, (0, 0), "red", 2) == []
        assert [u.position for u in attackable_enemies(duel_state, (3, 3), "red", 2)] == [(4, 4)]


class TestLegalActionsForFaction:
    def test_no_units_is_empty(self, duel_state):
        assert legal_actions_for_faction(duel_state, "green") == []

    def test_ordering(self):
        state = make_state([
            make_unit((2, 2), "red"),
            make_unit((0, 4), "red", movement_range=0),
            make_unit((3, 2), "blue"),
        ])
        actions = legal_actions_for_faction(state, "red")
        kinds = [a.kind for a in actions]
        first_move = kinds.index(ActionType.MOVE)
        assert all(a.is_attack for a in actions[:first_move])
        assert kinds[-1] == ActionType.PASS
        assert actions[-1].unit == (0, 4)

    def test_skips_passive_units(self, adjacent_state):
        adjacent_state.units.append(make_unit((0, 0), "red"))
        adjacent_state.unit_at((2, 2)).state = ActionState.PASSIVE
        actions = legal_actions_for_faction(adjacent_state, "red")
        assert actions
        assert all(a.unit == (0, 0) for a in actions)

    def test_all_passive_falls_back_to_pass(self, adjacent_state):
        adjacent_state.unit_at((2, 2)).state = ActionState.PASSIVE
        assert legal_actions_for_faction(adjacent_state, "red") == [Action.pass_turn((2, 2))]


class TestApplyAction:
    def test_pass_affects_only_actor(self, duel_state, rng):
        result = apply_action(duel_state, Action.pass_turn((0, 0)), rng)
        assert result.applied
        assert not result.turn_advanced
        assert duel_state.unit_at((0, 0)).state == ActionState.PASSIVE
        assert duel_state.unit_at((4, 4)).state == ActionState.ACTIVE
        assert duel_state.turn_number == 1

    def test_rollover_increments_turn_once(self, duel_state, rng):
        apply_action(duel_state, Action.pass_turn((0, 0)), rng)
        result = apply_action(duel_state, Action.pass_turn((4, 4)), rng)
        assert result.turn_advanced
        assert duel_state.turn_number == 2
        assert all(u.state == ActionState.ACTIVE for u in duel_state.units)

    def test_full_move_ends_activity(self, duel_state, rng):
        apply_action(duel_state, Action.move((0, 0), (1, 1)), rng)
        red = duel_state.unit_at((1, 1))
        assert red is not None
        assert red.state == ActionState.PASSIVE

    def test_one_step_without_enemy_ends_activity(self, duel_state, rng):
        apply_action(duel_state, Action.move((0, 0), (1, 0)), rng)
        assert duel_state.unit_at((1, 0)).state == ActionState.PASSIVE

    def test_one_step_next_to_enemy_is_ready(self, rng):
        state = make_state([make_unit((1, 2), "red"), make_unit((3, 2), "blue")])
        apply_action(state, Action.move((1, 2), (2, 2)), rng)
        assert state.unit_at((2, 2)).state == ActionState.READY

    def test_attack_makes_attacker_passive(self, adjacent_state, rng):
        result = apply_action(adjacent_state, Action.attack((2, 2), (3, 2)), rng)
        assert result.applied
        assert result.combat is not None
        assert result.combat.counter_occurred
        red = adjacent_state.unit_at((2, 2))
        assert red.state == ActionState.PASSIVE
        assert red.health == 100 - result.combat.damage_to_attacker

    def test_move_and_attack(self, adjacent_state, rng):
        result = apply_action(adjacent_state, Action.move_and_attack((2, 2), (2, 1), (3, 2)), rng)
        assert result.applied
        assert result.combat is not None
        assert adjacent_state.unit_at((2, 2)) is None
        assert adjacent_state.unit_at((2, 1)).state == ActionState.PASSIVE

    def test_kill_removes_defender(self, rng):
        state = make_state([make_unit((2, 2), "red"), make_unit((3, 2), "blue", health=5)])
        result = apply_action(state, Action.attack((2, 2), (3, 2)), rng)
        assert result.combat.defender_eliminated
        assert state.unit_at((3, 2)) is None
        assert state.winner() == "red"

    def test_stale_unit_is_ignored(self, duel_state, rng):
        before = duel_state.to_snapshot()
        result = apply_action(duel_state, Action.move((2, 2), (2, 3)), rng)
        assert not result.applied
        assert result.reason
        assert duel_state.to_snapshot() == before

    def test_stale_target_is_ignored(self, duel_state, rng):
        result = apply_action(duel_state, Action.attack((0, 0), (1, 1)), rng)
        assert not result.applied
        assert duel_state.unit_at((0, 0)).state == ActionState.ACTIVE

    def test_occupied_destination_is_ignored(self, adjacent_state, rng):
        result = apply_action(adjacent_state, Action.move((2, 2), (3, 2)), rng)
        assert not result.applied
        assert adjacent_state.unit_at((2, 2)).faction == "red"
