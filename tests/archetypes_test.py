import pytest
from truco_ai.archetypes import (
    archetype_modifier,
    calculate_modified_ev,
    move_modifier,
    parse_archetype,
)
from truco_ai.reasons import AiMove, ReasonCode
from truco_core.game_state import Action, ActionType, Archetype


class TestParseArchetype:
    def test_case_insensitive(self):
        assert parse_archetype("aggressive") is Archetype.AGGRESSIVE
        assert parse_archetype("Deceptive") is Archetype.DECEPTIVE
        assert parse_archetype(Archetype.CAUTIOUS) is Archetype.CAUTIOUS

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unrecognized archetype: reckless"):
            parse_archetype("reckless")


class TestArchetypeModifier:
    def test_reason_lookup(self):
        assert archetype_modifier(Archetype.DECEPTIVE, ReasonCode.ACCEPT_TRUCO_TRAP, ActionType.ACCEPT) == 5.0

    def test_action_type_fallback(self):
        modifier = archetype_modifier(
            Archetype.AGGRESSIVE, ReasonCode.CALL_REAL_ENVIDO_VALUE, ActionType.CALL_REAL_ENVIDO
        )
        assert modifier == 4.0

    def test_reason_takes_precedence(self):
        modifier = archetype_modifier(
            Archetype.CAUTIOUS, ReasonCode.CALL_TRUCO_BLUFF, ActionType.CALL_TRUCO
        )
        assert modifier == 0.1

    def test_default_is_neutral(self):
        assert archetype_modifier(Archetype.BALANCED, ReasonCode.SECURE_HAND, ActionType.PLAY_CARD) == 1.0


class TestCalculateModifiedEv:
    def test_positive_ev_is_multiplied(self):
        assert calculate_modified_ev(2.0, 1.5) == 3.0

    def test_negative_ev_is_divided(self):
        assert calculate_modified_ev(-2.0, 0.5) == -4.0
        assert calculate_modified_ev(-2.0, 2.0) == -1.0

    def test_sign_is_preserved(self):
        for ev in (-3.0, -0.1, 0.0, 0.1, 3.0):
            for modifier in (0.0, 0.01, 0.4, 1.0, 5.0):
                modified = calculate_modified_ev(ev, modifier)
                assert (modified >= 0) == (ev >= 0)

    def test_zero_modifier_is_floored(self):
        assert calculate_modified_ev(2.0, 0.0) == pytest.approx(0.02)


class TestMoveModifier:
    def test_non_negative_decline_is_pinned(self):
        move = AiMove(Action(ActionType.DECLINE), ReasonCode.DECLINE_TRUCO_WEAK)
        assert move_modifier(Archetype.CAUTIOUS, move, 0.0) == 1.0
        assert move_modifier(Archetype.AGGRESSIVE, move, 1.0) == 1.0

    def test_negative_decline_uses_archetype(self):
        move = AiMove(Action(ActionType.DECLINE), ReasonCode.DECLINE_TRUCO_WEAK)
        assert move_modifier(Archetype.AGGRESSIVE, move, -1.0) == 0.6
