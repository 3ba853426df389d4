import json
from dataclasses import FrozenInstanceError, replace

import pytest
from truco_core.game_state import Action, ActionType, GamePhase, TrucoContext, truco_call_for_level
from truco_core.opponent_model import BluffStats, EnvidoContextStats, OpponentModel


class TestOpponentModelDefaults:
    def test_defaults(self):
        model = OpponentModel()
        for context in ("mano", "pie"):
            stats = model.envido_behavior.for_context(context)
            assert stats.call_threshold == 27
            assert stats.fold_rate == 0.4
            assert stats.escalation_rate == 0.2
        assert model.truco_fold_rate == 0.3
        assert model.bluff_success_rate == 0.5
        assert model.play_style.lead_with_highest_rate == 0.75
        assert model.play_style.bait_rate == 0.1
        assert model.play_style.envido_primero_rate == 0

    def test_unknown_context(self):
        with pytest.raises(ValueError, match="Unrecognized context: dealer"):
            OpponentModel().envido_behavior.for_context("dealer")

    def test_frozen(self):
        with pytest.raises(FrozenInstanceError):
            OpponentModel().truco_fold_rate = 0.9

    def test_with_context_returns_new_behavior(self):
        model = OpponentModel()
        updated = model.envido_behavior.with_context("pie", EnvidoContextStats(call_threshold=24))
        assert updated.pie.call_threshold == 24
        assert model.envido_behavior.pie.call_threshold == 27


class TestOpponentModelSerialization:
    def test_round_trip_through_json(self):
        model = replace(
            OpponentModel(),
            truco_fold_rate=0.45,
            truco_bluffs=replace(OpponentModel().truco_bluffs, mano=BluffStats(4, 3)),
        )
        restored = OpponentModel.from_dict(json.loads(json.dumps(model.to_dict())))
        assert restored == model

    def test_partial_dict_merges_defaults(self):
        restored = OpponentModel.from_dict({"envido_behavior": {"mano": {"fold_rate": 0.7}}})
        assert restored.envido_behavior.mano.fold_rate == 0.7
        assert restored.envido_behavior.mano.call_threshold == 27
        assert restored.truco_fold_rate == 0.3

    def test_unknown_keys_are_ignored(self):
        restored = OpponentModel.from_dict({"play_style": {"bait_rate": 0.3, "legacy": 1}})
        assert restored.play_style.bait_rate == 0.3

    def test_empty_dict(self):
        assert OpponentModel.from_dict({}) == OpponentModel()


class TestBluffStats:
    def test_success_rate(self):
        assert BluffStats(4, 1).success_rate == 0.25
        assert BluffStats().success_rate == 0.0


class TestActions:
    def test_truco_call_for_level(self):
        assert truco_call_for_level(0) is ActionType.CALL_TRUCO
        assert truco_call_for_level(2) is ActionType.CALL_VALE_CUATRO
        with pytest.raises(ValueError, match="No truco escalation from level 3"):
            truco_call_for_level(3)

    def test_action_to_dict(self):
        action = Action(ActionType.CALL_TRUCO, truco_context=TrucoContext(0.8, False))
        assert action.to_dict() == {
            "type": "CALL_TRUCO",
            "truco_context": {"strength": 0.8, "is_bluff": False},
        }
        assert Action(ActionType.PLAY_CARD, player="ai", card_index=2).to_dict() == {
            "type": "PLAY_CARD",
            "player": "ai",
            "card_index": 2,
        }

    def test_phase_properties(self):
        assert GamePhase.TRICK_2.is_trick
        assert GamePhase.RETRUCO_CALLED.is_truco_call
        assert GamePhase.ENVIDO_CALLED.is_call_pending
        assert GamePhase.CONTRAFLOR_CALLED.is_flor_call
        assert not GamePhase.ROUND_END.is_call_pending
