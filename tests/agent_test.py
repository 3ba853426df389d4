import logging
from unittest.mock import patch

import pytest
from conftest import cards
from truco_ai.agent import IllegalStateError, TrucoAiAgent, _dedupe
from truco_ai.case_base import Case
from truco_ai.move_evaluator import evaluate_moves
from truco_ai.model_updater import PlayerHistory, TrucoResponse, TrucoResponseEntry
from truco_ai.reasons import AiMove, ReasonCode
from truco_core.game_state import Action, ActionType, Archetype, GamePhase, TrucoContext
from truco_core.rules import AI, PLAYER


@pytest.fixture
def agent():
    return TrucoAiAgent(seed=7, simulation_iterations=5)


@pytest.fixture
def leading_second_trick(make_state):
    return make_state(
        cards("E1", "O4"),
        initial_ai_hand=cards("E1", "O4", "E3"),
        ai_tricks=[cards("E3")[0], None, None],
        player_tricks=[cards("C4")[0], None, None],
        player_hand=cards("B12", "O12"),
        trick_winners=[AI, None, None],
        current_trick=1,
        game_phase=GamePhase.TRICK_2,
        mano=AI,
    )


class TestAgentSetup:
    def test_archetype_by_name(self):
        assert TrucoAiAgent(archetype="deceptive").archetype is Archetype.DECEPTIVE

    def test_unknown_archetype(self):
        with pytest.raises(ValueError, match="Unrecognized archetype"):
            TrucoAiAgent(archetype="reckless")


class TestIllegalStates:
    def test_not_ai_turn(self, agent, make_state):
        with pytest.raises(IllegalStateError, match="Not the AI's turn"):
            agent.choose_move(make_state(cards("E1", "B1", "E7"), current_turn=PLAYER))

    def test_round_over(self, agent, make_state):
        with pytest.raises(IllegalStateError, match="cannot act in phase round_end"):
            agent.choose_move(make_state(cards("E1", "B1", "E7"), game_phase=GamePhase.ROUND_END))


class TestChooseMove:
    def test_no_cards_skips_evaluation(self, agent, make_state):
        state = make_state([], initial_ai_hand=cards("E1", "B1", "E7"))
        with patch("truco_ai.agent.evaluate_moves") as evaluate:
            move = agent.choose_move(state)
        evaluate.assert_not_called()
        assert move.action.type is ActionType.NO_OP
        assert move.reason is ReasonCode.NO_CARDS_LEFT

    def test_flor_is_always_declared(self, agent, make_state):
        move = agent.choose_move(make_state(cards("O1", "O7", "O12"), mano=AI))
        assert move.action.type is ActionType.DECLARE_FLOR
        assert move.action.player == AI
        assert move.alternatives

    @pytest.mark.parametrize("archetype", list(Archetype))
    def test_weak_flor_undersold_instead_of_played_away(self, make_state, archetype):
        state = make_state(cards("O12", "O11", "O10"), mano=AI)
        with patch("truco_ai.flor_strategy.UNDERSELL_CHANCE", 1.0):
            for seed in range(5):
                move = TrucoAiAgent(archetype=archetype, seed=seed, simulation_iterations=5).choose_move(state)
                assert move.action.type is ActionType.CALL_ENVIDO
                assert move.reason is ReasonCode.FLOR_UNDERSELL_BLUFF
                assert ActionType.DECLARE_FLOR in [alt.action.type for alt in move.alternatives]

    def test_weak_flor_declared_without_undersell(self, make_state):
        state = make_state(cards("O12", "O11", "O10"), mano=AI)
        with patch("truco_ai.flor_strategy.UNDERSELL_CHANCE", 0.0):
            for seed in range(5):
                move = TrucoAiAgent(seed=seed, simulation_iterations=5).choose_move(state)
                assert move.action.type is ActionType.DECLARE_FLOR

    def test_flor_answers_envido(self, agent, make_state):
        state = make_state(
            cards("O1", "O7", "O12"),
            game_phase=GamePhase.ENVIDO_CALLED,
            last_caller=PLAYER,
            has_envido_been_called_this_round=True,
            envido_points_on_offer=2,
        )
        assert agent.choose_move(state).action.type is ActionType.RESPOND_TO_ENVIDO_WITH_FLOR

    def test_flor_call_pending(self, agent, make_state):
        state = make_state(
            cards("C12", "C11", "C1"),
            game_phase=GamePhase.FLOR_CALLED,
            last_caller=PLAYER,
            player_has_flor=True,
            has_flor_been_called_this_round=True,
        )
        assert agent.choose_move(state).action.type is ActionType.ACKNOWLEDGE_FLOR

    def test_strong_envido_raises(self, agent, make_state):
        state = make_state(
            cards("E7", "E6", "O4"),
            game_phase=GamePhase.ENVIDO_CALLED,
            last_caller=PLAYER,
            has_envido_been_called_this_round=True,
            envido_points_on_offer=2,
        )
        move = agent.choose_move(state)
        assert move.action.type is ActionType.CALL_REAL_ENVIDO
        assert move.reason is ReasonCode.ESCALATE_ENVIDO_VALUE

    def test_vale_cuatro_cannot_be_raised(self, agent, make_state):
        state = make_state(
            cards("E1", "B1", "E7"),
            game_phase=GamePhase.VALE_CUATRO_CALLED,
            last_caller=PLAYER,
            truco_level=3,
        )
        assert agent.choose_move(state).action.type in (ActionType.ACCEPT, ActionType.DECLINE)

    def test_certain_round_calls_truco(self, agent, leading_second_trick):
        move = agent.choose_move(leading_second_trick)
        assert move.action.type is ActionType.CALL_TRUCO
        assert move.reason is ReasonCode.CALL_TRUCO_CERTAIN_WIN

    def test_deceptive_slow_plays(self, leading_second_trick):
        agent = TrucoAiAgent(archetype=Archetype.DECEPTIVE, seed=7, simulation_iterations=5)
        move = agent.choose_move(leading_second_trick)
        assert move.action.type is ActionType.PLAY_CARD
        assert move.reason is ReasonCode.PLAY_CARD_CERTAIN_WIN

    def test_agent_archetype_overrides_state(self, make_state):
        agent = TrucoAiAgent(archetype=Archetype.AGGRESSIVE, seed=1, simulation_iterations=5)
        move = agent.choose_move(make_state(cards("O1", "O7", "O12"), ai_archetype=Archetype.CAUTIOUS))
        selection = [e for e in move.reasoning if getattr(e, "key", None) == "ai_logic.archetype_selection"]
        assert selection[0].params == {"archetype": "Aggressive"}

    def test_tracks_hand_probabilities(self, agent, make_state):
        state = make_state(cards("O1", "O7", "O12"), player_hand=cards("E4", "B5", "C6"))
        with patch("truco_ai.agent.evaluate_moves", wraps=evaluate_moves) as evaluate:
            agent.choose_move(state)
        probs = agent.hand_probabilities
        assert probs is not None
        assert not set(probs.unseen_cards) & set(cards("O1", "O7", "O12"))
        assert sum(probs.rank_probs.values()) == pytest.approx(1.0)
        assert evaluate.call_args.args[1].state.opponent_hand_probabilities == probs

    def test_choose_action_returns_dict(self, agent, make_state):
        action = agent.choose_action(make_state(cards("O1", "O7", "O12")))
        assert action == {"type": "DECLARE_FLOR", "player": "ai"}

    def test_verbose_logs_decision(self, make_state, caplog):
        agent = TrucoAiAgent(seed=3, verbose=True, simulation_iterations=5)
        with caplog.at_level(logging.DEBUG, logger="truco_ai.agent"):
            agent.choose_move(make_state(cards("O1", "O7", "O12")))
        assert "DECLARE_FLOR" in caplog.text


class TestDedupe:
    def test_first_occurrence_wins(self):
        first = AiMove(Action(ActionType.CALL_TRUCO, truco_context=TrucoContext(1.0, False)), ReasonCode.CALL_TRUCO_CERTAIN_WIN)
        second = AiMove(Action(ActionType.CALL_TRUCO, truco_context=TrucoContext(0.7, False)), ReasonCode.CALL_TRUCO_WON_TRICK1)
        card = AiMove(Action(ActionType.PLAY_CARD, player=AI, card_index=0), ReasonCode.SECURE_HAND)
        assert _dedupe([first, card, second]) == [first, card]

    def test_distinct_cards_are_kept(self):
        moves = [
            AiMove(Action(ActionType.PLAY_CARD, player=AI, card_index=i), ReasonCode.SECURE_HAND) for i in range(2)
        ]
        assert _dedupe(moves) == moves


class TestLearning:
    def test_record_round_outcome(self, make_state):
        agent = TrucoAiAgent(seed=2, simulation_iterations=5, case_sample_rate=1.0)
        agent.choose_move(make_state(cards("O1", "O7", "O12")))
        agent.choose_move(make_state([], initial_ai_hand=cards("O1", "O7", "O12")))
        retained = agent.record_round_outcome("win")
        assert len(retained) == 1
        assert isinstance(retained[0], Case)
        assert retained[0].action == "DECLARE_FLOR"
        assert agent.cases == retained
        assert agent.record_round_outcome("loss") == []

    def test_nothing_retained_at_zero_rate(self, make_state):
        agent = TrucoAiAgent(seed=2, simulation_iterations=5, case_sample_rate=0.0)
        agent.choose_move(make_state(cards("O1", "O7", "O12")))
        assert agent.record_round_outcome("win") == []

    def test_finish_round_updates_model(self, agent):
        history = PlayerHistory()
        for round_number in range(1, 4):
            history.record_truco_response(TrucoResponseEntry(round_number, TrucoResponse.DECLINED, False))
        model = agent.finish_round_and_update(history)
        assert model is agent.opponent_model
        assert model.truco_fold_rate == pytest.approx(0.335)
