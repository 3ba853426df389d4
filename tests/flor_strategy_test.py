from conftest import ScriptedRandom, cards
from truco_ai.decision_context import DecisionContext
from truco_ai.flor_strategy import get_flor_call, get_flor_response
from truco_ai.reasons import ReasonCode
from truco_core.game_state import ActionType, GamePhase
from truco_core.rules import AI, PLAYER


def context(state, rolls=(), default=0.99):
    return DecisionContext.for_state(state, rng=ScriptedRandom(rolls, default=default))


class TestGetFlorCall:
    def test_declares_flor(self, make_state):
        moves = get_flor_call(context(make_state(cards("O1", "O7", "O12"))), [])
        assert len(moves) == 1
        assert moves[0].action.type is ActionType.DECLARE_FLOR
        assert moves[0].action.player == AI
        assert moves[0].reason is ReasonCode.CALL_FLOR

    def test_strong_flor_never_undersold(self, make_state):
        rng = ScriptedRandom(default=0.0)
        ctx = DecisionContext.for_state(make_state(cards("O1", "O7", "O12")), rng=rng)
        assert get_flor_call(ctx, [])[0].reason is ReasonCode.CALL_FLOR
        assert rng.calls == 0

    def test_weak_flor_undersell(self, make_state):
        state = make_state(cards("O12", "O11", "O10"))
        moves = get_flor_call(context(state, rolls=[0.1]), [])
        assert moves[0].action.type is ActionType.CALL_ENVIDO
        assert moves[0].reason is ReasonCode.FLOR_UNDERSELL_BLUFF
        assert moves[0].is_bluff
        assert moves[1].action.type is ActionType.DECLARE_FLOR

        moves = get_flor_call(context(state, rolls=[0.9]), [])
        assert [m.action.type for m in moves] == [ActionType.DECLARE_FLOR]

    def test_answers_envido_with_flor(self, make_state):
        state = make_state(
            cards("O12", "O11", "O10"),
            game_phase=GamePhase.ENVIDO_CALLED,
            last_caller=PLAYER,
            has_envido_been_called_this_round=True,
        )
        moves = get_flor_call(context(state, default=0.0), [])
        assert moves[0].action.type is ActionType.RESPOND_TO_ENVIDO_WITH_FLOR
        assert moves[0].reason is ReasonCode.RESPOND_WITH_FLOR

    def test_without_flor(self, make_state):
        assert get_flor_call(context(make_state(cards("O1", "O7", "C12"))), []) == []

    def test_flor_disabled(self, make_state):
        assert get_flor_call(context(make_state(cards("O1", "O7", "O12"), is_flor_enabled=False)), []) == []


class TestGetFlorResponse:
    def flor_called(self, make_state, hand, phase=GamePhase.FLOR_CALLED, **kwargs):
        return make_state(
            cards(*hand),
            game_phase=phase,
            last_caller=PLAYER,
            player_has_flor=True,
            has_flor_been_called_this_round=True,
            **kwargs,
        )

    def test_contraflor_with_strong_flor(self, make_state):
        move = get_flor_response(context(self.flor_called(make_state, ("C7", "C6", "C5"))), [])
        assert move.action.type is ActionType.CALL_CONTRAFLOR
        assert move.reason is ReasonCode.CALL_CONTRAFLOR_STRONG

    def test_acknowledge_weak_flor(self, make_state):
        move = get_flor_response(context(self.flor_called(make_state, ("C12", "C11", "C1"))), [])
        assert move.action.type is ActionType.ACKNOWLEDGE_FLOR

    def test_acknowledge_without_flor(self, make_state):
        move = get_flor_response(context(self.flor_called(make_state, ("E1", "B1", "O3"))), [])
        assert move.action.type is ActionType.ACKNOWLEDGE_FLOR
        assert move.reasoning[-1].params == {"flor": 0}

    def test_accept_contraflor(self, make_state):
        state = self.flor_called(make_state, ("C7", "C6", "C5"), phase=GamePhase.CONTRAFLOR_CALLED)
        move = get_flor_response(context(state), [])
        assert move.action.type is ActionType.ACCEPT_CONTRAFLOR

    def test_contraflor_closing_the_game(self, make_state):
        hand = ("C7", "C4", "C10")
        closing = self.flor_called(make_state, hand, phase=GamePhase.CONTRAFLOR_CALLED, ai_score=9)
        assert get_flor_response(context(closing), []).action.type is ActionType.ACCEPT_CONTRAFLOR
        early = self.flor_called(make_state, hand, phase=GamePhase.CONTRAFLOR_CALLED)
        move = get_flor_response(context(early), [])
        assert move.action.type is ActionType.DECLINE_CONTRAFLOR
        assert move.reason is ReasonCode.DECLINE_CONTRAFLOR

    def test_no_flor_call_pending(self, make_state):
        assert get_flor_response(context(make_state(cards("C7", "C6", "C5"))), []) is None
