from typing import List, Optional

from hand_eval.hand_strength import compute_flor_score
from truco_core.game_state import Action, ActionType, GamePhase
from truco_core.messages import Reasoning, message
from truco_core.rules import AI, contraflor_points, max_points
from truco_ai.decision_context import DecisionContext
from truco_ai.legal_moves import ai_holds_flor, can_declare_flor
from truco_ai.reasons import AiMove, ReasonCode

UNDERSELL_MAX_FLOR = 26
UNDERSELL_CHANCE = 0.4
CONTRAFLOR_MIN_FLOR = 30
ACCEPT_CONTRAFLOR_MIN_FLOR = 32
ACCEPT_CONTRAFLOR_CLOSING_MIN_FLOR = 30


def _move(action_type: ActionType, reason: ReasonCode, reasoning: Reasoning, player: Optional[str] = None,
          **params) -> AiMove:
    return AiMove(
        Action(action_type, player=player),
        reason,
        reasoning=list(reasoning) + [message(reason.message_key, **params)],
    )


def get_flor_call(ctx: DecisionContext, reasoning: Reasoning) -> List[AiMove]:
    """Declare flor when holding it, occasionally masking a weak one behind an envido.

    The declaration is always among the returned moves; an undersell bluff is
    listed ahead of it.
    """
    state = ctx.state
    if not can_declare_flor(state):
        return []

    flor = compute_flor_score(state.initial_ai_hand)
    local: Reasoning = list(reasoning) + [message("ai_logic.flor_call_logic", flor=flor)]

    if state.game_phase is GamePhase.ENVIDO_CALLED:
        return [_move(ActionType.RESPOND_TO_ENVIDO_WITH_FLOR, ReasonCode.RESPOND_WITH_FLOR, local, flor=flor)]

    declare = _move(ActionType.DECLARE_FLOR, ReasonCode.CALL_FLOR, local, player=AI, flor=flor)
    if (
        state.game_phase is GamePhase.TRICK_1
        and not state.has_envido_been_called_this_round
        and flor < UNDERSELL_MAX_FLOR
        and ctx.rng.random() < UNDERSELL_CHANCE
    ):
        return [_move(ActionType.CALL_ENVIDO, ReasonCode.FLOR_UNDERSELL_BLUFF, local, flor=flor), declare]
    return [declare]


def get_flor_response(ctx: DecisionContext, reasoning: Reasoning) -> Optional[AiMove]:
    state = ctx.state
    phase = state.game_phase
    if not phase.is_flor_call:
        return None

    flor = compute_flor_score(state.initial_ai_hand) if ai_holds_flor(state) else 0
    local: Reasoning = list(reasoning) + [message("ai_logic.flor_response_logic", flor=flor)]

    if phase is GamePhase.FLOR_CALLED:
        if flor >= CONTRAFLOR_MIN_FLOR:
            return _move(ActionType.CALL_CONTRAFLOR, ReasonCode.CALL_CONTRAFLOR_STRONG, local, flor=flor)
        return _move(ActionType.ACKNOWLEDGE_FLOR, ReasonCode.ACKNOWLEDGE_FLOR, local, flor=flor)

    closes_game = state.ai_score + contraflor_points >= max_points
    if flor >= ACCEPT_CONTRAFLOR_MIN_FLOR or (closes_game and flor >= ACCEPT_CONTRAFLOR_CLOSING_MIN_FLOR):
        return _move(ActionType.ACCEPT_CONTRAFLOR, ReasonCode.ACCEPT_CONTRAFLOR, local, flor=flor)
    return _move(ActionType.DECLINE_CONTRAFLOR, ReasonCode.DECLINE_CONTRAFLOR, local, flor=flor)
