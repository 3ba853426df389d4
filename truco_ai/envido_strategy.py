from typing import List
import logging

from hand_eval.hand_strength import get_envido_details
from truco_core.game_state import Action, ActionType
from truco_core.messages import Reasoning, message
from truco_core.rules import max_points
from truco_ai.decision_context import DecisionContext
from truco_ai.legal_moves import can_call_envido, envido_escalations
from truco_ai.reasons import AiMove, ReasonCode

logger = logging.getLogger(__name__)

MANO_BONUS = 0.5
ENVIDO_SCALE = 33.0
REAL_ENVIDO_MIN = 30
MARGINAL_ENVIDO_MIN = 23
DEFENSIVE_FALTA_MIN = 28
CLOSE_OUT_DISTANCE = 5
DEFENSIVE_DISTANCE = 3
CLOSE_OUT_FALTA_CHANCE = 0.75
MARGINAL_CALL_CHANCE = 0.15
MAX_BLUFF_CHANCE = 0.4
HERO_CALL_CHANCE = 0.10
MAX_ESCALATION_RATE = 0.6


def my_envido_value(ctx: DecisionContext) -> float:
    state = ctx.state
    value = float(get_envido_details(state.initial_ai_hand).value)
    if state.ai_is_mano:
        value += MANO_BONUS
    return value


def estimate_opponent_envido(ctx: DecisionContext) -> float:
    """The learned calling threshold, raised when the player has put more points on the table."""
    state = ctx.state
    estimate = state.opponent_model.envido_behavior.for_context(state.player_context).call_threshold
    if state.envido_points_on_offer >= 5:
        estimate = max(estimate, 29.0)
    elif state.envido_points_on_offer >= 3:
        estimate = max(estimate, 28.0)
    return estimate


def envido_bluff_chance(ctx: DecisionContext) -> float:
    state = ctx.state
    fold_rate = state.opponent_model.envido_behavior.for_context(state.player_context).fold_rate
    return min(MAX_BLUFF_CHANCE, 0.08 + fold_rate * 0.3 + max(0.0, ctx.game_pressure) * 0.15)


def _move(action_type: ActionType, reason: ReasonCode, reasoning: Reasoning, **params) -> AiMove:
    return AiMove(Action(action_type), reason, reasoning=list(reasoning) + [message(reason.message_key, **params)])


def get_envido_call(ctx: DecisionContext, reasoning: Reasoning) -> List[AiMove]:
    """Opening envido candidates for the AI's turn; empty when it chooses to stay quiet."""
    state = ctx.state
    if not can_call_envido(state):
        return []

    rng = ctx.rng
    pressure = ctx.game_pressure
    mine = my_envido_value(ctx)
    behavior = state.opponent_model.envido_behavior.for_context(state.player_context)
    ai_points_to_win = max_points - state.ai_score
    player_points_to_win = max_points - state.player_score

    local: Reasoning = list(reasoning) + [
        message("ai_logic.envido_call_logic"),
        message("ai_logic.my_envido", value=mine),
        message("ai_logic.opponent_envido_model", fold_rate=behavior.fold_rate, threshold=behavior.call_threshold),
    ]
    moves: List[AiMove] = []

    if mine >= REAL_ENVIDO_MIN:
        moves.append(_move(ActionType.CALL_REAL_ENVIDO, ReasonCode.CALL_REAL_ENVIDO_VALUE, local, value=mine))
        if ai_points_to_win <= CLOSE_OUT_DISTANCE and rng.random() < CLOSE_OUT_FALTA_CHANCE:
            moves.append(_move(ActionType.CALL_FALTA_ENVIDO, ReasonCode.CALL_FALTA_ENVIDO_CLOSE_OUT, local, value=mine))
    elif mine >= behavior.call_threshold - pressure * 2:
        moves.append(_move(ActionType.CALL_ENVIDO, ReasonCode.CALL_ENVIDO_VALUE, local, value=mine))
        if player_points_to_win <= DEFENSIVE_DISTANCE and mine >= DEFENSIVE_FALTA_MIN:
            moves.append(_move(ActionType.CALL_FALTA_ENVIDO, ReasonCode.CALL_FALTA_ENVIDO_DEFENSIVE, local, value=mine))
    elif mine >= MARGINAL_ENVIDO_MIN:
        chance = MARGINAL_CALL_CHANCE + max(0.0, pressure) * 0.15
        if rng.random() < chance:
            moves.append(_move(ActionType.CALL_ENVIDO, ReasonCode.CALL_ENVIDO_MARGINAL, local, value=mine))
    else:
        chance = envido_bluff_chance(ctx)
        local.append(message("ai_logic.adjusted_bluff_chance_envido", chance=chance))
        if rng.random() < chance:
            moves.append(_move(ActionType.CALL_ENVIDO, ReasonCode.CALL_ENVIDO_BLUFF, local, value=mine))

    if not moves:
        logger.debug(f"No envido call with {mine:.1f} points")
    return moves


def get_envido_response_options(ctx: DecisionContext, reasoning: Reasoning) -> List[AiMove]:
    """Accept, decline and any allowed raises in answer to the player's envido."""
    state = ctx.state
    rng = ctx.rng
    pressure = ctx.game_pressure
    mine = my_envido_value(ctx)
    estimate = estimate_opponent_envido(ctx)
    advantage = (mine - estimate) / ENVIDO_SCALE
    behavior = state.opponent_model.envido_behavior.for_context(state.player_context)
    offer = state.envido_points_on_offer
    ai_points_to_win = max_points - state.ai_score

    local: Reasoning = list(reasoning) + [
        message("ai_logic.envido_response_logic"),
        message("ai_logic.my_envido", value=mine),
        message("ai_logic.opponent_envido_estimate", offer=offer, estimate=estimate),
        message("ai_logic.envido_advantage", advantage=advantage),
    ]

    moves: List[AiMove] = []
    allowed = envido_escalations(state)
    if advantage > 0.15 - pressure * 0.05 and behavior.escalation_rate < MAX_ESCALATION_RATE:
        if (
            ActionType.CALL_FALTA_ENVIDO in allowed
            and ai_points_to_win <= offer + 3
            and mine >= REAL_ENVIDO_MIN
        ):
            moves.append(_move(ActionType.CALL_FALTA_ENVIDO, ReasonCode.ESCALATE_ENVIDO_VALUE, local, value=mine))
        if ActionType.CALL_REAL_ENVIDO in allowed:
            moves.append(_move(ActionType.CALL_REAL_ENVIDO, ReasonCode.ESCALATE_ENVIDO_VALUE, local, value=mine))
        elif ActionType.CALL_ENVIDO in allowed and offer == 2 and mine >= DEFENSIVE_FALTA_MIN:
            moves.append(_move(ActionType.CALL_ENVIDO, ReasonCode.ESCALATE_ENVIDO_VALUE, local, value=mine))
    elif mine < MARGINAL_ENVIDO_MIN and allowed:
        chance = envido_bluff_chance(ctx)
        if rng.random() < chance:
            raise_type = ActionType.CALL_REAL_ENVIDO if ActionType.CALL_REAL_ENVIDO in allowed else allowed[0]
            moves.append(_move(raise_type, ReasonCode.ESCALATE_ENVIDO_BLUFF, local, value=mine))

    if advantage > -0.1 - pressure * 0.05:
        moves.append(_move(ActionType.ACCEPT, ReasonCode.ACCEPT_ENVIDO_FAVORABLE, local, advantage=advantage))
    elif rng.random() < HERO_CALL_CHANCE:
        moves.append(_move(ActionType.ACCEPT, ReasonCode.ACCEPT_ENVIDO_HERO_CALL, local, advantage=advantage))
    else:
        moves.append(_move(ActionType.ACCEPT, ReasonCode.ACCEPT_ENVIDO_UNFAVORABLE, local, advantage=advantage))

    moves.append(_move(ActionType.DECLINE, ReasonCode.DECLINE_ENVIDO, local, advantage=advantage))
    return moves


def get_envido_primero_options(ctx: DecisionContext, reasoning: Reasoning) -> List[AiMove]:
    """Envido calls the AI may slip in over a fresh truco before answering it."""
    if not can_call_envido(ctx.state):
        return []
    return get_envido_call(ctx, list(reasoning) + [message("ai_logic.envido_primero_window")])
