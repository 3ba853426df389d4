"""Expected-value scoring of candidate moves and archetype-weighted selection."""
from typing import Dict, List
import logging

from hand_eval.hand_strength import calculate_hand_strength, get_envido_details
from truco_core.game_state import ActionType, Archetype, ENVIDO_CALLS, TRUCO_CALLS
from truco_core.messages import Reasoning, message
from truco_core.rules import (
    get_envido_points_on_accept,
    get_falta_envido_points,
    get_truco_points_on_reject,
    max_points,
    round_points_at_level,
    truco_stage_for_level,
)
from truco_ai.archetypes import archetype_modifier, calculate_modified_ev, move_modifier
from truco_ai.decision_context import DecisionContext
from truco_ai.reasons import AiMove, ReasonCode
from truco_ai.truco_strategy import calculate_truco_strength, truco_call_ev

logger = logging.getLogger(__name__)

CARD_PLAY_EV: Dict[ReasonCode, float] = {
    ReasonCode.PLAY_CARD_PARDA_Y_GANO: 2.5,
    ReasonCode.PLAY_CARD_CERTAIN_WIN: 2.5,
    ReasonCode.WIN_ROUND_CHEAP: 1.5,
    ReasonCode.SECURE_HAND: 1.2,
    ReasonCode.PARDA_Y_CANTO: 0.8,
    ReasonCode.PROBE_LOW_VALUE: 0.2,
    ReasonCode.PROBE_MID_VALUE: 0.3,
    ReasonCode.PROBE_SACRIFICIAL: 0.5,
    ReasonCode.BAIT_LOPSIDED_HAND: 0.4,
    ReasonCode.HIDE_ENVIDO: 0.4,
    ReasonCode.DISCARD_LOW: -1.0,
    ReasonCode.PLAY_LAST_CARD: 0.1,
    ReasonCode.NO_CARDS_LEFT: 0.0,
}

BAIT_REASONS = (ReasonCode.PROBE_LOW_VALUE, ReasonCode.PROBE_MID_VALUE, ReasonCode.BAIT_LOPSIDED_HAND)
BAIT_BONUS = 1.5
BAIT_MIN_ENVIDO = 30
BAIT_MAX_STRENGTH = 12

CERTAIN_TRUCO_CALL_EV = 2.8
TRUCO_TRAP_EV = 3.0

FALTA_MIN_ENVIDO = 32
EARLY_GAME_SCORE = 10
TRUCO_RISK_STRENGTH = 12
TRUCO_RISK_SCALE = 1.8
TABLE_IMAGE_BONUS = 0.6
HOPELESS_ENVIDO = 23
BANNED_EV = -10.0

FLOR_EV = {
    ActionType.DECLARE_FLOR: 10.0,
    ActionType.RESPOND_TO_ENVIDO_WITH_FLOR: 10.0,
    ActionType.CALL_CONTRAFLOR: 4.0,
    ActionType.ACKNOWLEDGE_FLOR: 0.0,
    ActionType.ACCEPT_CONTRAFLOR: 2.0,
    ActionType.DECLINE_CONTRAFLOR: -3.0,
}


def _card_play_ev(move: AiMove, ctx: DecisionContext, log: Reasoning) -> float:
    state = ctx.state
    ev = CARD_PLAY_EV[move.reason]
    if move.reason in BAIT_REASONS and state.initial_ai_hand:
        envido = get_envido_details(state.initial_ai_hand).value
        strength = calculate_hand_strength(state.initial_ai_hand)
        if (
            envido >= BAIT_MIN_ENVIDO
            and strength < BAIT_MAX_STRENGTH
            and state.ai_is_mano
            and state.current_trick == 0
        ):
            log.append(message("ai_logic.strategic_bait_bonus_applied", bonus=BAIT_BONUS))
            ev += BAIT_BONUS
    return ev


def _envido_call_ev(move: AiMove, ctx: DecisionContext, log: Reasoning) -> float:
    state = ctx.state
    action_type = move.action.type
    my_envido = get_envido_details(state.initial_ai_hand).value
    behavior = state.opponent_model.envido_behavior.for_context(state.player_context)
    offer = state.envido_points_on_offer
    acceptance = 1 - behavior.fold_rate
    points_on_decline = offer if offer > 0 else 1

    if action_type is ActionType.CALL_REAL_ENVIDO:
        points_on_win = offer + get_envido_points_on_accept("RealEnvido")
        penalty_multiplier = 1.0
    elif action_type is ActionType.CALL_FALTA_ENVIDO:
        points_on_win = get_falta_envido_points(state.player_score, state.ai_score)
        penalty_multiplier = 2.0
        early_game = state.ai_score < EARLY_GAME_SCORE and state.player_score < EARLY_GAME_SCORE
        opponent_can_win = state.player_score + points_on_win >= max_points
        if my_envido < FALTA_MIN_ENVIDO and (early_game or not opponent_can_win):
            log.append(message("ai_logic.falta_suicide_prevention", points=my_envido))
            return BANNED_EV
    else:
        points_on_win = offer + get_envido_points_on_accept("Envido")
        penalty_multiplier = 0.0

    if move.reason.is_bluff:
        ev_if_accepted = -points_on_win
    else:
        win_prob = 0.8 if my_envido > behavior.call_threshold else 0.3
        ev_if_accepted = win_prob * points_on_win - (1 - win_prob) * points_on_win

    truco_risk_penalty = 0.0
    strength = calculate_hand_strength(state.initial_ai_hand)
    if strength < TRUCO_RISK_STRENGTH and penalty_multiplier > 0:
        truco_risk_penalty = TRUCO_RISK_SCALE * (TRUCO_RISK_STRENGTH - strength) / 10 * penalty_multiplier
        if state.ai_archetype is Archetype.AGGRESSIVE:
            truco_risk_penalty *= 0.1
        log.append(message("ai_logic.truco_risk_penalty_applied", penalty=truco_risk_penalty))

    ev = acceptance * ev_if_accepted + (1 - acceptance) * points_on_decline

    if (
        state.round == 1
        and state.ai_archetype in (Archetype.AGGRESSIVE, Archetype.DECEPTIVE)
        and action_type is ActionType.CALL_ENVIDO
    ):
        log.append(message("ai_logic.table_image_bonus", bonus=TABLE_IMAGE_BONUS))
        ev += TABLE_IMAGE_BONUS

    ev -= truco_risk_penalty

    if my_envido < HOPELESS_ENVIDO and state.ai_archetype is not Archetype.AGGRESSIVE:
        decline_baseline = _envido_decline_ev(ctx)
        if ev >= decline_baseline:
            log.append(message("ai_logic.hopeless_envido_penalty", envido=my_envido))
            ev = decline_baseline - 0.5
    return ev


def _accept_ev(move: AiMove, ctx: DecisionContext) -> float:
    state = ctx.state
    phase = state.game_phase
    if phase.is_truco_call:
        if move.reason is ReasonCode.ACCEPT_TRUCO_TRAP:
            return TRUCO_TRAP_EV
        strength = calculate_truco_strength(ctx).strength
        points_on_win = round_points_at_level(max(1, state.truco_level))
        return strength * points_on_win - (1 - strength) * points_on_win
    if phase.is_envido_call:
        mine = get_envido_details(state.initial_ai_hand).value
        threshold = state.opponent_model.envido_behavior.for_context(state.player_context).call_threshold
        if mine > threshold:
            win_prob = 0.7 + min(0.25, (mine - threshold) * 0.05)
        elif mine < 20:
            win_prob = 0.05
        elif mine < 24:
            win_prob = 0.15
        else:
            win_prob = max(0.1, 0.4 - (threshold - mine) * 0.05)
        offer = state.envido_points_on_offer
        return win_prob * offer - (1 - win_prob) * offer
    return 0.1


def _envido_decline_ev(ctx: DecisionContext) -> float:
    previous = ctx.state.previous_envido_points
    return -float(previous if previous > 0 else 1)


def _decline_ev(ctx: DecisionContext) -> float:
    state = ctx.state
    if state.game_phase.is_truco_call:
        pending = truco_stage_for_level(max(0, state.truco_level - 1))
        return -float(get_truco_points_on_reject(pending))
    if state.game_phase.is_envido_call:
        return _envido_decline_ev(ctx)
    return -0.1


def calculate_base_ev(move: AiMove, ctx: DecisionContext, log: Reasoning) -> float:
    action_type = move.action.type
    if action_type in (ActionType.PLAY_CARD, ActionType.NO_OP):
        return _card_play_ev(move, ctx, log)
    if action_type in TRUCO_CALLS:
        if move.reason in (ReasonCode.CALL_TRUCO_PARDA_Y_GANO, ReasonCode.CALL_TRUCO_CERTAIN_WIN):
            return CERTAIN_TRUCO_CALL_EV
        strength = move.action.truco_context.strength if move.action.truco_context else calculate_truco_strength(ctx).strength
        return truco_call_ev(ctx, strength)
    if action_type in ENVIDO_CALLS:
        if move.reason is ReasonCode.FLOR_UNDERSELL_BLUFF:
            # stands in for the mandatory flor declaration
            return FLOR_EV[ActionType.DECLARE_FLOR]
        return _envido_call_ev(move, ctx, log)
    if action_type is ActionType.ACCEPT:
        return _accept_ev(move, ctx)
    if action_type is ActionType.DECLINE:
        return _decline_ev(ctx)
    if action_type in FLOR_EV:
        return FLOR_EV[action_type]
    return 0.0


def evaluate_moves(moves: List[AiMove], ctx: DecisionContext) -> AiMove:
    """Score every candidate, apply the archetype and pick the best; ties keep generation order."""
    if not moves:
        raise ValueError("No candidate moves to evaluate")

    archetype = ctx.state.ai_archetype
    evaluated: List[AiMove] = []
    for move in moves:
        log: Reasoning = []
        base_ev = calculate_base_ev(move, ctx, log)
        modifier = move_modifier(archetype, move, base_ev)
        evaluated.append(move.evaluated(base_ev, calculate_modified_ev(base_ev, modifier), log))

    ranked = sorted(evaluated, key=lambda m: m.modified_ev, reverse=True)
    best = ranked[0]

    summary: Reasoning = [
        message("ai_logic.archetype_selection", archetype=archetype.value),
        message("ai_logic.considering_options", count=len(ranked)),
    ]
    for move in ranked:
        summary.append(message(
            "ai_logic.option_ev_detailed",
            move=move.reason.value,
            action=move.action.type.value,
            base_ev=move.base_ev,
            modifier=archetype_modifier(archetype, move.reason, move.action.type),
            final_ev=move.modified_ev,
        ))
    summary.append(message("ai_logic.final_decision", move=best.reason.value))

    best.reasoning = list(best.reasoning) + summary
    best.alternatives = ranked[1:]
    logger.debug(f"Selected {best.reason.value} (ev={best.modified_ev:.2f}) from {len(ranked)} options")
    return best
