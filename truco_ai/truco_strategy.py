from dataclasses import dataclass, field
from typing import Dict, List, Optional
import logging

from game_sim.inference import generate_constrained_opponent_hands, unseen_cards
from game_sim.simulator import simulate_from_state
from hand_eval.hand_strength import get_hand_percentile
from truco_core.cards import Card, sort_by_power
from truco_core.game_state import Action, ActionType, TrucoContext, truco_call_for_level
from truco_core.messages import Reasoning, message
from truco_core.rules import AI, PLAYER, TIE, determine_round_winner, determine_trick_winner, round_points_at_level
from truco_ai.decision_context import DecisionContext
from truco_ai.legal_moves import can_call_truco, truco_escalation
from truco_ai.reasons import AiMove, ReasonCode

logger = logging.getLogger(__name__)

BRAVAS = {
    (1, "espadas"): 4,
    (1, "bastos"): 3,
    (7, "espadas"): 2,
    (7, "oros"): 1,
}

LOW_RANKS = {3: 0.5, 2: 0.4, 1: 0.3, 12: 0.1, 11: 0.1, 10: 0.1, 7: 0.2, 6: 0.1, 5: 0.1, 4: 0.05}
LOW_RANK_SCALE = 0.1
HEURISTIC_NORMALIZER = 4.0
HEURISTIC_WEIGHT = 0.2
SIMULATION_WEIGHT = 0.8
STRENGTH_SAMPLES = {"strong": 3, "medium": 5, "weak": 2}

CERTAIN_LOSS_STRENGTH = 0.05
CERTAIN_WIN_PROBABILITY = 0.95
CERTAINTY_ACTION_PROBABILITY = 0.80
TRAP_STRENGTH = 0.85
DOMINANT_CARD_ESCALATION = {14: 1.0, 13: 0.95, 12: 0.90, 11: 0.85}

RESPONSE_ENVIDO_LEAK = 0.2
CALL_ENVIDO_LEAK = 0.15
POSITIONAL_BONUS = 0.2
MAX_MIXED_STRATEGY_CHANCE = 0.10
MAX_BLUFF_CHANCE = 0.55


@dataclass(frozen=True)
class TrucoStrength:
    strength: float
    heuristic: float
    simulated_win_prob: Optional[float] = None
    strata: Dict[str, float] = field(default_factory=dict)
    reasoning: Reasoning = field(default_factory=list)


def truco_heuristic(hand: List[Card]) -> float:
    total = 0.0
    for card in hand:
        total += BRAVAS.get((card.rank, card.suit)) or LOW_RANKS.get(card.rank, 0) * LOW_RANK_SCALE
    return total / HEURISTIC_NORMALIZER


def calculate_truco_strength(ctx: DecisionContext) -> TrucoStrength:
    """Blend raw card power with simulated win odds against plausible opponent hands."""
    if "truco_strength" in ctx.memo:
        return ctx.memo["truco_strength"]

    state = ctx.state
    if not state.ai_hand:
        result = TrucoStrength(0.0, 0.0, reasoning=[message("ai_logic.no_cards_left")])
        ctx.memo["truco_strength"] = result
        return result

    reasoning: Reasoning = []
    heuristic = truco_heuristic(state.ai_hand)
    reasoning.append(message("ai_logic.my_current_hand", hand=[c.code for c in state.ai_hand]))
    reasoning.append(message("ai_logic.heuristic_strength", strength=heuristic))

    samples = generate_constrained_opponent_hands(
        state, reasoning, rng=ctx.rng, cache=ctx.cache, **STRENGTH_SAMPLES
    )
    if samples.is_empty():
        reasoning.append(message("ai_logic.no_inference_heuristic_only"))
        result = TrucoStrength(max(0.0, min(1.0, heuristic)), heuristic, reasoning=reasoning)
        ctx.memo["truco_strength"] = result
        return result

    strata: Dict[str, float] = {}
    for name, hands in samples.strata().items():
        if not hands:
            continue
        total = sum(
            simulate_from_state(state, state.ai_hand, hand, ctx.simulation_iterations, ctx.rng)
            for hand in hands
        )
        strata[name] = total / len(hands)
    simulated = sum(strata.values()) / len(strata)
    reasoning.append(message(
        "ai_logic.win_prob_simulation",
        strong=strata.get("strong"),
        medium=strata.get("medium"),
        weak=strata.get("weak"),
        average=simulated,
    ))

    strength = max(0.0, min(1.0, heuristic * HEURISTIC_WEIGHT + simulated * SIMULATION_WEIGHT))
    reasoning.append(message("ai_logic.blended_strength", strength=strength))
    result = TrucoStrength(strength, heuristic, simulated, strata, reasoning)
    ctx.memo["truco_strength"] = result
    return result


def truco_call_ev(ctx: DecisionContext, strength: float) -> float:
    """Fold-weighted payoff of raising the truco stake one level with ``strength``."""
    state = ctx.state
    fold_rate = state.opponent_model.truco_fold_rate
    points_if_fold = round_points_at_level(state.truco_level)
    points_if_accepted = round_points_at_level(min(3, state.truco_level + 1))
    showdown = strength * points_if_accepted - (1 - strength) * points_if_accepted
    return fold_rate * points_if_fold + (1 - fold_rate) * showdown


def _call_move(action_type: ActionType, reason: ReasonCode, strength: float, is_bluff: bool,
               reasoning: Reasoning) -> AiMove:
    action = Action(action_type, truco_context=TrucoContext(strength, is_bluff))
    return AiMove(action, reason, reasoning=list(reasoning) + [message(reason.message_key)])


def _simple_move(action_type: ActionType, reason: ReasonCode, reasoning: Reasoning) -> AiMove:
    return AiMove(Action(action_type), reason, reasoning=list(reasoning) + [message(reason.message_key)])


def _strongest_inferred_card(ctx: DecisionContext) -> Optional[Card]:
    samples = generate_constrained_opponent_hands(
        ctx.state, [], strong=1, medium=1, weak=1, rng=ctx.rng, cache=ctx.cache
    )
    if not samples.strong or not samples.strong[0]:
        return None
    return sort_by_power(samples.strong[0], descending=True)[0]


def _decide_truco_response(ctx: DecisionContext, strength: float, escalation: Optional[ActionType],
                           reasoning: Reasoning) -> AiMove:
    state = ctx.state
    rng = ctx.rng
    pressure = ctx.game_pressure
    model = state.opponent_model

    if strength < CERTAIN_LOSS_STRENGTH:
        bluff_chance = 0.10 + model.truco_fold_rate * 0.2 + (pressure * 0.3 if pressure > 0.5 else 0)
        reasoning.append(message("ai_logic.defeat_analysis", win_prob=strength, bluff_chance=bluff_chance))
        if escalation is not None and rng.random() < bluff_chance:
            return _call_move(escalation, ReasonCode.ESCALATE_TRUCO_DESPERATION, strength, True, reasoning)
        return _simple_move(ActionType.DECLINE, ReasonCode.DECLINE_TRUCO_OVERWHELMING, reasoning)

    if state.current_trick == 0 and state.player_tricks[0] is None:
        percentile = get_hand_percentile(state.ai_hand)
        reasoning.append(message("ai_logic.early_truco_logic", percentile=percentile))

        if percentile >= 90 and escalation is not None and rng.random() < 0.85:
            return _call_move(escalation, ReasonCode.ESCALATE_TRUCO_ELITE, strength, False, reasoning)

        if percentile >= 50:
            if percentile >= 75 and escalation is not None and rng.random() < 0.3:
                return _call_move(escalation, ReasonCode.ESCALATE_TRUCO_STRONG, strength, False, reasoning)
            return _simple_move(ActionType.ACCEPT, ReasonCode.ACCEPT_TRUCO_SOLID, reasoning)

        fold_chance = 0.65 - pressure * 0.3
        if rng.random() < fold_chance:
            return _simple_move(ActionType.DECLINE, ReasonCode.DECLINE_TRUCO_WEAK, reasoning)
        if escalation is not None and rng.random() < 0.15:
            return _call_move(escalation, ReasonCode.ESCALATE_TRUCO_BLUFF, strength, True, reasoning)
        return _simple_move(ActionType.ACCEPT, ReasonCode.ACCEPT_TRUCO_BLUFF_CALL, reasoning)

    if len(state.ai_hand) == 1 and len(state.player_hand) == 1 and escalation is not None:
        last_card = state.ai_hand[0]
        if last_card.power >= 11:
            rival = _strongest_inferred_card(ctx)
            rival_is_stronger = rival is not None and rival.power > last_card.power
            reasoning.append(message(
                "ai_logic.final_escalation_logic",
                card=last_card.code,
                rival=rival.code if rival is not None else None,
                rival_is_stronger=rival_is_stronger,
            ))
            if not rival_is_stronger and rng.random() < DOMINANT_CARD_ESCALATION[last_card.power]:
                return _call_move(escalation, ReasonCode.ESCALATE_TRUCO_DOMINANT_CARD, strength, False, reasoning)

    envido_leak = RESPONSE_ENVIDO_LEAK if state.player_called_high_envido else 0.0
    bluff_stats = model.truco_bluffs.for_context(state.player_context)
    bluff_rate = bluff_stats.success_rate if bluff_stats.attempts > 2 else 0.5
    bluff_adjust = (bluff_rate - 0.4) * 0.4

    positional_bonus = 0.0
    ai_tricks_won = sum(1 for w in state.trick_winners if w == AI)
    player_tricks_won = sum(1 for w in state.trick_winners if w == PLAYER)
    if state.current_trick > 0 and ai_tricks_won > player_tricks_won:
        positional_bonus = POSITIONAL_BONUS

    equity = strength - 0.5 - envido_leak + positional_bonus + bluff_adjust + pressure * 0.15
    reasoning.append(message(
        "ai_logic.final_equity",
        equity=equity,
        envido_leak=envido_leak,
        positional_bonus=positional_bonus,
        bluff_rate=bluff_rate,
        pressure_adjust=pressure * 0.15,
    ))

    mixed_chance = MAX_MIXED_STRATEGY_CHANCE * max(0.0, 1 - abs(equity) * 2.5)
    if rng.random() < mixed_chance:
        reasoning.append(message("ai_logic.mixed_strategy_decision", chance=mixed_chance))
        aggressive = rng.random() < 0.5
        if aggressive and escalation is not None:
            return _call_move(escalation, ReasonCode.ESCALATE_TRUCO_BLUFF, strength, True, reasoning)
        if aggressive:
            return _simple_move(ActionType.ACCEPT, ReasonCode.ACCEPT_TRUCO_MIXED, reasoning)
        return _simple_move(ActionType.DECLINE, ReasonCode.DECLINE_TRUCO_MIXED, reasoning)

    if equity > 0.25 and escalation is not None:
        return _call_move(escalation, ReasonCode.ESCALATE_TRUCO_EQUITY, strength, False, reasoning)
    if equity > -0.15:
        return _simple_move(ActionType.ACCEPT, ReasonCode.ACCEPT_TRUCO_EQUITY, reasoning)
    return _simple_move(ActionType.DECLINE, ReasonCode.DECLINE_TRUCO_EQUITY, reasoning)


def get_truco_response_options(ctx: DecisionContext, reasoning: Reasoning) -> List[AiMove]:
    """Candidates for answering the player's truco, retruco or vale cuatro."""
    state = ctx.state
    if state.truco_level == 0:
        return []

    escalation = truco_escalation(ctx.state)
    strength_result = calculate_truco_strength(ctx)
    local: Reasoning = list(reasoning) + [message("ai_logic.strength_evaluation")] + list(strength_result.reasoning)
    strength = strength_result.strength

    primary = _decide_truco_response(ctx, strength, escalation, local)
    moves = [primary]

    if strength >= TRAP_STRENGTH and primary.action.type is not ActionType.ACCEPT:
        moves.append(_simple_move(ActionType.ACCEPT, ReasonCode.ACCEPT_TRUCO_TRAP, local))
    if primary.action.type is not ActionType.DECLINE:
        moves.append(_simple_move(ActionType.DECLINE, ReasonCode.DECLINE_TRUCO_BASELINE, local))
    return moves


def _parda_y_gano_is_certain(ctx: DecisionContext, reasoning: Reasoning) -> bool:
    state = ctx.state
    player_card = state.player_card_on_table
    if player_card is not None:
        winners = [c for c in state.ai_hand if c.power > player_card.power]
        if winners:
            reasoning.append(message(
                "ai_logic.parda_gano_win_condition_response",
                card=player_card.code,
                my_card=sort_by_power(winners)[0].code,
            ))
            return True
        return False

    my_best = sort_by_power(state.ai_hand, descending=True)[0]
    unseen = unseen_cards(state)
    if not unseen:
        return my_best.power >= 14
    rival_best = sort_by_power(unseen, descending=True)[0]
    if my_best.power > rival_best.power:
        reasoning.append(message(
            "ai_logic.parda_gano_win_condition_lead",
            my_card=my_best.code,
            rival_card=rival_best.code,
        ))
        return True
    return False


def final_trick_win_probability(ctx: DecisionContext) -> Optional[float]:
    state = ctx.state
    my_card = state.ai_hand[0]
    player_card = state.player_card_on_table

    def wins_against(opp_card: Card) -> bool:
        hypothetical = list(state.trick_winners)
        hypothetical[state.current_trick] = determine_trick_winner(opp_card, my_card)
        return determine_round_winner(hypothetical, state.mano) == AI

    if player_card is not None:
        return 1.0 if wins_against(player_card) else 0.0

    samples = generate_constrained_opponent_hands(
        state, [], strong=1, medium=1, weak=1, rng=ctx.rng, cache=ctx.cache
    )
    possible = [card for hand in samples.all_hands() for card in hand]
    if not possible:
        return None
    return sum(1 for card in possible if wins_against(card)) / len(possible)


def get_truco_call(ctx: DecisionContext, reasoning: Reasoning) -> Optional[AiMove]:
    """Propose calling (or re-raising) truco on the AI's own turn, or None."""
    state = ctx.state
    if not can_call_truco(state):
        return None

    rng = ctx.rng
    call_type = truco_call_for_level(state.truco_level)
    local: Reasoning = list(reasoning) + [message("ai_logic.truco_call_logic")]

    if state.current_trick == 1 and state.trick_winners[0] == TIE and _parda_y_gano_is_certain(ctx, local):
        return _call_move(call_type, ReasonCode.CALL_TRUCO_PARDA_Y_GANO, 1.0, False, local)

    final_trick = len(state.ai_hand) == 1 and (
        len(state.player_hand) == 1
        or (len(state.player_hand) == 0 and state.player_card_on_table is not None)
    )
    if final_trick:
        win_probability = final_trick_win_probability(ctx)
        if win_probability is not None and win_probability > CERTAIN_WIN_PROBABILITY:
            local.append(message("ai_logic.escalation_certainty_reasoning", win_prob=win_probability))
            if rng.random() < CERTAINTY_ACTION_PROBABILITY:
                return _call_move(call_type, ReasonCode.CALL_TRUCO_CERTAIN_WIN, 1.0, False, local)

    if state.truco_level > 0:
        return None

    model = state.opponent_model
    pressure = ctx.game_pressure
    envido_leak = CALL_ENVIDO_LEAK if state.player_called_high_envido else 0.0
    fold_rate = model.truco_fold_rate
    envido_primero_rate = model.play_style.envido_primero_rate
    envido_primero_bonus = envido_primero_rate * 0.3 if envido_primero_rate > 0.4 else 0.0
    bluff_chance = min(
        MAX_BLUFF_CHANCE,
        0.10
        + fold_rate * 0.4
        - model.bluff_success_rate * 0.2
        + model.play_style.bait_rate * 0.5
        + envido_primero_bonus
        + (pressure * 0.1 if pressure > 0 else 0),
    )
    if ctx.bluff_case_rate is not None:
        bluff_chance = min(MAX_BLUFF_CHANCE, max(0.0, bluff_chance + (ctx.bluff_case_rate - 0.5) * 0.2))
    local.append(message("ai_logic.adjusted_bluff_chance_truco", chance=bluff_chance))

    strength_result = calculate_truco_strength(ctx)
    strength = strength_result.strength
    local.extend(strength_result.reasoning)

    if state.current_trick == 1 and state.trick_winners[0] == AI and strength >= 0.6:
        return _call_move(call_type, ReasonCode.CALL_TRUCO_WON_TRICK1, strength, False, local)

    if state.current_trick == 1 and state.trick_winners[0] == TIE and strength < 0.5 and rng.random() < 0.2:
        ev = fold_rate * 1 + (1 - fold_rate) * (strength * 2 - (1 - strength) * 2)
        local.append(message("ai_logic.post_parda_bluff_ev", ev=ev))
        if ev > 0:
            return _call_move(call_type, ReasonCode.CALL_TRUCO_POST_PARDA_BLUFF, strength, True, local)

    value_threshold = 0.65 - envido_leak - pressure * 0.15
    if rng.random() < bluff_chance and strength < 0.45 - envido_leak:
        return _call_move(call_type, ReasonCode.CALL_TRUCO_BLUFF, strength, True, local)
    if strength >= value_threshold:
        local.append(message("ai_logic.value_threshold", strength=strength, threshold=value_threshold))
        return _call_move(call_type, ReasonCode.CALL_TRUCO_VALUE, strength, False, local)

    logger.debug(f"No truco call: strength={strength:.2f}, threshold={value_threshold:.2f}")
    return None


def certain_win_truco_call(ctx: DecisionContext, card_reason: ReasonCode, reasoning: Reasoning) -> Optional[AiMove]:
    """Raise truco ahead of a card play that already locks the round."""
    if card_reason not in (ReasonCode.PLAY_CARD_PARDA_Y_GANO, ReasonCode.PLAY_CARD_CERTAIN_WIN):
        return None
    if not can_call_truco(ctx.state):
        return None
    reason = (
        ReasonCode.CALL_TRUCO_PARDA_Y_GANO
        if card_reason is ReasonCode.PLAY_CARD_PARDA_Y_GANO
        else ReasonCode.CALL_TRUCO_CERTAIN_WIN
    )
    return _call_move(truco_call_for_level(ctx.state.truco_level), reason, 1.0, False, reasoning)
