from typing import Optional
import logging

from game_sim.inference import unseen_cards
from hand_eval.hand_strength import get_envido_details, get_hand_percentile
from truco_core.cards import Card, sort_by_power
from truco_core.game_state import Action, ActionType, GameState
from truco_core.messages import Reasoning, message
from truco_core.rules import AI, TIE, determine_round_winner, determine_trick_winner
from truco_ai.decision_context import DecisionContext
from truco_ai.reasons import AiMove, ReasonCode

logger = logging.getLogger(__name__)

BRAVA_POWER = 11
TOP_CARD_POWER = 12
SACRIFICIAL_SECOND_POWER = 10
LOPSIDED_STRONG_POWER = 12
LOPSIDED_WEAK_POWER = 7
HIDE_ENVIDO_MIN_POINTS = 28
HIDE_ENVIDO_MAX_PERCENTILE = 50
WEAK_HAND_MAX_PERCENTILE = 25
AGGRESSIVE_CALL_THRESHOLD = 25
BEHIND_MARGIN = 4

HIDE_ENVIDO_CHANCE = 0.4
HIDE_ENVIDO_BEHIND_CHANCE = 0.7
HIDE_ENVIDO_VS_AGGRESSIVE_CHANCE = 0.4
SACRIFICIAL_CHANCE = 0.4
LOPSIDED_BAIT_CHANCE = 0.75
PARDA_Y_CANTO_CHANCE = 0.8


def _play(state: GameState, card: Card, reason: ReasonCode, reasoning: Reasoning) -> AiMove:
    action = Action(ActionType.PLAY_CARD, player=AI, card_index=state.ai_hand.index(card))
    return AiMove(action, reason, reasoning=list(reasoning) + [message(reason.message_key, card=card.code)])


def _round_outcome(state: GameState, opp_card: Card, my_card: Card) -> Optional[str]:
    winners = list(state.trick_winners)
    winners[state.current_trick] = determine_trick_winner(opp_card, my_card)
    return determine_round_winner(winners, state.mano)


def _certain_reason(state: GameState) -> ReasonCode:
    if state.current_trick > 0 and state.trick_winners[0] == TIE:
        return ReasonCode.PLAY_CARD_PARDA_Y_GANO
    return ReasonCode.PLAY_CARD_CERTAIN_WIN


def is_aggressive_envido_caller(state: GameState) -> bool:
    behavior = state.opponent_model.envido_behavior.for_context(state.player_context)
    return behavior.call_threshold < AGGRESSIVE_CALL_THRESHOLD


def _hide_envido_card(ctx: DecisionContext, reasoning: Reasoning) -> Optional[Card]:
    state = ctx.state
    if not state.ai_is_mano or len(state.initial_ai_hand) != 3:
        return None
    details = get_envido_details(state.initial_ai_hand)
    if details.value < HIDE_ENVIDO_MIN_POINTS or details.suit is None:
        return None
    if get_hand_percentile(state.initial_ai_hand) >= HIDE_ENVIDO_MAX_PERCENTILE:
        return None
    outside = [c for c in state.ai_hand if c.suit != details.suit]
    if not outside:
        return None

    if is_aggressive_envido_caller(state):
        chance = HIDE_ENVIDO_VS_AGGRESSIVE_CHANCE
    elif state.player_score - state.ai_score >= BEHIND_MARGIN:
        chance = HIDE_ENVIDO_BEHIND_CHANCE
    else:
        chance = HIDE_ENVIDO_CHANCE
    reasoning.append(message("ai_logic.hide_envido_check", envido=details.value, chance=chance))
    if ctx.rng.random() < chance:
        return sort_by_power(outside)[0]
    return None


def _lead_first_trick(ctx: DecisionContext, reasoning: Reasoning) -> AiMove:
    state = ctx.state
    rng = ctx.rng
    ordered = sort_by_power(state.ai_hand, descending=True)

    hidden = _hide_envido_card(ctx, reasoning)
    if hidden is not None:
        return _play(state, hidden, ReasonCode.HIDE_ENVIDO, reasoning)

    if (
        len(ordered) >= 2
        and state.ai_is_mano
        and state.truco_level == 0
        and ordered[0].power >= TOP_CARD_POWER
        and SACRIFICIAL_SECOND_POWER <= ordered[1].power < ordered[0].power
        and rng.random() < SACRIFICIAL_CHANCE
    ):
        return _play(state, ordered[1], ReasonCode.PROBE_SACRIFICIAL, reasoning)

    strong = [c for c in ordered if c.power >= LOPSIDED_STRONG_POWER]
    rest = [c for c in ordered if c.power < LOPSIDED_STRONG_POWER]
    if len(strong) == 1 and rest and all(c.power <= LOPSIDED_WEAK_POWER for c in rest):
        if rng.random() < LOPSIDED_BAIT_CHANCE:
            return _play(state, rng.choice(rest), ReasonCode.BAIT_LOPSIDED_HAND, reasoning)

    if len(ordered) == 3 and ordered[0].power >= BRAVA_POWER:
        return _play(state, ordered[1], ReasonCode.PROBE_MID_VALUE, reasoning)
    if get_hand_percentile(state.ai_hand) < WEAK_HAND_MAX_PERCENTILE:
        return _play(state, ordered[-1], ReasonCode.PROBE_LOW_VALUE, reasoning)
    return _play(state, ordered[0], ReasonCode.SECURE_HAND, reasoning)


def _lead_later_trick(state: GameState, reasoning: Reasoning) -> AiMove:
    best = sort_by_power(state.ai_hand, descending=True)[0]
    responses = unseen_cards(state)
    if responses and all(_round_outcome(state, opp, best) == AI for opp in responses):
        return _play(state, best, _certain_reason(state), reasoning)
    if len(state.ai_hand) == 1:
        return _play(state, best, ReasonCode.PLAY_LAST_CARD, reasoning)
    return _play(state, best, ReasonCode.SECURE_HAND, reasoning)


def _respond(ctx: DecisionContext, player_card: Card, reasoning: Reasoning) -> AiMove:
    state = ctx.state
    ascending = sort_by_power(state.ai_hand)
    reasoning.append(message("ai_logic.responding_to_card", card=player_card.code, value=player_card.power))

    round_winners = [c for c in ascending if _round_outcome(state, player_card, c) == AI]
    if round_winners:
        return _play(state, round_winners[0], _certain_reason(state), reasoning)

    if state.current_trick == 0:
        has_top = any(c.power >= BRAVA_POWER for c in ascending)
        tying = [c for c in ascending if c.power == player_card.power and c.power < BRAVA_POWER]
        if has_top and tying and ctx.rng.random() < PARDA_Y_CANTO_CHANCE:
            return _play(state, tying[0], ReasonCode.PARDA_Y_CANTO, reasoning)

    trick_winners = [c for c in ascending if c.power > player_card.power]
    if trick_winners:
        return _play(state, trick_winners[0], ReasonCode.WIN_ROUND_CHEAP, reasoning)
    return _play(state, ascending[0], ReasonCode.DISCARD_LOW, reasoning)


def find_best_card_to_play(ctx: DecisionContext, reasoning: Optional[Reasoning] = None) -> AiMove:
    state = ctx.state
    local: Reasoning = list(reasoning or [])
    if not state.ai_hand:
        return AiMove(Action(ActionType.NO_OP), ReasonCode.NO_CARDS_LEFT, reasoning=local + [message("ai_logic.no_cards_left")])

    local.append(message("ai_logic.play_card_logic"))
    local.append(message("ai_logic.my_hand", hand=[c.code for c in state.ai_hand]))

    player_card = state.player_card_on_table
    if player_card is not None:
        move = _respond(ctx, player_card, local)
    elif state.current_trick == 0:
        move = _lead_first_trick(ctx, local)
    else:
        move = _lead_later_trick(state, local)

    logger.debug(f"Card play: {move.reason.value} -> index {move.action.card_index}")
    return move
