from typing import List, Optional, Sequence
import logging
import random

from truco_core.cards import Card, sort_by_power
from truco_core.game_state import GameState
from truco_core.rules import AI, PLAYER, TIE, determine_round_winner, determine_trick_winner

logger = logging.getLogger(__name__)

DEFAULT_ITERATIONS = 150


def _respond(hand: List[Card], led: Card) -> Card:
    """Lowest card that beats ``led``, else the lowest card. ``hand`` is sorted high to low."""
    winners = [c for c in hand if c.power > led.power]
    card = winners[-1] if winners else hand[-1]
    hand.remove(card)
    return card


def simulate_round_win(
    my_hand: Sequence[Card],
    opp_hand: Sequence[Card],
    am_i_leading: bool,
    current_trick: int = 0,
    trick_winners: Optional[Sequence[Optional[str]]] = None,
    mano: str = AI,
    lead_with_highest_rate: float = 0.75,
    opp_card_on_table: Optional[Card] = None,
    my_card_on_table: Optional[Card] = None,
    iterations: int = DEFAULT_ITERATIONS,
    rng: Optional[random.Random] = None,
) -> float:
    """Play out the rest of the round and return the share of iterations the AI wins.

    The leader always leads its highest card, except the opponent's opening lead
    as mano, which follows ``lead_with_highest_rate``. The follower answers with
    its cheapest winning card, or throws its lowest.
    """
    if iterations <= 0:
        raise ValueError(f"Iterations must be positive, got {iterations}")
    rng = rng or random.Random()
    start_winners = list(trick_winners) if trick_winners is not None else [None, None, None]

    existing = determine_round_winner(start_winners, mano)
    if existing is not None:
        return 1.0 if existing == AI else 0.0

    wins = 0
    for _ in range(iterations):
        sim_winners = list(start_winners)
        remaining_my = sort_by_power(my_hand, descending=True)
        remaining_opp = sort_by_power(opp_hand, descending=True)
        my_leading = am_i_leading

        for trick in range(current_trick, 3):
            open_opp = opp_card_on_table if trick == current_trick else None
            open_my = my_card_on_table if trick == current_trick else None

            if open_opp is not None:
                opp_card = open_opp
                if not remaining_my:
                    break
                my_card = _respond(remaining_my, opp_card)
            elif open_my is not None:
                my_card = open_my
                if not remaining_opp:
                    break
                opp_card = _respond(remaining_opp, my_card)
            else:
                if not remaining_my or not remaining_opp:
                    break
                if my_leading:
                    my_card = remaining_my.pop(0)
                    opp_card = _respond(remaining_opp, my_card)
                else:
                    if trick == 0 and mano == PLAYER and rng.random() >= lead_with_highest_rate:
                        opp_card = remaining_opp.pop()
                    else:
                        opp_card = remaining_opp.pop(0)
                    my_card = _respond(remaining_my, opp_card)

            winner = determine_trick_winner(opp_card, my_card)
            sim_winners[trick] = winner
            my_leading = (mano if winner == TIE else winner) == AI

            if determine_round_winner(sim_winners, mano) is not None:
                break

        if determine_round_winner(sim_winners, mano) == AI:
            wins += 1

    return wins / iterations


def simulate_from_state(
    state: GameState,
    my_hand: Sequence[Card],
    opp_hand: Sequence[Card],
    iterations: int = DEFAULT_ITERATIONS,
    rng: Optional[random.Random] = None,
) -> float:
    opp_open = state.player_card_on_table
    my_open = state.ai_card_on_table
    am_i_leading = opp_open is None
    return simulate_round_win(
        my_hand,
        opp_hand,
        am_i_leading=am_i_leading,
        current_trick=min(state.current_trick, 2),
        trick_winners=state.trick_winners,
        mano=state.mano,
        lead_with_highest_rate=state.opponent_model.play_style.lead_with_highest_rate,
        opp_card_on_table=opp_open if my_open is None else None,
        my_card_on_table=my_open if opp_open is None else None,
        iterations=iterations,
        rng=rng,
    )
