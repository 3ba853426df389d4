from __future__ import annotations

import argparse
import logging
import random
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from hand_eval.hand_strength import (
    CARD_CATEGORIES,
    calculate_hand_strength,
    compute_envido_score,
    compute_flor_score,
    get_hand_percentile,
    summarize_card_categories,
)
from truco_core.cards import Card, Deck, build_deck
from truco_core.game_state import GameState
from truco_core.rules import AI
from truco_ai.decision_context import DecisionContext
from truco_ai.truco_strategy import calculate_truco_strength, truco_heuristic

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 100
DEFAULT_SIMULATION_ITERATIONS = 50

COLUMNS = [
    "hand",
    "strength",
    "percentile",
    *CARD_CATEGORIES,
    "envido",
    "flor",
    "truco_heuristic",
    "truco_strength",
]

ProgressCallback = Callable[[int, int], None]
CancelCheck = Callable[[], bool]


def _analysis_state(hand: Sequence[Card]) -> GameState:
    rest = [c for c in build_deck() if c not in hand]
    return GameState(
        player_hand=rest[:3],
        ai_hand=list(hand),
        initial_player_hand=rest[:3],
        initial_ai_hand=list(hand),
        mano=AI,
        current_turn=AI,
    )


def analyze_hand(hand: Sequence[Card], rng: random.Random, simulation_iterations: int, simulate: bool = True) -> Dict:
    if len(hand) != 3:
        raise ValueError(f"Batch analysis needs 3-card hands, got {len(hand)}.")
    row = {
        "hand": " ".join(c.code for c in hand),
        "strength": calculate_hand_strength(hand),
        "percentile": get_hand_percentile(hand),
        "envido": compute_envido_score(hand),
        "flor": compute_flor_score(hand),
        "truco_heuristic": truco_heuristic(hand),
        "truco_strength": np.nan,
    }
    row.update(summarize_card_categories(hand))
    if simulate:
        ctx = DecisionContext.for_state(_analysis_state(hand), rng=rng, simulation_iterations=simulation_iterations)
        row["truco_strength"] = calculate_truco_strength(ctx).strength
    return row


def analyze_hands(
    hands: Sequence[Sequence[Card]],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    on_progress: Optional[ProgressCallback] = None,
    should_cancel: Optional[CancelCheck] = None,
    simulation_iterations: int = DEFAULT_SIMULATION_ITERATIONS,
    simulate: bool = True,
    seed: Optional[int] = None,
) -> pd.DataFrame:
    """Analyze ``hands`` in chunks, reporting progress after each and stopping early if cancelled.

    Returns one row per processed hand; a cancelled run returns the rows finished so far.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    rng = random.Random(seed)
    total = len(hands)
    rows: List[Dict] = []
    for start in range(0, total, chunk_size):
        if should_cancel is not None and should_cancel():
            logger.info(f"Batch analysis cancelled after {len(rows)}/{total} hands")
            break
        for hand in hands[start:start + chunk_size]:
            rows.append(analyze_hand(hand, rng, simulation_iterations, simulate))
        if on_progress is not None:
            on_progress(len(rows), total)
        logger.info(f"Analyzed {len(rows)}/{total} hands")

    return pd.DataFrame(rows, columns=COLUMNS)


def generate_random_hands(count: int, seed: Optional[int] = None) -> List[List[Card]]:
    rng = random.Random(seed)
    deck = Deck(rng)
    hands = []
    for _ in range(count):
        if len(deck) < 3:
            deck.reset()
        hands.append(deck.deal(3))
    return hands


def main(argv: Optional[Sequence[str]] = None) -> None:
    p = argparse.ArgumentParser(description="Analyze random Truco hands and export the results to CSV")
    p.add_argument("--num_hands", type=int, default=1000, help="Number of random hands to analyze")
    p.add_argument("--output", type=str, default="truco_hand_analysis.csv", help="CSV output path")
    p.add_argument("--seed", type=int, default=42, help="Global RNG seed")
    p.add_argument("--chunk_size", type=int, default=DEFAULT_CHUNK_SIZE, help="Hands processed between progress reports")
    p.add_argument("--iterations", type=int, default=DEFAULT_SIMULATION_ITERATIONS, help="Simulations per sampled opponent hand")
    p.add_argument("--no_simulation", action="store_true", help="Skip the simulated truco strength column")
    args = p.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    hands = generate_random_hands(args.num_hands, args.seed)
    df = analyze_hands(
        hands,
        chunk_size=args.chunk_size,
        simulation_iterations=args.iterations,
        simulate=not args.no_simulation,
        seed=args.seed,
    )
    df.to_csv(args.output, index=False)
    logger.info(f"Saved {len(df):,} rows to {args.output}")


if __name__ == "__main__":
    main()
