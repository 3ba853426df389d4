from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Sequence, Tuple
import itertools
import logging
import random

import numpy as np

from hand_eval.hand_strength import (
    HAND_STRENGTH_PERCENTILES,
    calculate_hand_strength,
    compute_envido_score,
    has_flor,
)
from truco_core.cards import Card, build_deck
from truco_core.game_state import GamePhase, GameState
from truco_core.messages import Reasoning, message
from truco_core.opponent_model import OpponentHandProbabilities
from truco_core.rules import PLAYER

logger = logging.getLogger(__name__)

MAX_POOL_SIZE = 40
MAX_HAND_SIZE = 3

TRUCO_HISTORY_MIN_POINTS = 2
TRUCO_HISTORY_STDDEV_SPAN = 1.5
EARLY_TRUCO_MIN_STRENGTH = HAND_STRENGTH_PERCENTILES[50]

PASSIVE_NEAR_MARGIN = 2
PASSIVE_KEEP_NEAR = 0.3
PASSIVE_KEEP_FAR = 0.1
PASSIVE_MIN_POOL = 10
PASSIVE_MIN_FRACTION = 0.1

Hand = Tuple[Card, ...]


class InferenceConstraint(str, Enum):
    FLOR = "flor"
    ENVIDO_VALUE = "envido_value"
    TRUCO_HISTORY = "truco_history"
    TRUCO_MINIMUM = "truco_minimum"
    NONE = "none"


@dataclass(frozen=True)
class StratifiedSample:
    strong: List[Hand] = field(default_factory=list)
    medium: List[Hand] = field(default_factory=list)
    weak: List[Hand] = field(default_factory=list)
    constraint: InferenceConstraint = InferenceConstraint.NONE
    pool_size: int = 0
    passive_envido_applied: bool = False

    def is_empty(self) -> bool:
        return not (self.strong or self.medium or self.weak)

    def strata(self) -> Dict[str, List[Hand]]:
        return {"strong": self.strong, "medium": self.medium, "weak": self.weak}

    def all_hands(self) -> List[Hand]:
        return self.strong + self.medium + self.weak


def combinations(pool: Sequence[Card], k: int) -> Iterator[Hand]:
    if len(pool) > MAX_POOL_SIZE:
        raise ValueError(f"Card pool of {len(pool)} exceeds the {MAX_POOL_SIZE}-card deck.")
    if k < 0 or k > MAX_HAND_SIZE:
        raise ValueError(f"Invalid hand size for enumeration: {k}")
    return itertools.combinations(pool, k)


class CombinationCache:
    """Memo for ``combinations`` scoped to one decision. Create one per request; never share it."""

    def __init__(self):
        self._store: Dict[Tuple[Hand, int], List[Hand]] = {}

    def get(self, pool: Sequence[Card], k: int) -> List[Hand]:
        key = (tuple(pool), k)
        if key not in self._store:
            self._store[key] = list(combinations(pool, k))
        return self._store[key]

    def __len__(self) -> int:
        return len(self._store)


def _enumerate(pool: Sequence[Card], k: int, cache: Optional[CombinationCache]) -> List[Hand]:
    if cache is not None:
        return cache.get(pool, k)
    return list(combinations(pool, k))


def unseen_cards(state: GameState) -> List[Card]:
    known = set(state.initial_ai_hand) | set(state.ai_hand) | set(state.played_cards)
    return [c for c in build_deck() if c not in known]


def _full_hand(played: Sequence[Card], completion: Hand) -> List[Card]:
    return list(played) + list(completion)


def is_responding_to_early_truco(state: GameState) -> bool:
    return (
        state.game_phase is GamePhase.TRUCO_CALLED
        and state.last_caller == PLAYER
        and state.current_trick == 0
    )


def opponent_passed_on_envido(state: GameState) -> bool:
    return (
        not state.has_envido_been_called_this_round
        and not state.has_flor_been_called_this_round
        and state.player_envido_value is None
        and state.player_tricks[0] is not None
    )


def truco_strength_bounds(state: GameState) -> Tuple[float, float, InferenceConstraint]:
    strengths = [r.strength for r in state.player_truco_call_history]
    if len(strengths) >= TRUCO_HISTORY_MIN_POINTS:
        mean = float(np.mean(strengths))
        spread = TRUCO_HISTORY_STDDEV_SPAN * float(np.std(strengths))
        return mean - spread, mean + spread, InferenceConstraint.TRUCO_HISTORY
    return float(EARLY_TRUCO_MIN_STRENGTH), float("inf"), InferenceConstraint.TRUCO_MINIMUM


def _flor_candidates(completions: List[Hand], played: List[Card], declared_envido: Optional[int]) -> List[Hand]:
    result = []
    for completion in completions:
        full = _full_hand(played, completion)
        if not has_flor(full):
            continue
        if declared_envido is not None and compute_envido_score(full) != declared_envido:
            continue
        result.append(completion)
    return result


def _envido_candidates(completions: List[Hand], played: List[Card], declared_envido: int) -> List[Hand]:
    return [c for c in completions if compute_envido_score(_full_hand(played, c)) == declared_envido]


def _truco_candidates(completions: List[Hand], played: List[Card], low: float, high: float) -> List[Hand]:
    return [
        c for c in completions
        if low <= calculate_hand_strength(_full_hand(played, c)) <= high
    ]


def select_candidates(
    state: GameState,
    completions: List[Hand],
    reasoning: Reasoning,
) -> Tuple[List[Hand], InferenceConstraint]:
    """Apply the flor, envido-value and truco-behavior constraints in priority order."""
    played = state.player_played_cards

    if state.player_has_flor:
        candidates = _flor_candidates(completions, played, state.player_envido_value)
        reasoning.append(message("inference.flor_constraint", candidates=len(candidates)))
        if candidates:
            return candidates, InferenceConstraint.FLOR

    if state.player_envido_value is not None:
        candidates = _envido_candidates(completions, played, state.player_envido_value)
        reasoning.append(message(
            "inference.envido_constraint",
            envido=state.player_envido_value,
            candidates=len(candidates),
        ))
        if candidates:
            return candidates, InferenceConstraint.ENVIDO_VALUE

    if is_responding_to_early_truco(state):
        low, high, constraint = truco_strength_bounds(state)
        candidates = _truco_candidates(completions, played, low, high)
        reasoning.append(message(
            "inference.truco_constraint",
            source=constraint.value,
            low=low,
            high=high,
            candidates=len(candidates),
        ))
        if candidates:
            return candidates, constraint

    reasoning.append(message("inference.full_enumeration", candidates=len(completions)))
    return list(completions), InferenceConstraint.NONE


def apply_passive_envido_filter(
    candidates: List[Hand],
    played: List[Card],
    threshold: float,
    rng: random.Random,
) -> Optional[List[Hand]]:
    """Down-weight completions whose envido the player would likely have sung.

    Returns None when the filter would leave too few hands to trust.
    """
    kept = []
    for completion in candidates:
        envido = compute_envido_score(_full_hand(played, completion))
        if envido < threshold:
            keep_probability = 1.0
        elif envido <= threshold + PASSIVE_NEAR_MARGIN:
            keep_probability = PASSIVE_KEEP_NEAR
        else:
            keep_probability = PASSIVE_KEEP_FAR
        if keep_probability >= 1.0 or rng.random() < keep_probability:
            kept.append(completion)

    floor = max(PASSIVE_MIN_POOL, PASSIVE_MIN_FRACTION * len(candidates))
    if len(kept) < floor:
        return None
    return kept


def stratified_sample(
    candidates: Sequence[Hand],
    strong: int = 1,
    medium: int = 1,
    weak: int = 1,
    rng: Optional[random.Random] = None,
    constraint: InferenceConstraint = InferenceConstraint.NONE,
) -> StratifiedSample:
    if min(strong, medium, weak) < 0 or strong + medium + weak == 0:
        raise ValueError(f"Invalid sample counts: strong={strong}, medium={medium}, weak={weak}")
    if not candidates:
        return StratifiedSample(constraint=constraint)

    rng = rng or random.Random()
    ordered = sorted(candidates, key=calculate_hand_strength)
    deciles = np.array_split(np.arange(len(ordered)), 10)

    def draw(decile_numbers: List[int], count: int, fallback_index: int) -> List[Hand]:
        if count == 0:
            return []
        indices = [int(i) for d in decile_numbers for i in deciles[d - 1]]
        if not indices:
            return [ordered[fallback_index]]
        if count <= len(indices):
            chosen = rng.sample(indices, count)
        else:
            chosen = [rng.choice(indices) for _ in range(count)]
        return [ordered[i] for i in chosen]

    return StratifiedSample(
        strong=draw([10], strong, -1),
        medium=draw([4, 5, 6], medium, len(ordered) // 2),
        weak=draw([1, 2], weak, 0),
        constraint=constraint,
        pool_size=len(ordered),
    )


def generate_constrained_opponent_hands(
    state: GameState,
    reasoning: Reasoning,
    strong: int = 1,
    medium: int = 1,
    weak: int = 1,
    rng: Optional[random.Random] = None,
    cache: Optional[CombinationCache] = None,
) -> StratifiedSample:
    rng = rng or random.Random()
    cards_needed = len(state.player_hand)
    if cards_needed == 0:
        reasoning.append(message("inference.no_cards_to_infer"))
        return StratifiedSample()

    pool = unseen_cards(state)
    completions = _enumerate(pool, min(cards_needed, len(pool)), cache)
    candidates, constraint = select_candidates(state, completions, reasoning)

    if constraint is InferenceConstraint.NONE and state.opponent_hand_probabilities is not None:
        supported = belief_supported(candidates, state.opponent_hand_probabilities)
        if len(supported) < len(candidates):
            reasoning.append(message("inference.belief_filter_applied", before=len(candidates), after=len(supported)))
        candidates = supported

    passive_applied = False
    if constraint not in (InferenceConstraint.FLOR, InferenceConstraint.ENVIDO_VALUE) and opponent_passed_on_envido(state):
        threshold = state.opponent_model.envido_behavior.for_context(state.player_context).call_threshold
        filtered = apply_passive_envido_filter(candidates, state.player_played_cards, threshold, rng)
        if filtered is not None:
            reasoning.append(message(
                "inference.passive_envido_applied",
                threshold=threshold,
                before=len(candidates),
                after=len(filtered),
            ))
            candidates = filtered
            passive_applied = True
        else:
            reasoning.append(message("inference.passive_envido_skipped", threshold=threshold))

    sample = stratified_sample(candidates, strong, medium, weak, rng=rng, constraint=constraint)
    logger.debug(
        f"Inference: constraint={constraint.value}, pool={len(candidates)}, "
        f"strata=({len(sample.strong)}, {len(sample.medium)}, {len(sample.weak)})"
    )
    return StratifiedSample(
        strong=sample.strong,
        medium=sample.medium,
        weak=sample.weak,
        constraint=sample.constraint,
        pool_size=sample.pool_size,
        passive_envido_applied=passive_applied,
    )


def _distribution(hands: Sequence[Hand], unseen: Sequence[Card]) -> OpponentHandProbabilities:
    suit_counts: Counter = Counter()
    rank_counts: Counter = Counter()
    for hand in hands:
        for card in hand:
            suit_counts[card.suit] += 1
            rank_counts[card.rank] += 1

    total = sum(suit_counts.values())
    if total == 0:
        return OpponentHandProbabilities({}, {}, tuple(unseen))

    suits = sorted(suit_counts)
    ranks = sorted(rank_counts)
    suit_probs = np.array([suit_counts[s] for s in suits], dtype=float) / total
    rank_probs = np.array([rank_counts[r] for r in ranks], dtype=float) / total
    return OpponentHandProbabilities(
        suit_dist={s: float(p) for s, p in zip(suits, suit_probs)},
        rank_probs={r: float(p) for r, p in zip(ranks, rank_probs)},
        unseen_cards=tuple(unseen),
    )


def initialize_probabilities(unseen: Sequence[Card], hand_size: int = 3) -> OpponentHandProbabilities:
    k = min(hand_size, len(unseen))
    return _distribution(list(combinations(unseen, k)), unseen)


def update_probs_on_play(
    probs: OpponentHandProbabilities,
    played_card: Card,
    hand_size: int,
) -> OpponentHandProbabilities:
    unseen = [c for c in probs.unseen_cards if c != played_card]
    return initialize_probabilities(unseen, hand_size)


def update_probs_on_envido(
    probs: OpponentHandProbabilities,
    envido_value: int,
    played_cards: Sequence[Card],
    hand_size: int,
) -> OpponentHandProbabilities:
    unseen = list(probs.unseen_cards)
    k = min(hand_size, len(unseen))
    completions = list(combinations(unseen, k))
    matching = _envido_candidates(completions, list(played_cards), envido_value)
    if not matching:
        logger.debug(f"No completion matches declared envido {envido_value}; keeping prior.")
        return _distribution(completions, unseen)
    return _distribution(matching, unseen)


def hand_probabilities_for_state(state: GameState) -> OpponentHandProbabilities:
    """Bring the belief over the player's hidden cards up to date with ``state``.

    Starts from the state's last snapshot when there is one, drops the cards the
    player has since shown, and narrows it to a declared envido.
    """
    hand_size = len(state.player_hand)
    probs = state.opponent_hand_probabilities
    # a snapshot listing one of our own cards as unseen belongs to an earlier deal
    if probs is None or any(c in probs.unseen_cards for c in state.initial_ai_hand):
        probs = initialize_probabilities(unseen_cards(state), hand_size)
    else:
        for card in state.player_played_cards:
            if card in probs.unseen_cards:
                probs = update_probs_on_play(probs, card, hand_size)
    if state.player_envido_value is not None:
        probs = update_probs_on_envido(probs, state.player_envido_value, state.player_played_cards, hand_size)
    return probs


def belief_supported(candidates: Sequence[Hand], probs: Optional[OpponentHandProbabilities]) -> List[Hand]:
    """Completions made only of cards the belief still gives weight to; all of them if none qualify."""
    if probs is None or not probs.suit_dist:
        return list(candidates)
    unseen = set(probs.unseen_cards)

    def weighted(card: Card) -> bool:
        return card in unseen and probs.suit_dist.get(card.suit, 0.0) * probs.rank_probs.get(card.rank, 0.0) > 0

    supported = [hand for hand in candidates if all(weighted(c) for c in hand)]
    return supported or list(candidates)
