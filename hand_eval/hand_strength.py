from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from truco_core.cards import Card, get_card_hierarchy

HAND_STRENGTH_PERCENTILES = {
    90: 20,
    75: 16,
    50: 11,
    25: 7,
    10: 3,
}

CARD_CATEGORIES = ["brava", "high", "mid", "low"]


@dataclass(frozen=True)
class EnvidoDetails:
    value: int
    cards: List[Card]
    suit: Optional[str]


def card_hierarchy(card: Card) -> int:
    return get_card_hierarchy(card.rank, card.suit)


def calculate_hand_strength(hand: Sequence[Card]) -> int:
    return sum(card_hierarchy(c) for c in hand)


def envido_face_value(card: Card) -> int:
    return card.rank if card.rank < 10 else 0


def get_envido_details(hand: Sequence[Card]) -> EnvidoDetails:
    if not hand or len(hand) > 3:
        raise ValueError(f"Envido score needs between 1 and 3 cards, got {len(hand)}.")

    suit_map: Dict[str, List[Card]] = {}
    for c in hand:
        suit_map.setdefault(c.suit, []).append(c)

    best: Optional[EnvidoDetails] = None
    for suit, cards in suit_map.items():
        if len(cards) < 2:
            continue
        top_two = sorted(cards, key=envido_face_value, reverse=True)[:2]
        score = 20 + sum(envido_face_value(c) for c in top_two)
        if best is None or score > best.value:
            best = EnvidoDetails(score, top_two, suit)

    if best is not None:
        return best

    high = max(hand, key=envido_face_value)
    return EnvidoDetails(envido_face_value(high), [high], None)


def compute_envido_score(hand: Sequence[Card]) -> int:
    return get_envido_details(hand).value


def has_flor(hand: Sequence[Card]) -> bool:
    return len(hand) == 3 and len({c.suit for c in hand}) == 1


def compute_flor_score(hand: Sequence[Card]) -> int:
    if len(hand) > 3:
        raise ValueError(f"Flor score needs at most 3 cards, got {len(hand)}.")
    if not has_flor(hand):
        return 0
    return 20 + sum(envido_face_value(c) for c in hand)


def get_hand_percentile(hand: Sequence[Card]) -> int:
    strength = calculate_hand_strength(hand)
    for percentile in sorted(HAND_STRENGTH_PERCENTILES, reverse=True):
        if strength >= HAND_STRENGTH_PERCENTILES[percentile]:
            return percentile
    return 0


def card_category(card: Card) -> str:
    power = card_hierarchy(card)
    if power >= 11:
        return "brava"
    elif power >= 8:
        return "high"
    elif power >= 4:
        return "mid"
    return "low"


def summarize_card_categories(cards: Sequence[Card]) -> Dict[str, int]:
    counts = Counter(card_category(c) for c in cards)
    return {category: counts.get(category, 0) for category in CARD_CATEGORIES}
