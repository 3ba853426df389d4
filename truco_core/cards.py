from typing import List, Optional
import random

SUITS = ["espadas", "bastos", "oros", "copas"]
RANKS = [1, 2, 3, 4, 5, 6, 7, 10, 11, 12]

SUIT_CODES = {
    "espadas": "E",
    "bastos": "B",
    "oros": "O",
    "copas": "C",
}
CODE_SUITS = {code: suit for suit, code in SUIT_CODES.items()}

CARD_RANK_OVERRIDES = {
    (1, "espadas"): 14,  # Ancho de Espadas (Macho)
    (1, "bastos"): 13,  # Ancho de Bastos (Hembra)
    (7, "espadas"): 12,  # Siete de Espadas
    (7, "oros"): 11,  # Siete de Oros
}


def get_card_hierarchy(rank: int, suit: str) -> int:
    if suit not in SUITS:
        raise ValueError(f"Unrecognized suit: {suit}")

    if rank not in RANKS:
        raise ValueError(f"Invalid Truco card value: {rank}")

    if (rank, suit) in CARD_RANK_OVERRIDES:
        return CARD_RANK_OVERRIDES[(rank, suit)]

    if rank == 3:
        return 10
    elif rank == 2:
        return 9
    elif rank == 1:
        # Falso ancho, oros/copas
        return 8
    elif rank == 12:
        return 7
    elif rank == 11:
        return 6
    elif rank == 10:
        return 5
    elif rank == 7:
        # Falso siete, bastos/copas
        return 4
    elif rank == 6:
        return 3
    elif rank == 5:
        return 2
    elif rank == 4:
        return 1

    raise ValueError(f"Unexpected card value/suit: ({rank}, {suit})")


class Card:
    """A single Spanish-deck card. Equality is by (rank, suit); use ``power`` to compare strength."""

    __slots__ = ['rank', 'suit', 'power']

    def __init__(self, rank: int, suit: str):
        object.__setattr__(self, "power", get_card_hierarchy(rank, suit))
        object.__setattr__(self, "rank", rank)
        object.__setattr__(self, "suit", suit)

    def __setattr__(self, name, value):
        raise AttributeError("Card is immutable")

    @property
    def code(self) -> str:
        return f"{SUIT_CODES[self.suit]}{self.rank}"

    def beats(self, other: "Card") -> bool:
        return self.power > other.power

    def __str__(self) -> str:
        return f"{self.rank} de {self.suit}"

    def __repr__(self) -> str:
        return f"Card(rank={self.rank}, suit='{self.suit}', power={self.power})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, Card):
            return NotImplemented
        return self.rank == other.rank and self.suit == other.suit

    def __hash__(self) -> int:
        return hash((self.rank, self.suit))

    def __reduce__(self):
        return (Card, (self.rank, self.suit))


def card_from_code(code: str) -> Card:
    if len(code) < 2 or code[0] not in CODE_SUITS:
        raise ValueError(f"Unrecognized card code: {code}")
    try:
        rank = int(code[1:])
    except ValueError:
        raise ValueError(f"Unrecognized card code: {code}") from None
    return Card(rank, CODE_SUITS[code[0]])


def build_deck() -> List[Card]:
    return [Card(rank, suit) for suit in SUITS for rank in RANKS]


def sort_by_power(cards, descending: bool = False) -> List[Card]:
    return sorted(cards, key=lambda c: c.power, reverse=descending)


class Deck:
    """A shuffled deck dealt from the top. Pass a seeded ``rng`` for reproducible deals."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self.cards: List[Card] = []
        self.reset()

    def reset(self) -> None:
        self.cards = build_deck()
        self.rng.shuffle(self.cards)

    def deal(self, n: int = 1) -> List[Card]:
        if n > len(self.cards):
            raise ValueError(f"Cannot deal {n} cards; only {len(self.cards)} left.")
        dealt, self.cards = self.cards[:n], self.cards[n:]
        return dealt

    def __len__(self) -> int:
        return len(self.cards)
