import random

import pytest

from truco_core.cards import Card, build_deck
from truco_core.game_state import GameState
from truco_core.rules import AI


class ScriptedRandom(random.Random):
    """Random whose ``random()`` replays fixed rolls; sampling still comes from the seed."""

    def __init__(self, rolls=(), default=0.5, seed=0):
        super().__init__(seed)
        self.rolls = list(rolls)
        self.default = default
        self.calls = 0

    def random(self):
        self.calls += 1
        if self.rolls:
            return self.rolls.pop(0)
        return self.default

    def getrandbits(self, k):
        return super().getrandbits(k)


def cards(*codes):
    suits = {"E": "espadas", "B": "bastos", "O": "oros", "C": "copas"}
    return [Card(int(code[1:]), suits[code[0]]) for code in codes]


def fill_hand(exclude, size=3):
    return [c for c in build_deck() if c not in exclude][:size]


@pytest.fixture
def scripted_rng():
    return ScriptedRandom


@pytest.fixture
def make_state():
    """Build a GameState where the AI is to move; unspecified player cards are filled from the deck."""

    def _make(ai_hand, player_hand=None, **kwargs):
        ai_hand = list(ai_hand)
        initial_ai_hand = list(kwargs.pop("initial_ai_hand", ai_hand))
        known = set(initial_ai_hand)
        for key in ("player_tricks", "ai_tricks"):
            known.update(c for c in kwargs.get(key, []) if c is not None)
        if player_hand is None:
            player_hand = fill_hand(known)
        player_hand = list(player_hand)
        kwargs.setdefault("initial_player_hand", list(player_hand))
        kwargs.setdefault("current_turn", AI)
        return GameState(
            player_hand=player_hand,
            ai_hand=ai_hand,
            initial_ai_hand=initial_ai_hand,
            **kwargs,
        )

    return _make
