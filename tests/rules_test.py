import itertools

import pytest
from truco_core.cards import Card
from truco_core.rules import (
    AI,
    PLAYER,
    TIE,
    max_points,
    envido_points_accept,
    truco_points_accept,
    truco_points_reject,
    valid_truco_order,
    determine_round_winner,
    determine_trick_winner,
    get_envido_points_on_accept,
    get_falta_envido_points,
    get_truco_points_on_accept,
    get_truco_points_on_reject,
    round_points_at_level,
    truco_stage_for_level,
)


class TestConstants:
    def test_max_points(self):
        assert max_points == 15

    def test_envido_points_accept_dict(self):
        assert envido_points_accept == {"Envido": 2, "RealEnvido": 3}

    def test_truco_points_accept_dict(self):
        assert truco_points_accept == {"Truco": 2, "ReTruco": 3, "ValeCuatro": 4}

    def test_truco_points_reject_dict(self):
        assert truco_points_reject == {"Truco": 1, "ReTruco": 2, "ValeCuatro": 3}

    def test_valid_truco_order(self):
        assert valid_truco_order == ["Truco", "ReTruco", "ValeCuatro"]


class TestEnvidoFunctions:
    def test_get_envido_points_on_accept_valid(self):
        assert get_envido_points_on_accept("Envido") == 2
        assert get_envido_points_on_accept("RealEnvido") == 3

    def test_get_envido_points_on_accept_invalid(self):
        with pytest.raises(ValueError, match="Unrecognized envido stage: InvalidEnvido"):
            get_envido_points_on_accept("InvalidEnvido")

    def test_falta_envido_uses_leading_score(self):
        assert get_falta_envido_points(3, 10) == 5
        assert get_falta_envido_points(12, 0) == 3


class TestTrucoFunctions:
    def test_get_truco_points_on_accept_valid(self):
        assert get_truco_points_on_accept("Truco") == 2
        assert get_truco_points_on_accept("ReTruco") == 3
        assert get_truco_points_on_accept("ValeCuatro") == 4

    def test_get_truco_points_on_accept_invalid(self):
        with pytest.raises(ValueError, match="Unrecognized truco stage: BadTruco"):
            get_truco_points_on_accept("BadTruco")

    def test_get_truco_points_on_reject_valid(self):
        assert get_truco_points_on_reject("Truco") == 1
        assert get_truco_points_on_reject("ValeCuatro") == 3

    def test_get_truco_points_on_reject_invalid(self):
        with pytest.raises(ValueError, match="Unrecognized truco stage: Nope"):
            get_truco_points_on_reject("Nope")

    def test_stage_for_level(self):
        assert truco_stage_for_level(0) == "Truco"
        assert truco_stage_for_level(2) == "ValeCuatro"
        with pytest.raises(ValueError, match="No truco escalation from level 3"):
            truco_stage_for_level(3)

    def test_round_points_at_level(self):
        assert [round_points_at_level(level) for level in range(4)] == [1, 2, 3, 4]


class TestDetermineTrickWinner:
    def test_higher_power_wins(self):
        assert determine_trick_winner(Card(1, "espadas"), Card(3, "oros")) == PLAYER
        assert determine_trick_winner(Card(4, "oros"), Card(7, "oros")) == AI

    def test_equal_power_ties(self):
        assert determine_trick_winner(Card(3, "copas"), Card(3, "espadas")) == TIE


class TestDetermineRoundWinner:
    def test_two_wins_take_the_round(self):
        assert determine_round_winner([AI, AI, None], PLAYER) == AI
        assert determine_round_winner([PLAYER, AI, PLAYER], AI) == PLAYER

    def test_undecided_after_one_trick(self):
        assert determine_round_winner([AI, None, None], PLAYER) is None
        assert determine_round_winner([TIE, None, None], PLAYER) is None

    def test_first_tie_then_decisive(self):
        assert determine_round_winner([TIE, AI, None], PLAYER) == AI

    def test_decisive_then_tie(self):
        assert determine_round_winner([PLAYER, TIE, None], AI) == PLAYER

    def test_split_then_tie_goes_to_first_winner(self):
        assert determine_round_winner([AI, PLAYER, TIE], PLAYER) == AI

    def test_two_ties_then_decisive(self):
        assert determine_round_winner([TIE, TIE, PLAYER], AI) == PLAYER

    def test_all_ties_go_to_mano(self):
        assert determine_round_winner([TIE, TIE, TIE], AI) == AI
        assert determine_round_winner([TIE, TIE, TIE], PLAYER) == PLAYER

    def test_split_undecided_before_third(self):
        assert determine_round_winner([AI, PLAYER, None], AI) is None


def expected_round_winner(tricks, mano):
    for side in (PLAYER, AI):
        if list(tricks).count(side) >= 2:
            return side
    first, second, third = tricks
    if first == TIE and second == TIE:
        return mano if third == TIE else third
    if TIE in (first, second):
        # a tie next to a decisive trick ends the round after trick 2
        return first if first != TIE else second
    return first


ALL_TRICKS = list(itertools.product([AI, PLAYER, TIE], repeat=3))


class TestDetermineRoundWinnerExhaustive:
    @pytest.mark.parametrize("mano", [AI, PLAYER])
    @pytest.mark.parametrize("tricks", ALL_TRICKS)
    def test_three_tricks(self, tricks, mano):
        assert determine_round_winner(list(tricks), mano) == expected_round_winner(tricks, mano)

    @pytest.mark.parametrize("mano", [AI, PLAYER])
    @pytest.mark.parametrize("tricks", ALL_TRICKS)
    def test_early_decision_is_final(self, tricks, mano):
        after_two = determine_round_winner([tricks[0], tricks[1], None], mano)
        if after_two is not None:
            assert determine_round_winner(list(tricks), mano) == after_two

    @pytest.mark.parametrize("mano", [AI, PLAYER])
    @pytest.mark.parametrize("tricks", list(itertools.product([AI, PLAYER, TIE], repeat=2)))
    def test_two_tricks_decide_only_when_settled(self, tricks, mano):
        first, second = tricks
        settled = first == second != TIE or (TIE in tricks and tricks != (TIE, TIE))
        winner = determine_round_winner([first, second, None], mano)
        assert (winner is not None) == settled
