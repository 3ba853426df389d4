import pytest
from conftest import cards
from hand_eval.hand_strength import (
    calculate_hand_strength,
    card_category,
    compute_envido_score,
    compute_flor_score,
    get_envido_details,
    get_hand_percentile,
    has_flor,
    summarize_card_categories,
)


class TestHandStrength:
    def test_sum_of_hierarchies(self):
        assert calculate_hand_strength(cards("E1", "B1", "E7")) == 39
        assert calculate_hand_strength(cards("O4", "C5", "B6")) == 6

    def test_empty_hand(self):
        assert calculate_hand_strength([]) == 0


class TestEnvido:
    def test_pair_scores_twenty_plus_faces(self):
        assert compute_envido_score(cards("E7", "E6", "O1")) == 33

    def test_figures_count_zero(self):
        assert compute_envido_score(cards("O12", "O11", "C4")) == 20
        assert compute_envido_score(cards("O12", "C11", "B10")) == 0

    def test_ace_counts_one(self):
        assert compute_envido_score(cards("C1", "C12", "E4")) == 21

    def test_no_pair_uses_highest_face(self):
        assert compute_envido_score(cards("E7", "B5", "O12")) == 7

    def test_flor_hand_uses_top_two(self):
        assert compute_envido_score(cards("C7", "C6", "C5")) == 33

    def test_details(self):
        details = get_envido_details(cards("B7", "B5", "E3"))
        assert details.value == 32
        assert details.suit == "bastos"
        assert set(details.cards) == set(cards("B7", "B5"))

    def test_details_without_pair(self):
        details = get_envido_details(cards("B7", "O5", "E3"))
        assert details.value == 7
        assert details.suit is None

    def test_invalid_hand_sizes(self):
        with pytest.raises(ValueError, match="between 1 and 3 cards"):
            get_envido_details([])
        with pytest.raises(ValueError, match="between 1 and 3 cards"):
            get_envido_details(cards("E1", "E2", "E3", "E4"))


class TestFlor:
    def test_has_flor(self):
        assert has_flor(cards("O1", "O7", "O12"))
        assert not has_flor(cards("O1", "O7", "C12"))
        assert not has_flor(cards("O1", "O7"))

    def test_flor_score(self):
        assert compute_flor_score(cards("O1", "O7", "O12")) == 28
        assert compute_flor_score(cards("O1", "O7", "C12")) == 0

    def test_flor_score_too_many_cards(self):
        with pytest.raises(ValueError, match="at most 3 cards"):
            compute_flor_score(cards("O1", "O7", "O12", "O4"))


class TestPercentile:
    def test_breakpoints(self):
        assert get_hand_percentile(cards("E1", "B1", "E7")) == 90
        assert get_hand_percentile(cards("C3", "B12", "E4")) == 75
        assert get_hand_percentile(cards("C3", "O5", "E4")) == 50
        assert get_hand_percentile(cards("O4", "C5", "B6")) == 10
        assert get_hand_percentile(cards("O4")) == 0


class TestCardCategories:
    def test_categories(self):
        assert card_category(cards("O7")[0]) == "brava"
        assert card_category(cards("C3")[0]) == "high"
        assert card_category(cards("B12")[0]) == "mid"
        assert card_category(cards("E6")[0]) == "low"

    def test_summary_counts_every_category(self):
        summary = summarize_card_categories(cards("E1", "C1", "O10"))
        assert summary == {"brava": 1, "high": 1, "mid": 1, "low": 0}
