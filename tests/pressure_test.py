import pytest
from truco_ai.pressure import compute_game_pressure, pressure_status


class TestComputeGamePressure:
    def test_even_early_game_is_neutral(self):
        assert compute_game_pressure(0, 0) == 0.0

    def test_trailing_early_raises_pressure(self):
        assert compute_game_pressure(5, 10) == pytest.approx(1 / 3)
        assert compute_game_pressure(10, 5) == pytest.approx(-1 / 3)

    def test_tied_endgame_is_maximal(self):
        assert compute_game_pressure(12, 12) == 1.0

    def test_endgame_scales_faster(self):
        assert compute_game_pressure(14, 12) == pytest.approx(-2 / 3)
        assert compute_game_pressure(11, 12) == pytest.approx(1 / 3)

    def test_clamped(self):
        assert compute_game_pressure(0, 14) == 1.0
        assert compute_game_pressure(14, 0) == -1.0


class TestPressureStatus:
    def test_labels(self):
        assert pressure_status(0.8) == "desperate"
        assert pressure_status(-0.8) == "cautious"
        assert pressure_status(0.5) == "neutral"
        assert pressure_status(-0.5) == "neutral"
