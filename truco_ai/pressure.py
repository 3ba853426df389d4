from truco_core.rules import endgame_score

DESPERATE_THRESHOLD = 0.5
CAUTIOUS_THRESHOLD = -0.5


def compute_game_pressure(ai_score: int, player_score: int) -> float:
    """Score desperation in [-1, 1]: positive when the AI must take risks, negative when it can sit back."""
    score_diff = ai_score - player_score
    if max(ai_score, player_score) >= endgame_score:
        pressure = 1.0 if score_diff == 0 else -score_diff / 3.0
    else:
        pressure = -score_diff / 15.0
    return max(-1.0, min(1.0, pressure))


def pressure_status(pressure: float) -> str:
    if pressure > DESPERATE_THRESHOLD:
        return "desperate"
    if pressure < CAUTIOUS_THRESHOLD:
        return "cautious"
    return "neutral"
