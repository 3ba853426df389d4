from typing import Optional, Sequence

from truco_core.cards import Card

PLAYER = "player"
AI = "ai"
TIE = "tie"

max_points: int = 15
endgame_score: int = 12

envido_points_accept = {
    "Envido":     2,
    "RealEnvido": 3,
}

contraflor_points: int = 6

truco_points_accept = {
    "Truco":      2,
    "ReTruco":    3,
    "ValeCuatro": 4
}

truco_points_reject = {
    "Truco":      1,
    "ReTruco":    2,
    "ValeCuatro": 3
}

valid_truco_order = ["Truco", "ReTruco", "ValeCuatro"]


def get_envido_points_on_accept(stage: str) -> int:
    if stage not in envido_points_accept:
        raise ValueError(f"Unrecognized envido stage: {stage}")
    return envido_points_accept[stage]


def get_falta_envido_points(player_score: int, ai_score: int) -> int:
    return max_points - max(player_score, ai_score)


def get_truco_points_on_accept(stage: str) -> int:
    if stage not in truco_points_accept:
        raise ValueError(f"Unrecognized truco stage: {stage}")
    return truco_points_accept[stage]


def get_truco_points_on_reject(stage: str) -> int:
    if stage not in truco_points_reject:
        raise ValueError(f"Unrecognized truco stage: {stage}")
    return truco_points_reject[stage]


def truco_stage_for_level(level: int) -> str:
    """Stage a call made at ``level`` escalates to (0 -> Truco, 1 -> ReTruco, 2 -> ValeCuatro)."""
    if level < 0 or level >= len(valid_truco_order):
        raise ValueError(f"No truco escalation from level {level}")
    return valid_truco_order[level]


def round_points_at_level(level: int) -> int:
    if level == 0:
        return 1
    return get_truco_points_on_accept(valid_truco_order[level - 1])


def determine_trick_winner(player_card: Card, ai_card: Card) -> str:
    if player_card.power > ai_card.power:
        return PLAYER
    elif ai_card.power > player_card.power:
        return AI
    else:
        return TIE


def determine_round_winner(trick_winners: Sequence[Optional[str]], mano: str) -> Optional[str]:
    t1, t2, t3 = (list(trick_winners) + [None, None, None])[:3]

    player_wins = sum(1 for w in (t1, t2, t3) if w == PLAYER)
    ai_wins = sum(1 for w in (t1, t2, t3) if w == AI)
    if player_wins >= 2:
        return PLAYER
    if ai_wins >= 2:
        return AI

    if t2 is not None:
        if t1 == TIE and t2 != TIE:
            return t2
        if t1 != TIE and t2 == TIE:
            return t1

    if t3 is not None:
        if t3 == TIE and t1 != TIE:
            return t1
        if t1 == TIE and t2 == TIE and t3 != TIE:
            return t3
        if player_wins == 1 and ai_wins == 1:
            return t1 if t1 != TIE else mano
        if t1 == TIE and t2 == TIE and t3 == TIE:
            return mano

    return None
